"""Perspective invoker: bounded, retried calls to the provider"""

import asyncio
import logging
import time
from typing import Optional

from .base import BasePerspectiveProvider
from .prompts import build_invocation_prompt
from ..config import EngineConfig
from ..engine.context import InvocationContext
from ..engine.errors import (
    InvocationFailure,
    InvocationTimeout,
    PersonaValidationError,
    TransientUpstreamError,
    UpstreamError,
)
from ..engine.models import Archetype

logger = logging.getLogger(__name__)


class PerspectiveInvoker:
    """
    Wraps the provider with a time budget and a single retry.

    Holds only the provider and immutable settings, so one instance can
    serve any number of concurrent invocations and runs.
    """

    def __init__(self, provider: BasePerspectiveProvider, settings: Optional[EngineConfig] = None):
        self.provider = provider
        self.settings = settings or EngineConfig()

    @staticmethod
    def validate_persona(persona: Archetype):
        if not persona.id.strip() or not persona.name.strip():
            raise PersonaValidationError("Archetype must have a non-blank id and name", persona.id)

    async def invoke(self, archetype: Archetype, question: str, context: InvocationContext) -> str:
        """
        Generate one archetype's perspective.

        Args:
            archetype: Persona to invoke
            question: Run question
            context: Layer and peer context

        Returns:
            Perspective text

        Raises:
            InvocationTimeout: Budget exceeded
            UpstreamError: Provider failure after the retry budget is spent
            PersonaValidationError: Malformed persona, never retried
        """
        self.validate_persona(archetype)
        prompt = build_invocation_prompt(question, context)
        return await self.generate(archetype, prompt)

    async def generate(self, persona: Archetype, prompt: str) -> str:
        """Call the provider with timeout and transient-failure retry"""
        budget = self.settings.invocation_timeout_seconds
        deadline = time.monotonic() + budget
        attempt = 0

        while True:
            start = time.monotonic()
            remaining = deadline - start
            if remaining <= 0:
                raise InvocationTimeout(f"{persona.name} timed out after {budget:.1f}s", persona.id)
            try:
                return await asyncio.wait_for(
                    self.provider.generate(persona, prompt, remaining), timeout=remaining
                )
            except asyncio.TimeoutError as e:
                raise InvocationTimeout(
                    f"{persona.name} timed out after {budget:.1f}s", persona.id
                ) from e
            except TransientUpstreamError as e:
                if attempt >= self.settings.max_retries:
                    raise
                delay = self.settings.retry_backoff_seconds * (2 ** attempt)
                logger.warning(
                    f"Transient failure for {persona.name} after {time.monotonic() - start:.2f}s "
                    f"(attempt {attempt + 1}): {e}. Retrying in {delay:.2f}s"
                )
                await asyncio.sleep(min(delay, max(0.0, deadline - time.monotonic())))
                attempt += 1
            except InvocationFailure:
                raise
            except Exception as e:
                raise UpstreamError(f"{persona.name} failed: {e}", persona.id) from e
