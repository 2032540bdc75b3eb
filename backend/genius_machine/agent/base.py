"""Base provider class for multi-model support"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..config import Config, get_config
from ..engine.models import Archetype
from .prompts import build_persona_prompt

logger = logging.getLogger(__name__)


class BasePerspectiveProvider(ABC):
    """
    Abstract base class for the text generation capability.

    A provider turns (persona, prompt) into text. It knows nothing about
    layers, circuits or retries; failures are raised as the engine's
    InvocationFailure subclasses.
    """

    name = "base"

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize base provider.

        Args:
            config: Optional configuration object
        """
        if config is None:
            config = get_config()

        self.config = config

    def system_prompt(self, persona: Archetype) -> str:
        """Persona system prompt"""
        return build_persona_prompt(persona)

    @abstractmethod
    async def generate(self, persona: Archetype, prompt: str, timeout: float) -> str:
        """
        Generate a perspective.

        Args:
            persona: Archetype speaking
            prompt: User prompt for this invocation
            timeout: Time budget in seconds

        Returns:
            Generated text

        Raises:
            TransientUpstreamError: Rate limiting or temporary provider failure
            UpstreamError: Any other provider failure
            InvocationTimeout: Provider-side timeout
        """
        pass

    async def aclose(self):
        """Release network resources"""
        pass
