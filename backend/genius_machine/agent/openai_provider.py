"""OpenAI provider implementation"""

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from .base import BasePerspectiveProvider
from ..config import Config
from ..engine.errors import InvocationTimeout, TransientUpstreamError, UpstreamError
from ..engine.models import Archetype

logger = logging.getLogger(__name__)


class OpenAIProvider(BasePerspectiveProvider):
    """Provider using the OpenAI chat completions API (or a compatible endpoint)"""

    name = "openai"

    def __init__(self, config: Optional[Config] = None, model: Optional[str] = None):
        """
        Initialize OpenAI provider.

        Args:
            config: Optional configuration object
            model: Model identifier overriding the configured one
        """
        super().__init__(config)

        # Get API key
        api_key = self.config.get_api_key("openai")
        if not api_key:
            raise ValueError(
                "OPENAI_API_KEY not found in environment variables"
            )

        settings = self.config.model.openai
        self.client = AsyncOpenAI(api_key=api_key, base_url=settings.base_url, max_retries=0)
        self.model = model or settings.model
        self.max_tokens = settings.max_tokens
        self.temperature = settings.temperature

        logger.info(f"Initialized OpenAIProvider with model: {self.model}")

    async def generate(self, persona: Archetype, prompt: str, timeout: float) -> str:
        messages = [
            {"role": "system", "content": self.system_prompt(persona)},
            {"role": "user", "content": prompt},
        ]
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                timeout=timeout,
            )
        except openai.APITimeoutError as e:
            raise InvocationTimeout(f"OpenAI request timed out: {e}", persona.id) from e
        except (openai.RateLimitError, openai.APIConnectionError, openai.InternalServerError) as e:
            raise TransientUpstreamError(f"OpenAI transient error: {e}", persona.id) from e
        except openai.APIError as e:
            raise UpstreamError(f"OpenAI error: {e}", persona.id) from e

        text = response.choices[0].message.content or ""
        if not text.strip():
            raise UpstreamError("OpenAI returned an empty completion", persona.id)
        return text.strip()

    async def aclose(self):
        await self.client.close()
