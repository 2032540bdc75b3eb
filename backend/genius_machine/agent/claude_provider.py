"""Claude provider implementation"""

import logging
from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

from .base import BasePerspectiveProvider
from ..config import Config
from ..engine.errors import InvocationTimeout, TransientUpstreamError, UpstreamError
from ..engine.models import Archetype

logger = logging.getLogger(__name__)


class ClaudeProvider(BasePerspectiveProvider):
    """Provider using the Anthropic messages API"""

    name = "claude"

    def __init__(self, config: Optional[Config] = None, model: Optional[str] = None):
        """
        Initialize Claude provider.

        Args:
            config: Optional configuration object
            model: Claude model identifier overriding the configured one
        """
        super().__init__(config)

        # Get API key
        api_key = self.config.get_api_key("claude")
        if not api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY not found in environment variables"
            )

        settings = self.config.model.claude
        self.client = AsyncAnthropic(api_key=api_key, max_retries=0)
        self.model = model or settings.model
        self.max_tokens = settings.max_tokens
        self.temperature = settings.temperature

        logger.info(f"Initialized ClaudeProvider with model: {self.model}")

    async def generate(self, persona: Archetype, prompt: str, timeout: float) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                system=self.system_prompt(persona),
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=min(self.temperature, 1.0),
                timeout=timeout,
            )
        except anthropic.APITimeoutError as e:
            raise InvocationTimeout(f"Claude request timed out: {e}", persona.id) from e
        except (anthropic.RateLimitError, anthropic.APIConnectionError, anthropic.InternalServerError) as e:
            raise TransientUpstreamError(f"Claude transient error: {e}", persona.id) from e
        except anthropic.APIStatusError as e:
            # 529 overloaded is not an InternalServerError subclass
            if e.status_code >= 500:
                raise TransientUpstreamError(f"Claude transient error: {e}", persona.id) from e
            raise UpstreamError(f"Claude error: {e}", persona.id) from e
        except anthropic.APIError as e:
            raise UpstreamError(f"Claude error: {e}", persona.id) from e

        text = "".join(block.text for block in response.content if block.type == "text")
        if not text.strip():
            raise UpstreamError("Claude returned no text", persona.id)
        return text.strip()

    async def aclose(self):
        await self.client.close()
