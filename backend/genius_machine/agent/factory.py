"""Provider factory for creating model-specific providers"""

import logging
from typing import Optional

from .base import BasePerspectiveProvider
from .claude_provider import ClaudeProvider
from .openai_provider import OpenAIProvider
from .simulated_provider import SimulatedProvider
from ..config import get_config, Config

logger = logging.getLogger(__name__)


class ProviderFactory:
    """Factory for creating the appropriate provider based on model selection"""

    @staticmethod
    def create(
        model_name: str,
        config: Optional[Config] = None,
    ) -> BasePerspectiveProvider:
        """
        Create a provider instance for the specified model.

        Args:
            model_name: Model identifier (e.g., "openai", "gpt-4o", "claude", "simulated")
            config: Optional configuration object

        Returns:
            Provider instance

        Raises:
            ValueError: If model_name is not supported or its API key is missing
        """
        if config is None:
            config = get_config()

        model_name_lower = model_name.lower()

        # OpenAI (gpt-4o, o-series, compatible endpoints)
        if "gpt" in model_name_lower or "openai" in model_name_lower:
            logger.info(f"Creating OpenAIProvider for model: {model_name}")
            return OpenAIProvider(
                config=config,
                model=model_name if model_name_lower.startswith("gpt") else None,
            )

        # Claude
        elif "claude" in model_name_lower:
            logger.info(f"Creating ClaudeProvider for model: {model_name}")
            return ClaudeProvider(
                config=config,
                model=model_name if model_name_lower.startswith("claude-") else None,
            )

        # Local simulation
        elif "simulated" in model_name_lower or "local" in model_name_lower:
            logger.info("Creating SimulatedProvider")
            return SimulatedProvider(config=config)

        else:
            raise ValueError(
                f"Unsupported model: {model_name}. "
                f"Supported models: openai/gpt-*, claude*, simulated"
            )

    @staticmethod
    def create_primary(config: Optional[Config] = None) -> BasePerspectiveProvider:
        """Create provider using the primary model, falling back when it cannot be built"""
        if config is None:
            config = get_config()

        try:
            return ProviderFactory.create(config.model.primary, config)
        except ValueError as e:
            logger.warning(f"Primary model unavailable ({e}); using fallback {config.model.fallback}")
            return ProviderFactory.create_fallback(config)

    @staticmethod
    def create_fallback(config: Optional[Config] = None) -> BasePerspectiveProvider:
        """Create provider using the fallback model"""
        if config is None:
            config = get_config()

        return ProviderFactory.create(config.model.fallback, config)
