"""Configuration management for Genius Machine"""

import os
from typing import Optional, List
from pathlib import Path
import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_CONFIG_PATH = str(Path(__file__).resolve().parent.parent / "config.yaml")


class EnvSettings(BaseSettings):
    """Process-level settings read from the environment"""
    model_config = SettingsConfigDict(env_prefix="GENIUS_", env_file=".env", extra="ignore")

    config_path: str = DEFAULT_CONFIG_PATH
    log_level: str = "INFO"


class ModelSpecificConfig(BaseModel):
    """Model-specific configuration"""
    api_key_env: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    max_tokens: int = 1024
    temperature: float = 0.9


class ModelConfig(BaseModel):
    """Model configuration"""
    primary: str = "simulated"
    fallback: str = "simulated"
    openai: ModelSpecificConfig = Field(
        default_factory=lambda: ModelSpecificConfig(api_key_env="OPENAI_API_KEY", model="gpt-4o-mini")
    )
    claude: ModelSpecificConfig = Field(
        default_factory=lambda: ModelSpecificConfig(
            api_key_env="ANTHROPIC_API_KEY", model="claude-sonnet-4-5"
        )
    )
    simulated: ModelSpecificConfig = Field(default_factory=ModelSpecificConfig)


class EngineConfig(BaseModel):
    """Scheduler and invoker budgets"""
    invocation_timeout_seconds: float = Field(default=60.0, gt=0)
    run_timeout_seconds: float = Field(default=600.0, gt=0)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)
    max_retries: int = Field(default=1, ge=0, le=3)
    early_termination_confidence: float = Field(default=80.0, ge=0, le=100)
    chunk_size: int = Field(default=2, ge=1)
    context_excerpt_chars: int = Field(default=240, ge=40)


class TensionDefaults(BaseModel):
    """Tension detection defaults"""
    contradiction_floor: float = Field(default=5.0, ge=0, le=10)
    contradiction_threshold: int = Field(default=5, ge=1, le=10)
    recursion_depth: int = Field(default=2, ge=1, le=10)
    archetype_overlap: int = Field(default=3, ge=1, le=5)


class LearningConfig(BaseModel):
    """Learning store configuration"""
    store_path: str = ""  # Empty keeps records in memory
    max_records: int = 10000
    min_samples: int = 3


class ArchetypeOverride(BaseModel):
    """Archetype override from the config file"""
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    language_style: Optional[str] = None
    imagination: Optional[float] = None
    skepticism: Optional[float] = None
    aggression: Optional[float] = None
    emotionality: Optional[float] = None
    constraint: Optional[str] = None
    active: Optional[bool] = None


class Config(BaseModel):
    """Main configuration"""
    model: ModelConfig = Field(default_factory=ModelConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    tension: TensionDefaults = Field(default_factory=TensionDefaults)
    learning: LearningConfig = Field(default_factory=LearningConfig)
    archetypes: List[ArchetypeOverride] = Field(default_factory=list)

    @classmethod
    def from_yaml(cls, config_path: str = DEFAULT_CONFIG_PATH) -> "Config":
        """Load configuration from YAML file"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def get_api_key(self, provider: str) -> Optional[str]:
        """Get API key for specific provider"""
        model_config = getattr(self.model, provider, None)
        if model_config and model_config.api_key_env:
            return os.getenv(model_config.api_key_env)
        return None

    def get_archetype_override(self, archetype_id: str) -> ArchetypeOverride:
        """
        Get an archetype override by ID.

        Args:
            archetype_id: Archetype identifier

        Returns:
            ArchetypeOverride for the requested archetype

        Raises:
            ValueError: If archetype_id has no override
        """
        for override in self.archetypes:
            if override.id == archetype_id:
                return override

        available = ", ".join(o.id for o in self.archetypes) or "none"
        raise ValueError(
            f"Archetype override '{archetype_id}' not found. Available overrides: {available}"
        )


# Global config instance
_config: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """Get or create global configuration instance"""
    global _config
    if _config is None:
        _config = Config.from_yaml(config_path or EnvSettings().config_path)
    return _config


def reload_config(config_path: Optional[str] = None) -> Config:
    """Reload configuration from file"""
    global _config
    _config = Config.from_yaml(config_path or EnvSettings().config_path)
    return _config

