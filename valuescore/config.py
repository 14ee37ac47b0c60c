"""
Configuration — Explicit Settings Passed Into the Pipeline

All settings are read from environment variables (a .env file is loaded by
the entrypoints) and frozen into an ExtractorConfig. The pipeline never reads
the environment itself, so tests can build a config by hand.
"""

import logging
import os
from dataclasses import dataclass, field

from valuescore.errors import ConfigurationError
from valuescore.prompts import DEFAULT_INSTRUCTIONS

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = "https://aq0id722fm7bd5xm.us-east-1.aws.endpoints.huggingface.cloud"
DEFAULT_DATABASE_URL = "sqlite:///data/extractions.db"
DEFAULT_MODEL_LABEL = "deepseek-hf-endpoint"


@dataclass(frozen=True)
class ExtractorConfig:
    """Settings for one extraction pipeline."""

    api_key: str | None = field(default=None, repr=False)
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    # Must stay below host_deadline so the handler always answers first
    inference_timeout: float = 25.0
    host_deadline: float = 30.0
    max_new_tokens: int = 800
    model_label: str = DEFAULT_MODEL_LABEL
    database_url: str = DEFAULT_DATABASE_URL
    instructions: str = field(default=DEFAULT_INSTRUCTIONS, repr=False)

    def __post_init__(self):
        if not self.endpoint_url:
            raise ConfigurationError("INFERENCE_ENDPOINT_URL must not be empty")
        if self.inference_timeout <= 0:
            raise ConfigurationError("INFERENCE_TIMEOUT must be positive")
        if self.inference_timeout >= self.host_deadline:
            raise ConfigurationError(
                f"INFERENCE_TIMEOUT ({self.inference_timeout}s) must be below "
                f"HOST_DEADLINE ({self.host_deadline}s)"
            )
        if self.max_new_tokens < 1:
            raise ConfigurationError("MAX_NEW_TOKENS must be at least 1")

    @classmethod
    def from_env(cls) -> "ExtractorConfig":
        """
        Build a config from environment variables.

        A missing HUGGINGFACE_API_KEY is allowed here; the pipeline rejects
        the request before any network call instead, so /health still works.
        """
        config = cls(
            api_key=os.environ.get("HUGGINGFACE_API_KEY") or None,
            endpoint_url=os.environ.get("INFERENCE_ENDPOINT_URL", DEFAULT_ENDPOINT_URL),
            inference_timeout=_env_number("INFERENCE_TIMEOUT", 25.0, float),
            host_deadline=_env_number("HOST_DEADLINE", 30.0, float),
            max_new_tokens=_env_number("MAX_NEW_TOKENS", 800, int),
            model_label=os.environ.get("MODEL_LABEL", DEFAULT_MODEL_LABEL),
            database_url=os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL),
        )
        logger.debug(
            "Loaded config (endpoint=%s, timeout=%.1fs, model=%s)",
            config.endpoint_url, config.inference_timeout, config.model_label,
        )
        return config


def _env_number(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
