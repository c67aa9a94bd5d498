"""Configuration management for telety.

Loads settings from an optional YAML configuration file with environment
variable overrides for sensitive values (the auth token). Supports .env
files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

from telety.constants import COMMENT_PREFIX, QUIT_TOKENS, TELETY

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/telety.yaml")


class PromptConfig(BaseModel):
    text: str = Field(default=TELETY, description="Prompt label shown before the marker")
    quit_tokens: list[str] = Field(default_factory=lambda: list(QUIT_TOKENS))
    comment_prefix: str = Field(default=COMMENT_PREFIX, min_length=1)


class ChannelConfig(BaseModel):
    heartbeat_interval: float = Field(default=30.0, gt=0, description="Server ping interval")
    heartbeat_grace: float = Field(default=2.0, ge=0)
    reconnect_delay: float = Field(default=2.0, gt=0)
    verify_tls: bool = Field(default=True)


class HttpConfig(BaseModel):
    timeout: float = Field(default=10.0, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for telety.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "TELETY_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # telety.io user auth token (TELETY_TOKEN)
    token: SecretStr = Field(default=SecretStr(""))

    # Configuration sections
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    channel: ChannelConfig = Field(default_factory=ChannelConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.debug("Config file %s not found, using defaults + env vars", path)

    # Init values outrank env sources in pydantic-settings, so fold the
    # env-provided values over the YAML data before constructing.
    overrides = Settings().model_dump(exclude_unset=True)
    return Settings(**_deep_merge(yaml_data, overrides))


def _deep_merge(base: dict, overrides: dict) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value
