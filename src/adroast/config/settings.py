"""Configuration management for adroast.

Loads settings from a YAML configuration file with environment variable
overrides for sensitive values (API keys). Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/adroast.yaml")


class CaptureConfig(BaseModel):
    source: Literal["webcam", "folder"] = Field(default="webcam")
    device_index: int = Field(default=0, description="OpenCV camera device index")
    folder: str | None = Field(default=None, description="Image folder for the folder source")
    resolution_width: int | None = Field(default=1280)
    resolution_height: int | None = Field(default=720)
    jpeg_quality: int = Field(default=80, ge=1, le=100)


class AnalyzerConfig(BaseModel):
    provider: Literal["openai", "anthropic", "proxy"] = Field(default="openai")
    model: str = Field(default="gpt-4o-mini")
    base_url: str | None = Field(default=None)
    proxy_url: str = Field(default="http://localhost:3001")
    max_tokens: int = Field(default=200, gt=0)
    temperature: float = Field(default=0.9, ge=0.0, le=2.0)
    image_detail: Literal["low", "high", "auto"] = Field(default="low")
    system_prompt_override: str | None = Field(default=None)


class LoopConfig(BaseModel):
    tick_interval: float = Field(default=4.0, gt=0)
    session_limit_seconds: float = Field(default=20 * 60, gt=0)
    segmentation: Literal["off", "signal", "brand_change"] = Field(default="off")
    context_max_chars: int = Field(default=400, gt=0)


class PresentationConfig(BaseModel):
    release_interval: float = Field(default=3.0, gt=0)
    sweep_interval: float = Field(default=1.0, gt=0)
    bubble_ttl: float = Field(default=16.0, gt=0)
    max_visible: int = Field(default=5, gt=0)


class ProxyConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001, ge=1, le=65535)
    upstream_url: str = Field(default="https://api.openai.com/v1/chat/completions")
    upstream_timeout: float = Field(default=30.0, gt=0)
    rate_limit_max: int = Field(default=400, gt=0)
    rate_limit_window: float = Field(default=60 * 60, gt=0)
    purge_interval: float = Field(default=10 * 60, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the adroast system.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "ADROAST_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # API Keys
    openai_api_key: SecretStr = Field(default=SecretStr(""))
    anthropic_api_key: SecretStr = Field(default=SecretStr(""))
    openrouter_api_key: SecretStr = Field(default=SecretStr(""))

    # Configuration sections
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    loop: LoopConfig = Field(default_factory=LoopConfig)
    presentation: PresentationConfig = Field(default_factory=PresentationConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
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
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


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


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    openai_key = os.environ.get("OPENAI_API_KEY", "")
    anthropic_key = os.environ.get("ANTHROPIC_API_KEY", "")
    or_key = os.environ.get("OPENROUTER_API_KEY", "")
    or_base_url = os.environ.get("OPENROUTER_BASE_URL", "")
    vision_model = os.environ.get("VISION_MODEL", "")

    if openai_key and not yaml_data.get("openai_api_key"):
        yaml_data["openai_api_key"] = openai_key
    if anthropic_key and not yaml_data.get("anthropic_api_key"):
        yaml_data["anthropic_api_key"] = anthropic_key
    if or_key:
        yaml_data["openrouter_api_key"] = or_key

    if "analyzer" not in yaml_data:
        yaml_data["analyzer"] = {}

    if or_base_url and not yaml_data["analyzer"].get("base_url"):
        yaml_data["analyzer"]["base_url"] = or_base_url

    if vision_model and not yaml_data["analyzer"].get("model"):
        yaml_data["analyzer"]["model"] = vision_model
