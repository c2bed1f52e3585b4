"""Configuration loader — reads config.yaml, validates with Pydantic.

One file drives both sides: the server (LLM, rate limiting, profile data)
and the terminal client (base URL, single-flight policy, display theme).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PORTFOLIO_CONFIG"
DEFAULT_CONFIG_PATH = "config.yaml"


class LLMConfig(BaseModel):
    """Model settings for the pitch and assistant completions."""

    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 800
    temperature: float = 0.7

    @field_validator("temperature")
    @classmethod
    def temperature_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("temperature must be between 0 and 1")
        return v


class RateLimitConfig(BaseModel):
    """Fixed-window limit applied per client IP to every /api route."""

    enabled: bool = True
    max_requests: int = 20
    window_seconds: int = 15 * 60

    @field_validator("max_requests", "window_seconds")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("rate limit values must be positive")
        return v


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 5000


class ClientConfig(BaseModel):
    """Settings for the terminal pitch client."""

    base_url: str = "http://localhost:5000"
    timeout: float = 60.0
    single_flight: Literal["reject", "restart"] = "reject"


class DisplaySettings(BaseModel):
    theme: Literal["dark", "light"] = "dark"
    state_path: str | None = None  # where a toggled theme is remembered


class PortfolioConfig(BaseModel):
    """Top-level configuration."""

    profile_path: str = "portfolio.yaml"
    min_problem_length: int = 10
    max_history_turns: int = 10

    # Auth & CORS
    api_key: str | None = None
    allowed_origins: list[str] = ["*"]

    llm: LLMConfig = LLMConfig()
    rate_limit: RateLimitConfig = RateLimitConfig()
    server: ServerConfig = ServerConfig()
    client: ClientConfig = ClientConfig()
    display: DisplaySettings = DisplaySettings()

    @field_validator("min_problem_length")
    @classmethod
    def min_length_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("min_problem_length must be at least 1")
        return v


# ---------------------------------------------------------------------------
# Module-level config cache
# ---------------------------------------------------------------------------

_config: PortfolioConfig | None = None
_config_path: str = DEFAULT_CONFIG_PATH


def default_config_path() -> str:
    """Config path from the environment, falling back to ./config.yaml."""
    return os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)


def load_config(path: str | None = None) -> PortfolioConfig:
    """Read config.yaml from disk, validate, and cache.

    Relative paths inside the file (profile, display state) are resolved
    against the directory holding the config file.
    """
    global _config, _config_path
    path = path or default_config_path()
    _config_path = path

    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")

    raw = yaml.safe_load(config_file.read_text()) or {}
    config = PortfolioConfig(**raw)

    base_dir = config_file.resolve().parent
    if not Path(config.profile_path).is_absolute():
        config.profile_path = str(base_dir / config.profile_path)
    state_path = config.display.state_path
    if state_path and not Path(state_path).is_absolute():
        config.display.state_path = str(base_dir / state_path)

    _config = config
    logger.info(
        f"Loaded config: profile={config.profile_path}, "
        f"model={config.llm.model}, rate_limit={config.rate_limit.enabled}"
    )
    return _config


def get_config() -> PortfolioConfig:
    """Return cached config. Raises if not yet loaded."""
    if _config is None:
        raise RuntimeError("Config not loaded — call load_config() first")
    return _config


def reload_config() -> PortfolioConfig:
    """Re-read config from disk. Called by /reload endpoint."""
    logger.info(f"Reloading config from {_config_path}")
    return load_config(_config_path)
