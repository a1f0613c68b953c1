"""Settings loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATA_DIR = "~/.code-advisor"
DEFAULT_TIMEOUT = 60  # seconds per chat completion
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000

DEEPSEEK_BASE_URL = "https://api.deepseek.com"
DEEPSEEK_MODEL = "deepseek-chat"
OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENAI_MODEL = "gpt-4o-mini"
AZURE_OPENAI_API_VERSION = "2024-06-01"
ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1"
ANTHROPIC_MODEL = "claude-3-5-sonnet-20241022"
ANTHROPIC_MAX_TOKENS = 4000


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_int(name: str, default: int, low: int, high: int) -> int:
    try:
        value = int(_env(name) or default)
    except ValueError:
        value = default
    return max(low, min(high, value))


def _env_float(name: str, default: float, low: float, high: float) -> float:
    try:
        value = float(_env(name) or default)
    except ValueError:
        value = default
    return max(low, min(high, value))


@dataclass
class Settings:
    database_url: str
    data_dir: Path
    timeout_seconds: int = DEFAULT_TIMEOUT
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    deepseek_api_key: str = ""
    openai_api_key: str = ""
    azure_api_key: str = ""
    azure_endpoint: str = ""
    azure_deployment: str = ""
    azure_api_version: str = AZURE_OPENAI_API_VERSION
    anthropic_api_key: str = ""


def load_settings() -> Settings:
    data_dir = Path(_env("CODE_ADVISOR_DATA_DIR", DEFAULT_DATA_DIR)).expanduser().resolve()
    database_url = _env("CODE_ADVISOR_DATABASE_URL") or f"sqlite:///{data_dir / 'code_advisor.db'}"
    return Settings(
        database_url=database_url,
        data_dir=data_dir,
        timeout_seconds=_env_int("CODE_ADVISOR_TIMEOUT_SECONDS", DEFAULT_TIMEOUT, 1, 600),
        temperature=_env_float("CODE_ADVISOR_TEMPERATURE", DEFAULT_TEMPERATURE, 0.0, 2.0),
        max_tokens=_env_int("CODE_ADVISOR_MAX_TOKENS", DEFAULT_MAX_TOKENS, 1, 8192),
        deepseek_api_key=_env("DEEPSEEK_API_KEY"),
        openai_api_key=_env("OPENAI_API_KEY"),
        azure_api_key=_env("AZURE_OPENAI_API_KEY"),
        azure_endpoint=_env("AZURE_OPENAI_ENDPOINT").rstrip("/"),
        azure_deployment=_env("AZURE_OPENAI_DEPLOYMENT"),
        azure_api_version=_env("AZURE_OPENAI_API_VERSION", AZURE_OPENAI_API_VERSION),
        anthropic_api_key=_env("ANTHROPIC_API_KEY"),
    )
