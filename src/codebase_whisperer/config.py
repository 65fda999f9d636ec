"""Runtime settings, read from the environment and an optional .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

DEFAULT_WATSONX_URL = "https://us-south.ml.cloud.ibm.com"
DEFAULT_MODEL_ID = "ibm/granite-3-8b-instruct"
DEFAULT_MAX_TOKENS = 8000
DEFAULT_TEMPERATURE = 0.2
DEFAULT_PORT = 3000
DEFAULT_MAX_FILE_BYTES = 1024 * 1024


class ConfigError(Exception):
    """An environment value could not be interpreted."""


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    project_id: str = ""
    watsonx_url: str = DEFAULT_WATSONX_URL
    model_id: str = DEFAULT_MODEL_ID
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    demo_mode: bool = False
    port: int = DEFAULT_PORT
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.project_id)

    @property
    def use_model(self) -> bool:
        """Real model calls need credentials and demo mode switched off."""
        return self.has_credentials and not self.demo_mode


def _as_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")


def _as_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")


def _as_bool(env: Mapping[str, str], key: str) -> bool:
    return env.get(key, "").strip().lower() in ("1", "true", "yes", "on")


def load_settings(env: Mapping[str, str] | None = None, dotenv: bool = True) -> Settings:
    """Build Settings from `env` (defaults to os.environ after loading .env)."""
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    return Settings(
        api_key=env.get("WATSONX_API_KEY", ""),
        project_id=env.get("WATSONX_PROJECT_ID", ""),
        watsonx_url=env.get("WATSONX_URL") or DEFAULT_WATSONX_URL,
        model_id=env.get("WATSONX_MODEL_ID") or DEFAULT_MODEL_ID,
        max_tokens=_as_int(env, "WATSONX_MAX_TOKENS", DEFAULT_MAX_TOKENS),
        temperature=_as_float(env, "WATSONX_TEMPERATURE", DEFAULT_TEMPERATURE),
        demo_mode=_as_bool(env, "DEMO_MODE"),
        port=_as_int(env, "PORT", DEFAULT_PORT),
        max_file_bytes=_as_int(env, "WHISPERER_MAX_FILE_BYTES", DEFAULT_MAX_FILE_BYTES),
    )
