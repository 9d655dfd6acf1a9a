from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, ValidationError

from .constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_LOGIN_URL,
    DEFAULT_REFRESH_URL,
    DEFAULT_TIMEOUT,
    ENV_FILE,
    LOGGER,
)


@dataclass(frozen=True)
class Settings:
    base_url: str
    refresh_url: str
    timeout: float
    login_url: str
    token_store_path: str | None
    debug: bool


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number.")


def _validate_http_url(key: str, value: str) -> str:
    try:
        AnyHttpUrl(value)
    except ValidationError as error:
        raise RuntimeError(
            f"{key} must be a valid http(s) URL (got {value!r})."
        ) from error
    return value


def load_env() -> None:
    if not ENV_FILE.exists():
        return
    load_dotenv(ENV_FILE, override=True)


def validate_env() -> None:
    _validate_http_url(
        "RECIPE_API_BASE_URL",
        os.getenv("RECIPE_API_BASE_URL", DEFAULT_API_BASE_URL).strip(),
    )
    _validate_http_url(
        "RECIPE_AUTH_REFRESH_URL",
        os.getenv("RECIPE_AUTH_REFRESH_URL", DEFAULT_REFRESH_URL).strip(),
    )

    timeout = _get_env_float("RECIPE_API_TIMEOUT", DEFAULT_TIMEOUT)
    if timeout <= 0:
        raise RuntimeError("RECIPE_API_TIMEOUT must be greater than zero.")

    login_url = os.getenv("RECIPE_LOGIN_URL", DEFAULT_LOGIN_URL).strip()
    if not login_url:
        raise RuntimeError("RECIPE_LOGIN_URL must not be empty.")


def load_settings() -> Settings:
    validate_env()
    store_path = os.getenv("RECIPE_TOKEN_STORE_PATH", "").strip()
    return Settings(
        base_url=os.getenv("RECIPE_API_BASE_URL", DEFAULT_API_BASE_URL).strip(),
        refresh_url=os.getenv("RECIPE_AUTH_REFRESH_URL", DEFAULT_REFRESH_URL).strip(),
        timeout=_get_env_float("RECIPE_API_TIMEOUT", DEFAULT_TIMEOUT),
        login_url=os.getenv("RECIPE_LOGIN_URL", DEFAULT_LOGIN_URL).strip(),
        token_store_path=store_path or None,
        debug=is_truthy(os.getenv("RECIPE_API_DEBUG", "1")),
    )


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("RECIPE_API_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
