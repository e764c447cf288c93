from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "").lower()
    if not raw:
        return default
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    frontend_url: str
    jwt_issuer: str
    jwt_audience: str
    jwt_public_key_path: str | None
    seed_demo_data: bool

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    jwt_public_key_path = _getenv("JWT_PUBLIC_KEY_PATH", "") or None
    if app_env_raw == "prod" and jwt_public_key_path is None:
        # The ephemeral key pair only works when this process also mints tokens.
        raise ValueError("JWT_PUBLIC_KEY_PATH is required when APP_ENV=prod")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", False),
        port=port,
        frontend_url=_getenv("FRONTEND_URL", "http://localhost:3000"),
        jwt_issuer=_getenv("JWT_ISSUER", "education-portal"),
        jwt_audience=_getenv("JWT_AUDIENCE", "education-portal"),
        jwt_public_key_path=jwt_public_key_path,
        seed_demo_data=_getbool("SEED_DEMO_DATA", app_env_raw == "dev"),
    )


SETTINGS = load_settings()
