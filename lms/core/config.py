from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_DEV_JWT_SECRET = "dev-only-insecure-secret"


def _getenv(name: str, default: str) -> str:
    # Single entry point for env access; casting helpers below build on it
    return os.environ.get(name, default).strip()


def _getint(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    jwt_secret: str = _DEV_JWT_SECRET
    access_token_ttl_min: int = 60
    cache_ttl_seconds: int = 3600
    notification_dedup_ttl_seconds: int = 3600
    deadline_scan_interval_hours: int = 24
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str = "no-reply@lms.local"
    telegram_bot_token: str | None = None
    sms_api_key: str | None = None
    sms_api_url: str = "https://sms.ru/sms/send"
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_host)

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token)

    @property
    def sms_configured(self) -> bool:
        return bool(self.sms_api_key)


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    jwt_secret = _getenv("JWT_SECRET", "")
    if not jwt_secret:
        if app_env_raw == "prod":
            raise ValueError("JWT_SECRET is required when APP_ENV=prod")
        jwt_secret = _DEV_JWT_SECRET

    origins = tuple(
        o.strip()
        for o in _getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if o.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", False),
        port=_getint("PORT", 8000, minimum=1),
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        jwt_secret=jwt_secret,
        access_token_ttl_min=_getint("ACCESS_TOKEN_TTL_MIN", 60, minimum=1),
        cache_ttl_seconds=_getint("CACHE_TTL_SECONDS", 3600, minimum=1),
        notification_dedup_ttl_seconds=_getint(
            "NOTIFICATION_DEDUP_TTL_SECONDS", 3600, minimum=1
        ),
        deadline_scan_interval_hours=_getint(
            "DEADLINE_SCAN_INTERVAL_HOURS", 24, minimum=1
        ),
        smtp_host=_getenv("SMTP_HOST", "") or None,
        smtp_port=_getint("SMTP_PORT", 587, minimum=1),
        smtp_user=_getenv("SMTP_USER", "") or None,
        smtp_password=_getenv("SMTP_PASSWORD", "") or None,
        smtp_from=_getenv("SMTP_FROM", "no-reply@lms.local"),
        telegram_bot_token=_getenv("TELEGRAM_BOT_TOKEN", "") or None,
        sms_api_key=_getenv("SMS_API_KEY", "") or None,
        sms_api_url=_getenv("SMS_API_URL", "https://sms.ru/sms/send"),
        cors_origins=origins,
    )


SETTINGS = load_settings()
