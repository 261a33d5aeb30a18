"""
Runtime configuration for the GrantBridge API and sync job.

Values come from the process environment, optionally seeded from a local
``.env`` file via python-dotenv.

Environment:
    SONAR_API_KEY          Bearer token for the Sonar completions API
    SONAR_BASE_URL         Completions API base URL
    SONAR_TIMEOUT          Request timeout in seconds
    DATABASE_URL           Postgres DSN of the Supabase database
                           (SUPABASE_DB_URL is accepted as a fallback)
    PORT                   API port
    ADMIN_SECRET           Bearer token guarding /api/sync-grants
    SYNC_COOLDOWN_SECONDS  Minimum gap between manual syncs
    API_RATE_LIMIT, API_RATE_WINDOW_SECONDS
                           Per-client requests per window on /api/*
    SEARCH_RATE_LIMIT, SEARCH_RATE_WINDOW_SECONDS
                           Per-client live searches per window
    CACHE_MAX_AGE_DAYS     Age after which the grants cache is stale
    FRONTEND_URL           Comma-separated CORS origins
    CORS_ALLOW_ALL         Reflect any origin (debugging only)
    APP_ENV                "development" adds localhost CORS origins
    SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS, SUPPORT_EMAIL
    LOG_LEVEL
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from grantbridge.core.errors import ConfigurationError


DEFAULT_SONAR_BASE_URL = "https://api.perplexity.ai"

PRODUCTION_ORIGINS = (
    "https://grantbridge.online",
    "https://www.grantbridge.online",
)

DEVELOPMENT_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:5174",
    "http://localhost:3000",
)


@dataclass(frozen=True)
class Settings:
    """Immutable settings snapshot."""

    sonar_api_key: Optional[str] = None
    sonar_base_url: str = DEFAULT_SONAR_BASE_URL
    sonar_timeout: float = 60.0
    database_url: Optional[str] = None
    port: int = 5000
    admin_secret: Optional[str] = None
    sync_cooldown_seconds: int = 3600
    api_rate_limit: int = 100
    api_rate_window_seconds: int = 900
    search_rate_limit: int = 25
    search_rate_window_seconds: int = 3600
    cache_max_age_days: int = 7
    frontend_urls: Tuple[str, ...] = ()
    cors_allow_all: bool = False
    app_env: str = "production"
    smtp_host: str = "smtp.hostinger.com"
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    support_email: str = "support@grantbridge.online"
    log_level: str = "INFO"

    @property
    def allowed_origins(self) -> Tuple[str, ...]:
        origins = list(self.frontend_urls) + list(PRODUCTION_ORIGINS)
        if self.app_env == "development":
            origins.extend(DEVELOPMENT_ORIGINS)
        # Preserve order, drop duplicates
        return tuple(dict.fromkeys(origins))


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}")


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}")


def _bool(env: Mapping[str, str], key: str) -> bool:
    return env.get(key, "").strip().lower() in ("1", "true", "yes", "on")


def _optional(env: Mapping[str, str], key: str) -> Optional[str]:
    value = env.get(key)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from an environment mapping.

    Args:
        env: Mapping to read from. Defaults to ``os.environ`` after
             loading ``.env``.

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed
    """
    if env is None:
        load_dotenv()
        env = os.environ

    frontend_urls = tuple(
        url.strip() for url in env.get("FRONTEND_URL", "").split(",") if url.strip()
    )

    return Settings(
        sonar_api_key=_optional(env, "SONAR_API_KEY"),
        sonar_base_url=_optional(env, "SONAR_BASE_URL") or DEFAULT_SONAR_BASE_URL,
        sonar_timeout=_float(env, "SONAR_TIMEOUT", 60.0),
        database_url=_optional(env, "DATABASE_URL") or _optional(env, "SUPABASE_DB_URL"),
        port=_int(env, "PORT", 5000),
        admin_secret=_optional(env, "ADMIN_SECRET"),
        sync_cooldown_seconds=_int(env, "SYNC_COOLDOWN_SECONDS", 3600),
        api_rate_limit=_int(env, "API_RATE_LIMIT", 100),
        api_rate_window_seconds=_int(env, "API_RATE_WINDOW_SECONDS", 900),
        search_rate_limit=_int(env, "SEARCH_RATE_LIMIT", 25),
        search_rate_window_seconds=_int(env, "SEARCH_RATE_WINDOW_SECONDS", 3600),
        cache_max_age_days=_int(env, "CACHE_MAX_AGE_DAYS", 7),
        frontend_urls=frontend_urls,
        cors_allow_all=_bool(env, "CORS_ALLOW_ALL"),
        app_env=(_optional(env, "APP_ENV") or "production").lower(),
        smtp_host=_optional(env, "SMTP_HOST") or "smtp.hostinger.com",
        smtp_port=_int(env, "SMTP_PORT", 587),
        smtp_user=_optional(env, "SMTP_USER"),
        smtp_pass=_optional(env, "SMTP_PASS"),
        support_email=_optional(env, "SUPPORT_EMAIL") or "support@grantbridge.online",
        log_level=(_optional(env, "LOG_LEVEL") or "INFO").upper(),
    )
