"""
FastAPI dependencies.

Clients are created once per process on first use and handed to endpoints
through ``Depends``. Tests replace them via ``app.dependency_overrides``.
"""

import hmac
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, Header, Request

from grantbridge.api.limits import Cooldown, WindowLimiter
from grantbridge.config import Settings, load_settings
from grantbridge.core.errors import RateLimitedError, UnauthorizedError
from grantbridge.llm.client import SonarClient
from grantbridge.mail import ContactMailer
from grantbridge.pipeline.sync import GrantSyncService
from grantbridge.storage.cache_store import PostgresCacheStore
from grantbridge.storage.explanation_cache import ExplanationCache


logger = logging.getLogger(__name__)

# Lazily created process-wide instances
_instances: Dict[str, Any] = {}


@lru_cache()
def get_settings() -> Settings:
    return load_settings()


def get_llm_client(settings: Settings = Depends(get_settings)) -> SonarClient:
    client = _instances.get("llm_client")
    if client is None:
        client = SonarClient(
            api_key=settings.sonar_api_key,
            base_url=settings.sonar_base_url,
            timeout=settings.sonar_timeout,
        )
        _instances["llm_client"] = client
    return client


def get_cache_store(settings: Settings = Depends(get_settings)) -> PostgresCacheStore:
    store = _instances.get("cache_store")
    if store is None:
        store = PostgresCacheStore(database_url=settings.database_url)
        _instances["cache_store"] = store
    return store


def get_sync_service(
    client=Depends(get_llm_client),
    store=Depends(get_cache_store),
) -> GrantSyncService:
    service = _instances.get("sync_service")
    if service is None or service.client is not client or service.store is not store:
        service = GrantSyncService(client, store)
        _instances["sync_service"] = service
    return service


def get_sync_cooldown(settings: Settings = Depends(get_settings)) -> Cooldown:
    cooldown = _instances.get("sync_cooldown")
    if cooldown is None:
        cooldown = Cooldown(settings.sync_cooldown_seconds)
        _instances["sync_cooldown"] = cooldown
    return cooldown


def get_api_limiter(settings: Settings = Depends(get_settings)) -> WindowLimiter:
    limiter = _instances.get("api_limiter")
    if limiter is None:
        limiter = WindowLimiter(settings.api_rate_limit, settings.api_rate_window_seconds)
        _instances["api_limiter"] = limiter
    return limiter


def get_search_limiter(settings: Settings = Depends(get_settings)) -> WindowLimiter:
    limiter = _instances.get("search_limiter")
    if limiter is None:
        limiter = WindowLimiter(settings.search_rate_limit, settings.search_rate_window_seconds)
        _instances["search_limiter"] = limiter
    return limiter


def _cache(name: str) -> ExplanationCache:
    cache = _instances.get(name)
    if cache is None:
        cache = ExplanationCache(name)
        _instances[name] = cache
    return cache


def get_description_cache() -> ExplanationCache:
    return _cache("requirement_descriptions")


def get_explanation_cache() -> ExplanationCache:
    return _cache("grant_explanations")


def get_mailer(settings: Settings = Depends(get_settings)) -> ContactMailer:
    return ContactMailer(settings)


def require_admin(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Check the admin bearer token.

    Without ADMIN_SECRET the check is skipped with a warning.

    Raises:
        UnauthorizedError: If the header does not match
    """
    if not settings.admin_secret:
        logger.warning("ADMIN_SECRET not configured - admin endpoints are unprotected!")
        return

    expected = f"Bearer {settings.admin_secret}"
    if not authorization or not hmac.compare_digest(
        authorization.encode("utf-8", "surrogateescape"),
        expected.encode("utf-8", "surrogateescape"),
    ):
        logger.warning("Unauthorized admin access attempt")
        raise UnauthorizedError("Unauthorized - Invalid admin credentials")


def client_key(request: Request) -> str:
    """Rate limit key: the peer address of the request."""
    return request.client.host if request.client else "unknown"


def limit_api(request: Request, limiter: WindowLimiter = Depends(get_api_limiter)) -> None:
    """
    Raises:
        RateLimitedError: If the client exceeded the general API limit
    """
    if not limiter.hit(client_key(request)):
        logger.warning(f"API rate limit hit by {client_key(request)}")
        raise RateLimitedError("Too many requests from this IP, please try again later.")


def limit_live_search(
    request: Request,
    limiter: WindowLimiter = Depends(get_search_limiter),
) -> None:
    """
    Raises:
        RateLimitedError: If the client exceeded the live search limit
    """
    if not limiter.hit(client_key(request)):
        logger.warning(f"Live search rate limit hit by {client_key(request)}")
        raise RateLimitedError("Grant search limit reached. Please try again in an hour.")


def close_instances() -> None:
    """Release pooled resources held by the process-wide instances."""
    store = _instances.pop("cache_store", None)
    if store is not None:
        store.close()
    _instances.clear()
