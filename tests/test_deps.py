import pytest

from grantbridge.api import deps
from grantbridge.api.limits import Cooldown, WindowLimiter
from grantbridge.config import Settings
from grantbridge.core.errors import UnauthorizedError
from grantbridge.pipeline.sync import GrantSyncService

from fakes import FakeSonarClient, InMemoryCacheStore


@pytest.fixture(autouse=True)
def clean_instances():
    deps._instances.clear()
    yield
    deps._instances.clear()


def test_require_admin_accepts_matching_token():
    deps.require_admin("Bearer s3cret", Settings(admin_secret="s3cret"))


@pytest.mark.parametrize("header", [None, "", "s3cret", "Bearer wrong", "Bearer café"])
def test_require_admin_rejects(header):
    with pytest.raises(UnauthorizedError):
        deps.require_admin(header, Settings(admin_secret="s3cret"))


def test_require_admin_open_without_secret():
    deps.require_admin(None, Settings())


def test_clients_are_process_singletons():
    settings = Settings(sonar_api_key="k", database_url="postgresql://x")

    assert deps.get_llm_client(settings) is deps.get_llm_client(settings)
    assert deps.get_cache_store(settings) is deps.get_cache_store(settings)
    assert deps.get_description_cache() is deps.get_description_cache()
    assert deps.get_description_cache() is not deps.get_explanation_cache()


def test_sync_service_follows_its_collaborators():
    client, store = FakeSonarClient(), InMemoryCacheStore()

    service = deps.get_sync_service(client, store)
    assert isinstance(service, GrantSyncService)
    assert deps.get_sync_service(client, store) is service
    assert deps.get_sync_service(FakeSonarClient(), store) is not service


def test_cooldown_rejects_inside_window():
    now = [100.0]
    cooldown = Cooldown(3600, clock=lambda: now[0])

    assert cooldown.try_acquire() is True
    now[0] += 10
    assert cooldown.try_acquire() is False
    assert cooldown.remaining() == pytest.approx(3590)

    now[0] += 3600
    assert cooldown.try_acquire() is True


def test_require_admin_accepts_non_ascii_secret():
    deps.require_admin("Bearer clé", Settings(admin_secret="clé"))


def test_window_limiter_counts_per_key():
    now = [0.0]
    limiter = WindowLimiter(2, 60, clock=lambda: now[0])

    assert limiter.hit("1.2.3.4") is True
    assert limiter.hit("1.2.3.4") is True
    assert limiter.hit("1.2.3.4") is False
    assert limiter.hit("5.6.7.8") is True

    now[0] += 59
    assert limiter.hit("1.2.3.4") is False

    now[0] += 1
    assert limiter.hit("1.2.3.4") is True


def test_limiters_follow_settings():
    settings = Settings(search_rate_limit=3, search_rate_window_seconds=60)

    limiter = deps.get_search_limiter(settings)
    assert (limiter.max_requests, limiter.window_seconds) == (3, 60)
    assert deps.get_search_limiter(settings) is limiter
    assert deps.get_api_limiter(settings).max_requests == 100
