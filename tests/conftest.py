import pytest

from fakes import FakeSonarClient, InMemoryCacheStore


@pytest.fixture
def sonar():
    return FakeSonarClient()


@pytest.fixture
def store():
    return InMemoryCacheStore()
