import json

import pytest

from grantbridge.core.errors import GrantBridgeError
from grantbridge.scripts import sync_grants as script

from fakes import FakeSonarClient, InMemoryCacheStore, grants_reply


@pytest.fixture
def patched(monkeypatch):
    client = FakeSonarClient([grants_reply(6)])
    store = InMemoryCacheStore()
    store.schema_created = False

    def init_schema():
        store.schema_created = True

    store.init_schema = init_schema
    monkeypatch.setattr(script, "SonarClient", lambda **kwargs: client)
    monkeypatch.setattr(script, "PostgresCacheStore", lambda **kwargs: store)
    return client, store


def write_row(tmp_path, **row):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps(row), encoding="utf-8")
    return str(path)


def test_load_profile_from_row(tmp_path):
    path = write_row(
        tmp_path,
        age="19",
        country="Canada",
        school_status="Undergraduate",
        field_of_study="Nursing",
        identifiers=["First-Gen"],
    )

    profile = script.load_profile(path)

    assert profile.age == 19
    assert profile.education == "Undergraduate"
    assert profile.identifiers == ["First-Gen"]


def test_load_profile_rejects_incomplete_row(tmp_path):
    path = write_row(tmp_path, country="Canada", school_status="", field_of_study="Nursing")
    with pytest.raises(GrantBridgeError):
        script.load_profile(path)


def test_main_syncs_and_creates_schema(patched):
    client, store = patched

    assert script.main(["--init-schema"]) == 0
    assert store.schema_created is True
    assert len(store.rows) == 5


def test_main_dry_run_writes_nothing(patched, capsys):
    client, store = patched

    assert script.main(["--dry-run"]) == 0
    assert store.rows == []
    assert len(capsys.readouterr().out.strip().splitlines()) == 5


def test_main_reports_failure(patched):
    client, store = patched
    client.replies = ["not json"]

    assert script.main([]) == 1


def test_main_with_custom_profile(patched, tmp_path):
    client, store = patched
    path = write_row(tmp_path, country="Kenya", school_status="Graduate", field_of_study="Public Health")

    assert script.main(["--profile", path]) == 0
    assert "Public Health" in client.calls[0]["messages"][1]["content"]
