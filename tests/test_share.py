"""Tests for snapshot stores and ShareService."""

import re

import pytest

from snippetbench.core.share import (
    SHARE_ID_LENGTH,
    InMemoryStore,
    InvalidExpiryError,
    JsonFileStore,
    ShareService,
    generate_share_id,
)
from snippetbench.core.workspace import Workspace
from snippetbench.schemas import EXPIRY_OPTIONS


class Clock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def service(clock) -> ShareService:
    return ShareService(InMemoryStore(clock), base_url="https://bench.example/", key_prefix="test:share:")


def test_share_ids_are_url_safe():
    share_id = generate_share_id()
    assert len(share_id) == SHARE_ID_LENGTH
    assert re.fullmatch(r"[A-Za-z0-9_-]+", share_id)


def test_create_and_get(service):
    snapshot = Workspace().to_snapshot(title="loop vs sum")

    stored = service.create(snapshot, "7d")
    loaded = service.get(stored.id)

    assert loaded == stored
    assert loaded.title == "loop vs sum"
    assert loaded.expiry_option == "7d"
    assert service.url_for(stored.id) == f"https://bench.example/share/{stored.id}"
    assert service.key_for(stored.id) == f"test:share:{stored.id}"


def test_default_expiry_is_used(service):
    stored = service.create(Workspace().to_snapshot())
    assert stored.expiry_option == "30d"


def test_unknown_expiry_is_rejected(service):
    with pytest.raises(InvalidExpiryError):
        service.create(Workspace().to_snapshot(), "1y")


def test_expired_snapshot_is_gone(service, clock):
    stored = service.create(Workspace().to_snapshot(), "7d")

    clock.now += EXPIRY_OPTIONS["7d"] - 1
    assert service.get(stored.id) is not None

    clock.now += 1
    assert service.get(stored.id) is None


def test_missing_snapshot(service):
    assert service.get("nope") is None


class TestJsonFileStore:
    def test_round_trip_and_expiry(self, tmp_path, clock):
        store = JsonFileStore(tmp_path / "shares", clock)

        store.set_with_expiry("snippetbench:share:abc", 10, '{"x": 1}')

        assert store.get("snippetbench:share:abc") == '{"x": 1}'
        clock.now += 10
        assert store.get("snippetbench:share:abc") is None
        assert list((tmp_path / "shares").glob("*.json")) == []

    def test_purge_expired(self, tmp_path, clock):
        store = JsonFileStore(tmp_path, clock)
        store.set_with_expiry("old", 1, "a")
        store.set_with_expiry("fresh", 100, "b")

        clock.now += 5

        assert store.purge_expired() == 1
        assert store.get("fresh") == "b"

    def test_service_from_settings_uses_shares_dir(self, fast_settings):
        service = ShareService.from_settings(fast_settings)
        stored = service.create(Workspace().to_snapshot())

        assert service.get(stored.id) == stored
        assert any(fast_settings.get_shares_path().glob("*.json"))
