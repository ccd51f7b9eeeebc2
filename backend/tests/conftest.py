"""Shared fixtures: an isolated ledger and settings per test."""

import pytest

from geopoll.config import Settings, get_settings
from geopoll.services import PollDraft
from geopoll.storage import LedgerStore

NOW = 1_700_000_000
HOUR = 3600


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path)


@pytest.fixture
def store(tmp_path):
    return LedgerStore(tmp_path / "ledger.yaml")


@pytest.fixture
def make_draft():
    def _make(creator: str = "0xcreator", **overrides) -> PollDraft:
        fields = {
            "title": "Will it rain in Lisbon on Saturday?",
            "option1": "Yes",
            "option2": "No",
            "latitude": 38.7223,
            "longitude": -9.1393,
            "poll_time": NOW,
            "expiry_time": NOW + HOUR,
            "creator": creator,
            "transaction_hash": "0xtx",
        }
        fields.update(overrides)
        return PollDraft(**fields)

    return _make


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Point the cached get_settings() at a temp data dir."""
    monkeypatch.setenv("GEOPOLL_DATA_DIR", str(tmp_path))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
