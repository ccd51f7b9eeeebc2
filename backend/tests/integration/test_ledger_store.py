"""
Integration Test: Ledger Store

Tests the YAML-backed store against the real filesystem.

Test cases:
- Empty and missing ledgers
- Round trip of polls, stakes, and users
- Transactions roll back on failure
- Concurrent stakes and finalizations serialize under the store lock
- Separate store instances on one file exclude each other
"""

import threading

import pytest
import yaml

from geopoll.config import PollsConfig, Settings
from geopoll.exceptions import GeoPollError
from geopoll.services import create_poll, finalize_poll, get_poll, place_stake
from geopoll.settlement import InvalidStateError
from geopoll.storage import LedgerState, LedgerStore

NOW = 1_700_000_000


def test_missing_ledger_loads_empty(tmp_path):
    store = LedgerStore(tmp_path / "nope" / "ledger.yaml")

    state = store.load()

    assert state == LedgerState()


def test_empty_file_loads_empty(store):
    store.path.write_text("")

    assert store.load().polls == []


def test_corrupted_yaml_raises(store):
    store.path.write_text("polls: [unclosed\n")

    with pytest.raises(yaml.YAMLError):
        store.load()


def test_round_trip(store, settings, make_draft):
    create_poll(store, make_draft(), settings)
    place_stake(store, "0xcreator", 0, "0xa", 1, 123, "0xstake", now=NOW, settings=settings)

    reloaded = LedgerStore(store.path).load()

    assert reloaded.last_updated is not None
    [poll] = reloaded.polls
    assert poll.title == "Will it rain in Lisbon on Saturday?"
    assert poll.total_option1_stake == 123
    [stake] = reloaded.stakes
    assert (stake.voter, stake.option, stake.amount) == ("0xa", 1, 123)
    assert stake.staked_at.tzinfo is not None


def test_failed_transaction_writes_nothing(store, settings, make_draft):
    create_poll(store, make_draft(), settings)
    before = store.path.read_text()

    with pytest.raises(RuntimeError):
        with store.transaction() as state:
            state.polls.clear()
            raise RuntimeError("boom")

    assert store.path.read_text() == before


def test_no_temp_files_left_behind(store, settings, make_draft):
    for _ in range(3):
        create_poll(store, make_draft(), settings)

    assert sorted(p.name for p in store.path.parent.iterdir()) == [
        "ledger.yaml",
        "ledger.yaml.lock",
    ]


def test_concurrent_stakes_all_recorded(store, settings, make_draft):
    create_poll(store, make_draft(), settings)
    errors: list[Exception] = []

    def stake(i: int) -> None:
        try:
            place_stake(
                store, "0xcreator", 0, f"0x{i:02d}", 1 + i % 2, 10, now=NOW, settings=settings
            )
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=stake, args=(i,)) for i in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    poll = get_poll(store, "0xcreator", 0)
    assert poll.total_option1_stake == 80
    assert poll.total_option2_stake == 80
    assert len(store.load().stakes) == 16


def test_concurrent_finalize_succeeds_once(store, tmp_path, make_draft):
    settings = Settings(data_dir=tmp_path, polls=PollsConfig(allow_early_finalize=True))
    create_poll(store, make_draft(), settings)
    outcomes: list[object] = []
    lock = threading.Lock()

    def finalize(option: int) -> None:
        try:
            finalize_poll(store, "0xcreator", 0, option, caller="0xcreator", now=NOW, settings=settings)
            result: object = option
        except GeoPollError as e:
            result = e
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=finalize, args=(1 + i % 2,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    winners = [o for o in outcomes if isinstance(o, int)]
    assert len(winners) == 1
    assert all(isinstance(o, InvalidStateError) for o in outcomes if not isinstance(o, int))
    assert get_poll(store, "0xcreator", 0).winning_option == winners[0]


def test_transactions_exclude_across_store_instances(tmp_path, monkeypatch, make_draft):
    settings = Settings(data_dir=tmp_path, polls=PollsConfig(allow_early_finalize=True))
    store_a = LedgerStore(settings.ledger_path)
    store_b = LedgerStore(settings.ledger_path)
    create_poll(store_a, make_draft(), settings)

    loaded = threading.Event()
    release = threading.Event()
    real_load = store_a.load

    def slow_load() -> LedgerState:
        state = real_load()
        loaded.set()
        release.wait(5)
        return state

    monkeypatch.setattr(store_a, "load", slow_load)
    errors: list[Exception] = []

    def stake() -> None:
        try:
            place_stake(store_a, "0xcreator", 0, "0xvoter", 1, 100, now=NOW, settings=settings)
        except Exception as e:
            errors.append(e)

    def finalize() -> None:
        try:
            finalize_poll(store_b, "0xcreator", 0, 2, caller="0xcreator", now=NOW, settings=settings)
        except Exception as e:
            errors.append(e)

    staker = threading.Thread(target=stake)
    staker.start()
    assert loaded.wait(5)

    finalizer = threading.Thread(target=finalize)
    finalizer.start()
    finalizer.join(0.2)
    assert finalizer.is_alive()

    release.set()
    staker.join(5)
    finalizer.join(5)

    assert errors == []
    state = LedgerStore(settings.ledger_path).load()
    assert state.polls[0].is_finalized
    assert state.polls[0].winning_option == 2
    assert [s.voter for s in state.stakes] == ["0xvoter"]
    assert state.polls[0].total_option1_stake == 100
