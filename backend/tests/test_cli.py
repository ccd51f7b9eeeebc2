"""Tests for the geopoll command line."""

import json

import yaml

from geopoll.__main__ import main
from geopoll.config import get_settings


def _write_snapshot(path, **overrides):
    snapshot = {
        "option_labels": ["Rain", "Dry"],
        "is_finalized": True,
        "winning_option": 1,
        "stakes": [
            {"voter": "0xA", "option": 1, "amount": 100},
            {"voter": "0xB", "option": 1, "amount": 300},
            {"voter": "0xC", "option": 2, "amount": 200},
        ],
    }
    snapshot.update(overrides)
    path.write_text(yaml.safe_dump(snapshot))
    return path


def test_settle_snapshot_file(tmp_path, isolated_settings, capsys):
    path = _write_snapshot(tmp_path / "poll.yaml")

    assert main(["settle", "--file", str(path)]) == 0

    out = capsys.readouterr().out
    assert "Winning Option: 1 (Rain)" in out
    assert "Winners: 2" in out
    assert "0xB: staked 0.000003 APT -> reward 0.0000045 APT" in out
    assert "Retained: 0 APT" in out


def test_settle_json_snapshot(tmp_path, isolated_settings, capsys):
    path = tmp_path / "poll.json"
    path.write_text(
        json.dumps(
            {
                "is_finalized": True,
                "winning_option": 2,
                "stakes": [{"voter": "0xA", "option": 1, "amount": 500}],
            }
        )
    )

    assert main(["settle", "--file", str(path)]) == 0

    assert "creator retains the pool" in capsys.readouterr().out


def test_settle_unfinalized_snapshot_fails(tmp_path, isolated_settings, capsys):
    path = _write_snapshot(tmp_path / "poll.yaml", is_finalized=False, winning_option=None)

    assert main(["settle", "--file", str(path)]) == 1
    assert "poll not finalized" in capsys.readouterr().out


def test_preview_both_outcomes(tmp_path, isolated_settings, capsys):
    path = _write_snapshot(tmp_path / "poll.yaml", is_finalized=False, winning_option=None)

    assert main(["preview", "--file", str(path)]) == 0

    out = capsys.readouterr().out
    assert "Winning Option: 1 (Rain)" in out
    assert "Winning Option: 2 (Dry)" in out


def test_stored_poll_flow(isolated_settings, monkeypatch, capsys):
    monkeypatch.setenv("GEOPOLL_POLLS__ALLOW_EARLY_FINALIZE", "true")
    get_settings.cache_clear()

    assert main(["init"]) == 0
    assert main([
        "create-poll", "--creator", "0xhost", "--title", "Snow in Denver?",
        "--option1", "Snow", "--option2", "No snow",
        "--lat", "39.74", "--lon", "-104.99", "--tx-hash", "0xtx",
    ]) == 0
    assert main([
        "stake", "--creator", "0xhost", "--index", "0",
        "--voter", "0xv1", "--option", "1", "--amount", "1.5",
    ]) == 0
    assert main([
        "stake", "--creator", "0xhost", "--index", "0",
        "--voter", "0xv2", "--option", "2", "--amount", "0.5",
    ]) == 0
    assert main([
        "finalize", "--creator", "0xhost", "--index", "0",
        "--winner", "1", "--caller", "0xintruder",
    ]) == 1
    assert main([
        "finalize", "--creator", "0xhost", "--index", "0",
        "--winner", "1", "--caller", "0xhost",
    ]) == 0
    capsys.readouterr()

    assert main(["portfolio", "--address", "0xv1"]) == 0
    out = capsys.readouterr().out
    assert "[won] reward 2 APT" in out
    assert "Total Rewards: 2 APT" in out

    assert main(["settle", "--creator", "0xhost", "--index", "0"]) == 0
    assert "0xv1: staked 1.5 APT -> reward 2 APT" in capsys.readouterr().out


def test_stake_with_too_many_decimals_fails(isolated_settings, capsys):
    assert main(["init"]) == 0
    assert main([
        "stake", "--creator", "0xhost", "--index", "0",
        "--voter", "0xv1", "--option", "1", "--amount", "0.000000001",
    ]) == 1


def test_settle_non_mapping_snapshot_fails(tmp_path, isolated_settings, capsys):
    path = tmp_path / "poll.json"
    path.write_text(json.dumps([1, 2]))

    assert main(["settle", "--file", str(path)]) == 1
    assert "❌ Settlement failed" in capsys.readouterr().out


def test_preview_inconsistent_snapshot_fails(tmp_path, isolated_settings, capsys):
    path = _write_snapshot(tmp_path / "poll.yaml", is_finalized=False, winning_option=1)

    assert main(["preview", "--file", str(path)]) == 1
    assert "❌ Preview failed" in capsys.readouterr().out
