import json
import logging
from datetime import UTC, datetime
from unittest.mock import patch

import pytest
import structlog

from arena.logic.enums import MatchStatus, WagerAction
from shared.logging import (
    _serialize_values,
    bind_match_context,
    clear_match_context,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


@pytest.fixture
def json_log(tmp_path, monkeypatch):
    """Configure JSON file logging and return a reader for the parsed lines."""
    monkeypatch.setenv("LOG_FORMAT", "json")
    with patch("shared.logging._is_test", return_value=False):
        log_path = setup_logging(log_dir=tmp_path / "arena")
    assert log_path is not None

    def read() -> list[dict]:
        return [json.loads(line) for line in log_path.read_text().splitlines()]

    return read


class TestArenaLogLines:
    def test_match_context_is_attached(self, json_log):
        bind_match_context("m1", "alice")
        structlog.get_logger("arena.test").info("cards committed", round=2)

        [line] = json_log()
        assert line["event"] == "cards committed"
        assert (line["match_id"], line["player"], line["round"]) == ("m1", "alice", 2)

    def test_cleared_context_is_not_attached(self, json_log):
        bind_match_context("m1", "alice")
        clear_match_context()
        structlog.get_logger("arena.test").info("reward table seeded")

        [line] = json_log()
        assert "match_id" not in line
        assert "player" not in line

    def test_enums_and_datetimes_are_plain(self, json_log):
        structlog.get_logger("arena.test").info(
            "match opened",
            status=MatchStatus.ACTIVE,
            actions=(WagerAction.BET, WagerAction.CALL),
            created_at=datetime(2025, 6, 1, 12, 0, tzinfo=UTC),
        )

        [line] = json_log()
        assert line["status"] == "active"
        assert line["actions"] == ["bet", "call"]
        assert line["created_at"] == "2025-06-01T12:00:00+00:00"

    def test_no_file_while_under_pytest(self, tmp_path):
        assert setup_logging(log_dir=tmp_path / "arena") is None
        assert not (tmp_path / "arena").exists()


class TestLogSettings:
    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "loud")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_invalid_format(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()


class TestMatchContext:
    def test_bind_without_player(self):
        bind_match_context("m1")
        assert structlog.contextvars.get_contextvars() == {"match_id": "m1"}

    def test_clear_leaves_other_keys(self):
        structlog.contextvars.bind_contextvars(request="r1")
        bind_match_context("m1", "bob")
        clear_match_context()
        assert structlog.contextvars.get_contextvars() == {"request": "r1"}


class TestSerializeValues:
    def test_nested_dict_values(self):
        result = _serialize_values(None, "", {"stakes": {"alice": MatchStatus.COMPLETED, "bob": 10}})
        assert result["stakes"] == {"alice": "completed", "bob": 10}

    def test_plain_values_untouched(self):
        result = _serialize_values(None, "", {"event": "bet placed", "amount": 50.0})
        assert result == {"event": "bet placed", "amount": 50.0}
