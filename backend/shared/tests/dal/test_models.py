"""Tests for DAL persistence models."""

from datetime import UTC, datetime

from shared.dal.models import Currency, LedgerEntry, PlayerAccount


class TestPlayerAccount:
    def test_defaults(self):
        account = PlayerAccount(username="alice")
        assert account.rank_tier == "rookie1"
        assert account.xp == 0
        assert account.wins == 0

    def test_balance_by_currency(self):
        account = PlayerAccount(username="alice", mana_balance=70, ret_balance=3.5)
        assert account.balance(Currency.MANA) == 70
        assert account.balance(Currency.RET) == 3.5


class TestLedgerEntry:
    def test_serialization_roundtrip(self):
        entry = LedgerEntry(
            username="alice",
            currency=Currency.RET,
            change=-50,
            reason="bet escrow",
            match_id="m1",
            created_at=datetime(2025, 1, 1, tzinfo=UTC),
        )
        restored = LedgerEntry.model_validate_json(entry.model_dump_json())
        assert restored == entry
        assert restored.currency is Currency.RET
