"""
test_tokens.py - Unit tests for TokenLedger

Tests:
- Transfers move value atomically and are logged
- Rejected transfers change nothing
- Mint/burn keep supply == sum of balances
- snapshot()/restore() rollback
- Display unit conversion
"""

import pytest
from decimal import Decimal

from microcredit import (
    InsufficientBalance, InvalidAmount, SYSTEM_WALLET, TokenLedger,
    to_base_units, to_display_units,
)


@pytest.fixture
def token(clock):
    t = TokenLedger("mUSDC", "Mock USDC", decimals=6, clock=clock)
    t.mint("alice", 1000)
    return t


class TestTransfer:

    def test_moves_value(self, token):
        token.transfer("alice", "bob", 300)
        assert token.balance_of("alice") == 700
        assert token.balance_of("bob") == 300
        assert token.total_supply() == 1000

    def test_logged_with_timestamp(self, token, clock):
        token.transfer("alice", "bob", 300, memo="rent")
        record = token.transfer_log[-1]
        assert (record.source, record.dest, record.amount, record.memo) == ("alice", "bob", 300, "rent")
        assert record.timestamp == clock.current_time
        assert record.sequence_number == 1

    def test_insufficient_balance_changes_nothing(self, token):
        log_length = len(token.transfer_log)
        with pytest.raises(InsufficientBalance):
            token.transfer("alice", "bob", 1001)
        assert token.balance_of("alice") == 1000
        assert token.balance_of("bob") == 0
        assert len(token.transfer_log) == log_length

    @pytest.mark.parametrize("source,dest,amount", [
        ("alice", "bob", 0),
        ("alice", "alice", 1),
        ("", "bob", 1),
        ("alice", SYSTEM_WALLET, 1),
        (SYSTEM_WALLET, "bob", 1),
    ])
    def test_invalid_transfers(self, token, source, dest, amount):
        with pytest.raises(InvalidAmount):
            token.transfer(source, dest, amount)


class TestSupply:

    def test_mint_and_burn(self, token):
        token.mint("bob", 50)
        token.burn("alice", 200)
        assert token.total_supply() == 850
        assert token.verify_conservation() == {
            'valid': True, 'supply': 850, 'sum_of_balances': 850,
        }

    def test_burn_more_than_held(self, token):
        with pytest.raises(InsufficientBalance):
            token.burn("alice", 1001)
        assert token.total_supply() == 1000

    def test_holders_excludes_zero_and_system(self, token):
        token.transfer("alice", "bob", 1000)
        assert token.holders() == {"bob": 1000}

    def test_mint_burn_log_through_system_wallet(self, token):
        token.burn("alice", 10)
        assert token.transfer_log[0].source == SYSTEM_WALLET
        assert token.transfer_log[-1].dest == SYSTEM_WALLET


class TestSnapshot:

    def test_restore_undoes_everything(self, token):
        snap = token.snapshot()
        token.transfer("alice", "bob", 400)
        token.mint("carol", 5)
        token.restore(snap)
        assert token.balance_of("alice") == 1000
        assert token.balance_of("bob") == 0
        assert token.total_supply() == 1000
        assert len(token.transfer_log) == 1

    def test_sequence_resumes_after_restore(self, token):
        snap = token.snapshot()
        token.transfer("alice", "bob", 1)
        token.restore(snap)
        token.transfer("alice", "carol", 1)
        assert token.transfer_log[-1].sequence_number == 1


class TestUnits:

    def test_to_display_units(self):
        assert to_display_units(1_500_000, 6) == Decimal("1.500000")

    def test_to_base_units_truncates(self):
        assert to_base_units("1.5", 6) == 1_500_000
        assert to_base_units("0.0000019", 6) == 1

    def test_empty_symbol_rejected(self):
        with pytest.raises(ValueError):
            TokenLedger("  ")
