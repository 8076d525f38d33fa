"""
Tests for custody.py - AssetLedger

Tests:
- Wallet registration
- Issuance from the system wallet
- Transfer validation (returns False, never raises)
- Supply conservation and the transfer log
"""

import pytest

from staking import AssetLedger, SYSTEM_WALLET, Transfer


@pytest.fixture
def book():
    custody = AssetLedger("TOKEN", verbose=False)
    custody.register_wallet("alice")
    custody.register_wallet("pool")
    custody.deposit("alice", 1_000)
    return custody


class TestRegistration:

    def test_system_wallet_preregistered(self):
        custody = AssetLedger(verbose=False)
        assert custody.is_registered(SYSTEM_WALLET)
        assert custody.get_balance(SYSTEM_WALLET) == 0

    def test_register_wallet(self):
        custody = AssetLedger(verbose=False)
        assert custody.register_wallet("alice") == "alice"
        assert custody.get_balance("alice") == 0
        assert custody.list_wallets() == {SYSTEM_WALLET, "alice"}

    def test_duplicate_registration_rejected(self, book):
        with pytest.raises(ValueError, match="already registered"):
            book.register_wallet("alice")

    def test_blank_wallet_rejected(self):
        with pytest.raises(ValueError, match="wallet_id cannot be empty"):
            AssetLedger(verbose=False).register_wallet("")

    def test_unregistered_balance_raises(self, book):
        with pytest.raises(KeyError):
            book.get_balance("ghost")

    def test_list_wallets_is_a_copy(self, book):
        wallets = book.list_wallets()
        wallets.add("ghost")
        assert not book.is_registered("ghost")


class TestIssuance:

    def test_deposit_issues_from_system(self, book):
        assert book.get_balance("alice") == 1_000
        assert book.get_balance(SYSTEM_WALLET) == -1_000
        assert book.issued_supply() == 1_000

    def test_deposit_to_unknown_wallet_raises(self, book):
        with pytest.raises(ValueError, match="rejected"):
            book.deposit("ghost", 10)

    def test_deposit_zero_raises(self, book):
        with pytest.raises(ValueError):
            book.deposit("alice", 0)


class TestTransfer:

    def test_successful_transfer(self, book):
        assert book.transfer("alice", "pool", 400) is True
        assert book.get_balance("alice") == 600
        assert book.get_balance("pool") == 400

    def test_entire_balance_can_move(self, book):
        assert book.transfer("alice", "pool", 1_000) is True
        assert book.get_balance("alice") == 0

    @pytest.mark.parametrize("source,dest,amount", [
        ("alice", "pool", 1_001),   # insufficient balance
        ("alice", "pool", 0),       # non-positive
        ("alice", "pool", -5),
        ("alice", "pool", 1.5),     # not an integer
        ("alice", "pool", True),
        ("alice", "alice", 10),     # self transfer
        ("ghost", "pool", 10),      # unknown source
        ("alice", "ghost", 10),     # unknown dest
    ])
    def test_rejected_transfer_returns_false_and_changes_nothing(self, book, source, dest, amount):
        before = dict(book.balances)
        log_length = len(book.transfer_log)

        assert book.transfer(source, dest, amount) is False

        assert book.balances == before
        assert len(book.transfer_log) == log_length

    def test_rejection_printed_when_verbose(self, capsys):
        custody = AssetLedger(verbose=True)
        custody.register_wallet("alice")
        custody.register_wallet("pool")
        custody.transfer("alice", "pool", 10)
        assert "✗ TRANSFER REJECTED" in capsys.readouterr().out

    def test_transfer_log_sequence(self, book):
        book.transfer("alice", "pool", 100)
        book.transfer("pool", "alice", 40)
        log = book.transfer_log
        # First entry is the deposit from the fixture
        assert log[0] == Transfer(1_000, SYSTEM_WALLET, "alice", 0)
        assert log[1] == Transfer(100, "alice", "pool", 1)
        assert log[2] == Transfer(40, "pool", "alice", 2)

    def test_total_supply_is_conserved(self, book):
        assert book.total_supply() == 0
        book.transfer("alice", "pool", 250)
        book.transfer("pool", "alice", 100)
        assert book.total_supply() == 0
        assert book.get_balance("alice") + book.get_balance("pool") == book.issued_supply()
