"""
test_staking_scenarios.py - End-to-end staking scenario tests

Tests complete position lifecycles against a funded AssetLedger:
- One-month stake to maturity
- Reward withdrawal followed by a delayed close
- Term extension
- Emergency exit
- Several accounts interleaved
- Repeated open/close cycles on one account
"""

import pytest

from staking import (
    POOL_ACCOUNT, SYSTEM_WALLET,
    PositionOpened, PositionClosed, RewardSettled,
    TermNotElapsed, NoActivePosition, PositionAlreadyOpen, TransferFailed,
)

from tests.builders import (
    ADMIN, WALLET_FUNDING, REWARD_RESERVE, DAY, MONTH,
    build_custody, build_ledger,
)


def _pool_reconciles(ledger, custody, penalties=0):
    """Pool holds the reserve plus live principal, less rewards paid, plus penalties kept."""
    expected = (REWARD_RESERVE + ledger.principal_outstanding
                + ledger.reward_liability + penalties)
    return custody.get_balance(POOL_ACCOUNT) == expected


class TestSingleAccountLifecycle:
    """One account, one position, start to finish."""

    def test_one_month_stake(self, ledger, clock, custody):
        """Stake 1000 for one month and close exactly at maturity."""
        ledger.open("alice", term_months=1, amount=1_000)
        assert ledger.pending_reward("alice") == 0

        clock.advance(15 * DAY)
        assert ledger.pending_reward("alice") == 113
        with pytest.raises(TermNotElapsed):
            ledger.close("alice")

        clock.advance(15 * DAY)
        closed = ledger.close("alice")

        assert closed.reward == 226
        assert closed.payout == 1_226
        assert custody.get_balance("alice") == WALLET_FUNDING + 226
        assert ledger.total_principal(ADMIN) == 0
        assert ledger.total_reward_liability(ADMIN) == -226
        assert _pool_reconciles(ledger, custody)

    def test_withdraw_then_close(self, ledger, clock, custody):
        """
        Withdrawing resets the accrual checkpoint, which also moves
        maturity: a one-month term started at t=0 and withdrawn at 15 days
        cannot close until 45 days.
        """
        ledger.open("alice", 1, 1_000)

        clock.advance_to(15 * DAY)
        settled = ledger.withdraw_reward("alice")
        assert settled.reward == 113
        assert ledger.maturity_time("alice") == 45 * DAY

        clock.advance_to(30 * DAY)
        with pytest.raises(TermNotElapsed):
            ledger.close("alice")

        clock.advance_to(45 * DAY)
        closed = ledger.close("alice")

        assert closed.reward == 226
        assert ledger.total_reward_liability(ADMIN) == -339
        assert custody.get_balance("alice") == WALLET_FUNDING + 339
        assert _pool_reconciles(ledger, custody)

    def test_extended_term(self, ledger, clock, custody):
        """Open for 3 months, extend by 3 at month 2, close at month 6."""
        ledger.open("alice", 3, 1_000)
        clock.advance(2 * MONTH)
        ledger.extend_term("alice", 3)

        clock.advance(MONTH)
        with pytest.raises(TermNotElapsed):
            ledger.close("alice")

        clock.advance(3 * MONTH)
        closed = ledger.close("alice")

        # 1000 * 2.75 * 180 / 365 = 1356.16
        assert closed.reward == 1_356
        assert custody.get_balance("alice") == WALLET_FUNDING + 1_356

    def test_emergency_exit(self, ledger, clock, custody):
        """A twelve-month stake abandoned after 100 days loses 10% and all reward."""
        ledger.open("charlie", 12, 2_000)
        clock.advance(100 * DAY)
        assert ledger.pending_reward("charlie") > 0

        closed = ledger.emergency_close("charlie")

        assert closed.penalty == 200
        assert closed.payout == 1_800
        assert closed.reward == 0
        assert custody.get_balance("charlie") == WALLET_FUNDING - 200
        assert ledger.total_reward_liability(ADMIN) == 0
        assert _pool_reconciles(ledger, custody, penalties=200)

        with pytest.raises(NoActivePosition):
            ledger.withdraw_reward("charlie")

    def test_repeated_cycles(self, ledger, clock, custody):
        """Each cycle overwrites the previous record; rewards accumulate in the wallet."""
        for _ in range(3):
            ledger.open("alice", 1, 1_000)
            with pytest.raises(PositionAlreadyOpen):
                ledger.open("alice", 1, 1_000)
            clock.advance(MONTH)
            ledger.close("alice")

        assert custody.get_balance("alice") == WALLET_FUNDING + 3 * 226
        assert ledger.total_reward_liability(ADMIN) == -3 * 226
        assert len(ledger.events.of_type(PositionOpened)) == 3
        assert len(ledger.events.of_type(PositionClosed)) == 3


class TestMultipleAccounts:
    """Interleaved positions on several accounts."""

    def test_interleaved_positions(self, ledger, clock, custody):
        ledger.open("alice", 1, 1_000)

        clock.advance(10 * DAY)
        ledger.open("bob", 3, 5_000)
        ledger.open("charlie", 12, 2_000)
        assert ledger.total_principal(ADMIN) == 8_000

        clock.advance(20 * DAY)            # t = 30 days
        alice = ledger.close("alice")
        assert alice.reward == 226

        clock.advance(10 * DAY)            # t = 40 days
        charlie = ledger.emergency_close("charlie")
        assert charlie.payout == 1_800

        clock.advance_to(100 * DAY)        # bob matures at 10 + 90 days
        bob = ledger.close("bob")
        # 5000 * 2.75 * 90 / 365 = 3390.41
        assert bob.reward == 3_390

        assert ledger.total_principal(ADMIN) == 0
        assert ledger.total_reward_liability(ADMIN) == -(226 + 3_390)
        assert _pool_reconciles(ledger, custody, penalties=200)
        assert ledger.verify_solvency()['valid']

    def test_positions_are_independent(self, ledger, clock):
        ledger.open("alice", 1, 1_000)
        ledger.open("bob", 1, 1_000)
        clock.advance(DAY)
        ledger.withdraw_reward("alice")

        assert ledger.get_position("alice").start_time == DAY
        assert ledger.get_position("bob").start_time == 0
        assert ledger.pending_reward("bob") > 0

    def test_event_history_per_account(self, ledger, clock):
        ledger.open("alice", 1, 1_000)
        ledger.open("bob", 1, 1_000)
        clock.advance(MONTH)
        ledger.withdraw_reward("bob")
        ledger.close("alice")

        assert [type(r) for r in ledger.events.for_account("alice")] == [
            PositionOpened, PositionClosed,
        ]
        assert [type(r) for r in ledger.events.for_account("bob")] == [
            PositionOpened, RewardSettled,
        ]


class TestSupplyConservation:
    """Custody never creates or destroys units."""

    def test_total_supply_constant(self, ledger, clock, custody):
        issued = custody.issued_supply()

        ledger.open("alice", 1, 1_000)
        ledger.open("bob", 6, 50_000)
        clock.advance(MONTH)
        ledger.withdraw_reward("bob")
        ledger.close("alice")
        ledger.emergency_close("bob")

        assert custody.total_supply() == 0
        assert custody.issued_supply() == issued
        assert custody.get_balance(SYSTEM_WALLET) == -issued

    def test_unfunded_pool_cannot_pay_rewards(self, clock):
        """With no reserve, the pool only holds staked principal and a reward payout fails."""
        custody = build_custody(reserve=0)
        ledger = build_ledger(custody=custody, clock=clock)
        ledger.open("alice", 1, 1_000)
        clock.advance(MONTH)

        with pytest.raises(TransferFailed):
            ledger.close("alice")

        assert ledger.get_position("alice").active
        assert custody.get_balance(POOL_ACCOUNT) == 1_000
        # Emergency exit needs no reward and still works
        ledger.emergency_close("alice")
        assert custody.get_balance("alice") == WALLET_FUNDING - 100
