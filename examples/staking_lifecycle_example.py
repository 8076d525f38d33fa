"""
Example: A staking pool from first deposit to final payout.

Walks three participants through the position lifecycle: a one-month stake
closed at maturity, a reward withdrawal that restarts the term, and an
emergency exit that forfeits reward and a tenth of principal.
"""

from staking import (
    StakingLedger, AssetLedger, AccessControl, FeeGate, ManualClock,
    POOL_ACCOUNT, SYSTEM_WALLET, PositionAlreadyOpen, TermNotElapsed,
)

DAY = 86_400


def main():
    print("=" * 80)
    print("STAKING POOL - Position Lifecycle Example")
    print("=" * 80)
    print()

    # Custody book: participant wallets, the pool and a reward reserve
    custody = AssetLedger("TOKEN", verbose=True)
    custody.register_wallet(POOL_ACCOUNT)
    for wallet in ("alice", "bob", "charlie"):
        custody.register_wallet(wallet)
        custody.deposit(wallet, 100_000)
    custody.deposit(POOL_ACCOUNT, 1_000_000)

    clock = ManualClock(start=0)
    access = AccessControl(admins=["ops"], participants=["alice", "bob", "charlie"])
    ledger = StakingLedger(
        "main", custody, clock=clock, access=access, fee_gate=FeeGate(1), verbose=True,
    )

    print()
    print("Example 1: Open positions")
    print("-" * 80)
    print(f"Quote for 1,000 over one month: {ledger.quote(1, 1_000)}")
    print()

    ledger.open("alice", term_months=1, amount=1_000, offered_price=1)
    ledger.open("bob", term_months=1, amount=1_000, offered_price=1)
    ledger.open("charlie", term_months=12, amount=2_000, offered_price=1)
    try:
        ledger.open("alice", term_months=3, amount=500, offered_price=1)
    except PositionAlreadyOpen:
        pass

    print()
    print(f"Total principal: {ledger.total_principal('ops'):,}")
    print()

    print("Example 2: Withdraw reward after 15 days")
    print("-" * 80)
    print("Bob withdraws reward early. The accrual checkpoint resets, and so")
    print("does the start of the term.")
    print()

    clock.advance(15 * DAY)
    ledger.withdraw_reward("bob", offered_price=1)
    print(f"Bob can close from day {ledger.maturity_time('bob') // DAY}")
    print()

    print("Example 3: Close at maturity")
    print("-" * 80)
    clock.advance(15 * DAY)
    ledger.close("alice", offered_price=1)
    try:
        ledger.close("bob", offered_price=1)
    except TermNotElapsed:
        pass
    clock.advance(15 * DAY)
    ledger.close("bob", offered_price=1)
    print()

    print("Example 4: Emergency exit")
    print("-" * 80)
    print("Charlie leaves a twelve-month stake after 45 days.")
    print()
    ledger.emergency_close("charlie", offered_price=1)
    print()

    print("=" * 80)
    print("FINAL STATE")
    print("=" * 80)
    for wallet in ("alice", "bob", "charlie", POOL_ACCOUNT):
        print(f"  {wallet:<14} {custody.get_balance(wallet):>12,}")
    print(f"  Issued supply  {custody.issued_supply():>12,}")
    print(f"  System wallet  {custody.get_balance(SYSTEM_WALLET):>12,}")
    print()
    print(f"Reward liability counter: {ledger.total_reward_liability('ops'):,}")

    result = ledger.verify_solvency()
    print(f"Solvency check: {'✓ valid' if result['valid'] else '✗ ' + str(result['discrepancies'])}")


if __name__ == "__main__":
    main()
