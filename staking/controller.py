"""
controller.py - Staking Ledger Controller

StakingLedger is the central state manager for the staking system. It is the
only module that mutates ledger state: the position store and the two
aggregate counters.

Key responsibilities:
    - Enforces the position state machine: Empty -> Open -> Empty, with
      extend_term and withdraw_reward as self-transitions on Open
    - Gates every operation on the caller's capability tier and, for
      mutations, on the offered transaction price
    - Executes each operation atomically: bookkeeping is committed before
      the custody transfer and rolled back if the transfer fails
    - Refuses re-entry into an operation for an account while that
      operation's transfer is outstanding
    - Emits one notification per successful operation
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, Optional, Set, Tuple

from .core import (
    # Types
    StakePosition, StakingConfig, DEFAULT_CONFIG,
    Clock, CustodyGateway, PositionStore,
    # Exceptions
    StakingError, InvalidTerm, InvalidAmount, PositionAlreadyOpen,
    NoActivePosition, TermNotElapsed, NoRewardDue, TransferFailed,
    ReentrantCall,
)
from .rewards import accrued, accrued_for, emergency_penalty, projected_reward
from .store import InMemoryPositionStore
from .access import AccessControl, FeeGate, Tier
from .clock import ManualClock
from .events import (
    EventLog, Notification,
    PositionOpened, PositionClosed, RewardSettled,
)


@dataclass(frozen=True, slots=True)
class Changeset:
    """
    Bookkeeping staged by one operation, committed as a unit.

    Attributes:
        account: Account whose position changes
        position: New record to put (ignored when clear_position is True)
        clear_position: Clear the account's record instead of putting one
        principal_delta: Change to total principal
        liability_delta: Change to total reward liability
    """
    account: str
    position: Optional[StakePosition] = None
    clear_position: bool = False
    principal_delta: int = 0
    liability_delta: int = 0


@dataclass(frozen=True, slots=True)
class _Undo:
    account: str
    # Raw stored record; None when the account had no entry
    position: Optional[StakePosition]
    total_principal: int
    total_reward_liability: int


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class StakingLedger:
    """
    Staking ledger controller with atomic operations and aggregate counters.

    Implements the StakingView protocol.

    Design Principles:
        - Check first: every precondition is checked before any mutation. The
          first violation raises its specific StakingError.
        - Commit, then transfer: bookkeeping is committed before the custody
          gateway is called. A failed transfer restores the prior records and
          counters and raises TransferFailed.
        - Running counters: total_reward_liability is incremented on open and
          decremented on every settlement. It is a running bookkeeping figure,
          not a live sum of what is owed, and may go negative.

    Thread Safety:
        Not thread-safe. Each operation assumes it runs to completion without
        interleaving.

    Example:
        custody = AssetLedger(verbose=False)
        for w in ("alice", POOL_ACCOUNT):
            custody.register_wallet(w)
        custody.deposit("alice", 1_000)

        clock = ManualClock()
        access = AccessControl(admins=["ops"], participants=["alice"])
        ledger = StakingLedger("main", custody, clock=clock, access=access)

        ledger.open("alice", term_months=1, amount=1_000)
        clock.advance(30 * 86_400)
        ledger.close("alice")
    """

    def __init__(
        self,
        name: str,
        custody: CustodyGateway,
        clock: Optional[Clock] = None,
        store: Optional[PositionStore] = None,
        access: Optional[AccessControl] = None,
        fee_gate: Optional[FeeGate] = None,
        config: Optional[StakingConfig] = None,
        verbose: bool = True,
    ):
        """
        Create a staking ledger.

        Args:
            name: Ledger identifier
            custody: Gateway that moves asset units in and out of the pool
            clock: Time source (default: ManualClock starting at 0)
            store: Position store (default: InMemoryPositionStore)
            access: Capability tiers (default: nobody holds any tier)
            fee_gate: Minimum-price gate (default: minimum 0)
            config: Reward and term parameters (default: module constants)
            verbose: Print one line per operation (default: True)
        """
        self.name = name
        self.custody = custody
        self.clock: Clock = clock if clock is not None else ManualClock()
        self.store: PositionStore = store if store is not None else InMemoryPositionStore()
        self.access = access if access is not None else AccessControl()
        self.fee_gate = fee_gate if fee_gate is not None else FeeGate()
        self._config = config or DEFAULT_CONFIG
        self.verbose = verbose
        self.events = EventLog()
        self._total_principal: int = 0
        self._total_reward_liability: int = 0
        self._next_sequence: int = 0
        # (operation, account) pairs whose transfer is outstanding
        self._in_flight: Set[Tuple[str, str]] = set()

    # ========================================================================
    # StakingView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> int:
        return self.clock.now()

    @property
    def config(self) -> StakingConfig:
        return self._config

    @property
    def pool_account(self) -> str:
        return self._config.pool_account

    def get_position(self, account: str) -> StakePosition:
        """Return the account's record (an empty record if none exists)."""
        return self.store.get(account)

    def pending_reward(self, account: str) -> int:
        """Reward that would be settled now; 0 if the account has no active position."""
        position = self.store.get(account)
        if not position.active:
            return 0
        return accrued_for(position, self.current_time, self._config)

    def maturity_time(self, account: str) -> int:
        """
        Earliest time at which close() succeeds for the account.

        Raises:
            NoActivePosition: If the account has no active position
        """
        position = self._require_active(account)
        return position.maturity_time(self._config)

    def quote(self, term_months: int, amount: int) -> int:
        """
        Reward a new position would accrue over its full term.

        Raises:
            InvalidTerm: If term_months is not an allowed term
            InvalidAmount: If amount is not a positive integer
        """
        self._check_term(term_months)
        self._check_amount(amount)
        return projected_reward(amount, term_months, self._config)

    # ------------------------------------------------------------------------
    # Aggregate counters
    # ------------------------------------------------------------------------

    def total_principal(self, caller: str) -> int:
        """
        Sum of principal over all active positions (administrators only).

        Raises:
            Unauthorized: If caller is not an administrator
        """
        self.access.require(caller, Tier.ADMIN)
        return self._total_principal

    def total_reward_liability(self, caller: str) -> int:
        """
        Running reward-liability counter (administrators only).

        Raises:
            Unauthorized: If caller is not an administrator
        """
        self.access.require(caller, Tier.ADMIN)
        return self._total_reward_liability

    @property
    def principal_outstanding(self) -> int:
        """Unchecked total principal, for invariant checks."""
        return self._total_principal

    @property
    def reward_liability(self) -> int:
        """Unchecked reward-liability counter, for invariant checks."""
        return self._total_reward_liability

    def verify_solvency(self) -> Dict[str, Any]:
        """
        Verify the aggregate counters against the positions and custody.

        Checks:
        1. Sum of active principal equals the total principal counter
        2. The pool's custody balance covers the total principal (only when
           the gateway exposes get_balance)

        Returns:
            Dict with keys:
            - 'valid': bool - True if every check holds
            - 'total_principal': int - Counter value
            - 'sum_active_principal': int - Recomputed from positions
            - 'custody_balance': Optional[int] - Pool balance, if observable
            - 'discrepancies': List[Dict] - One entry per failed check

        Example:
            result = ledger.verify_solvency()
            assert result['valid'], result['discrepancies']
        """
        discrepancies = []

        active = self._active_positions()
        sum_active = sum(p.principal for p in active.values())
        if sum_active != self._total_principal:
            discrepancies.append({
                'check': 'principal',
                'expected': self._total_principal,
                'actual': sum_active,
                'difference': sum_active - self._total_principal,
            })

        custody_balance = None
        get_balance = getattr(self.custody, "get_balance", None)
        if callable(get_balance):
            custody_balance = get_balance(self.pool_account)
            if custody_balance < self._total_principal:
                discrepancies.append({
                    'check': 'custody',
                    'expected': self._total_principal,
                    'actual': custody_balance,
                    'difference': custody_balance - self._total_principal,
                })

        return {
            'valid': len(discrepancies) == 0,
            'total_principal': self._total_principal,
            'sum_active_principal': sum_active,
            'custody_balance': custody_balance,
            'discrepancies': discrepancies,
        }

    def _active_positions(self) -> Dict[str, StakePosition]:
        active_positions = getattr(self.store, "active_positions", None)
        if callable(active_positions):
            return active_positions()
        raise StakingError(
            f"position store {type(self.store).__name__} cannot enumerate positions"
        )

    # ========================================================================
    # PARTICIPANT OPERATIONS (Mutating)
    # ========================================================================

    def open(self, caller: str, term_months: int, amount: int, offered_price: int = 0) -> PositionOpened:
        """
        Open a position: pull `amount` into custody and start accruing.

        The reward for zero elapsed time is recognized into the liability
        counter at open. It is not paid.

        Raises:
            Unauthorized, FeeTooLow: Gating failures
            InvalidTerm: If term_months is not an allowed term
            InvalidAmount: If amount is not a positive integer
            PositionAlreadyOpen: If the caller already has an active position
            TransferFailed: If custody cannot pull the amount
        """
        with self._transaction("open", caller, offered_price):
            self._check_term(term_months)
            self._check_amount(amount)
            if self.store.get(caller).active:
                raise PositionAlreadyOpen(f"{caller} already has an active position")

            now = self.current_time
            reward = accrued(amount, 0, self._config)
            position = StakePosition(
                principal=amount, start_time=now, term_months=term_months, active=True,
            )
            self._execute(
                Changeset(caller, position=position, principal_delta=amount, liability_delta=reward),
                source=caller, dest=self.pool_account, amount=amount,
            )
            record = PositionOpened(caller, amount, term_months, now, self._sequence())

        return self._emit("open", record)

    def close(self, caller: str, offered_price: int = 0) -> PositionClosed:
        """
        Close a matured position, paying principal plus accrued reward.

        Raises:
            Unauthorized, FeeTooLow: Gating failures
            NoActivePosition: If the caller has no active position
            TermNotElapsed: If now < start_time + term_months * 30 days
            TransferFailed: If custody cannot pay out
        """
        with self._transaction("close", caller, offered_price):
            position = self._require_active(caller)
            now = self.current_time
            if not position.is_mature(now, self._config):
                raise TermNotElapsed(
                    f"{caller}: term ends at {position.maturity_time(self._config)}, now {now}"
                )

            reward = accrued_for(position, now, self._config)
            payout = position.principal + reward
            self._execute(
                Changeset(caller, clear_position=True,
                          principal_delta=-position.principal, liability_delta=-reward),
                source=self.pool_account, dest=caller, amount=payout,
            )
            record = PositionClosed(
                caller, position.principal, reward, 0, payout, False, now, self._sequence(),
            )

        return self._emit("close", record)

    def emergency_close(self, caller: str, offered_price: int = 0) -> PositionClosed:
        """
        Close a position at any time, forfeiting all reward and a fixed
        percentage of principal. The reward-liability counter is untouched.

        Raises:
            Unauthorized, FeeTooLow: Gating failures
            NoActivePosition: If the caller has no active position
            TransferFailed: If custody cannot pay out
        """
        with self._transaction("emergency_close", caller, offered_price):
            position = self._require_active(caller)
            now = self.current_time
            penalty = emergency_penalty(position.principal, self._config)
            payout = position.principal - penalty
            self._execute(
                Changeset(caller, clear_position=True, principal_delta=-position.principal),
                source=self.pool_account, dest=caller, amount=payout,
            )
            record = PositionClosed(
                caller, position.principal, 0, penalty, payout, True, now, self._sequence(),
            )

        return self._emit("emergency_close", record)

    def extend_term(self, caller: str, add_months: int, offered_price: int = 0) -> StakePosition:
        """
        Lengthen the term of an active position by `add_months`.

        The resulting sum is not re-validated against the allowed terms.

        Raises:
            Unauthorized, FeeTooLow: Gating failures
            NoActivePosition: If the caller has no active position
            InvalidTerm: If add_months is not an allowed term
        """
        with self._transaction("extend_term", caller, offered_price):
            position = self._require_active(caller)
            self._check_term(add_months)
            extended = replace(position, term_months=position.term_months + add_months)
            self._execute(Changeset(caller, position=extended))

        if self.verbose:
            print(f"✓ APPLIED extend_term({caller}): term={extended.term_months}m")
        return extended

    def withdraw_reward(self, caller: str, offered_price: int = 0) -> RewardSettled:
        """
        Pay out accrued reward only and reset the accrual checkpoint to now.
        Principal and the active flag are unchanged.

        Raises:
            Unauthorized, FeeTooLow: Gating failures
            NoActivePosition: If the caller has no active position
            NoRewardDue: If the accrued reward is zero
            TransferFailed: If custody cannot pay out
        """
        with self._transaction("withdraw_reward", caller, offered_price):
            position = self._require_active(caller)
            now = self.current_time
            reward = accrued_for(position, now, self._config)
            if reward <= 0:
                raise NoRewardDue(f"{caller}: no reward accrued since {position.start_time}")

            self._execute(
                Changeset(caller, position=replace(position, start_time=now), liability_delta=-reward),
                source=self.pool_account, dest=caller, amount=reward,
            )
            record = RewardSettled(caller, reward, now, self._sequence())

        return self._emit("withdraw_reward", record)

    # ========================================================================
    # ADMINISTRATOR OPERATIONS (Mutating)
    # ========================================================================

    def set_minimum_price(self, caller: str, price: int, offered_price: int = 0) -> None:
        """Configure the fee gate's minimum transaction price."""
        self._authorize(caller, Tier.ADMIN, offered_price)
        self.fee_gate.set_minimum(price)
        if self.verbose:
            print(f"✓ APPLIED set_minimum_price({caller}): {price}")

    def grant(self, caller: str, account: str, tier: Tier, offered_price: int = 0) -> None:
        """Give `account` the capability tier `tier`."""
        self._authorize(caller, Tier.ADMIN, offered_price)
        self.access.grant(account, tier)
        if self.verbose:
            print(f"✓ APPLIED grant({caller}): {account} += {tier.value}")

    def revoke(self, caller: str, account: str, tier: Tier, offered_price: int = 0) -> None:
        """Remove the capability tier `tier` from `account`."""
        self._authorize(caller, Tier.ADMIN, offered_price)
        self.access.revoke(account, tier)
        if self.verbose:
            print(f"✓ APPLIED revoke({caller}): {account} -= {tier.value}")

    # ========================================================================
    # TRANSACTION EXECUTION
    # ========================================================================

    def _authorize(self, caller: str, tier: Tier, offered_price: int) -> None:
        try:
            self.access.require(caller, tier)
            self.fee_gate.check(offered_price)
        except StakingError as exc:
            if self.verbose:
                print(f"✗ REJECTED: {type(exc).__name__}: {exc}")
            raise

    @contextmanager
    def _transaction(self, operation: str, caller: str, offered_price: int) -> Iterator[None]:
        """
        Gate and guard a participant operation.

        Order: capability tier, fee gate, re-entry guard, then the body of
        the with-block (preconditions and execution). The (operation, caller)
        pair stays marked until the body exits.
        """
        self._authorize(caller, Tier.PARTICIPANT, offered_price)
        key = (operation, caller)
        try:
            if key in self._in_flight:
                raise ReentrantCall(f"{operation} already in progress for {caller}")
            self._in_flight.add(key)
            try:
                yield
            finally:
                self._in_flight.discard(key)
        except StakingError as exc:
            if self.verbose:
                print(f"✗ REJECTED {operation}({caller}): {type(exc).__name__}: {exc}")
            raise

    def _execute(
        self,
        changeset: Changeset,
        source: Optional[str] = None,
        dest: Optional[str] = None,
        amount: int = 0,
    ) -> None:
        """
        Commit a changeset, then perform its custody transfer (if any).

        If the gateway returns False or raises, the changeset is rolled back
        and TransferFailed is raised; nothing from this call remains applied.
        """
        undo = self._commit(changeset)
        if amount <= 0:
            return

        try:
            ok = self.custody.transfer(source, dest, amount)
        except Exception as exc:
            self._rollback(undo)
            raise TransferFailed(f"transfer {source}->{dest} of {amount} raised: {exc}") from exc
        if not ok:
            self._rollback(undo)
            raise TransferFailed(f"transfer {source}->{dest} of {amount} failed")

    def _commit(self, changeset: Changeset) -> _Undo:
        undo = _Undo(
            account=changeset.account,
            position=self._snapshot_record(changeset.account),
            total_principal=self._total_principal,
            total_reward_liability=self._total_reward_liability,
        )
        if changeset.clear_position:
            self.store.clear(changeset.account)
        else:
            self.store.put(changeset.account, changeset.position)
        self._total_principal += changeset.principal_delta
        self._total_reward_liability += changeset.liability_delta
        return undo

    def _snapshot_record(self, account: str) -> Optional[StakePosition]:
        snapshot = getattr(self.store, "snapshot", None)
        if callable(snapshot):
            return snapshot(account)
        return self.store.get(account)

    def _rollback(self, undo: _Undo) -> None:
        restore = getattr(self.store, "restore", None)
        if callable(restore):
            restore(undo.account, undo.position)
        else:
            position = undo.position if undo.position is not None else StakePosition.empty()
            self.store.put(undo.account, position)
        self._total_principal = undo.total_principal
        self._total_reward_liability = undo.total_reward_liability

    def _sequence(self) -> int:
        sequence = self._next_sequence
        self._next_sequence += 1
        return sequence

    def _emit(self, operation: str, record: Notification) -> Notification:
        self.events.emit(record)
        if self.verbose:
            print(f"✓ APPLIED {operation}: {record}")
        return record

    # ========================================================================
    # PRECONDITIONS
    # ========================================================================

    def _require_active(self, account: str) -> StakePosition:
        position = self.store.get(account)
        if not position.active:
            raise NoActivePosition(f"{account} has no active position")
        return position

    def _check_term(self, months: int) -> None:
        if not self._config.is_allowed_term(months):
            raise InvalidTerm(
                f"term must be one of {sorted(self._config.allowed_terms)}, got {months!r}"
            )

    def _check_amount(self, amount: int) -> None:
        if not _is_int(amount) or amount <= 0:
            raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> StakingLedger:
        """
        Create an independent copy of the ledger's own state.

        Copied: positions, counters, access tiers, fee gate, event records,
        sequence counter, configuration. Shared: the custody gateway and the
        clock, which are external collaborators.

        Raises:
            StakingError: If the position store cannot be cloned
        """
        clone_store = getattr(self.store, "clone", None)
        if not callable(clone_store):
            raise StakingError(f"position store {type(self.store).__name__} cannot be cloned")

        cloned = StakingLedger.__new__(StakingLedger)
        cloned.name = self.name
        cloned.custody = self.custody
        cloned.clock = self.clock
        cloned.store = clone_store()
        cloned.access = self.access.clone()
        cloned.fee_gate = self.fee_gate.clone()
        cloned._config = self._config
        cloned.verbose = self.verbose
        cloned.events = self.events.clone()
        cloned._total_principal = self._total_principal
        cloned._total_reward_liability = self._total_reward_liability
        cloned._next_sequence = self._next_sequence
        cloned._in_flight = set()
        return cloned
