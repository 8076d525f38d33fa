"""
Core types and constants for the staking ledger.

This module provides the foundational data structures and protocols:
1. Constants: reward rate, time units, allowed terms, penalty percentage
2. Configuration: StakingConfig (frozen bundle of the constants)
3. Exceptions: StakingError and one subclass per precondition failure
4. Immutable data structures: StakePosition
5. Protocols: Clock, CustodyGateway, PositionStore, StakingView

Everything here is immutable or side-effect free. The only module that
mutates ledger state is controller.py.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed annual rate constant. The reward formula divides it by
# RATE_DENOMINATOR (see rewards.accrued).
APY_BPS = 275
RATE_DENOMINATOR = 100

SECONDS_PER_DAY = 86_400
# No leap-year adjustment.
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY
# Fixed 30-day month approximation, not calendar-accurate.
SECONDS_PER_MONTH = 30 * SECONDS_PER_DAY

# Fixed-point multiplier applied to numerator and denominator before the
# final division.
REWARD_SCALE = 10 ** 18

# Term lengths (in months) accepted at open and for extensions.
ALLOWED_TERMS: FrozenSet[int] = frozenset({1, 3, 6, 12})

# Share of principal withheld on emergency close, in percent.
EMERGENCY_PENALTY_PERCENT = 10

# Account under which the custody gateway holds staked funds and the
# reward reserve.
POOL_ACCOUNT = "staking_pool"


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class StakingConfig:
    """
    Immutable parameter set for a staking ledger.

    Defaults reproduce the module constants. All reward and penalty
    arithmetic reads from the config, never from the constants directly,
    so a ledger can be built with alternative parameters in tests.

    Attributes:
        apy_bps: Annual rate constant (numerator of the rate).
        rate_denominator: Divisor applied to apy_bps.
        seconds_per_year: Length of the accrual year.
        seconds_per_month: Length of one term month.
        scale: Fixed-point scale used before the final division.
        allowed_terms: Accepted term/extension values, in months.
        emergency_penalty_percent: Percent of principal kept on emergency close.
        pool_account: Custody account holding staked funds.
    """
    apy_bps: int = APY_BPS
    rate_denominator: int = RATE_DENOMINATOR
    seconds_per_year: int = SECONDS_PER_YEAR
    seconds_per_month: int = SECONDS_PER_MONTH
    scale: int = REWARD_SCALE
    allowed_terms: FrozenSet[int] = field(default=ALLOWED_TERMS)
    emergency_penalty_percent: int = EMERGENCY_PENALTY_PERCENT
    pool_account: str = POOL_ACCOUNT

    def __post_init__(self):
        for name in ("apy_bps", "rate_denominator", "seconds_per_year",
                     "seconds_per_month", "scale"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if not isinstance(self.allowed_terms, frozenset):
            object.__setattr__(self, 'allowed_terms', frozenset(self.allowed_terms))
        if not self.allowed_terms:
            raise ValueError("allowed_terms cannot be empty")
        if any(not isinstance(t, int) or t <= 0 for t in self.allowed_terms):
            raise ValueError(f"allowed_terms must be positive integers, got {sorted(self.allowed_terms)}")
        if not 0 <= self.emergency_penalty_percent <= 100:
            raise ValueError(
                f"emergency_penalty_percent must be in [0, 100], got {self.emergency_penalty_percent}"
            )
        if not self.pool_account or not self.pool_account.strip():
            raise ValueError("pool_account cannot be empty")

    def term_seconds(self, months: int) -> int:
        """Length of a term of `months` months, in seconds."""
        return months * self.seconds_per_month

    def is_allowed_term(self, months: int) -> bool:
        return isinstance(months, int) and not isinstance(months, bool) and months in self.allowed_terms


DEFAULT_CONFIG = StakingConfig()


# ============================================================================
# EXCEPTIONS
# ============================================================================

class StakingError(Exception):
    """Base exception for all staking ledger errors."""
    pass


class InvalidTerm(StakingError):
    """Raised when a term or extension value is outside the allowed set."""
    pass


class InvalidAmount(StakingError):
    """Raised when a stake amount is not a positive integer."""
    pass


class PositionAlreadyOpen(StakingError):
    """Raised when opening a position while the account already has an active one."""
    pass


class NoActivePosition(StakingError):
    """Raised when close, extend or withdraw is attempted without an active position."""
    pass


class TermNotElapsed(StakingError):
    """Raised when a normal close is attempted before start_time + term."""
    pass


class NoRewardDue(StakingError):
    """Raised when a reward-only withdrawal computes a zero reward."""
    pass


class Unauthorized(StakingError):
    """Raised when the caller lacks the capability tier required by an operation."""
    pass


class FeeTooLow(StakingError):
    """Raised when the caller's offered transaction price is below the configured minimum."""
    pass


class TransferFailed(StakingError):
    """Raised when the custody gateway reports failure on an inbound or outbound transfer."""
    pass


class ReentrantCall(StakingError):
    """Raised when an operation is re-entered for an account while its transfer is outstanding."""
    pass


# ============================================================================
# STAKE POSITION
# ============================================================================

@dataclass(frozen=True, slots=True)
class StakePosition:
    """
    A single account's stake record.

    Attributes:
        principal: Staked asset units (0 when never opened or closed).
        start_time: Timestamp (seconds) of the most recent accrual checkpoint,
                    i.e. the open time or the last reward withdrawal.
        term_months: Term length in months.
        active: True while the principal is under custody and accruing.

    This class is immutable (frozen=True). Mutations produce new instances
    via dataclasses.replace().
    """
    principal: int = 0
    start_time: int = 0
    term_months: int = 0
    active: bool = False

    def __post_init__(self):
        if self.principal < 0:
            raise ValueError(f"principal cannot be negative, got {self.principal}")
        if self.active and self.principal <= 0:
            raise ValueError("an active position must have positive principal")

    @classmethod
    def empty(cls) -> StakePosition:
        """The default record returned for accounts with no position."""
        return cls()

    def maturity_time(self, config: StakingConfig = DEFAULT_CONFIG) -> int:
        """Earliest timestamp at which a normal close is permitted."""
        return self.start_time + config.term_seconds(self.term_months)

    def is_mature(self, now: int, config: StakingConfig = DEFAULT_CONFIG) -> bool:
        return now >= self.maturity_time(config)

    def closed(self) -> StakePosition:
        """Copy with principal zeroed and active cleared; other fields kept."""
        return replace(self, principal=0, active=False)

    def __repr__(self) -> str:
        state = "OPEN" if self.active else "EMPTY"
        return (f"StakePosition({state}, principal={self.principal}, "
                f"start={self.start_time}, term={self.term_months}m)")


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class Clock(Protocol):
    """Source of the current time. Monotonic non-decreasing integer seconds."""

    def now(self) -> int:
        ...


@runtime_checkable
class CustodyGateway(Protocol):
    """
    Value-transfer capability used to pull stakes in and pay funds out.

    The same primitive serves both directions; only the source and dest
    accounts differ. Returns False on failure instead of raising.
    """

    def transfer(self, source: str, dest: str, amount: int) -> bool:
        ...


@runtime_checkable
class PositionStore(Protocol):
    """Single-position-per-account storage."""

    def get(self, account: str) -> StakePosition:
        """Return the account's record, or StakePosition.empty() if none exists."""
        ...

    def put(self, account: str, position: StakePosition) -> None:
        """Overwrite the account's record."""
        ...

    def clear(self, account: str) -> None:
        """Zero the principal and clear active; leave other fields as they are."""
        ...


class StakingView(Protocol):
    """
    Read-only interface to ledger state.

    Functions accepting a StakingView declare their read-only intent.
    StakingLedger implements this protocol.
    """

    @property
    def current_time(self) -> int:
        ...

    @property
    def config(self) -> StakingConfig:
        ...

    def get_position(self, account: str) -> StakePosition:
        ...

    def pending_reward(self, account: str) -> int:
        ...


# Mapping from account id to its stake record.
Positions = Dict[str, StakePosition]


def validate_account(account: str, what: str = "account") -> str:
    """Return `account` unchanged, raising ValueError if it is empty or blank."""
    if not isinstance(account, str) or not account.strip():
        raise ValueError(f"{what} cannot be empty")
    return account
