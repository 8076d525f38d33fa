"""
access.py - Authorization and Fee Gate

Two collaborators the controller consults before touching any state:

1. AccessControl classifies an account into capability tiers. Administrators
   configure the fee gate, manage tiers and read the aggregate counters.
   Participants open, close, extend and withdraw on their own position.
2. FeeGate holds a minimum transaction price. Every state-mutating operation
   compares the caller's offered price against it.

Both are plain objects injected into StakingLedger. Neither knows anything
about positions or counters.
"""

from __future__ import annotations
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Set

from .core import Unauthorized, FeeTooLow, validate_account


class Tier(Enum):
    """Capability tier required by an operation."""
    ADMIN = "admin"
    PARTICIPANT = "participant"


class AccessControl:
    """
    Mapping from account id to the tiers it holds.

    An administrator is not implicitly a participant; grant both tiers to an
    account that should do both.

    Example:
        access = AccessControl(admins=["ops"], participants=["alice", "bob"])
        access.require("alice", Tier.PARTICIPANT)   # ok
        access.require("alice", Tier.ADMIN)         # raises Unauthorized
    """

    def __init__(
        self,
        admins: Optional[Iterable[str]] = None,
        participants: Optional[Iterable[str]] = None,
    ):
        self._tiers: Dict[str, Set[Tier]] = {}
        for account in admins or ():
            self.grant(account, Tier.ADMIN)
        for account in participants or ():
            self.grant(account, Tier.PARTICIPANT)

    def has_tier(self, account: str, tier: Tier) -> bool:
        return tier in self._tiers.get(account, ())

    def tiers_of(self, account: str) -> FrozenSet[Tier]:
        return frozenset(self._tiers.get(account, ()))

    def require(self, account: str, tier: Tier) -> None:
        """
        Raises:
            Unauthorized: If `account` does not hold `tier`
        """
        if not self.has_tier(account, tier):
            raise Unauthorized(f"{account!r} lacks the {tier.value} tier")

    def grant(self, account: str, tier: Tier) -> None:
        validate_account(account)
        if not isinstance(tier, Tier):
            raise ValueError(f"unknown tier: {tier!r}")
        self._tiers.setdefault(account, set()).add(tier)

    def revoke(self, account: str, tier: Tier) -> None:
        tiers = self._tiers.get(account)
        if tiers is None:
            return
        tiers.discard(tier)
        if not tiers:
            del self._tiers[account]

    def members(self, tier: Tier) -> FrozenSet[str]:
        """Accounts holding `tier`."""
        return frozenset(a for a, tiers in self._tiers.items() if tier in tiers)

    def clone(self) -> AccessControl:
        cloned = AccessControl()
        cloned._tiers = {a: set(t) for a, t in self._tiers.items()}
        return cloned


class FeeGate:
    """Minimum-price threshold for state-mutating operations."""

    def __init__(self, minimum_price: int = 0):
        self._minimum_price = 0
        self.set_minimum(minimum_price)

    @property
    def minimum_price(self) -> int:
        return self._minimum_price

    def set_minimum(self, price: int) -> None:
        if not isinstance(price, int) or isinstance(price, bool) or price < 0:
            raise ValueError(f"minimum price must be a non-negative integer, got {price!r}")
        self._minimum_price = price

    def check(self, offered_price: int) -> None:
        """
        Raises:
            FeeTooLow: If offered_price is not an integer or is below the
                       configured minimum
        """
        if not isinstance(offered_price, int) or isinstance(offered_price, bool):
            raise FeeTooLow(f"offered price must be an integer, got {offered_price!r}")
        if offered_price < self._minimum_price:
            raise FeeTooLow(
                f"offered price {offered_price} below minimum {self._minimum_price}"
            )

    def clone(self) -> FeeGate:
        return FeeGate(self._minimum_price)
