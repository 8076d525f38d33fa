"""
store.py - Position Store

Durable mapping from account id to at most one StakePosition.

Records are never deleted. Closing a position zeroes its principal and clears
its active flag; the remaining fields stay until the next open overwrites
them. Uniqueness (one active position per account) is enforced by the
controller before it calls put(), not here.
"""

from __future__ import annotations
from typing import Dict, List, Optional

from .core import StakePosition, Positions, validate_account


class InMemoryPositionStore:
    """
    Dictionary-backed PositionStore.

    Thread Safety:
        Not thread-safe. The controller serializes all access.
    """

    def __init__(self, positions: Optional[Positions] = None):
        self._positions: Dict[str, StakePosition] = dict(positions or {})

    def get(self, account: str) -> StakePosition:
        """Return the account's record, or an empty record if none was ever written."""
        return self._positions.get(account, StakePosition.empty())

    def put(self, account: str, position: StakePosition) -> None:
        validate_account(account)
        if not isinstance(position, StakePosition):
            raise TypeError(f"expected StakePosition, got {type(position).__name__}")
        self._positions[account] = position

    def clear(self, account: str) -> None:
        """Zero principal and clear active; start_time and term_months are left as-is."""
        current = self._positions.get(account)
        if current is None:
            return
        self._positions[account] = current.closed()

    def accounts(self) -> List[str]:
        """All account ids ever written, sorted for deterministic iteration."""
        return sorted(self._positions)

    def active_positions(self) -> Positions:
        """Active positions keyed by account id."""
        return {
            account: position
            for account, position in sorted(self._positions.items())
            if position.active
        }

    def snapshot(self, account: str) -> Optional[StakePosition]:
        """Raw record for `account` (None if never written), for rollback."""
        return self._positions.get(account)

    def restore(self, account: str, position: Optional[StakePosition]) -> None:
        """Put back a record taken with snapshot(); None removes the entry."""
        if position is None:
            self._positions.pop(account, None)
        else:
            self._positions[account] = position

    def clone(self) -> InMemoryPositionStore:
        # StakePosition is frozen; copying the mapping is enough
        return InMemoryPositionStore(self._positions)

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, account: str) -> bool:
        return account in self._positions
