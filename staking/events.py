"""
events.py - Notification records

After each successful operation the controller emits exactly one record:
    PositionOpened   - open
    PositionClosed   - close and emergency_close
    RewardSettled    - withdraw_reward

Records are data; subscribers are plain callables. The event log is the
audit trail. Nothing in the ledger reads its own records back.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Type, TypeVar, Union


@dataclass(frozen=True, slots=True)
class PositionOpened:
    """A new position started accruing."""
    account: str
    principal: int
    term_months: int
    timestamp: int
    sequence: int


@dataclass(frozen=True, slots=True)
class PositionClosed:
    """
    A position was closed.

    Attributes:
        account: Owner of the position
        principal: Principal released from custody
        reward: Reward paid (always 0 for emergency closes)
        penalty: Principal withheld (always 0 for normal closes)
        payout: Units transferred to the account
        emergency: True for emergency_close
        timestamp: Ledger time of the close
        sequence: Position in the event log
    """
    account: str
    principal: int
    reward: int
    penalty: int
    payout: int
    emergency: bool
    timestamp: int
    sequence: int


@dataclass(frozen=True, slots=True)
class RewardSettled:
    """Accrued reward was paid out and the accrual checkpoint reset."""
    account: str
    reward: int
    timestamp: int
    sequence: int


Notification = Union[PositionOpened, PositionClosed, RewardSettled]
Subscriber = Callable[[Notification], None]

N = TypeVar("N", PositionOpened, PositionClosed, RewardSettled)


class EventLog:
    """Ordered record of emitted notifications with subscriber fan-out."""

    def __init__(self):
        self._records: List[Notification] = []
        self._subscribers: List[Subscriber] = []

    @property
    def records(self) -> List[Notification]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def emit(self, record: Notification) -> None:
        self._records.append(record)
        for callback in self._subscribers:
            callback(record)

    def of_type(self, kind: Type[N]) -> List[N]:
        return [r for r in self._records if isinstance(r, kind)]

    def for_account(self, account: str) -> List[Notification]:
        return [r for r in self._records if r.account == account]

    def clone(self) -> EventLog:
        """Copy of the records; subscribers are not carried over."""
        cloned = EventLog()
        cloned._records = list(self._records)
        return cloned
