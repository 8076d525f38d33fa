"""
clock.py - Time sources for the staking ledger.

The controller reads time through the Clock protocol and never advances it.
Timestamps are integer seconds.
"""

from __future__ import annotations
import time


class ManualClock:
    """
    Clock advanced explicitly by the caller. Time can only move forward.

    Example:
        clock = ManualClock(start=0)
        clock.advance(30 * 86_400)
        clock.now()   # 2592000
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError(f"start cannot be negative, got {start}")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """
        Move time forward by `seconds` and return the new time.

        Raises:
            ValueError: If seconds is negative
        """
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards by {seconds} seconds")
        self._now += seconds
        return self._now

    def advance_to(self, timestamp: int) -> int:
        """
        Raises:
            ValueError: If timestamp is before the current time
        """
        if timestamp < self._now:
            raise ValueError(f"Cannot move time backwards: {timestamp} < {self._now}")
        self._now = timestamp
        return self._now


class SystemClock:
    """Wall-clock time in whole seconds since the epoch."""

    def now(self) -> int:
        return int(time.time())
