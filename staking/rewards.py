"""
rewards.py - Reward Engine

Pure functions computing accrued staking reward. No state, no ledger access:
every input is an explicit parameter, so the same inputs always give the
same output.

Key Formula:
    numerator   = principal * apy_bps * elapsed_seconds * scale
    denominator = rate_denominator * seconds_per_year * scale
    reward      = numerator // denominator, plus one if 2 * remainder >= denominator

Rounding is half-up on the integer quotient. It is not banker's rounding and
not truncation. Arithmetic is integer-only; Decimal and float are never used
here.
"""

from __future__ import annotations

from .core import (
    StakePosition, StakingConfig, DEFAULT_CONFIG,
    NoActivePosition,
)


def _check_non_negative_int(value: int, name: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} cannot be negative, got {value}")


def round_half_up_div(numerator: int, denominator: int) -> int:
    """
    Integer division rounding halves up.

    Args:
        numerator: Non-negative dividend
        denominator: Positive divisor

    Returns:
        Quotient, incremented by one when the remainder is at least half
        the denominator.
    """
    if denominator <= 0:
        raise ValueError(f"denominator must be positive, got {denominator}")
    quotient, remainder = divmod(numerator, denominator)
    if remainder * 2 >= denominator:
        quotient += 1
    return quotient


def accrued(principal: int, elapsed_seconds: int, config: StakingConfig = DEFAULT_CONFIG) -> int:
    """
    Reward accrued on `principal` over `elapsed_seconds`.

    Args:
        principal: Staked units
        elapsed_seconds: Seconds since the last accrual checkpoint
        config: Rate, year length and scale (defaults to the module constants)

    Returns:
        Reward in whole asset units, rounded half-up.

    Raises:
        ValueError: If principal or elapsed_seconds is negative or not an int

    Example:
        accrued(1_000_000_000, 1)      # 87  (87.2019... rounded)
        accrued(189_216_000, 1)        # 17  (exactly 16.5, half rounds up)
    """
    _check_non_negative_int(principal, "principal")
    _check_non_negative_int(elapsed_seconds, "elapsed_seconds")

    numerator = principal * config.apy_bps * elapsed_seconds * config.scale
    denominator = config.rate_denominator * config.seconds_per_year * config.scale
    return round_half_up_div(numerator, denominator)


def accrued_for(position: StakePosition, now: int, config: StakingConfig = DEFAULT_CONFIG) -> int:
    """
    Reward accrued on a position since its last checkpoint.

    Raises:
        NoActivePosition: If the position is not active
        ValueError: If `now` is before the position's start_time
    """
    if not position.active:
        raise NoActivePosition("reward requested for a position that is not active")
    return accrued(position.principal, now - position.start_time, config)


def emergency_penalty(principal: int, config: StakingConfig = DEFAULT_CONFIG) -> int:
    """Penalty withheld on emergency close (truncating integer division)."""
    _check_non_negative_int(principal, "principal")
    return principal * config.emergency_penalty_percent // 100


def projected_reward(principal: int, term_months: int, config: StakingConfig = DEFAULT_CONFIG) -> int:
    """Reward accrued over a full term with no intermediate withdrawal."""
    _check_non_negative_int(term_months, "term_months")
    return accrued(principal, config.term_seconds(term_months), config)
