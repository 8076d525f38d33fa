"""
staking - Token-Staking Ledger

Accepts deposits of a single fungible asset, tracks one stake position per
account, accrues reward at a fixed annual rate and releases principal plus
reward (or penalized principal) on withdrawal.

Usage:
    from staking import (
        StakingLedger, AssetLedger, AccessControl, ManualClock, POOL_ACCOUNT,
    )

    custody = AssetLedger("TOKEN", verbose=False)
    for wallet in ("alice", POOL_ACCOUNT):
        custody.register_wallet(wallet)
    custody.deposit("alice", 1_000)

    clock = ManualClock(start=0)
    access = AccessControl(admins=["ops"], participants=["alice"])
    ledger = StakingLedger("main", custody, clock=clock, access=access)

    ledger.open("alice", term_months=1, amount=1_000)
    clock.advance(30 * 86_400)
    closed = ledger.close("alice")   # pays 1_000 + reward
"""

# Core types
from .core import (
    StakePosition,
    StakingConfig,
    StakingView,
    Clock,
    CustodyGateway,
    PositionStore,
    DEFAULT_CONFIG,
    APY_BPS,
    RATE_DENOMINATOR,
    SECONDS_PER_DAY,
    SECONDS_PER_YEAR,
    SECONDS_PER_MONTH,
    REWARD_SCALE,
    ALLOWED_TERMS,
    EMERGENCY_PENALTY_PERCENT,
    POOL_ACCOUNT,
    # Exceptions
    StakingError,
    InvalidTerm,
    InvalidAmount,
    PositionAlreadyOpen,
    NoActivePosition,
    TermNotElapsed,
    NoRewardDue,
    Unauthorized,
    FeeTooLow,
    TransferFailed,
    ReentrantCall,
)

# Reward Engine
from .rewards import (
    accrued,
    accrued_for,
    emergency_penalty,
    projected_reward,
    round_half_up_div,
)

# Position Store
from .store import InMemoryPositionStore

# Custody
from .custody import AssetLedger, Transfer, SYSTEM_WALLET

# Authorization and fee gate
from .access import AccessControl, FeeGate, Tier

# Clocks
from .clock import ManualClock, SystemClock

# Notifications
from .events import (
    EventLog,
    Notification,
    PositionOpened,
    PositionClosed,
    RewardSettled,
)

# Controller
from .controller import StakingLedger

__all__ = [
    # Core
    'StakePosition', 'StakingConfig', 'StakingView',
    'Clock', 'CustodyGateway', 'PositionStore',
    'DEFAULT_CONFIG', 'APY_BPS', 'RATE_DENOMINATOR',
    'SECONDS_PER_DAY', 'SECONDS_PER_YEAR', 'SECONDS_PER_MONTH',
    'REWARD_SCALE', 'ALLOWED_TERMS', 'EMERGENCY_PENALTY_PERCENT', 'POOL_ACCOUNT',
    # Exceptions
    'StakingError', 'InvalidTerm', 'InvalidAmount', 'PositionAlreadyOpen',
    'NoActivePosition', 'TermNotElapsed', 'NoRewardDue', 'Unauthorized',
    'FeeTooLow', 'TransferFailed', 'ReentrantCall',
    # Reward Engine
    'accrued', 'accrued_for', 'emergency_penalty', 'projected_reward',
    'round_half_up_div',
    # Store
    'InMemoryPositionStore',
    # Custody
    'AssetLedger', 'Transfer', 'SYSTEM_WALLET',
    # Access
    'AccessControl', 'FeeGate', 'Tier',
    # Clocks
    'ManualClock', 'SystemClock',
    # Notifications
    'EventLog', 'Notification', 'PositionOpened', 'PositionClosed', 'RewardSettled',
    # Controller
    'StakingLedger',
]

__version__ = '1.0.0'
