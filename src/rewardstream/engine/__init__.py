"""Reward accrual engine."""

from .accumulator import RewardAccumulator
from .adapters import RewardToken, StakingRewards
from .bounds import narrow, uint_max
from .collaborators import (
    AllowListAccessControl,
    InMemoryAssetLedger,
    ManualClock,
    SystemClock,
)
from .errors import (
    AccrualError,
    ArithmeticOverflow,
    AssetTransferFailed,
    InsufficientAccrued,
    InsufficientWeight,
    InvalidInterval,
    ProgramInProgress,
    Unauthorized,
)
from .events import EventBus
from .interval import IntervalConfig, ProgramStatus
from .ledger import ParticipantEntry, ParticipantLedger
from .operations import AccrualEngine

__all__ = [
    "AccrualEngine",
    "RewardAccumulator",
    "ParticipantLedger",
    "ParticipantEntry",
    "IntervalConfig",
    "ProgramStatus",
    "StakingRewards",
    "RewardToken",
    "EventBus",
    "narrow",
    "uint_max",
    # Collaborators
    "ManualClock",
    "SystemClock",
    "InMemoryAssetLedger",
    "AllowListAccessControl",
    # Errors
    "AccrualError",
    "InvalidInterval",
    "ProgramInProgress",
    "InsufficientWeight",
    "InsufficientAccrued",
    "ArithmeticOverflow",
    "AssetTransferFailed",
    "Unauthorized",
]
