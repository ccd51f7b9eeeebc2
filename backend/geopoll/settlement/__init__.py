"""Settlement engine and its data model."""

from .engine import (
    calculate_reward,
    compute_preview_statistics,
    compute_settlement,
    preview_outcomes,
    reward_for,
    validate_stakes,
)
from .exceptions import InvalidStakeError, InvalidStateError, SettlementError
from .models import (
    OPTIONS,
    Poll,
    PollStatus,
    SettlementResult,
    Stake,
    WinnerReward,
)
from .units import OCTAS_PER_COIN, format_amount, from_octas, to_octas

__all__ = [
    "calculate_reward",
    "compute_preview_statistics",
    "compute_settlement",
    "preview_outcomes",
    "reward_for",
    "validate_stakes",
    "InvalidStakeError",
    "InvalidStateError",
    "SettlementError",
    "OPTIONS",
    "Poll",
    "PollStatus",
    "SettlementResult",
    "Stake",
    "WinnerReward",
    "OCTAS_PER_COIN",
    "format_amount",
    "from_octas",
    "to_octas",
]
