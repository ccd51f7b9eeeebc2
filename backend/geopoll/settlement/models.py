"""Fixed-shape records for stakes, poll snapshots, and settlement results.

Amounts are integers in the smallest unit of the staking asset (Octas on the
reference chain). Engine inputs are frozen so a snapshot cannot change while
a settlement is computed over it.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from geopoll.settlement.exceptions import InvalidStateError

OPTIONS = (1, 2)


class PollStatus(str, Enum):
    """Poll lifecycle. FINALIZED is terminal."""

    OPEN = "open"
    EXPIRED = "expired"
    FINALIZED = "finalized"


class Stake(BaseModel):
    """One participant's wager on one option."""

    model_config = ConfigDict(frozen=True)

    voter: str
    option: int
    amount: int


class Poll(BaseModel):
    """Snapshot of a poll's stake ledger, as seen by the settlement engine."""

    model_config = ConfigDict(frozen=True)

    option_labels: tuple[str, str] = ("Option 1", "Option 2")
    stakes: tuple[Stake, ...] = ()
    is_finalized: bool = False
    winning_option: int | None = None

    @model_validator(mode="after")
    def check_finalized_has_winner(self) -> Poll:
        # A winner is declared exactly when the poll is finalized
        if self.is_finalized and self.winning_option is None:
            raise ValueError("Finalized poll must declare a winning option")
        if not self.is_finalized and self.winning_option is not None:
            raise ValueError(
                f"Winning option {self.winning_option} set on a poll that is not finalized"
            )
        return self

    def label_for(self, option: int) -> str:
        if option not in OPTIONS:
            raise ValueError(f"Option must be 1 or 2, got {option}")
        return self.option_labels[option - 1]

    def finalize(self, winning_option: int) -> Poll:
        """Return a finalized copy with the winning option frozen."""
        if self.is_finalized:
            raise InvalidStateError(
                f"Poll already finalized with winning option {self.winning_option}"
            )
        if winning_option not in OPTIONS:
            raise InvalidStateError(
                f"Winning option must be 1 or 2, got {winning_option}"
            )
        return self.model_copy(
            update={"is_finalized": True, "winning_option": winning_option}
        )


class WinnerReward(BaseModel):
    model_config = ConfigDict(frozen=True)

    voter: str
    stake: int
    reward: int


class SettlementResult(BaseModel):
    """Reward distribution for one winning option over one stake set."""

    model_config = ConfigDict(frozen=True)

    winning_option: int
    total_pool: int
    total_option1_stake: int
    total_option2_stake: int
    option1_stake_count: int
    option2_stake_count: int
    total_winning_stake: int
    winners_count: int
    rewards: dict[str, int] = Field(default_factory=dict)
    rewards_per_winner: list[WinnerReward] = Field(default_factory=list)

    @property
    def distributed(self) -> int:
        return sum(self.rewards.values())

    @property
    def retained(self) -> int:
        """Pool left undistributed: truncation dust, or everything if no winners."""
        return self.total_pool - self.distributed

    @property
    def has_winners(self) -> bool:
        return self.total_winning_stake > 0
