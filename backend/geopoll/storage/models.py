"""Persisted ledger documents: polls, stakes, and user profiles."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from geopoll.settlement.models import Stake


class PollRecord(BaseModel):
    """Stored poll document, keyed by (creator, index)."""

    title: str
    option1: str
    option2: str
    latitude: float
    longitude: float
    poll_time: int  # unix seconds
    expiry_time: int  # unix seconds
    creator: str
    index: int
    transaction_hash: str
    created_at: datetime

    is_finalized: bool = False
    winning_option: int | None = None
    finalized_at: datetime | None = None
    finalization_tx_hash: str | None = None

    # Running totals, incremented on each accepted stake
    total_option1_stake: int = 0
    total_option2_stake: int = 0

    @property
    def key(self) -> tuple[str, int]:
        return (self.creator, self.index)

    @property
    def total_pool(self) -> int:
        return self.total_option1_stake + self.total_option2_stake

    @property
    def option_labels(self) -> tuple[str, str]:
        return (self.option1, self.option2)


class StakeRecord(BaseModel):
    """Stored stake document. One per (poll, voter)."""

    poll_creator: str
    poll_index: int
    voter: str
    option: int
    amount: int
    transaction_hash: str = ""
    staked_at: datetime

    def to_stake(self) -> Stake:
        return Stake(voter=self.voter, option=self.option, amount=self.amount)


class UserProfile(BaseModel):
    wallet_address: str
    username: str
    created_at: datetime


class LedgerState(BaseModel):
    """Complete ledger - matches data/ledger.yaml schema."""

    last_updated: datetime | None = None
    polls: list[PollRecord] = Field(default_factory=list)
    stakes: list[StakeRecord] = Field(default_factory=list)
    users: list[UserProfile] = Field(default_factory=list)

    def find_poll(self, creator: str, index: int) -> PollRecord | None:
        for poll in self.polls:
            if poll.creator == creator and poll.index == index:
                return poll
        return None

    def polls_by(self, creator: str) -> list[PollRecord]:
        return [p for p in self.polls if p.creator == creator]

    def stakes_for(self, creator: str, index: int) -> list[StakeRecord]:
        return [
            s
            for s in self.stakes
            if s.poll_creator == creator and s.poll_index == index
        ]

    def find_stake(self, creator: str, index: int, voter: str) -> StakeRecord | None:
        for stake in self.stakes_for(creator, index):
            if stake.voter == voter:
                return stake
        return None

    def stakes_by(self, voter: str) -> list[StakeRecord]:
        return [s for s in self.stakes if s.voter == voter]

    def find_user(self, wallet_address: str) -> UserProfile | None:
        for user in self.users:
            if user.wallet_address == wallet_address:
                return user
        return None

    def find_username(self, username: str) -> UserProfile | None:
        """Case-insensitive username lookup."""
        wanted = username.casefold()
        for user in self.users:
            if user.username.casefold() == wanted:
                return user
        return None
