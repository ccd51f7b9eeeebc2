"""Per-address portfolio: hosted polls and stakes placed, with rewards.

Reward figures come from the settlement engine; nothing here computes a
payout on its own.
"""

import logging

from pydantic import BaseModel, Field

from geopoll.services.polls import poll_status, to_snapshot
from geopoll.settlement import (
    OPTIONS,
    PollStatus,
    SettlementResult,
    WinnerReward,
    compute_preview_statistics,
    compute_settlement,
    reward_for,
)
from geopoll.storage import LedgerState, LedgerStore, PollRecord, StakeRecord

logger = logging.getLogger(__name__)


class HostedPoll(BaseModel):
    poll: PollRecord
    status: PollStatus
    total_stakes: int
    total_pool: int
    total_option1_stake: int
    total_option2_stake: int
    option1_stake_count: int
    option2_stake_count: int
    winners: list[WinnerReward] = Field(default_factory=list)


class ParticipatedPoll(BaseModel):
    poll: PollRecord
    stake: StakeRecord
    status: PollStatus
    won: bool = False
    reward: int = 0


class Portfolio(BaseModel):
    address: str
    hosted: list[HostedPoll] = Field(default_factory=list)
    participated: list[ParticipatedPoll] = Field(default_factory=list)

    @property
    def total_staked(self) -> int:
        return sum(p.stake.amount for p in self.participated)

    @property
    def total_rewards(self) -> int:
        return sum(p.reward for p in self.participated)


def _settlement(
    state: LedgerState,
    poll: PollRecord,
    cache: dict[tuple[str, int], SettlementResult],
) -> SettlementResult:
    if poll.key not in cache:
        stakes = state.stakes_for(poll.creator, poll.index)
        cache[poll.key] = compute_settlement(to_snapshot(poll, stakes))
    return cache[poll.key]


def build_portfolio(
    store: LedgerStore,
    address: str,
    now: int | None = None,
) -> Portfolio:
    """Collect the polls an address created and the stakes it placed."""
    state = store.read()
    settlements: dict[tuple[str, int], SettlementResult] = {}

    hosted: list[HostedPoll] = []
    for poll in sorted(state.polls_by(address), key=lambda p: p.created_at, reverse=True):
        if poll.is_finalized:
            stats = _settlement(state, poll, settlements)
            winners = stats.rewards_per_winner
        else:
            # Pool totals do not depend on which option wins
            stakes = state.stakes_for(poll.creator, poll.index)
            stats = compute_preview_statistics(
                to_snapshot(poll, stakes).stakes, OPTIONS[0]
            )
            winners = []

        hosted.append(
            HostedPoll(
                poll=poll,
                status=poll_status(poll, now),
                total_stakes=stats.option1_stake_count + stats.option2_stake_count,
                total_pool=stats.total_pool,
                total_option1_stake=stats.total_option1_stake,
                total_option2_stake=stats.total_option2_stake,
                option1_stake_count=stats.option1_stake_count,
                option2_stake_count=stats.option2_stake_count,
                winners=winners,
            )
        )

    participated: list[ParticipatedPoll] = []
    for stake in sorted(state.stakes_by(address), key=lambda s: s.staked_at, reverse=True):
        poll = state.find_poll(stake.poll_creator, stake.poll_index)
        if poll is None:
            logger.warning(
                f"Stake by {address} references missing poll "
                f"{stake.poll_creator}#{stake.poll_index}"
            )
            continue

        won = False
        reward = 0
        if poll.is_finalized:
            won = stake.option == poll.winning_option
            if won:
                reward = reward_for(_settlement(state, poll, settlements), address)

        participated.append(
            ParticipatedPoll(
                poll=poll,
                stake=stake,
                status=poll_status(poll, now),
                won=won,
                reward=reward,
            )
        )

    return Portfolio(address=address, hosted=hosted, participated=participated)
