"""Settlement engine: proportional reward distribution over a two-option pool.

Every reward figure in GeoPoll (creator preview, final settlement, portfolio
views) is computed here. Winners split the whole pool, both sides, in
proportion to their stake on the winning option:

    reward = floor(stake * total_pool / total_winning_stake)

Integer arithmetic only. Each winning stake loses at most one unit to
truncation, and the undistributed remainder stays with the poll. When nobody
staked on the winning option, no rewards are paid and the creator keeps the
entire pool.

These functions are pure: no I/O, no shared state, no input mutation.
"""

import logging
from collections.abc import Iterable

from geopoll.settlement.exceptions import InvalidStakeError, InvalidStateError
from geopoll.settlement.models import (
    OPTIONS,
    Poll,
    SettlementResult,
    Stake,
    WinnerReward,
)

logger = logging.getLogger(__name__)


def calculate_reward(stake_amount: int, total_pool: int, total_winning_stake: int) -> int:
    """Calculate one winning stake's share of the pool, rounded down."""
    if stake_amount < 0:
        raise ValueError(f"Stake amount must be non-negative, got {stake_amount}")
    if total_winning_stake <= 0:
        raise ValueError(
            f"Total winning stake must be positive, got {total_winning_stake}"
        )
    if total_pool < total_winning_stake:
        raise ValueError(
            f"Total pool ({total_pool}) cannot be smaller than "
            f"total winning stake ({total_winning_stake})"
        )

    return (stake_amount * total_pool) // total_winning_stake


def validate_stakes(stakes: Iterable[Stake]) -> None:
    """Reject the whole stake set if any stake is malformed."""
    for stake in stakes:
        if stake.option not in OPTIONS:
            raise InvalidStakeError(
                f"Stake by {stake.voter} backs option {stake.option}; must be 1 or 2",
                voter=stake.voter,
            )
        if stake.amount < 0:
            raise InvalidStakeError(
                f"Stake by {stake.voter} has negative amount {stake.amount}",
                voter=stake.voter,
            )


def compute_preview_statistics(
    stakes: Iterable[Stake],
    winning_option: int,
) -> SettlementResult:
    """Project the settlement for a candidate winning option.

    Works on a poll in any state, so a creator can see the payouts each
    outcome would produce before finalizing. ``compute_settlement`` delegates
    here, which keeps preview and final settlement identical for the same
    stake set.

    Raises:
        InvalidStateError: winning_option is not 1 or 2.
        InvalidStakeError: a stake has a negative amount or an unknown option.
    """
    if winning_option not in OPTIONS:
        raise InvalidStateError(
            f"Winning option must be 1 or 2, got {winning_option}"
        )

    stakes = tuple(stakes)
    validate_stakes(stakes)

    option1_stakes = [s for s in stakes if s.option == 1]
    option2_stakes = [s for s in stakes if s.option == 2]
    total_option1_stake = sum(s.amount for s in option1_stakes)
    total_option2_stake = sum(s.amount for s in option2_stakes)
    total_pool = total_option1_stake + total_option2_stake

    if winning_option == 1:
        winning_stakes, total_winning_stake = option1_stakes, total_option1_stake
    else:
        winning_stakes, total_winning_stake = option2_stakes, total_option2_stake

    rewards: dict[str, int] = {}
    staked: dict[str, int] = {}

    # No winning stake: nothing is paid out, the creator retains the pool.
    if total_winning_stake > 0:
        for stake in winning_stakes:
            reward = calculate_reward(stake.amount, total_pool, total_winning_stake)
            # A voter appearing twice accumulates rather than overwrites.
            rewards[stake.voter] = rewards.get(stake.voter, 0) + reward
            staked[stake.voter] = staked.get(stake.voter, 0) + stake.amount

    result = SettlementResult(
        winning_option=winning_option,
        total_pool=total_pool,
        total_option1_stake=total_option1_stake,
        total_option2_stake=total_option2_stake,
        option1_stake_count=len(option1_stakes),
        option2_stake_count=len(option2_stakes),
        total_winning_stake=total_winning_stake,
        winners_count=len(rewards),
        rewards=rewards,
        rewards_per_winner=[
            WinnerReward(voter=voter, stake=staked[voter], reward=reward)
            for voter, reward in rewards.items()
        ],
    )

    logger.debug(
        f"Settlement for option {winning_option}: pool={total_pool} "
        f"winning_stake={total_winning_stake} winners={result.winners_count} "
        f"retained={result.retained}"
    )
    return result


def compute_settlement(poll: Poll) -> SettlementResult:
    """Compute the final reward distribution for a finalized poll.

    Raises:
        InvalidStateError: the poll is not finalized, or its winning option is
            not 1 or 2.
        InvalidStakeError: a stake has a negative amount or an unknown option.
    """
    if not poll.is_finalized:
        raise InvalidStateError("poll not finalized")
    if poll.winning_option not in OPTIONS:
        raise InvalidStateError(
            f"Finalized poll has invalid winning option {poll.winning_option!r}"
        )

    result = compute_preview_statistics(poll.stakes, poll.winning_option)

    if not result.has_winners:
        logger.info(
            f"No stakes on winning option {poll.winning_option}; "
            f"creator retains pool of {result.total_pool}"
        )
    return result


def preview_outcomes(stakes: Iterable[Stake]) -> dict[int, SettlementResult]:
    """Projected settlement for each candidate winning option."""
    stakes = tuple(stakes)
    return {option: compute_preview_statistics(stakes, option) for option in OPTIONS}


def reward_for(result: SettlementResult, voter: str) -> int:
    """A voter's reward in a settlement; 0 if they did not back the winner."""
    return result.rewards.get(voter, 0)
