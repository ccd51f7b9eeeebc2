"""Poll lifecycle: create, stake, finalize, and settle.

Polls move Open -> Expired -> Finalized. Expiry is driven by the clock
(``now`` in unix seconds, injectable for tests); finalization is a one-time,
creator-only declaration of the winning option. Stake acceptance and
finalization both run inside a store transaction, so a settlement always
sees a frozen stake set.
"""

import logging
import time
from datetime import datetime, timezone

from pydantic import BaseModel

from geopoll.config import Settings, get_settings
from geopoll.exceptions import (
    DuplicateStakeError,
    InvalidPollError,
    PollNotFoundError,
    UnauthorizedError,
)
from geopoll.settlement import (
    OPTIONS,
    InvalidStakeError,
    InvalidStateError,
    Poll,
    PollStatus,
    SettlementResult,
    compute_preview_statistics,
    compute_settlement,
    preview_outcomes,
)
from geopoll.storage import LedgerState, LedgerStore, PollRecord, StakeRecord

logger = logging.getLogger(__name__)


class PollDraft(BaseModel):
    """Fields supplied by a creator when opening a poll."""

    title: str
    option1: str
    option2: str
    latitude: float
    longitude: float
    poll_time: int
    expiry_time: int
    creator: str
    transaction_hash: str


def _now(now: int | None) -> int:
    return int(time.time()) if now is None else now


def _require_poll(state: LedgerState, creator: str, index: int) -> PollRecord:
    poll = state.find_poll(creator, index)
    if poll is None:
        raise PollNotFoundError(creator, index)
    return poll


def _validate_draft(draft: PollDraft, max_title_length: int) -> None:
    title = draft.title.strip()
    if not title:
        raise InvalidPollError("Poll title is required")
    if len(title) > max_title_length:
        raise InvalidPollError(
            f"Poll title exceeds {max_title_length} characters"
        )
    if not draft.creator:
        raise InvalidPollError("Poll creator is required")
    if not draft.transaction_hash:
        raise InvalidPollError("Poll transaction hash is required")

    option1, option2 = draft.option1.strip(), draft.option2.strip()
    if not option1 or not option2:
        raise InvalidPollError("Both option labels are required")
    if option1 == option2:
        raise InvalidPollError(f"Option labels must differ, got {option1!r} twice")

    if not (-90 <= draft.latitude <= 90):
        raise InvalidPollError(f"Latitude must be between -90 and 90, got {draft.latitude}")
    if not (-180 <= draft.longitude <= 180):
        raise InvalidPollError(
            f"Longitude must be between -180 and 180, got {draft.longitude}"
        )
    if draft.expiry_time <= draft.poll_time:
        raise InvalidPollError(
            f"Expiry time ({draft.expiry_time}) must be after poll time ({draft.poll_time})"
        )


def to_snapshot(poll: PollRecord, stakes: list[StakeRecord]) -> Poll:
    """Build the engine's view of a stored poll."""
    return Poll(
        option_labels=poll.option_labels,
        stakes=tuple(s.to_stake() for s in stakes),
        is_finalized=poll.is_finalized,
        winning_option=poll.winning_option,
    )


def poll_status(poll: PollRecord, now: int | None = None) -> PollStatus:
    if poll.is_finalized:
        return PollStatus.FINALIZED
    if _now(now) >= poll.expiry_time:
        return PollStatus.EXPIRED
    return PollStatus.OPEN


def create_poll(
    store: LedgerStore,
    draft: PollDraft,
    settings: Settings | None = None,
) -> PollRecord:
    """Store a new poll under the creator's next sequential index."""
    settings = settings or get_settings()
    _validate_draft(draft, settings.polls.max_title_length)

    with store.transaction() as state:
        existing = state.polls_by(draft.creator)
        index = max((p.index for p in existing), default=-1) + 1

        poll = PollRecord(
            **draft.model_dump(),
            index=index,
            created_at=datetime.now(timezone.utc),
        )
        state.polls.append(poll)

    logger.info(f"Created poll {draft.creator}#{index}: {draft.title!r}")
    return poll


def get_poll(store: LedgerStore, creator: str, index: int) -> PollRecord:
    return _require_poll(store.read(), creator, index)


def list_polls(store: LedgerStore, creator: str | None = None) -> list[PollRecord]:
    """All polls (or one creator's), newest first."""
    state = store.read()
    polls = state.polls if creator is None else state.polls_by(creator)
    return sorted(polls, key=lambda p: p.created_at, reverse=True)


def count_active_polls(store: LedgerStore, now: int | None = None) -> int:
    """Polls that are neither finalized nor expired."""
    now = _now(now)
    return sum(
        1 for poll in store.read().polls if poll_status(poll, now) is PollStatus.OPEN
    )


def place_stake(
    store: LedgerStore,
    creator: str,
    index: int,
    voter: str,
    option: int,
    amount: int,
    transaction_hash: str = "",
    now: int | None = None,
    settings: Settings | None = None,
) -> StakeRecord:
    """Record a voter's single stake on an open poll."""
    settings = settings or get_settings()
    now = _now(now)

    if not voter:
        raise InvalidStakeError("Voter is required")
    if option not in OPTIONS:
        raise InvalidStakeError(f"Option must be 1 or 2, got {option}", voter=voter)
    if amount < settings.polls.min_stake_octas:
        raise InvalidStakeError(
            f"Stake of {amount} is below minimum {settings.polls.min_stake_octas}",
            voter=voter,
        )

    with store.transaction() as state:
        poll = _require_poll(state, creator, index)

        status = poll_status(poll, now)
        if status is not PollStatus.OPEN:
            raise InvalidStateError(
                f"Poll {creator}#{index} is {status.value}; stakes are closed"
            )
        if state.find_stake(creator, index, voter) is not None:
            raise DuplicateStakeError(
                f"{voter} already staked on poll {creator}#{index}"
            )

        record = StakeRecord(
            poll_creator=creator,
            poll_index=index,
            voter=voter,
            option=option,
            amount=amount,
            transaction_hash=transaction_hash,
            staked_at=datetime.now(timezone.utc),
        )
        state.stakes.append(record)

        if option == 1:
            poll.total_option1_stake += amount
        else:
            poll.total_option2_stake += amount

    logger.info(f"Stake on {creator}#{index}: {voter} -> option {option} ({amount})")
    return record


def check_stake(
    store: LedgerStore,
    creator: str,
    index: int,
    voter: str,
) -> StakeRecord | None:
    """The voter's stake on a poll, if any."""
    return store.read().find_stake(creator, index, voter)


def finalize_poll(
    store: LedgerStore,
    creator: str,
    index: int,
    winning_option: int,
    caller: str,
    transaction_hash: str = "",
    now: int | None = None,
    settings: Settings | None = None,
) -> PollRecord:
    """Declare the winning option. Creator-only, once, after expiry."""
    settings = settings or get_settings()
    now = _now(now)

    with store.transaction() as state:
        poll = _require_poll(state, creator, index)

        if caller != poll.creator:
            raise UnauthorizedError(
                f"Only the creator can finalize poll {creator}#{index}"
            )

        status = poll_status(poll, now)
        if status is PollStatus.OPEN and not settings.polls.allow_early_finalize:
            raise InvalidStateError(
                f"Poll {creator}#{index} has not expired yet (expires {poll.expiry_time})"
            )

        # Raises InvalidStateError on a second finalize or an unknown option
        to_snapshot(poll, []).finalize(winning_option)

        poll.is_finalized = True
        poll.winning_option = winning_option
        poll.finalized_at = datetime.now(timezone.utc)
        poll.finalization_tx_hash = transaction_hash or None

    logger.info(f"Finalized poll {creator}#{index}: winning option {winning_option}")
    return poll


def snapshot(store: LedgerStore, creator: str, index: int) -> Poll:
    state = store.read()
    poll = _require_poll(state, creator, index)
    return to_snapshot(poll, state.stakes_for(creator, index))


def preview_poll(
    store: LedgerStore,
    creator: str,
    index: int,
    winning_option: int,
) -> SettlementResult:
    """Projected payouts if ``winning_option`` wins. Any poll state."""
    return compute_preview_statistics(snapshot(store, creator, index).stakes, winning_option)


def preview_poll_outcomes(
    store: LedgerStore,
    creator: str,
    index: int,
) -> dict[int, SettlementResult]:
    return preview_outcomes(snapshot(store, creator, index).stakes)


def settle_poll(store: LedgerStore, creator: str, index: int) -> SettlementResult:
    """Final reward distribution for a finalized poll."""
    result = compute_settlement(snapshot(store, creator, index))
    logger.info(
        f"Settled poll {creator}#{index}: {result.winners_count} winners, "
        f"distributed {result.distributed} of {result.total_pool}"
    )
    return result
