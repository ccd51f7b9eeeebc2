from .polls import (
    PollDraft,
    check_stake,
    count_active_polls,
    create_poll,
    finalize_poll,
    get_poll,
    list_polls,
    place_stake,
    poll_status,
    preview_poll,
    preview_poll_outcomes,
    settle_poll,
    snapshot,
    to_snapshot,
)
from .portfolio import HostedPoll, ParticipatedPoll, Portfolio, build_portfolio
from .users import lookup_user, register_user

__all__ = [
    "PollDraft",
    "check_stake",
    "count_active_polls",
    "create_poll",
    "finalize_poll",
    "get_poll",
    "list_polls",
    "place_stake",
    "poll_status",
    "preview_poll",
    "preview_poll_outcomes",
    "settle_poll",
    "snapshot",
    "to_snapshot",
    "HostedPoll",
    "ParticipatedPoll",
    "Portfolio",
    "build_portfolio",
    "lookup_user",
    "register_user",
]
