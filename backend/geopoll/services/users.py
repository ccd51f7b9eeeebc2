"""Wallet address to username registry."""

import logging
import re
from datetime import datetime, timezone

from geopoll.exceptions import (
    InvalidUsernameError,
    UsernameTakenError,
    WalletAlreadyRegisteredError,
)
from geopoll.storage import LedgerStore, UserProfile

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9_]{3,20}")


def register_user(store: LedgerStore, wallet_address: str, username: str) -> UserProfile:
    """Bind a username to a wallet. Usernames are unique case-insensitively."""
    if not wallet_address:
        raise InvalidUsernameError("Wallet address is required")
    if not USERNAME_PATTERN.fullmatch(username):
        raise InvalidUsernameError(
            "Username must be 3-20 characters and contain only letters, "
            "numbers, and underscores"
        )

    with store.transaction() as state:
        if state.find_username(username) is not None:
            raise UsernameTakenError(f"Username already taken: {username}")
        if state.find_user(wallet_address) is not None:
            raise WalletAlreadyRegisteredError(
                f"Wallet already has a username: {wallet_address}"
            )

        profile = UserProfile(
            wallet_address=wallet_address,
            username=username,
            created_at=datetime.now(timezone.utc),
        )
        state.users.append(profile)

    logger.info(f"Registered username {username} for {wallet_address}")
    return profile


def lookup_user(store: LedgerStore, wallet_address: str) -> UserProfile | None:
    return store.read().find_user(wallet_address)
