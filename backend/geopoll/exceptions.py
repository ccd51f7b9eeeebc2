class GeoPollError(Exception):
    """Base exception for GeoPoll errors."""

    pass


class PollNotFoundError(GeoPollError):
    """No poll exists for the given (creator, index) key."""

    def __init__(self, creator: str, index: int):
        super().__init__(f"Poll not found: {creator}#{index}")
        self.creator = creator
        self.index = index


class InvalidPollError(GeoPollError):
    """Poll draft failed validation."""

    pass


class DuplicateStakeError(GeoPollError):
    """Voter already staked on this poll."""

    pass


class UnauthorizedError(GeoPollError):
    """Caller is not allowed to perform this action."""

    pass


class UserRegistryError(GeoPollError):
    """Base exception for username registration errors."""

    pass


class InvalidUsernameError(UserRegistryError):
    """Username does not match the allowed format."""

    pass


class UsernameTakenError(UserRegistryError):
    """Username already registered (case-insensitive)."""

    pass


class WalletAlreadyRegisteredError(UserRegistryError):
    """Wallet address already has a username."""

    pass
