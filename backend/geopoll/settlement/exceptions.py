from geopoll.exceptions import GeoPollError


class SettlementError(GeoPollError):
    """Base exception for settlement errors. Never retryable."""

    pass


class InvalidStateError(SettlementError):
    """Poll is in the wrong lifecycle state or has no valid winning option."""

    pass


class InvalidStakeError(SettlementError):
    """Stake has a negative amount or an option outside {1, 2}."""

    def __init__(self, message: str, voter: str | None = None):
        super().__init__(message)
        self.voter = voter
