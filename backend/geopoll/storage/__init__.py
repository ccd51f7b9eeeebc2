"""Storage layer for GeoPoll - file-based ledger of polls, stakes, and users.

All documents are Pydantic models; writes are atomic (tempfile + rename).
"""

from .ledger import LedgerStore
from .models import LedgerState, PollRecord, StakeRecord, UserProfile

__all__ = [
    "LedgerStore",
    "LedgerState",
    "PollRecord",
    "StakeRecord",
    "UserProfile",
]
