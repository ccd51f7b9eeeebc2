"""Advisory file lock shared by every process that opens the same ledger."""

import fcntl
import os
from pathlib import Path


class FileLock:
    """Exclusive ``flock`` on a sidecar file, held for the ``with`` block."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._file = None

    def __enter__(self):
        os.makedirs(self.path.parent, exist_ok=True)
        self._file = open(self.path, "a+")
        fcntl.flock(self._file.fileno(), fcntl.LOCK_EX)
        return self._file

    def __exit__(self, exc_type, exc, tb):
        try:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        finally:
            self._file.close()
            self._file = None
