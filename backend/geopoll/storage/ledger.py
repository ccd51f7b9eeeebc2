"""Poll ledger persistence with atomic writes to data/ledger.yaml.

The store is an explicit instance handed to the services, never module
state. Every read-modify-write cycle holds an exclusive lock on
``ledger.yaml.lock``, so a stake cannot land on a poll while it is being
finalized, whether the other writer is a thread or a separate CLI process.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import yaml

from geopoll.config import Settings, get_settings
from geopoll.storage.locks import FileLock
from geopoll.storage.models import LedgerState

logger = logging.getLogger(__name__)


class LedgerStore:
    """YAML-file-backed store for polls, stakes, and user profiles."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        # Threads of one process queue here before taking the file lock
        self._lock = threading.RLock()
        self._lock_depth = 0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> LedgerStore:
        settings = settings or get_settings()
        return cls(settings.ledger_path)

    def load(self) -> LedgerState:
        """Load the ledger, or an empty one if the file does not exist yet."""
        if not self.path.exists():
            logger.debug(f"Ledger file not found: {self.path}. Returning empty ledger.")
            return LedgerState()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Corrupted YAML in ledger file {self.path}: {e}")
            raise

        if not raw_data:
            logger.warning(f"Empty ledger file: {self.path}. Returning empty ledger.")
            return LedgerState()

        return LedgerState.model_validate(raw_data)

    def save(self, state: LedgerState) -> None:
        """Atomically save the ledger.

        Writes to a tempfile in the same directory, then renames it over the
        ledger, so a crash mid-write leaves the previous ledger intact.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        state.last_updated = datetime.now(timezone.utc)

        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=self.path.parent,
            delete=False,
            suffix=".yaml",
            encoding="utf-8",
        ) as temp_file:
            temp_path = Path(temp_file.name)
            try:
                yaml.dump(
                    state.model_dump(mode="json"),
                    temp_file,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                )
            except Exception:
                temp_file.close()
                temp_path.unlink(missing_ok=True)
                raise

        shutil.move(str(temp_path), str(self.path))
        logger.debug(f"Saved ledger to {self.path}")

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the ledger lock. Re-entrant within one thread."""
        with self._lock:
            if self._lock_depth:
                self._lock_depth += 1
                try:
                    yield
                finally:
                    self._lock_depth -= 1
                return

            with FileLock(self.lock_path):
                self._lock_depth = 1
                try:
                    yield
                finally:
                    self._lock_depth = 0

    def read(self) -> LedgerState:
        """Consistent read-only snapshot of the ledger."""
        with self.locked():
            return self.load()

    @contextmanager
    def transaction(self) -> Iterator[LedgerState]:
        """Load, let the caller mutate, then save, all under the ledger lock.

        If the block raises, nothing is written.
        """
        with self.locked():
            state = self.load()
            yield state
            self.save(state)
