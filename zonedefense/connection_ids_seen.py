"""Persistent record of connections the user has already been asked about."""

import asyncio
import json
import logging
import os
import tempfile
from typing import List, Optional, Set

from .errors import SeenStoreError

logger = logging.getLogger(__name__)

SEEN_FILE_NAME = "connectionIdsSeen.json"


class ConnectionIdsSeen:
    """Append-only set of connection ids, stored as a JSON list.

    :meth:`load` must be awaited before the set is queried. :meth:`mark_seen`
    only returns once the id is both on disk and visible to :meth:`is_new`.
    """

    def __init__(self, path: str):
        self.path = path
        self._ids: Set[str] = set()
        self._order: List[str] = []
        self._loaded = False
        self._lock: Optional[asyncio.Lock] = None

    @property
    def loaded(self) -> bool:
        return self._loaded

    def _get_lock(self) -> asyncio.Lock:
        # Created lazily so the lock binds to the loop that is running
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def load(self):
        """Read the stored ids. A missing file is an empty set."""
        try:
            ids = self._read_file()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load seen connections from {self.path}: {e}")
            raise SeenStoreError(
                f"Could not read {self.path}: {e}", fatal=True
            ) from e

        self._order = []
        self._ids = set()
        for connection_id in ids:
            if connection_id not in self._ids:
                self._ids.add(connection_id)
                self._order.append(connection_id)
        self._loaded = True
        logger.info("Loaded %d seen connection(s) from %s", len(self), self.path)

    def _read_file(self) -> List[str]:
        if not os.path.exists(self.path):
            logger.debug("No seen connections file at %s", self.path)
            return []

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
            raise ValueError("expected a JSON list of connection ids")
        return data

    def _write_file(self, ids: List[str]):
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".seen-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(ids, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def _ensure_loaded(self):
        if not self._loaded:
            raise SeenStoreError("Seen connections have not been loaded")

    async def is_new(self, connection_id: str) -> bool:
        """Return True if ``connection_id`` has never been marked seen."""
        self._ensure_loaded()
        async with self._get_lock():
            return connection_id not in self._ids

    async def mark_seen(self, connection_id: str):
        """Record ``connection_id`` as seen. Repeated calls are no-ops."""
        self._ensure_loaded()
        async with self._get_lock():
            if connection_id in self._ids:
                logger.debug("Connection %s already marked seen", connection_id)
                return

            updated = self._order + [connection_id]
            loop = asyncio.get_running_loop()
            try:
                # Keep the fsync off the main loop; the lock holds other writers back
                await loop.run_in_executor(None, self._write_file, updated)
            except OSError as e:
                logger.error(f"Failed to save seen connections to {self.path}: {e}")
                raise SeenStoreError(f"Could not write {self.path}: {e}") from e

            self._order = updated
            self._ids.add(connection_id)
            logger.info("Marked connection %s as seen", connection_id)

    def __len__(self) -> int:
        return len(self._order)
