"""
Paste storage.

Defines the store contract the services depend on, the in-memory backend
and the registry used to build the configured backend once at startup.
"""

import asyncio
import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type

import structlog

from ..config import ModelSettings
from . import records
from .exceptions import ConfigurationError, StoreConflictError, StoreError

logger = structlog.get_logger(__name__)


class AbstractStore(ABC):
    """
    Storage contract.

    Implementations must make each method atomic with respect to every other
    method on the same store: create-if-absent, burn-after-read consumption,
    check-and-record of timestamps and delete vs. purge of one id rely on it.
    """

    @abstractmethod
    async def exists(self, paste_id: str) -> bool:
        """Whether a paste record is stored under this id."""

    @abstractmethod
    async def create(self, paste_id: str, record: Dict[str, Any]) -> None:
        """Store a new paste. Raises StoreConflictError if the id is taken."""

    @abstractmethod
    async def read(self, paste_id: str) -> Optional[Dict[str, Any]]:
        """
        Load a paste.

        Burn-after-read pastes are removed, with their comments, in the same
        step, so only one caller ever receives them.
        """

    @abstractmethod
    async def peek(self, paste_id: str) -> Optional[Dict[str, Any]]:
        """Load a paste without consuming it."""

    @abstractmethod
    async def delete(self, paste_id: str) -> bool:
        """Remove a paste and its comments. False if nothing was stored."""

    @abstractmethod
    async def purge_expired(self, batch_size: int, now: float) -> int:
        """Remove up to batch_size pastes expired before now, return the count."""

    @abstractmethod
    async def create_comment(
        self,
        paste_id: str,
        parent_id: str,
        comment_id: str,
        record: Dict[str, Any],
    ) -> None:
        """Attach a comment to a stored paste. Raises StoreConflictError if taken."""

    @abstractmethod
    async def read_comments(self, paste_id: str) -> List[Dict[str, Any]]:
        """Comments of a paste as {"id", "record"} dicts ordered by creation."""

    @abstractmethod
    async def exists_comment(self, paste_id: str, comment_id: str) -> bool:
        """Whether the paste has a comment with this id."""

    @abstractmethod
    async def record_if_elapsed(
        self,
        namespace: str,
        key: str,
        now: float,
        interval: float,
    ) -> Optional[float]:
        """
        Check-and-record a timestamp.

        If no timestamp is stored for the key, or the stored one is more than
        `interval` seconds old, store `now` and return None. Otherwise leave
        it untouched and return it.
        """

    @abstractmethod
    async def purge_values(self, namespace: str, older_than: float) -> int:
        """Drop timestamps in a namespace older than the given time."""

    @abstractmethod
    async def setdefault_value(self, namespace: str, value: str, key: str = "") -> str:
        """Store value if the key is empty, return whatever is stored."""

    @abstractmethod
    async def ping(self) -> bool:
        """Health check."""


class MemoryStore(AbstractStore):
    """
    In-process store.

    Every operation runs under one asyncio lock. Records are copied on the
    way in and out so callers never share state with the store.
    """

    def __init__(self, options: Optional[Dict[str, Any]] = None) -> None:
        self.options = options or {}
        self._pastes: Dict[str, Dict[str, Any]] = {}
        self._comments: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._values: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def exists(self, paste_id: str) -> bool:
        async with self._lock:
            return paste_id in self._pastes

    async def create(self, paste_id: str, record: Dict[str, Any]) -> None:
        async with self._lock:
            if paste_id in self._pastes:
                raise StoreConflictError()
            self._pastes[paste_id] = copy.deepcopy(record)
            self._comments[paste_id] = {}

    async def read(self, paste_id: str) -> Optional[Dict[str, Any]]:
        async with self._lock:
            record = self._pastes.get(paste_id)
            if record is None:
                return None
            if records.is_burn_after_reading(record):
                self._remove(paste_id)
                logger.debug("Burn after reading paste consumed", paste_id=paste_id)
                return record
            return copy.deepcopy(record)

    async def peek(self, paste_id: str) -> Optional[Dict[str, Any]]:
        async with self._lock:
            record = self._pastes.get(paste_id)
            return copy.deepcopy(record) if record is not None else None

    async def delete(self, paste_id: str) -> bool:
        async with self._lock:
            return self._remove(paste_id)

    async def purge_expired(self, batch_size: int, now: float) -> int:
        if batch_size < 1:
            return 0
        async with self._lock:
            expired = [
                paste_id
                for paste_id, record in self._pastes.items()
                if records.is_expired(record, now)
            ][:batch_size]
            for paste_id in expired:
                self._remove(paste_id)
            return len(expired)

    async def create_comment(
        self,
        paste_id: str,
        parent_id: str,
        comment_id: str,
        record: Dict[str, Any],
    ) -> None:
        async with self._lock:
            if paste_id not in self._pastes:
                raise StoreError("Invalid data.")
            comments = self._comments.setdefault(paste_id, {})
            if comment_id in comments:
                raise StoreConflictError()
            stored = copy.deepcopy(record)
            stored["pasteid"] = paste_id
            stored["parentid"] = parent_id
            comments[comment_id] = stored

    async def read_comments(self, paste_id: str) -> List[Dict[str, Any]]:
        async with self._lock:
            comments = self._comments.get(paste_id, {})
            ordered = sorted(
                comments.items(),
                key=lambda item: (item[1].get("meta", {}).get("created", 0), item[0]),
            )
            return [
                {"id": comment_id, "record": copy.deepcopy(record)}
                for comment_id, record in ordered
            ]

    async def exists_comment(self, paste_id: str, comment_id: str) -> bool:
        async with self._lock:
            return comment_id in self._comments.get(paste_id, {})

    async def record_if_elapsed(
        self,
        namespace: str,
        key: str,
        now: float,
        interval: float,
    ) -> Optional[float]:
        async with self._lock:
            values = self._values.setdefault(namespace, {})
            last = values.get(key)
            if last is not None and last + interval >= now:
                return last
            values[key] = now
            return None

    async def purge_values(self, namespace: str, older_than: float) -> int:
        async with self._lock:
            values = self._values.get(namespace, {})
            stale = [key for key, stamp in values.items() if stamp < older_than]
            for key in stale:
                del values[key]
            return len(stale)

    async def setdefault_value(self, namespace: str, value: str, key: str = "") -> str:
        async with self._lock:
            return self._values.setdefault(namespace, {}).setdefault(key, value)

    async def ping(self) -> bool:
        return True

    def _remove(self, paste_id: str) -> bool:
        """Drop a paste with its comments. Caller holds the lock."""
        self._comments.pop(paste_id, None)
        return self._pastes.pop(paste_id, None) is not None


STORE_BACKENDS: Dict[str, Type[AbstractStore]] = {
    "memory": MemoryStore,
}


def create_store(settings: ModelSettings) -> AbstractStore:
    """Build the configured store backend."""
    backend = settings.backend.lower()
    if backend not in STORE_BACKENDS:
        raise ConfigurationError(
            f"Unknown store backend '{settings.backend}'",
            details={"available": sorted(STORE_BACKENDS)},
        )

    store = STORE_BACKENDS[backend](settings.options)
    logger.info("Store initialized", backend=backend)
    return store
