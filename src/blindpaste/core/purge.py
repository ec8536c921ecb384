"""
Opportunistic purge of expired pastes.

Paste creation calls `maybe_purge` before writing. A pass runs at most once
per configured interval and removes a bounded batch, so the latency added
to a create stays small. Failures never reach the caller.
"""

import time
from typing import Optional

import structlog

from ..config import PurgeSettings
from .metrics import MetricsCollector
from .store import AbstractStore

logger = structlog.get_logger(__name__)

PURGE_NAMESPACE = "purge_limiter"


class PurgeScheduler:
    """Interval-limited, batch-bounded purge of expired pastes."""

    def __init__(
        self,
        settings: PurgeSettings,
        store: AbstractStore,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.limit = settings.limit
        self.batch_size = settings.batchsize
        self.store = store
        self.metrics = metrics

    async def is_due(self, now: float) -> bool:
        """Claim the next purge slot if the interval has elapsed."""
        if self.limit < 1:
            return True
        last = await self.store.record_if_elapsed(PURGE_NAMESPACE, "", now, self.limit)
        return last is None

    async def maybe_purge(self) -> int:
        """
        Run a purge pass if one is due.

        Returns the number of pastes removed; 0 when skipped or failed.
        """
        now = time.time()
        try:
            if not await self.is_due(now):
                self._record("skipped")
                return 0

            purged = await self.store.purge_expired(self.batch_size, now)
        except Exception as e:
            logger.warning(
                "Purge pass failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            self._record("failed")
            return 0

        logger.info("Purge pass completed", purged=purged, batch_size=self.batch_size)
        self._record("ran", purged)
        return purged

    def _record(self, outcome: str, purged: int = 0) -> None:
        if self.metrics:
            self.metrics.record_purge(outcome, purged)
