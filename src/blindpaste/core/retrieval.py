"""
Paste retrieval for the data API.
"""

import time
from typing import Any, Dict, Optional

import structlog

from ..config import MainSettings
from . import records
from .exceptions import NotFoundError
from .metrics import MetricsCollector
from .store import AbstractStore

logger = structlog.get_logger(__name__)


class RetrievalService:
    """
    Loads a paste with its comment thread.

    Burn-after-read pastes are consumed by the store read itself, so
    concurrent readers cannot both receive one.
    """

    def __init__(
        self,
        settings: MainSettings,
        store: AbstractStore,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.show_comment_dates = settings.discussiondatedisplay
        self.store = store
        self.metrics = metrics

    async def read(self, paste_id: Any) -> Dict[str, Any]:
        if not records.is_valid_identifier(paste_id):
            raise NotFoundError()

        record = await self.store.read(paste_id)
        if record is None:
            raise NotFoundError()

        now = time.time()
        if records.is_expired(record, now):
            if await self.store.delete(paste_id) and self.metrics:
                self.metrics.record_paste_deleted("expired")
            logger.info("Expired paste evicted on read", paste_id=paste_id)
            raise NotFoundError()

        if records.is_burn_after_reading(record):
            logger.info("Burn after reading paste delivered", paste_id=paste_id)
            if self.metrics:
                self.metrics.record_paste_deleted("burn")

        comments = [
            records.public_comment(item["id"], item["record"], self.show_comment_dates)
            for item in await self.store.read_comments(paste_id)
        ]
        return records.public_paste(record, comments, now)
