"""
Token-authorized paste deletion.
"""

import time
from typing import Any, Optional

import structlog

from . import records
from .exceptions import AuthorizationError, NotFoundError
from .metrics import MetricsCollector
from .store import AbstractStore

logger = structlog.get_logger(__name__)

DELETED_STATUS = "Paste was properly deleted."


class DeletionAuthorizer:
    """
    Deletes a paste when presented with its delete token.

    Unknown, expired and already deleted pastes all produce the same
    NotFoundError. A wrong token produces AuthorizationError and leaves the
    paste untouched, including burn-after-read pastes.
    """

    def __init__(self, store: AbstractStore, metrics: Optional[MetricsCollector] = None) -> None:
        self.store = store
        self.metrics = metrics

    async def delete(self, paste_id: Any, token: Any) -> str:
        """Delete the paste, returning the status message."""
        if not records.is_valid_identifier(paste_id):
            raise NotFoundError()

        record = await self.store.peek(paste_id)
        if record is None:
            raise NotFoundError()

        if records.is_expired(record, time.time()):
            if await self.store.delete(paste_id) and self.metrics:
                self.metrics.record_paste_deleted("expired")
            logger.info("Expired paste evicted on delete", paste_id=paste_id)
            raise NotFoundError()

        expected = records.derive_delete_token(paste_id, record["meta"]["salt"])
        if not records.tokens_match(expected, token):
            logger.warning("Delete refused: wrong token", paste_id=paste_id)
            raise AuthorizationError()

        if not await self.store.delete(paste_id):
            # Removed by a concurrent purge or delete after the load.
            raise NotFoundError()

        if self.metrics:
            self.metrics.record_paste_deleted("token")
        logger.info("Paste deleted", paste_id=paste_id)
        return DELETED_STATUS
