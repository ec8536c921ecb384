"""
Submission pipeline for new pastes and comments.

Orchestrates the gates every submission passes, in order:
1. Rate limiting (per client cooldown)
2. Envelope validation (paste or comment shape)
3. Size limit on the ciphertext
4. Persistence: comment attached to a live paste, or a new paste written
   after an opportunistic purge of expired ones

Any gate may refuse the submission by raising a BlindPasteException; the
store is never written for a refused submission.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from ..config import Settings
from ..models.envelope import CommentEnvelope, PasteEnvelope, is_comment_submission, validate_envelope
from . import records
from .exceptions import ValidationError
from .filters import format_human_readable_size
from .limiter import RateLimiter
from .metrics import MetricsCollector
from .purge import PurgeScheduler
from .store import AbstractStore

logger = structlog.get_logger(__name__)


@dataclass
class SubmissionResult:
    """Identifier of the stored item plus fields returned alongside it."""
    id: str
    extra: Dict[str, Any] = field(default_factory=dict)


class SubmissionPipeline:
    """
    Validates and persists new pastes and comments.
    """

    def __init__(
        self,
        settings: Settings,
        store: AbstractStore,
        rate_limiter: RateLimiter,
        purge_scheduler: PurgeScheduler,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.rate_limiter = rate_limiter
        self.purge_scheduler = purge_scheduler
        self.metrics = metrics
        logger.info("Submission pipeline initialized", has_metrics=metrics is not None)

    async def submit(self, data: Dict[str, Any], client_address: str) -> SubmissionResult:
        """Run a submission through every gate and store it."""
        await self.rate_limiter.can_pass(client_address)

        is_comment = isinstance(data, dict) and is_comment_submission(data)
        try:
            envelope = validate_envelope(data, is_comment)
        except ValidationError:
            self._reject("invalid")
            raise

        self._check_size(envelope.ct)

        if isinstance(envelope, CommentEnvelope):
            return await self._create_comment(envelope, data)
        return await self._create_paste(envelope, data)

    def _check_size(self, ciphertext: str) -> None:
        size_limit = self.settings.main.sizelimit
        size = len(ciphertext.encode("utf-8"))
        if size > size_limit:
            logger.info("Submission too large", size_bytes=size, size_limit=size_limit)
            self._reject("too_large")
            raise ValidationError(
                f"Paste is limited to {format_human_readable_size(size_limit)} of encrypted data.",
                details={"size_limit": size_limit},
            )

    async def _create_paste(self, envelope: PasteEnvelope, data: Dict[str, Any]) -> SubmissionResult:
        await self.purge_scheduler.maybe_purge()

        self._check_paste_options(data["adata"])

        now = int(time.time())
        paste_id = records.new_identifier()
        salt = records.new_salt()
        meta: Dict[str, Any] = {"created": now, "salt": salt}
        seconds = self._expiration_seconds(envelope.meta["expire"])
        if seconds > 0:
            meta["expire_date"] = now + seconds

        record = {
            "v": data["v"],
            "ct": data["ct"],
            "adata": data["adata"],
            "meta": meta,
        }
        await self.store.create(paste_id, record)

        if self.metrics:
            self.metrics.record_paste_created(len(envelope.ct))
        logger.info(
            "Paste created",
            paste_id=paste_id,
            expires_in=seconds or None,
            burn_after_reading=records.is_burn_after_reading(record),
        )
        return SubmissionResult(
            id=paste_id,
            extra={"deletetoken": records.derive_delete_token(paste_id, salt)},
        )

    async def _create_comment(self, envelope: CommentEnvelope, data: Dict[str, Any]) -> SubmissionResult:
        paste_id = envelope.pasteid
        parent_id = envelope.parentid

        paste = await self.store.peek(paste_id)
        if paste is None:
            self._reject("invalid")
            raise ValidationError()

        if records.is_expired(paste, time.time()):
            if await self.store.delete(paste_id) and self.metrics:
                self.metrics.record_paste_deleted("expired")
            self._reject("invalid")
            raise ValidationError()

        if not self.settings.main.discussion or not records.is_open_discussion(paste):
            logger.info("Comment refused: discussion closed", paste_id=paste_id)
            self._reject("invalid")
            raise ValidationError()

        if parent_id != paste_id and not await self.store.exists_comment(paste_id, parent_id):
            self._reject("invalid")
            raise ValidationError()

        comment_id = records.new_identifier()
        record = {
            "v": data["v"],
            "ct": data["ct"],
            "adata": data["adata"],
            "meta": {"created": int(time.time())},
        }
        await self.store.create_comment(paste_id, parent_id, comment_id, record)

        if self.metrics:
            self.metrics.record_comment_created(len(envelope.ct))
        logger.info("Comment created", paste_id=paste_id, comment_id=comment_id, parent_id=parent_id)
        return SubmissionResult(id=comment_id)

    def _check_paste_options(self, adata: List[Any]) -> None:
        """Formatter must be offered; discussion flags must be 0/1 and consistent."""
        formatter = adata[records.ADATA_FORMATTER]
        open_discussion = adata[records.ADATA_OPEN_DISCUSSION]
        burn_after_reading = adata[records.ADATA_BURN_AFTER_READING]

        if formatter not in self.settings.formatter_options:
            self._reject("invalid")
            raise ValidationError()

        if open_discussion not in (0, 1) or burn_after_reading not in (0, 1):
            self._reject("invalid")
            raise ValidationError()

        if open_discussion == 1 and (not self.settings.main.discussion or burn_after_reading == 1):
            self._reject("invalid")
            raise ValidationError()

    def _expiration_seconds(self, choice: str) -> int:
        """Seconds until expiry for a choice; unknown choices use the default."""
        options = self.settings.expire_options
        if choice in options:
            return options[choice]
        return options[self.settings.expire.default]

    def _reject(self, reason: str) -> None:
        if self.metrics:
            self.metrics.record_rejection(reason)
