"""
Operation dispatcher.

Routes one classified request to exactly one handler and turns every
outcome, including unexpected exceptions, into a DispatchResult.
"""

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from .deletion import DeletionAuthorizer
from .exceptions import BlindPasteException
from .jsonld import get_context
from .metrics import MetricsCollector
from .pipeline import SubmissionPipeline
from .response import ResponseBuilder
from .retrieval import RetrievalService
from .shortener import YourlsProxy

logger = structlog.get_logger(__name__)

INTERNAL_ERROR = "An unexpected error occurred."


@dataclass
class RequestContext:
    """Transport facts a handler may need."""
    url_base: str
    client_address: str = ""
    json_api: bool = True


@dataclass
class DispatchResult:
    """
    Outcome of a dispatched operation.

    `json` is the data API body; `status` and `error` are the strings handed
    to the document view; `jsonld` is set by the metadata operation;
    `retry_after` carries the cooldown left on a rate-limited create.
    """
    operation: Optional[str]
    json: Optional[Dict[str, Any]] = None
    status: str = ""
    error: str = ""
    jsonld: Optional[Dict[str, Any]] = None
    retry_after: Optional[int] = None


Handler = Callable[[Dict[str, Any], RequestContext, ResponseBuilder, DispatchResult], Awaitable[None]]


class RequestDispatcher:
    """
    Stateless router for create, read, delete, metadata and proxy.

    Unknown operations run no handler and leave the result empty, so the
    transport falls through to the document view.
    """

    def __init__(
        self,
        pipeline: SubmissionPipeline,
        retrieval: RetrievalService,
        deletion: DeletionAuthorizer,
        shortener: YourlsProxy,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.pipeline = pipeline
        self.retrieval = retrieval
        self.deletion = deletion
        self.shortener = shortener
        self.metrics = metrics
        self._handlers: Dict[str, Handler] = {
            "create": self._create,
            "read": self._read,
            "delete": self._delete,
            "metadata": self._metadata,
            "proxy": self._proxy,
        }

    async def dispatch(
        self,
        operation: Optional[str],
        params: Dict[str, Any],
        context: RequestContext,
    ) -> DispatchResult:
        result = DispatchResult(operation=operation)
        handler = self._handlers.get(operation) if operation else None
        if handler is None:
            return result

        builder = ResponseBuilder(context.url_base)
        start_time = time.perf_counter()
        try:
            await handler(params, context, builder, result)
        except BlindPasteException as e:
            logger.info(
                "Operation refused",
                operation=operation,
                error_code=e.error_code,
                message=str(e),
            )
            self._fail(result, builder, context, str(e))
            result.retry_after = e.details.get("retry_after")
        except Exception as e:
            logger.error(
                "Unexpected exception during operation",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            self._fail(result, builder, context, INTERNAL_ERROR)

        if self.metrics:
            self.metrics.record_operation(
                operation,
                1 if result.error else 0,
                time.perf_counter() - start_time,
            )
        return result

    def _fail(
        self,
        result: DispatchResult,
        builder: ResponseBuilder,
        context: RequestContext,
        message: str,
    ) -> None:
        result.error = message
        result.status = ""
        if context.json_api and result.operation in ("create", "read", "delete"):
            result.json = builder.failure(message)

    async def _create(
        self,
        params: Dict[str, Any],
        context: RequestContext,
        builder: ResponseBuilder,
        result: DispatchResult,
    ) -> None:
        submission = await self.pipeline.submit(params, context.client_address)
        result.json = builder.success(submission.id, submission.extra)

    async def _read(
        self,
        params: Dict[str, Any],
        context: RequestContext,
        builder: ResponseBuilder,
        result: DispatchResult,
    ) -> None:
        # Reading is only served to the data API.
        if not context.json_api:
            return
        paste_id = params.get("pasteid")
        data = await self.retrieval.read(paste_id)
        result.json = builder.success(paste_id, data)

    async def _delete(
        self,
        params: Dict[str, Any],
        context: RequestContext,
        builder: ResponseBuilder,
        result: DispatchResult,
    ) -> None:
        paste_id = params.get("pasteid")
        result.status = await self.deletion.delete(paste_id, params.get("deletetoken"))
        if context.json_api:
            result.json = builder.success(paste_id)

    async def _metadata(
        self,
        params: Dict[str, Any],
        context: RequestContext,
        builder: ResponseBuilder,
        result: DispatchResult,
    ) -> None:
        result.jsonld = get_context(params.get("jsonld"), context.url_base)

    async def _proxy(
        self,
        params: Dict[str, Any],
        context: RequestContext,
        builder: ResponseBuilder,
        result: DispatchResult,
    ) -> None:
        result.status = await self.shortener.shorten(params.get("link"), context.url_base)
