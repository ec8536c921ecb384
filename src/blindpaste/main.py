"""
Main FastAPI application entry point.

This module sets up the FastAPI app with all middleware, routes, and lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import healthz_router, metrics_router, paste_router
from .config import get_settings
from .core.deletion import DeletionAuthorizer
from .core.dispatcher import INTERNAL_ERROR, RequestDispatcher
from .core.limiter import RateLimiter
from .core.metrics import MetricsCollector
from .core.pipeline import SubmissionPipeline
from .core.purge import PurgeScheduler
from .core.retrieval import RetrievalService
from .core.shortener import YourlsProxy
from .core.store import create_store


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    # Silence the verbose watchfiles logger
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler() -> Any:
    """Create the lifespan handler wiring the paste services."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Builds the store once from configuration and hands it to every
        service; opens and closes the shortener HTTP session.
        """
        logger = structlog.get_logger(__name__)
        settings = get_settings()
        logger.info("Starting BlindPaste service", version=app.version)

        metrics = MetricsCollector()
        store = create_store(settings.model)

        rate_limiter = RateLimiter(settings.traffic, store, metrics)
        purge_scheduler = PurgeScheduler(settings.purge, store, metrics)
        pipeline = SubmissionPipeline(settings, store, rate_limiter, purge_scheduler, metrics)
        retrieval = RetrievalService(settings.main, store, metrics)
        deletion = DeletionAuthorizer(store, metrics)

        shortener = YourlsProxy(settings.yourls)
        await shortener.start()

        app.state.metrics = metrics
        app.state.store = store
        app.state.rate_limiter = rate_limiter
        app.state.dispatcher = RequestDispatcher(pipeline, retrieval, deletion, shortener, metrics)

        try:
            logger.info(
                "BlindPaste service started successfully",
                store=settings.model.backend,
                size_limit=settings.main.sizelimit,
                traffic_limit=settings.traffic.limit,
                purge_limit=settings.purge.limit,
            )
            yield
        finally:
            logger.info("Shutting down BlindPaste service")
            await shortener.stop()
            logger.info("BlindPaste service shutdown complete")

    return lifespan


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function ensures all configuration is applied
    whether running via FastAPI CLI or direct execution.
    """
    settings = get_settings()

    configure_logging(settings.log_level)

    app = FastAPI(
        title="BlindPaste",
        description="Zero-knowledge paste storage",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=create_lifespan_handler(),
    )

    return app


# Create the app instance
app = create_app()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["X-Requested-With", "Content-Type"],
)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger = structlog.get_logger(__name__)
    logger.error(
        "Unexpected exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "status": 1,
            "message": INTERNAL_ERROR,
        },
    )


# Include routers
app.include_router(healthz_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(paste_router, tags=["pastes"])


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "blindpaste.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
