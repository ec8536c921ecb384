"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

import base64
import os
from typing import Any, Callable, Dict, Generator, List
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from blindpaste.config import Settings, reload_settings
from blindpaste.core.deletion import DeletionAuthorizer
from blindpaste.core.dispatcher import RequestContext, RequestDispatcher
from blindpaste.core.limiter import RateLimiter
from blindpaste.core.metrics import MetricsCollector
from blindpaste.core.pipeline import SubmissionPipeline
from blindpaste.core.purge import PurgeScheduler
from blindpaste.core.retrieval import RetrievalService
from blindpaste.core.shortener import YourlsProxy
from blindpaste.core.store import MemoryStore
from blindpaste.main import app

URL_BASE = "https://paste.example.com/"


def random_b64(size: int) -> str:
    return base64.b64encode(os.urandom(size)).decode()


def cipher_params() -> List[Any]:
    """Cipher parameters as produced by the browser client."""
    return [random_b64(16), random_b64(8), 100000, 256, 128, "aes", "gcm", "zlib"]


@pytest.fixture
def test_config() -> Dict[str, Any]:
    """Test configuration data."""
    return {
        "log_level": "DEBUG",
        "main": {
            "name": "BlindPaste Test",
            "discussion": True,
            "sizelimit": 4096,
        },
        "expire": {"default": "1week"},
        "traffic": {
            "limit": 0,  # disabled unless a test turns it on
            "exempted": [],
            "creators": [],
        },
        "purge": {
            "limit": 0,
            "batchsize": 10,
        },
        "model": {"backend": "memory"},
    }


@pytest.fixture
def settings(test_config: Dict[str, Any]) -> Settings:
    return Settings(**test_config)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def rate_limiter(settings: Settings, store: MemoryStore, metrics: MetricsCollector) -> RateLimiter:
    return RateLimiter(settings.traffic, store, metrics)


@pytest.fixture
def purge_scheduler(settings: Settings, store: MemoryStore, metrics: MetricsCollector) -> PurgeScheduler:
    return PurgeScheduler(settings.purge, store, metrics)


@pytest.fixture
def pipeline(
    settings: Settings,
    store: MemoryStore,
    rate_limiter: RateLimiter,
    purge_scheduler: PurgeScheduler,
    metrics: MetricsCollector,
) -> SubmissionPipeline:
    return SubmissionPipeline(settings, store, rate_limiter, purge_scheduler, metrics)


@pytest.fixture
def retrieval(settings: Settings, store: MemoryStore, metrics: MetricsCollector) -> RetrievalService:
    return RetrievalService(settings.main, store, metrics)


@pytest.fixture
def deletion(store: MemoryStore, metrics: MetricsCollector) -> DeletionAuthorizer:
    return DeletionAuthorizer(store, metrics)


@pytest.fixture
def dispatcher(
    settings: Settings,
    pipeline: SubmissionPipeline,
    retrieval: RetrievalService,
    deletion: DeletionAuthorizer,
    metrics: MetricsCollector,
) -> RequestDispatcher:
    return RequestDispatcher(pipeline, retrieval, deletion, YourlsProxy(settings.yourls), metrics)


@pytest.fixture
def json_context() -> RequestContext:
    return RequestContext(url_base=URL_BASE, client_address="203.0.113.7", json_api=True)


@pytest.fixture
def make_paste() -> Callable[..., Dict[str, Any]]:
    """Factory for valid paste submissions."""
    def factory(
        expire: str = "1day",
        formatter: str = "plaintext",
        open_discussion: int = 0,
        burn_after_reading: int = 0,
        ct_size: int = 256,
    ) -> Dict[str, Any]:
        return {
            "v": 2,
            "ct": random_b64(ct_size),
            "adata": [cipher_params(), formatter, open_discussion, burn_after_reading],
            "meta": {"expire": expire},
        }
    return factory


@pytest.fixture
def make_comment() -> Callable[..., Dict[str, Any]]:
    """Factory for valid comment submissions."""
    def factory(pasteid: str, parentid: str, ct_size: int = 128) -> Dict[str, Any]:
        return {
            "v": 2,
            "ct": random_b64(ct_size),
            "adata": cipher_params(),
            "pasteid": pasteid,
            "parentid": parentid,
        }
    return factory


@pytest.fixture
def test_client(test_config: Dict[str, Any]) -> Generator[TestClient, None, None]:
    """FastAPI test client with test configuration."""
    with patch("blindpaste.config.load_config_file") as mock_load:
        mock_load.return_value = test_config

        # Reload settings to pick up test config
        reload_settings()

        with TestClient(app) as client:
            yield client

    reload_settings()


@pytest.fixture
def json_headers() -> Dict[str, str]:
    return {"X-Requested-With": "JSONHttpRequest"}
