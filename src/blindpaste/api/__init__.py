"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- / - Paste create, read, delete, JSON-LD and link shortening
- /metrics - Prometheus metrics
- /healthz, /readyz - Health checks
"""
from .healthz import router as healthz_router
from .metrics import router as metrics_router
from .paste import router as paste_router

__all__ = ["healthz_router", "metrics_router", "paste_router"]
