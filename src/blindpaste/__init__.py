"""
BlindPaste - zero-knowledge paste storage

A FastAPI-based backend that stores client-side encrypted pastes and
comments under an expiration / burn-after-read policy, with per-client
rate limiting, opportunistic purging and token-authorized deletion.
"""

__version__ = "0.1.0"

from .main import app

__all__ = ["app"]
