"""
Canonical result structure returned to data API clients.

- status 0: id, url (base + "?" + id) and any extra fields
- status 1: human-readable message
"""

from typing import Any, Dict, Optional


class ResponseBuilder:
    """Pure assembly of `{status, ...}` results for one URL base."""

    def __init__(self, url_base: str) -> None:
        self.url_base = url_base

    def build(self, status: int, message: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        result: Dict[str, Any] = {"status": status}
        if status:
            result["message"] = message
        else:
            result["id"] = message
            result["url"] = f"{self.url_base}?{message}"

        # Extra fields never override the ones set above.
        for key, value in (extra or {}).items():
            result.setdefault(key, value)
        return result

    def success(self, identifier: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.build(0, identifier, extra)

    def failure(self, message: str) -> Dict[str, Any]:
        return self.build(1, message)
