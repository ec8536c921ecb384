"""
YOURLS URL shortener proxy.

Shortens links to pastes on this instance through a configured YOURLS
server, so the signature token never reaches the browser.
"""

import asyncio
from typing import Any, Optional

import aiohttp
import structlog

from ..config import YourlsSettings
from .exceptions import ProxyError

logger = structlog.get_logger(__name__)

FOREIGN_LINK_ERROR = "Trying to shorten a URL that isn't pointing at our instance."
CONFIG_ERROR = 'Error calling YOURLS. Probably a configuration issue, like wrong or missing "apiurl" or "signature".'
RESPONSE_ERROR = "Error parsing YOURLS response."


class YourlsProxy:
    """Thin aiohttp client for the YOURLS `shorturl` action."""

    def __init__(self, settings: YourlsSettings) -> None:
        self.settings = settings
        self.session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Open the HTTP session."""
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
        )

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def shorten(self, link: Any, url_base: str) -> str:
        """
        Return the short URL for a link to this instance.

        Raises ProxyError for foreign links, missing configuration or an
        unusable reply.
        """
        if not isinstance(link, str) or not link.startswith(f"{url_base}?"):
            raise ProxyError(FOREIGN_LINK_ERROR)

        if not self.settings.apiurl or not self.session:
            raise ProxyError(CONFIG_ERROR)

        payload = {
            "signature": self.settings.signature,
            "format": "json",
            "action": "shorturl",
            "url": link,
        }

        try:
            async with self.session.post(self.settings.apiurl, data=payload) as response:
                if response.status >= 400:
                    logger.error("YOURLS returned error", status=response.status)
                    raise ProxyError(CONFIG_ERROR, details={"status": response.status})
                reply = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("YOURLS request failed", error=str(e), error_type=type(e).__name__)
            raise ProxyError(CONFIG_ERROR)
        except ValueError:
            raise ProxyError(RESPONSE_ERROR)

        if not isinstance(reply, dict):
            raise ProxyError(RESPONSE_ERROR)

        if reply.get("statusCode") != 200 or not isinstance(reply.get("shorturl"), str):
            logger.warning("Unexpected YOURLS response", status_code=reply.get("statusCode"))
            raise ProxyError(RESPONSE_ERROR)

        return reply["shorturl"]
