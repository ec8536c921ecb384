"""
Submission rate limiting.

One accepted submission per client per cooldown window. Clients are keyed
by an HMAC of their address with a per-store server salt, so stored keys do
not reveal addresses.
"""

import hashlib
import hmac
import ipaddress
import math
import time
from typing import List, Mapping, Optional, Union

import structlog

from ..config import TrafficSettings
from . import records
from .exceptions import RateLimitError
from .metrics import MetricsCollector
from .store import AbstractStore

logger = structlog.get_logger(__name__)

SALT_NAMESPACE = "salt"
TRAFFIC_NAMESPACE = "traffic_limiter"

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


async def get_server_salt(store: AbstractStore) -> str:
    """Server-wide salt, generated on first use and kept in the store."""
    return await store.setdefault_value(SALT_NAMESPACE, records.new_salt())


def _parse_networks(entries: List[str]) -> List[Network]:
    return [ipaddress.ip_network(entry, strict=False) for entry in entries]


def _address_in(address: str, networks: List[Network]) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return any(ip in network for network in networks)


class RateLimiter:
    """
    Per-client cooldown between submissions.

    A create is refused while the client's last accepted create is within
    `limit` seconds. Refused attempts do not move the window.
    """

    def __init__(
        self,
        settings: TrafficSettings,
        store: AbstractStore,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.limit = settings.limit
        self.header = settings.header
        self.store = store
        self.metrics = metrics
        self.exempted = _parse_networks(settings.exempted)
        self.creators = _parse_networks(settings.creators)

    def client_address(self, headers: Mapping[str, str], peer: Optional[str]) -> str:
        """
        Address the limit applies to.

        With a configured header (e.g. X-Forwarded-For) the first listed
        address is used, falling back to the connection peer.
        """
        if self.header:
            forwarded = headers.get(self.header.lower()) or headers.get(self.header)
            if forwarded:
                return forwarded.split(",")[0].strip()
        return peer or ""

    async def client_key(self, address: str) -> str:
        salt = await get_server_salt(self.store)
        return hmac.new(salt.encode(), address.encode(), hashlib.sha512).hexdigest()

    def is_exempted(self, address: str) -> bool:
        return _address_in(address, self.exempted)

    def is_creator(self, address: str) -> bool:
        if not self.creators:
            return True
        return _address_in(address, self.creators)

    async def can_pass(self, address: str) -> None:
        """
        Check and record a submission attempt.

        Raises RateLimitError if the client is not allowed to submit now.
        """
        if not self.is_creator(address):
            logger.warning("Submission from address outside creators list")
            self._reject("not_creator")
            raise RateLimitError(message="Your IP is not authorized to create pastes.")

        if self.is_exempted(address):
            logger.debug("Address exempted from rate limit")
            return

        if self.limit < 1:
            return

        now = time.time()
        key = await self.client_key(address)
        await self.store.purge_values(TRAFFIC_NAMESPACE, now - self.limit)
        last = await self.store.record_if_elapsed(TRAFFIC_NAMESPACE, key, now, self.limit)

        if last is not None:
            retry_after = max(1, math.ceil(last + self.limit - now))
            logger.warning(
                "Rate limit exceeded",
                client=key[:8] + "...",
                retry_after=retry_after,
            )
            self._reject("rate_limited")
            raise RateLimitError(
                message=f"Please wait {self.limit} seconds between each post.",
                retry_after=retry_after,
            )

        logger.debug("Rate limit check passed", client=key[:8] + "...")

    def _reject(self, reason: str) -> None:
        if self.metrics:
            self.metrics.record_rejection(reason)
