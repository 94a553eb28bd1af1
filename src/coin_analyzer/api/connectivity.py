"""
Best-effort network reachability check run before an upload.

A positive answer does not guarantee the following request succeeds; it only
lets the client fail fast when the device is clearly offline.
"""

import asyncio
from abc import ABC, abstractmethod
from urllib.parse import urlsplit

from ..utils.log_utils import get_logger

logger = get_logger(__name__)


class ConnectivityProbe(ABC):
    """Answers whether the network currently looks usable."""

    @abstractmethod
    async def is_reachable(self) -> bool:
        pass


class TCPConnectivityProbe(ConnectivityProbe):
    """Reachable if a TCP connection to host:port can be opened."""

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port

    @classmethod
    def for_url(cls, url: str) -> "TCPConnectivityProbe":
        parts = urlsplit(url)
        if not parts.hostname:
            raise ValueError(f"URL has no host: {url!r}")
        port = parts.port or (443 if parts.scheme == "https" else 80)
        return cls(parts.hostname, port)

    async def is_reachable(self) -> bool:
        try:
            _, writer = await asyncio.open_connection(self.host, self.port)
        except OSError as err:
            logger.debug("Connectivity probe to %s:%d failed: %s", self.host, self.port, err)
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            # the connection was only opened to prove the route works
            pass
        return True


async def check_connectivity(probe: ConnectivityProbe, timeout: float) -> bool:
    """Race the probe against `timeout`; a probe that has not answered in time counts as offline."""
    try:
        return await asyncio.wait_for(probe.is_reachable(), timeout)
    except asyncio.TimeoutError:
        logger.warning("Connectivity check did not complete within %.1fs", timeout)
        return False
