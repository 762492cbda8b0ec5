"""
Handles the low-level HTTP side of a transfer: probing the size of a remote
file and streaming its body to disk.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

import aiohttp

from reelcache.exceptions import ProbeError

if TYPE_CHECKING:
    from aiofiles.threadpool.binary import AsyncBufferedIOBase

log = logging.getLogger(__name__)


class Downloader:
    """A low-level file downloader sharing one connection pool per instance."""

    CHUNK_SIZE = 262144  # 256 KB

    def __init__(
        self,
        max_connections: int = 8,
        probe_timeout: float = 30.0,
        connect_timeout: float = 15.0,
        read_timeout: float = 90.0,
    ):
        self.max_connections = max_connections
        self.probe_timeout = aiohttp.ClientTimeout(total=probe_timeout)
        self.body_timeout = aiohttp.ClientTimeout(
            total=None, sock_connect=connect_timeout, sock_read=read_timeout
        )
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        """
        Gets or creates the shared aiohttp ClientSession for transfers.

        Only one connection pool is created for the lifetime of the downloader.
        """
        async with self._session_lock:
            if self._session and not self._session.closed:
                return self._session

            connector = aiohttp.TCPConnector(
                limit=self.max_connections * 2,
                limit_per_host=self.max_connections,
                ttl_dns_cache=600,  # 10 minutes
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector, timeout=self.body_timeout
            )
            log.debug(f"Created download pool with limit_per_host={self.max_connections}")
        return self._session

    async def close(self) -> None:
        """Closes the shared connection pool."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
                log.debug("Downloader connection pool closed.")
            self._session = None

    async def probe_size(self, url: str) -> int:
        """
        Issues a HEAD request and returns the advertised Content-Length.

        Raises:
            ProbeError: If the request fails or the size is missing or unparsable.
        """
        session = await self._get_session()
        try:
            async with session.head(
                url, allow_redirects=True, timeout=self.probe_timeout
            ) as response:
                response.raise_for_status()
                raw_size = response.headers.get(aiohttp.hdrs.CONTENT_LENGTH)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProbeError(f"HEAD request for '{url}' failed: {e}") from e

        try:
            size = int(raw_size)
        except (TypeError, ValueError) as e:
            raise ProbeError(f"Unparsable Content-Length {raw_size!r}") from e
        if size < 0:
            raise ProbeError(f"Negative Content-Length {size}")
        return size

    async def stream_to_file(self, url: str, out: "AsyncBufferedIOBase") -> int:
        """
        Streams the body of ``url`` into an open binary file.

        Returns:
            The number of bytes written.
        """
        session = await self._get_session()
        written = 0
        async with session.get(url, allow_redirects=True) as response:
            response.raise_for_status()
            async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                await out.write(chunk)
                written += len(chunk)
        await out.flush()
        return written
