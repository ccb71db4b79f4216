"""
IPFS daemon control surface.

Thin asyncio wrapper over ``ipfshttpclient``: probe, recursive add,
pin/unpin/list and shutdown. Blocking HTTP calls run in worker threads so a
slow daemon only suspends the awaiting coroutine.
"""

from typing import Optional, Set
from pathlib import Path
import asyncio
import logging

import ipfshttpclient
from ipfshttpclient.exceptions import Error as IPFSClientError

from aragon_desktop.errors import DaemonCommandError

logger = logging.getLogger(__name__)


class IPFSDaemonClient:
    """
    Commands issued to the local IPFS daemon.

    Content is only ever referenced by hash: the client never holds content
    bytes, it asks the daemon to add, pin and unpin.
    """

    def __init__(
        self,
        ipfs_addr: str = "/ip4/127.0.0.1/tcp/5001",
        timeout: float = 60,
        retry_attempts: int = 3,
        retry_backoff: float = 0.5,
    ):
        """
        Initialize daemon client.

        Args:
            ipfs_addr: IPFS daemon API address (multiaddr format)
            timeout: Timeout for IPFS operations (seconds)
            retry_attempts: Number of tries for transient IPFS failures
            retry_backoff: Base backoff (seconds) between retries
        """
        self.ipfs_addr = ipfs_addr
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff = max(0.1, retry_backoff)
        self._client = None

    @property
    def client(self):
        # Client() skips the version assertion connect() performs, so newer
        # daemons than the library knows about are still usable.
        if self._client is None:
            self._client = ipfshttpclient.Client(self.ipfs_addr, timeout=self.timeout)
        return self._client

    async def probe_version(self, timeout: float = 3.0) -> Optional[str]:
        """
        Ask the daemon for its version.

        Returns:
            Version string, or None if no daemon answered within ``timeout``
        """
        try:
            version = await asyncio.to_thread(self.client.version, timeout=timeout)
        except IPFSClientError as e:
            logger.debug(f"IPFS version probe at {self.ipfs_addr} failed: {e}")
            return None
        return version.get("Version", "unknown")

    async def add_recursive(self, path: Path) -> str:
        """
        Import a directory tree into the daemon.

        Returns:
            Hash of the root directory
        """
        path = Path(path)
        result = await self._run(self.client.add, str(path), recursive=True)

        entries = result if isinstance(result, list) else [result]
        if not entries:
            raise DaemonCommandError(f"IPFS add returned nothing for {path}")

        root = entries[-1]
        for entry in entries:
            if entry.get("Name") == path.name:
                root = entry
        logger.debug(f"Added {path} as {root['Hash']} ({len(entries)} objects)")
        return root["Hash"]

    async def pin(self, content_hash: str):
        await self._run(self.client.pin.add, content_hash)
        logger.debug(f"Pinned {content_hash}")

    async def unpin(self, content_hash: str):
        await self._run(self.client.pin.rm, content_hash)
        logger.debug(f"Unpinned {content_hash}")

    async def list_pinned(self) -> Set[str]:
        """List recursively pinned hashes (indirect pins cannot be removed on their own)."""
        pins = await self._run(self.client.pin.ls, type="recursive")
        return set(pins["Keys"].keys())

    async def stop(self):
        """Ask the daemon to shut down gracefully."""
        await self._run(self.client.stop)
        logger.info(f"Requested IPFS daemon shutdown at {self.ipfs_addr}")

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None

    async def _run(self, func, *args, **kwargs):
        """Run a blocking client call off the loop, retrying transient IPFS errors with backoff."""
        attempt = 0
        while True:
            try:
                return await asyncio.to_thread(func, *args, **kwargs)
            except IPFSClientError as exc:
                attempt += 1
                if attempt >= self.retry_attempts:
                    raise DaemonCommandError(str(exc)) from exc
                delay = self.retry_backoff * (2 ** (attempt - 1))
                logger.warning(
                    f"IPFS operation failed (attempt {attempt}/{self.retry_attempts}): {exc}. "
                    f"Retrying in {delay:.2f}s"
                )
                await asyncio.sleep(delay)
