"""
IPFS pin cache for the Aragon client.

Keeps the client version of every network we have resolved pinned on the
local daemon, pins resources the client fetches while running, and unpins
everything else.

Purge-safety rules:
- a network's hash becomes current only after it has been pinned, so a failed
  pin keeps the previous version current (and therefore pinned);
- a superseded hash is never unpinned by ``pin_for_network`` itself, only by a
  later purge;
- pins and purges are serialized through one lock;
- a resolution that started before the one already committed for the same
  network is discarded (last resolution wins).
"""

import asyncio
import itertools
import logging
import re
from typing import Dict, List, Optional, Set

from aragon_desktop.backends.ipfs_daemon import IPFSDaemonClient
from aragon_desktop.errors import BackgroundPinFailure, DaemonCommandError, PinFailure

logger = logging.getLogger(__name__)

IPFS_PATH_REGEX = re.compile(r"/ipfs/([A-Za-z0-9]+)")

_CLOSED = object()


def content_hash_from_url(url: str) -> Optional[str]:
    """Extract the content hash from a gateway URL (``.../ipfs/<hash>/...``)."""
    match = IPFS_PATH_REGEX.search(url)
    return match.group(1) if match else None


class ResourceFeed:
    """
    Bounded channel of content hashes discovered at runtime.

    Publishing never blocks: when the queue is full the hash is dropped, since
    pinning resources is best-effort.
    """

    def __init__(self, maxsize: int = 256):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def publish(self, content_hash: str) -> bool:
        try:
            self._queue.put_nowait(content_hash)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Resource queue full, not pinning {content_hash}")
            return False
        return True

    def publish_url(self, url: str) -> bool:
        content_hash = content_hash_from_url(url)
        if content_hash is None:
            return False
        return self.publish(content_hash)

    async def get(self):
        return await self._queue.get()

    def close(self) -> bool:
        """Signal the consumer to stop. Returns False if the signal could not be queued."""
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            return False
        return True


class PinCacheManager:
    """
    Pins the current client per network and garbage-collects the rest.

    Tracks:
    - current: network -> hash of the client version currently in use
    - session_resources: hashes pinned by the resource listener this session
    """

    def __init__(self, daemon: IPFSDaemonClient, feed: Optional[ResourceFeed] = None):
        self.daemon = daemon
        self.feed = feed or ResourceFeed()
        self.current: Dict[str, str] = {}
        self.session_resources: Set[str] = set()

        self._lock = asyncio.Lock()
        self._tokens = itertools.count(1)
        self._committed_tokens: Dict[str, int] = {}
        self._listener: Optional[asyncio.Task] = None

    @property
    def live_hashes(self) -> Set[str]:
        return set(self.current.values()) | self.session_resources

    def current_hash(self, network: str) -> Optional[str]:
        return self.current.get(network)

    def begin_resolution(self, network: str) -> int:
        """Reserve an ordering token for a resolution about to start on ``network``."""
        return next(self._tokens)

    async def pin_for_network(
        self,
        content_hash: str,
        network: str,
        token: Optional[int] = None,
    ) -> bool:
        """
        Pin ``content_hash`` and make it the current version for ``network``.

        Args:
            content_hash: Client version to pin
            network: Network the version was resolved for
            token: Token from ``begin_resolution``; pins older than the one
                already committed for this network are discarded

        Returns:
            True if the hash is now current, False if it was discarded as stale

        Raises:
            PinFailure: the daemon refused the pin; the previous hash stays current
        """
        async with self._lock:
            committed = self._committed_tokens.get(network, 0)
            if token is not None and token < committed:
                logger.info(
                    f"Discarding stale resolution {content_hash} for {network}, "
                    f"{self.current.get(network)} is already current"
                )
                return False

            previous = self.current.get(network)
            if previous == content_hash:
                logger.debug(f"{content_hash} already current for {network}")
            else:
                try:
                    await self.daemon.pin(content_hash)
                except DaemonCommandError as e:
                    raise PinFailure(content_hash, network, str(e)) from e

                self.current[network] = content_hash
                if previous:
                    logger.info(f"📌 {network}: {previous} superseded by {content_hash}")
                else:
                    logger.info(f"📌 {network}: pinned {content_hash}")

            if token is not None:
                self._committed_tokens[network] = token
            return True

    async def purge_unused_ipfs_resources(self) -> List[str]:
        """
        Unpin every pinned hash that is not live.

        Never raises: listing and unpinning failures are logged.

        Returns:
            Hashes that were unpinned
        """
        async with self._lock:
            if not self.current:
                logger.warning("Nothing resolved yet, skipping purge")
                return []

            live = self.live_hashes
            try:
                pinned = await self.daemon.list_pinned()
            except DaemonCommandError as e:
                logger.error(f"Could not list pins, skipping purge: {e}")
                return []

            removed = []
            for content_hash in sorted(pinned - live):
                try:
                    await self.daemon.unpin(content_hash)
                    removed.append(content_hash)
                    logger.info(f"🗑️ Unpinned unused {content_hash}")
                except DaemonCommandError as e:
                    logger.error(f"Failed to unpin {content_hash}: {e}")

        logger.info(f"Purge complete: {len(removed)} unpinned, {len(live)} live")
        return removed

    def listen_and_pin_resources(self) -> asyncio.Task:
        """Start (once) the background task pinning resources published to ``feed``."""
        if self._listener is None or self._listener.done():
            self._listener = asyncio.ensure_future(self._listen())
        return self._listener

    async def stop_listening(self):
        if self._listener is None:
            return
        listener, self._listener = self._listener, None
        if not self.feed.close():
            listener.cancel()
        try:
            await listener
        except asyncio.CancelledError:
            pass

    async def _listen(self):
        logger.info("Listening for IPFS resources to pin")
        while True:
            item = await self.feed.get()
            if item is _CLOSED:
                break
            try:
                await self._pin_resource(item)
            except BackgroundPinFailure as e:
                logger.warning(str(e))
        logger.info("Stopped listening for IPFS resources")

    async def _pin_resource(self, content_hash: str):
        async with self._lock:
            if content_hash in self.live_hashes:
                return
            try:
                await self.daemon.pin(content_hash)
            except DaemonCommandError as e:
                raise BackgroundPinFailure(content_hash, "runtime", str(e)) from e
            self.session_resources.add(content_hash)
            logger.debug(f"Pinned runtime resource {content_hash}")
