"""
IPFS daemon lifecycle.

Detect-or-start at launch, stop-only-if-we-started at quit. Ownership travels
in the returned ``DaemonHandle`` rather than in process-wide state.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from aragon_desktop.backends.daemon_process import DaemonProcess
from aragon_desktop.backends.ipfs_daemon import IPFSDaemonClient
from aragon_desktop.errors import DaemonCommandError, DaemonStartFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DaemonHandle:
    """Result of ``ensure_running``: whether a daemon is up and whether we own it."""
    is_running: bool
    owned_by_self: bool
    version: Optional[str] = None


class DaemonLifecycleManager:
    """
    Detects an already-running IPFS daemon, otherwise starts our own.

    Detection always precedes start, and only one start attempt may be in
    flight per process. Shutdown is idempotent: concurrent or repeated calls
    await the same stop.
    """

    def __init__(
        self,
        client: IPFSDaemonClient,
        process: DaemonProcess,
        probe_timeout: float = 3.0,
        start_retries: int = 30,
        start_retry_interval: float = 0.5,
        stop_timeout: float = 10.0,
    ):
        self.client = client
        self.process = process
        self.probe_timeout = probe_timeout
        self.start_retries = max(1, start_retries)
        self.start_retry_interval = start_retry_interval
        self.stop_timeout = stop_timeout

        self._handle: Optional[DaemonHandle] = None
        self._start_lock = asyncio.Lock()
        self._stop_task: Optional[asyncio.Task] = None

    async def ensure_running(self) -> DaemonHandle:
        async with self._start_lock:
            if self._handle is not None and self._handle.is_running:
                return self._handle

            version = await self.client.probe_version(timeout=self.probe_timeout)
            if version is not None:
                logger.info(f"Detected running instance of IPFS (version: {version}), no need to start our own")
                self._handle = DaemonHandle(is_running=True, owned_by_self=False, version=version)
                return self._handle

            logger.info("Could not detect running instance of IPFS, starting it ourselves...")
            version = await self._start_owned()
            # New child, so the next shutdown must stop it again
            self._stop_task = None
            self._handle = DaemonHandle(is_running=True, owned_by_self=True, version=version)
            return self._handle

    async def _start_owned(self) -> str:
        await self.process.start()

        for attempt in range(1, self.start_retries + 1):
            if not self.process.is_running:
                raise DaemonStartFailure(
                    f"IPFS daemon exited during startup (code {self.process.proc.returncode})"
                )
            version = await self.client.probe_version(timeout=self.probe_timeout)
            if version is not None:
                logger.info(f"IPFS daemon {version} ready after {attempt} probe(s)")
                return version
            await asyncio.sleep(self.start_retry_interval)

        await self.process.terminate()
        raise DaemonStartFailure(
            f"IPFS daemon did not become ready after {self.start_retries} probes"
        )

    async def shutdown(self, handle: DaemonHandle):
        """Stop the daemon if, and only if, ``handle`` says we started it."""
        if not handle.owned_by_self:
            logger.debug("IPFS daemon not started by us, leaving it running")
            return

        if self._stop_task is None:
            self._stop_task = asyncio.ensure_future(self._stop())
        await asyncio.shield(self._stop_task)

    async def _stop(self):
        logger.info("Quitting IPFS...")
        try:
            await self.client.stop()
        except DaemonCommandError as e:
            # Already gone is fine; anything else falls through to terminate.
            logger.debug(f"IPFS shutdown command failed: {e}")

        if not await self.process.wait(self.stop_timeout):
            await self.process.terminate()

        self.client.close()
        self._handle = DaemonHandle(is_running=False, owned_by_self=True)
        logger.info("IPFS daemon stopped")
