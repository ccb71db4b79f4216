"""
First-run bootstrap.

Seeds the local IPFS node with the client snapshot bundled with the app, so
there is something to show even before the registry has been reached.
"""

import logging
from pathlib import Path
from typing import Optional

from aragon_desktop.backends.ipfs_daemon import IPFSDaemonClient
from aragon_desktop.config import PINNED_INITIAL_CLIENT_KEY
from aragon_desktop.errors import BootstrapImportFailure, DaemonCommandError, PinFailure
from aragon_desktop.storage.flag_store import JsonFlagStore
from aragon_desktop.storage.pin_cache import PinCacheManager

logger = logging.getLogger(__name__)

SNAPSHOT_POLICIES = ("first", "strict")


class BootstrapSequencer:
    """
    Imports and pins the bundled client exactly once per installation.

    The flag is written only after both import and pin succeed. A crash in
    between re-imports on the next launch, which is harmless since add and
    pin are idempotent on the daemon.
    """

    def __init__(
        self,
        daemon: IPFSDaemonClient,
        pin_cache: PinCacheManager,
        flag_store: JsonFlagStore,
        snapshot_dir: Path,
        snapshot_policy: str = "first",
        network: str = "main",
    ):
        if snapshot_policy not in SNAPSHOT_POLICIES:
            raise ValueError(f"snapshot_policy must be one of {SNAPSHOT_POLICIES}, got {snapshot_policy!r}")
        self.daemon = daemon
        self.pin_cache = pin_cache
        self.flag_store = flag_store
        self.snapshot_dir = Path(snapshot_dir)
        self.snapshot_policy = snapshot_policy
        self.network = network

    def is_pinned(self) -> bool:
        flag = self.flag_store.get(PINNED_INITIAL_CLIENT_KEY)
        return bool(flag) and bool(flag.get("isPinned"))

    async def run_if_needed(self) -> Optional[str]:
        """
        Pin the bundled client unless a previous launch already did.

        Returns:
            Hash of the bundled client, or None if bootstrap had already run

        Raises:
            BootstrapImportFailure: snapshot missing, ambiguous under the
                strict policy, or not importable
        """
        if self.is_pinned():
            return None

        snapshot = self._select_snapshot()
        logger.info(f"Pinning bundled Aragon client ({snapshot.name})")

        try:
            content_hash = await self.daemon.add_recursive(snapshot)
        except DaemonCommandError as e:
            raise BootstrapImportFailure(f"Could not import {snapshot}: {e}") from e

        if content_hash != snapshot.name:
            logger.warning(f"Bundled client {snapshot.name} imported as {content_hash}")

        try:
            await self.pin_cache.pin_for_network(content_hash, self.network)
        except PinFailure as e:
            raise BootstrapImportFailure(str(e)) from e

        self.flag_store.set(PINNED_INITIAL_CLIENT_KEY, {"isPinned": True})
        return content_hash

    def _select_snapshot(self) -> Path:
        if not self.snapshot_dir.is_dir():
            raise BootstrapImportFailure(f"Bundled client directory {self.snapshot_dir} is missing")

        entries = sorted((p for p in self.snapshot_dir.iterdir() if p.is_dir()), key=lambda p: p.name)
        if not entries:
            raise BootstrapImportFailure(f"Bundled client directory {self.snapshot_dir} holds no client snapshot")

        if len(entries) > 1:
            names = ", ".join(p.name for p in entries)
            if self.snapshot_policy == "strict":
                raise BootstrapImportFailure(f"App has bundled more than one Aragon client: {names}")
            logger.warning(f"App has bundled more than one Aragon client ({names}), using {entries[0].name}")

        return entries[0]
