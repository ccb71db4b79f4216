"""
Aragon desktop core.

Startup order: daemon -> bootstrap -> resolve -> pin -> render -> listen ->
purge. Navigation to another network re-enters at resolve.
"""

import logging
from typing import Callable, Optional

from aragon_desktop.backends.daemon_process import DaemonProcess
from aragon_desktop.backends.ipfs_daemon import IPFSDaemonClient
from aragon_desktop.config import DesktopConfig
from aragon_desktop.core.bootstrap import BootstrapSequencer
from aragon_desktop.core.daemon_lifecycle import DaemonHandle, DaemonLifecycleManager
from aragon_desktop.errors import PinFailure
from aragon_desktop.registry.resolver import HTTPRegistryClient, VersionResolver
from aragon_desktop.storage.flag_store import JsonFlagStore
from aragon_desktop.storage.pin_cache import PinCacheManager, ResourceFeed

logger = logging.getLogger(__name__)


class AragonDesktop:
    """
    Wires the daemon, bootstrap, resolver and pin cache together.

    The UI only ever receives gateway URLs (``<gateway>/ipfs/<hash>``).
    """

    def __init__(
        self,
        config: DesktopConfig,
        daemon: IPFSDaemonClient,
        lifecycle: DaemonLifecycleManager,
        resolver: VersionResolver,
        pin_cache: PinCacheManager,
        bootstrap: BootstrapSequencer,
    ):
        self.config = config
        self.daemon = daemon
        self.lifecycle = lifecycle
        self.resolver = resolver
        self.pin_cache = pin_cache
        self.bootstrap = bootstrap
        self.handle: Optional[DaemonHandle] = None

    @classmethod
    def from_config(cls, config: DesktopConfig) -> "AragonDesktop":
        daemon = IPFSDaemonClient(
            ipfs_addr=config.ipfs_api_addr,
            retry_attempts=config.retry_attempts,
            retry_backoff=config.retry_backoff,
        )
        lifecycle = DaemonLifecycleManager(
            daemon,
            DaemonProcess(config.bin_path, config.data_dir),
            probe_timeout=config.probe_timeout,
            start_retries=config.start_retries,
            start_retry_interval=config.start_retry_interval,
            stop_timeout=config.stop_timeout,
        )
        resolver = VersionResolver(
            HTTPRegistryClient(config.registry_endpoints, timeout=config.registry_timeout)
        )
        pin_cache = PinCacheManager(daemon, ResourceFeed(config.resource_queue_size))
        bootstrap = BootstrapSequencer(
            daemon,
            pin_cache,
            JsonFlagStore(config.flag_store_dir),
            config.snapshot_dir,
            snapshot_policy=config.snapshot_policy,
            network=config.default_network,
        )
        return cls(config, daemon, lifecycle, resolver, pin_cache, bootstrap)

    def gateway_url(self, content_hash: str) -> str:
        return f"{self.config.gateway_url.rstrip('/')}/ipfs/{content_hash}"

    async def start(self, render: Optional[Callable[[str], None]] = None) -> Optional[str]:
        """
        Bring the client up.

        Raises:
            DaemonStartFailure: no IPFS daemon could be reached or started
            BootstrapImportFailure: the bundled client could not be seeded
            ResolutionFailure: the latest client could not be resolved
        """
        self.handle = await self.lifecycle.ensure_running()
        await self.bootstrap.run_if_needed()

        logger.info("Loading Aragon client...")
        client_url = await self.resolve_and_load(self.config.default_network)
        if render is not None and client_url is not None:
            render(client_url)

        self.pin_cache.listen_and_pin_resources()
        await self.pin_cache.purge_unused_ipfs_resources()
        return client_url

    async def load_aragon_client(self, network: str = "main") -> Optional[str]:
        """
        Resolve the latest client for ``network`` and pin it.

        Returns:
            Content hash, or None if a newer resolution for the network won

        Raises:
            ResolutionFailure: nothing committed, previous state kept
        """
        token = self.pin_cache.begin_resolution(network)
        content_hash = await self.resolver.resolve_latest(self.config.client_repo, network)

        try:
            if not await self.pin_cache.pin_for_network(content_hash, network, token=token):
                return None
        except PinFailure as e:
            # The gateway can still serve it; it just is not protected from GC.
            logger.error(f"{e}, loading it unpinned")
        return content_hash

    async def resolve_and_load(self, network: str) -> Optional[str]:
        content_hash = await self.load_aragon_client(network)
        if content_hash is None:
            return None
        return self.gateway_url(content_hash)

    async def shutdown(self):
        """Stop background work and the daemon if we own it. Safe to call twice."""
        await self.pin_cache.stop_listening()
        if self.handle is not None:
            await self.lifecycle.shutdown(self.handle)
        self.resolver.registry.close()
        logger.info("Quitting...")
