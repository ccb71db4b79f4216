"""
Aragon desktop configuration.

Every setting has a default suitable for a local desktop install and can be
overridden through ``ARAGON_*`` environment variables (see ``from_env``).
"""

import os
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field


PINNED_INITIAL_CLIENT_KEY = "main:initialClient"

DEFAULT_REGISTRY_ENDPOINTS = {
    "main": "https://registry.aragon.org/main",
    "rinkeby": "https://registry.aragon.org/rinkeby",
}


class DesktopConfig(BaseModel):
    """Aragon desktop configuration."""

    user_data_dir: Path = Field(
        default=Path.home() / ".aragon-desktop",
        description="Per-user data directory (flag store, IPFS binary and repo, logs)"
    )

    # IPFS daemon
    ipfs_api_addr: str = Field(
        default="/ip4/127.0.0.1/tcp/5001",
        description="IPFS daemon API address (multiaddr format)"
    )
    gateway_url: str = Field(
        default="http://localhost:8080",
        description="Local IPFS gateway the UI loads the client from"
    )
    ipfs_bin_path: Optional[Path] = Field(
        default=None,
        description="IPFS binary to start when no daemon is running (default: <user_data>/go-ipfs/ipfs)"
    )
    ipfs_data_dir: Optional[Path] = Field(
        default=None,
        description="IPFS repo for the daemon we start (default: <user_data>/ipfs-init)"
    )
    probe_timeout: float = Field(default=3.0, description="Version probe timeout (seconds)")
    start_retries: int = Field(default=30, description="Readiness probes after starting the daemon")
    start_retry_interval: float = Field(default=0.5, description="Delay between readiness probes (seconds)")
    stop_timeout: float = Field(default=10.0, description="Grace period for the daemon to exit (seconds)")
    retry_attempts: int = Field(default=3, description="Retries for transient IPFS command failures")
    retry_backoff: float = Field(default=0.5, description="Base backoff between IPFS retries (seconds)")

    # Client resolution
    client_repo: str = Field(default="aragon.aragonpm.eth", description="Registry name of the client")
    default_network: str = Field(default="main", description="Network loaded at startup")
    registry_endpoints: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_REGISTRY_ENDPOINTS),
        description="Registry resolver endpoint per network"
    )
    registry_timeout: float = Field(default=10.0, description="Registry request timeout (seconds)")

    # Bootstrap
    snapshot_dir: Path = Field(
        default=Path("assets/aragon-client/main"),
        description="Bundled client snapshot, one directory per content root"
    )
    snapshot_policy: str = Field(
        default="first",
        description="What to do with more than one bundled root: 'first' (warn) or 'strict' (fail)"
    )

    # Pin cache
    resource_queue_size: int = Field(default=256, description="Pending discovered resources before dropping")

    # Logging
    log_dir: Optional[Path] = Field(default=None, description="Log directory (default: <user_data>/logs)")
    log_level: str = Field(default="INFO", description="Log level")

    @property
    def bin_path(self) -> Path:
        return self.ipfs_bin_path or self.user_data_dir / "go-ipfs" / "ipfs"

    @property
    def data_dir(self) -> Path:
        return self.ipfs_data_dir or self.user_data_dir / "ipfs-init"

    @property
    def logs_path(self) -> Path:
        return self.log_dir or self.user_data_dir / "logs"

    @property
    def flag_store_dir(self) -> Path:
        return self.user_data_dir / "storage"

    @classmethod
    def from_env(cls, **overrides) -> "DesktopConfig":
        """
        Build configuration from ``ARAGON_*`` environment variables.

        Registry endpoints are read from ``ARAGON_REGISTRY_<NETWORK>``, e.g.
        ``ARAGON_REGISTRY_RINKEBY=https://...``. Keyword overrides win over
        the environment.
        """
        values = {}

        env_fields = {
            "ARAGON_USER_DATA": ("user_data_dir", Path),
            "ARAGON_IPFS_API": ("ipfs_api_addr", str),
            "ARAGON_IPFS_GATEWAY": ("gateway_url", str),
            "ARAGON_IPFS_BIN": ("ipfs_bin_path", Path),
            "ARAGON_IPFS_DATA": ("ipfs_data_dir", Path),
            "ARAGON_IPFS_PROBE_TIMEOUT": ("probe_timeout", float),
            "ARAGON_CLIENT_REPO": ("client_repo", str),
            "ARAGON_SNAPSHOT_DIR": ("snapshot_dir", Path),
            "ARAGON_SNAPSHOT_POLICY": ("snapshot_policy", str),
            "ARAGON_LOG_DIR": ("log_dir", Path),
            "ARAGON_LOG_LEVEL": ("log_level", str),
        }
        for env_var, (field, cast) in env_fields.items():
            raw = os.getenv(env_var)
            if raw:
                values[field] = cast(raw)

        endpoints = dict(DEFAULT_REGISTRY_ENDPOINTS)
        prefix = "ARAGON_REGISTRY_"
        for env_var, raw in os.environ.items():
            if env_var.startswith(prefix) and raw:
                endpoints[env_var[len(prefix):].lower()] = raw
        values["registry_endpoints"] = endpoints

        values.update(overrides)
        return cls(**values)
