"""
Aragon Desktop - the Aragon client served from IPFS

Resolves the latest published Aragon client per network, pins it on a local
IPFS node and hands the UI a gateway URL to load.

Quick Start:
    >>> import asyncio
    >>> from aragon_desktop import AragonDesktop, DesktopConfig
    >>>
    >>> desktop = AragonDesktop.from_config(DesktopConfig.from_env())
    >>>
    >>> # Start (or detect) IPFS, seed the bundled client, load the latest one
    >>> url = asyncio.run(desktop.start())
    >>> # -> http://localhost:8080/ipfs/Qm...

Features:
    - Detect-or-start IPFS daemon, stopped on quit only if we started it
    - One-time seeding from the bundled client snapshot
    - Latest-version resolution per network, never served stale
    - Pin cache with last-resolution-wins and purge of unused pins
    - Background pinning of resources the client fetches
"""

from aragon_desktop.config import DesktopConfig
from aragon_desktop.core.desktop import AragonDesktop
from aragon_desktop.core.navigation import NavigationController, classify_url
from aragon_desktop.errors import (
    AragonDesktopError,
    BackgroundPinFailure,
    BootstrapImportFailure,
    DaemonStartFailure,
    PinFailure,
    ResolutionFailure,
)

__version__ = "0.1.0"
__author__ = "Aragon Team"

__all__ = [
    "AragonDesktop",
    "DesktopConfig",
    "NavigationController",
    "classify_url",
    "AragonDesktopError",
    "DaemonStartFailure",
    "BootstrapImportFailure",
    "ResolutionFailure",
    "PinFailure",
    "BackgroundPinFailure",
]
