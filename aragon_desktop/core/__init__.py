"""
Aragon desktop core: daemon lifecycle, bootstrap, navigation and wiring.
"""

from .daemon_lifecycle import DaemonHandle, DaemonLifecycleManager
from .bootstrap import BootstrapSequencer
from .navigation import InScope, OutOfScope, NavigationController, classify_url
from .desktop import AragonDesktop

__all__ = [
    "DaemonHandle",
    "DaemonLifecycleManager",
    "BootstrapSequencer",
    "InScope",
    "OutOfScope",
    "NavigationController",
    "classify_url",
    "AragonDesktop",
]
