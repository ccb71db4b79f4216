"""
IPFS daemon backends for Aragon desktop.

API client for issuing commands, and the daemon process we start ourselves.
"""

from .ipfs_daemon import IPFSDaemonClient
from .daemon_process import DaemonProcess

__all__ = ["IPFSDaemonClient", "DaemonProcess"]
