"""
Error taxonomy for the Aragon desktop core.

Startup failures (daemon, bootstrap) abort the launch. Resolution failures
are contained to one navigation attempt. Pin failures are logged and keep the
previous version current. Background pin failures never leave the listener.
"""


class AragonDesktopError(Exception):
    """Base class for all Aragon desktop errors."""


class DaemonCommandError(AragonDesktopError):
    """An IPFS API command failed after all retries."""


class DaemonStartFailure(AragonDesktopError):
    """The IPFS daemon could not be detected or started."""


class BootstrapImportFailure(AragonDesktopError):
    """The bundled client snapshot could not be imported and pinned."""


class ResolutionFailure(AragonDesktopError):
    """The registry could not tell us the latest client for a network."""

    def __init__(self, name: str, network: str, reason: str):
        self.name = name
        self.network = network
        self.reason = reason
        super().__init__(f"Could not resolve {name} on {network}: {reason}")


class PinFailure(AragonDesktopError):
    """Pinning a content hash failed."""

    def __init__(self, content_hash: str, network: str, reason: str):
        self.content_hash = content_hash
        self.network = network
        self.reason = reason
        super().__init__(f"Failed to pin {content_hash} for {network}: {reason}")


class BackgroundPinFailure(PinFailure):
    """Pinning a resource discovered at runtime failed."""
