"""
Navigation handling for the client window.

The window never follows links by itself. Links to a known Aragon network
host reload the client for that network from IPFS; everything else goes to
the OS default browser.
"""

import logging
import re
import webbrowser
from dataclasses import dataclass
from typing import Callable, Optional, Union

from aragon_desktop.errors import ResolutionFailure

logger = logging.getLogger(__name__)

# Network is the first capture group
NAVIGATION_REGEX = re.compile(r"https?://(rinkeby|mainnet)\.aragon\.org(?=[/?#]|:\d+(?:[/?#]|$)|$)", re.IGNORECASE)

NETWORK_ALIASES = {"mainnet": "main"}


@dataclass(frozen=True)
class InScope:
    network: str


@dataclass(frozen=True)
class OutOfScope:
    url: str


NavigationDecision = Union[InScope, OutOfScope]


def classify_url(url: str, pattern: re.Pattern = NAVIGATION_REGEX) -> NavigationDecision:
    match = pattern.match(url)
    if match is None:
        return OutOfScope(url)
    network = match.group(1).lower()
    return InScope(NETWORK_ALIASES.get(network, network))


class NavigationController:
    """
    Side-effecting half of navigation: renders, shows loading, opens externally.

    Args:
        desktop: Object exposing ``resolve_and_load(network)`` and ``pin_cache``
        render: Called with the URL the window should load
        show_loading: Called before a (possibly slow) network switch
        open_external: Opens a URL in the OS default browser
    """

    def __init__(
        self,
        desktop,
        render: Callable[[str], None],
        show_loading: Optional[Callable[[], None]] = None,
        open_external: Callable[[str], object] = webbrowser.open,
    ):
        self.desktop = desktop
        self.render = render
        self.show_loading = show_loading
        self.open_external = open_external

    async def handle_navigation(self, url: str) -> Optional[str]:
        """
        Handle a navigation request from the client window.

        Returns:
            URL rendered in the window, or None if nothing was rendered
        """
        decision = classify_url(url)
        if isinstance(decision, OutOfScope):
            self.handle_new_window(url)
            return None

        logger.info(f"Navigating app to {decision.network} via IPFS instead")
        if self.show_loading is not None:
            self.show_loading()

        try:
            client_url = await self.desktop.resolve_and_load(decision.network)
        except ResolutionFailure as e:
            logger.error(f"Could not load {decision.network}: {e}")
            return None

        if client_url is None:
            return None
        self.render(client_url)
        return client_url

    def handle_new_window(self, url: str):
        logger.info(f"Opening {url} in an external browser")
        self.open_external(url)

    def report_resource(self, url: str) -> bool:
        """Queue a resource URL the client fetched so its content gets pinned."""
        return self.desktop.pin_cache.feed.publish_url(url)
