"""
Latest-version resolution for the Aragon client.

Asks the registry which content the client repo currently points at on a
given network. aragonPM repos publish a ``contentURI`` per version, of the
form ``ipfs:<hash>``, stored on chain as hex bytes (``0x6970...``); both
forms are accepted.
"""

import asyncio
import logging
from typing import Dict, Optional

import requests

from aragon_desktop.errors import ResolutionFailure

logger = logging.getLogger(__name__)


def parse_content_uri(content_uri: str) -> str:
    """
    Extract the IPFS hash from a repo content URI.

    Raises:
        ValueError: not an ``ipfs:`` content URI
    """
    if content_uri.startswith("0x"):
        content_uri = bytes.fromhex(content_uri[2:]).decode("utf-8")

    location, _, value = content_uri.partition(":")
    value = value.strip().strip("/")
    if location != "ipfs" or not value:
        raise ValueError(f"Unsupported content URI: {content_uri!r}")
    return value


class HTTPRegistryClient:
    """
    Registry resolver reached over HTTP.

    Each network has its own endpoint; ``GET <endpoint>/repos/<name>/latest``
    answers with the latest published version::

        {"version": "0.8.4", "contentURI": "ipfs:Qm..."}
    """

    def __init__(self, endpoints: Dict[str, str], timeout: float = 10.0):
        self.endpoints = {network: url.rstrip("/") for network, url in endpoints.items()}
        self.timeout = timeout
        self.session = requests.Session()

    def latest_version(self, name: str, network: str) -> Optional[dict]:
        """
        Fetch the latest version record for ``name`` on ``network``.

        Returns:
            Version record, or None if nothing is published

        Raises:
            KeyError: no endpoint configured for ``network``
            requests.RequestException: registry unreachable or erroring
        """
        endpoint = self.endpoints[network]
        response = self.session.get(f"{endpoint}/repos/{name}/latest", timeout=self.timeout)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def close(self):
        self.session.close()


class VersionResolver:
    """
    Resolves the content hash currently published for a repo on a network.

    Nothing is cached: every call queries the registry, and failures are
    raised rather than answered with an older hash.
    """

    def __init__(self, registry: HTTPRegistryClient):
        self.registry = registry

    async def resolve_latest(self, name: str, network: str) -> str:
        try:
            record = await asyncio.to_thread(self.registry.latest_version, name, network)
        except KeyError:
            raise ResolutionFailure(name, network, "no registry configured for network")
        except (requests.RequestException, ValueError) as e:
            raise ResolutionFailure(name, network, f"registry unreachable: {e}") from e

        if not record:
            raise ResolutionFailure(name, network, "no published version")
        if not isinstance(record, dict) or not isinstance(record.get("contentURI"), str):
            raise ResolutionFailure(name, network, "malformed registry record")
        if not record["contentURI"]:
            raise ResolutionFailure(name, network, "no published version")

        try:
            content_hash = parse_content_uri(record["contentURI"])
        except ValueError as e:
            raise ResolutionFailure(name, network, str(e)) from e

        logger.info(f"Latest {name} on {network}: {record.get('version', '?')} ({content_hash})")
        return content_hash
