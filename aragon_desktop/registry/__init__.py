"""
Registry resolution of the latest client version per network.
"""

from .resolver import HTTPRegistryClient, VersionResolver, parse_content_uri

__all__ = ["HTTPRegistryClient", "VersionResolver", "parse_content_uri"]
