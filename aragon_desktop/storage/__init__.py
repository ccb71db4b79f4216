"""
Local state: the persistent flag store and the IPFS pin cache.
"""

from .flag_store import JsonFlagStore
from .pin_cache import PinCacheManager, ResourceFeed, content_hash_from_url

__all__ = ["JsonFlagStore", "PinCacheManager", "ResourceFeed", "content_hash_from_url"]
