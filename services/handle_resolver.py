"""
Handle Resolver Module

Resolves Bluesky handles to DIDs for mention facets using the atproto
identity resolver.
"""

import threading
from typing import Dict, Optional

from atproto import IdResolver

from utils.logger import get_logger

logger = get_logger(__name__)


class HandleResolver:
    """Callable handle -> DID resolver with an in-memory cache."""

    def __init__(self, id_resolver: Optional[IdResolver] = None):
        self.id_resolver = id_resolver or IdResolver()
        self._cache: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __call__(self, handle: str) -> Optional[str]:
        """
        Resolve a handle to a DID.

        Args:
            handle: The handle, with or without a leading "@"

        Returns:
            Optional[str]: The DID, or None if it could not be resolved.
        """
        handle = handle.lstrip("@").lower()
        with self._lock:
            if handle in self._cache:
                return self._cache[handle]

        try:
            did = self.id_resolver.handle.resolve(handle)
        except Exception as e:
            logger.warning(f"Failed to resolve handle {handle}: {e}")
            return None

        if not did:
            logger.warning(f"Handle {handle} did not resolve to a DID")
            return None

        with self._lock:
            self._cache[handle] = did
        return did
