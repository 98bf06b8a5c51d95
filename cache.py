"""
In-process response cache for the mapping API.

Entries carry a real expiry and the store is bounded: when it is full the
entry closest to expiry is dropped. Values are stored as given, so callers
that cache serialized JSON get the exact same string back on a hit.
"""

import logging
import threading
import time

import config

logger = logging.getLogger(__name__)


class ResponseCache:
    """Key/value store with per-entry TTL and a maximum size."""

    def __init__(self, max_entries=512, default_ttl=900, enabled=True, clock=time.monotonic):
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self.enabled = enabled
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key):
        """Return the cached value, or None if missing or expired."""
        if not self.enabled:
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache miss: {key}")
                return None

            value, expiry = entry
            if self._clock() >= expiry:
                del self._entries[key]
                logger.debug(f"Cache expired: {key}")
                return None

        logger.debug(f"Cache hit: {key}")
        return value

    def set(self, key, value, ex=None):
        """Store a value for `ex` seconds (default TTL when omitted)."""
        if not self.enabled:
            return

        ttl = self.default_ttl if ex is None else ex
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict_one()
            self._entries[key] = (value, self._clock() + ttl)
        logger.debug(f"Cached {key} (TTL: {ttl}s)")

    def _evict_one(self):
        now = self._clock()
        expired = [k for k, (_, expiry) in self._entries.items() if now >= expiry]
        if expired:
            for k in expired:
                del self._entries[k]
            return
        oldest = min(self._entries, key=lambda k: self._entries[k][1])
        del self._entries[oldest]
        logger.debug(f"Evicted {oldest} (cache full)")

    def invalidate(self, pattern=None):
        """
        Drop entries whose key contains `pattern`, or everything if None.

        Pattern matching walks every key, so the cost is O(n) in the number
        of cached entries.
        """
        with self._lock:
            if pattern is None:
                count = len(self._entries)
                self._entries.clear()
            else:
                keys = [k for k in self._entries if pattern in k]
                for k in keys:
                    del self._entries[k]
                count = len(keys)

        if pattern is None:
            logger.info(f"Cleared entire cache ({count} entries)")
        else:
            logger.info(f"Invalidated {count} cache entries matching '{pattern}'")
        return count

    def cleanup_expired(self):
        """Remove expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            keys = [k for k, (_, expiry) in self._entries.items() if now >= expiry]
            for k in keys:
                del self._entries[k]
        if keys:
            logger.debug(f"Cleaned up {len(keys)} expired cache entries")
        return len(keys)

    def stats(self):
        now = self._clock()
        with self._lock:
            active = sum(1 for _, expiry in self._entries.values() if now < expiry)
            total = len(self._entries)
            keys = sorted(self._entries)
        return {
            'enabled': self.enabled,
            'max_entries': self.max_entries,
            'total_entries': total,
            'active_entries': active,
            'expired_entries': total - active,
            'keys': keys,
        }


response_cache = ResponseCache(
    max_entries=config.CACHE_MAX_ENTRIES,
    default_ttl=config.CACHE_TTL_SECONDS,
    enabled=not config.SKIP_CACHE,
)


def get_cache():
    """Return the process-wide response cache."""
    return response_cache
