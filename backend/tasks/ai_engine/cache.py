# tasks/ai_engine/cache.py

import hashlib
import logging
from typing import Dict, Optional, Set

from django.conf import settings
from django.core.cache import caches

from .intents import TaskIntent

# Configure logging for cache monitoring
logger = logging.getLogger(__name__)


def normalize_utterance(utterance: str) -> str:
    """Cache identity of an utterance: lowercased and trimmed."""
    return (utterance or "").strip().lower()


class IntentCache:
    """
    Memoizes utterance -> TaskIntent mappings.

    Backed by Django's cache framework so the same code serves an
    in-process locmem cache or a shared Redis cache. Entries never expire;
    the locmem backend is bounded by INTENT_CACHE_MAX_ENTRIES.

    Features:
    - Deterministic key derivation (SHA256 of the normalized utterance).
    - At most one entry per key; the last write wins.
    - Failure-transparent: backend errors behave like a miss / skipped write.
    """

    def __init__(self, cache_alias: Optional[str] = None, version: str = "v1"):
        """
        Args:
            cache_alias: The Django cache alias to utilize (default: INTENT_CACHE_ALIAS).
            version: Key version, bumped when the TaskIntent shape changes.
        """
        self.cache_alias = cache_alias or getattr(settings, "INTENT_CACHE_ALIAS", "default")
        self.version = version
        self._keys: Set[str] = set()
        self._hits = 0
        self._misses = 0

    @property
    def backend(self):
        return caches[self.cache_alias]

    def lookup(self, normalized_utterance: str) -> Optional[TaskIntent]:
        """Returns the cached intent for an utterance, or None on a miss."""
        try:
            cache_key = self._generate_key(normalized_utterance)
            cached = self.backend.get(cache_key)
        except Exception as e:
            # Transparently handle backend connectivity issues
            logger.error(f"Intent cache retrieval failure: {str(e)}")
            cached = None

        if cached is None:
            self._misses += 1
            return None

        self._hits += 1
        logger.debug(f"Intent Cache Hit: {cache_key}")
        return cached

    def store(self, key: str, intent: TaskIntent) -> None:
        try:
            cache_key = self._generate_key(key)
            self.backend.set(cache_key, intent, timeout=None)
        except Exception as e:
            logger.error(f"Intent cache persistence failure: {str(e)}")
            return
        self._keys.add(cache_key)

    def clear(self) -> None:
        """
        Drops every intent entry and nothing else.

        The backend may be shared (a Redis database doubling as the Celery
        broker), so the backend is never flushed. Bumping the generation
        counter orphans entries written by any process; entries this
        instance wrote are deleted outright.
        """
        try:
            if self._keys:
                self.backend.delete_many(list(self._keys))
            try:
                self.backend.incr(self._generation_key)
            except ValueError:
                self.backend.set(self._generation_key, 1, timeout=None)
        except Exception as e:
            logger.error(f"Intent cache clear failure: {str(e)}")
        self._keys.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> Dict[str, int]:
        """Counts for this cache instance's own reads and writes."""
        return {
            "cached_intents": len(self._keys),
            "hits": self._hits,
            "misses": self._misses,
        }

    @property
    def _generation_key(self) -> str:
        return f"intent_{self.version}_generation"

    def _generation(self) -> int:
        return int(self.backend.get(self._generation_key) or 0)

    def _generate_key(self, utterance: str) -> str:
        """
        Creates a stable SHA256 hash of the normalized utterance.

        Hashing keeps keys backend-safe whatever the utterance contains.
        """
        digest = hashlib.sha256(normalize_utterance(utterance).encode("utf-8")).hexdigest()
        return f"intent_{self.version}_{self._generation()}_{digest}"
