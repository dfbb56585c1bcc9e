# forum/services/cache_service.py
"""
Read-through cache for thread reads and summaries.

Keys:
    thread:<id>                 single thread (300 s)
    thread:slug:<slug>          single thread by slug (300 s)
    threads:list:<queryHash>    one list page (300 s), hashed with the list generation
    threads:list:generation     counter bumped by every list invalidation
    thread:summary:<id>         generated summary (3600 s)

Values are stored as JSON text. Reads and writes that fail are logged
and treated as a miss; invalidation errors propagate so the caller can
retry, since a stale entry would outlive the write that made it stale.
"""

import hashlib
import json
import logging
import time
from collections.abc import Callable
from typing import Any

from django.conf import settings
from django.core.cache import caches
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)

THREAD_TTL = 300
SUMMARY_TTL = 3600

LIST_GENERATION_KEY = "threads:list:generation"


def thread_key(thread_id: int) -> str:
    return f"thread:{thread_id}"


def thread_slug_key(slug: str) -> str:
    return f"thread:slug:{slug}"


def summary_key(thread_id: int) -> str:
    return f"thread:summary:{thread_id}"


def thread_list_key(query: dict[str, Any], generation: int = 0) -> str:
    canonical = json.dumps(query, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha1(f"{generation}:{canonical}".encode()).hexdigest()
    return f"threads:list:{digest}"


def _new_generation() -> int:
    return time.time_ns()


class ForumCache:
    """
    JSON cache over a Django cache backend.

    Args:
        backend: Django cache instance (defaults to caches["default"])
    """

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else caches["default"]
        self.thread_ttl = getattr(settings, "THREAD_CACHE_TTL", THREAD_TTL)
        self.summary_ttl = getattr(settings, "SUMMARY_CACHE_TTL", SUMMARY_TTL)

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    def get_json(self, key: str) -> Any | None:
        try:
            raw = self.backend.get(key)
        except Exception as e:
            logger.error(f"Cache get failed for {key}: {e!s}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        try:
            self.backend.set(key, json.dumps(value, cls=DjangoJSONEncoder), ttl)
        except Exception as e:
            logger.error(f"Cache set failed for {key}: {e!s}")
            return False
        return True

    def delete(self, *keys: str) -> None:
        self.backend.delete_many(list(keys))

    def exists(self, key: str) -> bool:
        try:
            return self.backend.has_key(key)
        except Exception as e:
            logger.error(f"Cache lookup failed for {key}: {e!s}")
            return False

    def read_through(self, key: str, loader: Callable[[], Any], ttl: int) -> Any:
        """Return the cached value, or load, store and return it."""
        cached = self.get_json(key)
        if cached is not None:
            return cached
        value = loader()
        if value is not None:
            self.set_json(key, value, ttl)
        return value

    # -------------------------------------------------------------------------
    # Thread reads
    # -------------------------------------------------------------------------

    def get_thread(self, thread_id: int, loader: Callable[[], Any]) -> Any:
        return self.read_through(thread_key(thread_id), loader, self.thread_ttl)

    def get_thread_by_slug(self, slug: str, loader: Callable[[], Any]) -> Any:
        return self.read_through(thread_slug_key(slug), loader, self.thread_ttl)

    def get_thread_list(self, query: dict[str, Any], loader: Callable[[], Any]) -> Any:
        generation = self.list_generation()
        if generation is None:
            return loader()
        return self.read_through(thread_list_key(query, generation), loader, self.thread_ttl)

    def list_generation(self) -> int | None:
        """
        Generation hashed into every list key. Bumping it makes every cached
        page unreachable; None means the backend could not be read.
        """
        try:
            generation = self.backend.get(LIST_GENERATION_KEY)
            if generation is None:
                self.backend.add(LIST_GENERATION_KEY, _new_generation(), None)
                generation = self.backend.get(LIST_GENERATION_KEY)
        except Exception as e:
            logger.error(f"Cache get failed for {LIST_GENERATION_KEY}: {e!s}")
            return None
        return generation

    # -------------------------------------------------------------------------
    # Summaries
    # -------------------------------------------------------------------------

    def get_summary(self, thread_id: int) -> dict | None:
        return self.get_json(summary_key(thread_id))

    def set_summary(self, thread_id: int, summary: dict) -> bool:
        return self.set_json(summary_key(thread_id), summary, self.summary_ttl)

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    def invalidate_thread_lists(self) -> None:
        try:
            self.backend.incr(LIST_GENERATION_KEY)
        except ValueError:
            # Missing or evicted counter
            self.backend.set(LIST_GENERATION_KEY, _new_generation(), None)

    def invalidate_thread(self, thread_id: int, slug: str | None = None) -> None:
        """
        Drop every cached read that can contain the thread.

        Call after the DB write commits: on thread create/update/delete,
        on post create/edit/delete and on any post count change.
        """
        keys = [thread_key(thread_id), summary_key(thread_id)]
        if slug:
            keys.append(thread_slug_key(slug))
        self.delete(*keys)
        self.invalidate_thread_lists()
        logger.debug(f"Invalidated cache for thread {thread_id}")
