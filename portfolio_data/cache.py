"""Time-boxed JSON file cache for GitHub API results."""

import asyncio
import inspect
import json
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import timedelta
from pathlib import Path
from typing import Any, TypeVar, get_type_hints

from pydantic import TypeAdapter, ValidationError

from .config import DEFAULT_CACHE_DIR
from .models import CacheEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")

CACHE_DURATION = timedelta(hours=1)


class FreshnessCache:
    """
    Cache producer results on disk, one JSON file per key.

    An entry younger than ``duration`` is returned without running the
    producer. Missing, corrupt or expired entries cause the producer to run
    again and the entry to be rewritten. Storage problems never stop the
    fresh value from being returned.
    """

    def __init__(
        self,
        cache_dir: Path = DEFAULT_CACHE_DIR,
        duration: timedelta = CACHE_DURATION,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir)
        self.duration = duration
        self.clock = clock

    def now_ms(self) -> int:
        return round(self.clock() * 1000)

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def ensure_cache_dir(self) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            pass

    def read(self, key: str) -> CacheEntry | None:
        """Load the stored entry for ``key``; None if absent or unreadable."""
        cache_file = self.path_for(key)
        try:
            with open(cache_file) as f:
                return CacheEntry.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            # Covers a missing file, invalid JSON and a malformed entry
            logger.debug(f"Cache miss for {key}: {e}")
            return None

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.now_ms() - entry.timestamp < self.duration.total_seconds() * 1000

    def write(self, key: str, entry: CacheEntry) -> None:
        """Persist an entry with an atomic rename; failures are only logged."""
        cache_file = self.path_for(key)
        temp_file = cache_file.with_suffix(".tmp")
        try:
            with open(temp_file, "w") as f:
                json.dump(entry.model_dump(mode="json"), f, indent=2)
            temp_file.replace(cache_file)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write cache for {key}: {e}")

    async def get(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        response_type: Any = None,
    ) -> T:
        """
        Return cached data for ``key`` or compute it with ``producer``.

        Cached data is validated back into ``response_type`` (e.g.
        ``list[RepositorySummary]``), so a hit returns the same type as a
        miss. Without ``response_type`` the producer's return annotation is
        used; an entry that no longer validates counts as a miss.
        """
        adapter = TypeAdapter(resolve_response_type(producer, response_type))
        await asyncio.to_thread(self.ensure_cache_dir)

        entry = await asyncio.to_thread(self.read, key)
        if entry is not None and self.is_fresh(entry):
            try:
                data = adapter.validate_python(entry.data)
            except ValidationError as e:
                logger.debug(f"Cached data for {key} is stale in shape: {e}")
            else:
                logger.info(f"Using cached data for: {key}")
                return data

        logger.info(f"Fetching fresh GitHub data for: {key}")
        data = await producer()

        try:
            stored = adapter.dump_python(data, mode="json")
            # A miss hands back what a later hit will load
            result = adapter.validate_python(stored)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize cache data for {key}: {e}")
            return data

        await asyncio.to_thread(self.write, key, CacheEntry(data=stored, timestamp=self.now_ms()))
        return result


def resolve_response_type(producer: Callable[..., Any], response_type: Any = None) -> Any:
    """
    The type a producer's result is cached as.

    An explicit ``response_type`` wins; otherwise the producer's return
    annotation is used. Raises TypeError when neither is available.
    """
    if response_type is not None:
        return response_type

    target = producer
    if not (inspect.isfunction(producer) or inspect.ismethod(producer)):
        target = getattr(type(producer), "__call__", producer)
    try:
        hints = get_type_hints(target)
    except (NameError, TypeError):
        hints = {}

    if "return" not in hints:
        raise TypeError(
            f"Cannot tell what {producer!r} returns; annotate it or pass response_type"
        )
    return hints["return"]


_default_cache = FreshnessCache()


async def get_cached_data(
    key: str, producer: Callable[[], Awaitable[T]], response_type: Any = None
) -> T:
    """Module-level shortcut using the default cache directory."""
    return await _default_cache.get(key, producer, response_type)
