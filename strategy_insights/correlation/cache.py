"""In-process result cache for correlation analyses."""

import json
import threading
from collections.abc import Iterator
from dataclasses import dataclass

import structlog

from strategy_insights.correlation.entities import EntityType
from strategy_insights.correlation.models import AnalysisOptions, CorrelationResult

logger = structlog.get_logger()


def make_cache_key(
    entity_type: EntityType, entity_id: str, options: AnalysisOptions
) -> str:
    """Stable serialization of (entity type, entity id, options)."""
    payload = {
        "entityType": entity_type.value,
        "entityId": entity_id,
        "options": options.model_dump(mode="json", by_alias=True),
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


@dataclass(frozen=True)
class CacheEntry:
    entity_id: str
    results: tuple[CorrelationResult, ...]


class ResultCache:
    """Keyed store of analysis results.

    No TTL and no size eviction: entries leave only through `clear()` or
    `invalidate_entity()`. Both bump `generation`; a writer holding an
    older generation is ignored so an analysis that started before the drop
    cannot repopulate the cache.
    """

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self, key: str) -> list[CorrelationResult] | None:
        """Get a copy of the cached list, or None on a miss."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        return list(entry.results)

    def set(
        self,
        key: str,
        entity_id: str,
        results: list[CorrelationResult],
        generation: int | None = None,
    ) -> bool:
        """Store results. Returns False when the write is stale."""
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug("Stale cache write ignored", key=key)
                return False
            self._entries[key] = CacheEntry(entity_id=entity_id, results=tuple(results))
            return True

    def clear(self) -> int:
        """Drop every entry. Returns how many were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._generation += 1
        logger.info("Correlation cache cleared", entries=count)
        return count

    def invalidate_entity(self, entity_id: str) -> int:
        """Drop entries computed for one entity. Returns how many were removed."""
        with self._lock:
            keys = [k for k, e in self._entries.items() if e.entity_id == entity_id]
            for key in keys:
                del self._entries[key]
            self._generation += 1
        logger.info("Correlation cache invalidated", entity_id=entity_id, entries=len(keys))
        return len(keys)

    def values(self) -> Iterator[list[CorrelationResult]]:
        """Snapshot of all cached result lists."""
        with self._lock:
            entries = list(self._entries.values())
        for entry in entries:
            yield list(entry.results)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
