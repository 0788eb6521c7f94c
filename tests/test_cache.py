"""Tests for the correlation result cache."""

import pytest

from factories import options
from strategy_insights.correlation.cache import ResultCache, make_cache_key
from strategy_insights.correlation.entities import EntityType
from strategy_insights.correlation.models import AnalysisOptions


class TestCacheKey:
    """Tests for make_cache_key."""

    def test_stable_for_equal_inputs(self):
        first = make_cache_key(EntityType.INITIATIVE, "init-1", options(max_results=5))
        second = make_cache_key(EntityType.INITIATIVE, "init-1", options(max_results=5))
        assert first == second

    def test_differs_by_options(self):
        base = make_cache_key(EntityType.INITIATIVE, "init-1", options())
        assert base != make_cache_key(EntityType.INITIATIVE, "init-1", options(min_strength=0.5))
        assert base != make_cache_key(EntityType.CLUSTER, "init-1", options())
        assert base != make_cache_key(EntityType.INITIATIVE, "init-2", options())

    def test_default_time_range_not_materialized(self):
        key = make_cache_key(EntityType.INITIATIVE, "init-1", AnalysisOptions())
        assert '"timeRange":null' in key


class TestResultCache:
    """Tests for ResultCache."""

    @pytest.fixture
    def cache(self):
        return ResultCache()

    def test_set_get(self, cache):
        assert cache.get("key") is None

        assert cache.set("key", "init-1", [])
        assert cache.get("key") == []
        assert "key" in cache
        assert len(cache) == 1

    def test_get_returns_copy(self, cache):
        cache.set("key", "init-1", [])
        cache.get("key").append("mutated")

        assert cache.get("key") == []

    def test_clear(self, cache):
        cache.set("a", "init-1", [])
        cache.set("b", "init-2", [])

        assert cache.clear() == 2
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_invalidate_entity(self, cache):
        cache.set("a", "init-1", [])
        cache.set("b", "init-1", [])
        cache.set("c", "init-2", [])

        assert cache.invalidate_entity("init-1") == 2
        assert "c" in cache
        assert "a" not in cache

    def test_stale_write_ignored(self, cache):
        generation = cache.generation
        cache.clear()

        assert cache.set("key", "init-1", [], generation=generation) is False
        assert cache.get("key") is None

    def test_current_generation_write(self, cache):
        cache.clear()
        assert cache.set("key", "init-1", [], generation=cache.generation)

    def test_values_snapshot(self, cache):
        cache.set("a", "init-1", [])
        cache.set("b", "init-2", [])

        assert list(cache.values()) == [[], []]
