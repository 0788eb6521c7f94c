"""Correlation orchestrator: the public entry point of the engine."""

import asyncio
from collections.abc import Sequence
from typing import Any

import pydantic
import structlog

from strategy_insights.config import EngineConfig
from strategy_insights.correlation.analyzers import (
    ANALYZER_CLASSES,
    AnalysisContext,
    Analyzer,
)
from strategy_insights.correlation.cache import ResultCache, make_cache_key
from strategy_insights.correlation.entities import EntityType
from strategy_insights.correlation.impact import BusinessImpactEstimator
from strategy_insights.correlation.models import (
    AnalysisOptions,
    CorrelationReport,
    CorrelationResult,
    CorrelationStats,
    TimeRange,
)
from strategy_insights.correlation.patterns import PatternMatcher
from strategy_insights.correlation.recommendations import RecommendationGenerator
from strategy_insights.correlation.report import STRONG_STRENGTH, build_report
from strategy_insights.correlation.repository import EntityRepository
from strategy_insights.errors import ComputationError, DataAccessError, ValidationError

logger = structlog.get_logger()


def ranking_key(result: CorrelationResult) -> tuple:
    """Strength desc, confidence desc, then stable id ordering."""
    return (
        -result.strength,
        -result.confidence.score,
        result.target_entity.id,
        result.correlation_type.category.value,
        result.source_entity.id,
    )


class CorrelationEngine:
    """
    Discover, score and explain relationships between platform entities.

    Owned and injected by the hosting service; holds no state besides the
    result cache and the map of in-flight analyses.

    Provides:
    - Concurrent fan-out to the five strategy analyzers
    - Per-analyzer fault isolation and timeout
    - Filtering, ranking and caching of results
    - Caller-facing reports and cache statistics
    """

    def __init__(
        self,
        repository: EntityRepository,
        config: EngineConfig | None = None,
        cache: ResultCache | None = None,
        analyzers: Sequence[Analyzer] | None = None,
    ):
        self.repository = repository
        self.config = config or EngineConfig()
        self.cache = cache if cache is not None else ResultCache()

        if analyzers is None:
            pattern_matcher = PatternMatcher()
            impact_estimator = BusinessImpactEstimator(self.config.impact)
            recommendation_generator = RecommendationGenerator()
            analyzers = [
                cls(
                    repository,
                    self.config,
                    pattern_matcher,
                    impact_estimator,
                    recommendation_generator,
                )
                for cls in ANALYZER_CLASSES
            ]
        self.analyzers = list(analyzers)
        self._inflight: dict[str, asyncio.Task] = {}

    # ========================================================================
    # Public API
    # ========================================================================

    async def analyze_entity_correlations(
        self,
        entity_id: str,
        entity_type: EntityType | str,
        options: AnalysisOptions | dict[str, Any] | None = None,
    ) -> list[CorrelationResult]:
        """
        Find the entities correlated with one entity.

        Args:
            entity_id: Platform id of the entity
            entity_type: One of issue, initiative, cluster, user, milestone
            options: max_results, min_strength, include_historical, time_range

        Returns:
            Correlations ranked by strength, at most `max_results`

        Raises:
            ValidationError: Bad entity type, id or options
            DataAccessError: Every analyzer needing the repository failed
        """
        _, _, results = await self._analyze(entity_id, entity_type, options)
        return results

    async def analyze_entity_report(
        self,
        entity_id: str,
        entity_type: EntityType | str,
        options: AnalysisOptions | dict[str, Any] | None = None,
    ) -> CorrelationReport:
        """Correlations plus insights, system recommendations and metadata."""
        entity_id, entity_type, correlations = await self._analyze(
            entity_id, entity_type, options
        )
        return build_report(entity_id, entity_type, correlations)

    def get_correlation_stats(self) -> CorrelationStats:
        """Aggregate statistics over every cached correlation."""
        total = 0
        strong = 0
        total_strength = 0.0
        pattern_types: dict[str, int] = {}

        for correlations in self.cache.values():
            total += len(correlations)
            for correlation in correlations:
                if correlation.strength > STRONG_STRENGTH:
                    strong += 1
                total_strength += correlation.strength
                for pattern in correlation.patterns:
                    name = pattern.pattern_type.value
                    pattern_types[name] = pattern_types.get(name, 0) + 1

        return CorrelationStats(
            total_correlations=total,
            strong_correlations=strong,
            pattern_types=pattern_types,
            average_strength=total_strength / total if total else 0.0,
        )

    def clear_cache(self) -> None:
        """Drop all cached results; the next call for any key recomputes."""
        self.cache.clear()

    def invalidate_entity(self, entity_id: str) -> int:
        """Drop cached results for one entity. Returns entries removed."""
        return self.cache.invalidate_entity(entity_id)

    # ========================================================================
    # Analysis
    # ========================================================================

    async def _analyze(
        self,
        entity_id: str,
        entity_type: EntityType | str,
        options: AnalysisOptions | dict[str, Any] | None,
    ) -> tuple[str, EntityType, list[CorrelationResult]]:
        """Validate, then serve from cache or from the shared in-flight task."""
        entity_type = self._validate_entity_type(entity_type)
        entity_id = self._validate_entity_id(entity_id)
        options = self._validate_options(options)

        key = make_cache_key(entity_type, entity_id, options)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(
                "Correlation analysis complete",
                entity_type=entity_type.value,
                entity_id=entity_id,
                returned=len(cached),
                cache_hit=True,
            )
            return entity_id, entity_type, cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(
                self._compute_and_store(
                    key, entity_id, entity_type, options, self.cache.generation
                )
            )
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._finish_inflight(key, t))
        else:
            logger.debug(
                "Joining in-flight correlation analysis",
                entity_type=entity_type.value,
                entity_id=entity_id,
            )

        # Each caller may be cancelled on its own; the shared task keeps running
        results = await asyncio.shield(task)
        return entity_id, entity_type, list(results)

    async def _compute_and_store(
        self,
        key: str,
        entity_id: str,
        entity_type: EntityType,
        options: AnalysisOptions,
        generation: int,
    ) -> list[CorrelationResult]:
        results = await self._compute(entity_id, entity_type, options)
        self.cache.set(key, entity_id, results, generation=generation)
        return results

    def _finish_inflight(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Retrieve the failure so a task nobody awaits any more is not reported twice
        if not task.cancelled():
            task.exception()

    async def _compute(
        self,
        entity_id: str,
        entity_type: EntityType,
        options: AnalysisOptions,
    ) -> list[CorrelationResult]:
        context = AnalysisContext(
            time_range=options.time_range
            or TimeRange.last_days(self.config.default_time_range_days),
            include_historical=options.include_historical,
        )

        outcomes = await asyncio.gather(
            *(
                self._run_analyzer(analyzer, entity_id, entity_type, context)
                for analyzer in self.analyzers
            )
        )

        attempted = [a for a in self.analyzers if a.handles(entity_type)]
        failures = [
            error
            for analyzer, (_, error) in zip(self.analyzers, outcomes)
            if error is not None and analyzer.handles(entity_type)
        ]
        if attempted and len(failures) == len(attempted):
            logger.error(
                "All analyzers failed",
                entity_type=entity_type.value,
                entity_id=entity_id,
                failures=len(failures),
            )
            raise DataAccessError(
                f"Entity repository unavailable for {entity_type.value} {entity_id}"
            ) from failures[0]

        candidates = [
            result
            for results, _ in outcomes
            for result in results
            if result.strength >= options.min_strength
        ]
        candidates.sort(key=ranking_key)
        ranked = candidates[: options.max_results]

        logger.info(
            "Correlation analysis complete",
            entity_type=entity_type.value,
            entity_id=entity_id,
            candidates=sum(len(results) for results, _ in outcomes),
            returned=len(ranked),
            failed_analyzers=len(failures),
            cache_hit=False,
        )
        return ranked

    async def _run_analyzer(
        self,
        analyzer: Analyzer,
        entity_id: str,
        entity_type: EntityType,
        context: AnalysisContext,
    ) -> tuple[list[CorrelationResult], DataAccessError | None]:
        """Run one analyzer inside its own error boundary and timeout.

        Only repository outages are returned as errors; they alone decide a
        total failure. Malformed data and bugs are logged and yield no results.
        """
        try:
            results = await asyncio.wait_for(
                analyzer.analyze(entity_id, entity_type, context),
                timeout=self.config.analyzer_timeout_seconds,
            )
            return results, None
        except asyncio.TimeoutError:
            logger.warning(
                "Analyzer timed out",
                analyzer=analyzer.name,
                entity_type=entity_type.value,
                entity_id=entity_id,
                timeout_seconds=self.config.analyzer_timeout_seconds,
            )
            return [], DataAccessError(f"{analyzer.name} analyzer timed out", source=analyzer.name)
        except DataAccessError as e:
            logger.warning(
                "Analyzer failed",
                analyzer=analyzer.name,
                entity_type=entity_type.value,
                entity_id=entity_id,
                error=str(e),
            )
            return [], e
        except ComputationError as e:
            logger.warning(
                "Analyzer skipped malformed entity data",
                analyzer=analyzer.name,
                entity_type=entity_type.value,
                entity_id=entity_id,
                error=str(e),
            )
            return [], None
        except Exception as e:
            logger.error(
                "Analyzer raised unexpected error",
                analyzer=analyzer.name,
                entity_type=entity_type.value,
                entity_id=entity_id,
                error=str(e),
                exc_info=True,
            )
            return [], None

    # ========================================================================
    # Validation
    # ========================================================================

    def _validate_entity_type(self, entity_type: EntityType | str) -> EntityType:
        try:
            return EntityType(entity_type)
        except ValueError:
            allowed = ", ".join(t.value for t in EntityType)
            raise ValidationError(
                f"Unknown entity type: {entity_type!r} (expected one of {allowed})"
            ) from None

    def _validate_entity_id(self, entity_id: str) -> str:
        if not isinstance(entity_id, str) or not entity_id:
            raise ValidationError("Entity id must be a non-empty string")
        if entity_id != entity_id.strip():
            raise ValidationError(f"Entity id has surrounding whitespace: {entity_id!r}")
        if len(entity_id) > self.config.max_entity_id_length:
            raise ValidationError(
                f"Entity id longer than {self.config.max_entity_id_length} characters"
            )
        return entity_id

    def _validate_options(
        self, options: AnalysisOptions | dict[str, Any] | None
    ) -> AnalysisOptions:
        if options is None:
            return AnalysisOptions()
        if isinstance(options, AnalysisOptions):
            return options
        try:
            return AnalysisOptions.model_validate(options)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid analysis options: {e}") from e
