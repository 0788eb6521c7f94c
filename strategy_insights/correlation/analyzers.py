"""Strategy analyzers: one per correlation dimension.

Each analyzer gathers evidence from the entity repository (the only await
points), then scores and enriches every candidate synchronously. A candidate
that fails to score is dropped on its own; the rest of the batch proceeds.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta

import pydantic
import structlog

from strategy_insights.config import EngineConfig
from strategy_insights.correlation.entities import (
    Cluster,
    EntityType,
    Initiative,
    Milestone,
)
from strategy_insights.correlation.evidence import CorrelationEvidence
from strategy_insights.correlation.impact import BusinessImpactEstimator
from strategy_insights.correlation.models import (
    ConfidenceReasoning,
    CorrelationCategory,
    CorrelationDirection,
    CorrelationResult,
    CorrelationType,
    DataQuality,
    EntityReference,
    TimeRange,
)
from strategy_insights.correlation.patterns import PatternMatcher
from strategy_insights.correlation.recommendations import RecommendationGenerator
from strategy_insights.correlation.repository import EntityRepository
from strategy_insights.correlation.scoring import (
    CAUSAL_CONFIDENCE_FACTOR,
    RESOURCE_CONFIDENCE_FACTOR,
    TEMPORAL_CONFIDENCE_FACTOR,
    causal_strength,
    confidence_score,
    resource_strength,
    significance_for,
    temporal_strength,
)
from strategy_insights.errors import ComputationError

logger = structlog.get_logger()


@dataclass
class AnalysisContext:
    """Per-request parameters shared by all analyzers."""

    time_range: TimeRange
    include_historical: bool = True


@dataclass
class Score:
    strength: float
    confidence: ConfidenceReasoning


class Analyzer(ABC):
    """Common interface for all correlation strategies."""

    name: str = "analyzer"
    category: CorrelationCategory
    supported_types: frozenset[EntityType] = frozenset()

    # Track record of this strategy, reported when historical data is requested
    historical_accuracy: float | None = None

    def __init__(
        self,
        repository: EntityRepository,
        config: EngineConfig | None = None,
        pattern_matcher: PatternMatcher | None = None,
        impact_estimator: BusinessImpactEstimator | None = None,
        recommendation_generator: RecommendationGenerator | None = None,
    ):
        self.repository = repository
        self.config = config or EngineConfig()
        self.pattern_matcher = pattern_matcher or PatternMatcher()
        self.impact_estimator = impact_estimator or BusinessImpactEstimator(self.config.impact)
        self.recommendation_generator = recommendation_generator or RecommendationGenerator()

    def handles(self, entity_type: EntityType) -> bool:
        """Whether this analyzer queries the repository for the entity type."""
        return entity_type in self.supported_types

    async def analyze(
        self,
        entity_id: str,
        entity_type: EntityType,
        context: AnalysisContext | None = None,
    ) -> list[CorrelationResult]:
        """Find correlations for one entity along this analyzer's dimension."""
        if not self.handles(entity_type):
            return []

        if context is None:
            context = AnalysisContext(
                time_range=TimeRange.last_days(self.config.default_time_range_days)
            )

        evidence_list = await self.collect(entity_id, entity_type, context)

        results = []
        for evidence in evidence_list:
            try:
                results.append(self.build_result(evidence, context))
            except ComputationError as e:
                logger.warning(
                    "Dropped correlation",
                    analyzer=self.name,
                    source_id=evidence.source.id,
                    target_id=evidence.target.id,
                    error=str(e),
                )
        return results

    def build_result(
        self, evidence: CorrelationEvidence, context: AnalysisContext
    ) -> CorrelationResult:
        """Score and enrich one candidate into an immutable result."""
        score = self.score(evidence)
        confidence = score.confidence
        if context.include_historical and self.historical_accuracy is not None:
            confidence = confidence.model_copy(
                update={"historical_accuracy": self.historical_accuracy}
            )

        significance = significance_for(score.strength)
        try:
            return CorrelationResult(
                source_entity=evidence.source,
                target_entity=evidence.target,
                correlation_type=CorrelationType(
                    category=self.category,
                    direction=evidence.direction,
                    significance=significance,
                ),
                strength=score.strength,
                confidence=confidence,
                patterns=self.pattern_matcher.match(evidence),
                business_impact=self.impact_estimator.estimate(evidence),
                recommendations=self.recommendation_generator.generate(
                    evidence, significance
                ),
            )
        except pydantic.ValidationError as e:
            raise ComputationError(f"Invalid correlation data: {e}") from e

    @abstractmethod
    async def collect(
        self,
        entity_id: str,
        entity_type: EntityType,
        context: AnalysisContext,
    ) -> list[CorrelationEvidence]:
        """Gather candidate evidence from the repository."""

    @abstractmethod
    def score(self, evidence: CorrelationEvidence) -> Score:
        """Compute strength and confidence for one candidate."""


# ============================================================================
# Entity reference helpers
# ============================================================================


def initiative_ref(initiative: Initiative, **metadata) -> EntityReference:
    return EntityReference(
        id=initiative.id,
        type=EntityType.INITIATIVE,
        title=initiative.title,
        status=initiative.status,
        metadata=metadata,
    )


def milestone_ref(milestone: Milestone, **metadata) -> EntityReference:
    return EntityReference(
        id=milestone.id,
        type=EntityType.MILESTONE,
        title=milestone.title,
        status=milestone.status,
        metadata=metadata,
    )


def cluster_ref(cluster: Cluster) -> EntityReference:
    return EntityReference(
        id=cluster.id,
        type=EntityType.CLUSTER,
        title=cluster.name,
        metadata={"issueCount": len(cluster.issues), "severity": cluster.severity},
    )


# ============================================================================
# Temporal
# ============================================================================


class TemporalAnalyzer(Analyzer):
    """Issues logged close to milestone due dates."""

    name = "temporal"
    category = CorrelationCategory.TEMPORAL
    supported_types = frozenset({EntityType.INITIATIVE, EntityType.MILESTONE})
    historical_accuracy = 78

    async def collect(
        self,
        entity_id: str,
        entity_type: EntityType,
        context: AnalysisContext,
    ) -> list[CorrelationEvidence]:
        if entity_type == EntityType.MILESTONE:
            return await self._collect_for_milestone(entity_id, context)

        initiative = await self.repository.get_initiative(entity_id)
        if initiative is None:
            return []

        milestones = sorted(initiative.milestones, key=lambda m: m.due_date)
        evidence_list = []
        for index, milestone in enumerate(milestones):
            if not self._window_overlaps(milestone, context):
                continue
            evidence = await self._milestone_evidence(
                milestone,
                next_milestone=milestones[index + 1] if index + 1 < len(milestones) else None,
                initiative=initiative,
                context=context,
                milestone_is_source=False,
            )
            if evidence is not None:
                evidence_list.append(evidence)
        return evidence_list

    async def _collect_for_milestone(
        self, milestone_id: str, context: AnalysisContext
    ) -> list[CorrelationEvidence]:
        milestone = await self.repository.get_milestone(milestone_id)
        if milestone is None or milestone.initiative_id is None:
            return []
        if not self._window_overlaps(milestone, context):
            return []

        initiative = await self.repository.get_initiative(milestone.initiative_id)
        if initiative is None:
            return []

        later = sorted(
            (m for m in initiative.milestones if m.due_date > milestone.due_date),
            key=lambda m: m.due_date,
        )
        evidence = await self._milestone_evidence(
            milestone,
            next_milestone=later[0] if later else None,
            initiative=initiative,
            context=context,
            milestone_is_source=True,
        )
        return [evidence] if evidence is not None else []

    def _window_overlaps(self, milestone: Milestone, context: AnalysisContext) -> bool:
        """True when the +/- window around the due date touches the time range."""
        window = timedelta(days=self.config.temporal_window_days)
        return (
            milestone.due_date - window <= context.time_range.end
            and milestone.due_date + window >= context.time_range.start
        )

    async def _milestone_evidence(
        self,
        milestone: Milestone,
        next_milestone: Milestone | None,
        initiative: Initiative,
        context: AnalysisContext,
        milestone_is_source: bool,
    ) -> CorrelationEvidence | None:
        window_days = self.config.temporal_window_days
        window = timedelta(days=window_days)
        issues = await self.repository.find_issues_created_between(
            milestone.due_date - window, milestone.due_date + window
        )
        if not issues:
            return None

        milestone_side = milestone_ref(
            milestone,
            relatedIssueCount=len(issues),
            relatedIssueIds=[issue.id for issue in issues],
        )
        initiative_side = initiative_ref(initiative, milestoneId=milestone.id)
        source, target = (
            (milestone_side, initiative_side)
            if milestone_is_source
            else (initiative_side, milestone_side)
        )

        return CorrelationEvidence(
            category=self.category,
            direction=CorrelationDirection.BIDIRECTIONAL,
            source=source,
            target=target,
            reference_time=context.time_range.end,
            milestone=milestone,
            next_milestone=next_milestone,
            related_issues=issues,
            window_days=window_days,
            initiative=initiative,
        )

    def score(self, evidence: CorrelationEvidence) -> Score:
        severities = [issue.heatmap_score for issue in evidence.related_issues]
        bad = [s for s in severities if not 0 <= s <= 100]
        if bad:
            raise ComputationError(f"Heatmap score out of range: {bad[0]}")

        strength = temporal_strength(evidence.related_count, severities)
        uncertainty = []
        if evidence.related_count < 3:
            uncertainty.append("Small number of related issues")

        return Score(
            strength=strength,
            confidence=ConfidenceReasoning(
                score=confidence_score(strength, TEMPORAL_CONFIDENCE_FACTOR),
                reasoning=[
                    f"{evidence.related_count} issues created within "
                    f"{evidence.window_days} days of milestone",
                    "Temporal proximity indicates operational stress patterns",
                    "Historical pattern recognition from similar milestones",
                ],
                data_quality=DataQuality.HIGH,
                sample_size=evidence.related_count,
                uncertainty_factors=uncertainty,
            ),
        )


# ============================================================================
# Causal
# ============================================================================


class CausalAnalyzer(Analyzer):
    """Initiatives declared to address an issue cluster."""

    name = "causal"
    category = CorrelationCategory.CAUSAL
    supported_types = frozenset({EntityType.CLUSTER, EntityType.INITIATIVE})
    historical_accuracy = 85

    async def collect(
        self,
        entity_id: str,
        entity_type: EntityType,
        context: AnalysisContext,
    ) -> list[CorrelationEvidence]:
        if entity_type == EntityType.CLUSTER:
            cluster = await self.repository.get_cluster(entity_id)
            if cluster is None:
                return []
            return [
                self._evidence(
                    cluster,
                    initiative,
                    context,
                    source=cluster_ref(cluster),
                    target=self._initiative_target(initiative),
                    direction=CorrelationDirection.SOURCE_TO_TARGET,
                )
                for initiative in cluster.initiatives
            ]

        initiative = await self.repository.get_initiative(entity_id)
        if initiative is None or initiative.cluster_id is None:
            return []
        cluster = await self.repository.get_cluster(initiative.cluster_id)
        if cluster is None:
            return []
        return [
            self._evidence(
                cluster,
                initiative,
                context,
                source=self._initiative_target(initiative),
                target=cluster_ref(cluster),
                direction=CorrelationDirection.TARGET_TO_SOURCE,
            )
        ]

    def _initiative_target(self, initiative: Initiative) -> EntityReference:
        return initiative_ref(
            initiative,
            progress=initiative.progress,
            addressedIssuesCount=len(initiative.addressed_issue_ids),
        )

    def _evidence(
        self,
        cluster: Cluster,
        initiative: Initiative,
        context: AnalysisContext,
        source: EntityReference,
        target: EntityReference,
        direction: CorrelationDirection,
    ) -> CorrelationEvidence:
        return CorrelationEvidence(
            category=self.category,
            direction=direction,
            source=source,
            target=target,
            reference_time=context.time_range.end,
            initiative=initiative,
            cluster=cluster,
        )

    def score(self, evidence: CorrelationEvidence) -> Score:
        progress = evidence.initiative.progress if evidence.initiative else None
        if progress is not None and not 0 <= progress <= 100:
            raise ComputationError(f"Initiative progress out of range: {progress}")

        fraction = evidence.progress_fraction
        strength = causal_strength(fraction or 0.0)
        sample_size = len(evidence.cluster.issues) if evidence.cluster else 0

        uncertainty = []
        data_quality = DataQuality.HIGH
        if fraction is None:
            uncertainty.append("Initiative progress not reported")
            data_quality = DataQuality.MEDIUM

        return Score(
            strength=strength,
            confidence=ConfidenceReasoning(
                score=confidence_score(strength, CAUSAL_CONFIDENCE_FACTOR),
                reasoning=[
                    "Direct addressing relationship established",
                    "Initiative explicitly created to resolve cluster issues",
                    "Progress correlation with issue resolution",
                ],
                data_quality=data_quality,
                sample_size=sample_size,
                uncertainty_factors=uncertainty,
            ),
        )


# ============================================================================
# Resource
# ============================================================================


class ResourceAnalyzer(Analyzer):
    """Initiatives competing for the same owner."""

    name = "resource"
    category = CorrelationCategory.RESOURCE
    supported_types = frozenset({EntityType.INITIATIVE})
    historical_accuracy = 82

    async def collect(
        self,
        entity_id: str,
        entity_type: EntityType,
        context: AnalysisContext,
    ) -> list[CorrelationEvidence]:
        initiative = await self.repository.get_initiative(entity_id)
        if initiative is None or not initiative.owner_id:
            return []

        related = await self.repository.find_initiatives_by_owner(
            initiative.owner_id,
            exclude_id=entity_id,
            statuses=self.config.active_initiative_statuses,
        )
        return [
            CorrelationEvidence(
                category=self.category,
                direction=CorrelationDirection.BIDIRECTIONAL,
                source=initiative_ref(initiative, ownerId=initiative.owner_id),
                target=initiative_ref(other, ownerId=other.owner_id),
                reference_time=context.time_range.end,
                initiative=initiative,
                related_initiative=other,
                competing_initiatives=related,
            )
            for other in related
            if other.id != entity_id
        ]

    def score(self, evidence: CorrelationEvidence) -> Score:
        source, other = evidence.initiative, evidence.related_initiative
        if source is None or other is None:
            raise ComputationError("Resource evidence without both initiatives")

        status_matches = source.status is not None and source.status == other.status
        strength = resource_strength(status_matches)
        reasoning = [
            "Same owner indicates resource competition",
            "Parallel execution may create bottlenecks",
            "Shared context and expertise",
        ]
        if status_matches:
            reasoning.append(f"Both initiatives are {source.status}")

        return Score(
            strength=strength,
            confidence=ConfidenceReasoning(
                score=confidence_score(strength, RESOURCE_CONFIDENCE_FACTOR),
                reasoning=reasoning,
                data_quality=DataQuality.HIGH,
                sample_size=len(evidence.competing_initiatives),
            ),
        )


# ============================================================================
# Not yet implemented dimensions
# ============================================================================


class UnimplementedAnalyzer(Analyzer):
    """Dimension with no strategy yet: always an empty, well-typed result."""

    supported_types = frozenset()

    async def collect(
        self,
        entity_id: str,
        entity_type: EntityType,
        context: AnalysisContext,
    ) -> list[CorrelationEvidence]:
        return []

    def score(self, evidence: CorrelationEvidence) -> Score:
        raise ComputationError(f"{self.name} analyzer has no scoring strategy")


class ThematicAnalyzer(UnimplementedAnalyzer):
    """Content/theme similarity. Needs an embedding backend."""

    name = "thematic"
    category = CorrelationCategory.THEMATIC


class PerformanceAnalyzer(UnimplementedAnalyzer):
    """Shared success/failure trajectories. Needs time-series history."""

    name = "performance"
    category = CorrelationCategory.PERFORMANCE


ANALYZER_CLASSES: tuple[type[Analyzer], ...] = (
    TemporalAnalyzer,
    CausalAnalyzer,
    ResourceAnalyzer,
    ThematicAnalyzer,
    PerformanceAnalyzer,
)
