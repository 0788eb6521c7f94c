"""Correlation result models.

All models are frozen and serialize to plain JSON with camelCase keys via
``model_dump(mode="json", by_alias=True)``. Entities are referenced by id,
never embedded.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from strategy_insights.correlation.entities import EntityType, ensure_utc
from strategy_insights.correlation.scoring import Significance, significance_for


class WireModel(BaseModel):
    """Immutable model with camelCase JSON aliases."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible dict with wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# Enumerations
# ============================================================================


class CorrelationCategory(str, Enum):
    """Analysis dimension that produced a correlation."""

    CAUSAL = "causal"
    TEMPORAL = "temporal"
    RESOURCE = "resource"
    THEMATIC = "thematic"
    PERFORMANCE = "performance"


class CorrelationDirection(str, Enum):
    """Which side of a correlation drives the other."""

    BIDIRECTIONAL = "bidirectional"
    SOURCE_TO_TARGET = "source-to-target"
    TARGET_TO_SOURCE = "target-to-source"


class DataQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PatternType(str, Enum):
    """Recurring structural shapes in correlation evidence."""

    RECURRING = "recurring"
    EMERGING = "emerging"
    SEASONAL = "seasonal"
    CASCADE = "cascade"
    BOTTLENECK = "bottleneck"


class Priority(str, Enum):
    IMMEDIATE = "immediate"
    SHORT_TERM = "short-term"
    LONG_TERM = "long-term"


class RecommendationCategory(str, Enum):
    PREVENTION = "prevention"
    OPTIMIZATION = "optimization"
    MITIGATION = "mitigation"
    ESCALATION = "escalation"


class ImpactLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ============================================================================
# Correlation building blocks
# ============================================================================


class EntityReference(WireModel):
    """Snapshot of an entity taken at analysis time."""

    id: str
    type: EntityType
    title: str
    status: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class CorrelationType(WireModel):
    category: CorrelationCategory
    direction: CorrelationDirection
    significance: Significance


class ConfidenceReasoning(WireModel):
    """How trustworthy a strength estimate is, and why."""

    score: int = Field(ge=0, le=100)
    reasoning: list[str] = Field(default_factory=list)
    data_quality: DataQuality = DataQuality.HIGH
    sample_size: int = Field(default=0, ge=0)
    historical_accuracy: float | None = Field(default=None, ge=0, le=100)
    uncertainty_factors: list[str] = Field(default_factory=list)


class PatternMatch(WireModel):
    pattern_type: PatternType
    frequency: int = Field(ge=0)
    timeframe: str
    description: str
    last_occurrence: datetime
    next_predicted: datetime | None = None
    confidence_interval: float = Field(ge=0, le=1)


class FinancialImpact(WireModel):
    cost_of_inaction: float = Field(ge=0)
    potential_savings: float = Field(ge=0)
    investment_required: float = Field(ge=0)


class TimelineImpact(WireModel):
    days_to_resolution: int = Field(ge=0)
    critical_deadline: datetime | None = None


class ResourceImpact(WireModel):
    people_required: int = Field(ge=0)
    skills_needed: list[str] = Field(default_factory=list)
    tools_required: list[str] = Field(default_factory=list)


class Stakeholder(WireModel):
    id: str
    name: str
    role: str
    impact_level: ImpactLevel


class BusinessImpact(WireModel):
    """Projected consequences of acting, or not acting, on a correlation."""

    financial: FinancialImpact
    timeline: TimelineImpact
    resources: ResourceImpact
    stakeholders: list[Stakeholder] = Field(default_factory=list)


class ActionRecommendation(WireModel):
    priority: Priority
    category: RecommendationCategory
    action: str = Field(min_length=1)
    rationale: str
    expected_outcome: str
    required_resources: list[str] = Field(default_factory=list)
    timeline: str = Field(min_length=1)
    success_metrics: list[str] = Field(default_factory=list)


class CorrelationResult(WireModel):
    """A detected relationship between two entities along one dimension."""

    source_entity: EntityReference
    target_entity: EntityReference
    correlation_type: CorrelationType
    strength: float = Field(ge=0, le=1)
    confidence: ConfidenceReasoning
    patterns: list[PatternMatch] = Field(default_factory=list)
    business_impact: BusinessImpact
    recommendations: list[ActionRecommendation] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_significance(self) -> "CorrelationResult":
        expected = significance_for(self.strength)
        if self.correlation_type.significance != expected:
            raise ValueError(
                f"significance {self.correlation_type.significance.value} does not "
                f"match strength {self.strength} (expected {expected.value})"
            )
        return self

    @property
    def category(self) -> CorrelationCategory:
        return self.correlation_type.category

    @property
    def significance(self) -> Significance:
        return self.correlation_type.significance


# ============================================================================
# Request options
# ============================================================================


class TimeRange(WireModel):
    start: datetime
    end: datetime

    @field_validator("start", "end", mode="after")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if self.start > self.end:
            raise ValueError("time range start must not be after end")
        return self

    @classmethod
    def last_days(cls, days: int, now: datetime | None = None) -> "TimeRange":
        end = now or datetime.now(UTC)
        return cls(start=end - timedelta(days=days), end=end)


class AnalysisOptions(WireModel):
    """Per-request options. A missing time range resolves at analysis time."""

    max_results: int = Field(default=10, ge=1)
    min_strength: float = Field(default=0.3, ge=0, le=1)
    include_historical: bool = True
    time_range: TimeRange | None = None


# ============================================================================
# Reporting
# ============================================================================


class QualityMetrics(WireModel):
    average_confidence: float = 0.0
    average_strength: float = 0.0
    high_confidence_rate: float = 0.0
    strong_correlation_rate: float = 0.0
    diversity_index: float = 0.0


class ReportMetadata(WireModel):
    entity_id: str
    entity_type: EntityType
    analysis_timestamp: datetime
    total_found: int
    strong_correlations: int
    average_strength: float
    quality_metrics: QualityMetrics


class CorrelationReport(WireModel):
    """Caller-facing analysis payload."""

    correlations: list[CorrelationResult]
    insights: list[str]
    recommendations: list[str]
    metadata: ReportMetadata


class CorrelationStats(WireModel):
    """Aggregate view over everything currently cached."""

    total_correlations: int = 0
    strong_correlations: int = 0
    pattern_types: dict[str, int] = Field(default_factory=dict)
    average_strength: float = 0.0
