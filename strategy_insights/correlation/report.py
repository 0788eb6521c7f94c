"""Caller-facing summaries over a list of correlations."""

import math
from collections import Counter
from datetime import UTC, datetime

from strategy_insights.correlation.entities import EntityType
from strategy_insights.correlation.models import (
    CorrelationCategory,
    CorrelationReport,
    CorrelationResult,
    PatternType,
    QualityMetrics,
    ReportMetadata,
)

STRONG_STRENGTH = 0.7
VERY_STRONG_STRENGTH = 0.8
HIGH_CONFIDENCE_SCORE = 80
RECURRING_FREQUENCY = 2


def generate_insights(correlations: list[CorrelationResult]) -> list[str]:
    """High-level observations about the correlation set."""
    insights = []

    strong = [c for c in correlations if c.strength > STRONG_STRENGTH]
    causal = [c for c in correlations if c.category == CorrelationCategory.CAUSAL]
    temporal = [c for c in correlations if c.category == CorrelationCategory.TEMPORAL]

    if strong:
        insights.append(
            f"Identified {len(strong)} strong correlations indicating "
            f"significant system interdependencies"
        )
    if causal:
        insights.append(
            f"Found {len(causal)} causal relationships that can be leveraged "
            f"for targeted interventions"
        )
    if temporal:
        insights.append(
            f"Detected {len(temporal)} temporal patterns that can help predict future issues"
        )

    recurring = [
        p for c in correlations for p in c.patterns if p.frequency > RECURRING_FREQUENCY
    ]
    if recurring:
        insights.append(
            f"Recurring patterns suggest {len(recurring)} systemic issues "
            f"that require structural changes"
        )

    return insights


def generate_system_recommendations(correlations: list[CorrelationResult]) -> list[str]:
    """Portfolio-level recommendations across all correlations."""
    recommendations = []

    resource = [c for c in correlations if c.category == CorrelationCategory.RESOURCE]
    if len(resource) > 2:
        recommendations.append(
            "Consider resource rebalancing across initiatives to reduce "
            "bottlenecks and improve delivery"
        )

    risky = [
        p
        for c in correlations
        for p in c.patterns
        if p.pattern_type in (PatternType.CASCADE, PatternType.BOTTLENECK)
    ]
    if risky:
        recommendations.append(
            "Implement preventive monitoring for identified cascade and bottleneck patterns"
        )

    if any(c.strength > VERY_STRONG_STRENGTH for c in correlations):
        recommendations.append(
            "Leverage strong correlations for coordinated planning and execution strategies"
        )

    return recommendations


def calculate_diversity_index(correlations: list[CorrelationResult]) -> float:
    """Shannon entropy (bits) of the category distribution."""
    total = len(correlations)
    if total == 0:
        return 0.0

    counts = Counter(c.category for c in correlations)
    entropy = 0.0
    for count in counts.values():
        probability = count / total
        entropy -= probability * math.log2(probability)
    return entropy


def calculate_quality_metrics(correlations: list[CorrelationResult]) -> QualityMetrics:
    total = len(correlations)
    if total == 0:
        return QualityMetrics()

    return QualityMetrics(
        average_confidence=sum(c.confidence.score for c in correlations) / total,
        average_strength=sum(c.strength for c in correlations) / total,
        high_confidence_rate=(
            len([c for c in correlations if c.confidence.score > HIGH_CONFIDENCE_SCORE])
            / total
        ),
        strong_correlation_rate=(
            len([c for c in correlations if c.strength > STRONG_STRENGTH]) / total
        ),
        diversity_index=calculate_diversity_index(correlations),
    )


def build_report(
    entity_id: str,
    entity_type: EntityType,
    correlations: list[CorrelationResult],
    analysis_timestamp: datetime | None = None,
) -> CorrelationReport:
    """Assemble correlations, insights, recommendations and metadata."""
    total = len(correlations)
    metadata = ReportMetadata(
        entity_id=entity_id,
        entity_type=entity_type,
        analysis_timestamp=analysis_timestamp or datetime.now(UTC),
        total_found=total,
        strong_correlations=len([c for c in correlations if c.strength > STRONG_STRENGTH]),
        average_strength=sum(c.strength for c in correlations) / total if total else 0.0,
        quality_metrics=calculate_quality_metrics(correlations),
    )
    return CorrelationReport(
        correlations=correlations,
        insights=generate_insights(correlations),
        recommendations=generate_system_recommendations(correlations),
        metadata=metadata,
    )
