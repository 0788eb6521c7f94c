"""Correlation engine: analyzers, scoring, enrichment and caching."""

from strategy_insights.correlation.analyzers import (
    AnalysisContext,
    Analyzer,
    CausalAnalyzer,
    PerformanceAnalyzer,
    ResourceAnalyzer,
    TemporalAnalyzer,
    ThematicAnalyzer,
)
from strategy_insights.correlation.cache import ResultCache, make_cache_key
from strategy_insights.correlation.engine import CorrelationEngine
from strategy_insights.correlation.entities import (
    Cluster,
    EntityType,
    Initiative,
    Issue,
    Milestone,
    User,
)
from strategy_insights.correlation.impact import BusinessImpactEstimator
from strategy_insights.correlation.models import (
    ActionRecommendation,
    AnalysisOptions,
    BusinessImpact,
    ConfidenceReasoning,
    CorrelationCategory,
    CorrelationDirection,
    CorrelationReport,
    CorrelationResult,
    CorrelationStats,
    CorrelationType,
    EntityReference,
    PatternMatch,
    PatternType,
    TimeRange,
)
from strategy_insights.correlation.patterns import PatternMatcher
from strategy_insights.correlation.recommendations import RecommendationGenerator
from strategy_insights.correlation.repository import (
    EntityRepository,
    PostgresEntityRepository,
)
from strategy_insights.correlation.scoring import Significance, significance_for

__all__ = [
    # Orchestrator
    "CorrelationEngine",
    "ResultCache",
    "make_cache_key",
    # Analyzers
    "AnalysisContext",
    "Analyzer",
    "CausalAnalyzer",
    "PerformanceAnalyzer",
    "ResourceAnalyzer",
    "TemporalAnalyzer",
    "ThematicAnalyzer",
    # Enrichment
    "BusinessImpactEstimator",
    "PatternMatcher",
    "RecommendationGenerator",
    "Significance",
    "significance_for",
    # Entities
    "Cluster",
    "EntityType",
    "Initiative",
    "Issue",
    "Milestone",
    "User",
    # Repositories
    "EntityRepository",
    "PostgresEntityRepository",
    # Results
    "ActionRecommendation",
    "AnalysisOptions",
    "BusinessImpact",
    "ConfidenceReasoning",
    "CorrelationCategory",
    "CorrelationDirection",
    "CorrelationReport",
    "CorrelationResult",
    "CorrelationStats",
    "CorrelationType",
    "EntityReference",
    "PatternMatch",
    "PatternType",
    "TimeRange",
]
