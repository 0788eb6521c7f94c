"""Raw evidence gathered by an analyzer for one candidate correlation."""

from dataclasses import dataclass, field
from datetime import datetime

from strategy_insights.correlation.entities import Cluster, Initiative, Issue, Milestone
from strategy_insights.correlation.models import (
    CorrelationCategory,
    CorrelationDirection,
    EntityReference,
)


@dataclass
class CorrelationEvidence:
    """Everything the scoring and enrichment steps need about one candidate.

    `reference_time` is the end of the analysis time range; enrichment uses it
    instead of the wall clock so identical inputs give identical output.
    """

    category: CorrelationCategory
    direction: CorrelationDirection
    source: EntityReference
    target: EntityReference
    reference_time: datetime

    # Temporal evidence
    milestone: Milestone | None = None
    next_milestone: Milestone | None = None
    related_issues: list[Issue] = field(default_factory=list)
    window_days: int = 7

    # Causal evidence
    initiative: Initiative | None = None
    cluster: Cluster | None = None

    # Resource evidence
    related_initiative: Initiative | None = None
    competing_initiatives: list[Initiative] = field(default_factory=list)

    @property
    def related_count(self) -> int:
        return len(self.related_issues)

    @property
    def competing_count(self) -> int:
        """Initiatives sharing the owner, the analyzed one included."""
        return len(self.competing_initiatives) + 1

    @property
    def progress_fraction(self) -> float | None:
        if self.initiative is None or self.initiative.progress is None:
            return None
        return self.initiative.progress / 100
