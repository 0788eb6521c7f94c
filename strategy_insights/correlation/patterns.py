"""Pattern detection over correlation evidence."""

from datetime import datetime

from strategy_insights.correlation.evidence import CorrelationEvidence
from strategy_insights.correlation.models import (
    CorrelationCategory,
    PatternMatch,
    PatternType,
)


class PatternMatcher:
    """Describe how a correlation recurs. Deterministic for identical evidence."""

    def match(self, evidence: CorrelationEvidence) -> list[PatternMatch]:
        handlers = {
            CorrelationCategory.TEMPORAL: self._temporal_patterns,
            CorrelationCategory.CAUSAL: self._causal_patterns,
            CorrelationCategory.RESOURCE: self._resource_patterns,
        }
        handler = handlers.get(evidence.category)
        if handler is None:
            return []
        return handler(evidence)

    def _temporal_patterns(self, evidence: CorrelationEvidence) -> list[PatternMatch]:
        milestone = evidence.milestone
        issues = evidence.related_issues
        due = milestone.due_date if milestone else evidence.reference_time
        last = _latest([i.created_at for i in issues], default=due)
        next_predicted = (
            evidence.next_milestone.due_date if evidence.next_milestone else None
        )
        title = milestone.title if milestone else evidence.target.title

        patterns = [
            PatternMatch(
                pattern_type=PatternType.RECURRING,
                frequency=len(issues),
                timeframe=f"{evidence.window_days} days around milestone",
                description=f"Issues spike near the '{title}' deadline",
                last_occurrence=last,
                next_predicted=next_predicted,
                confidence_interval=0.8,
            )
        ]

        after = [i for i in issues if i.created_at > due]
        before = [i for i in issues if i.created_at < due]
        if after and len(after) > len(before):
            patterns.append(
                PatternMatch(
                    pattern_type=PatternType.EMERGING,
                    frequency=len(after),
                    timeframe=f"{evidence.window_days} days after milestone",
                    description=(
                        f"Issues keep arriving after '{title}' was due "
                        f"({len(after)} after vs {len(before)} before)"
                    ),
                    last_occurrence=last,
                    next_predicted=next_predicted,
                    confidence_interval=0.6,
                )
            )
        return patterns

    def _causal_patterns(self, evidence: CorrelationEvidence) -> list[PatternMatch]:
        moments: list[datetime] = []
        if evidence.cluster:
            moments.extend(i.created_at for i in evidence.cluster.issues)
        if evidence.initiative and evidence.initiative.updated_at:
            moments.append(evidence.initiative.updated_at)

        return [
            PatternMatch(
                pattern_type=PatternType.CASCADE,
                frequency=1,
                timeframe="Initiative lifecycle",
                description="Initiative progress inversely correlates with cluster issues",
                last_occurrence=_latest(moments, default=evidence.reference_time),
                confidence_interval=0.9,
            )
        ]

    def _resource_patterns(self, evidence: CorrelationEvidence) -> list[PatternMatch]:
        moments = [
            init.updated_at
            for init in (evidence.initiative, evidence.related_initiative)
            if init is not None and init.updated_at is not None
        ]
        return [
            PatternMatch(
                pattern_type=PatternType.BOTTLENECK,
                frequency=evidence.competing_count,
                timeframe="Concurrent execution",
                description="Resource contention may delay both initiatives",
                last_occurrence=_latest(moments, default=evidence.reference_time),
                confidence_interval=0.7,
            )
        ]


def _latest(moments: list[datetime], default: datetime) -> datetime:
    return max(moments) if moments else default
