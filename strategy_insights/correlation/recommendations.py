"""Actionable recommendations per correlation, from fixed templates."""

from strategy_insights.correlation.evidence import CorrelationEvidence
from strategy_insights.correlation.models import (
    ActionRecommendation,
    CorrelationCategory,
    Priority,
    RecommendationCategory,
)
from strategy_insights.correlation.scoring import Significance

LOW_PROGRESS_FRACTION = 0.25
CROWDED_OWNER_THRESHOLD = 3


class RecommendationGenerator:
    """Produce at least one recommendation for every correlation."""

    def generate(
        self, evidence: CorrelationEvidence, significance: Significance
    ) -> list[ActionRecommendation]:
        if evidence.category == CorrelationCategory.TEMPORAL:
            recs = self._temporal(evidence, significance)
        elif evidence.category == CorrelationCategory.CAUSAL:
            recs = self._causal(evidence)
        elif evidence.category == CorrelationCategory.RESOURCE:
            recs = self._resource(evidence)
        else:
            recs = []
        return recs or [self._review(evidence)]

    def _temporal(
        self, evidence: CorrelationEvidence, significance: Significance
    ) -> list[ActionRecommendation]:
        title = evidence.milestone.title if evidence.milestone else evidence.target.title
        recs = [
            ActionRecommendation(
                priority=Priority.SHORT_TERM,
                category=RecommendationCategory.PREVENTION,
                action=f"Schedule pre-milestone stress testing and issue prevention review for '{title}'",
                rationale=(
                    f"{evidence.related_count} issues were logged within "
                    f"{evidence.window_days} days of the milestone deadline"
                ),
                expected_outcome="Reduce milestone-related issues by 40%",
                required_resources=["Project manager time", "Team review session"],
                timeline="1 week before milestone",
                success_metrics=["Reduced issue count", "On-time milestone delivery"],
            )
        ]
        if significance == Significance.HIGH:
            recs.append(
                ActionRecommendation(
                    priority=Priority.IMMEDIATE,
                    category=RecommendationCategory.MITIGATION,
                    action=f"Triage the issues clustered around '{title}' before the next checkpoint",
                    rationale="Strong temporal correlation between the deadline and issue volume",
                    expected_outcome="Issue backlog contained before it affects delivery",
                    required_resources=["Issue triage owner", "Support engineers"],
                    timeline="Within 3 days",
                    success_metrics=["Open issue count", "Mean time to triage"],
                )
            )
        return recs

    def _causal(self, evidence: CorrelationEvidence) -> list[ActionRecommendation]:
        initiative = evidence.initiative
        cluster = evidence.cluster
        initiative_title = initiative.title if initiative else "the initiative"
        cluster_name = cluster.name if cluster else "the cluster"

        recs = [
            ActionRecommendation(
                priority=Priority.IMMEDIATE,
                category=RecommendationCategory.OPTIMIZATION,
                action=f"Accelerate '{initiative_title}' to address '{cluster_name}' more effectively",
                rationale="Strong causal relationship between initiative progress and issue resolution",
                expected_outcome="Faster cluster issue resolution",
                required_resources=["Additional developer time", "Stakeholder approval"],
                timeline="2 weeks",
                success_metrics=["Initiative progress increase", "Cluster issue reduction"],
            )
        ]
        fraction = evidence.progress_fraction
        if fraction is not None and fraction < LOW_PROGRESS_FRACTION:
            recs.append(
                ActionRecommendation(
                    priority=Priority.IMMEDIATE,
                    category=RecommendationCategory.ESCALATION,
                    action=f"Escalate '{initiative_title}' to its sponsor for unblocking",
                    rationale=(
                        f"Initiative is only {fraction:.0%} complete while "
                        f"'{cluster_name}' keeps accumulating issues"
                    ),
                    expected_outcome="Blockers removed and delivery plan re-baselined",
                    required_resources=["Executive sponsor", "Initiative owner"],
                    timeline="This week",
                    success_metrics=["Blockers resolved", "Progress at next review"],
                )
            )
        return recs

    def _resource(self, evidence: CorrelationEvidence) -> list[ActionRecommendation]:
        recs = [
            ActionRecommendation(
                priority=Priority.SHORT_TERM,
                category=RecommendationCategory.OPTIMIZATION,
                action=(
                    f"Evaluate prioritization and resource reallocation between "
                    f"'{evidence.source.title}' and '{evidence.target.title}'"
                ),
                rationale="Resource contention detected between initiatives with the same owner",
                expected_outcome="Improved resource utilization and delivery speed",
                required_resources=["Management decision", "Resource planning"],
                timeline="1 week",
                success_metrics=["Clear priority ranking", "Resource allocation plan"],
            )
        ]
        if evidence.competing_count >= CROWDED_OWNER_THRESHOLD:
            recs.append(
                ActionRecommendation(
                    priority=Priority.LONG_TERM,
                    category=RecommendationCategory.PREVENTION,
                    action="Introduce an ownership cap or delegate co-owners for concurrent initiatives",
                    rationale=(
                        f"One owner is carrying {evidence.competing_count} active initiatives"
                    ),
                    expected_outcome="Fewer bottlenecks from single-owner overload",
                    required_resources=["Portfolio governance", "Additional owners"],
                    timeline="Next planning cycle",
                    success_metrics=["Initiatives per owner", "Milestone slip rate"],
                )
            )
        return recs

    def _review(self, evidence: CorrelationEvidence) -> ActionRecommendation:
        return ActionRecommendation(
            priority=Priority.LONG_TERM,
            category=RecommendationCategory.OPTIMIZATION,
            action=f"Review the relationship between '{evidence.source.title}' and '{evidence.target.title}'",
            rationale=f"{evidence.category.value.capitalize()} correlation detected",
            expected_outcome="Shared understanding of the dependency",
            required_resources=["Analyst time"],
            timeline="Next review cycle",
            success_metrics=["Relationship documented"],
        )
