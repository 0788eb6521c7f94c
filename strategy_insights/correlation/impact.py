"""Business impact estimation for correlations."""

from strategy_insights.config import ImpactDefaults
from strategy_insights.correlation.entities import Initiative
from strategy_insights.correlation.evidence import CorrelationEvidence
from strategy_insights.correlation.models import (
    BusinessImpact,
    CorrelationCategory,
    FinancialImpact,
    ImpactLevel,
    ResourceImpact,
    Stakeholder,
    TimelineImpact,
)

# Savings multiplier when the dependent initiative reports no progress value
UNKNOWN_PROGRESS_FRACTION = 0.5
DAYS_PER_COMPETING_INITIATIVE = 7


class BusinessImpactEstimator:
    """Scale category defaults by the signal observed in the evidence."""

    def __init__(self, defaults: ImpactDefaults | None = None):
        self.defaults = defaults or ImpactDefaults()

    def estimate(self, evidence: CorrelationEvidence) -> BusinessImpact:
        d = self.defaults
        cost_of_inaction = d.cost_of_inaction
        potential_savings = d.potential_savings
        days_to_resolution = d.days_to_resolution
        critical_deadline = None
        stakeholders: list[Stakeholder] = []

        if evidence.category == CorrelationCategory.TEMPORAL:
            cost_of_inaction *= max(evidence.related_count, 1)
            if evidence.milestone:
                critical_deadline = evidence.milestone.due_date
            stakeholders = _owner_stakeholders([evidence.initiative], ImpactLevel.MEDIUM)

        elif evidence.category == CorrelationCategory.CAUSAL:
            fraction = evidence.progress_fraction
            if fraction is None:
                fraction = UNKNOWN_PROGRESS_FRACTION
            potential_savings *= fraction
            stakeholders = _owner_stakeholders([evidence.initiative], ImpactLevel.HIGH)

        elif evidence.category == CorrelationCategory.RESOURCE:
            days_to_resolution = DAYS_PER_COMPETING_INITIATIVE * evidence.competing_count
            stakeholders = _owner_stakeholders(
                [evidence.initiative, evidence.related_initiative], ImpactLevel.HIGH
            )

        return BusinessImpact(
            financial=FinancialImpact(
                cost_of_inaction=round(cost_of_inaction, 2),
                potential_savings=round(potential_savings, 2),
                investment_required=round(d.investment_required, 2),
            ),
            timeline=TimelineImpact(
                days_to_resolution=days_to_resolution,
                critical_deadline=critical_deadline,
            ),
            resources=ResourceImpact(
                people_required=d.people_required,
                skills_needed=list(d.skills_needed),
                tools_required=list(d.tools_required),
            ),
            stakeholders=stakeholders,
        )


def _owner_stakeholders(
    initiatives: list[Initiative | None], level: ImpactLevel
) -> list[Stakeholder]:
    """One stakeholder per distinct owner, in order of first appearance."""
    seen: set[str] = set()
    stakeholders = []
    for initiative in initiatives:
        if initiative is None or initiative.owner is None:
            continue
        owner = initiative.owner
        if owner.id in seen:
            continue
        seen.add(owner.id)
        stakeholders.append(
            Stakeholder(
                id=owner.id,
                name=owner.name,
                role=owner.role or "Initiative Owner",
                impact_level=level,
            )
        )
    return stakeholders
