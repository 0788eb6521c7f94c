"""Tests for the strategy analyzers."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from factories import (
    ANALYSIS_RANGE,
    MILESTONE_DUE,
    NOW,
    issues_around,
    make_cluster,
    make_initiative,
    make_issue,
    make_milestone,
)
from strategy_insights.correlation.analyzers import (
    AnalysisContext,
    CausalAnalyzer,
    PerformanceAnalyzer,
    ResourceAnalyzer,
    TemporalAnalyzer,
    ThematicAnalyzer,
)
from strategy_insights.correlation.entities import EntityType
from strategy_insights.correlation.models import (
    CorrelationCategory,
    CorrelationDirection,
    DataQuality,
)
from strategy_insights.correlation.scoring import Significance
from strategy_insights.errors import DataAccessError


@pytest.fixture
def context():
    return AnalysisContext(time_range=ANALYSIS_RANGE)


class TestTemporalAnalyzer:
    """Tests for issues clustered around milestone deadlines."""

    @pytest.mark.asyncio
    async def test_milestone_with_issue_spike(self, repository, context):
        """Six severe issues near a due date saturate strength."""
        analyzer = TemporalAnalyzer(repository)
        results = await analyzer.analyze("init-1", EntityType.INITIATIVE, context)

        assert len(results) == 1
        result = results[0]
        assert result.strength == 1.0
        assert result.confidence.score == 85
        assert result.significance == Significance.HIGH
        assert result.category == CorrelationCategory.TEMPORAL
        assert result.correlation_type.direction == CorrelationDirection.BIDIRECTIONAL
        assert result.source_entity.id == "init-1"
        assert result.target_entity.id == "ms-1"
        assert result.target_entity.metadata["relatedIssueCount"] == 6
        assert result.confidence.sample_size == 6
        assert result.confidence.historical_accuracy == 78

    @pytest.mark.asyncio
    async def test_queries_window_around_due_date(self, repository, context):
        analyzer = TemporalAnalyzer(repository)
        await analyzer.analyze("init-1", EntityType.INITIATIVE, context)

        repository.find_issues_created_between.assert_awaited_once_with(
            MILESTONE_DUE - timedelta(days=7), MILESTONE_DUE + timedelta(days=7)
        )

    @pytest.mark.asyncio
    async def test_milestone_without_issues(self, repository, context):
        repository.find_issues_created_between.return_value = []
        analyzer = TemporalAnalyzer(repository)

        assert await analyzer.analyze("init-1", EntityType.INITIATIVE, context) == []

    @pytest.mark.asyncio
    async def test_milestone_outside_time_range_skipped(self, repository, context):
        far = make_milestone("ms-old", due_date=NOW - timedelta(days=400))
        repository.get_initiative.side_effect = None
        repository.get_initiative.return_value = make_initiative(milestones=[far])
        analyzer = TemporalAnalyzer(repository)

        assert await analyzer.analyze("init-1", EntityType.INITIATIVE, context) == []
        repository.find_issues_created_between.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upcoming_milestone_within_window_kept(self, repository, context):
        """A due date just past the range end still overlaps through its window."""
        upcoming = make_milestone("ms-next", due_date=NOW + timedelta(days=3))
        repository.get_initiative.side_effect = None
        repository.get_initiative.return_value = make_initiative(milestones=[upcoming])
        repository.find_issues_created_between.return_value = issues_around(
            NOW - timedelta(days=2), 4
        )
        analyzer = TemporalAnalyzer(repository)

        [result] = await analyzer.analyze("init-1", EntityType.INITIATIVE, context)

        assert result.target_entity.id == "ms-next"
        repository.find_issues_created_between.assert_awaited_once_with(
            upcoming.due_date - timedelta(days=7), upcoming.due_date + timedelta(days=7)
        )

    @pytest.mark.asyncio
    async def test_milestone_beyond_window_skipped(self, repository, context):
        later = make_milestone("ms-later", due_date=NOW + timedelta(days=8))
        repository.get_initiative.side_effect = None
        repository.get_initiative.return_value = make_initiative(milestones=[later])
        analyzer = TemporalAnalyzer(repository)

        assert await analyzer.analyze("init-1", EntityType.INITIATIVE, context) == []
        repository.find_issues_created_between.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_few_issues_flagged_uncertain(self, repository, context):
        repository.find_issues_created_between.return_value = [
            make_issue("issue-a", 30.0),
            make_issue("issue-b", 20.0),
        ]
        analyzer = TemporalAnalyzer(repository)
        [result] = await analyzer.analyze("init-1", EntityType.INITIATIVE, context)

        assert result.strength == pytest.approx(0.55)
        assert result.significance == Significance.MEDIUM
        assert result.confidence.uncertainty_factors

    @pytest.mark.asyncio
    async def test_bad_heatmap_score_drops_only_that_candidate(self, repository, context):
        second = make_milestone("ms-2", due_date=MILESTONE_DUE + timedelta(days=5))
        repository.get_initiative.side_effect = None
        repository.get_initiative.return_value = make_initiative(
            milestones=[make_milestone(), second]
        )
        repository.find_issues_created_between.side_effect = [
            [make_issue("issue-bad", 140.0)],
            issues_around(second.due_date, 3),
        ]
        analyzer = TemporalAnalyzer(repository)
        results = await analyzer.analyze("init-1", EntityType.INITIATIVE, context)

        assert [r.target_entity.id for r in results] == ["ms-2"]

    @pytest.mark.asyncio
    async def test_milestone_entity_is_source(self, repository, context):
        analyzer = TemporalAnalyzer(repository)
        [result] = await analyzer.analyze("ms-1", EntityType.MILESTONE, context)

        assert result.source_entity.type == EntityType.MILESTONE
        assert result.target_entity.id == "init-1"

    @pytest.mark.asyncio
    async def test_unknown_initiative(self, repository, context):
        analyzer = TemporalAnalyzer(repository)
        assert await analyzer.analyze("missing", EntityType.INITIATIVE, context) == []

    @pytest.mark.asyncio
    async def test_unsupported_type_does_not_query(self, repository, context):
        analyzer = TemporalAnalyzer(repository)
        assert await analyzer.analyze("issue-1", EntityType.ISSUE, context) == []
        repository.get_initiative.assert_not_awaited()


class TestCausalAnalyzer:
    """Tests for initiatives addressing issue clusters."""

    @pytest.mark.asyncio
    async def test_cluster_to_initiative(self, repository, context):
        """Initiative at 50% progress gives 0.9 strength and 86 confidence."""
        analyzer = CausalAnalyzer(repository)
        [result] = await analyzer.analyze("cluster-1", EntityType.CLUSTER, context)

        assert result.strength == 0.9
        assert result.confidence.score == 86
        assert result.significance == Significance.HIGH
        assert result.correlation_type.direction == CorrelationDirection.SOURCE_TO_TARGET
        assert result.source_entity.id == "cluster-1"
        assert result.target_entity.id == "init-1"
        assert result.confidence.sample_size == 4
        assert result.confidence.historical_accuracy == 85

    @pytest.mark.asyncio
    async def test_initiative_to_cluster(self, repository, context):
        analyzer = CausalAnalyzer(repository)
        [result] = await analyzer.analyze("init-1", EntityType.INITIATIVE, context)

        assert result.source_entity.id == "init-1"
        assert result.target_entity.id == "cluster-1"
        assert result.correlation_type.direction == CorrelationDirection.TARGET_TO_SOURCE
        repository.get_cluster.assert_awaited_once_with("cluster-1")

    @pytest.mark.asyncio
    async def test_cluster_without_initiatives(self, repository, context):
        repository.get_cluster.side_effect = None
        repository.get_cluster.return_value = make_cluster(initiatives=[])
        analyzer = CausalAnalyzer(repository)

        assert await analyzer.analyze("cluster-1", EntityType.CLUSTER, context) == []

    @pytest.mark.asyncio
    async def test_progress_not_reported(self, repository, context):
        repository.get_cluster.side_effect = None
        repository.get_cluster.return_value = make_cluster(
            initiatives=[make_initiative(progress=None)]
        )
        analyzer = CausalAnalyzer(repository)
        [result] = await analyzer.analyze("cluster-1", EntityType.CLUSTER, context)

        assert result.strength == 0.8
        assert result.confidence.data_quality == DataQuality.MEDIUM
        assert "Initiative progress not reported" in result.confidence.uncertainty_factors

    @pytest.mark.asyncio
    async def test_malformed_progress_dropped(self, repository, context):
        repository.get_cluster.side_effect = None
        repository.get_cluster.return_value = make_cluster(
            initiatives=[
                make_initiative("init-bad", progress=250.0),
                make_initiative("init-ok", progress=10.0),
            ]
        )
        analyzer = CausalAnalyzer(repository)
        results = await analyzer.analyze("cluster-1", EntityType.CLUSTER, context)

        assert [r.target_entity.id for r in results] == ["init-ok"]
        assert results[0].strength == 0.82

    @pytest.mark.asyncio
    async def test_repository_failure_propagates(self, repository, context):
        repository.get_cluster.side_effect = DataAccessError("boom")
        analyzer = CausalAnalyzer(repository)

        with pytest.raises(DataAccessError):
            await analyzer.analyze("cluster-1", EntityType.CLUSTER, context)


class TestResourceAnalyzer:
    """Tests for initiatives competing for the same owner."""

    @pytest.mark.asyncio
    async def test_same_owner_same_status(self, repository, context):
        analyzer = ResourceAnalyzer(repository)
        [result] = await analyzer.analyze("init-1", EntityType.INITIATIVE, context)

        assert result.strength == 0.8
        assert result.confidence.score == 72
        assert result.significance == Significance.HIGH
        assert result.target_entity.id == "init-2"
        assert result.confidence.historical_accuracy == 82

        repository.find_initiatives_by_owner.assert_awaited_once_with(
            "user-1",
            exclude_id="init-1",
            statuses=["ACTIVE", "PLANNING", "APPROVED"],
        )

    @pytest.mark.asyncio
    async def test_status_mismatch(self, repository, context):
        repository.find_initiatives_by_owner.return_value = [
            make_initiative("init-2", status="PLANNING")
        ]
        analyzer = ResourceAnalyzer(repository)
        [result] = await analyzer.analyze("init-1", EntityType.INITIATIVE, context)

        assert result.strength == 0.6
        assert result.significance == Significance.MEDIUM

    @pytest.mark.asyncio
    async def test_missing_status_never_matches(self, repository, context):
        repository.get_initiative.side_effect = None
        repository.get_initiative.return_value = make_initiative(status=None)
        repository.find_initiatives_by_owner.return_value = [
            make_initiative("init-2", status=None)
        ]
        analyzer = ResourceAnalyzer(repository)
        [result] = await analyzer.analyze("init-1", EntityType.INITIATIVE, context)

        assert result.strength == 0.6

    @pytest.mark.asyncio
    async def test_no_owner(self, repository, context):
        repository.get_initiative.side_effect = None
        repository.get_initiative.return_value = make_initiative(owner=None)
        analyzer = ResourceAnalyzer(repository)

        assert await analyzer.analyze("init-1", EntityType.INITIATIVE, context) == []
        repository.find_initiatives_by_owner.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_historical_accuracy_omitted(self, repository):
        context = AnalysisContext(time_range=ANALYSIS_RANGE, include_historical=False)
        analyzer = ResourceAnalyzer(repository)
        [result] = await analyzer.analyze("init-1", EntityType.INITIATIVE, context)

        assert result.confidence.historical_accuracy is None


class TestUnimplementedAnalyzers:
    """Thematic and performance dimensions return empty results."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("analyzer_cls", [ThematicAnalyzer, PerformanceAnalyzer])
    @pytest.mark.parametrize("entity_type", list(EntityType))
    async def test_empty_without_queries(self, analyzer_cls, entity_type, context):
        repository = AsyncMock()
        analyzer = analyzer_cls(repository)

        assert await analyzer.analyze("any-1", entity_type, context) == []
        assert not analyzer.handles(entity_type)
        assert repository.mock_calls == []
