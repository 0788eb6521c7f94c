"""Tests for CLI commands."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from factories import NOW, options
from strategy_insights.cli import format_significance_badge, main
from strategy_insights.correlation.engine import CorrelationEngine
from strategy_insights.correlation.entities import EntityType
from strategy_insights.correlation.report import build_report
from strategy_insights.errors import DataAccessError, ValidationError


class TestCLI:
    """Tests for CLI commands."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    @pytest.fixture
    def mock_db(self):
        with patch("strategy_insights.database.Database") as MockDB:
            mock_db_instance = MockDB.return_value
            mock_db_instance.connect = AsyncMock()
            mock_db_instance.close = AsyncMock()
            yield mock_db_instance

    @pytest.fixture
    def report(self, repository):
        """Report for the seeded initiative, computed against the mock repository."""
        engine = CorrelationEngine(repository)
        return asyncio.run(engine.analyze_entity_report("init-1", "initiative", options()))

    def test_analyze_table(self, runner, mock_db, report):
        """Test analyze command renders correlations."""
        with patch("strategy_insights.correlation.engine.CorrelationEngine") as MockEngine, \
             patch("strategy_insights.correlation.repository.PostgresEntityRepository"):

            MockEngine.return_value.analyze_entity_report = AsyncMock(return_value=report)

            result = runner.invoke(main, ["analyze", "initiative", "init-1"])

            assert result.exit_code == 0
            assert "Correlations for initiative init-1" in result.output
            assert "Found 3 correlations" in result.output
            assert "Insights" in result.output
            mock_db.close.assert_awaited_once()

    def test_analyze_json(self, runner, mock_db, report):
        """Test analyze command prints the camelCase report."""
        with patch("strategy_insights.correlation.engine.CorrelationEngine") as MockEngine, \
             patch("strategy_insights.correlation.repository.PostgresEntityRepository"):

            mock_engine = MockEngine.return_value
            mock_engine.analyze_entity_report = AsyncMock(return_value=report)

            result = runner.invoke(
                main,
                ["analyze", "initiative", "init-1", "--json", "-n", "5", "--no-historical"],
            )

            assert result.exit_code == 0
            payload = json.loads(result.stdout)
            assert payload["metadata"]["totalFound"] == 3

            entity_id, entity_type, opts = mock_engine.analyze_entity_report.call_args[0]
            assert (entity_id, entity_type) == ("init-1", "initiative")
            assert opts.max_results == 5
            assert opts.include_historical is False

    def test_analyze_empty(self, runner, mock_db):
        empty = build_report("clu-9", EntityType.CLUSTER, [], analysis_timestamp=NOW)
        with patch("strategy_insights.correlation.engine.CorrelationEngine") as MockEngine, \
             patch("strategy_insights.correlation.repository.PostgresEntityRepository"):

            MockEngine.return_value.analyze_entity_report = AsyncMock(return_value=empty)

            result = runner.invoke(main, ["analyze", "cluster", "clu-9"])

            assert result.exit_code == 0
            assert "No correlations found" in result.output

    def test_analyze_invalid_request(self, runner, mock_db):
        with patch("strategy_insights.correlation.engine.CorrelationEngine") as MockEngine, \
             patch("strategy_insights.correlation.repository.PostgresEntityRepository"):

            MockEngine.return_value.analyze_entity_report = AsyncMock(
                side_effect=ValidationError("Entity id has surrounding whitespace")
            )

            result = runner.invoke(main, ["analyze", "initiative", " init-1"])

            assert result.exit_code == 2
            assert "Invalid request" in result.output

    def test_analyze_data_access_failure(self, runner, mock_db):
        with patch("strategy_insights.correlation.engine.CorrelationEngine") as MockEngine, \
             patch("strategy_insights.correlation.repository.PostgresEntityRepository"):

            MockEngine.return_value.analyze_entity_report = AsyncMock(
                side_effect=DataAccessError("connection refused")
            )

            result = runner.invoke(main, ["analyze", "initiative", "init-1"])

            assert result.exit_code == 1
            assert "Data access failed" in result.output
            mock_db.close.assert_awaited_once()

    def test_analyze_rejects_unknown_type(self, runner):
        result = runner.invoke(main, ["analyze", "project", "p-1"])
        assert result.exit_code != 0

    def test_config_command(self, runner, tmp_path):
        config_file = tmp_path / "insights.yaml"
        config_file.write_text("correlation:\n  temporal_window_days: 10\n")

        result = runner.invoke(main, ["--config", str(config_file), "config"])

        assert result.exit_code == 0
        assert "temporal_window_days" in result.output
        assert "10" in result.output

    def test_significance_badge(self):
        badge = format_significance_badge("high")
        assert badge.plain == "HIGH"
        assert "red" in str(badge.style)
