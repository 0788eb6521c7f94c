"""CLI for the strategy insights correlation engine.

Commands:
- analyze: correlations for one entity, as a table or JSON report
- config: show the effective engine configuration
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from strategy_insights.correlation.models import CorrelationReport

console = Console()

ENTITY_TYPES = ["issue", "initiative", "cluster", "user", "milestone"]


# ============================================================================
# Rich Formatting Helpers
# ============================================================================


def format_significance_badge(significance: str) -> Text:
    """Format significance as colored badge."""
    colors = {
        "high": "red bold",
        "medium": "yellow",
        "low": "blue",
    }
    color = colors.get(significance.lower(), "white")
    return Text(significance.upper(), style=color)


def format_category(category: str) -> Text:
    """Format correlation category with a per-dimension color."""
    colors = {
        "causal": "magenta",
        "temporal": "cyan",
        "resource": "yellow",
        "thematic": "green",
        "performance": "white",
    }
    return Text(category, style=colors.get(category.lower(), "white"))


def render_report(report: CorrelationReport) -> None:
    """Print correlations, insights and recommendations."""
    meta = report.metadata
    if not report.correlations:
        console.print(
            f"[yellow]No correlations found for {meta.entity_type.value} {meta.entity_id}.[/yellow]"
        )
        return

    table = Table(title=f"Correlations for {meta.entity_type.value} {meta.entity_id}")
    table.add_column("Target")
    table.add_column("Category")
    table.add_column("Direction")
    table.add_column("Strength", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Significance")
    table.add_column("Top recommendation")

    for c in report.correlations:
        top = c.recommendations[0].action if c.recommendations else ""
        table.add_row(
            f"{c.target_entity.title} ({c.target_entity.type.value})",
            format_category(c.correlation_type.category.value),
            c.correlation_type.direction.value,
            f"{c.strength:.2f}",
            str(c.confidence.score),
            format_significance_badge(c.correlation_type.significance.value),
            top,
        )

    console.print(table)
    console.print(
        f"Found {meta.total_found} correlations, "
        f"{meta.strong_correlations} strong, "
        f"average strength {meta.average_strength:.2f}"
    )

    if report.insights:
        console.print("\n[bold]Insights[/bold]")
        for insight in report.insights:
            console.print(f"  • {insight}")

    if report.recommendations:
        console.print("\n[bold]Recommendations[/bold]")
        for rec in report.recommendations:
            console.print(f"  • {rec}")


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    default="config/insights.yaml",
    help="Path to engine configuration file",
)
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
@click.pass_context
def main(ctx: click.Context, config: Path, log_level: str | None) -> None:
    """Strategy Insights - correlation analytics for strategy tracking."""
    from strategy_insights.config import Settings
    from strategy_insights.logging_config import configure_logging

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    configure_logging(log_level or Settings().log_level)


@main.command()
@click.argument("entity_type", type=click.Choice(ENTITY_TYPES, case_sensitive=False))
@click.argument("entity_id")
@click.option("--max-results", "-n", default=10, show_default=True, help="Maximum correlations")
@click.option("--min-strength", default=0.3, show_default=True, help="Minimum strength (0-1)")
@click.option("--days", default=90, show_default=True, help="Analysis window in days")
@click.option("--no-historical", is_flag=True, help="Omit historical accuracy")
@click.option("--json", "as_json", is_flag=True, help="Print the JSON report")
@click.pass_context
def analyze(
    ctx: click.Context,
    entity_type: str,
    entity_id: str,
    max_results: int,
    min_strength: float,
    days: int,
    no_historical: bool,
    as_json: bool,
) -> None:
    """Analyze correlations for one entity.

    Examples:

        strategy-insights analyze initiative init_123

        strategy-insights analyze cluster clu_9 --min-strength 0.5 --json
    """
    from strategy_insights.config import Settings, load_engine_config
    from strategy_insights.correlation.engine import CorrelationEngine
    from strategy_insights.correlation.models import AnalysisOptions, TimeRange
    from strategy_insights.correlation.repository import PostgresEntityRepository
    from strategy_insights.database import Database
    from strategy_insights.errors import DataAccessError, ValidationError

    async def _analyze() -> CorrelationReport:
        settings = Settings()
        engine_config = load_engine_config(ctx.obj["config_path"])
        db = Database(
            settings.database_url,
            max_size=settings.database_pool_max_size,
            command_timeout=settings.database_command_timeout,
        )
        await db.connect()
        try:
            engine = CorrelationEngine(PostgresEntityRepository(db), engine_config)
            options = AnalysisOptions(
                max_results=max_results,
                min_strength=min_strength,
                include_historical=not no_historical,
                time_range=TimeRange.last_days(days),
            )
            return await engine.analyze_entity_report(entity_id, entity_type.lower(), options)
        finally:
            await db.close()

    try:
        report = asyncio.run(_analyze())
    except ValidationError as e:
        console.print(f"[red]Invalid request: {e}[/red]")
        ctx.exit(2)
    except (DataAccessError, OSError) as e:
        console.print(f"[red]Data access failed: {e}[/red]")
        ctx.exit(1)
    else:
        if as_json:
            click.echo(json.dumps(report.to_json_dict(), indent=2))
        else:
            render_report(report)


@main.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show the effective engine configuration."""
    from strategy_insights.config import load_engine_config

    engine_config = load_engine_config(ctx.obj["config_path"])

    table = Table(title="Engine configuration")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in engine_config.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    main()
