"""KPI command."""

import sys
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

from voila_dashboard.exceptions import VoilaError
from voila_dashboard.kpi import OUTCOME_SERIES, SENTIMENT_SERIES, PieSlice, build_kpi_report

from ..utils.client import get_client
from ..utils.output import format_output, print_error, print_table
from .dashboard import region_options

console = Console()


def _pie_table(title: str, slices: List[PieSlice]) -> Table:
    total = sum(s.count for s in slices)
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Label")
    table.add_column("Count", justify="right")
    table.add_column("%", justify="right")
    for s in slices:
        share = (s.count / total * 100) if total else 0.0
        table.add_row(f"[{s.color}]●[/] {s.label}", str(s.count), f"{share:.1f}")
    return table


@click.command("kpi")
@region_options
@click.pass_context
def kpi(ctx: click.Context, region: Optional[str], start_date: Optional[str], end_date: Optional[str]):
    """Show the KPI charts: sentiment, outcomes, trends and reasons.

    \b
    Examples:
      voila kpi --region Lombardia
      voila -o json kpi --start-date 2024-05-01 --end-date 2024-05-31
    """
    try:
        client = get_client(ctx.obj)
        report = build_kpi_report(
            client.dashboard,
            region=region or ctx.obj.get("default_region"),
            start_date=start_date,
            end_date=end_date,
        )
    except VoilaError as e:
        print_error(f"Failed to build KPI report: {e}")
        sys.exit(1)

    if ctx.obj["output"] != "table":
        format_output(report, ctx.obj["output"])
        return

    console.print(_pie_table("Sentiment", report.sentiment))
    console.print(_pie_table("Esito chiamata", report.esito))
    print_table(report.outcome_trend, columns=["date", *OUTCOME_SERIES], title="Outcome trend")
    print_table(report.sentiment_trend, columns=["date", *SENTIMENT_SERIES], title="Sentiment trend")
    for chart in report.motivations:
        console.print(_pie_table(f"Motivazioni - {chart.esito} ({chart.total})", chart.slices))
