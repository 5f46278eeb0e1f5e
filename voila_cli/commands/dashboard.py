"""Dashboard commands."""

import sys
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel

from voila_dashboard.exceptions import NotFoundError, VoilaError
from voila_dashboard.kpi import ESITO_OPTIONS, MOTIVAZIONE_OPTIONS, SENTIMENT_OPTIONS

from ..utils.client import get_client
from ..utils.output import format_output, print_error, print_key_values, print_table

console = Console()

CALL_COLUMNS = [
    "id",
    "started_at",
    "phone_number",
    "duration_seconds",
    "sentiment",
    "esito_chiamata",
    "motivazione",
]


def region_options(func):
    """Region and date range options shared by the dashboard reads."""
    func = click.option("--end-date", help="Last day (YYYY-MM-DD)")(func)
    func = click.option("--start-date", help="First day (YYYY-MM-DD)")(func)
    func = click.option("--region", "-r", help="Region, or 'All Region' for every region")(func)
    return func


def _region(ctx: click.Context, region: Optional[str]) -> Optional[str]:
    return region or ctx.obj.get("default_region")


@click.group()
def dashboard():
    """Call statistics of the dashboard.

    \b
    Examples:
      voila dashboard stats --region Piemonte
      voila dashboard calls --sentiment negative --limit 20
      voila dashboard summary call_abc123
    """
    pass


@dashboard.command("stats")
@region_options
@click.option("--call-type", multiple=True, help="Call type filter (repeatable)")
@click.pass_context
def show_stats(
    ctx: click.Context,
    region: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    call_type: Tuple[str, ...],
):
    """Show total calls, minutes, revenue and the daily chart."""
    try:
        client = get_client(ctx.obj)
        call_types = list(call_type)
        stats = client.dashboard.get_stats(
            region=_region(ctx, region),
            start_date=start_date,
            end_date=end_date,
            call_type=(call_types[0] if len(call_types) == 1 else call_types) or None,
        )
    except VoilaError as e:
        print_error(f"Failed to get stats: {e}")
        sys.exit(1)

    if ctx.obj["output"] != "table":
        format_output(stats, ctx.obj["output"])
        return

    print_key_values(
        {
            "Total Calls": stats.total_calls,
            "Total Minutes": stats.total_minutes,
            "Total Revenue (€)": stats.total_revenue,
            "Avg Duration (min)": stats.avg_duration_minutes,
        },
        title="Dashboard",
    )
    print_table(
        [point.to_dict() for point in stats.chart_data],
        columns=["date", "calls", "minutes", "revenue"],
        title="Daily",
    )


@dashboard.command("calls")
@region_options
@click.option("--limit", "-l", type=int, default=20, help="Page size")
@click.option("--page", "-p", type=int, default=1, help="Page number")
@click.option("--search", "-s", "search_query", help="Search phone number or call id")
@click.option("--sentiment", multiple=True, type=click.Choice([o.value for o in SENTIMENT_OPTIONS]),
              help="Sentiment filter (repeatable)")
@click.option("--esito", multiple=True, type=click.Choice([o.value for o in ESITO_OPTIONS]),
              help="Outcome filter (repeatable)")
@click.option("--motivazione", multiple=True, type=click.Choice([o.value for o in MOTIVAZIONE_OPTIONS]),
              help="Reason filter (repeatable)")
@click.pass_context
def list_calls(
    ctx: click.Context,
    region: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    limit: int,
    page: int,
    search_query: Optional[str],
    sentiment: Tuple[str, ...],
    esito: Tuple[str, ...],
    motivazione: Tuple[str, ...],
):
    """List calls, newest first."""
    try:
        client = get_client(ctx.obj)
        result = client.dashboard.get_calls(
            limit=limit,
            offset=(max(page, 1) - 1) * limit,
            region=_region(ctx, region),
            start_date=start_date,
            end_date=end_date,
            search_query=search_query,
            sentiment=list(sentiment) or None,
            esito=list(esito) or None,
            motivazione=list(motivazione) or None,
        )
    except VoilaError as e:
        print_error(f"Failed to list calls: {e}")
        sys.exit(1)

    if ctx.obj["output"] != "table":
        format_output(result, ctx.obj["output"])
        return

    print_table([call.to_dict() for call in result.calls], columns=CALL_COLUMNS, title="Calls")
    pagination = result.pagination
    console.print(
        f"\nPage {pagination.current_page} of {pagination.total_pages} "
        f"({pagination.total_calls} calls)"
    )


@dashboard.command("summary")
@click.argument("call_id")
@click.pass_context
def show_summary(ctx: click.Context, call_id: str):
    """Show the summary and transcript of a call."""
    try:
        client = get_client(ctx.obj)
        summary = client.dashboard.get_call_summary(call_id)
    except NotFoundError as e:
        print_error(e.message)
        sys.exit(1)
    except VoilaError as e:
        print_error(f"Failed to get summary: {e}")
        sys.exit(1)

    if ctx.obj["output"] != "table":
        format_output(summary, ctx.obj["output"])
        return

    print_key_values(
        {
            "Call": summary.call_id,
            "Started": summary.started_at,
            "Ended": summary.ended_at,
            "Intent": summary.patient_intent,
            "Outcome": summary.esito_chiamata,
            "Reason": summary.motivazione,
        },
        title="Call",
    )
    console.print(Panel(summary.summary, title="Summary", border_style="blue"))
    console.print(Panel(summary.transcript, title="Transcript", border_style="dim"))


@dashboard.command("regions")
@click.pass_context
def list_regions(ctx: click.Context):
    """List the selectable regions."""
    try:
        client = get_client(ctx.obj)
        regions = client.dashboard.get_regions()
    except VoilaError as e:
        print_error(f"Failed to list regions: {e}")
        sys.exit(1)

    format_output(regions, ctx.obj["output"], columns=["value", "label"], title="Regions")


@dashboard.command("bookings")
@region_options
@click.pass_context
def booking_count(ctx: click.Context, region: Optional[str], start_date: Optional[str], end_date: Optional[str]):
    """Count the calls that produced a booking."""
    try:
        client = get_client(ctx.obj)
        count = client.dashboard.get_booking_count(
            region=_region(ctx, region),
            start_date=start_date,
            end_date=end_date,
        )
    except VoilaError as e:
        print_error(f"Failed to count bookings: {e}")
        sys.exit(1)

    if ctx.obj["output"] != "table":
        format_output({"count": count}, ctx.obj["output"])
    else:
        console.print(f"Bookings: [bold]{count}[/bold]")
