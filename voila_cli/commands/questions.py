"""Frequent questions commands."""

import sys

import click
from rich.console import Console

from voila_dashboard.exceptions import VoilaError
from voila_dashboard.resources import FrequentQuestionsResource

from ..utils.client import get_client
from ..utils.output import format_output, print_error

console = Console()


@click.group()
def questions():
    """Browse the frequent question clusters.

    \b
    Examples:
      voila questions list --page 2
      voila questions show 6f1c2a4e-...
    """
    pass


@questions.command("list")
@click.option("--page", "-p", type=int, default=1, help="Page number")
@click.option("--page-size", type=int, default=10, help="Clusters per page")
@click.pass_context
def list_clusters(ctx: click.Context, page: int, page_size: int):
    """List question clusters, largest first."""
    try:
        client = get_client(ctx.obj)
        clusters = client.questions.get_question_clusters()
    except VoilaError as e:
        print_error(str(e))
        sys.exit(1)

    result = FrequentQuestionsResource.page(clusters, page=page, page_size=page_size)
    if ctx.obj["output"] != "table":
        format_output(result, ctx.obj["output"])
        return

    format_output(
        result.items,
        "table",
        columns=["cluster_id", "domanda", "numero_domande", "percentuale"],
        title="Domande frequenti",
    )
    console.print(f"\nPage {result.page} of {max(result.total_pages, 1)} ({result.total} clusters)")


@questions.command("show")
@click.argument("cluster_id")
@click.pass_context
def show_cluster(ctx: click.Context, cluster_id: str):
    """Show the questions of a cluster."""
    try:
        client = get_client(ctx.obj)
        details = client.questions.get_cluster_details(cluster_id)
    except VoilaError as e:
        print_error(str(e))
        sys.exit(1)

    format_output(
        details,
        ctx.obj["output"],
        columns=["started_at", "phone_number", "sentiment", "esito_chiamata", "domanda_specifica"],
        title=f"Cluster {cluster_id}",
    )
