"""Voilà Dashboard CLI - Main entry point."""

import logging
from typing import Optional

import click

from . import __version__
from .utils.config import load_config
from .commands import (
    dashboard,
    kpi,
    questions,
    chat,
    config as config_cmd,
)


@click.group()
@click.version_option(version=__version__, prog_name="voila")
@click.option("--supabase-url", envvar="SUPABASE_URL", help="Supabase project URL")
@click.option("--anon-key", envvar="SUPABASE_ANON_KEY", help="Supabase anon key")
@click.option("--output", "-o", type=click.Choice(["table", "json", "yaml"]), default=None,
              help="Output format")
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx: click.Context, supabase_url: Optional[str], anon_key: Optional[str], output: Optional[str],
        debug: bool):
    """Voilà Dashboard CLI - Call statistics and the chat tester from the command line.

    \b
    Examples:
      voila dashboard stats --region Piemonte
      voila kpi --start-date 2024-05-01 --end-date 2024-05-31
      voila questions list
      voila chat --provider vapi
    """
    ctx.ensure_object(dict)

    # Options not given fall back to the config file, then to the environment
    config = load_config()

    ctx.obj["supabase_url"] = supabase_url or config.supabase_url
    ctx.obj["anon_key"] = anon_key or config.supabase_anon_key
    ctx.obj["chat_provider"] = config.chat_provider
    ctx.obj["default_region"] = config.default_region
    ctx.obj["output"] = output or config.default_output or "table"
    ctx.obj["debug"] = debug
    ctx.obj["config"] = config

    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        logging.getLogger("voila_dashboard").setLevel(logging.DEBUG)


# Register command groups
cli.add_command(dashboard)
cli.add_command(kpi)
cli.add_command(questions)
cli.add_command(chat)
cli.add_command(config_cmd)


def main():
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
