"""Configuration management commands."""

import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from voila_dashboard.config import ChatProvider, get_settings

from ..utils.config import SETTABLE_KEYS, get_config_path, load_config, mask, save_config
from ..utils.output import format_output, print_error, print_success

console = Console()


@click.group()
def config():
    """Manage CLI configuration.

    \b
    Examples:
      voila config show
      voila config set default_region Lombardia
      voila config path
    """
    pass


@config.command("show")
@click.option("--all", "-a", "show_all", is_flag=True, help="Show secrets unmasked")
@click.pass_context
def show_config(ctx: click.Context, show_all: bool):
    """Show the configuration the commands will use."""
    settings = get_settings()
    anon_key = ctx.obj.get("anon_key") or settings.supabase_anon_key
    resolved = {
        "config_path": str(get_config_path()),
        "supabase_url": ctx.obj.get("supabase_url") or settings.supabase_url or None,
        "supabase_anon_key": anon_key if show_all else mask(anon_key),
        "chat_provider": ctx.obj.get("chat_provider") or settings.chat_provider.value,
        "pipecat_api_url": settings.pipecat_api_url,
        "pipecat_ws_url": settings.pipecat_ws_url,
        "vapi_proxy_url": settings.vapi_proxy_url,
        "default_region": ctx.obj.get("default_region"),
        "output": ctx.obj["output"],
    }

    if ctx.obj["output"] != "table":
        format_output(resolved, ctx.obj["output"])
        return

    console.print(Panel.fit("[bold cyan]Voilà CLI Configuration[/bold cyan]", border_style="blue"))

    table = Table(show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")
    for key, value in resolved.items():
        table.add_row(key.replace("_", " ").title(), str(value) if value is not None else "Not set")
    console.print(table)


@config.command("set")
@click.argument("key")
@click.argument("value")
def set_config(key: str, value: str):
    """Set a configuration value.

    \b
    Available keys:
      supabase_url       - Supabase project URL
      supabase_anon_key  - Supabase anon key
      chat_provider      - pipecat or vapi
      default_output     - table, json or yaml
      default_region     - Region used when --region is omitted
    """
    if key not in SETTABLE_KEYS:
        print_error(f"Unknown configuration key: {key}")
        console.print(f"[dim]Valid keys: {', '.join(SETTABLE_KEYS)}[/dim]")
        sys.exit(1)

    if key == "default_output" and value not in ("table", "json", "yaml"):
        print_error("Output must be one of: table, json, yaml")
        sys.exit(1)
    if key == "chat_provider" and value not in [p.value for p in ChatProvider]:
        print_error("Chat provider must be one of: pipecat, vapi")
        sys.exit(1)

    cfg = load_config()
    setattr(cfg, key, value)
    save_config(cfg)
    shown = mask(value) if key == "supabase_anon_key" else value
    print_success(f"Configuration updated: {key} = {shown}")


@config.command("unset")
@click.argument("key")
def unset_config(key: str):
    """Reset a configuration value to its default."""
    if key not in SETTABLE_KEYS:
        print_error(f"Configuration key not found: {key}")
        sys.exit(1)

    cfg = load_config()
    setattr(cfg, key, "table" if key == "default_output" else None)
    save_config(cfg)
    print_success(f"Configuration key removed: {key}")


@config.command("path")
def show_path():
    """Show configuration file path."""
    console.print(str(get_config_path()))
