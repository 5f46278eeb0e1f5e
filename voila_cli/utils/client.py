"""Data client factory for the CLI."""

from typing import Any, Dict

from voila_dashboard.client import SupabaseClient


def get_client(options: Dict[str, Any]) -> SupabaseClient:
    """
    Create a data client from the resolved CLI options.

    Options left unset fall back to the environment and ``.env``; a missing
    URL or key raises ``ConfigurationError``.
    """
    return SupabaseClient(
        url=options.get("supabase_url"),
        anon_key=options.get("anon_key"),
        timeout=options.get("timeout", 30.0),
        debug=options.get("debug", False),
    )
