"""
Voilà Dashboard - Base Resource

This module contains the base class for all resources of the data client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from voila_dashboard.query import Query

if TYPE_CHECKING:
    from voila_dashboard.client import SupabaseClient


class BaseResource:
    """
    Base class for all resources.

    Provides table queries and RPC calls through the owning client.
    """

    def __init__(self, client: "SupabaseClient") -> None:
        """
        Initialize the resource.

        Args:
            client: The SupabaseClient instance
        """
        self._client = client

    def _table(self, name: str) -> Query:
        """Start a query on a table."""
        return self._client.table(name)

    def _rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Call a stored procedure."""
        return self._client.rpc(function, params)

