"""
Voilà Dashboard - Main Client

This module provides the SupabaseClient class, the entry point for every
data read of the dashboard: PostgREST table queries, RPC functions and the
token-verifying Edge Function.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from voila_dashboard.config import ClientConfig, Endpoints, get_settings
from voila_dashboard.exceptions import (
    ConfigurationError,
    NotFoundError,
    QueryError,
    TimeoutError,
    VoilaError,
    raise_for_status,
)
from voila_dashboard.query import Query
from voila_dashboard.resources.auth import AuthResource
from voila_dashboard.resources.dashboard import DashboardResource
from voila_dashboard.resources.questions import FrequentQuestionsResource

logger = logging.getLogger("voila_dashboard")

Params = Union[Dict[str, Any], Sequence[Tuple[str, str]], None]

# PostgREST code for "JSON object requested, multiple (or no) rows returned"
PGRST_NO_SINGLE_ROW = "PGRST116"


class SupabaseClient:
    """
    Client for the Supabase project backing the dashboard.

    Args:
        url: Supabase project URL. Defaults to ``SUPABASE_URL``.
        anon_key: Supabase anon key. Defaults to ``SUPABASE_ANON_KEY``.
        timeout: Request timeout in seconds.
        max_retries: Maximum number of transport retries.
        debug: Enable debug logging.
        http_client: Pre-built httpx client, mostly for tests.

    Example:
        >>> with SupabaseClient.from_settings() as client:
        ...     stats = client.dashboard.get_stats(region="Piemonte")
        ...     print(stats.total_calls)

    Attributes:
        dashboard: Call statistics, call list, summaries and trends
        questions: Frequent question clusters
        auth: Token verification
    """

    def __init__(
        self,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        debug: bool = False,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        if url is None or anon_key is None:
            settings = get_settings()
            url = url if url is not None else settings.supabase_url
            anon_key = anon_key if anon_key is not None else settings.supabase_anon_key

        if not url or not anon_key:
            raise ConfigurationError(
                "Supabase URL and anon key are required. Provide them as parameters "
                "or set the SUPABASE_URL and SUPABASE_ANON_KEY environment variables."
            )

        self._config = ClientConfig(
            base_url=url.rstrip("/"),
            anon_key=anon_key,
            timeout=timeout,
            max_retries=max_retries,
            debug=debug,
        )

        if debug:
            logger.setLevel(logging.DEBUG)

        self._http_client = http_client or self._create_http_client()

        self._init_resources()

        logger.debug(f"Supabase client initialized with base URL: {self._config.base_url}")

    @classmethod
    def from_settings(cls, settings=None) -> "SupabaseClient":
        """Build a client from the application settings."""
        settings = settings or get_settings()
        return cls(
            url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            debug=settings.debug,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    def _create_http_client(self) -> httpx.Client:
        """Create and configure the HTTP client."""
        headers = {
            "apikey": self._config.anon_key,
            "Authorization": f"Bearer {self._config.anon_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        transport = httpx.HTTPTransport(retries=self._config.max_retries)

        return httpx.Client(
            base_url=self._config.base_url,
            headers=headers,
            timeout=httpx.Timeout(self._config.timeout),
            transport=transport,
            follow_redirects=True,
        )

    def _init_resources(self) -> None:
        """Initialize all resources."""
        self.dashboard = DashboardResource(self)
        self.questions = FrequentQuestionsResource(self)
        self.auth = AuthResource(self)

    def table(self, name: str) -> Query:
        """Start a query on a table."""
        return Query(self, name)

    def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Call a stored procedure.

        Args:
            function: Function name
            params: Named arguments of the function

        Returns:
            Rows returned by the function

        Raises:
            QueryError: If PostgREST rejects the call
        """
        path = Endpoints.REST_RPC.format(function=function)
        response = self.send("POST", path, json=params or {})
        data = self.parse_response(response)
        if data is None:
            return []
        return data if isinstance(data, list) else [data]

    def send(
        self,
        method: str,
        path: str,
        params: Params = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Send a request and return the raw response.

        Raises:
            TimeoutError: If the request times out
            VoilaError: If the request cannot be sent
        """
        logger.debug(f"Making {method} request to {path}")
        logger.debug(f"Params: {params}")

        try:
            return self._http_client.request(
                method=method,
                url=path,
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Request timed out: {e}", timeout_seconds=self._config.timeout)
        except httpx.RequestError as e:
            raise VoilaError(f"Request failed: {e}")

    def request(
        self,
        method: str,
        path: str,
        params: Params = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Make an HTTP request to the Supabase project.

        Returns:
            Decoded JSON body

        Raises:
            AuthenticationError: If authentication fails
            NotFoundError: If the row or endpoint is not found
            QueryError: If PostgREST rejects the query
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
            VoilaError: For other errors
        """
        response = self.send(method, path, params=params, json=json, headers=headers)
        return self.parse_response(response)

    def parse_response(self, response: httpx.Response) -> Any:
        """Decode a response and raise the matching exception on errors."""
        logger.debug(f"Response status: {response.status_code}")

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return {}
            if "json" in response.headers.get("content-type", ""):
                return response.json()
            return {"data": response.text}

        try:
            error_data = response.json()
        except ValueError:
            error_data = None

        if isinstance(error_data, dict):
            message = error_data.get("message") or error_data.get("detail") or str(error_data)
            pg_code = error_data.get("code")

            if pg_code == PGRST_NO_SINGLE_ROW:
                raise NotFoundError(message)

            if pg_code and response.status_code < 500 and response.status_code not in (401, 403, 429):
                raise QueryError(
                    message,
                    details=error_data.get("details"),
                    hint=error_data.get("hint"),
                    pg_code=str(pg_code),
                    status_code=response.status_code,
                )
        else:
            message = response.text or f"HTTP {response.status_code}"

        raise_for_status(
            response.status_code,
            message,
            retry_after=response.headers.get("Retry-After"),
        )

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._http_client.close()
        logger.debug("Supabase client closed")

    def __enter__(self) -> "SupabaseClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SupabaseClient(base_url='{self._config.base_url}')"
