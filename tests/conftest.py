"""Shared pytest fixtures for testing."""

import asyncio
from typing import Any, Dict, List, Optional

import httpx
import pytest
import respx

from voila_dashboard.client import SupabaseClient
from voila_dashboard.config import Settings, get_settings

SUPABASE_URL = "https://test.supabase.co"
ANON_KEY = "test-anon-key-0123456789"

STATS_URL = f"{SUPABASE_URL}/rest/v1/tb_stat"


def rpc_url(function: str) -> str:
    return f"{SUPABASE_URL}/rest/v1/rpc/{function}"


def rows_response(rows: Any, total: Optional[int] = None, status_code: int = 200) -> httpx.Response:
    """A PostgREST response, with ``Content-Range`` when a total is given."""
    headers = {}
    if total is not None:
        end = max(len(rows) - 1, 0) if isinstance(rows, list) else 0
        headers["content-range"] = f"0-{end}/{total}" if rows else f"*/{total}"
    return httpx.Response(status_code, json=rows, headers=headers)


def pg_error(status_code: int, code: str, message: str = "boom") -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"code": code, "message": message, "details": None, "hint": None},
    )


def param_list(request: httpx.Request, key: str) -> List[str]:
    return request.url.params.get_list(key)


async def wait_for(condition, timeout: float = 1.0) -> None:
    """Poll until ``condition()`` is true."""
    steps = int(timeout / 0.01)
    for _ in range(steps):
        if condition():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not met in time")


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; start every test fresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        supabase_url=SUPABASE_URL,
        supabase_anon_key=ANON_KEY,
        vapi_api_key="vapi-test-key",
        assistant_id="asst_123",
        vapi_chat_url="https://api.vapi.test/chat",
        vapi_proxy_url="http://dashboard.test/api/vapi-chat",
        pipecat_api_url="http://pipecat.test/api",
        pipecat_ws_url="ws://pipecat.test/ws",
        enforce_auth=False,
    )


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
def client():
    """Create a data client against the test project."""
    with SupabaseClient(url=SUPABASE_URL, anon_key=ANON_KEY, max_retries=0) as c:
        yield c


@pytest.fixture
def mock_api():
    """Mock every outgoing HTTP request."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


# =============================================================================
# Test Data Fixtures
# =============================================================================


@pytest.fixture
def call_rows() -> List[Dict[str, Any]]:
    """Rows of ``tb_stat`` spread over three days."""
    return [
        {
            "id_stat": 3,
            "call_id": "call_c",
            "started_at": "2024-05-03T23:30:00+00:00",
            "phone_number": "+393331112222",
            "duration_seconds": 60,
            "action": "info",
            "sentiment": "neutral",
            "esito_chiamata": "TRASFERITA",
            "motivazione": "Richiesta paziente",
        },
        {
            "id_stat": 2,
            "call_id": "call_b",
            "started_at": "2024-05-01T10:15:00+00:00",
            "phone_number": "+393334445555",
            "duration_seconds": 90,
            "action": "booking",
            "sentiment": "positive",
            "esito_chiamata": "COMPLETATA",
            "motivazione": "Info fornite",
        },
        {
            "id_stat": 1,
            "call_id": "call_a",
            "started_at": "2024-05-01T09:00:00Z",
            "phone_number": "+393336667777",
            "duration_seconds": 30,
            "action": "info",
            "sentiment": "positive",
            "esito_chiamata": "COMPLETATA",
            "motivazione": "Info fornite",
        },
    ]
