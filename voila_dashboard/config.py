"""
Voilà Dashboard - Configuration

This module contains the settings, client configuration and constants
shared by the data client, the chat clients, the server and the CLI.
"""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChatProvider(str, Enum):
    """Conversational backend used by the chat tester."""
    PIPECAT = "pipecat"
    VAPI = "vapi"


class Settings(BaseSettings):
    """Application settings, read from the environment and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Supabase
    supabase_url: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
        description="Supabase project URL",
    )
    supabase_anon_key: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
        description="Supabase anon key",
    )

    # Chat backends
    chat_provider: ChatProvider = Field(
        default=ChatProvider.PIPECAT,
        validation_alias=AliasChoices("CHAT_PROVIDER", "NEXT_PUBLIC_CHAT_PROVIDER"),
    )
    pipecat_api_url: str = Field(
        default="http://localhost:8002/api",
        validation_alias=AliasChoices("PIPECAT_CHAT_API_URL", "NEXT_PUBLIC_PIPECAT_CHAT_API_URL"),
    )
    pipecat_ws_url: str = Field(
        default="ws://localhost:8002/ws",
        validation_alias=AliasChoices("PIPECAT_CHAT_WS_URL", "NEXT_PUBLIC_PIPECAT_CHAT_WS_URL"),
    )
    vapi_api_key: Optional[str] = Field(default=None, validation_alias=AliasChoices("VAPI_API_KEY"))
    assistant_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("ASSISTANT_ID"))
    vapi_chat_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("VAPI_CHAT_URL"))
    vapi_proxy_url: str = Field(
        default="http://localhost:8000/api/vapi-chat",
        validation_alias=AliasChoices("VAPI_PROXY_URL"),
        description="Dashboard route that forwards chat messages to Vapi",
    )

    # HTTP behaviour
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    max_retries: int = Field(default=3, description="Transport retries")

    # Server
    host: str = Field(default="0.0.0.0", description="Host to bind")
    port: int = Field(default=8000, ge=1, le=65535, description="Port")
    enforce_auth: bool = Field(default=True, description="Verify bearer tokens on dashboard routes")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="info", description="Log level")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()


@dataclass
class ClientConfig:
    """
    Configuration for the Supabase data client.

    Attributes:
        base_url: Supabase project URL
        anon_key: Supabase anon key, sent as ``apikey`` and bearer token
        timeout: Request timeout in seconds
        max_retries: Maximum number of transport retries
        debug: Enable debug logging
    """
    base_url: str = ""
    anon_key: str = ""
    timeout: float = 30.0
    max_retries: int = 3
    debug: bool = False


# Region sentinel meaning "no region filter"
ALL_REGION = "All Region"

# Placeholder stored by the ingestion jobs for unknown categorical values
NOT_AVAILABLE = "N/A"

# Region always offered by the dashboard and sent to the Pipecat backend
PIPECAT_REGION = "Piemonte"

# Billing: euro per second of call
REVENUE_PER_SECOND = 0.006

# Default windows (days) when no date range is given
DEFAULT_CHART_DAYS = 7
ADDITIONAL_STATS_DAYS = 27
TREND_DAYS = 30


class Tables:
    """Database tables."""
    STATS = "tb_stat"
    VOICE_AGENTS = "tb_voice_agent"


class RpcFunctions:
    """Stored procedures exposed over PostgREST."""
    QUESTION_CLUSTERS = "get_question_clusters"
    CLUSTER_DETAILS = "get_cluster_details"


class Endpoints:
    """Endpoint paths."""

    # Supabase
    REST_TABLE = "/rest/v1/{table}"
    REST_RPC = "/rest/v1/rpc/{function}"
    AUTH_VERIFY = "/functions/v1/auth-verify"

    # Pipecat chat service (relative to the Pipecat API URL)
    PIPECAT_CREATE_SESSION = "/create-session"
    PIPECAT_SESSION = "/session/{session_id}"
    PIPECAT_SESSION_INFO = "/session/{session_id}/info"


class Limits:
    """Pagination and chat limits."""

    DEFAULT_CALL_LIMIT = 100
    DEFAULT_PAGE_SIZE = 10

    MAX_RECONNECT_ATTEMPTS = 3
    RECONNECT_BASE_DELAY = 1.0
    RECONNECT_MAX_DELAY = 10.0

    # PostgREST caps a response at its max-rows setting (1000 on Supabase)
    MAX_ROWS_PER_REQUEST = 1000

    # Delay between simulated streaming chunks
    STREAM_WORD_DELAY = 0.05
