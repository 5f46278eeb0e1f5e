"""
Voilà Dashboard

Data and chat layer of the Voilà call-center dashboard: call statistics,
KPI charts and frequent questions read from Supabase, and a chat tester
that talks to either the Pipecat or the Vapi assistant.

Example:
    >>> from voila_dashboard import SupabaseClient
    >>> client = SupabaseClient(url="https://xyz.supabase.co", anon_key="...")
    >>> stats = client.dashboard.get_stats(region="Piemonte")
    >>> print(stats.total_calls, stats.total_revenue)
"""

__version__ = "1.0.0"
__author__ = "Voilà Team"
__license__ = "MIT"

from voila_dashboard.client import SupabaseClient
from voila_dashboard.config import ChatProvider, ClientConfig, Settings, get_settings
from voila_dashboard.models import (
    CallItem,
    CallListResponse,
    CallSummary,
    ChartPoint,
    ChatMessage,
    ClusterDetail,
    DashboardStats,
    PaginatedList,
    Pagination,
    QuestionCluster,
    Region,
    TrendResponse,
)
from voila_dashboard.exceptions import (
    VoilaError,
    AuthenticationError,
    ChatError,
    ConfigurationError,
    ConnectionError,
    NotFoundError,
    QueryError,
    RateLimitError,
    ServerError,
    SessionError,
    TimeoutError,
    ValidationError,
    WebSocketError,
)
from voila_dashboard.chat import (
    ChatEventType,
    ChatSession,
    PipecatChatClient,
    VapiChatClient,
    VapiProxy,
)

__all__ = [
    # Main client
    "SupabaseClient",

    # Configuration
    "ChatProvider",
    "ClientConfig",
    "Settings",
    "get_settings",

    # Models
    "CallItem",
    "CallListResponse",
    "CallSummary",
    "ChartPoint",
    "ChatMessage",
    "ClusterDetail",
    "DashboardStats",
    "PaginatedList",
    "Pagination",
    "QuestionCluster",
    "Region",
    "TrendResponse",

    # Exceptions
    "VoilaError",
    "AuthenticationError",
    "ChatError",
    "ConfigurationError",
    "ConnectionError",
    "NotFoundError",
    "QueryError",
    "RateLimitError",
    "ServerError",
    "SessionError",
    "TimeoutError",
    "ValidationError",
    "WebSocketError",

    # Chat
    "ChatEventType",
    "ChatSession",
    "PipecatChatClient",
    "VapiChatClient",
    "VapiProxy",
]
