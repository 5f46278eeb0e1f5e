"""
Voilà Dashboard - Chat Session

This module holds the conversation state of the knowledge-check chat:
connection flags, the message list, the reply being streamed and the
counts of knowledge-base and graph lookups. It works the same with either
chat provider.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from voila_dashboard.chat.base import ChatClient, ChatEventType
from voila_dashboard.chat.pipecat import PipecatChatClient
from voila_dashboard.chat.vapi import VapiChatClient
from voila_dashboard.config import ChatProvider, Settings, get_settings
from voila_dashboard.exceptions import ChatError, TimeoutError, VoilaError
from voila_dashboard.models import BaseModel, ChatMessage

logger = logging.getLogger("voila_dashboard.chat.session")

MAX_MESSAGE_CHARS = 1000

RAG_FUNCTIONS = ("knowledge_base_lombardia", "RAG")

GRAPH_FUNCTIONS = (
    "get_competitive_pricing",
    "get_non_competitive_pricing",
    "get_exam_by_visit",
    "get_exam_by_sport",
    "get_clinic_info",
    "call_graph_lombardia",
    "graph_lombardia",
)

# Display labels of the functions the assistants report
FUNCTION_LABELS = {
    "knowledge_base_lombardia": "RAG",
    "get_price_agonistic_visit_lombardia": "Agonistic Pricing",
    "get_price_non_agonistic_visit_lombardia": "Non-Agonistic Pricing",
    "get_exam_by_visit_lombardia": "Get exams visit",
    "get_exam_by_sport_lombardia": "Get-Exams By Sport",
    "get_clinic_info_lombardia": "Clinic Info",
    "get_competitive_pricing": "Competitive pricing",
    "get_non_competitive_pricing": "Non-Competitive pricing",
    "get_exam_by_visit": "Get exams visit",
    "get_exam_by_sport": "Get exams sport",
    "get_clinic_info": "Clinic info",
    "call_graph_lombardia": "Graph Query",
    "graph_lombardia": "Graph Query",
    "get_list_exam_by_sport": "Get Exams By Sport",
    "get_list_exam_by_visit": "Get Exams By Visit",
    "get_price_agonistic_visit": "Agonistic Pricing",
    "GRAPH": "GRAPH",
    "RAG": "RAG",
}


def function_label(name: str) -> str:
    """Display label of a function; unknown names are shown as is."""
    return FUNCTION_LABELS.get(name, name)


def is_graph_function(name: str) -> bool:
    return name == "GRAPH" or any(fn in name for fn in GRAPH_FUNCTIONS)


def attributed_function(calls: List[str]) -> Optional[str]:
    """
    The function a reply is credited to.

    Routing functions (``route_to_*``) come first in a turn, so the first
    call that is not a routing one wins.
    """
    for name in calls:
        if "route_to" not in name:
            return name
    return calls[0] if calls else None


@dataclass
class ChatStats(BaseModel):
    rag_calls: int = 0
    graph_calls: int = 0
    total_messages: int = 0


def create_chat_client(
    provider: Optional[ChatProvider] = None,
    settings: Optional[Settings] = None,
    auth_token: Optional[str] = None,
) -> ChatClient:
    """Build the chat client of the configured provider."""
    settings = settings or get_settings()
    provider = ChatProvider(provider or settings.chat_provider)

    if provider == ChatProvider.VAPI:
        return VapiChatClient(proxy_url=settings.vapi_proxy_url, timeout=settings.timeout)
    return PipecatChatClient(
        api_url=settings.pipecat_api_url,
        ws_url=settings.pipecat_ws_url,
        auth_token=auth_token,
        timeout=settings.timeout,
    )


class ChatSession:
    """
    Provider-independent chat state.

    Args:
        provider: Chat provider; defaults to ``CHAT_PROVIDER``.
        client: Pre-built chat client; overrides ``provider``.
        settings: Application settings.
        auth_token: Dashboard user token, forwarded to Pipecat.

    Example:
        >>> session = ChatSession()
        >>> await session.connect()
        >>> await session.send_message("Quanto costa una visita agonistica?")
        >>> reply = await session.wait_for_reply(timeout=30)
        >>> print(reply.content, reply.function_called)
    """

    def __init__(
        self,
        provider: Optional[ChatProvider] = None,
        client: Optional[ChatClient] = None,
        settings: Optional[Settings] = None,
        auth_token: Optional[str] = None,
    ) -> None:
        if client is None:
            client = create_chat_client(provider, settings=settings, auth_token=auth_token)
        self.client = client
        self.provider = ChatProvider.VAPI if isinstance(client, VapiChatClient) else ChatProvider.PIPECAT

        self.is_connected = False
        self.is_typing = False
        self.session_id: Optional[str] = None
        self.error: Optional[str] = None
        self.messages: List[ChatMessage] = []
        self.current_chunk = ""
        self.rag_calls = 0
        self.graph_calls = 0

        self._connecting = False
        self._function_calls: List[str] = []
        # Created on first use so it binds to the loop the session runs on
        self._reply_event: Optional[asyncio.Event] = None

        self._register_handlers()
        logger.debug(f"Chat session initialized with provider: {self.provider.value}")

    @property
    def _reply_signal(self) -> asyncio.Event:
        if self._reply_event is None:
            self._reply_event = asyncio.Event()
        return self._reply_event

    @property
    def stats(self) -> ChatStats:
        return ChatStats(
            rag_calls=self.rag_calls,
            graph_calls=self.graph_calls,
            total_messages=len(self.messages),
        )

    def _register_handlers(self) -> None:
        self.client.on(ChatEventType.CONNECTED, self._on_connected)
        self.client.on(ChatEventType.DISCONNECTED, self._on_disconnected)
        self.client.on(ChatEventType.TYPING, self._on_typing)
        self.client.on(ChatEventType.READY, self._on_ready)
        self.client.on(ChatEventType.CHUNK, self._on_chunk)
        self.client.on(ChatEventType.FUNCTION_CALLED, self._on_function_called)
        self.client.on(ChatEventType.MESSAGE, self._on_message)
        self.client.on(ChatEventType.ERROR, self._on_error)

    # Event handlers

    def _on_connected(self) -> None:
        self.is_connected = True
        self.error = None
        self._connecting = False

    def _on_disconnected(self) -> None:
        self.is_connected = False
        self._connecting = False

    def _on_typing(self) -> None:
        self.is_typing = True

    def _on_ready(self) -> None:
        self.is_typing = False

    def _on_chunk(self, text: str) -> None:
        self.current_chunk += text

    def _on_function_called(self, name: str) -> None:
        self._function_calls.append(name)
        logger.debug(f"Function tracked: {name}, total: {self._function_calls}")

    def _on_message(self, text: str) -> None:
        function_called = attributed_function(self._function_calls)

        self.messages.append(
            ChatMessage(
                id=uuid.uuid4().hex,
                role="assistant",
                content=text,
                function_called=function_called,
            )
        )
        self.current_chunk = ""
        self.is_typing = False

        if function_called in RAG_FUNCTIONS:
            self.rag_calls += 1
        elif function_called and is_graph_function(function_called):
            self.graph_calls += 1

        self._function_calls = []
        self._reply_signal.set()

    def _on_error(self, error) -> None:
        message = error.message if isinstance(error, VoilaError) else str(error)
        logger.error(f"Chat error: {message}")
        self.error = message
        self.is_typing = False
        self.current_chunk = ""
        self._reply_signal.set()

    # Actions

    async def connect(self) -> None:
        """
        Connect to the chat service.

        Concurrent calls and calls while connected are no-ops. Failures are
        stored in ``error`` rather than raised.
        """
        if self._connecting or self.is_connected:
            return

        self._connecting = True
        self.error = None
        try:
            if isinstance(self.client, PipecatChatClient):
                self.session_id = await self.client.create_session()
            await self.client.connect()
            if self.session_id is None:
                self.session_id = self.client.session_id
        except ChatError as e:
            self.error = e.message
            self.is_connected = False
        finally:
            self._connecting = False

    async def disconnect(self) -> None:
        """Disconnect and reset the whole conversation."""
        await self.client.disconnect()
        self.is_connected = False
        self.session_id = None
        self.messages = []
        self.current_chunk = ""
        self.is_typing = False
        self.rag_calls = 0
        self.graph_calls = 0
        self.error = None
        self._function_calls = []

    async def send_message(self, text: str) -> bool:
        """
        Add a user message and send it.

        Returns:
            Whether the message was sent. Blank messages and messages sent
            while disconnected are dropped; send failures set ``error``.
        """
        if not self.is_connected or not text.strip():
            logger.warning("Cannot send message - preconditions not met")
            return False

        if len(text) > MAX_MESSAGE_CHARS:
            self.error = f"Message too long ({len(text)}/{MAX_MESSAGE_CHARS} characters)"
            return False

        self.messages.append(ChatMessage(id=uuid.uuid4().hex, role="user", content=text))
        self._reply_signal.clear()

        try:
            await self.client.send_message(text)
        except ChatError as e:
            logger.error(f"Error sending message: {e.message}")
            self.error = e.message
            return False
        return True

    async def wait_for_reply(self, timeout: Optional[float] = 60.0) -> Optional[ChatMessage]:
        """
        Wait for the next assistant message or error.

        Returns:
            The assistant message, or None when an error arrived instead

        Raises:
            TimeoutError: If nothing arrives in time
        """
        try:
            await asyncio.wait_for(self._reply_signal.wait(), timeout)
        except asyncio.TimeoutError as e:
            raise TimeoutError("No reply from the chat service", timeout_seconds=timeout) from e

        self._reply_signal.clear()
        if self.messages and self.messages[-1].role == "assistant":
            return self.messages[-1]
        return None

    def clear_messages(self) -> None:
        """Clear the conversation; Vapi also starts a new chat."""
        self.messages = []
        self.current_chunk = ""
        self.rag_calls = 0
        self.graph_calls = 0
        self._function_calls = []
        if isinstance(self.client, VapiChatClient):
            self.client.clear_conversation()

    async def aclose(self) -> None:
        """Disconnect and release the client's HTTP resources."""
        if self.is_connected or self.client.session_id:
            await self.client.disconnect()
        aclose = getattr(self.client, "aclose", None)
        if aclose is not None:
            await aclose()

    def __repr__(self) -> str:
        return f"ChatSession(provider='{self.provider.value}', connected={self.is_connected})"
