"""
Voilà Dashboard - Pipecat Chat Client

This module provides the WebSocket streaming client of the Pipecat chat
service. A session is created over HTTP, then replies stream back over a
WebSocket as chunks followed by a complete message.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any, Dict, Optional

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from voila_dashboard.chat.base import ChatClient, ChatEventType
from voila_dashboard.config import PIPECAT_REGION, Endpoints, Limits, get_settings
from voila_dashboard.exceptions import (
    ChatError,
    ConnectionError,
    SessionError,
    WebSocketError,
)

logger = logging.getLogger("voila_dashboard.chat.pipecat")


def reconnect_delay(attempt: int) -> float:
    """Exponential backoff: 1s, 2s, 4s ... capped at 10s."""
    return min(Limits.RECONNECT_BASE_DELAY * (2 ** (attempt - 1)), Limits.RECONNECT_MAX_DELAY)


class PipecatChatClient(ChatClient):
    """
    Streaming chat client for the Pipecat service.

    Args:
        api_url: Pipecat HTTP API URL. Defaults to ``PIPECAT_CHAT_API_URL``.
        ws_url: Pipecat WebSocket URL. Defaults to ``PIPECAT_CHAT_WS_URL``.
        auth_token: Dashboard user token forwarded to the service.
        timeout: HTTP timeout in seconds.
        max_reconnect_attempts: Reconnects tried after an unexpected close.
        http_client: Pre-built async httpx client, mostly for tests.

    Example:
        >>> client = PipecatChatClient(auth_token=token)
        >>> client.on(ChatEventType.CHUNK, lambda text: print(text, end=""))
        >>> await client.create_session()
        >>> await client.connect()
        >>> await client.send_message("Quali sono gli orari della clinica?")
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        ws_url: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeout: float = 30.0,
        max_reconnect_attempts: int = Limits.MAX_RECONNECT_ATTEMPTS,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__()

        if api_url is None or ws_url is None:
            settings = get_settings()
            api_url = api_url or settings.pipecat_api_url
            ws_url = ws_url or settings.pipecat_ws_url

        self._api_url = api_url.rstrip("/")
        self._ws_url = ws_url
        self._auth_token = auth_token
        self._timeout = timeout
        self._max_reconnect_attempts = max_reconnect_attempts

        self._http_client = http_client
        self._websocket: Optional[Any] = None
        self._session_id: Optional[str] = None
        self._connected = False
        self._closing = False
        self._reconnect_attempts = 0
        self._reconnect_task: Optional[asyncio.Task] = None
        self._receive_task: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._api_url,
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(self._timeout),
            )
        return self._http_client

    async def create_session(
        self,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        auth_token: Optional[str] = None,
    ) -> str:
        """
        Create a chat session.

        The user's token and the fixed service region are added to the
        session metadata.

        Returns:
            The new session id

        Raises:
            SessionError: If the service rejects the request or returns no
                session id
        """
        token = auth_token or self._auth_token
        payload = {
            "user_id": user_id,
            "metadata": {
                **(metadata or {}),
                "auth_token": token,
                "region": PIPECAT_REGION,
            },
        }
        headers = {"Authorization": f"Bearer {token}"} if token else {}

        client = await self._get_client()
        try:
            response = await client.post(Endpoints.PIPECAT_CREATE_SESSION, json=payload, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Failed to create Pipecat session: {e}")
            raise SessionError(f"Failed to create session: {e}") from e

        if not response.is_success:
            try:
                detail = response.json().get("detail")
            except (ValueError, AttributeError):
                detail = None
            message = detail or f"Failed to create session: {response.status_code}"
            logger.error(f"Failed to create Pipecat session: {message}")
            raise SessionError(message, status_code=response.status_code)

        try:
            session_id = response.json()["session_id"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Invalid create-session response: {response.text[:200]}")
            raise SessionError("Invalid response from session service", status_code=response.status_code) from e

        self._session_id = session_id
        logger.info(f"Pipecat session created: {self._session_id}")
        return self._session_id

    async def connect(self) -> None:
        """
        Open the WebSocket and start receiving.

        Raises:
            SessionError: If no session was created first
            WebSocketError: If the socket cannot be opened
        """
        if not self._session_id:
            raise SessionError("No session ID. Call create_session() first.")

        if self._connected:
            return

        try:
            websocket = await websockets.connect(self._ws_url, ping_interval=30, ping_timeout=10)
        except (OSError, WebSocketException) as e:
            logger.error(f"Pipecat WebSocket connection failed: {e}")
            error = WebSocketError(f"Failed to connect: {e}")
            await self.emit(ChatEventType.ERROR, error)
            raise error from e

        self._websocket = websocket
        self._connected = True
        self._closing = False
        self._reconnect_attempts = 0

        logger.info(f"Pipecat WebSocket connected: {self._ws_url}")
        await self.emit(ChatEventType.CONNECTED)

        self._receive_task = asyncio.create_task(self._receive_loop(websocket))

    async def _receive_loop(self, websocket: Any) -> None:
        try:
            async for raw in websocket:
                await self._handle_raw(raw)
        except ConnectionClosed as e:
            logger.warning(f"Pipecat WebSocket closed: {e}")

        if not self._closing and websocket is self._websocket:
            await self._handle_close()

    async def _handle_raw(self, raw: Any) -> None:
        try:
            message = json.loads(raw)
        except ValueError as e:
            logger.error(f"Failed to parse Pipecat message: {e}")
            return

        if not isinstance(message, dict):
            logger.warning(f"Unexpected Pipecat message: {message!r}")
            return

        await self.handle_message(message)

    async def handle_message(self, message: Dict[str, Any]) -> None:
        """Translate a service message into client events."""
        message_type = message.get("type")
        logger.debug(f"Received Pipecat message: {message}")

        if message_type == "connected":
            logger.info(
                f"Pipecat session {message.get('session_id')} confirmed, "
                f"connections: {message.get('connections')}"
            )

        elif message_type == "status":
            status = message.get("status")
            if status == "typing":
                await self.emit(ChatEventType.TYPING)
            elif status == "ready":
                await self.emit(ChatEventType.READY)

        elif message_type in ("chunk", "assistant_message_chunk"):
            text = message.get("text") or message.get("content")
            if text:
                await self.emit(ChatEventType.CHUNK, text)

        elif message_type in ("complete", "assistant_message_complete"):
            text = message.get("text") or message.get("full_response") or message.get("content")
            if text:
                await self.emit(ChatEventType.MESSAGE, text)

        elif message_type == "function_called":
            name = message.get("function_name")
            if name:
                logger.debug(f"Function called: {name}")
                await self.emit(ChatEventType.FUNCTION_CALLED, name)

        elif message_type == "error":
            logger.error(f"Pipecat error: {message.get('error')}")
            await self.emit(ChatEventType.ERROR, ChatError(message.get("error") or "Unknown error"))

        else:
            logger.warning(f"Unknown Pipecat message type: {message_type}")

    async def _handle_close(self) -> None:
        """Handle an unexpected close."""
        self._connected = False
        self._websocket = None

        logger.info("Pipecat WebSocket disconnected")
        await self.emit(ChatEventType.DISCONNECTED)

        if self._reconnect_attempts < self._max_reconnect_attempts:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        current = self._reconnect_task
        if current and not current.done() and current is not asyncio.current_task():
            current.cancel()

        self._reconnect_attempts += 1
        delay = reconnect_delay(self._reconnect_attempts)

        logger.info(
            f"Attempting reconnect {self._reconnect_attempts}/{self._max_reconnect_attempts} in {delay}s"
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._closing:
            return

        try:
            await self.connect()
        except ChatError as e:
            logger.error(f"Reconnect failed: {e}")
            if not self._closing and self._reconnect_attempts < self._max_reconnect_attempts:
                self._schedule_reconnect()

    async def send_message(self, text: str) -> None:
        """
        Send a user message.

        Raises:
            ConnectionError: If the socket is not connected or not open
        """
        if not self._connected or self._websocket is None:
            raise ConnectionError("WebSocket not connected")

        try:
            await self._websocket.send(json.dumps({"message": text}))
        except ConnectionClosed as e:
            raise ConnectionError("WebSocket not ready") from e

    async def get_session_info(self) -> Dict[str, Any]:
        """
        Get the service's view of the current session.

        Raises:
            SessionError: If there is no session or the request fails
        """
        if not self._session_id:
            raise SessionError("No active session")

        client = await self._get_client()
        path = Endpoints.PIPECAT_SESSION_INFO.format(session_id=self._session_id)
        try:
            response = await client.get(path)
        except httpx.RequestError as e:
            raise SessionError(f"Failed to get session info: {e}") from e

        if not response.is_success:
            raise SessionError(
                f"Failed to get session info: {response.status_code}",
                status_code=response.status_code,
            )
        return response.json()

    async def disconnect(self) -> None:
        """
        Close the socket and delete the session.

        Pending reconnects are cancelled and no new ones are scheduled.
        Failing to delete the session is logged only.
        """
        self._closing = True
        self._reconnect_attempts = self._max_reconnect_attempts

        if self._reconnect_task and not self._reconnect_task.done():
            if self._reconnect_task is not asyncio.current_task():
                self._reconnect_task.cancel()
        self._reconnect_task = None

        session_to_delete = self._session_id

        if self._receive_task and not self._receive_task.done():
            if self._receive_task is not asyncio.current_task():
                self._receive_task.cancel()
                with suppress(asyncio.CancelledError):
                    await self._receive_task
        self._receive_task = None

        if self._websocket is not None:
            try:
                await self._websocket.close()
            except (OSError, WebSocketException) as e:
                logger.error(f"Error closing WebSocket: {e}")
            self._websocket = None

        self._session_id = None
        self._connected = False

        if session_to_delete:
            await self._delete_session(session_to_delete)

    async def _delete_session(self, session_id: str) -> None:
        client = await self._get_client()
        try:
            response = await client.delete(Endpoints.PIPECAT_SESSION.format(session_id=session_id))
        except httpx.RequestError as e:
            logger.error(f"Error deleting Pipecat session: {e}")
            return

        if response.is_success:
            logger.info(f"Pipecat session deleted: {session_id}")
        elif response.status_code == 404:
            logger.info(f"Pipecat session already deleted: {session_id}")
        else:
            logger.warning(f"Failed to delete Pipecat session: {response.status_code}")

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def __repr__(self) -> str:
        return f"PipecatChatClient(api_url='{self._api_url}', ws_url='{self._ws_url}')"
