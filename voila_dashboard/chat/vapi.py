"""
Voilà Dashboard - Vapi Chat Client

This module provides the REST chat client of the Vapi assistant. Messages
go through the dashboard's ``/api/vapi-chat`` proxy; replies arrive whole
and are replayed word by word so both providers stream the same way.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Optional

import httpx

from voila_dashboard.chat.base import ChatClient, ChatEventType
from voila_dashboard.config import Limits, get_settings
from voila_dashboard.exceptions import ChatError, ConnectionError

logger = logging.getLogger("voila_dashboard.chat.vapi")


class VapiChatClient(ChatClient):
    """
    Chat client for the Vapi assistant.

    There is no persistent connection: ``connect`` and ``disconnect`` only
    flip the client state. The conversation is carried by the chat id Vapi
    returns with each reply.

    Args:
        proxy_url: URL of the dashboard's Vapi proxy route.
        timeout: HTTP timeout in seconds.
        word_delay: Delay between simulated chunks, in seconds.
        http_client: Pre-built async httpx client, mostly for tests.
    """

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        timeout: float = 30.0,
        word_delay: float = Limits.STREAM_WORD_DELAY,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__()
        self._proxy_url = proxy_url or get_settings().vapi_proxy_url
        self._timeout = timeout
        self._word_delay = word_delay
        self._http_client = http_client
        self._chat_id: Optional[str] = None
        self._connected = False
        self._streaming_task: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def session_id(self) -> Optional[str]:
        """The current Vapi chat id."""
        return self._chat_id

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._http_client

    async def connect(self) -> None:
        self._connected = True
        logger.info("Vapi client connected (ready to send messages)")
        await self.emit(ChatEventType.CONNECTED)

    async def disconnect(self) -> None:
        if self._streaming_task and not self._streaming_task.done():
            self._streaming_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._streaming_task
        self._streaming_task = None

        self._connected = False
        self._chat_id = None
        logger.info("Vapi client disconnected")
        await self.emit(ChatEventType.DISCONNECTED)

    async def send_message(self, text: str) -> None:
        """
        Send a user message and start replaying the reply.

        Raises:
            ConnectionError: If the client is not connected
            ChatError: If the proxy answers with an error status or a body
                that is not a JSON object
        """
        if not self._connected:
            logger.error("Cannot send message: Not connected")
            raise ConnectionError("Not connected")

        if not text.strip():
            logger.warning("Cannot send empty message")
            return

        logger.info(f"Sending message to Vapi: {text[:50]}...")
        logger.debug(f"Previous chat_id: {self._chat_id or 'null (new conversation)'}")

        await self.emit(ChatEventType.TYPING)

        try:
            client = await self._get_client()
            response = await client.post(
                self._proxy_url,
                json={"message": text, "previous_chat_id": self._chat_id},
            )
            if not response.is_success:
                raise ChatError(
                    f"Backend returned {response.status_code}: {response.text}",
                    status_code=response.status_code,
                )
            try:
                data = response.json()
            except ValueError as e:
                raise ChatError(f"Invalid response from backend: {e}", status_code=response.status_code) from e
            if not isinstance(data, dict):
                raise ChatError("Invalid response from backend", status_code=response.status_code)

        except httpx.RequestError as e:
            error = ChatError(f"Failed to send message: {e}")
            logger.error(f"Error sending message to Vapi: {error}")
            await self.emit(ChatEventType.ERROR, error)
            raise error from e
        except ChatError as e:
            logger.error(f"Error sending message to Vapi: {e}")
            await self.emit(ChatEventType.ERROR, e)
            raise

        self._chat_id = data.get("chat_id")
        logger.debug(f"New chat_id: {self._chat_id}")

        self._streaming_task = asyncio.create_task(
            self._simulate_streaming(data.get("response") or "", data.get("function_called"))
        )

    async def _simulate_streaming(self, full_text: str, function_called: Optional[str]) -> None:
        """Emit one chunk per word, then the function and the full message."""
        words = full_text.split(" ")
        logger.debug(f"Simulating streaming for {len(words)} words")

        for index, word in enumerate(words):
            if index > 0:
                await asyncio.sleep(self._word_delay)
            await self.emit(ChatEventType.CHUNK, word if index == 0 else f" {word}")

        if function_called:
            await self.emit(ChatEventType.FUNCTION_CALLED, function_called)
        await self.emit(ChatEventType.MESSAGE, full_text)

    async def wait_until_streamed(self) -> None:
        """Wait for the reply being replayed, if any."""
        if self._streaming_task is not None:
            await self._streaming_task

    def clear_conversation(self) -> None:
        """Start a new conversation with the next message."""
        logger.info("Clearing Vapi conversation")
        self._chat_id = None

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def __repr__(self) -> str:
        return f"VapiChatClient(proxy_url='{self._proxy_url}')"
