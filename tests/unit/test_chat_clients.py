"""Unit tests for the chat event emitter and the Pipecat and Vapi clients."""

import asyncio
import json
from typing import Any, List, Tuple
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from voila_dashboard.chat.base import ChatEventType, EventEmitter
from voila_dashboard.chat.pipecat import PipecatChatClient, reconnect_delay
from voila_dashboard.chat.vapi import VapiChatClient
from voila_dashboard.exceptions import ChatError, ConnectionError, SessionError, WebSocketError
from tests.conftest import wait_for

API_URL = "http://pipecat.test/api"
WS_URL = "ws://pipecat.test/ws"
PROXY_URL = "http://dashboard.test/api/vapi-chat"


class FakeWebSocket:
    """In-memory stand-in for a websockets connection."""

    def __init__(self) -> None:
        self.sent: List[str] = []
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True
        self.incoming.put_nowait(None)

    def server_close(self) -> None:
        self.incoming.put_nowait(None)

    def push(self, message: dict) -> None:
        self.incoming.put_nowait(json.dumps(message))

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        item = await self.incoming.get()
        if item is None:
            raise StopAsyncIteration
        return item


def record_events(client) -> List[Tuple[str, Any]]:
    """Record every event a client emits."""
    events: List[Tuple[str, Any]] = []
    for event_type in ChatEventType:
        client.on(event_type, lambda *args, _t=event_type: events.append((_t.value, args[0] if args else None)))
    return events


class TestEventEmitter:
    """Tests for EventEmitter."""

    @pytest.mark.asyncio
    async def test_on_as_decorator_and_call(self):
        emitter = EventEmitter()
        received = []

        @emitter.on(ChatEventType.CHUNK)
        def on_chunk(text):
            received.append(("sync", text))

        async def on_chunk_async(text):
            received.append(("async", text))

        emitter.on("chunk", on_chunk_async)
        await emitter.emit(ChatEventType.CHUNK, "Ciao")

        assert received == [("sync", "Ciao"), ("async", "Ciao")]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self):
        emitter = EventEmitter()
        received = []

        def broken(_text):
            raise RuntimeError("boom")

        emitter.on(ChatEventType.MESSAGE, broken)
        emitter.on(ChatEventType.MESSAGE, received.append)
        await emitter.emit(ChatEventType.MESSAGE, "done")

        assert received == ["done"]

    @pytest.mark.asyncio
    async def test_off(self):
        emitter = EventEmitter()
        received = []
        emitter.on(ChatEventType.MESSAGE, received.append)
        emitter.off(ChatEventType.MESSAGE, received.append)
        emitter.off(ChatEventType.MESSAGE, print)

        await emitter.emit(ChatEventType.MESSAGE, "ignored")

        assert received == []


class TestPipecatClient:
    """Tests for PipecatChatClient."""

    def test_reconnect_delay(self):
        assert [reconnect_delay(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 10.0]

    @pytest.mark.asyncio
    async def test_create_session(self, mock_api):
        route = mock_api.post(f"{API_URL}/create-session").mock(
            return_value=httpx.Response(200, json={"session_id": "sess_1"})
        )
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL, auth_token="user-token")

        session_id = await client.create_session(metadata={"source": "tests"})

        assert session_id == "sess_1"
        assert client.session_id == "sess_1"
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer user-token"
        body = json.loads(request.content)
        assert body["metadata"] == {"source": "tests", "auth_token": "user-token", "region": "Piemonte"}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_create_session_failure(self, mock_api):
        mock_api.post(f"{API_URL}/create-session").mock(
            return_value=httpx.Response(403, json={"detail": "Invalid token"})
        )
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)

        with pytest.raises(SessionError) as exc_info:
            await client.create_session()

        assert exc_info.value.message == "Invalid token"
        assert exc_info.value.status_code == 403
        await client.aclose()

    @pytest.mark.asyncio
    async def test_create_session_without_session_id(self, mock_api):
        mock_api.post(f"{API_URL}/create-session").mock(
            return_value=httpx.Response(200, text="<html>gateway</html>")
        )
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)

        with pytest.raises(SessionError) as exc_info:
            await client.create_session()

        assert exc_info.value.message == "Invalid response from session service"
        assert client.session_id is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_connect_requires_session(self):
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)

        with pytest.raises(SessionError):
            await client.connect()

    @pytest.mark.asyncio
    async def test_connect_send_and_disconnect(self, mock_api):
        mock_api.post(f"{API_URL}/create-session").mock(
            return_value=httpx.Response(200, json={"session_id": "sess_1"})
        )
        delete_route = mock_api.delete(f"{API_URL}/session/sess_1").mock(return_value=httpx.Response(404))
        websocket = FakeWebSocket()
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)
        events = record_events(client)

        with patch("voila_dashboard.chat.pipecat.websockets.connect", new=AsyncMock(return_value=websocket)):
            await client.create_session()
            await client.connect()

            assert client.is_connected
            assert ("connected", None) in events

            await client.send_message("Quali sono gli orari?")
            assert json.loads(websocket.sent[0]) == {"message": "Quali sono gli orari?"}

            websocket.push({"type": "chunk", "text": "Apriamo"})
            websocket.push({"type": "complete", "full_response": "Apriamo alle 8."})
            await wait_for(lambda: ("message", "Apriamo alle 8.") in events)
            assert ("chunk", "Apriamo") in events

            await client.disconnect()

        assert websocket.closed
        assert delete_route.called
        assert client.session_id is None
        assert not client.is_connected
        assert ("disconnected", None) not in events
        await client.aclose()

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)
        client._session_id = "sess_1"
        events = record_events(client)

        with patch(
            "voila_dashboard.chat.pipecat.websockets.connect",
            new=AsyncMock(side_effect=OSError("connection refused")),
        ):
            with pytest.raises(WebSocketError):
                await client.connect()

        assert events[0][0] == "error"
        assert not client.is_connected

    @pytest.mark.asyncio
    async def test_unexpected_close_reconnects(self):
        first, second = FakeWebSocket(), FakeWebSocket()
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)
        client._session_id = "sess_1"
        events = record_events(client)
        connect = AsyncMock(side_effect=[first, second])

        with patch("voila_dashboard.chat.pipecat.websockets.connect", new=connect), \
                patch("voila_dashboard.chat.pipecat.reconnect_delay", return_value=0):
            await client.connect()
            first.server_close()

            await wait_for(lambda: connect.await_count == 2 and client.is_connected)

        assert ("disconnected", None) in events
        assert [name for name, _ in events].count("connected") == 2
        assert client.reconnect_attempts == 0

        client._session_id = None
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_reconnect_gives_up_after_max_attempts(self):
        websocket = FakeWebSocket()
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)
        client._session_id = "sess_1"
        events = record_events(client)
        connect = AsyncMock(side_effect=[websocket] + [OSError("connection refused")] * 5)

        with patch("voila_dashboard.chat.pipecat.websockets.connect", new=connect), \
                patch("voila_dashboard.chat.pipecat.reconnect_delay", return_value=0):
            await client.connect()
            websocket.server_close()

            await wait_for(lambda: connect.await_count == 4)
            await asyncio.sleep(0.05)

        assert connect.await_count == 4
        assert client.reconnect_attempts == 3
        assert not client.is_connected
        assert [name for name, _ in events].count("error") == 3

        client._session_id = None
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_pending_reconnect(self):
        websocket = FakeWebSocket()
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)
        client._session_id = "sess_1"
        events = record_events(client)
        connect = AsyncMock(side_effect=[websocket, FakeWebSocket()])

        with patch("voila_dashboard.chat.pipecat.websockets.connect", new=connect), \
                patch("voila_dashboard.chat.pipecat.reconnect_delay", return_value=30):
            await client.connect()
            websocket.server_close()
            await wait_for(lambda: ("disconnected", None) in events and client._reconnect_task is not None)
            pending = client._reconnect_task

            client._session_id = None
            await client.disconnect()
            await asyncio.sleep(0.05)

        assert pending.cancelled()
        assert connect.await_count == 1
        assert not client.is_connected
        assert [name for name, _ in events].count("connected") == 1

    @pytest.mark.asyncio
    async def test_handle_message_mapping(self):
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)
        events = record_events(client)

        for message in [
            {"type": "connected", "session_id": "sess_1", "connections": 1},
            {"type": "status", "status": "typing"},
            {"type": "assistant_message_chunk", "content": "Ciao"},
            {"type": "function_called", "function_name": "get_clinic_info"},
            {"type": "assistant_message_complete", "content": "Ciao!"},
            {"type": "status", "status": "ready"},
            {"type": "error", "error": "LLM unavailable"},
            {"type": "mystery"},
        ]:
            await client.handle_message(message)

        assert [name for name, _ in events] == [
            "typing",
            "chunk",
            "function_called",
            "message",
            "ready",
            "error",
        ]
        assert isinstance(events[-1][1], ChatError)
        assert events[-1][1].message == "LLM unavailable"

    @pytest.mark.asyncio
    async def test_send_requires_connection(self):
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)

        with pytest.raises(ConnectionError) as exc_info:
            await client.send_message("Ciao")

        assert exc_info.value.message == "WebSocket not connected"

    @pytest.mark.asyncio
    async def test_session_info_requires_session(self):
        client = PipecatChatClient(api_url=API_URL, ws_url=WS_URL)

        with pytest.raises(SessionError) as exc_info:
            await client.get_session_info()

        assert exc_info.value.message == "No active session"


class TestVapiClient:
    """Tests for VapiChatClient."""

    @pytest.mark.asyncio
    async def test_reply_is_replayed_word_by_word(self, mock_api):
        route = mock_api.post(PROXY_URL).mock(
            return_value=httpx.Response(
                200,
                json={"chat_id": "chat_1", "response": "Costa 50 euro", "function_called": "RAG"},
            )
        )
        client = VapiChatClient(proxy_url=PROXY_URL, word_delay=0)
        events = record_events(client)

        await client.connect()
        await client.send_message("Quanto costa una visita?")
        await client.wait_until_streamed()

        assert events == [
            ("connected", None),
            ("typing", None),
            ("chunk", "Costa"),
            ("chunk", " 50"),
            ("chunk", " euro"),
            ("function_called", "RAG"),
            ("message", "Costa 50 euro"),
        ]
        assert client.session_id == "chat_1"
        assert json.loads(route.calls.last.request.content) == {
            "message": "Quanto costa una visita?",
            "previous_chat_id": None,
        }

        await client.send_message("E per i minori?")
        await client.wait_until_streamed()
        assert json.loads(route.calls.last.request.content)["previous_chat_id"] == "chat_1"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_backend_error(self, mock_api):
        mock_api.post(PROXY_URL).mock(return_value=httpx.Response(500, text="boom"))
        client = VapiChatClient(proxy_url=PROXY_URL, word_delay=0)
        events = record_events(client)
        await client.connect()

        with pytest.raises(ChatError) as exc_info:
            await client.send_message("Ciao")

        assert exc_info.value.message == "Backend returned 500: boom"
        assert events[-1][0] == "error"
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["<html>Bad gateway</html>", '["not", "an", "object"]'])
    async def test_invalid_success_body(self, mock_api, body):
        mock_api.post(PROXY_URL).mock(return_value=httpx.Response(200, text=body))
        client = VapiChatClient(proxy_url=PROXY_URL, word_delay=0)
        events = record_events(client)
        await client.connect()

        with pytest.raises(ChatError) as exc_info:
            await client.send_message("Ciao")

        assert exc_info.value.message.startswith("Invalid response from backend")
        assert events[-1][0] == "error"
        assert client.session_id is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_requires_connection(self):
        client = VapiChatClient(proxy_url=PROXY_URL)

        with pytest.raises(ConnectionError):
            await client.send_message("Ciao")

    @pytest.mark.asyncio
    async def test_blank_message_is_ignored(self, mock_api):
        route = mock_api.post(PROXY_URL)
        client = VapiChatClient(proxy_url=PROXY_URL)
        await client.connect()

        await client.send_message("   ")

        assert not route.called

    @pytest.mark.asyncio
    async def test_disconnect_and_clear(self):
        client = VapiChatClient(proxy_url=PROXY_URL)
        events = record_events(client)
        await client.connect()
        client._chat_id = "chat_1"

        client.clear_conversation()
        assert client.session_id is None

        client._chat_id = "chat_2"
        await client.disconnect()

        assert client.session_id is None
        assert not client.is_connected
        assert events[-1] == ("disconnected", None)
