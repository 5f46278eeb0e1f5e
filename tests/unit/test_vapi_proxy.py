"""Unit tests for the Vapi proxy."""

import json

import httpx
import pytest

from voila_dashboard.chat.vapi_proxy import VapiProxy, parse_vapi_response
from voila_dashboard.exceptions import ConfigurationError, TimeoutError, ValidationError, VoilaError

CHAT_URL = "https://api.vapi.test/chat"


@pytest.fixture
def proxy(settings):
    return VapiProxy.from_settings(settings)


class TestParseResponse:
    """Tests for parse_vapi_response."""

    def test_last_assistant_content_and_tool_call(self):
        reply = parse_vapi_response(
            {
                "id": "chat_1",
                "output": [
                    {"role": "assistant", "content": "", "tool_calls": [{"function": {"name": "route_to_rag"}}]},
                    {"role": "tool", "content": "raw tool output"},
                    {"role": "assistant", "content": "", "tool_calls": [{"function": {"name": "knowledge_base_new"}}]},
                    {"role": "assistant", "content": "Apriamo alle 8."},
                ],
            }
        )

        assert reply.chat_id == "chat_1"
        assert reply.response == "Apriamo alle 8."
        assert reply.function_called == "RAG"

    def test_unmapped_function_is_kept(self):
        reply = parse_vapi_response(
            {
                "id": "chat_2",
                "output": [
                    {"role": "assistant", "content": "Ecco", "tool_calls": [{"function": {"name": "get_clinic_info"}}]},
                ],
            }
        )
        assert reply.function_called == "get_clinic_info"

    def test_empty_output(self):
        reply = parse_vapi_response({"id": "chat_3"})

        assert reply.response == ""
        assert reply.function_called is None


class TestVapiProxy:
    """Tests for VapiProxy.chat."""

    @pytest.mark.asyncio
    async def test_blank_message(self, proxy):
        with pytest.raises(ValidationError) as exc_info:
            await proxy.chat("  ")
        assert exc_info.value.message == "Message is required"

    @pytest.mark.asyncio
    async def test_missing_configuration(self):
        proxy = VapiProxy(api_key="key", assistant_id=None, chat_url=CHAT_URL)

        assert proxy.is_configured is False
        with pytest.raises(ConfigurationError) as exc_info:
            await proxy.chat("Ciao")
        assert exc_info.value.message == "Server configuration error"

    @pytest.mark.asyncio
    async def test_forwards_message(self, proxy, mock_api):
        route = mock_api.post(CHAT_URL).mock(
            return_value=httpx.Response(
                200,
                json={"id": "chat_2", "output": [{"role": "assistant", "content": "Certo."}]},
            )
        )

        reply = await proxy.chat("Posso prenotare?", previous_chat_id="chat_1")

        assert reply.to_dict() == {"chat_id": "chat_2", "response": "Certo.", "function_called": None}
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer vapi-test-key"
        assert json.loads(request.content) == {
            "assistantId": "asst_123",
            "input": "Posso prenotare?",
            "previousChatId": "chat_1",
        }

    def test_payload_without_previous_chat(self, proxy):
        assert "previousChatId" not in proxy.build_payload("Ciao")

    @pytest.mark.asyncio
    async def test_upstream_error(self, proxy, mock_api):
        mock_api.post(CHAT_URL).mock(return_value=httpx.Response(401, json={"message": "bad key"}))

        with pytest.raises(VoilaError) as exc_info:
            await proxy.chat("Ciao")

        assert exc_info.value.code == "UPSTREAM_ERROR"
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Vapi API returned 401"

    @pytest.mark.asyncio
    async def test_network_error(self, proxy, mock_api):
        mock_api.post(CHAT_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(VoilaError) as exc_info:
            await proxy.chat("Ciao")

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_timeout(self, proxy, mock_api):
        mock_api.post(CHAT_URL).mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(TimeoutError):
            await proxy.chat("Ciao")
