"""
Voilà Dashboard - Vapi Proxy

This module forwards chat messages to the Vapi chat API with the server's
credentials and reduces the reply to the fields the chat client needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from voila_dashboard.config import get_settings
from voila_dashboard.exceptions import (
    ConfigurationError,
    TimeoutError,
    ValidationError,
    VoilaError,
)
from voila_dashboard.models import BaseModel

logger = logging.getLogger("voila_dashboard.chat.vapi_proxy")

# Tool names reported by the assistant, mapped to the categories shown in the UI
FUNCTION_MAPPING = {
    "call_graph": "GRAPH",
    "knowledge_base_new": "RAG",
}


@dataclass
class VapiReply(BaseModel):
    """Reply of one chat turn."""
    chat_id: Optional[str]
    response: str
    function_called: Optional[str] = None


def parse_vapi_response(payload: Dict[str, Any]) -> VapiReply:
    """
    Reduce a Vapi chat response to chat id, text and function.

    Among the assistant items of ``output``, the last one with content
    gives the text, and the first named tool call of the last item that
    has one gives the function.
    """
    output = payload.get("output") or []
    response = ""
    function_called = None

    for item in output:
        if item.get("role") != "assistant":
            continue

        for tool_call in item.get("tool_calls") or []:
            name = (tool_call.get("function") or {}).get("name")
            if name:
                function_called = name
                break

        if item.get("content"):
            response = item["content"]

    if not response:
        for item in reversed(output):
            if item.get("role") == "assistant" and item.get("content"):
                response = item["content"]
                break

    if function_called:
        function_called = FUNCTION_MAPPING.get(function_called, function_called)

    return VapiReply(chat_id=payload.get("id"), response=response, function_called=function_called)


class VapiProxy:
    """
    Server-side forwarder to the Vapi chat API.

    Args:
        api_key: Vapi API key. Defaults to ``VAPI_API_KEY``.
        assistant_id: Vapi assistant id. Defaults to ``ASSISTANT_ID``.
        chat_url: Vapi chat endpoint. Defaults to ``VAPI_CHAT_URL``.
        timeout: Request timeout in seconds.
        http_client: Pre-built async httpx client, mostly for tests.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        assistant_id: Optional[str] = None,
        chat_url: Optional[str] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.assistant_id = assistant_id
        self.chat_url = chat_url
        self._timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings=None) -> "VapiProxy":
        settings = settings or get_settings()
        return cls(
            api_key=settings.vapi_api_key,
            assistant_id=settings.assistant_id,
            chat_url=settings.vapi_chat_url,
            timeout=settings.timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.assistant_id and self.chat_url)

    def build_payload(self, message: str, previous_chat_id: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "assistantId": self.assistant_id,
            "input": message,
        }
        if previous_chat_id:
            payload["previousChatId"] = previous_chat_id
        return payload

    async def chat(self, message: Optional[str], previous_chat_id: Optional[str] = None) -> VapiReply:
        """
        Forward one user message.

        Raises:
            ValidationError: If the message is blank
            ConfigurationError: If the Vapi credentials are missing
            VoilaError: If Vapi answers with an error status
        """
        if not message or not message.strip():
            raise ValidationError("Message is required")

        if not self.is_configured:
            logger.error("Missing Vapi environment variables")
            raise ConfigurationError("Server configuration error")

        logger.info(f"Sending to Vapi: {message[:50]}...")
        if previous_chat_id:
            logger.info(f"   (with previousChatId: {previous_chat_id})")

        client = self._http_client or httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        try:
            response = await client.post(
                self.chat_url,
                json=self.build_payload(message, previous_chat_id),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Vapi request timed out: {e}", timeout_seconds=self._timeout) from e
        except httpx.RequestError as e:
            raise VoilaError(f"Vapi request failed: {e}", status_code=502) from e
        finally:
            if self._http_client is None:
                await client.aclose()

        if not response.is_success:
            logger.error(f"Vapi API error: {response.status_code} - {response.text}")
            raise VoilaError(
                f"Vapi API returned {response.status_code}",
                code="UPSTREAM_ERROR",
                status_code=response.status_code,
            )

        reply = parse_vapi_response(response.json())
        if reply.function_called:
            logger.info(f"Function called: {reply.function_called}")
        logger.info(f"Response: {reply.response[:100]}...")
        logger.info(f"Chat ID: {reply.chat_id}")
        return reply
