"""
Voilà Dashboard - Chat

Chat clients for the knowledge-check page and the session state they feed.
"""

from voila_dashboard.chat.base import ChatClient, ChatEventType, EventEmitter
from voila_dashboard.chat.pipecat import PipecatChatClient
from voila_dashboard.chat.vapi import VapiChatClient
from voila_dashboard.chat.vapi_proxy import VapiProxy, VapiReply, parse_vapi_response
from voila_dashboard.chat.session import ChatSession, ChatStats, create_chat_client

__all__ = [
    "ChatClient",
    "ChatEventType",
    "EventEmitter",
    "PipecatChatClient",
    "VapiChatClient",
    "VapiProxy",
    "VapiReply",
    "parse_vapi_response",
    "ChatSession",
    "ChatStats",
    "create_chat_client",
]
