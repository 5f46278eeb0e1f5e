"""
Voilà Dashboard - Chat Client Base

This module contains the event types and the event emitter shared by the
chat clients, and the interface every chat client implements.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

logger = logging.getLogger("voila_dashboard.chat")


class ChatEventType(str, Enum):
    """Events emitted by chat clients."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    TYPING = "typing"
    READY = "ready"
    CHUNK = "chunk"
    MESSAGE = "message"
    ERROR = "error"
    FUNCTION_CALLED = "function_called"


# Handlers receive the event payload (if any) and may be coroutines
EventHandler = Callable[..., Any]


class EventEmitter:
    """
    Minimal event emitter.

    Example:
        >>> emitter = EventEmitter()
        >>>
        >>> @emitter.on(ChatEventType.CHUNK)
        ... def print_chunk(text):
        ...     print(text, end="")
    """

    def __init__(self) -> None:
        self._handlers: Dict[ChatEventType, List[EventHandler]] = {}

    def on(
        self,
        event_type: Union[ChatEventType, str],
        handler: Optional[EventHandler] = None,
    ):
        """
        Register an event handler.

        Can be called directly with a handler or used as a decorator.
        """
        event_type = ChatEventType(event_type)

        def decorator(func: EventHandler) -> EventHandler:
            self._handlers.setdefault(event_type, []).append(func)
            return func

        if handler is not None:
            return decorator(handler)
        return decorator

    def off(self, event_type: Union[ChatEventType, str], handler: EventHandler) -> None:
        """Remove an event handler; unknown handlers are ignored."""
        handlers = self._handlers.get(ChatEventType(event_type), [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event_type: Union[ChatEventType, str], *args: Any) -> None:
        """
        Call every handler of an event in registration order.

        A failing handler is logged and does not stop the others.
        """
        for handler in list(self._handlers.get(ChatEventType(event_type), [])):
            try:
                result = handler(*args)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Error in {ChatEventType(event_type).value} handler: {e}")


class ChatClient(EventEmitter, ABC):
    """Interface shared by the Pipecat and Vapi chat clients."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @property
    @abstractmethod
    def session_id(self) -> Optional[str]:
        ...

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        ...

    @abstractmethod
    async def send_message(self, text: str) -> None:
        ...

    async def __aenter__(self) -> "ChatClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
