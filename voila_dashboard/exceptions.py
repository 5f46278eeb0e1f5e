"""
Voilà Dashboard - Exceptions

This module contains all custom exceptions raised by the dashboard client,
the chat clients and the proxy.
"""

from typing import Optional, Dict, Any


class VoilaError(Exception):
    """
    Base exception for all Voilà Dashboard errors.

    Attributes:
        message: Human-readable error message
        code: Error code if available
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', code='{self.code}')"


class ConfigurationError(VoilaError):
    """
    Raised when required settings are missing.

    The Supabase URL and anon key are needed for every data call, and the
    Vapi proxy needs its API key, assistant id and chat URL.
    """

    def __init__(self, message: str = "Missing configuration") -> None:
        super().__init__(message, code="CONFIGURATION_ERROR")


class AuthenticationError(VoilaError):
    """
    Raised when authentication fails.

    This can occur when:
    - The anon key is invalid
    - The user token is expired or malformed
    """

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, code="AUTHENTICATION_ERROR", status_code=401)


class NotFoundError(VoilaError):
    """
    Raised when a requested row or resource is not found.

    Attributes:
        resource_type: Type of resource that wasn't found
        resource_id: ID of the resource that wasn't found
    """

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> None:
        super().__init__(message, code="NOT_FOUND", status_code=404)
        self.resource_type = resource_type
        self.resource_id = resource_id

    def __str__(self) -> str:
        if self.resource_type and self.resource_id:
            return f"{self.resource_type} with ID '{self.resource_id}' not found"
        return super().__str__()


class ValidationError(VoilaError):
    """
    Raised when request validation fails.

    Attributes:
        field_errors: Dictionary mapping field names to error messages
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(message, code="VALIDATION_ERROR", details=field_errors, status_code=422)
        self.field_errors = field_errors or {}

    def __str__(self) -> str:
        base = super().__str__()
        if self.field_errors:
            errors = ", ".join(f"{k}: {v}" for k, v in self.field_errors.items())
            return f"{base} ({errors})"
        return base


class RateLimitError(VoilaError):
    """
    Raised when the backend rate limit is exceeded.

    Attributes:
        retry_after: Number of seconds to wait before retrying
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[str] = None,
    ) -> None:
        super().__init__(message, code="RATE_LIMIT_ERROR", status_code=429)
        self.retry_after = int(retry_after) if retry_after else None

    def __str__(self) -> str:
        base = super().__str__()
        if self.retry_after:
            return f"{base}. Retry after {self.retry_after} seconds."
        return base


class ServerError(VoilaError):
    """
    Raised when the backend returns a 5xx response.

    These errors are typically transient and can be retried.
    """

    def __init__(self, message: str = "Server error", status_code: int = 500) -> None:
        super().__init__(message, code="SERVER_ERROR", status_code=status_code)


class QueryError(VoilaError):
    """
    Raised when PostgREST rejects a query or an RPC call fails.

    PostgREST errors carry ``message``, ``details``, ``hint`` and ``code``;
    all of them are kept so callers can log the full payload.
    """

    def __init__(
        self,
        message: str = "Query failed",
        details: Optional[str] = None,
        hint: Optional[str] = None,
        pg_code: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="QUERY_ERROR",
            details={"details": details, "hint": hint, "code": pg_code},
            status_code=status_code,
        )
        self.hint = hint
        self.pg_code = pg_code


class TimeoutError(VoilaError):
    """
    Raised when a request times out.

    Attributes:
        timeout_seconds: Timeout that was exceeded, if known
    """

    def __init__(
        self,
        message: str = "Request timed out",
        timeout_seconds: Optional[float] = None,
    ) -> None:
        super().__init__(message, code="TIMEOUT")
        self.timeout_seconds = timeout_seconds


class ChatError(VoilaError):
    """Raised when a chat backend reports an error or rejects a message."""

    def __init__(self, message: str = "Chat error", status_code: Optional[int] = None) -> None:
        super().__init__(message, code="CHAT_ERROR", status_code=status_code)


class ConnectionError(ChatError):
    """Raised when sending on a chat client that is not connected or not ready."""

    def __init__(self, message: str = "Not connected") -> None:
        super().__init__(message)
        self.code = "CONNECTION_ERROR"


class WebSocketError(ChatError):
    """Raised when the WebSocket connection cannot be opened or breaks."""

    def __init__(self, message: str = "WebSocket error") -> None:
        super().__init__(message)
        self.code = "WEBSOCKET_ERROR"


class SessionError(ChatError):
    """Raised when a chat session cannot be created, read or is missing."""

    def __init__(self, message: str = "Session error", status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code=status_code)
        self.code = "SESSION_ERROR"


def raise_for_status(status_code: int, message: str, retry_after: Optional[str] = None) -> None:
    """Raise the exception matching an HTTP error status."""
    if status_code == 401:
        raise AuthenticationError(message)
    elif status_code == 403:
        raise AuthenticationError(f"Forbidden: {message}")
    elif status_code == 404:
        raise NotFoundError(message)
    elif status_code == 422:
        raise ValidationError(message)
    elif status_code == 429:
        raise RateLimitError(message, retry_after=retry_after)
    elif status_code >= 500:
        raise ServerError(message, status_code=status_code)
    raise VoilaError(f"HTTP {status_code}: {message}", status_code=status_code)
