"""Server dependencies."""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from voila_dashboard.chat.vapi_proxy import VapiProxy
from voila_dashboard.client import SupabaseClient
from voila_dashboard.config import Settings
from voila_dashboard.exceptions import VoilaError

logger = logging.getLogger("voila_dashboard.server")


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_data_client(request: Request) -> SupabaseClient:
    """Shared data client, built on first use."""
    state = request.app.state
    if getattr(state, "data_client", None) is None:
        state.data_client = SupabaseClient.from_settings(state.settings)
    return state.data_client


def get_vapi_proxy(request: Request) -> VapiProxy:
    state = request.app.state
    if getattr(state, "vapi_proxy", None) is None:
        state.vapi_proxy = VapiProxy.from_settings(state.settings)
    return state.vapi_proxy


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Extract the bearer token from the Authorization header."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None


def require_token(
    token: Optional[str] = Depends(get_bearer_token),
    settings: Settings = Depends(get_app_settings),
    client: SupabaseClient = Depends(get_data_client),
) -> Optional[str]:
    """
    Require a valid dashboard user token.

    Missing or rejected tokens give 401. When the verifier cannot be
    reached the token is neither accepted nor rejected, and the request
    fails with 503.
    """
    if not settings.enforce_auth:
        return token

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        valid = client.auth.verify_token(token)
    except VoilaError as e:
        logger.error(f"Error validating token: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token verification unavailable",
        )

    if not valid:
        logger.warning("Token validation failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token
