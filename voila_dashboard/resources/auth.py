"""
Voilà Dashboard - Auth Resource

This module verifies dashboard user tokens against the ``auth-verify``
Edge Function.
"""

from __future__ import annotations

import logging

from voila_dashboard.config import Endpoints
from voila_dashboard.resources.base import BaseResource

logger = logging.getLogger("voila_dashboard.auth")


class AuthResource(BaseResource):
    """
    Resource for user token checks.

    Example:
        >>> if not client.auth.verify_token(token):
        ...     print("Session expired")
    """

    def verify_token(self, token: str) -> bool:
        """
        Check whether a user token is still valid.

        Args:
            token: The user's bearer token

        Returns:
            True when the Edge Function accepts the token, False otherwise

        Raises:
            VoilaError: If the Edge Function cannot be reached. A network
                failure says nothing about the token, so callers decide.
        """
        if not token:
            return False

        response = self._client.send(
            "GET",
            Endpoints.AUTH_VERIFY,
            headers={
                "Authorization": f"Bearer {token}",
                "apikey": self._client.config.anon_key,
            },
        )

        if not response.is_success:
            logger.warning(f"Token validation failed with status {response.status_code}")
            return False
        return True
