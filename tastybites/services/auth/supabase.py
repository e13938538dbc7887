"""
Supabase Auth Service Implementation

Production implementation talking to the Supabase Auth (GoTrue) REST API.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment

API Documentation:
    https://supabase.com/docs/reference/api

Author: Your Name
Version: 1.0.0
"""

import logging
import uuid
from typing import Any, Optional

import httpx

from tastybites.core.config import get_settings
from tastybites.core.errors import (
    AuthenticationError,
    ServiceUnavailableError,
    ValidationError,
)
from tastybites.services.auth.base import AuthResult, BaseAuthService, SessionContext

logger = logging.getLogger(__name__)


class SupabaseAuthService(BaseAuthService):
    """
    Hosted auth collaborator.

    Every call is a single HTTP round trip; failures are not retried.
    Transport errors surface as ServiceUnavailableError.

    Configuration:
        Requires SUPABASE_URL and SUPABASE_ANON_KEY.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the HTTP client.

        Args:
            client: Pre-built client (tests inject one with a mock transport)

        Raises:
            ValueError: If SUPABASE_URL or SUPABASE_ANON_KEY is not configured
        """
        settings = get_settings()

        if client is None:
            if not settings.supabase_url or not settings.supabase_anon_key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_ANON_KEY are required outside development mode. "
                    "Set them in your .env file or environment variables."
                )
            client = httpx.AsyncClient(
                base_url=f"{settings.supabase_url.rstrip('/')}/auth/v1",
                headers={"apikey": settings.supabase_anon_key},
                timeout=settings.auth_timeout_seconds,
            )

        self._client = client
        logger.info("SupabaseAuthService initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "supabase"

    async def _request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        try:
            return await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Supabase auth unreachable ({method} {path}): {e}")
            raise ServiceUnavailableError("Authentication service is unavailable", "auth") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        return (
            body.get("msg")
            or body.get("error_description")
            or body.get("message")
            or body.get("error")
            or f"HTTP {response.status_code}"
        )

    @staticmethod
    def _to_result(body: dict) -> AuthResult:
        # Sign-in returns {access_token, user}; sign-up without auto-confirm returns the user itself.
        user = body.get("user") or body
        return AuthResult(
            user_id=uuid.UUID(user["id"]),
            email=user.get("email", ""),
            access_token=body.get("access_token"),
            user_metadata=user.get("user_metadata") or {},
        )

    async def sign_in(self, email: str, password: str) -> AuthResult:
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code in (400, 401, 422):
            logger.warning(f"Supabase sign-in rejected for {email}")
            raise AuthenticationError(self._error_message(response))
        if response.is_error:
            raise ServiceUnavailableError(self._error_message(response), "auth")

        logger.info(f"Supabase sign-in: {email}")
        return self._to_result(response.json())

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[dict] = None,
    ) -> AuthResult:
        response = await self._request(
            "POST",
            "/signup",
            json={"email": email, "password": password, "data": metadata or {}},
        )
        if response.status_code in (400, 422):
            raise ValidationError("email", self._error_message(response))
        if response.is_error:
            raise ServiceUnavailableError(self._error_message(response), "auth")

        result = self._to_result(response.json())
        logger.info(f"Supabase sign-up: {email} (user {result.user_id})")
        return result

    async def sign_out(self, access_token: str) -> None:
        response = await self._request("POST", "/logout", access_token=access_token)
        # An already-expired token is as signed out as it gets.
        if response.is_error and response.status_code not in (401, 403, 404):
            raise ServiceUnavailableError(self._error_message(response), "auth")

    async def get_session(self, access_token: str) -> Optional[SessionContext]:
        response = await self._request("GET", "/user", access_token=access_token)
        if response.status_code in (401, 403):
            return None
        if response.is_error:
            raise ServiceUnavailableError(self._error_message(response), "auth")

        user = response.json()
        return SessionContext(
            user_id=uuid.UUID(user["id"]),
            access_token=access_token,
            email=user.get("email"),
        )

    async def health_check(self) -> bool:
        try:
            response = await self._client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Supabase auth health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self._client.aclose()
