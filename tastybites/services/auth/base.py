"""
Auth Service Abstract Base Class

Defines the interface contract for the auth collaborator. Both the
in-process MockAuthService and the hosted SupabaseAuthService implement
these methods, so handlers never care which one is active.

The rest of the application only sees two things from auth: whether a
session exists, and the user id behind it. Both travel as an explicit
``SessionContext`` value instead of ambient global state.

Design Pattern: Strategy Pattern
    - Runtime switching between auth providers via ENV_MODE
    - In-process implementation for local runs and tests

Author: Your Name
Version: 1.0.0
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class SessionContext:
    """
    An authenticated caller.

    Acquired when a request presents a valid access token; invalid once
    the user signs out or the provider expires the token.

    Attributes:
        user_id: Auth user id (also the profile id)
        access_token: Bearer token the session was resolved from
        email: Email on the auth account, if known
    """
    user_id: uuid.UUID
    access_token: str
    email: Optional[str] = None


@dataclass
class AuthResult:
    """
    Standardized result from sign-in and sign-up.

    Attributes:
        user_id: Auth user id
        email: Account email
        access_token: Bearer token, None when the provider requires
            email confirmation before the first session
        user_metadata: Profile metadata stored with the account
    """
    user_id: uuid.UUID
    email: str
    access_token: Optional[str] = None
    user_metadata: dict = field(default_factory=dict)

    def to_session(self) -> Optional[SessionContext]:
        if not self.access_token:
            return None
        return SessionContext(
            user_id=self.user_id,
            access_token=self.access_token,
            email=self.email,
        )


class BaseAuthService(ABC):
    """
    Abstract base class for auth services.

    Example:
        >>> service = get_auth_service()  # Mock or Supabase
        >>> result = await service.sign_in("jane@example.com", "secret123")
        >>> ctx = await service.get_session(result.access_token)
        >>> ctx.user_id == result.user_id
        True
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the auth provider.

        Returns:
            str: Provider name (e.g., "mock", "supabase")
        """
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthResult:
        """
        Sign in with email and password.

        Raises:
            AuthenticationError: wrong credentials
            ServiceUnavailableError: provider unreachable
        """
        pass

    @abstractmethod
    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[dict] = None,
    ) -> AuthResult:
        """
        Create an account carrying profile metadata (name, phone, user_type).

        Raises:
            ValidationError: email already registered
            ServiceUnavailableError: provider unreachable
        """
        pass

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        """Invalidate the session behind ``access_token``."""
        pass

    @abstractmethod
    async def get_session(self, access_token: str) -> Optional[SessionContext]:
        """
        Resolve a bearer token to a session.

        Returns:
            SessionContext, or None when the token is unknown or expired
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the auth provider.

        Returns:
            bool: True if the provider is reachable
        """
        pass
