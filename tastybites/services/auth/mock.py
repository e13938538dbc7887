"""
Mock Auth Service Implementation

Keeps accounts and sessions in process memory. Used in development mode
(ENV_MODE=development) and by the test suite to:
    - Run the full order flow without a Supabase project
    - Create customers, staff and admins on the fly

Behavior:
    - Passwords are hashed with Argon2, never stored in clear
    - Tokens are random and live until sign-out or restart
    - Optional simulated latency

Author: Your Name
Version: 1.0.0
"""

import asyncio
import logging
import secrets
import uuid
from dataclasses import dataclass, field
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError

from tastybites.core.errors import AuthenticationError, ValidationError
from tastybites.services.auth.base import AuthResult, BaseAuthService, SessionContext

logger = logging.getLogger(__name__)


@dataclass
class _Account:
    user_id: uuid.UUID
    email: str
    password_hash: str
    user_metadata: dict = field(default_factory=dict)


class MockAuthService(BaseAuthService):
    """
    In-memory implementation of the auth collaborator.

    Attributes:
        latency: Simulated response time in seconds

    Example:
        >>> service = MockAuthService()
        >>> result = await service.sign_up("jane@example.com", "secret123", {"name": "Jane"})
        >>> (await service.get_session(result.access_token)).email
        'jane@example.com'
    """

    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self._accounts: dict[str, _Account] = {}
        self._sessions: dict[str, SessionContext] = {}
        self._hasher = PasswordHasher()

        logger.info(f"MockAuthService initialized (latency={latency}s)")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)

    def _verify(self, password: str, password_hash: str) -> bool:
        try:
            return self._hasher.verify(password_hash, password)
        except VerifyMismatchError:
            return False

    def _open_session(self, account: _Account) -> AuthResult:
        token = f"mock_{secrets.token_urlsafe(32)}"
        self._sessions[token] = SessionContext(
            user_id=account.user_id,
            access_token=token,
            email=account.email,
        )
        return AuthResult(
            user_id=account.user_id,
            email=account.email,
            access_token=token,
            user_metadata=dict(account.user_metadata),
        )

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Check the password and open a new session."""
        await self._simulate_latency()

        account = self._accounts.get(email.lower())
        if account is None or not self._verify(password, account.password_hash):
            logger.warning(f"Mock sign-in rejected for {email}")
            raise AuthenticationError("Invalid login credentials")

        logger.info(f"Mock sign-in: {email}")
        return self._open_session(account)

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[dict] = None,
    ) -> AuthResult:
        """Create the account and sign it in (no email confirmation)."""
        await self._simulate_latency()

        key = email.lower()
        if key in self._accounts:
            raise ValidationError("email", "User already registered")

        account = _Account(
            user_id=uuid.uuid4(),
            email=key,
            password_hash=self._hasher.hash(password),
            user_metadata=dict(metadata or {}),
        )
        self._accounts[key] = account

        logger.info(f"Mock sign-up: {email} (user {account.user_id})")
        return self._open_session(account)

    async def sign_out(self, access_token: str) -> None:
        session = self._sessions.pop(access_token, None)
        if session is not None:
            logger.info(f"Mock sign-out: {session.email}")

    async def get_session(self, access_token: str) -> Optional[SessionContext]:
        return self._sessions.get(access_token)

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
