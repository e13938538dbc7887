"""
Auth Service Factory

Provides a single entry point for obtaining the auth collaborator.

Usage:
    from tastybites.services.auth import get_auth_service

    # Returns MockAuthService or SupabaseAuthService based on ENV_MODE
    auth = get_auth_service()
    result = await auth.sign_in(email, password)

Environment Switching:
    - ENV_MODE=development → MockAuthService (in-memory accounts)
    - ENV_MODE=staging → SupabaseAuthService (test project)
    - ENV_MODE=production → SupabaseAuthService (live project)

Author: Your Name
Version: 1.0.0
"""

import logging
from functools import lru_cache

from tastybites.core.config import get_settings
from tastybites.services.auth.base import AuthResult, BaseAuthService, SessionContext
from tastybites.services.auth.mock import MockAuthService
from tastybites.services.auth.supabase import SupabaseAuthService

logger = logging.getLogger(__name__)


@lru_cache()
def get_auth_service() -> BaseAuthService:
    """
    Get the configured auth service instance.

    The instance is cached so mock sessions survive across requests.

    Raises:
        ValueError: If hosted mode but Supabase is not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Auth Service: Using MockAuthService (development mode)")
        return MockAuthService()
    else:
        logger.info(
            f"Auth Service: Using SupabaseAuthService "
            f"({settings.env_mode.value} mode)"
        )
        return SupabaseAuthService()


def reset_auth_service() -> None:
    """
    Clear the cached auth service instance.

    The next call to get_auth_service() creates a fresh one, which for the
    mock also forgets every account and session.
    """
    get_auth_service.cache_clear()
    logger.debug("Auth service cache cleared")


__all__ = [
    "get_auth_service",
    "reset_auth_service",
    "AuthResult",
    "BaseAuthService",
    "SessionContext",
    "MockAuthService",
    "SupabaseAuthService",
]
