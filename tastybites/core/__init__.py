"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from tastybites.core.config import get_settings, Settings, EnvironmentMode
from tastybites.core.errors import (
    OrderingError,
    ValidationError,
    BusinessRuleError,
    InvalidTransitionError,
    OrderLockedError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ServiceUnavailableError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "OrderingError",
    "ValidationError",
    "BusinessRuleError",
    "InvalidTransitionError",
    "OrderLockedError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ServiceUnavailableError",
]
