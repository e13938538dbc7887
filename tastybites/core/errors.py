"""
Error Taxonomy

Every failure the ordering flow can surface to a user derives from
``OrderingError``. The API layer maps each class to an HTTP status and
renders it through the single ``ErrorResponse`` notification shape, so
no collaborator failure ever escapes as an unhandled exception.

    ValidationError        - malformed or missing input, tied to a field
    BusinessRuleError      - empty cart, missing branch, unknown item
        InvalidTransitionError - status change the lifecycle forbids
        OrderLockedError       - customer edit after the order left pending
    AuthenticationError    - no session or bad credentials
    AuthorizationError     - an access policy rejected the operation
    NotFoundError          - row does not exist (or is not visible)
    ServiceUnavailableError - store, auth or feed unreachable

Author: Your Name
Version: 1.0.0
"""

from typing import Optional


class OrderingError(Exception):
    """Base class for user-facing errors."""

    status_code = 500
    title = "Something went wrong"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrderingError):
    """Input failed validation before any collaborator was called."""

    status_code = 422
    title = "Validation failed"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    @property
    def fields(self) -> dict[str, str]:
        return {self.field: self.message}


class BusinessRuleError(OrderingError):
    status_code = 400
    title = "Request rejected"


class InvalidTransitionError(BusinessRuleError):
    status_code = 409
    title = "Invalid status change"


class OrderLockedError(BusinessRuleError):
    status_code = 409
    title = "Order can no longer be changed"


class AuthenticationError(OrderingError):
    status_code = 401
    title = "Authentication required"


class AuthorizationError(OrderingError):
    status_code = 403
    title = "Not allowed"

    def __init__(self, message: str, policy: Optional[str] = None):
        super().__init__(message)
        self.policy = policy


class NotFoundError(OrderingError):
    status_code = 404
    title = "Not found"


class ServiceUnavailableError(OrderingError):
    status_code = 503
    title = "Service unavailable"

    def __init__(self, message: str, collaborator: str = "unknown"):
        super().__init__(message)
        self.collaborator = collaborator
