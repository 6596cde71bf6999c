"""
Clean API Error Types

Every failure that crosses a layer boundary is an AppError. The HTTP layer maps
them to responses through a single exception handler (see cleanapi.api.errors).
"""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    INTERNAL = "internal"
    DATABASE = "database"


class AppError(Exception):
    """Base application error with category, machine code and HTTP status."""

    category: ErrorCategory = ErrorCategory.INTERNAL
    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.cause = cause

    def __str__(self) -> str:
        text = f"[{self.category.value}:{self.code}] {self.message}"
        if self.cause is not None:
            text += f": {self.cause}"
        return text


class ValidationError(AppError):
    category = ErrorCategory.VALIDATION
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    category = ErrorCategory.NOT_FOUND
    status_code = 404
    default_code = "NOT_FOUND"


class UnauthorizedError(AppError):
    category = ErrorCategory.UNAUTHORIZED
    status_code = 401
    default_code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    category = ErrorCategory.FORBIDDEN
    status_code = 403
    default_code = "FORBIDDEN"


class ConflictError(AppError):
    category = ErrorCategory.CONFLICT
    status_code = 409
    default_code = "CONFLICT"


class InternalError(AppError):
    category = ErrorCategory.INTERNAL
    status_code = 500
    default_code = "INTERNAL_ERROR"


class DatabaseError(AppError):
    category = ErrorCategory.DATABASE
    status_code = 500
    default_code = "DATABASE_ERROR"


# --- Authorization ---

class InvalidRequestError(ValidationError):
    default_code = "INVALID_REQUEST"

    def __init__(self, message: str = "invalid request", cause: Optional[BaseException] = None):
        super().__init__(message, cause=cause)


class RoleMissingError(UnauthorizedError):
    default_code = "USER_ROLE_NOT_FOUND"

    def __init__(self, message: str = "user role not found"):
        super().__init__(message)


class PermissionDeniedError(ForbiddenError):
    """A well-formed request the policy engine refused."""

    default_code = "PERMISSION_DENIED"

    def __init__(
        self,
        role: str,
        resource: str,
        action: str,
        reason: str,
        user_id: Optional[str] = None,
    ):
        self.role = role
        self.resource = resource
        self.action = action
        self.reason = reason
        self.user_id = user_id

        subject = f"user {user_id} with role {role}" if user_id else f"role {role}"
        super().__init__(f"permission denied: {subject} cannot {action} on {resource} - {reason}")


class RoleNotFoundError(ValidationError):
    default_code = "ROLE_NOT_FOUND"

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"role not found: {role}")


class PolicyEvaluationError(InternalError):
    default_code = "POLICY_EVALUATION_FAILED"

    def __init__(self, message: str = "policy evaluation failed", cause: Optional[BaseException] = None):
        super().__init__(message, cause=cause)


class InvalidPolicyError(ValidationError):
    default_code = "INVALID_POLICY"
