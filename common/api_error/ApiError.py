# common/api_error/ApiError.py
class AppError(Exception):
    """Base error for all application-specific issues."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


class NotFoundError(AppError):
    """Referenced record does not exist (or is not visible to the caller)."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404, code="NOT_FOUND")


class UnauthorizedError(AppError):
    """Missing, malformed or expired credentials."""

    def __init__(self, message: str = "Access denied. Invalid token."):
        super().__init__(message, status_code=401, code="UNAUTHORIZED")


class ForbiddenError(AppError):
    """Authenticated principal lacks the required permission."""

    def __init__(self, message: str = "Access denied."):
        super().__init__(message, status_code=403, code="FORBIDDEN")


class IllegalTransitionError(AppError):
    """Status change not allowed from the persisted status."""

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot change status from {from_status} to {to_status}",
            status_code=409,
            code="ILLEGAL_TRANSITION",
        )


class InputValidationError(AppError):
    """Request passed schema validation but breaks a business rule."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400, code="VALIDATION_ERROR")


class DatabaseError(AppError):
    """Specific for DB issues."""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status_code=500, code="DATABASE_ERROR")


__all__ = [
    "AppError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "IllegalTransitionError",
    "InputValidationError",
    "DatabaseError",
]
