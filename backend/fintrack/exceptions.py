# backend/fintrack/exceptions.py
"""
Domain exceptions.

Each error knows its HTTP status and a machine-readable error code; the
handlers registered in main.py turn them into the JSON envelope
``{"message", "error_code", "status"}``.
"""

from typing import Any, Optional


class FinTrackError(Exception):
    status_code: int = 500
    error_code: str = "FINTRACK_ERROR"
    default_message: str = "An error occurred"

    def __init__(self, message: str = "", context: Optional[dict] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "error_code": self.error_code,
            "status": self.status_code,
        }

    def headers(self) -> Optional[dict[str, str]]:
        return None


class ValidationFailedError(FinTrackError):
    """Rule-violating input, reported per field."""

    status_code = 422
    error_code = "VALIDATION_ERROR"
    default_message = "The given data was invalid."

    def __init__(self, errors: dict[str, list[str]], message: str = ""):
        if not message:
            first = next(iter(errors.values()), [""])
            message = first[0] if first else self.default_message
        super().__init__(message, {"fields": sorted(errors)})
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailedError":
        return cls({field: [message]})

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class BusinessRuleError(FinTrackError):
    status_code = 422
    error_code = "BUSINESS_RULE_VIOLATION"

    def __init__(self, rule: str, message: str, context: Optional[dict] = None):
        super().__init__(message, {"rule": rule, **(context or {})})
        self.rule = rule


class ResourceNotFoundError(FinTrackError):
    status_code = 404
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource_type: str, identifier):
        super().__init__(
            f"{resource_type} not found",
            {"resource_type": resource_type, "identifier": identifier},
        )


class UnauthorizedAccessError(FinTrackError):
    status_code = 403
    error_code = "UNAUTHORIZED_ACCESS"

    def __init__(self, resource_type: str, identifier, reason: str = "not_owner"):
        super().__init__(
            f"You do not have permission to access this {resource_type.lower()}",
            {"resource_type": resource_type, "identifier": identifier, "reason": reason},
        )


class AuthenticationError(FinTrackError):
    status_code = 401
    error_code = "UNAUTHENTICATED"
    default_message = "Unauthenticated."

    def headers(self):
        return {"WWW-Authenticate": "Bearer"}


class RateLimitExceededError(FinTrackError):
    status_code = 429
    error_code = "RATE_LIMIT_EXCEEDED"
    default_message = "Too many requests. Please slow down."

    def __init__(self, retry_after: int):
        super().__init__(self.default_message, {"retry_after": retry_after})
        self.retry_after = retry_after

    def to_dict(self):
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data

    def headers(self):
        return {"Retry-After": str(self.retry_after)}
