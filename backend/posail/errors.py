"""
API error taxonomy.

Every failure a client can observe is an ApiError subclass carrying an HTTP
status class and a short machine-usable reason string. The Flask error
handler registered in create_app() renders them as
{"error": <message>, "reason": <reason>}.

ConfigurationError is deliberately NOT an ApiError: it is raised while the
application is being built and aborts start-up.
"""


class ApiError(Exception):
    status_code = 500
    reason = "internal_error"

    def __init__(self, message: str, *, reason: str | None = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason

    def to_dict(self) -> dict:
        return {"error": str(self), "reason": self.reason}


class UnauthenticatedError(ApiError):
    """No valid credential and no public path."""
    status_code = 401
    reason = "unauthenticated"


class ForbiddenError(ApiError):
    """Role/tenant mismatch or missing capability."""
    status_code = 403
    reason = "forbidden"


class InvalidInputError(ApiError):
    """400-level input problem."""
    status_code = 400
    reason = "invalid_input"


class NotFoundError(ApiError):
    """Tenant-scoped entity does not exist (or is not visible)."""
    status_code = 404
    reason = "not_found"


class ConflictError(ApiError):
    """409-level business rule conflict (stock, duplicates)."""
    status_code = 409
    reason = "conflict"


class RateLimitedError(ApiError):
    status_code = 429
    reason = "locked"

    def __init__(self, message: str, *, retry_after_seconds: int, reason: str | None = None):
        super().__init__(message, reason=reason)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["retry_after_seconds"] = self.retry_after_seconds
        return payload


class ConfigurationError(RuntimeError):
    """Fatal start-up misconfiguration (e.g. missing JWT secret in production)."""
