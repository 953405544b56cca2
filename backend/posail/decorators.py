# Overview: Request scope and capability decorators for API routes.

from functools import wraps

from flask import current_app, request

from .errors import ForbiddenError
from .services.scope_service import get_request_scope, require_local


def require_scope(f):
    """
    Resolve the request scope and pass it to the view as `scope=`.

    Raises UnauthenticatedError/ForbiddenError/InvalidInputError through the
    ApiError handler; the view never runs for a rejected request.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        kwargs["scope"] = get_request_scope()
        return f(*args, **kwargs)

    return decorated_function


def require_local_scope(f):
    """Like require_scope, but the scope must carry a local."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        scope = get_request_scope()
        require_local(scope)
        kwargs["scope"] = scope
        return f(*args, **kwargs)

    return decorated_function


def require_capability(check, message: str = "Permission denied"):
    """
    Gate a view on a capability check from posail.permissions.

    Must be stacked under require_scope / require_local_scope.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            scope = kwargs["scope"]
            if not check(scope.role):
                current_app.logger.warning(
                    "Capability %s denied: role=%s local=%s path=%s",
                    check.__name__,
                    scope.role.value if scope.role else None,
                    scope.local_id,
                    request.path,
                )
                raise ForbiddenError(message)
            return f(*args, **kwargs)

        return decorated_function
    return decorator
