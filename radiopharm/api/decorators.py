"""Authentication and role checks for API views.

    @api_login_required
    def my_view(request): ...

    @require_roles(roles.ADMIN, roles.FINANCE)
    def approve(request, invoice_id): ...
"""
from functools import wraps

from radiopharm.core.exceptions import Forbidden, Unauthorized


def api_login_required(view_func):
    """Raise UNAUTHORIZED for anonymous callers."""

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            raise Unauthorized("Authentication required")
        return view_func(request, *args, **kwargs)

    return wrapper


def require_roles(*role_names):
    """Require an authenticated caller holding at least one of role_names."""

    def decorator(view_func):
        @wraps(view_func)
        @api_login_required
        def wrapper(request, *args, **kwargs):
            if not request.user.has_role(*role_names):
                raise Forbidden(
                    f"Requires one of: {', '.join(role_names)}",
                    details={"requiredRoles": list(role_names)},
                )
            return view_func(request, *args, **kwargs)

        return wrapper

    return decorator
