"""
Permission Decorators — role-capability checks for route protection.

Usage:
    @document_bp.route("/documents", methods=["POST"])
    @require_capability(Capability.CREATE)
    def create_document():
        caller = current_caller()
        ...

A request without a resolved caller raises AuthenticationRequired (401);
a caller whose role lacks the capability raises ForbiddenError (403).
Both are rendered by the app-wide error handlers.
"""

import functools
import logging

from flask import g

from specflow.core.exceptions import AuthenticationRequired, ForbiddenError
from specflow.services.permission import (
    CallerIdentity,
    has_permission,
)

logger = logging.getLogger(__name__)


def current_caller() -> CallerIdentity:
    """The authenticated caller of the current request."""
    caller = getattr(g, "current_user", None)
    if caller is None:
        raise AuthenticationRequired()
    return caller


def _label(capabilities) -> str:
    return ",".join(getattr(c, "value", c) for c in capabilities)


def require_capability(capability):
    """Decorator: require the caller's role to hold ``capability``."""
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            caller = current_caller()
            if not has_permission(caller.role, capability):
                logger.warning(
                    "User %s (%s) denied: missing capability '%s' on %s",
                    caller.user_id, caller.role.value, _label([capability]), f.__name__,
                )
                raise ForbiddenError(role=caller.role.value, action=_label([capability]))
            return f(*args, **kwargs)
        return decorated
    return decorator
