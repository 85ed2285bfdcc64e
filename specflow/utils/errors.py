"""Standardised API error responses.

Usage
-----
    from specflow.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Document not found")
    return api_error(E.VALIDATION_REQUIRED, "to_stage is required")

Domain exceptions raised by services do not need to be caught in views:
``register_error_handlers(app)`` maps each one to its code and status.
"""

from __future__ import annotations

import logging

from flask import jsonify

from specflow.core.exceptions import (
    AuthenticationRequired,
    CircularDependencyError,
    ConflictError,
    DuplicateLinkError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    SelfLinkError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400 / 422
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Workflow / graph rules
    INVALID_TRANSITION = "ERR_INVALID_TRANSITION"
    SELF_LINK = "ERR_SELF_LINK"
    CIRCULAR_DEPENDENCY = "ERR_CIRCULAR_DEPENDENCY"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Auth – HTTP 401 / 403
    AUTH_REQUIRED = "ERR_AUTH_REQUIRED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 422,
    E.INVALID_TRANSITION: 400,
    E.SELF_LINK: 400,
    E.CIRCULAR_DEPENDENCY: 409,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.AUTH_REQUIRED: 401,
    E.FORBIDDEN: 403,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (stages, ids, field errors).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


# ── Exception → response mapping ──────────────────────────────────────
# Order matters: subclasses before their bases.
_EXCEPTION_CODES: tuple[tuple[type[Exception], str], ...] = (
    (InvalidTransitionError, E.INVALID_TRANSITION),
    (SelfLinkError, E.SELF_LINK),
    (CircularDependencyError, E.CIRCULAR_DEPENDENCY),
    (DuplicateLinkError, E.CONFLICT_DUPLICATE),
    (ConflictError, E.CONFLICT_STATE),
    (ValidationError, E.VALIDATION_INVALID),
    (NotFoundError, E.NOT_FOUND),
    (ForbiddenError, E.FORBIDDEN),
    (AuthenticationRequired, E.AUTH_REQUIRED),
)


def error_code_for(exc: Exception) -> str:
    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(exc, exc_type):
            return code
    return E.INTERNAL


def domain_error_response(exc: Exception):
    """Build the api_error response for a domain exception."""
    code = error_code_for(exc)
    details = getattr(exc, "details", None) or None
    if _DEFAULT_STATUS.get(code, 400) < 500:
        logger.info("Request rejected code=%s: %s", code, exc)
    return api_error(code, str(exc), details=details)


def register_error_handlers(app):
    """Attach the domain-exception handlers plus 404/405/500 fallbacks."""

    for exc_type, _code in _EXCEPTION_CODES:
        app.register_error_handler(exc_type, domain_error_response)

    @app.errorhandler(StorageError)
    def _storage_error(exc):
        logger.error("Storage failure: %s", exc, exc_info=exc.original)
        return api_error(E.DATABASE, "Database error")

    @app.errorhandler(404)
    def _not_found(_e):
        return api_error(E.NOT_FOUND, "Resource not found")

    @app.errorhandler(405)
    def _method_not_allowed(_e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(413)
    def _too_large(_e):
        return api_error(E.VALIDATION_INVALID, "Request body too large", status=413)

    @app.errorhandler(415)
    def _unsupported_media(_e):
        return api_error(E.VALIDATION_INVALID, "Content-Type must be application/json", status=415)

    @app.errorhandler(500)
    def _internal_error(_e):
        return api_error(E.INTERNAL, "Internal server error")
