"""
JWT Auth Middleware — resolves the caller identity from the Authorization header.

    Authorization: Bearer <token>  →  g.current_user = CallerIdentity(sub, role)

Missing, expired or malformed tokens and tokens carrying an unknown role
leave ``g.current_user`` as None; the route decorators in
``permission_required`` turn that into a 401.
"""

import logging

import jwt as pyjwt
from flask import g, request

from specflow.services.jwt_service import decode_access_token
from specflow.services.permission import CallerIdentity, Role

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
)


def _identity_from_token(token: str) -> CallerIdentity | None:
    try:
        payload = decode_access_token(token)
    except pyjwt.ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except pyjwt.InvalidTokenError as exc:
        logger.info("Rejected invalid access token: %s", exc)
        return None

    user_id = payload.get("sub")
    try:
        role = Role(payload.get("role"))
    except ValueError:
        logger.warning("Token for user=%s carries unknown role %r", user_id, payload.get("role"))
        return None
    if not user_id:
        return None
    return CallerIdentity(user_id=str(user_id), role=role)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        g.current_user = _identity_from_token(auth_header[7:])
