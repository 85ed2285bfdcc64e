"""
JWT Service — signing and verifying caller access tokens.

SpecFlow trusts an upstream identity provider to log users in; it only
verifies the bearer token on each request. ``generate_access_token`` is
for the ``flask issue-token`` CLI and for tests.

Claims:
    sub   user id
    role  PM | TA | Dev | QA | Stakeholder
    type  "access"
    iat / exp / jti

Config:
    JWT_SECRET_KEY      signing key (falls back to SECRET_KEY)
    JWT_ACCESS_EXPIRES  lifetime in seconds, default 3600
    JWT_LEEWAY          clock skew tolerated on exp/iat, default 0
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

ALGORITHM = "HS256"
TOKEN_TYPE = "access"
DEFAULT_ACCESS_EXPIRES = 3600

_REQUIRED_CLAIMS = ["sub", "exp", "iat"]


def _secret() -> str:
    cfg = current_app.config
    return cfg.get("JWT_SECRET_KEY") or cfg["SECRET_KEY"]


def generate_access_token(user_id: str, role, expires_in: int | None = None) -> str:
    """Sign an access token for ``user_id`` acting as ``role``."""
    if expires_in is None:
        expires_in = current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": getattr(role, "value", role),
        "type": TOKEN_TYPE,
        "iat": issued,
        "exp": issued + timedelta(seconds=expires_in),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, _secret(), algorithm=ALGORITHM)


def decode_token(token: str, expected_type: str = TOKEN_TYPE) -> dict:
    """
    Verify signature, expiry and token type; return the claims.

    Raises:
        jwt.ExpiredSignatureError: token is past ``exp``.
        jwt.InvalidTokenError: anything else (bad signature, missing
            claims, wrong ``type``).
    """
    claims = jwt.decode(
        token,
        _secret(),
        algorithms=[ALGORITHM],
        leeway=current_app.config.get("JWT_LEEWAY", 0),
        options={"require": _REQUIRED_CLAIMS},
    )
    if claims.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"expected a {expected_type} token, got {claims.get('type')!r}")
    return claims


def decode_access_token(token: str) -> dict:
    return decode_token(token, expected_type=TOKEN_TYPE)
