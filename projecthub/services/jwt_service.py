"""
Access tokens.

ProjectHub does not log users in itself: the identity provider mints HS256
bearer tokens with a shared secret, and this module verifies them and turns
the claims into a request ``Principal``.  ``issue_access_token`` exists for
tooling and tests that need a token without the identity provider.

Claims:
    sub   user id (string)
    role  SUPER_ADMIN | ADMIN | COLLABORATOR | CLIENT
    type  always "access"
    iat / exp / jti
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from projecthub.auth import Principal
from projecthub.models.auth import GLOBAL_ROLES

ALGORITHM = "HS256"
TOKEN_TYPE = "access"


def _signing_key() -> str:
    cfg = current_app.config
    return cfg.get("JWT_SECRET_KEY") or cfg["SECRET_KEY"]


def issue_access_token(user_id: int, role: str) -> str:
    lifetime = timedelta(seconds=current_app.config.get("JWT_ACCESS_EXPIRES", 900))
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "type": TOKEN_TYPE,
        "iat": issued,
        "exp": issued + lifetime,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, _signing_key(), algorithm=ALGORITHM)


def principal_from_token(token: str) -> Principal:
    """Verify ``token`` and build the caller's principal.

    Raises ``jwt.ExpiredSignatureError`` for stale tokens and
    ``jwt.InvalidTokenError`` for anything else that cannot be trusted:
    bad signature, wrong token type, non-numeric subject or unknown role.
    """
    claims = jwt.decode(token, _signing_key(), algorithms=[ALGORITHM],
                        options={"require": ["sub", "exp"]})

    if claims.get("type") != TOKEN_TYPE:
        raise jwt.InvalidTokenError(f"unexpected token type {claims.get('type')!r}")
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise jwt.InvalidTokenError("subject is not a user id")
    if claims.get("role") not in GLOBAL_ROLES:
        raise jwt.InvalidTokenError(f"unknown role {claims.get('role')!r}")

    return Principal(id=user_id, role=claims["role"])
