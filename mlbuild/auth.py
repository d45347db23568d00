"""JWT encode/decode utilities and authorization capability checks.

Tokens are issued by the upstream identity service; ``create_token`` is
kept here so tools and tests can mint tokens with the same claims.
"""

from datetime import datetime, timedelta, timezone

import jwt

from mlbuild.config import settings

ALGORITHM = "HS256"
TOKEN_EXPIRY_DAYS = 7
_JWT_AUD = "mlbuild"
_JWT_ISS = "mlbuild"

ROLE_ADMIN = "admin"
ROLE_USER = "user"


def create_token(user_id: str, role: str = ROLE_USER) -> str:
    """Create a JWT token for the given user."""
    payload = {
        "sub": str(user_id),
        "role": role,
        "aud": _JWT_AUD,
        "iss": _JWT_ISS,
        "exp": datetime.now(timezone.utc) + timedelta(days=TOKEN_EXPIRY_DAYS),
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[ALGORITHM],
        audience=_JWT_AUD,
        issuer=_JWT_ISS,
        options={"require": ["exp", "iat", "sub", "aud", "iss"]},
    )


def is_owner(caller_id: object, resource_owner_id: object) -> bool:
    """True when *caller_id* owns the resource.

    Ids are compared as strings so int ids from the database match the
    ``sub`` claim of a token.
    """
    if caller_id is None or resource_owner_id is None:
        return False
    return str(caller_id) == str(resource_owner_id)


def is_admin(user: dict | None) -> bool:
    """True when the user row carries the admin role."""
    return bool(user) and user.get("role") == ROLE_ADMIN
