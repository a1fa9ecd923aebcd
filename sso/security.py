"""
Password hashing and token helpers.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Final, Optional

import bcrypt
import jwt

ALGORITHM: Final[str] = "HS256"
ACCESS_TOKEN_TYPE: Final[str] = "access"
REFRESH_TOKEN_TYPE: Final[str] = "refresh"
# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES: Final[int] = 72


class InvalidTokenError(Exception):
    """Raised when a JWT is malformed, expired, or of the wrong type."""


def hash_password(password: str, rounds: int = 12) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """
    Check a password against a stored bcrypt hash.

    Hashes written by the Node applications ($2a$) verify the same way as
    ours ($2b$). Accounts without a password (Google sign-in) never match.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def random_token() -> str:
    return secrets.token_hex(20)


def encode_token(
    subject: str, token_type: str, expires_in: timedelta, secret: str
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "typ": token_type,
        "jti": secrets.token_urlsafe(8),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_token(token: str, token_type: str, secret: str) -> str:
    """Return the subject of a valid token of the expected type."""
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(str(exc)) from exc
    if payload.get("typ") != token_type or not payload.get("sub"):
        raise InvalidTokenError(f"Expected a {token_type} token")
    return payload["sub"]
