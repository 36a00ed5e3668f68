"""
Security Utilities

Password hashing and verification (bcrypt) and session token issue and
validation (PyJWT, HS256).

SECURITY NOTE:
- Legacy accounts may still hold plaintext passwords. They are compared in
  constant time and can be upgraded to bcrypt on login (AUTO_HASH_PASSWORDS).
- A malformed bcrypt hash raises PasswordHashError. It is never compared as
  plaintext.
- A missing JWT_SECRET is a ConfigurationError for issue and validation alike.
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt

from app.core.config import settings
from app.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
STUDENT_TOKEN_TYPE = "student"


class PasswordHashError(Exception):
    """Raised when a stored bcrypt hash cannot be checked."""


class InvalidTokenError(Exception):
    """Raised when a session token is malformed, tampered with or expired."""


@dataclass(frozen=True)
class TokenIdentity:
    """Identity carried by a validated session token."""

    subject: str
    email: str
    role: str
    expires_at: datetime


def is_password_hash(stored: str) -> bool:
    """Return True if the stored password is a bcrypt hash."""
    return stored.startswith(BCRYPT_PREFIXES)


def _bcrypt_bytes(password: str) -> bytes:
    # bcrypt only uses the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_bcrypt_bytes(password), salt).decode("utf-8")


def verify_password(plain_password: str, stored: str) -> bool:
    """
    Check a supplied password against the stored value.

    Args:
        plain_password: Password supplied by the client
        stored: bcrypt hash, or a legacy plaintext password

    Returns:
        True if the password matches

    Raises:
        PasswordHashError: If the stored value looks like a bcrypt hash but
            bcrypt cannot parse it
    """
    if is_password_hash(stored):
        try:
            return bcrypt.checkpw(_bcrypt_bytes(plain_password), stored.encode("utf-8"))
        except ValueError as e:
            raise PasswordHashError(f"Stored password hash is malformed: {e}") from e

    return hmac.compare_digest(plain_password.encode("utf-8"), stored.encode("utf-8"))


def require_signing_secret() -> str:
    """Return JWT_SECRET, raising ConfigurationError if it is not set."""
    if not settings.jwt_secret:
        logger.error("JWT_SECRET is not configured")
        raise ConfigurationError("JWT_SECRET is not configured")
    return settings.jwt_secret


def create_access_token(
    subject: str,
    email: str,
    role: str = STUDENT_TOKEN_TYPE,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed session token.

    Args:
        subject: Student identifier (LRN)
        email: Student email address
        role: Token type tag
        expires_delta: Lifetime override, defaults to JWT_EXPIRY_DAYS

    Returns:
        Encoded JWT string

    Raises:
        ConfigurationError: If JWT_SECRET is not set
    """
    secret = require_signing_secret()
    now = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(days=settings.jwt_expiry_days)

    payload = {
        "sub": subject,
        "email": email,
        "type": role,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenIdentity:
    """
    Validate a session token and return its identity.

    Raises:
        ConfigurationError: If JWT_SECRET is not set
        InvalidTokenError: If the signature, claims or expiry are invalid
    """
    secret = require_signing_secret()

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidTokenError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(f"Invalid token: {e}") from e

    return TokenIdentity(
        subject=str(payload["sub"]),
        email=payload.get("email", ""),
        role=payload.get("type", ""),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
    )


__all__ = [
    "PasswordHashError",
    "InvalidTokenError",
    "TokenIdentity",
    "is_password_hash",
    "require_signing_secret",
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_token",
]
