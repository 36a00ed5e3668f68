"""
Authentication Dependencies

FastAPI dependencies that validate the student session token on protected
endpoints, using the token utilities in security.py.

SECURITY NOTE:
- There is no development bypass; every request needs a signed token.
- A missing JWT_SECRET fails closed with a 500, it never accepts tokens.
"""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.exceptions import InvalidCredentialsError
from app.core.security import STUDENT_TOKEN_TYPE, InvalidTokenError, TokenIdentity, decode_token

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token issued by /auth/login or /auth/verify-otp",
)


async def get_current_student(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> TokenIdentity:
    """
    FastAPI dependency that validates the Bearer token and returns its identity.

    Usage:
        @router.get("/students/me/profile")
        async def profile(student: TokenIdentity = Depends(get_current_student)):
            # student.subject is the LRN

    Raises:
        InvalidCredentialsError (401): If no token is supplied
        HTTPException 403: If the token is invalid, expired or not a student token
        ConfigurationError (500): If JWT_SECRET is not configured
    """
    if credentials is None or not credentials.credentials:
        raise InvalidCredentialsError("Access token required.")

    try:
        identity = decode_token(credentials.credentials)
    except InvalidTokenError as e:
        logger.warning(f"Rejected session token: {e}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired token.",
        ) from e

    if identity.role != STUDENT_TOKEN_TYPE:
        logger.warning(f"Rejected token with type '{identity.role}' for {identity.subject}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired token.",
        )

    return identity


__all__ = ["get_current_student"]
