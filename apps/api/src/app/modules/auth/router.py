"""
Authentication Router

Endpoints:
- POST /auth/login - Password login
- POST /auth/request-otp - Email a one-time password
- POST /auth/verify-otp - Exchange a one-time password for a session token
- POST /auth/resend-otp - Email a fresh one-time password

Errors are raised as ServiceError subclasses and rendered by the handlers
in app.main as {"success": false, "message": ...}.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.modules.auth.schemas import (
    LoginRequest,
    LoginResponse,
    OtpRequest,
    OtpResponse,
    VerifyOtpRequest,
)
from app.modules.auth.service import AuthService, get_auth_service

router = APIRouter()


@router.post("/login", response_model=LoginResponse, response_model_exclude_none=True)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """
    Authenticate a student with email and password.

    Raises:
        400: Missing or malformed input
        401: No password set, or wrong password
        404: Unknown email
        429: Too many attempts
    """
    result = await auth.login(db, credentials.email, credentials.password)
    return LoginResponse(token=result.token, user=result.user)


@router.post("/request-otp", response_model=OtpResponse, response_model_exclude_none=True)
async def request_otp(
    data: OtpRequest,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> OtpResponse:
    """
    Email a 6-digit login code valid for 10 minutes.

    Raises:
        400: Missing or malformed email
        404: Unknown email
        429: Too many requests
        500: Email could not be sent
    """
    dispatch = await auth.request_otp(db, data.email)
    return OtpResponse(message=dispatch.message, debug_otp=dispatch.debug_otp)


@router.post("/verify-otp", response_model=LoginResponse, response_model_exclude_none=True)
async def verify_otp(
    data: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """
    Verify a login code and return a session token.

    Raises:
        400: Missing email/OTP or OTP not 6 digits
        401: Wrong code (message carries the remaining attempts)
        404: No code issued for this email
        410: Code expired
        429: Attempts exhausted or too many requests
    """
    result = await auth.verify_otp(db, data.email, data.otp)
    return LoginResponse(token=result.token, user=result.user)


@router.post("/resend-otp", response_model=OtpResponse, response_model_exclude_none=True)
async def resend_otp(
    data: OtpRequest,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> OtpResponse:
    """Email a fresh login code, invalidating the previous one."""
    dispatch = await auth.resend_otp(db, data.email)
    return OtpResponse(message=dispatch.message, debug_otp=dispatch.debug_otp)
