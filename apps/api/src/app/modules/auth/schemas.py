"""
Authentication schemas.

Request fields are optional at the schema level so that missing input is
reported by the service with a 400 and a readable message.
"""

from pydantic import BaseModel

from app.modules.students.schemas import StudentUser


class LoginRequest(BaseModel):
    """Password login request."""

    email: str | None = None
    password: str | None = None


class OtpRequest(BaseModel):
    """OTP request / resend request."""

    email: str | None = None


class VerifyOtpRequest(BaseModel):
    """OTP verification request."""

    email: str | None = None
    otp: str | None = None


class LoginResponse(BaseModel):
    """Successful login (password or OTP)."""

    success: bool = True
    message: str = "Login successful!"
    token: str
    user: StudentUser


class OtpResponse(BaseModel):
    """OTP dispatched. debug_otp is only set in development."""

    success: bool = True
    message: str
    debug_otp: str | None = None
