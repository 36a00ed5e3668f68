"""
Authentication Service Layer

Student login by password or by emailed one-time password.

This module implements:
1. Password Login:
   - Rate limited per email (5 per 15 minutes)
   - bcrypt hashes, with constant-time comparison of legacy plaintext
     passwords and optional upgrade to bcrypt (AUTO_HASH_PASSWORDS)

2. OTP Login:
   - Request (3 per 15 minutes) and resend (2 per 15 minutes) issue a fresh
     10 minute code and email it via Resend
   - Verify (10 per 15 minutes) consumes the code; 5 wrong codes burn it

3. Token Issue:
   - 7 day HS256 session token on success

Security considerations:
- No plaintext fallback when a bcrypt hash cannot be checked
- OTP codes are only returned to the client in development mode
- A mailer failure does not revoke the issued code
- Directory lookups, hashing and mail calls are bounded by a timeout
"""

import asyncio
import logging
import re
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.email import is_email_configured, send_otp_email
from app.core.exceptions import (
    ExpiredError,
    InvalidCredentialsError,
    NotFoundError,
    RateLimitExceededError,
    UpstreamError,
    ValidationError,
)
from app.core.rate_limit import RateLimiter, get_rate_limiter
from app.core.security import (
    PasswordHashError,
    create_access_token,
    hash_password,
    is_password_hash,
    require_signing_secret,
    verify_password,
)
from app.core.timeouts import with_timeout
from app.modules.auth.otp import InMemoryOtpStore, OtpManager, VerifyStatus
from app.modules.students.models import StudentDetails
from app.modules.students.repository import StudentRepository
from app.modules.students.schemas import StudentUser

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
OTP_PATTERN = re.compile(r"[0-9]{6}")


@dataclass(frozen=True)
class AuthResult:
    """A verified identity with its session token."""

    token: str
    user: StudentUser


@dataclass(frozen=True)
class OtpDispatch:
    """An issued OTP. debug_otp is only set in development."""

    message: str
    debug_otp: str | None = None


def _validate_email(email: str | None, missing_message: str) -> str:
    email = (email or "").strip()
    if not email:
        raise ValidationError(missing_message)
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please enter a valid email address.")
    return email


class AuthService:
    """Login, request-OTP, verify-OTP and resend-OTP."""

    def __init__(self, otp_manager: OtpManager, rate_limiter: RateLimiter) -> None:
        self.otp_manager = otp_manager
        self.rate_limiter = rate_limiter

    async def _check_rate_limit(self, key: str, limit: int, message: str) -> None:
        allowed = await self.rate_limiter.allow(key, limit, settings.rate_limit_window_seconds)
        if not allowed:
            logger.warning(f"Rate limit exceeded for {key}")
            raise RateLimitExceededError(message)

    async def _find_student(
        self,
        db: AsyncSession,
        email: str,
        failure_message: str,
    ) -> StudentDetails | None:
        try:
            return await with_timeout(
                StudentRepository.get_by_email(db, email),
                "student lookup",
                failure_message,
            )
        except SQLAlchemyError as e:
            logger.error(f"Student lookup failed for {email}: {e}")
            raise UpstreamError(failure_message) from e

    async def _upgrade_password(self, db: AsyncSession, student: StudentDetails, password: str) -> None:
        """Replace a matched plaintext password with its bcrypt hash."""
        try:
            new_hash = await with_timeout(
                asyncio.to_thread(hash_password, password), "password hashing"
            )
            # Savepoint, so a failed update leaves the request transaction usable
            async with db.begin_nested():
                await StudentRepository.update_password(db, student.lrn, new_hash)
            logger.info(f"Auto-upgraded password to hash for: {student.email}")
        except (UpstreamError, SQLAlchemyError) as e:
            # The login itself already succeeded
            logger.error(f"Password upgrade failed for {student.email}: {e}")

    def _issue_token(self, student: StudentDetails) -> AuthResult:
        token = create_access_token(subject=student.lrn, email=student.email)
        return AuthResult(token=token, user=StudentUser.from_model(student))

    async def login(self, db: AsyncSession, email: str | None, password: str | None) -> AuthResult:
        """
        Authenticate with email and password.

        Raises:
            ValidationError (400): Missing or malformed input
            RateLimitExceededError (429): Too many attempts for this email
            NotFoundError (404): Unknown email
            InvalidCredentialsError (401): No password set, or wrong password
            ConfigurationError / UpstreamError (500)
        """
        if not (email or "").strip() or not password:
            raise ValidationError("Please enter both email and password.")
        email = _validate_email(email, "Please enter both email and password.")

        await self._check_rate_limit(
            f"login:{email}",
            settings.login_rate_limit,
            "Too many login attempts. Please try again later or use OTP login.",
        )

        student = await self._find_student(db, email, "Login failed. Please try again.")
        if student is None:
            logger.warning(f"Login failed - email not found: {email}")
            raise NotFoundError("Invalid email or password.")

        stored = student.account.password if student.account else None
        if not stored:
            logger.warning(f"No password set for user: {email}")
            raise InvalidCredentialsError("Password login not available. Please use OTP login.")

        try:
            valid = await with_timeout(
                asyncio.to_thread(verify_password, password, stored),
                "password verification",
                "Login failed. Please try again.",
            )
        except PasswordHashError as e:
            logger.error(f"Password verification error for {email}: {e}")
            raise InvalidCredentialsError() from e

        if not valid:
            logger.warning(f"Invalid password for: {email}")
            raise InvalidCredentialsError()

        if settings.auto_hash_passwords and not is_password_hash(stored):
            await self._upgrade_password(db, student, password)

        result = self._issue_token(student)
        logger.info(f"Password login successful for: {email}")
        return result

    async def _dispatch_otp(self, db: AsyncSession, email: str, is_resend: bool) -> OtpDispatch:
        failure_message = (
            "Failed to resend OTP. Please try again."
            if is_resend
            else "Failed to process OTP request. Please try again."
        )
        student = await self._find_student(db, email, failure_message)
        if student is None:
            logger.warning(f"OTP requested for unknown email: {email}")
            raise NotFoundError("Email not found in our system.")

        record = await self.otp_manager.issue(email)
        debug_otp = record.code if settings.is_development else None

        if not is_email_configured():
            if settings.is_development:
                logger.warning(f"Email service not configured - OTP for {email} is {record.code}")
            else:
                logger.error("RESEND_API_KEY is not configured - OTP email not sent")
            prefix = "New OTP" if is_resend else "OTP"
            return OtpDispatch(
                message=f"{prefix} generated (email service not configured)",
                debug_otp=debug_otp,
            )

        sent = await send_otp_email(
            to_email=email,
            first_name=student.firstname,
            otp=record.code,
            expiry_minutes=self.otp_manager.expiry_seconds // 60,
            is_resend=is_resend,
        )
        if not sent.success:
            # The issued code stays valid
            logger.error(f"OTP email failed for {email}: {sent.error}")
            message = (
                "Failed to resend OTP. Please try again."
                if is_resend
                else "Failed to send OTP email. Please try again."
            )
            if settings.is_development:
                message = f"{message} Debug: {record.code}"
            raise UpstreamError(message)

        logger.info(f"OTP sent to {email}, email id: {sent.message_id}")
        return OtpDispatch(
            message=(
                "New OTP sent to your email address."
                if is_resend
                else "OTP sent to your email address."
            )
        )

    async def request_otp(self, db: AsyncSession, email: str | None) -> OtpDispatch:
        """
        Issue an OTP for a known email and mail it.

        Raises:
            ValidationError (400), NotFoundError (404),
            RateLimitExceededError (429), UpstreamError (500)
        """
        email = _validate_email(email, "Please enter your email address.")
        await self._check_rate_limit(
            f"otp:{email}",
            settings.request_otp_rate_limit,
            "Too many OTP requests. Please try again later.",
        )
        return await self._dispatch_otp(db, email, is_resend=False)

    async def resend_otp(self, db: AsyncSession, email: str | None) -> OtpDispatch:
        """Issue a fresh OTP, invalidating the previous one. Tighter limit than request_otp."""
        email = _validate_email(email, "Email address is required.")
        await self._check_rate_limit(
            f"resend:{email}",
            settings.resend_otp_rate_limit,
            "Too many resend requests. Please try again later.",
        )
        return await self._dispatch_otp(db, email, is_resend=True)

    async def verify_otp(self, db: AsyncSession, email: str | None, otp: str | None) -> AuthResult:
        """
        Consume an OTP and issue a session token.

        Raises:
            ValidationError (400): Missing email/OTP or OTP not 6 digits
            NotFoundError (404): No OTP for this email, or user gone
            ExpiredError (410): OTP expired
            InvalidCredentialsError (401): Wrong OTP, with remaining attempts
            RateLimitExceededError (429): Attempts exhausted or rate limited
            ConfigurationError (500): JWT_SECRET missing
        """
        email = (email or "").strip()
        otp = (otp or "").strip()
        if not email or not otp:
            raise ValidationError("Please enter both email and OTP.")
        if not OTP_PATTERN.fullmatch(otp):
            raise ValidationError("OTP must be a 6-digit number.")

        await self._check_rate_limit(
            f"verify:{email}",
            settings.verify_otp_rate_limit,
            "Too many verification attempts. Please request a new OTP.",
        )

        # Everything that can fail runs before the code is consumed
        require_signing_secret()
        student = await self._find_student(db, email, "Verification failed. Please try again.")

        result = await self.otp_manager.verify(email, otp)

        if result.status == VerifyStatus.NOT_FOUND:
            raise NotFoundError("OTP not found or expired. Please request a new OTP.")
        if result.status == VerifyStatus.EXPIRED:
            raise ExpiredError("OTP has expired. Please request a new OTP.")
        if result.status == VerifyStatus.ATTEMPTS_EXHAUSTED:
            logger.warning(f"OTP attempts exhausted for: {email}")
            raise RateLimitExceededError("Too many failed attempts. Please request a new OTP.")
        if result.status == VerifyStatus.MISMATCH:
            logger.warning(f"Invalid OTP for {email}, {result.remaining_attempts} attempts left")
            raise InvalidCredentialsError(
                f"Invalid OTP. {result.remaining_attempts} attempts remaining."
            )

        if student is None:
            raise NotFoundError("User not found.")

        auth = self._issue_token(student)
        logger.info(f"OTP verification successful for: {email}")
        return auth


# Process-wide service, replaced at startup by init_auth_service()
_auth_service: AuthService | None = None


def init_auth_service(otp_manager: OtpManager, rate_limiter: RateLimiter) -> AuthService:
    """Create the process-wide auth service."""
    global _auth_service
    _auth_service = AuthService(otp_manager, rate_limiter)
    return _auth_service


def get_auth_service() -> AuthService:
    """
    FastAPI dependency returning the process-wide auth service.

    Falls back to in-memory stores when startup did not configure one.
    """
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService(OtpManager(InMemoryOtpStore()), get_rate_limiter())
    return _auth_service
