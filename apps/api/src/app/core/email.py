"""
Email Service using Resend

Sends the one-time password emails for student login.
"""

import asyncio
import logging
from dataclasses import dataclass
from html import escape

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailResult:
    """Outcome of a send attempt."""

    success: bool
    message_id: str | None = None
    error: str | None = None


def is_email_configured() -> bool:
    """Check whether a Resend API key is configured."""
    return bool(settings.resend_api_key)


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> EmailResult:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        EmailResult with the Resend message id on success
    """
    if not is_email_configured():
        logger.warning("RESEND_API_KEY not set - email not sent")
        return EmailResult(success=False, error="Email service not configured")

    resend.api_key = settings.resend_api_key

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.wait_for(
            asyncio.to_thread(resend.Emails.send, params),
            timeout=settings.external_call_timeout_seconds,
        )
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return EmailResult(success=True, message_id=email["id"])
    except TimeoutError:
        logger.error(f"Timed out sending email to {to_email}")
        return EmailResult(success=False, error="Email service timed out")
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return EmailResult(success=False, error=str(e))


async def send_otp_email(
    to_email: str,
    first_name: str,
    otp: str,
    expiry_minutes: int,
    is_resend: bool = False,
) -> EmailResult:
    """Send a login OTP to a student."""
    safe_first_name = escape(first_name or "Student")
    safe_school_name = escape(settings.school_name)

    intro = (
        "You requested a new verification code. Your new One-Time Password (OTP) for login is:"
        if is_resend
        else "Your One-Time Password (OTP) for login is:"
    )
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }}
            .header {{ color: #353d90; text-align: center; border-bottom: 3px solid #f6a800; padding-bottom: 10px; }}
            .otp-code {{ background: #f6a800; color: white; padding: 20px; text-align: center; font-size: 32px; font-weight: bold; letter-spacing: 8px; margin: 30px 0; border-radius: 10px; }}
            .footer {{ margin-top: 30px; padding-top: 20px; border-top: 1px solid #ddd; color: #666; font-size: 12px; text-align: center; }}
        </style>
    </head>
    <body>
        <div class="header">
            <h1>{safe_school_name}</h1>
        </div>

        <p>Hello <strong>{safe_first_name}</strong>,</p>

        <p>{intro}</p>

        <div class="otp-code">{otp}</div>

        <p><strong>This OTP will expire in {expiry_minutes} minutes.</strong> Do not share this code with anyone.</p>

        <div class="footer">
            <p>If you didn't request this login, please ignore this email.</p>
            <p>{safe_school_name}</p>
        </div>
    </body>
    </html>
    """
    subject_prefix = "Your New Login OTP" if is_resend else "Your Login OTP"
    return await send_email(
        to_email=to_email,
        subject=f"{subject_prefix} - {settings.school_name}",
        html_content=html_content,
    )
