"""
Authentication Background Jobs

Periodic cleanup of the in-memory auth stores, independent of traffic:
1. Delete OTPs that expired without being verified
2. Drop rate-limit identifiers with no request in the last 24 hours

Both run every OTP_SWEEP_INTERVAL_MINUTES (default 5).
"""

import logging

from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.rate_limit import get_rate_limiter
from app.core.scheduler import register_job
from app.modules.auth.service import get_auth_service

logger = logging.getLogger(__name__)

JOB_ID_SWEEP_OTPS = "auth_sweep_expired_otps"
JOB_ID_SWEEP_RATE_LIMITS = "auth_sweep_rate_limits"


async def sweep_expired_otps() -> int:
    """Delete expired OTP records. Returns the number removed."""
    return await get_auth_service().otp_manager.sweep()


async def sweep_rate_limits() -> int:
    """Purge stale rate-limit identifiers. Returns the number removed."""
    return await get_rate_limiter().sweep()


def register_auth_jobs() -> None:
    """Register the auth sweeps with the scheduler."""
    minutes = settings.otp_sweep_interval_minutes
    register_job(JOB_ID_SWEEP_OTPS, sweep_expired_otps, IntervalTrigger(minutes=minutes))
    register_job(JOB_ID_SWEEP_RATE_LIMITS, sweep_rate_limits, IntervalTrigger(minutes=minutes))
    logger.info("Registered auth sweep jobs")
