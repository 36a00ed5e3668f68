"""
One-Time Password Store

Issues and verifies 6-digit login codes keyed by email.

Lifecycle per email:
    NoOtp -> Issued -> Verified | Expired | AttemptsExhausted
A new request or resend replaces an Issued code at any time, so only the
newest code is ever valid.

Security considerations:
- Codes come from the secrets CSPRNG
- Codes are compared in constant time
- A code is deleted on first successful use
- 5 wrong guesses delete the code
- Issue and verify for one email are serialized, so the attempt counter
  and single-use deletion cannot race
"""

import enum
import hmac
import json
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Protocol

from redis.asyncio import Redis

from app.core.locks import KeyedLock

logger = logging.getLogger(__name__)

OTP_LENGTH = 6
OTP_EXPIRY_SECONDS = 10 * 60
MAX_ATTEMPTS = 5


def generate_otp() -> str:
    """Return a uniformly random 6-digit code in 100000-999999."""
    return str(100000 + secrets.randbelow(900000))


@dataclass
class OtpRecord:
    """A live one-time password. Times are epoch seconds."""

    code: str
    expires_at: float
    attempts: int
    created_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class VerifyStatus(str, enum.Enum):
    """Outcome of an OTP verification."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    MISMATCH = "mismatch"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    SUCCESS = "success"


@dataclass(frozen=True)
class VerifyResult:
    status: VerifyStatus
    remaining_attempts: int | None = None


class OtpStore(Protocol):
    """Storage for OTP records keyed by email."""

    async def get(self, email: str) -> OtpRecord | None: ...

    async def set(self, email: str, record: OtpRecord) -> None: ...

    async def delete(self, email: str) -> None: ...

    async def sweep(self, now: float) -> int: ...

    async def size(self) -> int: ...


class InMemoryOtpStore:
    """Process-local OTP store."""

    def __init__(self) -> None:
        self._records: dict[str, OtpRecord] = {}

    async def get(self, email: str) -> OtpRecord | None:
        return self._records.get(email)

    async def set(self, email: str, record: OtpRecord) -> None:
        self._records[email] = record

    async def delete(self, email: str) -> None:
        self._records.pop(email, None)

    async def sweep(self, now: float) -> int:
        """Delete every record that has expired by `now`."""
        expired = [email for email, record in self._records.items() if record.is_expired(now)]
        for email in expired:
            del self._records[email]
        return len(expired)

    async def size(self) -> int:
        return len(self._records)


class RedisOtpStore:
    """
    Redis backed OTP store.

    Records are JSON values whose TTL runs slightly past the expiry, so
    Redis reclaims them without a sweep while verify still sees "expired".
    """

    TTL_GRACE_SECONDS = 60

    def __init__(
        self,
        client: Redis,
        prefix: str = "otp:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._clock = clock

    async def get(self, email: str) -> OtpRecord | None:
        raw = await self._client.get(self._prefix + email)
        if raw is None:
            return None
        return OtpRecord(**json.loads(raw))

    async def set(self, email: str, record: OtpRecord) -> None:
        ttl = max(int(record.expires_at - self._clock()), 0) + self.TTL_GRACE_SECONDS
        await self._client.set(self._prefix + email, json.dumps(asdict(record)), ex=ttl)

    async def delete(self, email: str) -> None:
        await self._client.delete(self._prefix + email)

    async def sweep(self, now: float) -> int:
        return 0

    async def size(self) -> int:
        count = 0
        async for _ in self._client.scan_iter(match=f"{self._prefix}*"):
            count += 1
        return count


class OtpManager:
    """Issues, verifies and sweeps OTPs on top of an OtpStore."""

    def __init__(
        self,
        store: OtpStore,
        clock: Callable[[], float] = time.time,
        expiry_seconds: int = OTP_EXPIRY_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        self.store = store
        self._clock = clock
        self.expiry_seconds = expiry_seconds
        self.max_attempts = max_attempts
        self._locks = KeyedLock()

    async def issue(self, email: str) -> OtpRecord:
        """Create a fresh code for the email, replacing any previous one."""
        async with self._locks.hold(email):
            now = self._clock()
            record = OtpRecord(
                code=generate_otp(),
                expires_at=now + self.expiry_seconds,
                attempts=0,
                created_at=now,
            )
            await self.store.set(email, record)
            return record

    async def verify(self, email: str, code: str) -> VerifyResult:
        """
        Check a supplied code.

        Returns:
            SUCCESS and deletes the record on a match.
            NOT_FOUND when no record exists.
            EXPIRED and deletes the record when past expiry.
            MISMATCH with the remaining attempts on a wrong code, or
            ATTEMPTS_EXHAUSTED (record deleted) when that was the last one.
        """
        async with self._locks.hold(email):
            record = await self.store.get(email)
            if record is None:
                return VerifyResult(VerifyStatus.NOT_FOUND)

            if record.is_expired(self._clock()):
                await self.store.delete(email)
                return VerifyResult(VerifyStatus.EXPIRED)

            if not hmac.compare_digest(record.code.encode(), code.encode()):
                record.attempts += 1
                if record.attempts >= self.max_attempts:
                    await self.store.delete(email)
                    return VerifyResult(VerifyStatus.ATTEMPTS_EXHAUSTED)

                await self.store.set(email, record)
                return VerifyResult(
                    VerifyStatus.MISMATCH,
                    remaining_attempts=self.max_attempts - record.attempts,
                )

            await self.store.delete(email)
            return VerifyResult(VerifyStatus.SUCCESS)

    async def sweep(self) -> int:
        """Delete expired records that were never verified."""
        removed = await self.store.sweep(self._clock())
        if removed:
            logger.info(f"Cleaned {removed} expired OTPs")
        return removed

    async def size(self) -> int:
        return await self.store.size()
