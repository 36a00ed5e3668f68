"""
Shared test fixtures.

Environment variables are set before any app module is imported so the
settings object picks them up.
"""

import os

os.environ.setdefault("PYTHON_ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402

from app.core.rate_limit import InMemoryRateLimitStore, RateLimiter  # noqa: E402
from app.core.security import hash_password  # noqa: E402
from app.modules.auth.otp import InMemoryOtpStore, OtpManager  # noqa: E402
from app.modules.auth.service import AuthService  # noqa: E402
from app.modules.students.models import StudentAccount, StudentDetails  # noqa: E402


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def otp_manager(clock):
    """OTP manager on an in-memory store with a fake clock."""
    return OtpManager(InMemoryOtpStore(), clock=clock)


@pytest.fixture
def rate_limiter(clock):
    """Rate limiter on an in-memory store with a fake clock."""
    return RateLimiter(InMemoryRateLimitStore(), clock=clock)


@pytest.fixture
def auth_service(otp_manager, rate_limiter):
    return AuthService(otp_manager, rate_limiter)


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()

    # AsyncSession.begin_nested() is sync and returns an async context manager
    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock(return_value=savepoint)
    savepoint.__aexit__ = AsyncMock(return_value=False)
    db.begin_nested = MagicMock(return_value=savepoint)
    return db


def make_student(password: str | None = None, **overrides):
    """Build a mock student with an account holding the given stored password."""
    student = MagicMock(spec=StudentDetails)
    student.lrn = overrides.get("lrn", "123456789012")
    student.email = overrides.get("email", "a@x.com")
    student.firstname = overrides.get("firstname", "Juan")
    student.lastname = overrides.get("lastname", "Dela Cruz")
    student.middlename = overrides.get("middlename")
    student.suffix = overrides.get("suffix")
    student.strand = overrides.get("strand", "STEM")
    student.yearlevel = overrides.get("yearlevel", "Grade 12")
    student.student_status = overrides.get("student_status", "Regular")
    student.enrollment_status = overrides.get("enrollment_status", "Enrolled")

    account = MagicMock(spec=StudentAccount)
    account.lrn = student.lrn
    account.password = password
    account.track_code = overrides.get("track_code", "TRK-001")
    student.account = account
    return student


@pytest.fixture
def student_factory():
    """Factory fixture building mock students."""
    return make_student


@pytest.fixture
def student_hashed():
    """Student whose password is stored as a bcrypt hash of 'correct-horse'."""
    return make_student(password=hash_password("correct-horse"))


@pytest.fixture
def student_plaintext():
    """Legacy student whose password is stored as plaintext 'legacy-pass'."""
    return make_student(password="legacy-pass")


@pytest.fixture
def student_without_password():
    return make_student(password=None)
