"""
Student Repository

Database operations on the student tables. This is the user directory the
authentication flow reads credentials from.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.students.models import StudentAccount, StudentDetails, StudentDocuments

logger = logging.getLogger(__name__)


class StudentRepository:
    """Repository for student database operations."""

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> StudentDetails | None:
        """
        Get a student (with account) by email address.

        Args:
            db: Database session
            email: Email address

        Returns:
            StudentDetails instance or None if not found
        """
        result = await db.execute(
            select(StudentDetails).where(StudentDetails.email == email).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_lrn(db: AsyncSession, lrn: str) -> StudentDetails | None:
        """Get a student by LRN."""
        result = await db.execute(select(StudentDetails).where(StudentDetails.lrn == lrn))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_track_code(db: AsyncSession, track_code: str) -> StudentDetails | None:
        """Get the student whose account carries the given enrollment track code."""
        result = await db.execute(
            select(StudentDetails)
            .join(StudentAccount, StudentAccount.lrn == StudentDetails.lrn)
            .where(StudentAccount.track_code == track_code)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def update_password(db: AsyncSession, lrn: str, password_hash: str) -> None:
        """
        Store a new password hash for the student's account.

        Args:
            db: Database session
            lrn: Student LRN
            password_hash: bcrypt hash of the new password
        """
        await db.execute(
            update(StudentAccount)
            .where(StudentAccount.lrn == lrn)
            .values(password=password_hash)
        )
        await db.flush()
        logger.info(f"Updated password hash for student {lrn}")

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        student: StudentDetails,
        changes: dict[str, str | None],
    ) -> StudentDetails:
        """Apply profile field changes and return the refreshed student."""
        for field, value in changes.items():
            setattr(student, field, value)

        await db.flush()
        await db.refresh(student)
        return student

    @staticmethod
    async def get_documents(db: AsyncSession, lrn: str) -> StudentDocuments | None:
        """Get the student's document record."""
        result = await db.execute(select(StudentDocuments).where(StudentDocuments.lrn == lrn))
        return result.scalar_one_or_none()
