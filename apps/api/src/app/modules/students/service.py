"""
Students Service Layer

Profile, status, document and password operations for an authenticated
student, plus the public enrollment status lookup.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidCredentialsError, NotFoundError, ValidationError
from app.core.security import PasswordHashError, hash_password, verify_password
from app.core.timeouts import with_timeout
from app.modules.students.models import StudentDetails
from app.modules.students.repository import StudentRepository
from app.modules.students.schemas import StudentProfileUpdate

logger = logging.getLogger(__name__)


async def _get_student(db: AsyncSession, lrn: str) -> StudentDetails:
    student = await with_timeout(StudentRepository.get_by_lrn(db, lrn), "student lookup")
    if student is None:
        raise NotFoundError("Student not found")
    return student


async def get_profile(db: AsyncSession, lrn: str) -> StudentDetails:
    """Return the student's profile."""
    return await _get_student(db, lrn)


async def update_profile(
    db: AsyncSession,
    lrn: str,
    data: StudentProfileUpdate,
) -> StudentDetails:
    """
    Update the editable profile fields.

    Raises:
        ValidationError: If no field was supplied
        NotFoundError: If the student does not exist
    """
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No profile fields to update.")

    student = await _get_student(db, lrn)
    student = await StudentRepository.update_profile(db, student, changes)
    logger.info(f"Updated profile fields {sorted(changes)} for student {lrn}")
    return student


async def get_status(db: AsyncSession, lrn: str) -> str | None:
    """Return the student's status."""
    student = await _get_student(db, lrn)
    return student.student_status


async def change_password(
    db: AsyncSession,
    lrn: str,
    current_password: str,
    new_password: str,
) -> None:
    """
    Replace the student's password after checking the current one.

    The new password is always stored as a bcrypt hash.

    Raises:
        ValidationError: If the new password equals the current one
        InvalidCredentialsError: If the current password is wrong or unset
        NotFoundError: If the student does not exist
    """
    if current_password == new_password:
        raise ValidationError("New password must be different from the current password.")

    student = await _get_student(db, lrn)
    stored = student.account.password if student.account else None
    if not stored:
        raise InvalidCredentialsError("Current password incorrect")

    try:
        valid = await with_timeout(
            asyncio.to_thread(verify_password, current_password, stored),
            "password verification",
        )
    except PasswordHashError as e:
        logger.error(f"Unreadable password hash for student {lrn}: {e}")
        raise InvalidCredentialsError("Current password incorrect") from e

    if not valid:
        logger.warning(f"Incorrect current password on password change for student {lrn}")
        raise InvalidCredentialsError("Current password incorrect")

    new_hash = await with_timeout(asyncio.to_thread(hash_password, new_password), "password hashing")
    await StudentRepository.update_password(db, lrn, new_hash)
    logger.info(f"Password changed for student {lrn}")


async def get_documents(db: AsyncSession, lrn: str) -> dict[str, str | None]:
    """Return the student's document URLs keyed by document type."""
    documents = await with_timeout(StudentRepository.get_documents(db, lrn), "document lookup")
    if documents is None:
        raise NotFoundError("No documents found for this student")
    return documents.as_dict()


async def get_enrollment_status(db: AsyncSession, track_code: str) -> str | None:
    """Return the enrollment status for a track code."""
    student = await with_timeout(
        StudentRepository.get_by_track_code(db, track_code), "track code lookup"
    )
    if student is None:
        raise NotFoundError("Track Code Not Found")
    return student.enrollment_status
