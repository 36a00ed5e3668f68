"""
Students Router

Endpoints for the authenticated student (LRN taken from the session token)
and the public enrollment status lookup.

Endpoints:
- GET  /students/me/profile - Student profile
- PUT  /students/me/profile - Update editable profile fields
- GET  /students/me/status - Student status
- POST /students/me/change-password - Change password
- GET  /students/me/documents - Uploaded document URLs
- GET  /enrollment/{track_code} - Enrollment status by track code (public)
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_student
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.core.security import TokenIdentity
from app.modules.students import service
from app.modules.students.schemas import (
    ChangePasswordRequest,
    EnrollmentStatusResponse,
    MessageResponse,
    StudentDocumentsResponse,
    StudentProfile,
    StudentProfileResponse,
    StudentProfileUpdate,
    StudentStatusResponse,
)

router = APIRouter()
enrollment_router = APIRouter()


@router.get("/me/profile", response_model=StudentProfileResponse)
async def get_profile(
    student: TokenIdentity = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
) -> StudentProfileResponse:
    """Return the authenticated student's profile."""
    details = await service.get_profile(db, student.subject)
    return StudentProfileResponse(student=StudentProfile.model_validate(details))


@router.put("/me/profile", response_model=StudentProfileResponse)
async def update_profile(
    data: StudentProfileUpdate,
    student: TokenIdentity = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
) -> StudentProfileResponse:
    """Update the authenticated student's name fields."""
    details = await service.update_profile(db, student.subject, data)
    return StudentProfileResponse(student=StudentProfile.model_validate(details))


@router.get("/me/status", response_model=StudentStatusResponse)
async def get_status(
    student: TokenIdentity = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
) -> StudentStatusResponse:
    """Return the authenticated student's status."""
    student_status = await service.get_status(db, student.subject)
    return StudentStatusResponse(student_status=student_status)


@router.post("/me/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    student: TokenIdentity = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Change the authenticated student's password.

    Raises:
        400: New password too short or unchanged
        401: Current password incorrect
    """
    await service.change_password(db, student.subject, data.current_password, data.new_password)
    return MessageResponse(message="Password changed successfully")


@router.get("/me/documents", response_model=StudentDocumentsResponse)
async def get_documents(
    student: TokenIdentity = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
) -> StudentDocumentsResponse:
    """Return the authenticated student's uploaded document URLs."""
    documents = await service.get_documents(db, student.subject)
    return StudentDocumentsResponse(documents=documents)


@enrollment_router.get("/{track_code}", response_model=EnrollmentStatusResponse)
@rate_limit(limit=20, window_seconds=60)
async def get_enrollment_status(
    request: Request,
    track_code: str,
    db: AsyncSession = Depends(get_db),
) -> EnrollmentStatusResponse:
    """Look up an enrollment status by track code. Rate limited per client IP."""
    enrollment_status = await service.get_enrollment_status(db, track_code)
    return EnrollmentStatusResponse(enrollment_status=enrollment_status)
