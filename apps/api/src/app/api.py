from fastapi import APIRouter

from app.modules.announcements import router as announcements_router
from app.modules.auth import router as auth_router
from app.modules.students import enrollment_router
from app.modules.students import router as students_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(students_router, prefix="/students", tags=["Students"])

api_router.include_router(enrollment_router, prefix="/enrollment", tags=["Enrollment"])

api_router.include_router(
    announcements_router, prefix="/announcements", tags=["Announcements"]
)
