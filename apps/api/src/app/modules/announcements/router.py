"""
Announcements Router

Serves the current school announcements. The list is maintained in code
until announcements move to the database.
"""

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter()


class Announcement(BaseModel):
    id: int
    title: str
    date: str
    content: str


class AnnouncementListResponse(BaseModel):
    success: bool = True
    announcements: list[Announcement]


ANNOUNCEMENTS = [
    Announcement(
        id=1,
        title="Welcome Back!",
        date="Oct 27, 2025",
        content="The semester has officially started. Good luck, students!",
    ),
    Announcement(
        id=2,
        title="Exam Week",
        date="Nov 15, 2025",
        content="Prepare early for the midterms next month.",
    ),
]


@router.get("", response_model=AnnouncementListResponse)
async def list_announcements() -> AnnouncementListResponse:
    """List school announcements, newest last."""
    return AnnouncementListResponse(announcements=ANNOUNCEMENTS)
