"""
Students module - Student directory, profile and enrollment lookups.
"""

from app.modules.students.models import StudentAccount, StudentDetails, StudentDocuments
from app.modules.students.repository import StudentRepository
from app.modules.students.router import enrollment_router, router

__all__ = [
    "StudentAccount",
    "StudentDetails",
    "StudentDocuments",
    "StudentRepository",
    "router",
    "enrollment_router",
]
