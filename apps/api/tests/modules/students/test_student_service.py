"""
Tests for the students service and repository.

These tests verify:
- Profile read and update
- Status, documents and enrollment lookups
- Password change (always stored as a bcrypt hash)
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.exceptions import InvalidCredentialsError, NotFoundError, ValidationError
from app.core.security import is_password_hash, verify_password
from app.modules.students import service
from app.modules.students.models import StudentDocuments
from app.modules.students.repository import StudentRepository
from app.modules.students.schemas import StudentProfileUpdate

LRN = "123456789012"


@pytest.fixture
def repo():
    """Patch the student repository used by the students service."""
    with patch("app.modules.students.service.StudentRepository") as mock_repo:
        mock_repo.get_by_lrn = AsyncMock(return_value=None)
        mock_repo.get_by_track_code = AsyncMock(return_value=None)
        mock_repo.get_documents = AsyncMock(return_value=None)
        mock_repo.update_password = AsyncMock()
        mock_repo.update_profile = AsyncMock(side_effect=lambda db, student, changes: student)
        yield mock_repo


class TestProfile:
    """Tests for get_profile and update_profile."""

    @pytest.mark.asyncio
    async def test_get_profile(self, mock_db, repo, student_hashed):
        repo.get_by_lrn.return_value = student_hashed

        result = await service.get_profile(mock_db, LRN)

        assert result is student_hashed
        repo.get_by_lrn.assert_called_once_with(mock_db, LRN)

    @pytest.mark.asyncio
    async def test_get_profile_not_found(self, mock_db, repo):
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_profile(mock_db, LRN)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_update_only_supplied_fields(self, mock_db, repo, student_hashed):
        repo.get_by_lrn.return_value = student_hashed

        await service.update_profile(mock_db, LRN, StudentProfileUpdate(middlename="Santos"))

        _db, student, changes = repo.update_profile.call_args.args
        assert student is student_hashed
        assert changes == {"middlename": "Santos"}

    @pytest.mark.asyncio
    async def test_update_without_fields(self, mock_db, repo):
        with pytest.raises(ValidationError) as exc_info:
            await service.update_profile(mock_db, LRN, StudentProfileUpdate())

        assert exc_info.value.message == "No profile fields to update."
        repo.get_by_lrn.assert_not_called()


class TestLookups:
    """Tests for status, documents and enrollment lookups."""

    @pytest.mark.asyncio
    async def test_get_status(self, mock_db, repo, student_factory):
        repo.get_by_lrn.return_value = student_factory(student_status="Irregular")

        assert await service.get_status(mock_db, LRN) == "Irregular"

    @pytest.mark.asyncio
    async def test_get_documents(self, mock_db, repo):
        documents = StudentDocuments(lrn=LRN, birth_cert="https://files.example/birth.pdf")
        repo.get_documents.return_value = documents

        result = await service.get_documents(mock_db, LRN)

        assert result["LRN"] == LRN
        assert result["birth_cert"] == "https://files.example/birth.pdf"
        assert result["form137"] is None

    @pytest.mark.asyncio
    async def test_get_documents_missing(self, mock_db, repo):
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_documents(mock_db, LRN)

        assert exc_info.value.message == "No documents found for this student"

    @pytest.mark.asyncio
    async def test_enrollment_status(self, mock_db, repo, student_factory):
        repo.get_by_track_code.return_value = student_factory(enrollment_status="Pending")

        assert await service.get_enrollment_status(mock_db, "TRK-001") == "Pending"

    @pytest.mark.asyncio
    async def test_unknown_track_code(self, mock_db, repo):
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_enrollment_status(mock_db, "TRK-404")

        assert exc_info.value.message == "Track Code Not Found"


class TestChangePassword:
    """Tests for change_password."""

    @pytest.mark.asyncio
    async def test_change_from_hashed_password(self, mock_db, repo, student_hashed):
        repo.get_by_lrn.return_value = student_hashed

        await service.change_password(mock_db, LRN, "correct-horse", "battery-staple")

        _db, lrn, new_hash = repo.update_password.call_args.args
        assert lrn == LRN
        assert is_password_hash(new_hash)
        assert verify_password("battery-staple", new_hash)

    @pytest.mark.asyncio
    async def test_change_from_legacy_plaintext(self, mock_db, repo, student_plaintext):
        repo.get_by_lrn.return_value = student_plaintext

        await service.change_password(mock_db, LRN, "legacy-pass", "battery-staple")

        new_hash = repo.update_password.call_args.args[2]
        assert is_password_hash(new_hash)

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, mock_db, repo, student_hashed):
        repo.get_by_lrn.return_value = student_hashed

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await service.change_password(mock_db, LRN, "wrong", "battery-staple")

        assert exc_info.value.message == "Current password incorrect"
        repo.update_password.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_password_set(self, mock_db, repo, student_without_password):
        repo.get_by_lrn.return_value = student_without_password

        with pytest.raises(InvalidCredentialsError):
            await service.change_password(mock_db, LRN, "anything", "battery-staple")

    @pytest.mark.asyncio
    async def test_same_password_rejected(self, mock_db, repo):
        with pytest.raises(ValidationError):
            await service.change_password(mock_db, LRN, "same-password", "same-password")

        repo.get_by_lrn.assert_not_called()


class TestStudentRepository:
    """Tests for StudentRepository against a mocked session."""

    @pytest.mark.asyncio
    async def test_get_by_email(self, mock_db, student_hashed):
        result = MagicMock()
        result.scalar_one_or_none.return_value = student_hashed
        mock_db.execute.return_value = result

        found = await StudentRepository.get_by_email(mock_db, "a@x.com")

        assert found is student_hashed
        mock_db.execute.assert_called_once()

    @pytest.mark.asyncio
    async def test_update_password_flushes(self, mock_db):
        await StudentRepository.update_password(mock_db, LRN, "$2b$04$hash")

        mock_db.execute.assert_called_once()
        mock_db.flush.assert_called_once()

    @pytest.mark.asyncio
    async def test_update_profile_sets_fields(self, mock_db, student_hashed):
        updated = await StudentRepository.update_profile(
            mock_db, student_hashed, {"firstname": "Jose", "suffix": None}
        )

        assert updated.firstname == "Jose"
        assert updated.suffix is None
        mock_db.refresh.assert_called_once_with(student_hashed)
