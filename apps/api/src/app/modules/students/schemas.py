"""Student schemas."""

from pydantic import BaseModel, ConfigDict, Field

from app.modules.students.models import StudentDetails


class StudentUser(BaseModel):
    """Student summary returned after login."""

    LRN: str
    email: str
    firstname: str
    lastname: str
    first_name: str
    last_name: str

    @classmethod
    def from_model(cls, student: StudentDetails) -> "StudentUser":
        return cls(
            LRN=student.lrn,
            email=student.email,
            firstname=student.firstname,
            lastname=student.lastname,
            first_name=student.firstname,
            last_name=student.lastname,
        )


class StudentProfile(BaseModel):
    """Full student profile."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    LRN: str = Field(validation_alias="lrn")
    firstname: str
    lastname: str
    middlename: str | None = None
    suffix: str | None = None
    email: str
    strand: str | None = None
    yearlevel: str | None = None


class StudentProfileResponse(BaseModel):
    success: bool = True
    student: StudentProfile


class StudentProfileUpdate(BaseModel):
    """Editable profile fields. Omitted fields are left unchanged."""

    firstname: str | None = Field(None, min_length=1, max_length=100)
    lastname: str | None = Field(None, min_length=1, max_length=100)
    middlename: str | None = Field(None, max_length=100)
    suffix: str | None = Field(None, max_length=20)


class StudentStatusResponse(BaseModel):
    success: bool = True
    student_status: str | None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=72)


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class StudentDocumentsResponse(BaseModel):
    success: bool = True
    documents: dict[str, str | None]


class EnrollmentStatusResponse(BaseModel):
    success: bool = True
    enrollment_status: str | None
