"""
Student Models

ORM mappings onto the school's existing student tables. Students are
identified by their LRN (Learner Reference Number).
"""

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

DOCUMENT_TYPES = (
    "birth_cert",
    "form137",
    "good_moral",
    "report_card",
    "picture",
    "transcript_records",
    "honorable_dismissal",
)


class StudentDetails(Base):
    """Student profile and status."""

    __tablename__ = "student_details"

    lrn: Mapped[str] = mapped_column("LRN", String(20), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    firstname: Mapped[str] = mapped_column(String(100), nullable=False)
    lastname: Mapped[str] = mapped_column(String(100), nullable=False)
    middlename: Mapped[str | None] = mapped_column(String(100), nullable=True)
    suffix: Mapped[str | None] = mapped_column(String(20), nullable=True)
    strand: Mapped[str | None] = mapped_column(String(50), nullable=True)
    yearlevel: Mapped[str | None] = mapped_column(String(20), nullable=True)
    student_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    enrollment_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    account: Mapped["StudentAccount | None"] = relationship(
        "StudentAccount",
        back_populates="details",
        lazy="selectin",
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<StudentDetails(lrn={self.lrn}, email={self.email})>"


class StudentAccount(Base):
    """
    Student login account.

    password holds a bcrypt hash, or a legacy plaintext password for
    accounts that have not been migrated yet. It may be NULL for students
    who only log in with an OTP.
    """

    __tablename__ = "student_accounts"

    lrn: Mapped[str] = mapped_column(
        "LRN",
        String(20),
        ForeignKey("student_details.LRN", ondelete="CASCADE"),
        primary_key=True,
    )
    password: Mapped[str | None] = mapped_column(Text, nullable=True)
    track_code: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)

    details: Mapped[StudentDetails] = relationship("StudentDetails", back_populates="account")


class StudentDocuments(Base):
    """Uploaded document URLs, one column per document type."""

    __tablename__ = "student_documents"

    lrn: Mapped[str] = mapped_column("LRN", String(20), primary_key=True)
    birth_cert: Mapped[str | None] = mapped_column(Text, nullable=True)
    form137: Mapped[str | None] = mapped_column(Text, nullable=True)
    good_moral: Mapped[str | None] = mapped_column(Text, nullable=True)
    report_card: Mapped[str | None] = mapped_column(Text, nullable=True)
    picture: Mapped[str | None] = mapped_column(Text, nullable=True)
    transcript_records: Mapped[str | None] = mapped_column(Text, nullable=True)
    honorable_dismissal: Mapped[str | None] = mapped_column(Text, nullable=True)

    def as_dict(self) -> dict[str, str | None]:
        return {"LRN": self.lrn, **{name: getattr(self, name) for name in DOCUMENT_TYPES}}
