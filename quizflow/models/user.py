import enum

from sqlalchemy import Column, String, Boolean
from .base import BaseModel


class UserRole(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


SEMESTERS = ("1st semester", "2nd semester")

# Quiz academic year number <-> student year label
YEAR_LABELS = {
    1: "1st year",
    2: "2nd year",
    3: "3rd year",
    4: "4th year",
}
YEAR_NUMBERS = {label: number for number, label in YEAR_LABELS.items()}


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=True, index=True)
    name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.STUDENT.value, index=True)
    profile_image = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Cohort attributes (students only)
    semester = Column(String(20), nullable=True, index=True)   # "1st semester" | "2nd semester"
    year = Column(String(20), nullable=True, index=True)       # "1st year" .. "4th year"

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT.value

    @property
    def is_staff(self) -> bool:
        """Teachers and admins; both may author quizzes and export data."""
        return self.role in (UserRole.TEACHER.value, UserRole.ADMIN.value)
