"""Database models for the enrollment assistant."""
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, ForeignKey, CheckConstraint, UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Author of a persisted conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"


class Student(Base):
    """Registered student. Never mutated or deleted after creation."""
    __tablename__ = "students"

    id = Column(String, primary_key=True)  # e.g., "STU-4F7K2Q"
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    # Relationships
    enrollments = relationship("Enrollment", back_populates="student")


class Course(Base):
    """Course in the catalog.

    ``enrolled_count`` mirrors the number of Enrollment rows for the course and
    is only changed by the enroll/drop operations, in the same transaction.
    """
    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_course_capacity_positive"),
        CheckConstraint(
            "enrolled_count >= 0 AND enrolled_count <= capacity",
            name="ck_course_enrolled_within_capacity",
        ),
    )

    id = Column(String, primary_key=True)  # e.g., "CS101"
    name = Column(String, nullable=False)
    instructor = Column(String, nullable=False)
    capacity = Column(Integer, nullable=False)
    enrolled_count = Column(Integer, nullable=False, default=0)

    # Relationships
    enrollments = relationship("Enrollment", back_populates="course")

    @property
    def remaining_seats(self) -> int:
        return self.capacity - self.enrolled_count

    @property
    def is_full(self) -> bool:
        return self.enrolled_count >= self.capacity


class Enrollment(Base):
    """Link between one student and one course."""
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String, ForeignKey("students.id"), nullable=False, index=True)
    course_id = Column(String, ForeignKey("courses.id"), nullable=False, index=True)
    enrolled_at = Column(DateTime, default=utc_now, nullable=False)

    # Relationships
    student = relationship("Student", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")


class Message(Base):
    """One persisted conversation turn (append-only).

    Only user utterances and final assistant replies are stored here;
    tool invocation and tool result turns are not.
    """
    __tablename__ = "chat_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String, nullable=False, index=True)
    role = Column(SQLEnum(MessageRole), nullable=False)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utc_now, nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
