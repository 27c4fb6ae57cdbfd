"""Database package for the enrollment assistant."""
from .models import (
    Base,
    Student,
    Course,
    Enrollment,
    Message,
    MessageRole,
    utc_now,
)
from .connection import Database

__all__ = [
    "Base",
    "Student",
    "Course",
    "Enrollment",
    "Message",
    "MessageRole",
    "utc_now",
    "Database",
]
