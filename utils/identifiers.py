"""
Identifier generation and normalization utilities.

The model passes IDs and emails back to the tools as free text, so lookups
go through the same normalization that was applied when the row was written.
"""

import secrets
import string

STUDENT_ID_PREFIX = "STU-"
STUDENT_ID_LENGTH = 6

_ID_ALPHABET = string.ascii_uppercase + string.digits


def generate_student_id() -> str:
    """
    Generate a new student identifier.

    Returns:
        ID like "STU-4F7K2Q"
    """
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(STUDENT_ID_LENGTH))
    return f"{STUDENT_ID_PREFIX}{suffix}"


def normalize_student_id(student_id: str) -> str:
    """
    Normalize a student ID ("stu-4f7k2q " -> "STU-4F7K2Q").
    """
    return student_id.strip().upper()


def normalize_course_id(course_id: str) -> str:
    """
    Normalize a course code ("cs 101" -> "CS101").
    """
    return "".join(course_id.split()).upper()


def normalize_email(email: str) -> str:
    """
    Normalize an email address for uniqueness checks.
    """
    return email.strip().lower()
