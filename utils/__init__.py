"""
Utilities package for shared helper functions.
"""

from utils.identifiers import (
    generate_student_id,
    normalize_student_id,
    normalize_course_id,
    normalize_email,
)

__all__ = ['generate_student_id', 'normalize_student_id', 'normalize_course_id', 'normalize_email']
