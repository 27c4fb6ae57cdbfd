"""
Enrollment Tools

Function calling tools the model can invoke against the enrollment store.
Each tool receives the raw argument map from the model, validates it, and
returns a plain-text outcome with the IDs and counts the model needs to
reference in its reply.

Expected failures (unknown student, full course, ...) are outcomes, not
exceptions. Store or database outages still raise.
"""

import logging
import re
from functools import wraps
from typing import Any, Dict, List, Mapping

from config import TOOL_ERROR_PREFIX
from utils.identifiers import normalize_student_id
from core.session import SessionContext
from services.enrollment_service import (
    EnrollmentService,
    StudentNotFoundError,
    CourseNotFoundError,
    CourseFullError,
    AlreadyEnrolledError,
    NotEnrolledError,
    StudentAlreadyRegisteredError,
)

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ============================================================================
# ARGUMENT VALIDATION
# ============================================================================

class InvalidArgumentsError(ValueError):
    """Raised when the model's argument map does not fit the tool schema."""


def require_string_arguments(arguments: Any, *names: str) -> List[str]:
    """
    Pull required non-empty string arguments out of an untrusted argument map.

    Args:
        arguments: Argument map as returned by the model
        *names: Required argument names, in the order to return them

    Returns:
        The stripped values, in the order of ``names``

    Raises:
        InvalidArgumentsError: If the map is not a mapping, or an argument is
            missing, empty or not a string
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise InvalidArgumentsError("expected an object of named arguments")

    missing = [name for name in names if arguments.get(name) in (None, "")]
    if missing:
        raise InvalidArgumentsError(f"missing required argument(s): {', '.join(missing)}")

    values = []
    for name in names:
        value = arguments[name]
        if not isinstance(value, str) or not value.strip():
            raise InvalidArgumentsError(f"argument '{name}' must be a non-empty string")
        values.append(value.strip())
    return values


def reports_invalid_arguments(tool_name: str):
    """
    Decorator turning argument validation failures into the uniform outcome
    ``Error: Invalid arguments for <tool>: <detail>.``
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except InvalidArgumentsError as e:
                logger.warning(f"⚠️  {tool_name} rejected arguments: {e}")
                return f"{TOOL_ERROR_PREFIX} Invalid arguments for {tool_name}: {e}."
        return wrapper
    return decorator


# ============================================================================
# ENROLLMENT TOOLS
# ============================================================================

@reports_invalid_arguments("register_student")
def register_student(
    service: EnrollmentService,
    session: SessionContext,
    arguments: Dict[str, Any],
) -> str:
    """
    Register a student, or report the existing ID if the email is taken.

    Either way the session's current student becomes this student, and a
    repeated call never creates a second row.

    Example:
        >>> register_student(service, session, {"name": "Alice", "email": "alice@x.edu"})
        'Student registered successfully. Student ID: STU-4F7K2Q, Name: Alice, Email: alice@x.edu'
    """
    name, email = require_string_arguments(arguments, "name", "email")
    if not _EMAIL_PATTERN.match(email):
        raise InvalidArgumentsError(f"'{email}' is not a valid email address")

    try:
        student = service.register_student(name, email)
    except StudentAlreadyRegisteredError as e:
        session.set_current_student(e.student_id, e.name)
        return f"Student already registered with email {e.email}. Student ID: {e.student_id}"

    session.set_current_student(student.id, student.name)
    return (
        f"Student registered successfully. Student ID: {student.id}, "
        f"Name: {student.name}, Email: {student.email}"
    )


def list_courses(
    service: EnrollmentService,
    session: SessionContext,
    arguments: Any = None,
) -> str:
    """
    List every course with its enrollment count and capacity.

    Takes no arguments; anything the model sends is ignored.
    """
    courses = service.list_courses()
    if not courses:
        return "No courses are currently available."

    lines = [
        f"- {c.id}: {c.name} (Instructor: {c.instructor}, "
        f"Enrolled: {c.enrolled_count}/{c.capacity})"
        for c in courses
    ]
    return "Available courses:\n" + "\n".join(lines)


@reports_invalid_arguments("enroll_student")
def enroll_student(
    service: EnrollmentService,
    session: SessionContext,
    arguments: Dict[str, Any],
) -> str:
    """
    Enroll a student in a course.

    Outcomes, in check order: student not found, course not found, course
    full, already enrolled, success.
    """
    student_id, course_id = require_string_arguments(arguments, "student_id", "course_id")

    try:
        student, course = service.enroll(student_id, course_id)
    except StudentNotFoundError as e:
        return f"{TOOL_ERROR_PREFIX} Student {e.student_id} not found. Please register first."
    except CourseNotFoundError as e:
        return f"{TOOL_ERROR_PREFIX} Course {e.course_id} not found."
    except CourseFullError as e:
        return (
            f"{TOOL_ERROR_PREFIX} Course {e.course_id} ({e.course_name}) is full "
            f"({e.capacity}/{e.capacity})."
        )
    except AlreadyEnrolledError as e:
        return f"Student {e.student_id} is already enrolled in {e.course_id}."

    session.set_current_student(student.id, student.name)
    return (
        f"Successfully enrolled student {student.id} ({student.name}) in "
        f"{course.id} ({course.name}). Enrolled: {course.enrolled_count}/{course.capacity}."
    )


@reports_invalid_arguments("drop_course")
def drop_course(
    service: EnrollmentService,
    session: SessionContext,
    arguments: Dict[str, Any],
) -> str:
    """
    Drop a student from a course they are enrolled in.
    """
    student_id, course_id = require_string_arguments(arguments, "student_id", "course_id")

    try:
        course = service.drop(student_id, course_id)
    except NotEnrolledError as e:
        return f"Student {e.student_id} is not enrolled in {e.course_id}."

    return (
        f"Successfully dropped student {normalize_student_id(student_id)} from course {course.id}. "
        f"Enrolled: {course.enrolled_count}/{course.capacity}."
    )


@reports_invalid_arguments("check_enrollment")
def check_enrollment(
    service: EnrollmentService,
    session: SessionContext,
    arguments: Dict[str, Any],
) -> str:
    """
    List the courses a student is enrolled in, oldest enrollment first.

    An empty list is a valid result, not an error.
    """
    (student_id,) = require_string_arguments(arguments, "student_id")

    try:
        student, enrollments = service.get_enrollments(student_id)
    except StudentNotFoundError as e:
        return f"{TOOL_ERROR_PREFIX} Student {e.student_id} not found."

    if not enrollments:
        return f"Student {student.name} ({student.id}) is not enrolled in any courses."

    lines = [
        f"- {course.id}: {course.name} (Instructor: {course.instructor}, "
        f"Enrolled: {enrollment.enrolled_at.isoformat(timespec='seconds')})"
        for enrollment, course in enrollments
    ]
    return f"Enrollments for {student.name} ({student.id}):\n" + "\n".join(lines)
