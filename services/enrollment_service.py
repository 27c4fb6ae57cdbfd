"""
Enrollment Service - Store for Students, Courses, Enrollments and Messages

Owns every read and write against the database and keeps the domain
invariants:
- Student emails are unique; registering twice never creates a second row
- 0 <= Course.enrolled_count <= Course.capacity
- At most one Enrollment per (student, course)
- Course.enrolled_count equals the number of live Enrollment rows, because
  both are changed in the same transaction

Failed preconditions raise an ``EnrollmentError`` subclass. The tools layer
turns those into result strings for the model.
"""

import logging
import threading
from contextlib import nullcontext
from typing import ContextManager, Dict, List, Optional, Tuple, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import Database, Student, Course, Enrollment, Message, MessageRole, utc_now
from utils.identifiers import (
    generate_student_id,
    normalize_student_id,
    normalize_course_id,
    normalize_email,
)

logger = logging.getLogger(__name__)


# ============================================================================
# ERRORS
# ============================================================================

class EnrollmentError(Exception):
    """Base class for expected, recoverable store failures."""


class StudentNotFoundError(EnrollmentError):
    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(f"Student {student_id} not found")


class CourseNotFoundError(EnrollmentError):
    def __init__(self, course_id: str):
        self.course_id = course_id
        super().__init__(f"Course {course_id} not found")


class CourseFullError(EnrollmentError):
    def __init__(self, course_id: str, course_name: str, capacity: int):
        self.course_id = course_id
        self.course_name = course_name
        self.capacity = capacity
        super().__init__(f"Course {course_id} is full ({capacity}/{capacity})")


class AlreadyEnrolledError(EnrollmentError):
    def __init__(self, student_id: str, course_id: str):
        self.student_id = student_id
        self.course_id = course_id
        super().__init__(f"Student {student_id} is already enrolled in {course_id}")


class NotEnrolledError(EnrollmentError):
    def __init__(self, student_id: str, course_id: str):
        self.student_id = student_id
        self.course_id = course_id
        super().__init__(f"Student {student_id} is not enrolled in {course_id}")


class StudentAlreadyRegisteredError(EnrollmentError):
    """Carries the existing student's details so callers can report its ID."""

    def __init__(self, student_id: str, name: str, email: str):
        self.student_id = student_id
        self.name = name
        self.email = email
        super().__init__(f"Email {email} is already registered to {student_id}")


# ============================================================================
# ENROLLMENT SERVICE
# ============================================================================

class EnrollmentService:
    """
    Invariant-preserving operations over the enrollment database.

    Enroll and drop run under a per-course lock and inside one transaction,
    which serializes the capacity check-then-increment for each course.
    The course row is also selected ``FOR UPDATE`` so databases with row
    locking serialize writers across processes.
    """

    def __init__(self, database: Database):
        """
        Initialize the service.

        Args:
            database: Initialized database (tables created, catalog seeded)
        """
        self.db = database
        self._course_locks: Dict[str, threading.Lock] = {}
        self._course_locks_guard = threading.Lock()
        self._registration_lock = threading.Lock()

    def _course_lock(self, course_id: str) -> ContextManager:
        """Lock for a catalog course; unknown IDs get no lock and no map entry."""
        with self._course_locks_guard:
            lock = self._course_locks.get(course_id)
            if lock is None:
                with self.db.session_scope() as session:
                    if session.get(Course, course_id) is None:
                        return nullcontext()
                lock = self._course_locks[course_id] = threading.Lock()
            return lock

    @staticmethod
    def _lock_course(session: Session, course_id: str) -> Optional[Course]:
        return (
            session.query(Course)
            .filter(Course.id == course_id)
            .with_for_update()
            .one_or_none()
        )

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------

    def register_student(self, name: str, email: str) -> Student:
        """
        Create a student with a generated ID.

        Args:
            name: Full name
            email: Email address (unique, compared case-insensitively)

        Returns:
            The new Student

        Raises:
            StudentAlreadyRegisteredError: If the email is already registered
        """
        name = name.strip()
        email = normalize_email(email)

        with self._registration_lock:
            try:
                with self.db.session_scope() as session:
                    existing = session.query(Student).filter(Student.email == email).one_or_none()
                    if existing:
                        raise StudentAlreadyRegisteredError(existing.id, existing.name, existing.email)

                    student_id = generate_student_id()
                    while session.get(Student, student_id) is not None:
                        student_id = generate_student_id()

                    student = Student(
                        id=student_id,
                        name=name,
                        email=email,
                        created_at=utc_now(),
                    )
                    session.add(student)
                    session.flush()
            except IntegrityError:
                # Another process registered the same email between our check and insert
                existing = self.get_student_by_email(email)
                if existing is None:
                    raise
                raise StudentAlreadyRegisteredError(existing.id, existing.name, existing.email) from None

        logger.info(f"🧑‍🎓 Registered student {student.id} ({email})")
        return student

    def get_student(self, student_id: str) -> Optional[Student]:
        with self.db.session_scope() as session:
            return session.get(Student, normalize_student_id(student_id))

    def get_student_by_email(self, email: str) -> Optional[Student]:
        with self.db.session_scope() as session:
            return (
                session.query(Student)
                .filter(Student.email == normalize_email(email))
                .one_or_none()
            )

    def count_students(self) -> int:
        with self.db.session_scope() as session:
            return session.query(Student).count()

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    def list_courses(self) -> List[Course]:
        """All courses ordered by ID."""
        with self.db.session_scope() as session:
            return session.query(Course).order_by(Course.id).all()

    def get_course(self, course_id: str) -> Optional[Course]:
        with self.db.session_scope() as session:
            return session.get(Course, normalize_course_id(course_id))

    # ------------------------------------------------------------------
    # Enrollments
    # ------------------------------------------------------------------

    def enroll(self, student_id: str, course_id: str) -> Tuple[Student, Course]:
        """
        Enroll a student in a course.

        Checks run in order: student exists, course exists, course has a free
        seat, student not already enrolled.

        Returns:
            Tuple of (student, course with the updated count)

        Raises:
            StudentNotFoundError, CourseNotFoundError, CourseFullError,
            AlreadyEnrolledError
        """
        student_id = normalize_student_id(student_id)
        course_id = normalize_course_id(course_id)

        with self._course_lock(course_id):
            with self.db.session_scope() as session:
                student = session.get(Student, student_id)
                if student is None:
                    raise StudentNotFoundError(student_id)

                course = self._lock_course(session, course_id)
                if course is None:
                    raise CourseNotFoundError(course_id)

                if course.is_full:
                    raise CourseFullError(course.id, course.name, course.capacity)

                existing = (
                    session.query(Enrollment)
                    .filter(Enrollment.student_id == student_id, Enrollment.course_id == course_id)
                    .one_or_none()
                )
                if existing:
                    raise AlreadyEnrolledError(student_id, course_id)

                session.add(Enrollment(
                    student_id=student_id,
                    course_id=course_id,
                    enrolled_at=utc_now(),
                ))
                course.enrolled_count += 1
                session.flush()

                logger.info(
                    f"✅ Enrolled {student_id} in {course_id} "
                    f"({course.enrolled_count}/{course.capacity})"
                )
                return student, course

    def drop(self, student_id: str, course_id: str) -> Course:
        """
        Remove a student's enrollment from a course.

        Returns:
            The course with the updated count

        Raises:
            NotEnrolledError: If no such enrollment exists
        """
        student_id = normalize_student_id(student_id)
        course_id = normalize_course_id(course_id)

        with self._course_lock(course_id):
            with self.db.session_scope() as session:
                enrollment = (
                    session.query(Enrollment)
                    .filter(Enrollment.student_id == student_id, Enrollment.course_id == course_id)
                    .one_or_none()
                )
                if enrollment is None:
                    raise NotEnrolledError(student_id, course_id)

                course = self._lock_course(session, course_id)
                session.delete(enrollment)
                course.enrolled_count -= 1
                session.flush()

                logger.info(
                    f"🗑️  Dropped {student_id} from {course_id} "
                    f"({course.enrolled_count}/{course.capacity})"
                )
                return course

    def get_enrollments(self, student_id: str) -> Tuple[Student, List[Tuple[Enrollment, Course]]]:
        """
        A student's enrollments joined with their courses, oldest first.

        Raises:
            StudentNotFoundError: If the student does not exist
        """
        student_id = normalize_student_id(student_id)

        with self.db.session_scope() as session:
            student = session.get(Student, student_id)
            if student is None:
                raise StudentNotFoundError(student_id)

            rows = (
                session.query(Enrollment, Course)
                .join(Course, Enrollment.course_id == Course.id)
                .filter(Enrollment.student_id == student_id)
                .order_by(Enrollment.enrolled_at, Enrollment.id)
                .all()
            )
            return student, [(enrollment, course) for enrollment, course in rows]

    def get_enrolled_course_ids(self, student_id: str) -> List[str]:
        with self.db.session_scope() as session:
            rows = (
                session.query(Enrollment.course_id)
                .filter(Enrollment.student_id == normalize_student_id(student_id))
                .order_by(Enrollment.enrolled_at, Enrollment.id)
                .all()
            )
            return [course_id for (course_id,) in rows]

    def find_count_drift(self) -> Dict[str, Tuple[int, int]]:
        """
        Courses whose stored count disagrees with their Enrollment rows.

        Returns:
            Mapping of course_id -> (enrolled_count, live enrollment rows);
            empty when the store is consistent
        """
        with self.db.session_scope() as session:
            live = dict(
                session.query(Enrollment.course_id, func.count(Enrollment.id))
                .group_by(Enrollment.course_id)
                .all()
            )
            drift = {}
            for course in session.query(Course).all():
                actual = live.get(course.id, 0)
                if course.enrolled_count != actual:
                    drift[course.id] = (course.enrolled_count, actual)
            return drift

    # ------------------------------------------------------------------
    # Conversation history
    # ------------------------------------------------------------------

    def add_message(self, session_id: str, role: Union[MessageRole, str], content: str) -> Message:
        """Append one user or assistant turn to a session's history."""
        with self.db.session_scope() as session:
            message = Message(
                session_id=session_id,
                role=MessageRole(role),
                content=content,
                timestamp=utc_now(),
            )
            session.add(message)
            session.flush()
            return message

    def get_recent_messages(self, session_id: str, limit: int) -> List[Message]:
        """The most recent ``limit`` turns of a session, oldest first."""
        if limit <= 0:
            return []

        with self.db.session_scope() as session:
            rows = (
                session.query(Message)
                .filter(Message.session_id == session_id)
                .order_by(Message.timestamp.desc(), Message.id.desc())
                .limit(limit)
                .all()
            )
            return list(reversed(rows))

    def get_history(self, session_id: str) -> List[Message]:
        """Every turn of a session, oldest first."""
        with self.db.session_scope() as session:
            return (
                session.query(Message)
                .filter(Message.session_id == session_id)
                .order_by(Message.timestamp, Message.id)
                .all()
            )
