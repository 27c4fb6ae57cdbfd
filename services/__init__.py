"""
Business Logic Services Module

This module contains the core business logic for the enrollment assistant:
- Enrollment service: the store for students, courses, enrollments and
  conversation history, with its invariants
- Chat service: main coordinator for user interactions

Services apply domain rules and own all database access.
"""

from .enrollment_service import (
    EnrollmentService,
    EnrollmentError,
    StudentNotFoundError,
    CourseNotFoundError,
    CourseFullError,
    AlreadyEnrolledError,
    NotEnrolledError,
    StudentAlreadyRegisteredError,
)

from .chat_service import (
    ChatService,
    ChatResponse,
    create_chat_service,
)

__all__ = [
    # Enrollment Service
    "EnrollmentService",
    "EnrollmentError",
    "StudentNotFoundError",
    "CourseNotFoundError",
    "CourseFullError",
    "AlreadyEnrolledError",
    "NotEnrolledError",
    "StudentAlreadyRegisteredError",

    # Chat Service
    "ChatService",
    "ChatResponse",
    "create_chat_service",
]
