"""
Function Calling Tools Module

This module contains all tools (functions) that the LLM agent can invoke
through function calling. These are the "hands" of the agent - the actions
it can take against the enrollment store.

Each tool is designed to:
- Have a clear, single purpose
- Validate the untrusted argument map it receives from the model
- Return a human-readable outcome string, never raise for expected failures
- Be independently testable

Tools are bound to a store and a session in the tool registry.
"""

from functools import partial
from typing import Callable, Dict

from core.session import SessionContext
from services.enrollment_service import EnrollmentService

from .enrollment_tools import (
    register_student,
    list_courses,
    enroll_student,
    drop_course,
    check_enrollment,
    InvalidArgumentsError,
    require_string_arguments,
)


# Tool registry for agent orchestrator
def get_tool_registry(
    service: EnrollmentService,
    session: SessionContext,
) -> Dict[str, Callable]:
    """
    Get the registry of available tools bound to a store and a session.

    Args:
        service: Enrollment store the tools operate on
        session: Conversation whose current student the tools update

    Returns:
        Dictionary mapping tool names to callables taking the argument map
    """
    return {
        "register_student": partial(register_student, service, session),
        "list_courses": partial(list_courses, service, session),
        "enroll_student": partial(enroll_student, service, session),
        "drop_course": partial(drop_course, service, session),
        "check_enrollment": partial(check_enrollment, service, session),
    }


__all__ = [
    # Enrollment tools
    "register_student",
    "list_courses",
    "enroll_student",
    "drop_course",
    "check_enrollment",

    # Validation
    "InvalidArgumentsError",
    "require_string_arguments",

    # Registry
    "get_tool_registry",
]
