"""
Prompt templates and tool definitions for the enrollment assistant.

This module contains:
- The system prompt that seeds every conversation
- Function calling tool definitions (Gemini function declaration format)

All prompts should be maintained here (not hardcoded in services/tools).
"""

from typing import Dict, List

# ============================================================================
# SYSTEM PROMPTS
# ============================================================================

SYSTEM_PROMPT = """You are a helpful student enrollment assistant. You help students register, browse courses, enroll in courses, drop courses, and check their enrollment status.

Available operations (use the provided tools):
- register_student: Register a new student (requires name and email)
- list_courses: Show all available courses with enrollment counts
- enroll_student: Enroll a student in a course (requires student_id and course_id)
- drop_course: Drop a student from a course (requires student_id and course_id)
- check_enrollment: Check what courses a student is enrolled in (requires student_id)

Guidelines:
- Be friendly and concise.
- When a user wants to enroll, first check if they are registered. If not, ask for their name and email to register them.
- Always confirm actions with the user before proceeding.
- After enrolling or dropping, summarize the updated enrollment status.
- Use the exact student IDs and course IDs returned by the tools.
- If the user asks something unrelated, politely redirect them to enrollment tasks."""

# ============================================================================
# TOOL DEFINITIONS (Function Calling)
# ============================================================================

# Tool outcomes starting with this prefix report a failed operation
TOOL_ERROR_PREFIX = "Error:"

TOOL_DEFINITIONS: List[Dict] = [
    {
        "name": "register_student",
        "description": "Register a new student in the system. Returns the student ID. If the email is already registered, returns the existing student ID instead.",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "name": {
                    "type": "STRING",
                    "description": "Full name of the student"
                },
                "email": {
                    "type": "STRING",
                    "description": "Email address of the student"
                }
            },
            "required": ["name", "email"]
        }
    },
    {
        # Gemini rejects OBJECT parameters with no properties, so none are declared
        "name": "list_courses",
        "description": "List all available courses with their current enrollment counts and remaining capacity.",
    },
    {
        "name": "enroll_student",
        "description": "Enroll a student in a course.",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "student_id": {
                    "type": "STRING",
                    "description": "The student ID (e.g. STU-AB12CD)"
                },
                "course_id": {
                    "type": "STRING",
                    "description": "The course ID (e.g. CS101)"
                }
            },
            "required": ["student_id", "course_id"]
        }
    },
    {
        "name": "drop_course",
        "description": "Drop (unenroll) a student from a course.",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "student_id": {
                    "type": "STRING",
                    "description": "The student ID"
                },
                "course_id": {
                    "type": "STRING",
                    "description": "The course ID to drop (e.g. CS101)"
                }
            },
            "required": ["student_id", "course_id"]
        }
    },
    {
        "name": "check_enrollment",
        "description": "Check all courses a student is currently enrolled in.",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "student_id": {
                    "type": "STRING",
                    "description": "The student ID"
                }
            },
            "required": ["student_id"]
        }
    },
]

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def get_tool_by_name(tool_name: str) -> Dict:
    """
    Retrieve tool definition by name.

    Args:
        tool_name: Name of the tool to retrieve

    Returns:
        Tool definition dictionary

    Raises:
        ValueError: If tool name not found
    """
    tool = next((t for t in TOOL_DEFINITIONS if t["name"] == tool_name), None)
    if not tool:
        available = [t["name"] for t in TOOL_DEFINITIONS]
        raise ValueError(f"Tool '{tool_name}' not found. Available: {available}")
    return tool


def get_required_arguments(tool_name: str) -> List[str]:
    """Names of the arguments a tool declares as required."""
    return list(get_tool_by_name(tool_name).get("parameters", {}).get("required", []))
