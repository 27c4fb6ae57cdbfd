"""
Session-scoped state.

Each conversation carries its own context object, passed explicitly into the
orchestrator and the tool registry instead of living in module globals, so
sessions stay independent and can run in parallel.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


@dataclass
class SessionContext:
    """
    Entity context of one ongoing conversation.

    Attributes:
        session_id: Conversation identifier
        current_student_id: Student the conversation is acting for, once known
        current_student_name: Display name of that student
    """
    session_id: str
    current_student_id: Optional[str] = None
    current_student_name: Optional[str] = None

    def set_current_student(self, student_id: str, name: str) -> None:
        self.current_student_id = student_id
        self.current_student_name = name


@dataclass
class SessionSnapshot:
    """
    Lightweight view pushed to a presentation layer after each message.

    Attributes:
        session_id: Conversation identifier
        current_student_id: Student the conversation is acting for (if any)
        current_student_name: Display name of that student
        available_courses: Every course with its counts
        enrolled_courses: Course IDs the current student is enrolled in
    """
    session_id: str
    current_student_id: Optional[str] = None
    current_student_name: Optional[str] = None
    available_courses: List[Dict[str, Any]] = field(default_factory=list)
    enrolled_courses: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "current_student_id": self.current_student_id,
            "current_student_name": self.current_student_name,
            "available_courses": self.available_courses,
            "enrolled_courses": self.enrolled_courses,
        }
