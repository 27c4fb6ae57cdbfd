"""
Chat Service - Main Coordinator

Orchestrates the entire user interaction flow:
1. Receives a user message for a session
2. Persists it and loads the recent history window
3. Runs the agent orchestrator with tools bound to this session
4. Persists the final reply
5. Returns it together with a fresh session snapshot

This is the main entry point for any front-end (the CLI in main.py).
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

from config import DATABASE_URL, MAX_TOOL_ROUNDS, HISTORY_WINDOW, SERVICE_ERROR_MESSAGE
from core import AgentOrchestrator, AgentState, SessionContext, SessionSnapshot
from core.orchestrator import ModelClient
from database import Database, MessageRole
from .enrollment_service import EnrollmentService

logger = logging.getLogger(__name__)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class ChatResponse:
    """
    Response from the chat service.

    Attributes:
        message: The response text to display to the user
        success: Whether the request was handled successfully
        metadata: Additional metadata about the response
        snapshot: Course list and enrolled courses after the message
        agent_state: Full agent execution state (for debugging)
    """
    message: str
    success: bool
    metadata: Dict[str, Any]
    snapshot: Optional[SessionSnapshot] = None
    agent_state: Optional[AgentState] = None


# ============================================================================
# CHAT SERVICE
# ============================================================================

class ChatService:
    """
    Main chat service coordinator.

    Keeps one SessionContext per conversation and processes one message per
    session at a time; different sessions run independently.
    """

    def __init__(
        self,
        store: EnrollmentService,
        model_client: Optional[ModelClient] = None,
        max_rounds: int = MAX_TOOL_ROUNDS,
        history_window: int = HISTORY_WINDOW,
    ):
        """
        Initialize the chat service.

        Args:
            store: Enrollment store shared by all sessions
            model_client: Model callable for the orchestrator (defaults to Gemini)
            max_rounds: Max model invocations per message
            history_window: Persisted turns given to the model, new utterance included
        """
        from tools import get_tool_registry
        self._get_tool_registry = get_tool_registry

        self.store = store
        self.model_client = model_client
        self.max_rounds = max_rounds
        self.history_window = history_window

        self._sessions: Dict[str, SessionContext] = {}
        self._session_locks: Dict[str, threading.Lock] = {}
        self._sessions_guard = threading.Lock()
        logger.info("✅ ChatService initialized")

    def get_session(self, session_id: str) -> SessionContext:
        """Get (or create) the context of a conversation."""
        with self._sessions_guard:
            session = self._sessions.get(session_id)
            if session is None:
                session = self._sessions[session_id] = SessionContext(session_id=session_id)
            return session

    def _session_lock(self, session_id: str) -> threading.Lock:
        with self._sessions_guard:
            lock = self._session_locks.get(session_id)
            if lock is None:
                lock = self._session_locks[session_id] = threading.Lock()
            return lock

    def process_message(
        self,
        user_message: str,
        session_id: Optional[str] = None,
    ) -> ChatResponse:
        """
        Process a user message and generate a response.

        Args:
            user_message: The user's input text
            session_id: Session identifier (generated if not provided)

        Returns:
            ChatResponse with the agent's reply and metadata
        """
        # Generate session ID if not provided
        if not session_id:
            session_id = str(uuid.uuid4())

        text = (user_message or "").strip()
        if not text:
            return ChatResponse(
                message="Empty message",
                success=False,
                metadata={"error": "empty_message", "session_id": session_id},
            )

        logger.info(f"💬 Processing message (session: {session_id}): {text[:50]}...")

        with self._session_lock(session_id):
            session = self.get_session(session_id)

            try:
                history = [
                    {"role": m.role.value, "content": m.content}
                    for m in self.store.get_recent_messages(session_id, self.history_window - 1)
                ]
                self.store.add_message(session_id, MessageRole.USER, text)

                orchestrator = AgentOrchestrator(
                    tool_registry=self._get_tool_registry(self.store, session),
                    model_client=self.model_client,
                    max_rounds=self.max_rounds,
                    history_window=self.history_window,
                )
                agent_state = orchestrator.run(
                    user_message=text,
                    session=session,
                    conversation_history=history,
                )

                self.store.add_message(session_id, MessageRole.ASSISTANT, agent_state.final_response)
                snapshot = self.get_snapshot(session_id)

            except Exception as e:
                logger.error(f"❌ ChatService error: {e}", exc_info=True)
                return ChatResponse(
                    message=SERVICE_ERROR_MESSAGE,
                    success=False,
                    metadata={"error": str(e), "session_id": session_id},
                )

        return ChatResponse(
            message=agent_state.final_response,
            success=True,
            metadata=agent_state.get_execution_summary(),
            snapshot=snapshot,
            agent_state=agent_state,
        )

    def end_session(self, session_id: str) -> None:
        """Forget a conversation's context and lock. Its persisted history is kept."""
        with self._sessions_guard:
            self._sessions.pop(session_id, None)
            self._session_locks.pop(session_id, None)

    def get_history(self, session_id: str) -> List[Dict[str, Any]]:
        """Ordered persisted turns of a session."""
        return [message.to_dict() for message in self.store.get_history(session_id)]

    def get_snapshot(self, session_id: str) -> SessionSnapshot:
        """
        Course list plus the current student's enrolled course IDs.

        Args:
            session_id: Session identifier

        Returns:
            SessionSnapshot for a presentation layer
        """
        with self._sessions_guard:
            session = self._sessions.get(session_id) or SessionContext(session_id=session_id)

        courses = [
            {
                "id": c.id,
                "name": c.name,
                "instructor": c.instructor,
                "capacity": c.capacity,
                "enrolled_count": c.enrolled_count,
            }
            for c in self.store.list_courses()
        ]

        enrolled = []
        if session.current_student_id:
            enrolled = self.store.get_enrolled_course_ids(session.current_student_id)

        return SessionSnapshot(
            session_id=session_id,
            current_student_id=session.current_student_id,
            current_student_name=session.current_student_name,
            available_courses=courses,
            enrolled_courses=enrolled,
        )


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def create_chat_service(
    database_url: str = DATABASE_URL,
    model_client: Optional[ModelClient] = None,
) -> ChatService:
    """
    Build a ready-to-use chat service over a database.

    Creates the tables and seeds the course catalog if needed.

    Args:
        database_url: SQLAlchemy database URL
        model_client: Model callable (defaults to Gemini)

    Returns:
        ChatService
    """
    database = Database(database_url)
    database.init_db()
    return ChatService(store=EnrollmentService(database), model_client=model_client)
