"""
Unit Tests for Chat Service

Tests the main chat coordinator and conversation flow.
"""

import threading

import pytest
from unittest.mock import Mock, patch

from config import SERVICE_ERROR_MESSAGE
from database import Database
from services.chat_service import ChatService, create_chat_service
from services.enrollment_service import EnrollmentService
from tests import TINY_CATALOG


def _text(text):
    return {"response_text": text, "tool_calls": []}


def _calls(*calls):
    return {"response_text": None, "tool_calls": [{"name": n, "args": a} for n, a in calls]}


class TestChatService:
    """Test ChatService class."""

    @pytest.fixture
    def model(self):
        """Fixture providing a scripted model client."""
        return Mock(return_value=_text("Hello! How can I help with enrollment?"))

    @pytest.fixture
    def chat_service(self, store, model):
        """Fixture providing ChatService over an in-memory store."""
        return ChatService(store=store, model_client=model)

    def test_process_message_success(self, chat_service):
        """Test successful message processing."""
        response = chat_service.process_message("hi", session_id="test_session_123")

        assert response.success is True
        assert response.message == "Hello! How can I help with enrollment?"
        assert response.metadata["session_id"] == "test_session_123"
        assert response.metadata["completion_reason"] == "final_answer"
        assert response.agent_state is not None

    def test_generates_session_id(self, chat_service):
        """Test a session ID is generated when none is given."""
        response = chat_service.process_message("hi")

        assert response.metadata["session_id"]

    def test_persists_only_user_and_assistant_turns(self, store, model):
        """Test tool summaries and results never reach the stored history."""
        model.side_effect = [
            _calls(("list_courses", {})),
            _text("We have five courses."),
        ]
        service = ChatService(store=store, model_client=model)

        service.process_message("What courses are there?", session_id="s1")

        history = service.get_history("s1")
        assert [(m["role"], m["content"]) for m in history] == [
            ("user", "What courses are there?"),
            ("assistant", "We have five courses."),
        ]

    def test_history_passed_to_model(self, chat_service, model):
        """Test earlier turns of the same session are sent with the new message."""
        chat_service.process_message("first", session_id="s1")
        chat_service.process_message("second", session_id="s1")

        messages = model.call_args[0][0]
        assert [m["content"] for m in messages[1:]] == [
            "first",
            "Hello! How can I help with enrollment?",
            "second",
        ]

    def test_sessions_are_isolated(self, chat_service, model):
        """Test one session's history is not visible in another."""
        chat_service.process_message("first", session_id="s1")
        chat_service.process_message("other", session_id="s2")

        messages = model.call_args[0][0]
        assert [m["content"] for m in messages[1:]] == ["other"]
        assert len(chat_service.get_history("s2")) == 2

    def test_history_window(self, store, model):
        """Test the model sees at most the window of persisted turns."""
        service = ChatService(store=store, model_client=model, history_window=4)
        for i in range(5):
            service.process_message(f"message {i}", session_id="s1")

        messages = model.call_args[0][0]
        assert len(messages) == 1 + 4
        assert messages[-1] == {"role": "user", "content": "message 4"}

    def test_empty_message(self, chat_service, model):
        """Test blank input is rejected without calling the model."""
        response = chat_service.process_message("   ", session_id="s1")

        assert response.success is False
        assert response.message == "Empty message"
        assert response.metadata["error"] == "empty_message"
        model.assert_not_called()
        assert chat_service.get_history("s1") == []

    def test_model_exception(self, chat_service, model):
        """Test a failing model yields a failed response instead of raising."""
        model.side_effect = RuntimeError("API error")

        response = chat_service.process_message("hi", session_id="s1")

        assert response.success is False
        assert response.message == SERVICE_ERROR_MESSAGE
        assert response.metadata["error"] == "API error"
        assert response.metadata["session_id"] == "s1"

    @patch('services.chat_service.AgentOrchestrator')
    def test_orchestrator_configuration(self, mock_orchestrator, store, model):
        """Test the orchestrator gets the session-bound tools and limits."""
        mock_orchestrator.return_value.run.side_effect = RuntimeError("stop")
        service = ChatService(store=store, model_client=model, max_rounds=3, history_window=10)

        service.process_message("hi", session_id="s1")

        kwargs = mock_orchestrator.call_args[1]
        assert kwargs["model_client"] is model
        assert kwargs["max_rounds"] == 3
        assert kwargs["history_window"] == 10
        assert set(kwargs["tool_registry"]) == {
            "register_student", "list_courses", "enroll_student", "drop_course", "check_enrollment",
        }


class TestSnapshot:
    """Test the session snapshot."""

    def test_snapshot_after_enrollment(self, store):
        """Test the snapshot shows counts and the current student's courses."""
        model = Mock(side_effect=[
            _calls(("register_student", {"name": "Alice", "email": "alice@x.edu"})),
            _text("Registered."),
        ])
        service = ChatService(store=store, model_client=model)
        service.process_message("Register me as Alice, alice@x.edu", session_id="s1")
        student_id = service.get_session("s1").current_student_id

        model.side_effect = [
            _calls(("enroll_student", {"student_id": student_id, "course_id": "CS101"})),
            _text("Enrolled in CS101."),
        ]
        response = service.process_message("Enroll me in CS101", session_id="s1")

        snapshot = response.snapshot
        assert snapshot.current_student_id == student_id
        assert snapshot.current_student_name == "Alice"
        assert snapshot.enrolled_courses == ["CS101"]
        cs101 = next(c for c in snapshot.available_courses if c["id"] == "CS101")
        assert cs101["enrolled_count"] == 1
        assert cs101["capacity"] == 30

    def test_snapshot_without_student(self, store):
        """Test a fresh session has no current student or enrollments."""
        service = ChatService(store=store, model_client=Mock())

        snapshot = service.get_snapshot("new")

        assert snapshot.current_student_id is None
        assert snapshot.enrolled_courses == []
        assert len(snapshot.available_courses) == 5
        assert snapshot.to_dict()["session_id"] == "new"


    def test_snapshot_does_not_create_session(self, store):
        """Test asking for a snapshot of an unknown session keeps no state."""
        service = ChatService(store=store, model_client=Mock())

        service.get_snapshot("never-used")

        assert "never-used" not in service._sessions
        assert "never-used" not in service._session_locks

    def test_end_session(self, store):
        """Test ending a session drops its context but keeps its history."""
        service = ChatService(store=store, model_client=Mock(return_value=_text("hi")))
        service.process_message("hello", session_id="s1")

        service.end_session("s1")

        assert "s1" not in service._sessions
        assert "s1" not in service._session_locks
        assert len(service.get_history("s1")) == 2


class TestConcurrentSessions:
    """Test parallel sessions against one store."""

    def test_parallel_enrollments_respect_capacity(self, tmp_path):
        """Test sessions racing for the last seats never overfill a course."""
        database = Database(f"sqlite:///{tmp_path / 'chat.db'}")
        database.init_db(seed_courses=TINY_CATALOG)
        store = EnrollmentService(database)
        students = [store.register_student(f"Student {i}", f"s{i}@x.edu") for i in range(6)]

        # Each session's utterance is its student ID; the model enrolls that student
        scripts = {
            s.id: [
                _calls(("enroll_student", {"student_id": s.id, "course_id": "LAB2"})),
                _text("done"),
            ]
            for s in students
        }

        def model(messages, tools):
            return scripts[messages[1]["content"]].pop(0)

        service = ChatService(store=store, model_client=model)
        threads = [
            threading.Thread(target=service.process_message, args=(s.id, s.id))
            for s in students
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get_course("LAB2").enrolled_count == 2
        assert store.find_count_drift() == {}
        assert sum(len(store.get_enrolled_course_ids(s.id)) for s in students) == 2
        database.dispose()


class TestCreateChatService:
    """Test the convenience constructor."""

    def test_creates_seeded_store(self):
        """Test the tables are created and the catalog seeded."""
        service = create_chat_service("sqlite://", model_client=Mock())

        assert [c.id for c in service.store.list_courses()] == [
            "CS101", "ENG102", "HIST101", "MATH201", "PHYS101",
        ]
