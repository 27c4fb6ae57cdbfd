"""Shared fixtures: in-memory stores, a session, and bound tool registries."""

import pytest

from core.session import SessionContext
from database import Database
from services.enrollment_service import EnrollmentService
from tools import get_tool_registry
from tests import TINY_CATALOG


@pytest.fixture
def database():
    """Fresh in-memory database seeded with the default catalog."""
    db = Database("sqlite://")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def store(database):
    """Enrollment store over the default catalog."""
    return EnrollmentService(database)


@pytest.fixture
def tiny_store():
    """Enrollment store whose courses hold one and two students."""
    db = Database("sqlite://")
    db.init_db(seed_courses=TINY_CATALOG)
    yield EnrollmentService(db)
    db.dispose()


@pytest.fixture
def session():
    """Context of a single test conversation."""
    return SessionContext(session_id="test-session")


@pytest.fixture
def registry(store, session):
    """Tool registry bound to the default store and the test session."""
    return get_tool_registry(store, session)
