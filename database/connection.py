"""Database connection and session management."""
import logging
import threading
from pathlib import Path
from contextlib import contextmanager, nullcontext
from typing import Generator, Iterable, Dict, Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL, DATABASE_ECHO, SEED_COURSES
from .models import Base, Course

logger = logging.getLogger(__name__)

_IN_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite only enforces FOREIGN KEY constraints when asked to."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Engine and session factory for one database.

    Usage:
        db = Database("sqlite://")
        db.init_db()
        with db.session_scope() as session:
            courses = session.query(Course).all()
    """

    def __init__(self, url: str = DATABASE_URL, echo: bool = DATABASE_ECHO):
        self.url = url
        self.engine = self._create_engine(url, echo)
        # In-memory databases share one connection, so only one session may use it at a time
        self._connection_lock = threading.RLock() if url in _IN_MEMORY_URLS else nullcontext()
        # Rows stay readable after the session that loaded them closes
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

    @staticmethod
    def _create_engine(url: str, echo: bool) -> Engine:
        kwargs: Dict[str, Any] = {"echo": echo}

        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}  # Needed for SQLite
            if url in _IN_MEMORY_URLS:
                # One shared connection, otherwise every session sees an empty database
                kwargs["poolclass"] = StaticPool

        engine = create_engine(url, **kwargs)

        if url.startswith("sqlite"):
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)

        return engine

    def init_db(self, seed_courses: Optional[Iterable[Dict[str, Any]]] = None) -> None:
        """Create all tables and seed the course catalog if it is empty.

        Args:
            seed_courses: Course dicts (id, name, instructor, capacity).
                Defaults to the configured catalog.
        """
        database_path = self.engine.url.database
        if self.url.startswith("sqlite") and database_path and database_path != ":memory:":
            Path(database_path).parent.mkdir(parents=True, exist_ok=True)

        Base.metadata.create_all(bind=self.engine)

        courses = list(SEED_COURSES if seed_courses is None else seed_courses)
        with self.session_scope() as session:
            if session.query(Course).count() == 0:
                for course in courses:
                    session.add(Course(
                        id=course["id"],
                        name=course["name"],
                        instructor=course["instructor"],
                        capacity=course["capacity"],
                        enrolled_count=0,
                    ))
                logger.info(f"🌱 Seeded {len(courses)} courses")

        logger.info(f"✅ Database initialized at: {self.engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Get a database session with automatic commit/rollback and cleanup."""
        with self._connection_lock:
            session = self.SessionLocal()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
