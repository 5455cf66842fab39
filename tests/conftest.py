"""
conftest.py
-----------
Shared pytest fixtures for SACRED tests.

Provides fixtures for:
- In-memory database engine and session
- Entity managers bound to that session
- Test data factories
"""
import pytest
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sacred.database.manager import configure_sqlite_engine
from sacred.database.models import (
    Base,
    Note,
    ScriptureIndexEntry,
    SystematicEntry,
    SystematicTag,
    Topic,
)


# ----- Path Fixtures -----

@pytest.fixture
def migrations_dir():
    """Path to the Alembic environment shipped with the package."""
    return Path(__file__).parent.parent / "sacred" / "migrations"


# ----- Database Fixtures -----

@pytest.fixture
def engine():
    """
    Fresh in-memory SQLite engine with the full schema.

    StaticPool keeps the single in-memory connection alive across sessions.
    """
    engine = configure_sqlite_engine(
        create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Session for a single test; rolled back afterwards."""
    Session = sessionmaker(bind=engine, expire_on_commit=False)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def topic_manager(db_session):
    """Create TopicManager instance for testing."""
    from sacred.database.managers import TopicManager
    return TopicManager(db_session)


@pytest.fixture
def note_manager(db_session):
    """Create NoteManager instance for testing."""
    from sacred.database.managers import NoteManager
    return NoteManager(db_session)


@pytest.fixture
def series_manager(db_session):
    """Create SeriesManager instance for testing."""
    from sacred.database.managers import SeriesManager
    return SeriesManager(db_session)


@pytest.fixture
def systematic_manager(db_session):
    """Create SystematicManager instance for testing."""
    from sacred.database.managers import SystematicManager
    return SystematicManager(db_session)


@pytest.fixture
def inline_tag_manager(db_session):
    """Create InlineTagManager instance for testing."""
    from sacred.database.managers import InlineTagManager
    return InlineTagManager(db_session)


@pytest.fixture
def export_manager():
    """ExportManager without a logger."""
    from sacred.database.export_manager import ExportManager
    return ExportManager()


# ----- Sample Data Factory Functions -----

def make_topic(session, name, parent=None, sort_order=0, **kwargs):
    """Insert a topic directly and flush so that it has an id."""
    topic = Topic(
        name=name,
        parent_id=parent.id if parent is not None else None,
        sort_order=sort_order,
        **kwargs,
    )
    session.add(topic)
    session.flush()
    return topic


def make_note(session, book="ROM", start_chapter=3, start_verse=None,
              end_chapter=None, end_verse=None, **kwargs):
    """Insert a note directly and flush so that it has an id."""
    note = Note(
        book=book,
        start_chapter=start_chapter,
        start_verse=start_verse,
        end_chapter=end_chapter if end_chapter is not None else start_chapter,
        end_verse=end_verse,
        **kwargs,
    )
    session.add(note)
    session.flush()
    return note


def make_entry(session, entry_type="chapter", chapter_number=36, title="Justification",
               **kwargs):
    """Insert a systematic theology entry directly."""
    entry = SystematicEntry(
        entry_type=entry_type,
        chapter_number=chapter_number,
        title=title,
        **kwargs,
    )
    session.add(entry)
    session.flush()
    return entry


def make_edge(session, entry, book="ROM", chapter=3, start_verse=None,
              end_verse=None, is_primary=False, context_snippet=None):
    """Index ``entry`` against a passage."""
    edge = ScriptureIndexEntry(
        systematic_id=entry.id,
        book=book,
        chapter=chapter,
        start_verse=start_verse,
        end_verse=end_verse,
        is_primary=is_primary,
        context_snippet=context_snippet,
    )
    session.add(edge)
    session.flush()
    return edge


def make_tag(session, tag_id="doctrine-salvation", name="Doctrine of Salvation", sort_order=5):
    """Insert a doctrine tag."""
    tag = SystematicTag(id=tag_id, name=name, sort_order=sort_order)
    session.add(tag)
    session.flush()
    return tag
