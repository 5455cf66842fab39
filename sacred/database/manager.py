#!/usr/bin/env python3
"""
manager.py
--------------------
Database manager for the SACRED note system.

Provides the SacredDB class for interacting with the SQLite database.
Handles:
    - Initialization of the database engine and sessionmaker
    - Transactional session scopes with per-session entity managers
    - Schema creation, stamping and upgrades via Alembic
    - Seeding of default inline tag types and doctrine tags
    - Snapshot export/import through ExportManager

Entity managers are exposed as properties that are only valid inside
``session_scope``:

    db = SacredDB(DB_PATH, ALEMBIC_DIR, log_dir=LOG_DIR)
    with db.session_scope() as session:
        roots = db.topics.tree(include_counts=True)
        matches = db.systematic.doctrines_for_passage("ROM", 3, 24)

Notes
==============
- Migrations live in sacred/migrations (alembic.ini at the project root)
- All datetime fields are UTC-aware
- SQLite connections enforce foreign keys and issue BEGIN explicitly so
  that SAVEPOINTs (topic deletion, per-row import) behave correctly
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

# --- Third party ---
from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import Engine, create_engine, event, inspect
from sqlalchemy.orm import Session, sessionmaker

# --- Local imports ---
from sacred.core.exceptions import DatabaseError
from sacred.core.logging_manager import SacredLogger, safe_logger
from sacred.core.paths import ALEMBIC_INI

from .decorators import handle_db_errors, log_database_operation
from .export_manager import ExportManager
from .managers import (
    InlineTagManager,
    NoteManager,
    SeriesManager,
    SystematicManager,
    TopicManager,
)
from .models import Base


def configure_sqlite_engine(engine: Engine) -> Engine:
    """
    Make a pysqlite engine enforce foreign keys and support SAVEPOINT.

    pysqlite defers BEGIN on its own, which breaks nested transactions;
    the driver's transaction handling is switched off and BEGIN is emitted
    by SQLAlchemy instead.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


# ----- Main Database Manager -----
class SacredDB:
    """
    Main database manager for the SACRED database.

    Attributes:
        db_path: Filesystem path to the SQLite database file
        alembic_dir: Filesystem path to the Alembic environment
        engine: SQLAlchemy engine instance
        SessionLocal: SQLAlchemy session factory
        export_manager: Snapshot export/import
    """

    # ---- Initialization ----
    def __init__(
        self,
        db_path: Union[str, Path],
        alembic_dir: Union[str, Path],
        log_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        """
        Initialize database engine and session factory.

        A database file that does not exist yet is created, stamped at the
        latest migration and seeded with defaults.

        Args:
            db_path: Path to the SQLite file
            alembic_dir: Path to the Alembic environment directory
            log_dir: Directory for log files (optional)
        """
        self.db_path = Path(db_path).expanduser().resolve()
        self.alembic_dir = Path(alembic_dir).expanduser().resolve()

        # --- Logging ---
        if log_dir:
            self.log_dir = Path(log_dir).expanduser().resolve() / "system"
            self.logger: Optional[SacredLogger] = SacredLogger(
                self.log_dir, component_name="database"
            )
        else:
            self.logger = None

        self.export_manager = ExportManager(self.logger)

        # Entity managers (bound in session_scope)
        self._topic_manager: Optional[TopicManager] = None
        self._systematic_manager: Optional[SystematicManager] = None
        self._note_manager: Optional[NoteManager] = None
        self._series_manager: Optional[SeriesManager] = None
        self._inline_tag_manager: Optional[InlineTagManager] = None

        self._setup_engine()

    def _setup_engine(self) -> None:
        """Initialize database engine and session factory."""
        try:
            safe_logger(self.logger).log_operation(
                "database_init_start",
                {"db_path": str(self.db_path), "alembic_dir": str(self.alembic_dir)},
            )

            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            is_new = not self.db_path.exists()

            self.engine: Engine = configure_sqlite_engine(
                create_engine(f"sqlite:///{self.db_path}", echo=False)
            )
            self.SessionLocal: sessionmaker = sessionmaker(
                bind=self.engine,
                autoflush=True,
                expire_on_commit=False,
            )
            self.alembic_cfg: Config = self._setup_alembic()

            if is_new:
                self.initialize_schema()

            safe_logger(self.logger).log_operation(
                "database_init_complete", {"success": True, "created": is_new}
            )
        except DatabaseError:
            raise
        except Exception as e:
            safe_logger(self.logger).log_error(e, {"operation": "database_init"})
            raise DatabaseError(f"Database initialization failed: {e}") from e

    # ---- Session Management ----
    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around one logical operation.

        Commits on success, rolls back on any exception. Entity managers
        bound to this session are available as properties for the
        duration of the block.
        """
        session = self.SessionLocal()
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")

        self._topic_manager = TopicManager(session, self.logger)
        self._systematic_manager = SystematicManager(session, self.logger)
        self._note_manager = NoteManager(session, self.logger)
        self._series_manager = SeriesManager(session, self.logger)
        self._inline_tag_manager = InlineTagManager(session, self.logger)

        log = safe_logger(self.logger)
        log.log_debug("session_start", {"session_id": session_id})

        try:
            yield session
            session.commit()
            log.log_debug("session_commit", {"session_id": session_id})
        except Exception as e:
            session.rollback()
            log.log_error(e, {"operation": "session_rollback", "session_id": session_id})
            raise
        finally:
            self._topic_manager = None
            self._systematic_manager = None
            self._note_manager = None
            self._series_manager = None
            self._inline_tag_manager = None

            session.close()
            log.log_debug("session_close", {"session_id": session_id})

    # -------------------------------------------------------------------------
    # Entity Manager Properties
    # -------------------------------------------------------------------------

    @staticmethod
    def _bound(manager, name: str):
        if manager is None:
            raise DatabaseError(
                f"{name} requires active session. "
                "Use within session_scope: with db.session_scope() as session: ..."
            )
        return manager

    @property
    def topics(self) -> TopicManager:
        """
        Access TopicManager for taxonomy operations.

        Raises:
            DatabaseError: If accessed outside of session_scope context
        """
        return self._bound(self._topic_manager, "TopicManager")

    @property
    def systematic(self) -> SystematicManager:
        """
        Access SystematicManager for doctrine/Scripture operations.

        Raises:
            DatabaseError: If accessed outside of session_scope context
        """
        return self._bound(self._systematic_manager, "SystematicManager")

    @property
    def notes(self) -> NoteManager:
        return self._bound(self._note_manager, "NoteManager")

    @property
    def series(self) -> SeriesManager:
        return self._bound(self._series_manager, "SeriesManager")

    @property
    def inline_tags(self) -> InlineTagManager:
        return self._bound(self._inline_tag_manager, "InlineTagManager")

    # ---- Alembic setup ----
    def _setup_alembic(self) -> Config:
        """Setup Alembic configuration."""
        try:
            alembic_cfg = Config(str(ALEMBIC_INI)) if ALEMBIC_INI.exists() else Config()
            alembic_cfg.set_main_option("script_location", str(self.alembic_dir))
            alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{self.db_path}")
            return alembic_cfg
        except Exception as e:
            safe_logger(self.logger).log_error(e, {"operation": "setup_alembic"})
            raise DatabaseError(f"Alembic configuration failed: {e}") from e

    @handle_db_errors
    @log_database_operation("initialize_schema")
    def initialize_schema(self) -> None:
        """
        Initialize database - create tables if needed and run migrations.

        Actions:
            If the database has no tables,
                creates all tables from the ORM models,
                stamps the Alembic revision to head
            Otherwise,
                runs pending migrations
            In both cases, seeds missing defaults
        """
        try:
            with self.engine.connect() as conn:
                table_names = inspect(conn).get_table_names()
            is_fresh_db = len(table_names) == 0

            if is_fresh_db:
                Base.metadata.create_all(bind=self.engine)
                command.stamp(self.alembic_cfg, "head")
                safe_logger(self.logger).log_operation(
                    "fresh_database_created",
                    {"tables_created": len(Base.metadata.tables)},
                )
            else:
                self.upgrade_database()
                safe_logger(self.logger).log_operation(
                    "existing_database_migrated", {"table_count": len(table_names)}
                )
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Could not initialize database: {e}") from e

        self.seed_defaults()

    @handle_db_errors
    @log_database_operation("seed_defaults")
    def seed_defaults(self) -> Dict[str, int]:
        """Insert the default inline tag types and doctrine tags if missing."""
        with self.session_scope():
            inline_types = len(self.inline_tags.seed_defaults())
            doctrine_tags = self.systematic.seed_default_tags()
        return {"inline_tag_types": inline_types, "systematic_tags_added": doctrine_tags}

    @handle_db_errors
    @log_database_operation("upgrade_database")
    def upgrade_database(self, revision: str = "head") -> None:
        """
        Upgrade the database schema to the specified Alembic revision.

        Args:
            revision: Target revision (default 'head')
        """
        try:
            command.upgrade(self.alembic_cfg, revision)
        except Exception as e:
            raise DatabaseError(f"Database upgrade failed: {e}") from e

    def get_migration_history(self) -> Dict[str, Optional[str]]:
        """
        Get the current migration status of the database.

        Returns:
            Dictionary with 'current_revision' and 'status'
            ('up_to_date' or 'needs_migration')
        """
        with self.engine.connect() as conn:
            context = MigrationContext.configure(conn)
            current_rev = context.get_current_revision()

        return {
            "current_revision": current_rev,
            "status": "up_to_date" if current_rev else "needs_migration",
        }

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self.engine.dispose()

    def __enter__(self) -> "SacredDB":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
