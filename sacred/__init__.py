"""
SACRED Development Package
==========================

A personal Bible-study note manager.

Notes are attached to verse ranges, organized in a hierarchical topic
taxonomy and cross-linked to a systematic-theology reference work through
an embedded link syntax. Everything is stored in a SQLite database managed
through SQLAlchemy.

Main Components:
    - scripture: Bible reference parsing and doctrine link grammar
    - database: SQLAlchemy ORM with entity managers, export and import
    - core: Logging, validation, paths, exceptions

Primary Interfaces:
    - sacred.database.cli: Database management CLI (sacred-db)
    - sacred.database.manager.SacredDB: Main database interface
    - sacred.scripture.parse_reference: Free-text reference parser

Example Usage:
    >>> from sacred.database import SacredDB
    >>> from sacred.core.paths import DB_PATH, ALEMBIC_DIR, LOG_DIR
    >>> db = SacredDB(db_path=DB_PATH, alembic_dir=ALEMBIC_DIR, log_dir=LOG_DIR)
    >>> with db.session_scope():
    ...     forest = db.topics.tree(include_counts=True)
"""

__version__ = "1.0.0"
__author__ = "SACRED Project"

from sacred.database.manager import SacredDB
from sacred.core.paths import DATA_DIR, DB_PATH, LOG_DIR

__all__ = [
    "SacredDB",
    "DATA_DIR",
    "DB_PATH",
    "LOG_DIR",
]
