#!/usr/bin/env python3
"""
SACRED Database Package
-----------------------
Database layer of the SACRED note system:

- SacredDB: engine, sessions, migrations and entity managers
- Entity managers: topics, systematic theology, notes, series, inline tags
- ExportManager: full snapshot export and dependency-ordered import
- Decorators for logging and error handling of database operations
"""

from .manager import SacredDB, configure_sqlite_engine
from sacred.core.exceptions import (
    BackupImportError,
    DatabaseError,
    ExportError,
    InvalidRelationshipError,
    NotFoundError,
    ValidationError,
)
from .export_manager import ExportManager, ImportResult, ImportRowError
from .decorators import (
    DatabaseOperation,
    handle_db_errors,
    log_database_operation,
    validate_metadata,
)

__all__ = [
    # Main manager
    "SacredDB",
    "configure_sqlite_engine",
    # Exceptions
    "BackupImportError",
    "DatabaseError",
    "ExportError",
    "InvalidRelationshipError",
    "NotFoundError",
    "ValidationError",
    # Export / import
    "ExportManager",
    "ImportResult",
    "ImportRowError",
    # Decorators
    "DatabaseOperation",
    "handle_db_errors",
    "log_database_operation",
    "validate_metadata",
]
