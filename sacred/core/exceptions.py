#!/usr/bin/env python3
"""
exceptions.py
--------------------
Custom exception classes for the SACRED project.

This module defines a hierarchy of exceptions used throughout the project
to handle specific error conditions in different subsystems.

Exception Hierarchy:
    Exception (built-in)
    ├── DatabaseError - Base for all database-related errors
    │   ├── NotFoundError - Referenced id does not exist
    │   ├── InvalidRelationshipError - Self-parent, cycle, dangling reference
    │   ├── ExportError - Snapshot export failures
    │   └── BackupImportError - Snapshot import failures (whole run)
    └── ValidationError - Data validation failures

Reference parsing never raises: an unparseable reference is returned as a
``NotParsed`` value (see ``sacred.scripture.reference_parser``). A single
failing row inside a bulk import is not an exception either; it is recorded
in the import result.

Usage:
    from sacred.core.exceptions import NotFoundError, InvalidRelationshipError

    try:
        db.topics.set_parent(topic_id, parent_id)
    except InvalidRelationshipError as e:
        logger.log_warning(f"Rejected move: {e}")
"""
from typing import Optional


class DatabaseError(Exception):
    """
    Base exception for database-related errors.

    Raised when database operations fail due to connection issues,
    query errors, integrity violations, or other database problems.

    This is the parent class for all database-specific exceptions.
    Catch this to handle any database error, or catch specific
    subclasses for more granular error handling.

    Examples:
        >>> raise DatabaseError("Connection to database failed")
        >>> raise DatabaseError("Integrity constraint violation: duplicate topic")
    """

    pass


class NotFoundError(DatabaseError):
    """
    Exception for lookups of an id (or reference) that does not exist.

    Surfaced to the caller as-is; never retried.

    Attributes:
        kind: Entity kind that was looked up (e.g. 'topic', 'note')
        identifier: The id or reference string that was not found

    Examples:
        >>> raise NotFoundError("topic", "3f2a...")
        >>> raise NotFoundError("systematic_entry", "Ch99:Z")
    """

    def __init__(self, kind: str, identifier: Optional[str]) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class InvalidRelationshipError(DatabaseError):
    """
    Exception for relationships that would break a structural invariant.

    Raised before any mutation happens:
    - A topic set as its own parent
    - A parent change that would create a cycle in the topic tree
    - A reference to a parent, tag, topic or series that does not exist

    Attributes:
        kind: Entity kind whose relationship was rejected
        identifier: Id of the entity being related

    Examples:
        >>> raise InvalidRelationshipError("Topic cannot be its own parent", "topic", tid)
    """

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        identifier: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(message)


class ExportError(DatabaseError):
    """
    Exception for snapshot export failures.

    Raised when reading the store or writing the snapshot file fails:
    - File writing errors
    - Unsupported output format
    - Serialization failures

    Examples:
        >>> raise ExportError("Unsupported export format: .csv")
    """

    pass


class BackupImportError(DatabaseError):
    """
    Exception for import runs that cannot start or cannot complete.

    Individual row failures are not raised; they are collected in the
    import result. This is raised only when the snapshot as a whole is
    unusable (unreadable file, wrong top-level shape).

    Examples:
        >>> raise BackupImportError("Invalid import data: notes array required")
    """

    pass


class ValidationError(Exception):
    """
    Exception for data validation failures.

    Raised when input data fails domain validation checks:
    - Reversed verse ranges
    - Unknown note or annotation types
    - Empty required names
    - Missing required fields

    Examples:
        >>> raise ValidationError("start_chapter must not exceed end_chapter")
        >>> raise ValidationError("Required field 'name' missing or empty")
    """

    pass
