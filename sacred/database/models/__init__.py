"""
Database Models Package
------------------------

SQLAlchemy ORM models for the SACRED database.

- base: Base class, timestamp mixin and id generation
- associations: note_tags, systematic_chapter_tags
- enums: Enumeration types
- notes: Note, Series, InlineTagType
- topics: Topic
- systematic: SystematicEntry and its index, annotations, tags, relations

Usage:
    from sacred.database.models import Note, Topic, SystematicEntry
"""
# Base classes
from .base import Base, TimestampMixin, new_id

# Enumerations
from .enums import (
    AnnotationType,
    EntryType,
    NoteType,
    RelationshipType,
    NoteRelation,
    SuggestionSource,
)

# Association tables
from .associations import note_tags, systematic_chapter_tags

# Models
from .notes import InlineTagType, Note, Series
from .topics import Topic
from .systematic import (
    ScriptureIndexEntry,
    SystematicAnnotation,
    SystematicEntry,
    SystematicRelated,
    SystematicTag,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "new_id",
    # Enums
    "AnnotationType",
    "EntryType",
    "NoteType",
    "RelationshipType",
    "NoteRelation",
    "SuggestionSource",
    # Associations
    "note_tags",
    "systematic_chapter_tags",
    # Models
    "InlineTagType",
    "Note",
    "Series",
    "Topic",
    "ScriptureIndexEntry",
    "SystematicAnnotation",
    "SystematicEntry",
    "SystematicRelated",
    "SystematicTag",
]
