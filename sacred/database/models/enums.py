"""
Enumeration Types
------------------

Enum classes for the SACRED database models.

Enums:
    - NoteType: Kind of note (note, commentary, sermon)
    - EntryType: Level of a systematic-theology entry
    - AnnotationType: Highlight or free-text note on an entry
    - RelationshipType: Kind of "see also" edge between chapters
    - SuggestionSource: Provenance of a topic suggestion
    - NoteRelation: How a related note connects to another note

Values are stored as plain strings; each enum offers ``choices()`` for
validation.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from enum import Enum
from typing import List


class NoteType(str, Enum):
    """
    Enumeration of note kinds.
    - NOTE: Personal study note
    - COMMENTARY: Commentary on a passage
    - SERMON: Sermon outline or manuscript
    """

    NOTE = "note"
    COMMENTARY = "commentary"
    SERMON = "sermon"

    @classmethod
    def choices(cls) -> List[str]:
        """Get all available note type choices."""
        return [note_type.value for note_type in cls]


class EntryType(str, Enum):
    """
    Level of a systematic-theology entry.

    part > chapter > section > subsection
    """

    PART = "part"
    CHAPTER = "chapter"
    SECTION = "section"
    SUBSECTION = "subsection"

    @classmethod
    def choices(cls) -> List[str]:
        return [entry_type.value for entry_type in cls]


class AnnotationType(str, Enum):
    HIGHLIGHT = "highlight"
    NOTE = "note"

    @classmethod
    def choices(cls) -> List[str]:
        return [a.value for a in cls]


class RelationshipType(str, Enum):
    """Kind of link between two systematic-theology chapters."""

    SEE_ALSO = "see_also"
    CONTRASTS_WITH = "contrasts_with"
    BUILDS_ON = "builds_on"

    @classmethod
    def choices(cls) -> List[str]:
        return [r.value for r in cls]

    @property
    def display_name(self) -> str:
        """Get human-readable display name."""
        return self.value.replace("_", " ").title()


class SuggestionSource(str, Enum):
    """Why a topic was suggested for a passage."""

    DOCTRINE = "doctrine"
    EXISTING_NOTES = "existing_notes"


class NoteRelation(str, Enum):
    """
    How a related note is connected to the note it was found for.
    - SAME_TOPIC: Shares the primary topic
    - NEARBY_PASSAGE: Same book, start chapters at most two apart
    - SHARED_TAGS: Shares at least one secondary topic
    """

    SAME_TOPIC = "same_topic"
    NEARBY_PASSAGE = "nearby_passage"
    SHARED_TAGS = "shared_tags"
