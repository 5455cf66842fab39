"""
Association Tables
-------------------

Many-to-many relationship tables for the SACRED database.

- note_tags: secondary topic membership of notes
- systematic_chapter_tags: doctrine categories attached to theology chapters

These are pure association tables with no additional metadata.
"""
# --- Third party imports ---
from sqlalchemy import Column, ForeignKey, Integer, String, Table

# --- Local imports ---
from .base import Base

note_tags = Table(
    "note_tags",
    Base.metadata,
    Column(
        "note_id",
        String,
        ForeignKey("notes.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "topic_id",
        String,
        ForeignKey("topics.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)

# Keyed by chapter number rather than entry id: a chapter keeps its tags
# when its entry row is re-imported under a new id.
systematic_chapter_tags = Table(
    "systematic_chapter_tags",
    Base.metadata,
    Column("chapter_number", Integer, primary_key=True),
    Column(
        "tag_id",
        String,
        ForeignKey("systematic_tags.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)
