"""
Note Models
------------

Notes attached to verse ranges, and the entities that group them.

Models:
    - Note: A note on a verse range of one book
    - Series: Sermon / study series; a note belongs to at most one
    - InlineTagType: Kinds of inline highlights available in note content

Notes point at one primary topic and any number of secondary topics
(``note_tags``). Deleting a topic or series never deletes notes; the
foreign keys are cleared instead.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

# --- Third party imports ---
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

# --- Local imports ---
from sacred.scripture.reference_parser import ScriptureReference, format_reference

from .associations import note_tags
from .base import Base, TimestampMixin, new_id, utcnow
from .enums import NoteType

if TYPE_CHECKING:
    from .topics import Topic


class Series(Base, TimestampMixin):
    """
    A named series of notes (e.g. a sermon series through Romans).

    Attributes:
        id: Opaque identifier
        name: Display name
        description: Optional description
        notes: Notes in the series
    """

    __tablename__ = "series"
    __table_args__ = (CheckConstraint("name != ''", name="ck_series_non_empty_name"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    notes: Mapped[List["Note"]] = relationship("Note", back_populates="series")

    def __repr__(self) -> str:
        return f"<Series(id={self.id}, name={self.name!r})>"


class Note(Base, TimestampMixin):
    """
    A note on a verse range.

    Verse-range invariant: ``start_chapter <= end_chapter`` and, inside a
    single chapter, ``start_verse <= end_verse`` when both are present.
    A note without verses covers whole chapters.

    Attributes:
        id: Opaque identifier
        book: 3-letter book code (upper-case)
        start_chapter / start_verse / end_chapter / end_verse: Verse range
        title: Note title
        content: Rich-text markup; may embed [[ST:...]] link tokens
        type: note | commentary | sermon
        primary_topic_id: Primary topic (nullable)
        series_id: Series membership (nullable)
        tags: Secondary topics
    """

    __tablename__ = "notes"
    __table_args__ = (
        CheckConstraint("start_chapter <= end_chapter", name="ck_note_chapter_order"),
        CheckConstraint(
            "start_chapter != end_chapter OR start_verse IS NULL "
            "OR end_verse IS NULL OR start_verse <= end_verse",
            name="ck_note_verse_order",
        ),
        CheckConstraint(
            "type IN ('note', 'commentary', 'sermon')", name="ck_note_type"
        ),
        Index("ix_notes_book_chapter", "book", "start_chapter"),
    )

    # ---- Primary fields ----
    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    book: Mapped[str] = mapped_column(String(3), nullable=False)
    start_chapter: Mapped[int] = mapped_column(Integer, nullable=False)
    start_verse: Mapped[Optional[int]] = mapped_column(Integer)
    end_chapter: Mapped[int] = mapped_column(Integer, nullable=False)
    end_verse: Mapped[Optional[int]] = mapped_column(Integer)
    title: Mapped[str] = mapped_column(String, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=NoteType.NOTE.value
    )

    # ---- Foreign keys ----
    primary_topic_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("topics.id", ondelete="SET NULL"), index=True
    )
    series_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("series.id", ondelete="SET NULL"), index=True
    )

    # ---- Relationships ----
    primary_topic: Mapped[Optional["Topic"]] = relationship(
        "Topic", foreign_keys=[primary_topic_id]
    )
    series: Mapped[Optional[Series]] = relationship("Series", back_populates="notes")
    tags: Mapped[List["Topic"]] = relationship(
        "Topic", secondary=note_tags, passive_deletes=True
    )

    @property
    def tag_ids(self) -> List[str]:
        return sorted(t.id for t in self.tags)

    @property
    def reference_label(self) -> str:
        """Human-readable passage, e.g. "Romans 3:21-26"."""
        return format_reference(
            ScriptureReference(
                self.book,
                self.start_chapter,
                self.start_verse,
                self.end_chapter,
                self.end_verse,
            )
        )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, {self.book} "
            f"{self.start_chapter}:{self.start_verse}-"
            f"{self.end_chapter}:{self.end_verse})>"
        )


class InlineTagType(Base):
    """
    A kind of inline highlight (illustration, key point, quote, ...).

    Defaults are seeded on a fresh database and flagged ``is_default``.
    """

    __tablename__ = "inline_tag_types"
    __table_args__ = (
        CheckConstraint("name != ''", name="ck_inline_tag_type_non_empty_name"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    color: Mapped[str] = mapped_column(String(20), nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(20))
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<InlineTagType(id={self.id}, name={self.name!r})>"
