"""
Systematic Theology Models
---------------------------

A four-level reference work (part > chapter > section > subsection),
indexed by Scripture.

Models:
    - SystematicEntry: One entry of the work
    - ScriptureIndexEntry: Edge from an entry to a passage
    - SystematicAnnotation: Highlight or note on an entry
    - SystematicTag: Doctrine category (one per part of the work)
    - SystematicRelated: "See also" edge between two chapters

Entries are addressed externally by reference string (``Ch32``,
``Ch32:A``, ``Ch32:A.1``); see ``sacred.scripture.doctrine_links``.
Deleting an entry cascades to its scripture-index edges and annotations.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from datetime import datetime
from typing import List, Optional

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
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

# --- Local imports ---
from .base import Base, TimestampMixin, new_id, utcnow
from sacred.scripture.doctrine_links import DoctrineAddress


class SystematicEntry(Base, TimestampMixin):
    """
    One entry of the systematic theology.

    Attributes:
        entry_type: part | chapter | section | subsection
        part_number: Part the entry belongs to
        chapter_number: Chapter number (None for parts)
        section_letter: Section letter (sections and subsections)
        subsection_number: Subsection number (subsections only)
        title / content / summary: Text of the entry
        parent_id: Enclosing entry
        sort_order: Position among siblings
        word_count: Length of content in words
    """

    __tablename__ = "systematic_theology"
    __table_args__ = (
        CheckConstraint(
            "entry_type IN ('part', 'chapter', 'section', 'subsection')",
            name="ck_systematic_entry_type",
        ),
        CheckConstraint("word_count >= 0", name="positive_systematic_word_count"),
        Index(
            "ix_systematic_address",
            "chapter_number",
            "section_letter",
            "subsection_number",
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)
    part_number: Mapped[Optional[int]] = mapped_column(Integer)
    chapter_number: Mapped[Optional[int]] = mapped_column(Integer)
    section_letter: Mapped[Optional[str]] = mapped_column(String(1))
    subsection_number: Mapped[Optional[int]] = mapped_column(Integer)
    title: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    parent_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("systematic_theology.id", ondelete="CASCADE"), index=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ---- Relationships ----
    children: Mapped[List["SystematicEntry"]] = relationship(
        "SystematicEntry",
        back_populates="parent",
        passive_deletes=True,
        order_by="SystematicEntry.sort_order",
    )
    parent: Mapped[Optional["SystematicEntry"]] = relationship(
        "SystematicEntry", remote_side=[id], back_populates="children"
    )
    scripture_refs: Mapped[List["ScriptureIndexEntry"]] = relationship(
        "ScriptureIndexEntry",
        back_populates="entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    annotations: Mapped[List["SystematicAnnotation"]] = relationship(
        "SystematicAnnotation",
        back_populates="entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ---- Addressing ----
    @property
    def address(self) -> Optional[DoctrineAddress]:
        """Chapter/section/subsection address; None for part-level entries."""
        if self.chapter_number is None:
            return None
        section = self.section_letter
        return DoctrineAddress(
            self.chapter_number,
            section,
            self.subsection_number if section else None,
        )

    @property
    def reference(self) -> Optional[str]:
        """Reference string such as ``Ch32:A.1``."""
        address = self.address
        return address.reference_string if address else None

    def __repr__(self) -> str:
        return (
            f"<SystematicEntry(id={self.id}, type={self.entry_type}, "
            f"ref={self.reference or f'Part{self.part_number}'})>"
        )


class ScriptureIndexEntry(Base):
    """Edge from an entry to a passage (primary or supporting)."""

    __tablename__ = "systematic_scripture_index"
    __table_args__ = (
        Index("ix_scripture_index_passage", "book", "chapter"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    systematic_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("systematic_theology.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book: Mapped[str] = mapped_column(String(3), nullable=False)
    chapter: Mapped[int] = mapped_column(Integer, nullable=False)
    start_verse: Mapped[Optional[int]] = mapped_column(Integer)
    end_verse: Mapped[Optional[int]] = mapped_column(Integer)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    context_snippet: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    entry: Mapped[SystematicEntry] = relationship(
        "SystematicEntry", back_populates="scripture_refs"
    )

    def covers_verse(self, verse: Optional[int]) -> bool:
        """
        Whether this edge matches ``verse``.

        With no verse every edge of the chapter matches. Otherwise the edge
        needs a start verse at or before it and an end verse at or after it
        (a missing end verse leaves the edge open-ended).
        """
        if verse is None:
            return True
        if self.start_verse is None or self.start_verse > verse:
            return False
        return self.end_verse is None or self.end_verse >= verse


class SystematicAnnotation(Base, TimestampMixin):
    """A highlight or free-text note attached to an entry."""

    __tablename__ = "systematic_annotations"
    __table_args__ = (
        CheckConstraint(
            "annotation_type IN ('highlight', 'note')",
            name="ck_systematic_annotation_type",
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    systematic_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("systematic_theology.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    annotation_type: Mapped[str] = mapped_column(String(20), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(20))
    content: Mapped[Optional[str]] = mapped_column(Text)
    text_selection: Mapped[Optional[str]] = mapped_column(Text)
    position_start: Mapped[Optional[int]] = mapped_column(Integer)
    position_end: Mapped[Optional[int]] = mapped_column(Integer)

    entry: Mapped[SystematicEntry] = relationship(
        "SystematicEntry", back_populates="annotations"
    )


class SystematicTag(Base):
    """Doctrine category; topics and chapters are tagged with these."""

    __tablename__ = "systematic_tags"
    __table_args__ = (
        CheckConstraint("name != ''", name="ck_systematic_tag_non_empty_name"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    color: Mapped[Optional[str]] = mapped_column(String(20))
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<SystematicTag(id={self.id}, name={self.name!r})>"


class SystematicRelated(Base):
    """Directed "see also" edge between two chapter numbers."""

    __tablename__ = "systematic_related"
    __table_args__ = (
        UniqueConstraint("source_chapter", "target_chapter", name="uq_systematic_related"),
        CheckConstraint(
            "source_chapter != target_chapter", name="ck_systematic_related_no_self"
        ),
        CheckConstraint(
            "relationship_type IN ('see_also', 'contrasts_with', 'builds_on')",
            name="ck_systematic_relationship_type",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_chapter: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    target_chapter: Mapped[int] = mapped_column(Integer, nullable=False)
    relationship_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="see_also"
    )
    note: Mapped[Optional[str]] = mapped_column(Text)
