#!/usr/bin/env python3
"""
note_manager.py
--------------------
Manages Note rows: creation from structured fields or a free-text
reference, verse-range validation, topic and series links.

Every write checks the verse-range invariant and that referenced topics
and series exist before anything is flushed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Select, func, select

from sacred.core.exceptions import InvalidRelationshipError, ValidationError
from sacred.core.validators import DataValidator
from sacred.database.decorators import handle_db_errors, log_database_operation
from sacred.database.models import Note, NoteRelation, NoteType, Series, Topic, note_tags
from sacred.scripture.books import book_order, get_book
from sacred.scripture.reference_parser import parse_reference

from .base_manager import BaseManager

# Notes taken from each relation before de-duplication
RELATED_PER_RELATION = 5
# Start chapters at most this far apart count as a nearby passage
NEARBY_CHAPTERS = 2


@dataclass
class RelatedNote:
    """A note connected to another one, with the first relation that found it."""
    note: Note
    relation: NoteRelation


class NoteManager(BaseManager):
    """CRUD for notes and their secondary topic tags."""

    # -------------------------------------------------------------------------
    # Validation helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _range_from_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
        """
        Extract book and verse range from ``metadata``.

        A ``reference`` string ("Romans 3:21-26") takes precedence over the
        individual fields.
        """
        reference = metadata.get("reference")
        if reference:
            parsed = parse_reference(reference)
            if not parsed:
                raise ValidationError(f"Could not parse reference '{reference}': {parsed.reason}")
            return {
                "book": parsed.book,
                "start_chapter": parsed.start_chapter,
                "start_verse": parsed.start_verse,
                "end_chapter": parsed.end_chapter,
                "end_verse": parsed.end_verse,
            }

        DataValidator.validate_required_fields(metadata, ["book", "start_chapter"])
        start_chapter = DataValidator.normalize_int(metadata.get("start_chapter"))
        end_chapter = DataValidator.normalize_int(metadata.get("end_chapter"))
        return {
            "book": str(metadata["book"]).strip().upper(),
            "start_chapter": start_chapter,
            "start_verse": DataValidator.normalize_int(metadata.get("start_verse")),
            "end_chapter": end_chapter if end_chapter is not None else start_chapter,
            "end_verse": DataValidator.normalize_int(metadata.get("end_verse")),
        }

    @staticmethod
    def _validate_range(values: Dict[str, Any]) -> None:
        if get_book(values["book"]) is None:
            raise ValidationError(f"Unknown book code: {values['book']}")
        DataValidator.validate_verse_range(
            values["start_chapter"],
            values["start_verse"],
            values["end_chapter"],
            values["end_verse"],
        )

    def _check_topic(self, topic_id: Optional[str]) -> Optional[str]:
        if topic_id and self.session.get(Topic, topic_id) is None:
            raise InvalidRelationshipError(
                f"Primary topic does not exist: {topic_id}", "topic", topic_id
            )
        return topic_id or None

    def _check_series(self, series_id: Optional[str]) -> Optional[str]:
        if series_id and self.session.get(Series, series_id) is None:
            raise InvalidRelationshipError(
                f"Series does not exist: {series_id}", "series", series_id
            )
        return series_id or None

    def _resolve_tags(self, topic_ids: Iterable[str]) -> List[Topic]:
        topics = []
        for topic_id in dict.fromkeys(topic_ids):
            topic = self.session.get(Topic, topic_id)
            if topic is None:
                raise InvalidRelationshipError(
                    f"Tag topic does not exist: {topic_id}", "topic", topic_id
                )
            topics.append(topic)
        return topics

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("get_note")
    def get(self, note_id: str) -> Optional[Note]:
        return self._get_by_id(Note, note_id)

    @handle_db_errors
    @log_database_operation("get_all_notes")
    def get_all(self) -> List[Note]:
        """All notes in Bible order."""
        notes = self._get_all(Note)
        return sorted(
            notes,
            key=lambda n: (book_order(n.book), n.start_chapter, n.start_verse or 0),
        )

    @handle_db_errors
    @log_database_operation("notes_for_chapter")
    def for_chapter(self, book: str, chapter: int) -> List[Note]:
        """Notes whose chapter span covers ``book chapter``."""
        stmt = (
            select(Note)
            .where(
                Note.book == book.strip().upper(),
                Note.start_chapter <= chapter,
                Note.end_chapter >= chapter,
            )
            .order_by(Note.start_chapter, Note.start_verse)
        )
        return list(self.session.scalars(stmt))

    @handle_db_errors
    @log_database_operation("related_notes")
    def related_notes(self, note_id: str, limit: int = 10) -> List[RelatedNote]:
        """
        Notes connected to ``note_id``.

        Candidates are gathered per relation (same primary topic, nearby
        passage in the same book, shared secondary topics), each relation
        capped at RELATED_PER_RELATION. A note found by several relations is
        listed once under the first one.

        Args:
            note_id: Note to find neighbours for
            limit: Maximum number of results

        Raises:
            NotFoundError: If the note does not exist
            ValidationError: If ``limit`` is not positive
        """
        if limit < 1:
            raise ValidationError(f"limit must be positive (got {limit})")
        note = self._require(Note, note_id, "note")
        found: Dict[str, RelatedNote] = {}

        def collect(stmt: Select, relation: NoteRelation) -> None:
            for other in self.session.scalars(stmt.limit(RELATED_PER_RELATION)):
                found.setdefault(other.id, RelatedNote(other, relation))

        if note.primary_topic_id:
            collect(
                select(Note)
                .where(Note.primary_topic_id == note.primary_topic_id, Note.id != note.id)
                .order_by(Note.updated_at.desc()),
                NoteRelation.SAME_TOPIC,
            )

        distance = func.abs(Note.start_chapter - note.start_chapter)
        collect(
            select(Note)
            .where(Note.book == note.book, Note.id != note.id, distance <= NEARBY_CHAPTERS)
            .order_by(distance, Note.updated_at.desc()),
            NoteRelation.NEARBY_PASSAGE,
        )

        tag_ids = note.tag_ids
        if tag_ids:
            collect(
                select(Note)
                .join(note_tags, note_tags.c.note_id == Note.id)
                .where(note_tags.c.topic_id.in_(tag_ids), Note.id != note.id)
                .distinct()
                .order_by(Note.updated_at.desc()),
                NoteRelation.SHARED_TAGS,
            )

        return list(found.values())[:limit]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("create_note")
    def create(self, metadata: Dict[str, Any]) -> Note:
        """
        Create a note.

        Args:
            metadata: Dictionary with keys:
                - reference: Free-text reference, or
                - book, start_chapter, start_verse, end_chapter, end_verse
                - title, content
                - type: note | commentary | sermon (default note)
                - primary_topic_id, series_id
                - tags: Secondary topic ids
                - id: Explicit id (generated when absent)

        Raises:
            ValidationError: Bad reference, unknown book, reversed range, bad type
            InvalidRelationshipError: Unknown topic, tag or series
        """
        values = self._range_from_metadata(metadata)
        self._validate_range(values)
        note_type = DataValidator.validate_choice(
            metadata.get("type") or NoteType.NOTE.value, NoteType.choices(), "note type"
        )

        note = Note(
            **values,
            title=metadata.get("title") or "",
            content=metadata.get("content") or "",
            type=note_type,
            primary_topic_id=self._check_topic(metadata.get("primary_topic_id")),
            series_id=self._check_series(metadata.get("series_id")),
        )
        if metadata.get("id"):
            note.id = metadata["id"]
        note.tags = self._resolve_tags(metadata.get("tags") or [])

        self.session.add(note)
        self.session.flush()
        return note

    @handle_db_errors
    @log_database_operation("update_note")
    def update(self, note_id: str, metadata: Dict[str, Any]) -> Note:
        """
        Update a note in place. Absent keys are left untouched; the verse
        range is re-validated as a whole.
        """
        note = self._require(Note, note_id, "note")

        range_keys = ("reference", "book", "start_chapter", "start_verse", "end_chapter", "end_verse")
        if any(key in metadata for key in range_keys):
            current = {
                "book": note.book,
                "start_chapter": note.start_chapter,
                "start_verse": note.start_verse,
                "end_chapter": note.end_chapter,
                "end_verse": note.end_verse,
            }
            values = self._range_from_metadata({**current, **metadata})
            self._validate_range(values)
            for key, value in values.items():
                setattr(note, key, value)

        if "title" in metadata:
            note.title = metadata["title"] or ""
        if "content" in metadata:
            note.content = metadata["content"] or ""
        if "type" in metadata:
            note.type = DataValidator.validate_choice(
                metadata["type"], NoteType.choices(), "note type"
            )
        if "primary_topic_id" in metadata:
            note.primary_topic_id = self._check_topic(metadata["primary_topic_id"])
        if "series_id" in metadata:
            note.series_id = self._check_series(metadata["series_id"])
        if "tags" in metadata:
            note.tags = self._resolve_tags(metadata["tags"] or [])

        self.session.flush()
        return note

    @handle_db_errors
    @log_database_operation("set_note_tags")
    def set_tags(self, note_id: str, topic_ids: Iterable[str]) -> Note:
        """Replace the secondary topics of a note."""
        note = self._require(Note, note_id, "note")
        note.tags = self._resolve_tags(topic_ids)
        self.session.flush()
        return note

    @handle_db_errors
    @log_database_operation("delete_note")
    def delete(self, note_id: str) -> None:
        """Delete a note and its tag rows. Topics are never touched."""
        note = self._require(Note, note_id, "note")
        self.session.delete(note)
        self.session.flush()
