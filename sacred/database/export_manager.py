#!/usr/bin/env python3
"""
export_manager.py
-----------------
Full backup and restore of the SACRED database.

A snapshot is a plain dictionary with camelCase keys that serializes to
JSON or YAML:

    {
        "version": 4,
        "exportedAt": "2026-01-01T12:00:00+00:00",
        "notes": [...],                  # with seriesId, primaryTopicId, tags
        "topics": [...],                 # parents before children
        "inlineTagTypes": [...],
        "series": [...],
        "systematicAnnotations": [...],
        "statistics": {"notes": 12, "topics": 19, ..., "noteTags": 30}
    }

Import Strategy:
    Import is an upsert keyed by id, in dependency order:

        1. inlineTagTypes
        2. topics (in the given order; a parent must already exist)
        3. series
        4. systematicAnnotations (soft: failures are recorded only)
        5. notes, each followed by a replacement of its tag set

    Every row runs inside its own SAVEPOINT. A row that fails is rolled
    back and recorded in ``ImportResult.errors``; the surrounding
    transaction carries on. Whether the whole run is then committed is the
    caller's decision (``SacredDB.session_scope`` commits on return).

Reference Policy:
    - Topic whose parentId is neither in the store nor earlier in the
      batch: rejected (InvalidRelationshipError). Same for a parent that
      would close a cycle, and for an unknown systematicTagId.
    - Note whose primaryTopicId or seriesId does not exist: rejected.
    - Note tag pointing at an unknown topic: skipped and recorded with
      kind ``noteTag``; the note itself is kept.

    Export writes topics parent-before-child, so importing an export never
    trips the parent rule.

Usage:
    from sacred.database.export_manager import ExportManager

    exporter = ExportManager(logger=db.logger)
    with db.session_scope() as session:
        exporter.export_to_file(session, Path("backup.json"))

    with db.session_scope() as session:
        result = exporter.import_from_file(session, Path("backup.json"))
        print(result.inserted, result.updated, len(result.errors))

CLI Integration:
    sacred-db backup export backup.yaml
    sacred-db backup import backup.yaml
"""
from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sacred.core.exceptions import (
    BackupImportError,
    DatabaseError,
    ExportError,
    InvalidRelationshipError,
    ValidationError,
)
from sacred.core.logging_manager import SacredLogger, safe_logger
from sacred.core.validators import DataValidator

from .decorators import handle_db_errors, log_database_operation
from .managers.topic_manager import creates_cycle
from .models import (
    AnnotationType,
    InlineTagType,
    Note,
    NoteType,
    Series,
    SystematicAnnotation,
    SystematicEntry,
    SystematicTag,
    Topic,
    new_id,
    note_tags,
)
from sacred.scripture.books import get_book

SNAPSHOT_VERSION = 4

# Import order; also the keys of ImportResult.inserted / updated
IMPORT_KINDS = ("inlineTagTypes", "topics", "series", "systematicAnnotations", "notes")

_ROW_ERRORS = (DatabaseError, ValidationError, SQLAlchemyError, KeyError, TypeError, ValueError)


@dataclass
class ImportRowError:
    """One rejected row (or skipped note tag)."""
    id: Optional[str]
    kind: str
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.kind, "error": self.error}


@dataclass
class ImportResult:
    """Per-kind insert/update counts plus the collected row errors."""
    inserted: Dict[str, int] = field(default_factory=lambda: {k: 0 for k in IMPORT_KINDS})
    updated: Dict[str, int] = field(default_factory=lambda: {k: 0 for k in IMPORT_KINDS})
    errors: List[ImportRowError] = field(default_factory=list)

    @property
    def total_inserted(self) -> int:
        return sum(self.inserted.values())

    @property
    def total_updated(self) -> int:
        return sum(self.updated.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inserted": dict(self.inserted),
            "updated": dict(self.updated),
            "errors": [e.to_dict() for e in self.errors],
        }


# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------

def _iso(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string; naive values (as read back from SQLite) are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _timestamp(value: Any, default: datetime) -> datetime:
    return DataValidator.normalize_datetime(value) or default


class ExportManager:
    """
    Snapshot export and dependency-ordered upsert import.

    Methods take the session as their first argument so that the caller
    owns the transaction.
    """

    def __init__(self, logger: Optional[SacredLogger] = None) -> None:
        """
        Initialize export manager.

        Args:
            logger: Optional logger for export operations
        """
        self.logger = logger

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    @staticmethod
    def _serialize_note(note: Note, tags: List[str]) -> Dict[str, Any]:
        return {
            "id": note.id,
            "book": note.book,
            "startChapter": note.start_chapter,
            "startVerse": note.start_verse,
            "endChapter": note.end_chapter,
            "endVerse": note.end_verse,
            "title": note.title,
            "content": note.content,
            "type": note.type,
            "primaryTopicId": note.primary_topic_id,
            "seriesId": note.series_id,
            "tags": tags,
            "createdAt": _iso(note.created_at),
            "updatedAt": _iso(note.updated_at),
        }

    @staticmethod
    def _serialize_topic(topic: Topic) -> Dict[str, Any]:
        return {
            "id": topic.id,
            "name": topic.name,
            "parentId": topic.parent_id,
            "sortOrder": topic.sort_order,
            "systematicTagId": topic.systematic_tag_id,
            "createdAt": _iso(topic.created_at),
            "updatedAt": _iso(topic.updated_at),
        }

    @staticmethod
    def _serialize_inline_tag_type(tag_type: InlineTagType) -> Dict[str, Any]:
        return {
            "id": tag_type.id,
            "name": tag_type.name,
            "color": tag_type.color,
            "icon": tag_type.icon,
            "isDefault": bool(tag_type.is_default),
            "sortOrder": tag_type.sort_order,
            "createdAt": _iso(tag_type.created_at),
        }

    @staticmethod
    def _serialize_series(series: Series) -> Dict[str, Any]:
        return {
            "id": series.id,
            "name": series.name,
            "description": series.description,
            "createdAt": _iso(series.created_at),
            "updatedAt": _iso(series.updated_at),
        }

    @staticmethod
    def _serialize_annotation(annotation: SystematicAnnotation) -> Dict[str, Any]:
        return {
            "id": annotation.id,
            "systematicId": annotation.systematic_id,
            "annotationType": annotation.annotation_type,
            "color": annotation.color,
            "content": annotation.content,
            "textSelection": annotation.text_selection,
            "positionStart": annotation.position_start,
            "positionEnd": annotation.position_end,
            "createdAt": _iso(annotation.created_at),
            "updatedAt": _iso(annotation.updated_at),
        }

    @staticmethod
    def _topics_parent_first(topics: List[Topic]) -> List[Topic]:
        """
        Order topics so every parent precedes its children.

        Breadth-first from the roots (topics whose parent is absent), each
        level by (sort_order, name). Topics unreachable from any root, which
        only happens with cyclic data, are appended at the end.
        """
        by_id = {t.id: t for t in topics}
        children: Dict[Optional[str], List[Topic]] = {}
        for topic in topics:
            parent = topic.parent_id if topic.parent_id in by_id else None
            children.setdefault(parent, []).append(topic)
        for siblings in children.values():
            siblings.sort(key=lambda t: (t.sort_order, t.name))

        ordered: List[Topic] = []
        seen = set()
        queue = deque(children.get(None, []))
        while queue:
            topic = queue.popleft()
            if topic.id in seen:
                continue
            seen.add(topic.id)
            ordered.append(topic)
            queue.extend(children.get(topic.id, []))

        ordered.extend(t for t in topics if t.id not in seen)
        return ordered

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("export_all")
    def export_all(self, session: Session) -> Dict[str, Any]:
        """
        Build a complete snapshot of user data.

        Args:
            session: SQLAlchemy session

        Returns:
            Snapshot dictionary (see module docstring)
        """
        notes = session.scalars(select(Note).order_by(Note.created_at, Note.id)).all()
        topics = session.scalars(select(Topic).order_by(Topic.created_at)).all()
        inline_types = session.scalars(
            select(InlineTagType).order_by(InlineTagType.sort_order, InlineTagType.name)
        ).all()
        series = session.scalars(select(Series).order_by(Series.created_at)).all()
        annotations = session.scalars(
            select(SystematicAnnotation).order_by(SystematicAnnotation.created_at)
        ).all()

        tags_by_note: Dict[str, List[str]] = {}
        for note_id, topic_id in session.execute(
            select(note_tags.c.note_id, note_tags.c.topic_id).order_by(note_tags.c.topic_id)
        ):
            tags_by_note.setdefault(note_id, []).append(topic_id)
        tag_rows = sum(len(v) for v in tags_by_note.values())

        snapshot = {
            "version": SNAPSHOT_VERSION,
            "exportedAt": _iso(datetime.now(timezone.utc)),
            "notes": [self._serialize_note(n, tags_by_note.get(n.id, [])) for n in notes],
            "topics": [self._serialize_topic(t) for t in self._topics_parent_first(list(topics))],
            "inlineTagTypes": [self._serialize_inline_tag_type(t) for t in inline_types],
            "series": [self._serialize_series(s) for s in series],
            "systematicAnnotations": [self._serialize_annotation(a) for a in annotations],
            "statistics": {
                "notes": len(notes),
                "topics": len(topics),
                "inlineTagTypes": len(inline_types),
                "series": len(series),
                "systematicAnnotations": len(annotations),
                "noteTags": tag_rows,
            },
        }

        safe_logger(self.logger).log_info("Snapshot built", snapshot["statistics"])
        return snapshot

    @log_database_operation("export_to_file")
    def export_to_file(self, session: Session, output_file: Union[str, Path]) -> Dict[str, Any]:
        """
        Write a snapshot to ``output_file`` (.json, .yaml or .yml).

        The file is written next to its destination first and then moved
        into place.

        Returns:
            The snapshot statistics

        Raises:
            ExportError: Unsupported extension or write failure
        """
        output_file = Path(output_file)
        suffix = output_file.suffix.lower()
        if suffix not in (".json", ".yaml", ".yml"):
            raise ExportError(f"Unsupported export format: {suffix or '(none)'}")

        snapshot = self.export_all(session)

        temp_file = output_file.with_name(f".{output_file.name}.tmp")
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                if suffix == ".json":
                    json.dump(snapshot, f, indent=2, ensure_ascii=False)
                else:
                    yaml.safe_dump(snapshot, f, sort_keys=False, allow_unicode=True)
            temp_file.replace(output_file)
        except (OSError, yaml.YAMLError, TypeError) as e:
            temp_file.unlink(missing_ok=True)
            raise ExportError(f"Failed to write snapshot to {output_file}: {e}") from e

        return snapshot["statistics"]

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    def _run_rows(
        self,
        session: Session,
        rows: List[Dict[str, Any]],
        kind: str,
        error_kind: str,
        upsert: Callable[[Session, Dict[str, Any], List[ImportRowError]], bool],
        result: ImportResult,
    ) -> None:
        """
        Upsert each row in its own SAVEPOINT, recording failures.

        Soft errors raised by an upsert are kept only if its row commits.
        """
        for row in rows:
            row_errors: List[ImportRowError] = []
            row_id = row.get("id") if isinstance(row, dict) else None
            try:
                if not isinstance(row, dict):
                    raise ValidationError(f"Expected an object, got {type(row).__name__}")
                with session.begin_nested():
                    inserted = upsert(session, row, row_errors)
                    session.flush()
            except _ROW_ERRORS as e:
                result.errors.append(ImportRowError(row_id, error_kind, str(e)))
                safe_logger(self.logger).log_warning(
                    f"Import rejected {error_kind}", {"id": row_id, "error": str(e)}
                )
                continue
            result.errors.extend(row_errors)
            if inserted:
                result.inserted[kind] += 1
            else:
                result.updated[kind] += 1

    def _upsert_inline_tag_type(self, session: Session, row: Dict[str, Any], row_errors: List[ImportRowError]) -> bool:
        DataValidator.validate_required_fields(row, ["id", "name", "color"])
        now = datetime.now(timezone.utc)
        tag_type = session.get(InlineTagType, row["id"])
        inserted = tag_type is None
        if inserted:
            tag_type = InlineTagType(
                id=row["id"],
                is_default=bool(DataValidator.normalize_bool(row.get("isDefault"))),
                created_at=_timestamp(row.get("createdAt"), now),
            )
            session.add(tag_type)
        tag_type.name = row["name"]
        tag_type.color = row["color"]
        tag_type.icon = row.get("icon")
        tag_type.sort_order = row.get("sortOrder") or 0
        return inserted

    def _upsert_topic(self, session: Session, row: Dict[str, Any], row_errors: List[ImportRowError]) -> bool:
        DataValidator.validate_required_fields(row, ["id", "name"])
        topic_id = row["id"]
        parent_id = row.get("parentId") or None
        tag_id = row.get("systematicTagId") or None

        if parent_id is not None:
            if parent_id == topic_id:
                raise InvalidRelationshipError("Topic cannot be its own parent", "topic", topic_id)
            if session.get(Topic, parent_id) is None:
                raise InvalidRelationshipError(
                    f"Parent topic {parent_id} is not in the store or earlier in the batch",
                    "topic",
                    topic_id,
                )
            parent_of = dict(session.execute(select(Topic.id, Topic.parent_id)).all())
            if creates_cycle(parent_of, topic_id, parent_id):
                raise InvalidRelationshipError(
                    f"Parent {parent_id} would create a cycle", "topic", topic_id
                )
        if tag_id is not None and session.get(SystematicTag, tag_id) is None:
            raise InvalidRelationshipError(
                f"Systematic tag does not exist: {tag_id}", "topic", topic_id
            )

        now = datetime.now(timezone.utc)
        topic = session.get(Topic, topic_id)
        inserted = topic is None
        if inserted:
            topic = Topic(id=topic_id, created_at=_timestamp(row.get("createdAt"), now))
            session.add(topic)
        topic.name = row["name"]
        topic.parent_id = parent_id
        topic.sort_order = row.get("sortOrder") or 0
        topic.systematic_tag_id = tag_id
        topic.updated_at = _timestamp(row.get("updatedAt"), now)
        return inserted

    def _upsert_series(self, session: Session, row: Dict[str, Any], row_errors: List[ImportRowError]) -> bool:
        DataValidator.validate_required_fields(row, ["id", "name"])
        now = datetime.now(timezone.utc)
        series = session.get(Series, row["id"])
        inserted = series is None
        if inserted:
            series = Series(id=row["id"], created_at=_timestamp(row.get("createdAt"), now))
            session.add(series)
        series.name = row["name"]
        series.description = row.get("description")
        series.updated_at = _timestamp(row.get("updatedAt"), now)
        return inserted

    def _upsert_annotation(self, session: Session, row: Dict[str, Any], row_errors: List[ImportRowError]) -> bool:
        DataValidator.validate_required_fields(row, ["id", "systematicId", "annotationType"])
        annotation_type = DataValidator.validate_choice(
            row["annotationType"], AnnotationType.choices(), "annotation type"
        )
        if session.get(SystematicEntry, row["systematicId"]) is None:
            raise InvalidRelationshipError(
                f"Systematic entry does not exist: {row['systematicId']}",
                "systematicAnnotation",
                row["id"],
            )

        now = datetime.now(timezone.utc)
        annotation = session.get(SystematicAnnotation, row["id"])
        inserted = annotation is None
        if inserted:
            annotation = SystematicAnnotation(
                id=row["id"],
                systematic_id=row["systematicId"],
                created_at=_timestamp(row.get("createdAt"), now),
            )
            session.add(annotation)
        annotation.annotation_type = annotation_type
        annotation.color = row.get("color")
        annotation.content = row.get("content")
        annotation.text_selection = row.get("textSelection")
        annotation.position_start = row.get("positionStart")
        annotation.position_end = row.get("positionEnd")
        annotation.updated_at = _timestamp(row.get("updatedAt"), now)
        return inserted

    def _upsert_note(self, session: Session, row: Dict[str, Any], row_errors: List[ImportRowError]) -> bool:
        DataValidator.validate_required_fields(row, ["book", "startChapter", "endChapter"])
        if not row.get("id"):
            row = {**row, "id": new_id()}
        note_id = row["id"]

        book = str(row["book"]).strip().upper()
        if get_book(book) is None:
            raise ValidationError(f"Unknown book code: {row['book']}")
        start_chapter = DataValidator.normalize_int(row["startChapter"])
        end_chapter = DataValidator.normalize_int(row["endChapter"])
        start_verse = DataValidator.normalize_int(row.get("startVerse"))
        end_verse = DataValidator.normalize_int(row.get("endVerse"))
        DataValidator.validate_verse_range(start_chapter, start_verse, end_chapter, end_verse)
        note_type = DataValidator.validate_choice(
            row.get("type") or NoteType.NOTE.value, NoteType.choices(), "note type"
        )

        primary_topic_id = row.get("primaryTopicId") or None
        if primary_topic_id and session.get(Topic, primary_topic_id) is None:
            raise InvalidRelationshipError(
                f"Primary topic does not exist: {primary_topic_id}", "note", note_id
            )
        series_id = row.get("seriesId") or None
        if series_id and session.get(Series, series_id) is None:
            raise InvalidRelationshipError(
                f"Series does not exist: {series_id}", "note", note_id
            )

        now = datetime.now(timezone.utc)
        note = session.get(Note, note_id)
        inserted = note is None
        if inserted:
            note = Note(id=note_id, created_at=_timestamp(row.get("createdAt"), now))
            session.add(note)

        note.book = book
        note.start_chapter = start_chapter
        note.start_verse = start_verse
        note.end_chapter = end_chapter
        note.end_verse = end_verse
        note.title = row.get("title") or ""
        note.content = row.get("content") or ""
        note.type = note_type
        note.primary_topic_id = primary_topic_id
        note.series_id = series_id
        note.updated_at = _timestamp(row.get("updatedAt"), now)

        # Replace the tag set; unknown topics are skipped and recorded
        tags: List[Topic] = []
        for tag_id in dict.fromkeys(row.get("tags") or []):
            topic = session.get(Topic, tag_id)
            if topic is None:
                row_errors.append(
                    ImportRowError(f"{note_id}:{tag_id}", "noteTag", f"Topic does not exist: {tag_id}")
                )
                continue
            tags.append(topic)
        note.tags = tags
        return inserted

    @handle_db_errors
    @log_database_operation("import_all")
    def import_all(self, session: Session, snapshot: Dict[str, Any]) -> ImportResult:
        """
        Upsert a snapshot into the store.

        Args:
            session: SQLAlchemy session (the caller commits)
            snapshot: Snapshot dictionary; unknown keys are ignored

        Returns:
            ImportResult with per-kind counts and row errors

        Raises:
            BackupImportError: If the snapshot is not an object with a
                ``notes`` list, or another section is not a list
        """
        if not isinstance(snapshot, dict) or not isinstance(snapshot.get("notes"), list):
            raise BackupImportError("Invalid import data: notes array required")
        for key in IMPORT_KINDS:
            if snapshot.get(key) is not None and not isinstance(snapshot[key], list):
                raise BackupImportError(f"Invalid import data: {key} must be an array")

        result = ImportResult()
        steps = (
            ("inlineTagTypes", "inlineTagType", self._upsert_inline_tag_type),
            ("topics", "topic", self._upsert_topic),
            ("series", "series", self._upsert_series),
            ("systematicAnnotations", "systematicAnnotation", self._upsert_annotation),
            ("notes", "note", self._upsert_note),
        )
        for kind, error_kind, upsert in steps:
            self._run_rows(session, snapshot.get(kind) or [], kind, error_kind, upsert, result)

        safe_logger(self.logger).log_operation(
            "import_summary",
            {
                "inserted": result.inserted,
                "updated": result.updated,
                "errors": len(result.errors),
            },
        )
        return result

    @log_database_operation("import_from_file")
    def import_from_file(self, session: Session, input_file: Union[str, Path]) -> ImportResult:
        """
        Read a JSON or YAML snapshot file and import it.

        Raises:
            BackupImportError: Missing, unreadable or malformed file
        """
        input_file = Path(input_file)
        if not input_file.exists():
            raise BackupImportError(f"Snapshot file not found: {input_file}")

        try:
            with open(input_file, "r", encoding="utf-8") as f:
                if input_file.suffix.lower() in (".yaml", ".yml"):
                    snapshot = yaml.safe_load(f)
                else:
                    snapshot = json.load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise BackupImportError(f"Could not read snapshot {input_file}: {e}") from e

        return self.import_all(session, snapshot)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("delete_all_notes")
    def delete_all_notes(self, session: Session) -> int:
        """Delete every note (and its tag rows). Returns the number deleted."""
        count = session.scalar(select(func.count()).select_from(Note)) or 0
        session.execute(delete(note_tags))
        session.execute(delete(Note))
        session.expire_all()
        return count

    @handle_db_errors
    @log_database_operation("last_modified")
    def last_modified(self, session: Session) -> Optional[datetime]:
        """Most recent ``updated_at`` across notes, or None when empty."""
        value = session.scalar(select(func.max(Note.updated_at)))
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value
