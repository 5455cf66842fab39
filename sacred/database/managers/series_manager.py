#!/usr/bin/env python3
"""
series_manager.py
--------------------
Manages sermon/study series and note membership.

A note belongs to at most one series. Deleting a series clears
``series_id`` on its notes; the notes themselves remain.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select, update

from sacred.core.exceptions import NotFoundError, ValidationError
from sacred.core.validators import DataValidator
from sacred.database.decorators import handle_db_errors, log_database_operation, validate_metadata
from sacred.database.models import Note, NoteType, Series

from .base_manager import BaseManager


class SeriesManager(BaseManager):
    """CRUD for Series plus adding/removing sermons."""

    @handle_db_errors
    @log_database_operation("get_series")
    def get(self, series_id: str) -> Optional[Series]:
        return self._get_by_id(Series, series_id)

    @handle_db_errors
    @log_database_operation("get_all_series")
    def get_all(self) -> List[Series]:
        return self._get_all(Series, Series.name)

    @handle_db_errors
    @log_database_operation("create_series")
    @validate_metadata(["name"])
    def create(self, metadata: Dict[str, Any]) -> Series:
        """
        Create a series.

        Args:
            metadata: Dictionary with keys name (required), description, id
        """
        series = Series(
            name=DataValidator.normalize_string(metadata["name"]),
            description=DataValidator.normalize_string(metadata.get("description")),
        )
        if metadata.get("id"):
            series.id = metadata["id"]
        self.session.add(series)
        self.session.flush()
        return series

    @handle_db_errors
    @log_database_operation("update_series")
    def update(self, series_id: str, metadata: Dict[str, Any]) -> Series:
        series = self._require(Series, series_id, "series")
        if "name" in metadata:
            name = DataValidator.normalize_string(metadata["name"])
            if not name:
                raise ValidationError("Series name is required")
            series.name = name
        self._update_scalar_fields(
            series, metadata, {"description": DataValidator.normalize_string}
        )
        self.session.flush()
        return series

    @handle_db_errors
    @log_database_operation("delete_series")
    def delete(self, series_id: str) -> None:
        """Delete a series, detaching its notes."""
        series = self._require(Series, series_id, "series")
        self.session.execute(
            update(Note).where(Note.series_id == series_id).values(series_id=None)
        )
        self.session.delete(series)
        self.session.flush()

    @handle_db_errors
    @log_database_operation("add_sermon_to_series")
    def add_note(self, series_id: str, note_id: str) -> Note:
        """
        Put a sermon note in a series.

        Raises:
            NotFoundError: Unknown series or note
            ValidationError: If the note is not a sermon
        """
        self._require(Series, series_id, "series")
        note = self._require(Note, note_id, "note")
        if note.type != NoteType.SERMON.value:
            raise ValidationError("Only sermon-type notes can be added to series")
        note.series_id = series_id
        self.session.flush()
        return note

    @handle_db_errors
    @log_database_operation("remove_sermon_from_series")
    def remove_note(self, series_id: str, note_id: str) -> Note:
        note = self._require(Note, note_id, "note")
        if note.series_id != series_id:
            raise NotFoundError("series_note", f"{series_id}/{note_id}")
        note.series_id = None
        self.session.flush()
        return note

    @handle_db_errors
    @log_database_operation("series_notes")
    def notes(self, series_id: str) -> List[Note]:
        self._require(Series, series_id, "series")
        return list(
            self.session.scalars(
                select(Note).where(Note.series_id == series_id).order_by(Note.created_at)
            )
        )
