#!/usr/bin/env python3
"""
inline_tag_manager.py
--------------------
Manages the kinds of inline highlights available in note content.

Five default types are seeded on a fresh database. Defaults can be
edited but not deleted; re-seeding restores their default attributes.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sacred.core.exceptions import DatabaseError, ValidationError
from sacred.core.validators import DataValidator
from sacred.database.decorators import handle_db_errors, log_database_operation, validate_metadata
from sacred.database.models import InlineTagType

from .base_manager import BaseManager

DEFAULT_INLINE_TAG_TYPES = (
    ("illustration", "Illustration", "#60a5fa", "💡", 0),
    ("application", "Application", "#34d399", "✅", 1),
    ("keypoint", "Key Point", "#fbbf24", "⭐", 2),
    ("quote", "Quote", "#a78bfa", "💬", 3),
    ("crossref", "Cross-Ref", "#f472b6", "🔗", 4),
)


class InlineTagManager(BaseManager):
    """CRUD for InlineTagType."""

    @handle_db_errors
    @log_database_operation("get_inline_tag_type")
    def get(self, type_id: str) -> Optional[InlineTagType]:
        return self._get_by_id(InlineTagType, type_id)

    @handle_db_errors
    @log_database_operation("get_all_inline_tag_types")
    def get_all(self) -> List[InlineTagType]:
        return self._get_all(InlineTagType, InlineTagType.sort_order, InlineTagType.name)

    @handle_db_errors
    @log_database_operation("create_inline_tag_type")
    @validate_metadata(["name", "color"])
    def create(self, metadata: Dict[str, Any]) -> InlineTagType:
        tag_type = InlineTagType(
            name=DataValidator.normalize_string(metadata["name"]),
            color=DataValidator.normalize_string(metadata["color"]),
            icon=DataValidator.normalize_string(metadata.get("icon")),
            is_default=False,
            sort_order=DataValidator.normalize_int(metadata.get("sort_order")) or 0,
        )
        if metadata.get("id"):
            tag_type.id = metadata["id"]
        self.session.add(tag_type)
        self.session.flush()
        return tag_type

    @handle_db_errors
    @log_database_operation("update_inline_tag_type")
    def update(self, type_id: str, metadata: Dict[str, Any]) -> InlineTagType:
        tag_type = self._require(InlineTagType, type_id, "inline_tag_type")
        for required in ("name", "color"):
            if required in metadata and not DataValidator.normalize_string(metadata[required]):
                raise ValidationError(f"Inline tag type {required} cannot be empty")
        self._update_scalar_fields(
            tag_type,
            metadata,
            {
                "name": DataValidator.normalize_string,
                "color": DataValidator.normalize_string,
                "icon": DataValidator.normalize_string,
                "sort_order": lambda v: DataValidator.normalize_int(v) or 0,
            },
        )
        self.session.flush()
        return tag_type

    @handle_db_errors
    @log_database_operation("delete_inline_tag_type")
    def delete(self, type_id: str) -> None:
        """
        Delete a custom tag type.

        Raises:
            NotFoundError: Unknown id
            DatabaseError: If the type is one of the defaults
        """
        tag_type = self._require(InlineTagType, type_id, "inline_tag_type")
        if tag_type.is_default:
            raise DatabaseError("Cannot delete default tag types")
        self.session.delete(tag_type)
        self.session.flush()

    @handle_db_errors
    @log_database_operation("seed_inline_tag_types")
    def seed_defaults(self) -> List[InlineTagType]:
        """Insert or restore the default tag types."""
        for type_id, name, color, icon, sort_order in DEFAULT_INLINE_TAG_TYPES:
            tag_type = self.session.get(InlineTagType, type_id)
            if tag_type is None:
                tag_type = InlineTagType(id=type_id)
                self.session.add(tag_type)
            tag_type.name = name
            tag_type.color = color
            tag_type.icon = icon
            tag_type.is_default = True
            tag_type.sort_order = sort_order
        self.session.flush()
        return self.get_all()
