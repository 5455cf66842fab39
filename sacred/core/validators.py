#!/usr/bin/env python3
"""
validators.py
--------------------
Data validation and normalization utilities for SACRED operations.

Provides type-safe conversion and the domain checks that the engine
enforces itself (verse-range ordering, enumerated note and annotation
types). Request-shape validation belongs to the caller.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import ValidationError


class DataValidator:
    """Centralized data validation for database operations."""

    @staticmethod
    def validate_required_fields(
        data: Dict[str, Any], required_fields: List[str]
    ) -> None:
        """
        Validate that required fields are present and non-empty.

        Args:
            data: Data dictionary to validate
            required_fields: List of required field names

        Raises:
            ValidationError: If validation fails
        """
        for field in required_fields:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f"Required field '{field}' missing or empty")

    @staticmethod
    def normalize_string(value: Any) -> Optional[str]:
        """
        Strip surrounding whitespace; empty strings become None.

        Args:
            value: Value to normalize

        Returns:
            Normalized string or None
        """
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @staticmethod
    def normalize_int(value: Any) -> Optional[int]:
        """
        Convert value to integer safely.

        Args:
            value: Value to convert

        Returns:
            Integer value or None when the value is empty or not numeric
        """
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            return int(value)
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def normalize_bool(value: Any) -> Optional[bool]:
        """
        Convert various inputs to boolean.

        Args:
            value: Value to convert

        Returns:
            Boolean value or None

        Raises:
            ValidationError: If conversion fails
        """
        if isinstance(value, bool):
            return value
        elif isinstance(value, (int, float)):
            if value in (0, 1):
                return bool(value)
            raise ValidationError(f"Cannot convert numeric '{value}' to boolean")
        elif isinstance(value, str):
            if value.lower() in ("true", "1", "yes", "on"):
                return True
            elif value.lower() in ("false", "0", "no", "off"):
                return False
            raise ValidationError(f"Cannot convert '{value}' to boolean")
        elif value is not None:
            return bool(value)
        return None

    @staticmethod
    def normalize_datetime(value: Any) -> Optional[datetime]:
        """
        Parse an ISO-8601 string (or pass through a datetime) as aware UTC.

        Naive values are assumed to be UTC. A trailing 'Z' is accepted.

        Args:
            value: datetime, ISO string or None

        Returns:
            Timezone-aware datetime or None

        Raises:
            ValidationError: If the string cannot be parsed
        """
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str):
            text = value.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError as e:
                raise ValidationError(f"Invalid timestamp '{value}': {e}")
        else:
            raise ValidationError(f"Invalid timestamp type: {type(value).__name__}")

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @staticmethod
    def validate_choice(value: str, choices: Iterable[str], field: str) -> str:
        """
        Ensure ``value`` is one of ``choices``.

        Raises:
            ValidationError: If the value is not allowed
        """
        allowed = list(choices)
        if value not in allowed:
            raise ValidationError(
                f"Invalid {field} '{value}'. Must be one of: {', '.join(allowed)}"
            )
        return value

    @staticmethod
    def validate_verse_range(
        start_chapter: int,
        start_verse: Optional[int],
        end_chapter: int,
        end_verse: Optional[int],
    ) -> None:
        """
        Enforce the ordering invariant of a verse range.

        ``start_chapter <= end_chapter``; within a single chapter,
        ``start_verse <= end_verse`` when both verses are given.

        Raises:
            ValidationError: If the range is reversed or chapters are not positive
        """
        if start_chapter is None or end_chapter is None:
            raise ValidationError("start_chapter and end_chapter are required")
        if start_chapter < 1 or end_chapter < 1:
            raise ValidationError("Chapter numbers must be positive")
        if start_chapter > end_chapter:
            raise ValidationError(
                f"start_chapter ({start_chapter}) must not exceed "
                f"end_chapter ({end_chapter})"
            )
        if (
            start_chapter == end_chapter
            and start_verse is not None
            and end_verse is not None
            and start_verse > end_verse
        ):
            raise ValidationError(
                f"start_verse ({start_verse}) must not exceed "
                f"end_verse ({end_verse}) within chapter {start_chapter}"
            )
