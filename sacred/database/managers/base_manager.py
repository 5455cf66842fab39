#!/usr/bin/env python3
"""
base_manager.py
--------------------
Base manager providing common CRUD operations and utilities.
All entity managers inherit from this class.

Key Features:
    - Abstract base class holding the session and logger
    - Get-or-404 lookups raising NotFoundError
    - Generic existence, listing and counting helpers
    - Scalar field updates from metadata dictionaries

Usage:
    class SeriesManager(BaseManager):
        def create(self, metadata: Dict[str, Any]) -> Series:
            DataValidator.validate_required_fields(metadata, ["name"])
            ...
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from abc import ABC
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

# --- Third party imports ---
from sqlalchemy import func, select
from sqlalchemy.orm import Session

# --- Local imports ---
from sacred.core.exceptions import NotFoundError
from sacred.core.logging_manager import SacredLogger

T = TypeVar("T")


class BaseManager(ABC):
    """
    Abstract base manager providing common CRUD operations and utilities.

    Attributes:
        session: SQLAlchemy session for database operations
        logger: Optional logger for operation tracking
    """

    def __init__(self, session: Session, logger: Optional[SacredLogger] = None):
        """
        Initialize the base manager.

        Args:
            session: SQLAlchemy session
            logger: Optional logger for operation tracking
        """
        self.session = session
        self.logger = logger

    # -------------------------------------------------------------------------
    # Lookup Helpers
    # -------------------------------------------------------------------------

    def _get_by_id(self, model_class: Type[T], item_id: Optional[str]) -> Optional[T]:
        """Return the row with ``item_id`` or None."""
        if not item_id:
            return None
        return self.session.get(model_class, item_id)

    def _require(self, model_class: Type[T], item_id: Optional[str], kind: str) -> T:
        """
        Return the row with ``item_id``.

        Raises:
            NotFoundError: If no such row exists
        """
        obj = self._get_by_id(model_class, item_id)
        if obj is None:
            raise NotFoundError(kind, item_id)
        return obj

    def _exists(self, model_class: Type[T], item_id: Optional[str]) -> bool:
        return self._get_by_id(model_class, item_id) is not None

    # -------------------------------------------------------------------------
    # Generic CRUD Helpers
    # -------------------------------------------------------------------------

    def _get_all(self, model_class: Type[T], *order_by: Any) -> List[T]:
        """Return every row of ``model_class`` in the given order."""
        stmt = select(model_class)
        if order_by:
            stmt = stmt.order_by(*order_by)
        return list(self.session.scalars(stmt))

    def _count(self, model_class: Type[T]) -> int:
        return self.session.scalar(select(func.count()).select_from(model_class)) or 0

    def _update_scalar_fields(
        self,
        obj: Any,
        metadata: Dict[str, Any],
        field_configs: Dict[str, Callable[[Any], Any]],
    ) -> List[str]:
        """
        Copy present fields of ``metadata`` onto ``obj``.

        Args:
            obj: ORM instance to update
            metadata: Incoming values (absent keys are left untouched)
            field_configs: field name -> normalizer

        Returns:
            Names of the fields that were set
        """
        updated = []
        for field, normalizer in field_configs.items():
            if field not in metadata:
                continue
            setattr(obj, field, normalizer(metadata[field]))
            updated.append(field)
        return updated
