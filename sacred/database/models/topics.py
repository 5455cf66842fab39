"""
Topic Model
------------

The hierarchical topic taxonomy.

Topics form a forest through ``parent_id``. The parent graph must stay
acyclic; that is enforced by TopicManager, not by the schema. Ordering
among siblings is ``(sort_order, name)``.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from typing import TYPE_CHECKING, List, Optional

# --- Third party imports ---
from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

# --- Local imports ---
from .base import Base, TimestampMixin, new_id

if TYPE_CHECKING:
    from .systematic import SystematicTag


class Topic(Base, TimestampMixin):
    """
    A node of the topic taxonomy.

    Attributes:
        id: Opaque identifier
        name: Display name
        parent_id: Parent topic (None for roots)
        sort_order: Position among siblings
        systematic_tag_id: Doctrine category this topic belongs to
    """

    __tablename__ = "topics"
    __table_args__ = (
        CheckConstraint("name != ''", name="ck_topic_non_empty_name"),
        CheckConstraint("parent_id IS NULL OR parent_id != id", name="ck_topic_no_self_parent"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("topics.id", ondelete="CASCADE"), index=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    systematic_tag_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("systematic_tags.id", ondelete="SET NULL"), index=True
    )

    parent: Mapped[Optional["Topic"]] = relationship(
        "Topic", remote_side=[id], back_populates="children"
    )
    children: Mapped[List["Topic"]] = relationship(
        "Topic", back_populates="parent", passive_deletes=True
    )
    systematic_tag: Mapped[Optional["SystematicTag"]] = relationship("SystematicTag")

    def __repr__(self) -> str:
        return f"<Topic(id={self.id}, name={self.name!r}, parent_id={self.parent_id})>"

    def __str__(self) -> str:
        return self.name
