#!/usr/bin/env python3
"""
topic_manager.py
--------------------
Manages the hierarchical topic taxonomy.

Topics form a forest through ``parent_id``. This manager keeps that forest
acyclic and answers the structural questions asked of it:

    - tree(): nested view, each level sorted by (sort_order, name)
    - descendant_ids(): closure of a topic's subtree
    - note_count(): distinct notes in a subtree, by primary topic or tag
    - set_parent(): cycle-checked move
    - delete(): atomic subtree removal

Closures are computed with an explicit worklist over an in-memory
parent -> children index, bounded by the total number of topics, so that
malformed (cyclic) data cannot make a traversal run forever.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from sqlalchemy import delete, func, or_, select, update

from sacred.core.exceptions import DatabaseError, InvalidRelationshipError, NotFoundError, ValidationError
from sacred.core.validators import DataValidator
from sacred.database.decorators import DatabaseOperation, handle_db_errors, log_database_operation
from sacred.database.models import Note, SystematicTag, Topic, note_tags
from sacred.scripture.books import book_order

from .base_manager import BaseManager


DEFAULT_TOPICS = (
    (
        "Systematic Theology",
        (
            "Bibliology (Doctrine of Scripture)",
            "Theology Proper (Doctrine of God)",
            "Christology (Doctrine of Christ)",
            "Pneumatology (Doctrine of the Holy Spirit)",
            "Anthropology (Doctrine of Man)",
            "Hamartiology (Doctrine of Sin)",
            "Soteriology (Doctrine of Salvation)",
            "Ecclesiology (Doctrine of the Church)",
            "Eschatology (Doctrine of Last Things)",
        ),
    ),
    (
        "Practical",
        ("Discipleship", "Marriage & Family", "Leadership", "Prayer", "Evangelism"),
    ),
    ("Resources", ("Illustrations", "Applications", "Quotes", "Word Studies")),
)


@dataclass
class TopicNode:
    """A topic with its children, as returned by ``TopicManager.tree``."""
    id: str
    name: str
    parent_id: Optional[str]
    sort_order: int
    systematic_tag_id: Optional[str] = None
    children: List["TopicNode"] = field(default_factory=list)
    note_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "parentId": self.parent_id,
            "sortOrder": self.sort_order,
            "systematicTagId": self.systematic_tag_id,
            "children": [child.to_dict() for child in self.children],
        }
        if self.note_count is not None:
            data["noteCount"] = self.note_count
        return data


# ---------------------------------------------------------------------------
# Pure graph helpers
# ---------------------------------------------------------------------------

def collect_descendants(
    children_by_parent: Mapping[Optional[str], Iterable[str]],
    root: str,
    limit: int,
) -> Set[str]:
    """
    Return ``root`` and every id reachable below it.

    Args:
        children_by_parent: parent id -> child ids
        root: Starting id (always included)
        limit: Upper bound on visited nodes (the total topic count)

    The visited set stops revisits, so a cycle in the data ends the walk
    instead of looping.
    """
    seen: Set[str] = {root}
    worklist = [root]
    while worklist and len(seen) <= limit:
        current = worklist.pop()
        for child in children_by_parent.get(current, ()):
            if child not in seen:
                seen.add(child)
                worklist.append(child)
    return seen


def creates_cycle(
    parent_of: Mapping[str, Optional[str]],
    topic_id: str,
    new_parent_id: Optional[str],
) -> bool:
    """
    Whether making ``new_parent_id`` the parent of ``topic_id`` closes a loop.

    Walks the existing ancestor chain upward from the new parent. The walk
    is bounded by the number of known topics.
    """
    current = new_parent_id
    steps = 0
    while current is not None and steps <= len(parent_of):
        if current == topic_id:
            return True
        current = parent_of.get(current)
        steps += 1
    return False


def _sort_key(node: TopicNode):
    return (node.sort_order, node.name)


class TopicManager(BaseManager):
    """
    Manages Topic rows and the taxonomy invariants.

    Raises NotFoundError for unknown ids and InvalidRelationshipError for
    moves that would break the forest, always before mutating anything.
    """

    # -------------------------------------------------------------------------
    # Index helpers
    # -------------------------------------------------------------------------

    def _parent_map(self) -> Dict[str, Optional[str]]:
        rows = self.session.execute(select(Topic.id, Topic.parent_id))
        return {topic_id: parent_id for topic_id, parent_id in rows}

    @staticmethod
    def _children_index(parent_of: Mapping[str, Optional[str]]) -> Dict[Optional[str], List[str]]:
        children: Dict[Optional[str], List[str]] = {}
        for topic_id, parent_id in parent_of.items():
            children.setdefault(parent_id, []).append(topic_id)
        return children

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("get_topic")
    def get(self, topic_id: str) -> Optional[Topic]:
        return self._get_by_id(Topic, topic_id)

    @handle_db_errors
    @log_database_operation("get_all_topics")
    def get_all(self) -> List[Topic]:
        """Flat list of every topic, ordered by name."""
        return self._get_all(Topic, Topic.name)

    @handle_db_errors
    @log_database_operation("topic_tree")
    def tree(self, include_counts: bool = False) -> List[TopicNode]:
        """
        Build the topic forest from the flat set.

        Topics whose parent id does not resolve surface as roots. Each level
        is sorted by (sort_order, name).

        Args:
            include_counts: Attach ``note_count`` to every node

        Returns:
            Root nodes with nested children
        """
        topics = self._get_all(Topic)
        nodes = {
            t.id: TopicNode(
                id=t.id,
                name=t.name,
                parent_id=t.parent_id,
                sort_order=t.sort_order,
                systematic_tag_id=t.systematic_tag_id,
            )
            for t in topics
        }

        roots: List[TopicNode] = []
        for node in nodes.values():
            parent = nodes.get(node.parent_id) if node.parent_id else None
            if parent is None:
                roots.append(node)
            else:
                parent.children.append(node)

        for node in nodes.values():
            node.children.sort(key=_sort_key)
        roots.sort(key=_sort_key)

        if include_counts:
            self._attach_counts(nodes)
        return roots

    def _attach_counts(self, nodes: Dict[str, TopicNode]) -> None:
        """Compute note counts for every node from two in-memory indexes."""
        parent_of = {node.id: node.parent_id for node in nodes.values()}
        children = self._children_index(parent_of)

        notes_by_topic: Dict[str, Set[str]] = {}
        primary_rows = self.session.execute(
            select(Note.id, Note.primary_topic_id).where(Note.primary_topic_id.is_not(None))
        )
        tag_rows = self.session.execute(select(note_tags.c.note_id, note_tags.c.topic_id))
        for note_id, topic_id in list(primary_rows) + list(tag_rows):
            notes_by_topic.setdefault(topic_id, set()).add(note_id)

        for node in nodes.values():
            closure = collect_descendants(children, node.id, len(nodes))
            distinct: Set[str] = set()
            for topic_id in closure:
                distinct |= notes_by_topic.get(topic_id, set())
            node.note_count = len(distinct)

    @handle_db_errors
    @log_database_operation("topic_descendants")
    def descendant_ids(self, topic_id: str) -> Set[str]:
        """
        Return ``topic_id`` and the ids of all its descendants.

        Raises:
            NotFoundError: If the topic does not exist
        """
        parent_of = self._parent_map()
        if topic_id not in parent_of:
            raise NotFoundError("topic", topic_id)
        return collect_descendants(self._children_index(parent_of), topic_id, len(parent_of))

    @handle_db_errors
    @log_database_operation("topic_note_count")
    def note_count(self, topic_id: str) -> int:
        """
        Count distinct notes in the subtree of ``topic_id``.

        A note counts when its primary topic or any of its secondary tags is
        in the closure. Each note counts once.
        """
        closure = self.descendant_ids(topic_id)
        tagged = select(note_tags.c.note_id).where(note_tags.c.topic_id.in_(closure))
        stmt = select(func.count(func.distinct(Note.id))).where(
            or_(Note.primary_topic_id.in_(closure), Note.id.in_(tagged))
        )
        return self.session.scalar(stmt) or 0

    @handle_db_errors
    @log_database_operation("notes_for_topic")
    def notes_for_topic(self, topic_id: str) -> List[Note]:
        """Notes anywhere in the subtree, in Bible order."""
        closure = self.descendant_ids(topic_id)
        tagged = select(note_tags.c.note_id).where(note_tags.c.topic_id.in_(closure))
        notes = self.session.scalars(
            select(Note).where(or_(Note.primary_topic_id.in_(closure), Note.id.in_(tagged)))
        ).all()
        return sorted(
            notes,
            key=lambda n: (book_order(n.book), n.start_chapter, n.start_verse or 0),
        )

    # -------------------------------------------------------------------------
    # Write operations
    # -------------------------------------------------------------------------

    def _validate_tag(self, tag_id: Optional[str]) -> Optional[str]:
        if tag_id and self.session.get(SystematicTag, tag_id) is None:
            raise InvalidRelationshipError(
                f"Systematic tag does not exist: {tag_id}", "systematic_tag", tag_id
            )
        return tag_id or None

    @handle_db_errors
    @log_database_operation("create_topic")
    def create(self, metadata: Dict[str, Any]) -> Topic:
        """
        Create a topic.

        Args:
            metadata: Dictionary with keys:
                - name (required)
                - parent_id: Existing topic id or None
                - sort_order: int (default 0)
                - systematic_tag_id: Existing systematic tag id
                - id: Explicit id (generated when absent)

        Raises:
            ValidationError: If the name is empty
            InvalidRelationshipError: If the parent or tag does not exist
        """
        name = DataValidator.normalize_string(metadata.get("name"))
        if not name:
            raise ValidationError("Topic name is required")

        parent_id = metadata.get("parent_id") or None
        if parent_id and self.session.get(Topic, parent_id) is None:
            raise InvalidRelationshipError(
                f"Parent topic does not exist: {parent_id}", "topic", parent_id
            )

        topic = Topic(
            name=name,
            parent_id=parent_id,
            sort_order=DataValidator.normalize_int(metadata.get("sort_order")) or 0,
            systematic_tag_id=self._validate_tag(metadata.get("systematic_tag_id")),
        )
        if metadata.get("id"):
            topic.id = metadata["id"]
        self.session.add(topic)
        self.session.flush()
        return topic

    @handle_db_errors
    @log_database_operation("update_topic")
    def update(self, topic_id: str, metadata: Dict[str, Any]) -> Topic:
        """
        Update name, sort order, systematic tag and/or parent.

        A ``parent_id`` key routes through ``set_parent`` and its checks.
        """
        topic = self._require(Topic, topic_id, "topic")

        # Scalar changes are applied only once the move is accepted
        changes: Dict[str, Any] = {}
        if "name" in metadata:
            name = DataValidator.normalize_string(metadata["name"])
            if not name:
                raise ValidationError("Topic name is required")
            changes["name"] = name
        if "sort_order" in metadata:
            changes["sort_order"] = DataValidator.normalize_int(metadata["sort_order"]) or 0
        if "systematic_tag_id" in metadata:
            changes["systematic_tag_id"] = self._validate_tag(metadata["systematic_tag_id"])
        if "parent_id" in metadata:
            self.set_parent(topic_id, metadata["parent_id"] or None)

        for key, value in changes.items():
            setattr(topic, key, value)
        self.session.flush()
        return topic

    @handle_db_errors
    @log_database_operation("set_topic_parent")
    def set_parent(self, topic_id: str, new_parent_id: Optional[str]) -> Topic:
        """
        Move a topic under ``new_parent_id`` (None moves it to the root).

        Idempotent: re-applying the current parent changes nothing.

        Raises:
            NotFoundError: Unknown topic or parent
            InvalidRelationshipError: Self-parent, or the new parent lies in
                the topic's own subtree
        """
        topic = self._require(Topic, topic_id, "topic")
        if new_parent_id is not None:
            self._require(Topic, new_parent_id, "topic")

        if new_parent_id == topic_id:
            raise InvalidRelationshipError(
                "Topic cannot be its own parent", "topic", topic_id
            )
        if topic.parent_id == new_parent_id:
            return topic
        if creates_cycle(self._parent_map(), topic_id, new_parent_id):
            raise InvalidRelationshipError(
                f"Moving topic under {new_parent_id} would create a cycle",
                "topic",
                topic_id,
            )

        topic.parent_id = new_parent_id
        self.session.flush()
        return topic

    @handle_db_errors
    @log_database_operation("set_topic_systematic_tag")
    def set_systematic_tag(self, topic_id: str, tag_id: Optional[str]) -> Topic:
        topic = self._require(Topic, topic_id, "topic")
        topic.systematic_tag_id = self._validate_tag(tag_id)
        self.session.flush()
        return topic

    @handle_db_errors
    def delete(self, topic_id: str) -> int:
        """
        Delete a topic and its whole subtree as one atomic unit.

        Notes whose primary topic falls in the subtree keep existing with a
        cleared primary topic; secondary tags into the subtree are removed.
        Deepest topics are deleted first.

        Returns:
            Number of topics deleted

        Raises:
            NotFoundError: If the topic does not exist
        """
        with DatabaseOperation(self.logger, "delete_topic", {"topic_id": topic_id}):
            parent_of = self._parent_map()
            if topic_id not in parent_of:
                raise NotFoundError("topic", topic_id)
            closure = collect_descendants(
                self._children_index(parent_of), topic_id, len(parent_of)
            )

            with self.session.begin_nested():
                self.session.execute(
                    update(Note)
                    .where(Note.primary_topic_id.in_(closure))
                    .values(primary_topic_id=None)
                )
                self.session.execute(
                    delete(note_tags).where(note_tags.c.topic_id.in_(closure))
                )
                for level in reversed(self._levels(parent_of, topic_id, closure)):
                    self.session.execute(delete(Topic).where(Topic.id.in_(level)))

            # Bulk statements bypass relationship collections
            self.session.expire_all()
            return len(closure)

    @staticmethod
    def _levels(
        parent_of: Mapping[str, Optional[str]], root: str, closure: Set[str]
    ) -> List[List[str]]:
        """Group ``closure`` into depth levels below ``root`` (root first)."""
        children = TopicManager._children_index(
            {tid: parent_of[tid] for tid in closure}
        )
        levels: List[List[str]] = []
        placed: Set[str] = set()
        current = [root]
        while current:
            levels.append(current)
            placed.update(current)
            current = [
                child
                for tid in current
                for child in children.get(tid, ())
                if child not in placed
            ]
        return levels

    @handle_db_errors
    @log_database_operation("seed_topics")
    def seed_defaults(self) -> List[Topic]:
        """
        Create the default three-root taxonomy.

        Raises:
            DatabaseError: If any topic already exists
        """
        if self._count(Topic) > 0:
            raise DatabaseError("Topics already exist. Delete all topics first to reseed.")

        created: List[Topic] = []
        for root_order, (root_name, child_names) in enumerate(DEFAULT_TOPICS):
            root = Topic(name=root_name, sort_order=root_order)
            self.session.add(root)
            self.session.flush()
            created.append(root)
            for child_order, child_name in enumerate(child_names):
                child = Topic(name=child_name, parent_id=root.id, sort_order=child_order)
                self.session.add(child)
                created.append(child)
        self.session.flush()
        return created
