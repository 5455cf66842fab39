#!/usr/bin/env python3
"""
systematic_manager.py
--------------------
Manages the systematic-theology reference work and its Scripture index.

The work is a four-level tree (part > chapter > section > subsection).
Entries are joined to Bible passages through ``ScriptureIndexEntry`` edges
and to notes through ``[[ST:...]]`` link tokens embedded in note content.

Passage -> doctrine:
    doctrines_for_passage(book, chapter, verse)

Doctrine -> notes:
    notes_referencing(systematic_id)

Passage -> topics:
    suggest_topics_for_passage(book, chapter, verse)
    Composes doctrines for the passage, the doctrine categories of their
    chapters and the topics carrying those categories, then adds the
    primary topics of notes already written on the chapter.

Note -> missing doctrine links:
    suggest_doctrine_links(note_id, apply=False)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, func, or_, select

from sacred.core.exceptions import InvalidRelationshipError, NotFoundError, ValidationError
from sacred.core.validators import DataValidator
from sacred.database.decorators import handle_db_errors, log_database_operation
from sacred.database.models import (
    AnnotationType,
    EntryType,
    Note,
    RelationshipType,
    ScriptureIndexEntry,
    SuggestionSource,
    SystematicAnnotation,
    SystematicEntry,
    SystematicRelated,
    SystematicTag,
    Topic,
    systematic_chapter_tags,
)
from sacred.scripture.books import get_book
from sacred.scripture.doctrine_links import (
    DoctrineAddress,
    find_link_tokens,
    parse_reference_string,
)

from .base_manager import BaseManager


DEFAULT_SYSTEMATIC_TAGS = (
    ("doctrine-word", "Doctrine of the Word of God", "#3b82f6", 1),
    ("doctrine-god", "Doctrine of God", "#8b5cf6", 2),
    ("doctrine-man", "Doctrine of Man", "#10b981", 3),
    ("doctrine-christ-spirit", "Doctrines of Christ and the Holy Spirit", "#f59e0b", 4),
    ("doctrine-salvation", "Doctrine of the Application of Redemption", "#ef4444", 5),
    ("doctrine-church", "Doctrine of the Church", "#ec4899", 6),
    ("doctrine-future", "Doctrine of the Future", "#06b6d4", 7),
)

# Primary doctrines proposed per note
MAX_LINK_SUGGESTIONS = 5


@dataclass
class DoctrineMatch:
    """An entry found for a passage, with the edge that matched it."""
    entry: SystematicEntry
    is_primary: bool
    context_snippet: Optional[str]


@dataclass
class TopicSuggestion:
    """A topic proposed for a passage and why."""
    topic_id: str
    name: str
    source: SuggestionSource


def _escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return (
        value.replace(escape, escape * 2)
        .replace("%", f"{escape}%")
        .replace("_", f"{escape}_")
    )


def _normalize_book(book: str) -> str:
    code = (book or "").strip().upper()
    if get_book(code) is None:
        raise ValidationError(f"Unknown book code: {book}")
    return code


class SystematicManager(BaseManager):
    """Entries, their Scripture index, annotations, tags and relations."""

    # -------------------------------------------------------------------------
    # Entry lookup
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("get_systematic_entry")
    def get_entry(self, entry_id: str) -> Optional[SystematicEntry]:
        return self._get_by_id(SystematicEntry, entry_id)

    def _find_by_address(self, address: DoctrineAddress) -> Optional[SystematicEntry]:
        conditions = [SystematicEntry.chapter_number == address.chapter_number]
        if address.section_letter is None:
            conditions.append(SystematicEntry.entry_type == EntryType.CHAPTER.value)
        else:
            conditions.append(
                func.upper(SystematicEntry.section_letter) == address.section_letter
            )
            if address.subsection_number is None:
                conditions.append(SystematicEntry.entry_type == EntryType.SECTION.value)
            else:
                conditions.append(
                    SystematicEntry.subsection_number == address.subsection_number
                )
        return self.session.scalars(
            select(SystematicEntry).where(*conditions).limit(1)
        ).first()

    @handle_db_errors
    @log_database_operation("get_systematic_by_reference")
    def get_by_reference(self, reference: str) -> SystematicEntry:
        """
        Resolve a reference string (``Ch32:A.1``) or an entry id.

        Raises:
            NotFoundError: If nothing matches
        """
        address = parse_reference_string(reference)
        entry = self._find_by_address(address) if address else None
        if entry is None:
            entry = self._get_by_id(SystematicEntry, reference)
        if entry is None:
            raise NotFoundError("systematic_entry", reference)
        return entry

    @handle_db_errors
    @log_database_operation("get_systematic_chapter")
    def get_chapter(self, chapter_number: int) -> Dict[str, Any]:
        """
        Chapter entry with its sections, Scripture references, related
        chapters and doctrine tags.
        """
        chapter = self.session.scalars(
            select(SystematicEntry).where(
                SystematicEntry.entry_type == EntryType.CHAPTER.value,
                SystematicEntry.chapter_number == chapter_number,
            )
        ).first()
        if chapter is None:
            raise NotFoundError("chapter", f"Ch{chapter_number}")

        sections = self.session.scalars(
            select(SystematicEntry)
            .where(
                SystematicEntry.chapter_number == chapter_number,
                SystematicEntry.entry_type.in_(
                    [EntryType.SECTION.value, EntryType.SUBSECTION.value]
                ),
            )
            .order_by(SystematicEntry.sort_order)
        ).all()

        scripture_refs = self.session.scalars(
            select(ScriptureIndexEntry)
            .join(SystematicEntry)
            .where(SystematicEntry.chapter_number == chapter_number)
            .order_by(
                ScriptureIndexEntry.is_primary.desc(),
                ScriptureIndexEntry.book,
                ScriptureIndexEntry.chapter,
                ScriptureIndexEntry.start_verse,
            )
        ).all()

        related_rows = self.session.execute(
            select(SystematicRelated, SystematicEntry.title)
            .join(
                SystematicEntry,
                and_(
                    SystematicEntry.chapter_number == SystematicRelated.target_chapter,
                    SystematicEntry.entry_type == EntryType.CHAPTER.value,
                ),
            )
            .where(SystematicRelated.source_chapter == chapter_number)
        ).all()

        return {
            "chapter": chapter,
            "sections": list(sections),
            "scripture_refs": list(scripture_refs),
            "related": [
                {
                    "chapter_number": rel.target_chapter,
                    "title": title,
                    "relationship_type": rel.relationship_type,
                }
                for rel, title in related_rows
            ],
            "tags": self.tags_for_chapter(chapter_number),
        }

    @handle_db_errors
    @log_database_operation("systematic_tree")
    def get_tree(self) -> List[Dict[str, Any]]:
        """Nested view of the whole work, parts at the top."""
        entries = self._get_all(SystematicEntry, SystematicEntry.sort_order)
        nodes = {
            e.id: {
                "id": e.id,
                "entry_type": e.entry_type,
                "reference": e.reference,
                "title": e.title,
                "children": [],
            }
            for e in entries
        }
        roots = []
        for e in entries:
            parent = nodes.get(e.parent_id) if e.parent_id else None
            (parent["children"] if parent else roots).append(nodes[e.id])
        return roots

    @handle_db_errors
    @log_database_operation("systematic_summary")
    def summary(self) -> Dict[str, int]:
        """Entry counts by level plus index and annotation totals."""
        by_type = dict(
            self.session.execute(
                select(SystematicEntry.entry_type, func.count()).group_by(
                    SystematicEntry.entry_type
                )
            ).all()
        )
        return {
            "total_entries": sum(by_type.values()),
            "parts": by_type.get(EntryType.PART.value, 0),
            "chapters": by_type.get(EntryType.CHAPTER.value, 0),
            "sections": by_type.get(EntryType.SECTION.value, 0),
            "subsections": by_type.get(EntryType.SUBSECTION.value, 0),
            "scripture_references": self._count(ScriptureIndexEntry),
            "annotations": self._count(SystematicAnnotation),
        }

    # -------------------------------------------------------------------------
    # Entry writes
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("create_systematic_entry")
    def create_entry(self, metadata: Dict[str, Any]) -> SystematicEntry:
        """
        Create an entry.

        Args:
            metadata: Dictionary with keys:
                - entry_type (required): part | chapter | section | subsection
                - title (required)
                - part_number, chapter_number, section_letter, subsection_number
                - content, summary, parent_id, sort_order, id
        """
        DataValidator.validate_required_fields(metadata, ["entry_type", "title"])
        entry_type = DataValidator.validate_choice(
            metadata["entry_type"], EntryType.choices(), "entry_type"
        )

        parent_id = metadata.get("parent_id") or None
        if parent_id and self.session.get(SystematicEntry, parent_id) is None:
            raise InvalidRelationshipError(
                f"Parent entry does not exist: {parent_id}", "systematic_entry", parent_id
            )

        chapter_number = DataValidator.normalize_int(metadata.get("chapter_number"))
        if entry_type != EntryType.PART.value and chapter_number is None:
            raise ValidationError(f"A {entry_type} entry needs a chapter_number")

        section_letter = DataValidator.normalize_string(metadata.get("section_letter"))
        content = metadata.get("content")
        entry = SystematicEntry(
            entry_type=entry_type,
            part_number=DataValidator.normalize_int(metadata.get("part_number")),
            chapter_number=chapter_number,
            section_letter=section_letter.upper() if section_letter else None,
            subsection_number=DataValidator.normalize_int(metadata.get("subsection_number")),
            title=DataValidator.normalize_string(metadata["title"]),
            content=content,
            summary=metadata.get("summary"),
            parent_id=parent_id,
            sort_order=DataValidator.normalize_int(metadata.get("sort_order")) or 0,
            word_count=len(content.split()) if content else 0,
        )
        if metadata.get("id"):
            entry.id = metadata["id"]
        self.session.add(entry)
        self.session.flush()
        return entry

    @handle_db_errors
    @log_database_operation("add_scripture_reference")
    def add_scripture_reference(
        self,
        systematic_id: str,
        book: str,
        chapter: int,
        start_verse: Optional[int] = None,
        end_verse: Optional[int] = None,
        is_primary: bool = False,
        context_snippet: Optional[str] = None,
    ) -> ScriptureIndexEntry:
        """Index ``systematic_id`` against a passage."""
        self._require(SystematicEntry, systematic_id, "systematic_entry")
        if chapter is None or chapter < 1:
            raise ValidationError(f"Invalid chapter: {chapter}")
        if start_verse is not None and end_verse is not None and start_verse > end_verse:
            raise ValidationError(
                f"start_verse ({start_verse}) must not exceed end_verse ({end_verse})"
            )

        ref = ScriptureIndexEntry(
            systematic_id=systematic_id,
            book=_normalize_book(book),
            chapter=chapter,
            start_verse=start_verse,
            end_verse=end_verse,
            is_primary=bool(is_primary),
            context_snippet=context_snippet,
        )
        self.session.add(ref)
        self.session.flush()
        return ref

    @handle_db_errors
    @log_database_operation("delete_systematic_entry")
    def delete_entry(self, entry_id: str) -> None:
        """Delete an entry; its index edges and annotations go with it."""
        entry = self._require(SystematicEntry, entry_id, "systematic_entry")
        self.session.delete(entry)
        self.session.flush()

    # -------------------------------------------------------------------------
    # Passage -> doctrine
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("doctrines_for_passage")
    def doctrines_for_passage(
        self, book: str, chapter: int, verse: Optional[int] = None
    ) -> List[DoctrineMatch]:
        """
        Entries indexed against a passage.

        With ``verse``, an edge matches only when its start verse is at or
        before the verse and its end verse is at or after it (or absent).
        Each entry appears once, carried by its strongest edge. Ordering is
        primary edges first, then chapter number, then sort order.

        Args:
            book: Book code (any case)
            chapter: Chapter number
            verse: Optional verse

        Returns:
            List of DoctrineMatch
        """
        conditions = [
            ScriptureIndexEntry.book == (book or "").strip().upper(),
            ScriptureIndexEntry.chapter == chapter,
        ]
        if verse is not None:
            conditions.append(ScriptureIndexEntry.start_verse <= verse)
            conditions.append(
                or_(
                    ScriptureIndexEntry.end_verse.is_(None),
                    ScriptureIndexEntry.end_verse >= verse,
                )
            )

        rows = self.session.execute(
            select(ScriptureIndexEntry, SystematicEntry)
            .join(SystematicEntry, ScriptureIndexEntry.systematic_id == SystematicEntry.id)
            .where(*conditions)
            .order_by(ScriptureIndexEntry.is_primary.desc())
        ).all()

        best: Dict[str, DoctrineMatch] = {}
        for edge, entry in rows:
            if entry.id in best:
                continue
            best[entry.id] = DoctrineMatch(
                entry=entry,
                is_primary=bool(edge.is_primary),
                context_snippet=edge.context_snippet,
            )

        return sorted(
            best.values(),
            key=lambda m: (
                not m.is_primary,
                m.entry.chapter_number if m.entry.chapter_number is not None else float("inf"),
                m.entry.sort_order,
            ),
        )

    # -------------------------------------------------------------------------
    # Doctrine -> notes
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("notes_referencing")
    def notes_referencing(self, systematic_id: str) -> List[Note]:
        """
        Notes whose content embeds the entry's link token.

        For a chapter-level entry, notes linking to any of its sections are
        included as well. Part-level entries have no token and return [].
        Newest (by last update) first.

        Raises:
            NotFoundError: If the entry does not exist
        """
        entry = self._require(SystematicEntry, systematic_id, "systematic_entry")
        address = entry.address
        if address is None:
            return []

        patterns = [f"%{_escape_like(address.link_token)}%"]
        if address.section_letter is None:
            patterns.append(f"%{_escape_like(f'[[ST:Ch{address.chapter_number}:')}%")

        stmt = (
            select(Note)
            .where(or_(*(Note.content.like(p, escape="\\") for p in patterns)))
            .order_by(Note.updated_at.desc())
        )
        return list(self.session.scalars(stmt))

    # -------------------------------------------------------------------------
    # Passage -> topics
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("suggest_topics_for_passage")
    def suggest_topics_for_passage(
        self, book: str, chapter: int, verse: Optional[int] = None
    ) -> List[TopicSuggestion]:
        """
        Topics likely relevant to a passage.

        Doctrine-derived suggestions come first; primary topics of notes
        already covering the chapter follow. A topic appears once, and the
        doctrine provenance wins when both apply.
        """
        suggestions: Dict[str, TopicSuggestion] = {}

        chapters = {
            m.entry.chapter_number
            for m in self.doctrines_for_passage(book, chapter, verse)
            if m.entry.chapter_number is not None
        }
        if chapters:
            tag_ids = select(systematic_chapter_tags.c.tag_id).where(
                systematic_chapter_tags.c.chapter_number.in_(chapters)
            )
            for topic in self.session.scalars(
                select(Topic)
                .where(Topic.systematic_tag_id.in_(tag_ids))
                .order_by(Topic.sort_order, Topic.name)
            ):
                suggestions[topic.id] = TopicSuggestion(
                    topic.id, topic.name, SuggestionSource.DOCTRINE
                )

        code = (book or "").strip().upper()
        existing = self.session.scalars(
            select(Topic)
            .join(Note, Note.primary_topic_id == Topic.id)
            .where(
                Note.book == code,
                Note.start_chapter <= chapter,
                Note.end_chapter >= chapter,
            )
            .distinct()
            .order_by(Topic.sort_order, Topic.name)
        )
        for topic in existing:
            if topic.id not in suggestions:
                suggestions[topic.id] = TopicSuggestion(
                    topic.id, topic.name, SuggestionSource.EXISTING_NOTES
                )

        return list(suggestions.values())

    # -------------------------------------------------------------------------
    # Note -> missing doctrine links
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("suggest_doctrine_links")
    def suggest_doctrine_links(
        self, note_id: str, apply: bool = False
    ) -> List[SystematicEntry]:
        """
        Primary doctrines for a note's chapter span that it does not link yet.

        Args:
            note_id: Note to inspect
            apply: Append a "Related Doctrines" paragraph with the links

        Returns:
            Suggested entries (at most MAX_LINK_SUGGESTIONS)
        """
        note = self._require(Note, note_id, "note")
        linked = {a.reference_string for a in find_link_tokens(note.content)}

        rows = self.session.scalars(
            select(SystematicEntry)
            .join(ScriptureIndexEntry)
            .where(
                ScriptureIndexEntry.book == note.book,
                ScriptureIndexEntry.chapter >= note.start_chapter,
                ScriptureIndexEntry.chapter <= note.end_chapter,
                ScriptureIndexEntry.is_primary.is_(True),
                SystematicEntry.chapter_number.is_not(None),
            )
            .order_by(SystematicEntry.chapter_number, SystematicEntry.sort_order)
        ).all()

        suggested: List[SystematicEntry] = []
        seen = set()
        for entry in rows:
            ref = entry.reference
            if ref in linked or ref in seen:
                continue
            seen.add(ref)
            suggested.append(entry)
            if len(suggested) >= MAX_LINK_SUGGESTIONS:
                break

        if apply and suggested:
            links = " ".join(e.address.link_token for e in suggested)
            note.content = (
                f"{note.content or ''}<p><strong>Related Doctrines:</strong> {links}</p>"
            )
            self.session.flush()

        return suggested

    # -------------------------------------------------------------------------
    # Annotations
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("add_systematic_annotation")
    def add_annotation(
        self, systematic_id: str, metadata: Dict[str, Any]
    ) -> SystematicAnnotation:
        """
        Attach a highlight or note to an entry.

        Raises:
            NotFoundError: If the entry does not exist
            ValidationError: If the annotation type is not highlight/note
        """
        self._require(SystematicEntry, systematic_id, "systematic_entry")
        annotation_type = DataValidator.validate_choice(
            metadata.get("annotation_type"), AnnotationType.choices(), "annotation_type"
        )
        annotation = SystematicAnnotation(
            systematic_id=systematic_id,
            annotation_type=annotation_type,
            color=metadata.get("color"),
            content=metadata.get("content"),
            text_selection=metadata.get("text_selection"),
            position_start=DataValidator.normalize_int(metadata.get("position_start")),
            position_end=DataValidator.normalize_int(metadata.get("position_end")),
        )
        if metadata.get("id"):
            annotation.id = metadata["id"]
        self.session.add(annotation)
        self.session.flush()
        return annotation

    @handle_db_errors
    @log_database_operation("get_systematic_annotations")
    def get_annotations(self, systematic_id: str) -> List[SystematicAnnotation]:
        return list(
            self.session.scalars(
                select(SystematicAnnotation)
                .where(SystematicAnnotation.systematic_id == systematic_id)
                .order_by(SystematicAnnotation.position_start, SystematicAnnotation.created_at)
            )
        )

    @handle_db_errors
    @log_database_operation("delete_systematic_annotation")
    def delete_annotation(self, annotation_id: str) -> None:
        annotation = self._require(SystematicAnnotation, annotation_id, "annotation")
        self.session.delete(annotation)
        self.session.flush()

    # -------------------------------------------------------------------------
    # Tags and relations
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("list_systematic_tags")
    def list_tags(self) -> List[Dict[str, Any]]:
        """Every tag with the number of chapters it is attached to."""
        rows = self.session.execute(
            select(SystematicTag, func.count(systematic_chapter_tags.c.chapter_number))
            .outerjoin(
                systematic_chapter_tags,
                systematic_chapter_tags.c.tag_id == SystematicTag.id,
            )
            .group_by(SystematicTag.id)
            .order_by(SystematicTag.sort_order)
        ).all()
        return [{"tag": tag, "chapter_count": count} for tag, count in rows]

    def tags_for_chapter(self, chapter_number: int) -> List[SystematicTag]:
        return list(
            self.session.scalars(
                select(SystematicTag)
                .join(
                    systematic_chapter_tags,
                    systematic_chapter_tags.c.tag_id == SystematicTag.id,
                )
                .where(systematic_chapter_tags.c.chapter_number == chapter_number)
                .order_by(SystematicTag.sort_order)
            )
        )

    @handle_db_errors
    @log_database_operation("chapters_by_tag")
    def chapters_by_tag(self, tag_id: str) -> List[SystematicEntry]:
        return list(
            self.session.scalars(
                select(SystematicEntry)
                .join(
                    systematic_chapter_tags,
                    systematic_chapter_tags.c.chapter_number == SystematicEntry.chapter_number,
                )
                .where(
                    systematic_chapter_tags.c.tag_id == tag_id,
                    SystematicEntry.entry_type == EntryType.CHAPTER.value,
                )
                .order_by(SystematicEntry.chapter_number)
            )
        )

    @handle_db_errors
    @log_database_operation("tag_chapter")
    def tag_chapter(self, chapter_number: int, tag_id: str) -> None:
        """Attach a doctrine tag to a chapter (no-op when already attached)."""
        if self.session.get(SystematicTag, tag_id) is None:
            raise InvalidRelationshipError(
                f"Systematic tag does not exist: {tag_id}", "systematic_tag", tag_id
            )
        exists = self.session.execute(
            select(systematic_chapter_tags).where(
                systematic_chapter_tags.c.chapter_number == chapter_number,
                systematic_chapter_tags.c.tag_id == tag_id,
            )
        ).first()
        if exists is None:
            self.session.execute(
                systematic_chapter_tags.insert().values(
                    chapter_number=chapter_number, tag_id=tag_id
                )
            )

    @handle_db_errors
    @log_database_operation("untag_chapter")
    def untag_chapter(self, chapter_number: int, tag_id: str) -> None:
        self.session.execute(
            delete(systematic_chapter_tags).where(
                systematic_chapter_tags.c.chapter_number == chapter_number,
                systematic_chapter_tags.c.tag_id == tag_id,
            )
        )

    @handle_db_errors
    @log_database_operation("link_related_chapters")
    def link_related_chapters(
        self,
        source_chapter: int,
        target_chapter: int,
        relationship_type: str = RelationshipType.SEE_ALSO.value,
        note: Optional[str] = None,
    ) -> SystematicRelated:
        """Create or update the edge ``source_chapter -> target_chapter``."""
        if source_chapter == target_chapter:
            raise InvalidRelationshipError(
                "A chapter cannot be related to itself", "chapter", str(source_chapter)
            )
        DataValidator.validate_choice(
            relationship_type, RelationshipType.choices(), "relationship_type"
        )
        related = self.session.scalars(
            select(SystematicRelated).where(
                SystematicRelated.source_chapter == source_chapter,
                SystematicRelated.target_chapter == target_chapter,
            )
        ).first()
        if related is None:
            related = SystematicRelated(
                source_chapter=source_chapter, target_chapter=target_chapter
            )
            self.session.add(related)
        related.relationship_type = relationship_type
        related.note = note
        self.session.flush()
        return related

    @handle_db_errors
    @log_database_operation("seed_systematic_tags")
    def seed_default_tags(self) -> int:
        """Insert the default doctrine tags that are missing. Returns count added."""
        existing = set(self.session.scalars(select(SystematicTag.name)))
        added = 0
        for tag_id, name, color, sort_order in DEFAULT_SYSTEMATIC_TAGS:
            if name in existing or self.session.get(SystematicTag, tag_id):
                continue
            self.session.add(
                SystematicTag(id=tag_id, name=name, color=color, sort_order=sort_order)
            )
            added += 1
        self.session.flush()
        return added
