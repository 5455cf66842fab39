"""
test_note_manager.py
--------------------
Unit tests for NoteManager: verse-range validation, free-text references,
topic/series links, Bible ordering and related-note lookup.
"""
from datetime import datetime, timezone

import pytest

from conftest import make_note, make_topic
from sacred.core.exceptions import InvalidRelationshipError, NotFoundError, ValidationError
from sacred.database.models import NoteRelation, Series


class TestNoteManagerCreate:
    """Test NoteManager.create()."""

    def test_create_from_fields(self, note_manager):
        note = note_manager.create(
            {"book": "rom", "start_chapter": 3, "start_verse": 21, "end_verse": 26, "title": "Propitiation"}
        )
        assert note.id
        assert note.book == "ROM"
        assert (note.start_chapter, note.start_verse, note.end_chapter, note.end_verse) == (3, 21, 3, 26)
        assert note.type == "note"
        assert note.content == ""

    def test_create_from_reference(self, note_manager):
        note = note_manager.create({"reference": "Genesis 1:1-2:3", "type": "commentary"})
        assert (note.book, note.start_chapter, note.end_chapter, note.end_verse) == ("GEN", 1, 2, 3)
        assert note.type == "commentary"
        assert note.reference_label == "Genesis 1:1-2:3"

    def test_bad_reference(self, note_manager):
        with pytest.raises(ValidationError, match="Could not parse"):
            note_manager.create({"reference": "Hezekiah 4:1"})

    def test_unknown_book(self, note_manager):
        with pytest.raises(ValidationError, match="Unknown book"):
            note_manager.create({"book": "XYZ", "start_chapter": 1})

    @pytest.mark.parametrize(
        "metadata",
        [
            {"book": "ROM", "start_chapter": 4, "end_chapter": 3},
            {"book": "ROM", "start_chapter": 3, "start_verse": 26, "end_verse": 21},
        ],
    )
    def test_reversed_range(self, note_manager, metadata):
        with pytest.raises(ValidationError):
            note_manager.create(metadata)

    def test_cross_chapter_verse_order_is_free(self, note_manager):
        note = note_manager.create(
            {"book": "ROM", "start_chapter": 3, "start_verse": 21, "end_chapter": 4, "end_verse": 5}
        )
        assert note.end_chapter == 4

    def test_invalid_type(self, note_manager):
        with pytest.raises(ValidationError):
            note_manager.create({"book": "ROM", "start_chapter": 3, "type": "essay"})

    def test_links_topics_and_series(self, note_manager, db_session):
        primary = make_topic(db_session, "Justification")
        tag = make_topic(db_session, "Faith")
        series = Series(name="Romans")
        db_session.add(series)
        db_session.flush()

        note = note_manager.create(
            {
                "reference": "Romans 3:21-26",
                "type": "sermon",
                "primary_topic_id": primary.id,
                "series_id": series.id,
                "tags": [tag.id, tag.id],
            }
        )
        assert note.primary_topic_id == primary.id
        assert note.series_id == series.id
        assert note.tag_ids == [tag.id]

    @pytest.mark.parametrize("field", ["primary_topic_id", "series_id"])
    def test_unknown_references(self, note_manager, field):
        with pytest.raises(InvalidRelationshipError):
            note_manager.create({"reference": "Rom 3", field: "missing"})

    def test_unknown_tag(self, note_manager):
        with pytest.raises(InvalidRelationshipError):
            note_manager.create({"reference": "Rom 3", "tags": ["missing"]})


class TestNoteManagerUpdate:
    def test_update_range_is_revalidated(self, note_manager, db_session):
        note = make_note(db_session, start_verse=21, end_verse=26)
        with pytest.raises(ValidationError):
            note_manager.update(note.id, {"start_verse": 30})

    def test_update_reference_and_title(self, note_manager, db_session):
        note = make_note(db_session)
        updated = note_manager.update(note.id, {"reference": "John 3:16", "title": "Love"})
        assert (updated.book, updated.start_verse, updated.end_verse) == ("JHN", 16, 16)
        assert updated.title == "Love"

    def test_update_clears_primary_topic(self, note_manager, db_session):
        topic = make_topic(db_session, "Grace")
        note = make_note(db_session, primary_topic_id=topic.id)
        assert note_manager.update(note.id, {"primary_topic_id": None}).primary_topic_id is None

    def test_update_unknown(self, note_manager):
        with pytest.raises(NotFoundError):
            note_manager.update("missing", {"title": "x"})

    def test_set_tags_replaces(self, note_manager, db_session):
        a = make_topic(db_session, "a")
        b = make_topic(db_session, "b")
        note = make_note(db_session)
        note_manager.set_tags(note.id, [a.id])
        assert note_manager.set_tags(note.id, [b.id]).tag_ids == [b.id]


class TestNoteManagerQueries:
    def test_get_all_in_bible_order(self, note_manager, db_session):
        rev = make_note(db_session, book="REV", start_chapter=1)
        gen2 = make_note(db_session, book="GEN", start_chapter=2)
        gen1 = make_note(db_session, book="GEN", start_chapter=1, start_verse=3, end_verse=3)
        assert note_manager.get_all() == [gen1, gen2, rev]

    def test_for_chapter_matches_spans(self, note_manager, db_session):
        spanning = make_note(db_session, book="ROM", start_chapter=3, end_chapter=5)
        inside = make_note(db_session, book="ROM", start_chapter=4)
        make_note(db_session, book="ROM", start_chapter=6)
        make_note(db_session, book="GAL", start_chapter=4)
        assert set(note_manager.for_chapter("rom", 4)) == {spanning, inside}

    def test_delete(self, note_manager, db_session):
        topic = make_topic(db_session, "keep me")
        note = make_note(db_session)
        note.tags = [topic]
        db_session.flush()

        note_manager.delete(note.id)
        assert note_manager.get(note.id) is None
        assert db_session.get(type(topic), topic.id) is not None


def _day(n):
    return datetime(2026, 1, n, tzinfo=timezone.utc)


class TestNoteManagerRelatedNotes:
    """Test NoteManager.related_notes()."""

    @pytest.fixture
    def neighbourhood(self, db_session):
        topic = make_topic(db_session, "Justification")
        tag = make_topic(db_session, "Faith")
        source = make_note(db_session, book="ROM", start_chapter=3, primary_topic_id=topic.id,
                           tags=[tag], updated_at=_day(1))
        notes = {
            "source": source,
            "rom4": make_note(db_session, book="ROM", start_chapter=4,
                              primary_topic_id=topic.id, updated_at=_day(9)),
            "gen1": make_note(db_session, book="GEN", start_chapter=1,
                              primary_topic_id=topic.id, updated_at=_day(2)),
            "rom5": make_note(db_session, book="ROM", start_chapter=5, updated_at=_day(3)),
            "rom1": make_note(db_session, book="ROM", start_chapter=1, updated_at=_day(8)),
            "rom6": make_note(db_session, book="ROM", start_chapter=6, updated_at=_day(4)),
            "mat1": make_note(db_session, book="MAT", start_chapter=1, tags=[tag],
                              updated_at=_day(5)),
        }
        return notes

    def test_each_relation_in_order(self, note_manager, neighbourhood):
        related = note_manager.related_notes(neighbourhood["source"].id)
        assert [(r.note, r.relation) for r in related] == [
            (neighbourhood["rom4"], NoteRelation.SAME_TOPIC),
            (neighbourhood["gen1"], NoteRelation.SAME_TOPIC),
            (neighbourhood["rom1"], NoteRelation.NEARBY_PASSAGE),
            (neighbourhood["rom5"], NoteRelation.NEARBY_PASSAGE),
            (neighbourhood["mat1"], NoteRelation.SHARED_TAGS),
        ]

    def test_limit(self, note_manager, neighbourhood):
        related = note_manager.related_notes(neighbourhood["source"].id, limit=2)
        assert [r.note for r in related] == [neighbourhood["rom4"], neighbourhood["gen1"]]

    def test_each_relation_is_capped(self, note_manager, db_session):
        topic = make_topic(db_session, "Grace")
        source = make_note(db_session, book="ROM", start_chapter=3, primary_topic_id=topic.id)
        for chapter in range(1, 8):
            make_note(db_session, book="GEN", start_chapter=chapter, primary_topic_id=topic.id)

        related = note_manager.related_notes(source.id)
        assert len(related) == 5
        assert {r.relation for r in related} == {NoteRelation.SAME_TOPIC}

    def test_other_books_are_not_nearby(self, note_manager, db_session):
        note = make_note(db_session, book="JUD", start_chapter=1)
        make_note(db_session, book="JUD", start_chapter=1, end_chapter=1)
        make_note(db_session, book="REV", start_chapter=1)
        related = note_manager.related_notes(note.id)
        assert [r.relation for r in related] == [NoteRelation.NEARBY_PASSAGE]

    def test_unknown_note(self, note_manager):
        with pytest.raises(NotFoundError):
            note_manager.related_notes("missing")

    def test_limit_must_be_positive(self, note_manager, neighbourhood):
        with pytest.raises(ValidationError):
            note_manager.related_notes(neighbourhood["source"].id, limit=0)
