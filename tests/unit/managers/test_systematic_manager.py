"""
test_systematic_manager.py
--------------------------
Unit tests for SystematicManager.

Covers reference lookup, passage -> doctrine queries, doctrine -> notes
lookups by link token, topic suggestions, annotations and chapter tags.
"""
import pytest

from conftest import make_edge, make_entry, make_note, make_tag, make_topic
from sacred.core.exceptions import InvalidRelationshipError, NotFoundError, ValidationError
from sacred.database.models import SuggestionSource


@pytest.fixture
def doctrine(db_session):
    """
    Two chapters with sections:

        Ch36 Justification     (ROM 3:21-26 primary, GAL 2 secondary)
          Ch36:A  Faith alone  (ROM 3:28 primary)
        Ch32 Election          (ROM 8:28-30 primary, ROM 3 whole chapter secondary)
    """
    part = make_entry(db_session, entry_type="part", chapter_number=None, title="Part 5", part_number=5)
    ch36 = make_entry(db_session, chapter_number=36, title="Justification", parent_id=part.id, sort_order=2)
    ch36a = make_entry(
        db_session, entry_type="section", chapter_number=36, section_letter="A",
        title="Faith alone", parent_id=ch36.id, sort_order=3,
    )
    ch32 = make_entry(db_session, chapter_number=32, title="Election", parent_id=part.id, sort_order=1)

    make_edge(db_session, ch36, "ROM", 3, 21, 26, is_primary=True, context_snippet="righteousness of God")
    make_edge(db_session, ch36, "GAL", 2, 16, 16)
    make_edge(db_session, ch36a, "ROM", 3, 28, 28, is_primary=True)
    make_edge(db_session, ch32, "ROM", 8, 28, 30, is_primary=True)
    make_edge(db_session, ch32, "ROM", 3, 1, None)
    return {"part": part, "ch36": ch36, "ch36a": ch36a, "ch32": ch32}


class TestLookup:
    def test_get_by_reference(self, systematic_manager, doctrine):
        assert systematic_manager.get_by_reference("Ch36") == doctrine["ch36"]
        assert systematic_manager.get_by_reference("ch36:a") == doctrine["ch36a"]

    def test_get_by_reference_falls_back_to_id(self, systematic_manager, doctrine):
        assert systematic_manager.get_by_reference(doctrine["ch32"].id) == doctrine["ch32"]

    def test_get_by_reference_unknown(self, systematic_manager, doctrine):
        with pytest.raises(NotFoundError):
            systematic_manager.get_by_reference("Ch99:Z")

    def test_entry_address_and_reference(self, doctrine):
        assert doctrine["ch36a"].reference == "Ch36:A"
        assert doctrine["ch36a"].address.link_token == "[[ST:Ch36:A]]"
        assert doctrine["part"].reference is None

    def test_get_chapter(self, systematic_manager, db_session, doctrine):
        tag = make_tag(db_session)
        systematic_manager.tag_chapter(36, tag.id)
        systematic_manager.link_related_chapters(36, 32, "builds_on")

        chapter = systematic_manager.get_chapter(36)
        assert chapter["chapter"] == doctrine["ch36"]
        assert chapter["sections"] == [doctrine["ch36a"]]
        assert chapter["scripture_refs"][0].is_primary is True
        assert len(chapter["scripture_refs"]) == 3
        assert chapter["related"] == [
            {"chapter_number": 32, "title": "Election", "relationship_type": "builds_on"}
        ]
        assert chapter["tags"] == [tag]

    def test_get_chapter_unknown(self, systematic_manager):
        with pytest.raises(NotFoundError):
            systematic_manager.get_chapter(12)

    def test_tree_and_summary(self, systematic_manager, doctrine):
        tree = systematic_manager.get_tree()
        assert len(tree) == 1
        assert [c["reference"] for c in tree[0]["children"]] == ["Ch32", "Ch36"]

        summary = systematic_manager.summary()
        assert summary["total_entries"] == 4
        assert summary["chapters"] == 2
        assert summary["scripture_references"] == 5


class TestSubsectionAddresses:
    """Link tokens resolve back to their entry at every level."""

    @pytest.fixture
    def ch36a1(self, db_session, doctrine):
        return make_entry(
            db_session, entry_type="subsection", chapter_number=36, section_letter="A",
            subsection_number=1, title="Faith as instrument",
            parent_id=doctrine["ch36a"].id, sort_order=4,
        )

    def test_rendered_reference_resolves_to_entry(self, systematic_manager, doctrine, ch36a1):
        for entry in (doctrine["ch36"], doctrine["ch36a"], ch36a1):
            assert systematic_manager.get_by_reference(entry.address.reference_string) == entry

    def test_link_token_body_resolves_to_entry(self, systematic_manager, ch36a1):
        token = ch36a1.address.link_token
        assert token == "[[ST:Ch36:A.1]]"
        assert systematic_manager.get_by_reference(token[5:-2]) == ch36a1

    def test_subsection_links_found_for_subsection_only(
        self, systematic_manager, db_session, doctrine, ch36a1
    ):
        linked = make_note(db_session, content="<p>See [[ST:Ch36:A.1]]</p>")
        lower = make_note(db_session, content="<p>see [[st:ch36:a.1]]</p>")

        assert set(systematic_manager.notes_referencing(ch36a1.id)) == {linked, lower}
        assert systematic_manager.notes_referencing(doctrine["ch36a"].id) == []
        assert linked in systematic_manager.notes_referencing(doctrine["ch36"].id)


class TestEntryWrites:
    def test_create_entry(self, systematic_manager):
        entry = systematic_manager.create_entry(
            {"entry_type": "section", "chapter_number": 12, "section_letter": "b",
             "title": " Names of God ", "content": "one two three"}
        )
        assert entry.section_letter == "B"
        assert entry.title == "Names of God"
        assert entry.word_count == 3

    def test_create_entry_requires_chapter(self, systematic_manager):
        with pytest.raises(ValidationError):
            systematic_manager.create_entry({"entry_type": "chapter", "title": "x"})

    def test_create_entry_unknown_parent(self, systematic_manager):
        with pytest.raises(InvalidRelationshipError):
            systematic_manager.create_entry(
                {"entry_type": "chapter", "chapter_number": 1, "title": "x", "parent_id": "nope"}
            )

    def test_add_scripture_reference(self, systematic_manager, doctrine):
        edge = systematic_manager.add_scripture_reference(
            doctrine["ch32"].id, "eph", 1, 4, 5, is_primary=True
        )
        assert edge.book == "EPH"

    @pytest.mark.parametrize("book, chapter, sv, ev", [("XYZ", 1, None, None), ("ROM", 0, None, None), ("ROM", 3, 9, 2)])
    def test_add_scripture_reference_invalid(self, systematic_manager, doctrine, book, chapter, sv, ev):
        with pytest.raises(ValidationError):
            systematic_manager.add_scripture_reference(doctrine["ch32"].id, book, chapter, sv, ev)

    def test_delete_entry_cascades(self, systematic_manager, doctrine):
        systematic_manager.add_annotation(doctrine["ch32"].id, {"annotation_type": "highlight"})
        systematic_manager.delete_entry(doctrine["ch32"].id)
        assert systematic_manager.doctrines_for_passage("ROM", 8) == []
        assert systematic_manager.summary()["annotations"] == 0


class TestDoctrinesForPassage:
    """Test SystematicManager.doctrines_for_passage()."""

    def test_chapter_primary_first(self, systematic_manager, doctrine):
        matches = systematic_manager.doctrines_for_passage("rom", 3)
        assert [m.entry.reference for m in matches] == ["Ch36", "Ch36:A", "Ch32"]
        assert [m.is_primary for m in matches] == [True, True, False]
        assert matches[0].context_snippet == "righteousness of God"

    def test_verse_inside_range(self, systematic_manager, doctrine):
        matches = systematic_manager.doctrines_for_passage("ROM", 3, 24)
        assert [m.entry.reference for m in matches] == ["Ch36", "Ch32"]

    def test_open_ended_edge_matches_later_verses(self, systematic_manager, doctrine):
        matches = systematic_manager.doctrines_for_passage("ROM", 3, 28)
        assert [m.entry.reference for m in matches] == ["Ch36:A", "Ch32"]

    def test_verse_outside_every_edge(self, systematic_manager, doctrine):
        assert systematic_manager.doctrines_for_passage("ROM", 8, 1) == []

    def test_entry_listed_once_with_strongest_edge(self, systematic_manager, db_session, doctrine):
        make_edge(db_session, doctrine["ch32"], "ROM", 8, 28, 28)
        matches = systematic_manager.doctrines_for_passage("ROM", 8, 28)
        assert len(matches) == 1
        assert matches[0].is_primary is True

    def test_unknown_passage(self, systematic_manager, doctrine):
        assert systematic_manager.doctrines_for_passage("JUD", 1) == []


class TestNotesReferencing:
    """Test SystematicManager.notes_referencing()."""

    def test_exact_token(self, systematic_manager, db_session, doctrine):
        linked = make_note(db_session, content="<p>See [[ST:Ch32]]</p>")
        make_note(db_session, content="<p>See [[ST:Ch320]] and Ch32</p>")
        assert systematic_manager.notes_referencing(doctrine["ch32"].id) == [linked]

    def test_chapter_includes_section_links(self, systematic_manager, db_session, doctrine):
        section_link = make_note(db_session, content="[[ST:Ch36:A]]")
        chapter_link = make_note(db_session, content="[[ST:Ch36]]")
        found = systematic_manager.notes_referencing(doctrine["ch36"].id)
        assert set(found) == {section_link, chapter_link}

    def test_section_only_matches_section(self, systematic_manager, db_session, doctrine):
        make_note(db_session, content="[[ST:Ch36]]")
        section_link = make_note(db_session, content="[[ST:Ch36:A]]")
        assert systematic_manager.notes_referencing(doctrine["ch36a"].id) == [section_link]

    def test_part_has_no_links(self, systematic_manager, doctrine):
        assert systematic_manager.notes_referencing(doctrine["part"].id) == []

    def test_unknown_entry(self, systematic_manager):
        with pytest.raises(NotFoundError):
            systematic_manager.notes_referencing("missing")


class TestSuggestTopics:
    """Test SystematicManager.suggest_topics_for_passage()."""

    def test_doctrine_and_existing_note_sources(self, systematic_manager, db_session, doctrine):
        tag = make_tag(db_session)
        systematic_manager.tag_chapter(36, tag.id)
        by_doctrine = make_topic(db_session, "Justification", systematic_tag_id=tag.id)
        by_note = make_topic(db_session, "Romans Studies")
        make_note(db_session, book="ROM", start_chapter=2, end_chapter=4, primary_topic_id=by_note.id)

        suggestions = systematic_manager.suggest_topics_for_passage("ROM", 3, 24)
        assert [(s.topic_id, s.source) for s in suggestions] == [
            (by_doctrine.id, SuggestionSource.DOCTRINE),
            (by_note.id, SuggestionSource.EXISTING_NOTES),
        ]

    def test_doctrine_provenance_wins(self, systematic_manager, db_session, doctrine):
        tag = make_tag(db_session)
        systematic_manager.tag_chapter(36, tag.id)
        topic = make_topic(db_session, "Justification", systematic_tag_id=tag.id)
        make_note(db_session, book="ROM", start_chapter=3, primary_topic_id=topic.id)

        suggestions = systematic_manager.suggest_topics_for_passage("ROM", 3)
        assert len(suggestions) == 1
        assert suggestions[0].source is SuggestionSource.DOCTRINE

    def test_nothing_to_suggest(self, systematic_manager, doctrine):
        assert systematic_manager.suggest_topics_for_passage("JUD", 1) == []


class TestSuggestDoctrineLinks:
    def test_suggests_unlinked_primary_doctrines(self, systematic_manager, db_session, doctrine):
        note = make_note(db_session, book="ROM", start_chapter=3, content="[[ST:Ch36]]")
        suggested = systematic_manager.suggest_doctrine_links(note.id)
        assert [e.reference for e in suggested] == ["Ch36:A"]
        assert note.content == "[[ST:Ch36]]"

    def test_apply_appends_links(self, systematic_manager, db_session, doctrine):
        note = make_note(db_session, book="ROM", start_chapter=3, end_chapter=8, content="<p>x</p>")
        suggested = systematic_manager.suggest_doctrine_links(note.id, apply=True)
        assert [e.reference for e in suggested] == ["Ch32", "Ch36", "Ch36:A"]
        assert note.content.endswith(
            "<p><strong>Related Doctrines:</strong> [[ST:Ch32]] [[ST:Ch36]] [[ST:Ch36:A]]</p>"
        )


class TestAnnotationsAndTags:
    def test_annotations(self, systematic_manager, doctrine):
        entry_id = doctrine["ch36"].id
        second = systematic_manager.add_annotation(
            entry_id, {"annotation_type": "note", "content": "later", "position_start": 50}
        )
        first = systematic_manager.add_annotation(
            entry_id, {"annotation_type": "highlight", "color": "yellow", "position_start": 5}
        )
        assert systematic_manager.get_annotations(entry_id) == [first, second]

        systematic_manager.delete_annotation(first.id)
        assert systematic_manager.get_annotations(entry_id) == [second]

    def test_annotation_type_validated(self, systematic_manager, doctrine):
        with pytest.raises(ValidationError):
            systematic_manager.add_annotation(doctrine["ch36"].id, {"annotation_type": "underline"})

    def test_annotation_unknown_entry(self, systematic_manager):
        with pytest.raises(NotFoundError):
            systematic_manager.add_annotation("missing", {"annotation_type": "note"})

    def test_seed_and_list_tags(self, systematic_manager, doctrine):
        assert systematic_manager.seed_default_tags() == 7
        assert systematic_manager.seed_default_tags() == 0

        systematic_manager.tag_chapter(36, "doctrine-salvation")
        systematic_manager.tag_chapter(36, "doctrine-salvation")
        counts = {row["tag"].id: row["chapter_count"] for row in systematic_manager.list_tags()}
        assert counts["doctrine-salvation"] == 1
        assert counts["doctrine-god"] == 0
        assert systematic_manager.chapters_by_tag("doctrine-salvation") == [doctrine["ch36"]]

        systematic_manager.untag_chapter(36, "doctrine-salvation")
        assert systematic_manager.tags_for_chapter(36) == []

    def test_tag_unknown(self, systematic_manager):
        with pytest.raises(InvalidRelationshipError):
            systematic_manager.tag_chapter(36, "missing")

    def test_related_upsert_and_self(self, systematic_manager):
        first = systematic_manager.link_related_chapters(36, 32)
        second = systematic_manager.link_related_chapters(36, 32, "contrasts_with", note="n")
        assert first.id == second.id
        assert second.relationship_type == "contrasts_with"
        with pytest.raises(InvalidRelationshipError):
            systematic_manager.link_related_chapters(5, 5)
