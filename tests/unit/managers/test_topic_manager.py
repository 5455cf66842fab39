"""
test_topic_manager.py
---------------------
Unit tests for TopicManager and the pure graph helpers.

Covers tree building, subtree closures, note counts, cycle-checked moves
and atomic subtree deletion.
"""
import pytest
from sqlalchemy import select

from conftest import make_note, make_tag, make_topic
from sacred.core.exceptions import (
    DatabaseError,
    InvalidRelationshipError,
    NotFoundError,
    ValidationError,
)
from sacred.database.managers.topic_manager import collect_descendants, creates_cycle
from sacred.database.models import Note, Topic, note_tags


@pytest.fixture
def taxonomy(db_session):
    """
    root
    ├── a
    │   └── a1
    │       └── a1x
    └── b
    other
    """
    root = make_topic(db_session, "root")
    a = make_topic(db_session, "a", root, sort_order=0)
    b = make_topic(db_session, "b", root, sort_order=1)
    a1 = make_topic(db_session, "a1", a)
    a1x = make_topic(db_session, "a1x", a1)
    other = make_topic(db_session, "other", sort_order=5)
    return {"root": root, "a": a, "b": b, "a1": a1, "a1x": a1x, "other": other}


class TestCollectDescendants:
    """collect_descendants() works on plain mappings."""

    def test_includes_root_and_all_levels(self):
        children = {"r": ["a", "b"], "a": ["a1"], "a1": ["a1x"]}
        assert collect_descendants(children, "r", 10) == {"r", "a", "b", "a1", "a1x"}

    def test_leaf(self):
        assert collect_descendants({"r": ["a"]}, "a", 10) == {"a"}

    def test_terminates_on_cycle(self):
        children = {"x": ["y"], "y": ["z"], "z": ["x"]}
        assert collect_descendants(children, "x", 3) == {"x", "y", "z"}

    def test_limit_bounds_the_walk(self):
        children = {str(i): [str(i + 1)] for i in range(100)}
        result = collect_descendants(children, "0", 5)
        assert len(result) <= 6


class TestCreatesCycle:
    def test_moving_under_own_descendant(self):
        parent_of = {"r": None, "a": "r", "a1": "a"}
        assert creates_cycle(parent_of, "r", "a1") is True

    def test_moving_under_sibling_branch(self):
        parent_of = {"r": None, "a": "r", "b": "r"}
        assert creates_cycle(parent_of, "a", "b") is False

    def test_moving_to_root(self):
        assert creates_cycle({"a": "r", "r": None}, "a", None) is False

    def test_terminates_on_existing_cycle(self):
        parent_of = {"x": "y", "y": "x", "t": None}
        assert creates_cycle(parent_of, "t", "x") is False


class TestTopicManagerTree:
    """Test TopicManager.tree()."""

    def test_empty(self, topic_manager):
        assert topic_manager.tree() == []

    def test_nesting_and_order(self, topic_manager, taxonomy):
        roots = topic_manager.tree()
        assert [r.name for r in roots] == ["root", "other"]
        root = roots[0]
        assert [c.name for c in root.children] == ["a", "b"]
        assert root.children[0].children[0].children[0].name == "a1x"
        assert root.note_count is None

    def test_counts(self, topic_manager, db_session, taxonomy):
        make_note(db_session, primary_topic_id=taxonomy["a1x"].id)
        tagged = make_note(db_session, book="GEN", start_chapter=1)
        tagged.tags = [taxonomy["b"], taxonomy["a"]]
        db_session.flush()

        roots = topic_manager.tree(include_counts=True)
        root = roots[0]
        by_name = {c.name: c for c in root.children}
        assert root.note_count == 2
        assert by_name["a"].note_count == 2
        assert by_name["b"].note_count == 1
        assert roots[1].note_count == 0

    def test_to_dict_camel_case(self, topic_manager, taxonomy):
        data = topic_manager.tree(include_counts=True)[0].to_dict()
        assert data["parentId"] is None
        assert data["noteCount"] == 0
        assert data["children"][0]["parentId"] == taxonomy["root"].id


class TestTopicManagerCounts:
    """Test descendant_ids() and note_count()."""

    def test_descendant_ids(self, topic_manager, taxonomy):
        ids = topic_manager.descendant_ids(taxonomy["a"].id)
        assert ids == {taxonomy["a"].id, taxonomy["a1"].id, taxonomy["a1x"].id}

    def test_descendant_ids_unknown(self, topic_manager):
        with pytest.raises(NotFoundError):
            topic_manager.descendant_ids("missing")

    def test_note_counted_once_when_primary_and_tagged(self, topic_manager, db_session, taxonomy):
        note = make_note(db_session, primary_topic_id=taxonomy["a1"].id)
        note.tags = [taxonomy["a1x"]]
        db_session.flush()
        assert topic_manager.note_count(taxonomy["root"].id) == 1
        assert topic_manager.note_count(taxonomy["a1x"].id) == 1
        assert topic_manager.note_count(taxonomy["b"].id) == 0

    def test_notes_for_topic_in_bible_order(self, topic_manager, db_session, taxonomy):
        rev = make_note(db_session, book="REV", start_chapter=21, primary_topic_id=taxonomy["a"].id)
        gen = make_note(db_session, book="GEN", start_chapter=1, primary_topic_id=taxonomy["a1"].id)
        assert topic_manager.notes_for_topic(taxonomy["root"].id) == [gen, rev]


class TestTopicManagerCreateUpdate:
    def test_create_root(self, topic_manager):
        topic = topic_manager.create({"name": "  Grace  ", "sort_order": "3"})
        assert topic.name == "Grace"
        assert topic.sort_order == 3
        assert topic.parent_id is None

    def test_create_with_explicit_id_and_tag(self, topic_manager, db_session):
        tag = make_tag(db_session)
        topic = topic_manager.create({"id": "t-1", "name": "Justification", "systematic_tag_id": tag.id})
        assert topic.id == "t-1"
        assert topic.systematic_tag_id == tag.id

    def test_create_requires_name(self, topic_manager):
        with pytest.raises(ValidationError):
            topic_manager.create({"name": "   "})

    def test_create_unknown_parent(self, topic_manager):
        with pytest.raises(InvalidRelationshipError):
            topic_manager.create({"name": "x", "parent_id": "missing"})

    def test_create_unknown_tag(self, topic_manager):
        with pytest.raises(InvalidRelationshipError):
            topic_manager.create({"name": "x", "systematic_tag_id": "missing"})

    def test_update_routes_parent_through_checks(self, topic_manager, taxonomy):
        with pytest.raises(InvalidRelationshipError):
            topic_manager.update(taxonomy["a"].id, {"parent_id": taxonomy["a1x"].id})

    def test_rejected_move_leaves_fields_unchanged(self, topic_manager, db_session, taxonomy):
        topic = taxonomy["a"]
        with pytest.raises(InvalidRelationshipError):
            topic_manager.update(
                topic.id,
                {"name": "Renamed", "sort_order": 9, "parent_id": taxonomy["a1x"].id},
            )

        assert topic.name == "a"
        assert topic.sort_order == 0
        assert topic.parent_id == taxonomy["root"].id
        assert not db_session.dirty

    def test_update_name_and_parent(self, topic_manager, taxonomy):
        topic = topic_manager.update(
            taxonomy["b"].id, {"name": "B", "parent_id": taxonomy["other"].id}
        )
        assert topic.name == "B"
        assert topic.parent_id == taxonomy["other"].id


class TestTopicManagerSetParent:
    """Test TopicManager.set_parent()."""

    def test_move_under_other_branch(self, topic_manager, taxonomy):
        topic = topic_manager.set_parent(taxonomy["a1"].id, taxonomy["b"].id)
        assert topic.parent_id == taxonomy["b"].id
        assert taxonomy["a1x"].id in topic_manager.descendant_ids(taxonomy["b"].id)

    def test_move_to_root(self, topic_manager, taxonomy):
        topic_manager.set_parent(taxonomy["a"].id, None)
        assert {r.name for r in topic_manager.tree()} == {"root", "a", "other"}

    def test_idempotent(self, topic_manager, taxonomy):
        topic_manager.set_parent(taxonomy["a1"].id, taxonomy["a"].id)
        assert taxonomy["a1"].parent_id == taxonomy["a"].id

    def test_self_parent_rejected(self, topic_manager, taxonomy):
        with pytest.raises(InvalidRelationshipError):
            topic_manager.set_parent(taxonomy["a"].id, taxonomy["a"].id)

    def test_cycle_rejected_without_mutation(self, topic_manager, taxonomy):
        with pytest.raises(InvalidRelationshipError):
            topic_manager.set_parent(taxonomy["root"].id, taxonomy["a1x"].id)
        assert taxonomy["root"].parent_id is None

    def test_unknown_topic(self, topic_manager, taxonomy):
        with pytest.raises(NotFoundError):
            topic_manager.set_parent("missing", taxonomy["a"].id)

    def test_unknown_parent(self, topic_manager, taxonomy):
        with pytest.raises(NotFoundError):
            topic_manager.set_parent(taxonomy["a"].id, "missing")

    def test_set_systematic_tag(self, topic_manager, db_session, taxonomy):
        tag = make_tag(db_session)
        topic = topic_manager.set_systematic_tag(taxonomy["a"].id, tag.id)
        assert topic.systematic_tag_id == tag.id
        assert topic_manager.set_systematic_tag(taxonomy["a"].id, None).systematic_tag_id is None


class TestTopicManagerDelete:
    """Test TopicManager.delete()."""

    def test_deletes_subtree_and_keeps_notes(self, topic_manager, db_session, taxonomy):
        primary = make_note(db_session, primary_topic_id=taxonomy["a1x"].id)
        tagged = make_note(db_session, book="GEN", start_chapter=1)
        tagged.tags = [taxonomy["a1"], taxonomy["b"]]
        db_session.flush()
        primary_id, tagged_id = primary.id, tagged.id

        removed = topic_manager.delete(taxonomy["a"].id)

        assert removed == 3
        remaining = set(db_session.scalars(select(Topic.name)))
        assert remaining == {"root", "b", "other"}
        assert db_session.get(Note, primary_id).primary_topic_id is None
        tag_rows = db_session.execute(
            select(note_tags.c.topic_id).where(note_tags.c.note_id == tagged_id)
        ).scalars().all()
        assert tag_rows == [taxonomy["b"].id]

    def test_delete_leaf(self, topic_manager, taxonomy):
        assert topic_manager.delete(taxonomy["other"].id) == 1

    def test_delete_unknown(self, topic_manager):
        with pytest.raises(NotFoundError):
            topic_manager.delete("missing")


class TestTopicManagerSeed:
    def test_seed_defaults(self, topic_manager):
        created = topic_manager.seed_defaults()
        roots = topic_manager.tree()
        assert [r.name for r in roots] == ["Systematic Theology", "Practical", "Resources"]
        assert len(created) == 3 + sum(len(r.children) for r in roots)

    def test_seed_refuses_when_topics_exist(self, topic_manager, taxonomy):
        with pytest.raises(DatabaseError):
            topic_manager.seed_defaults()
