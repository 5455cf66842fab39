"""
test_inline_tag_manager.py
--------------------------
Unit tests for InlineTagManager.
"""
import pytest

from sacred.core.exceptions import DatabaseError, NotFoundError, ValidationError


class TestInlineTagDefaults:
    def test_seed_defaults(self, inline_tag_manager):
        types = inline_tag_manager.seed_defaults()
        assert [t.id for t in types] == ["illustration", "application", "keypoint", "quote", "crossref"]
        assert all(t.is_default for t in types)

    def test_seed_restores_edited_default(self, inline_tag_manager):
        inline_tag_manager.seed_defaults()
        inline_tag_manager.update("quote", {"name": "Citation", "color": "#000000"})

        inline_tag_manager.seed_defaults()
        restored = inline_tag_manager.get("quote")
        assert restored.name == "Quote"
        assert restored.color == "#a78bfa"
        assert len(inline_tag_manager.get_all()) == 5

    def test_defaults_cannot_be_deleted(self, inline_tag_manager):
        inline_tag_manager.seed_defaults()
        with pytest.raises(DatabaseError):
            inline_tag_manager.delete("keypoint")


class TestInlineTagCustom:
    def test_create_update_delete(self, inline_tag_manager):
        custom = inline_tag_manager.create({"name": "Greek", "color": "#123456", "sort_order": 9})
        assert custom.is_default is False

        updated = inline_tag_manager.update(custom.id, {"icon": "α"})
        assert updated.icon == "α"

        inline_tag_manager.delete(custom.id)
        assert inline_tag_manager.get(custom.id) is None

    def test_create_requires_color(self, inline_tag_manager):
        with pytest.raises(ValidationError):
            inline_tag_manager.create({"name": "Greek"})

    def test_duplicate_name(self, inline_tag_manager):
        inline_tag_manager.create({"name": "Greek", "color": "#123456"})
        with pytest.raises(DatabaseError, match="integrity"):
            inline_tag_manager.create({"name": "Greek", "color": "#654321"})

    def test_update_rejects_empty_color(self, inline_tag_manager):
        custom = inline_tag_manager.create({"name": "Greek", "color": "#123456"})
        with pytest.raises(ValidationError):
            inline_tag_manager.update(custom.id, {"color": " "})

    def test_delete_unknown(self, inline_tag_manager):
        with pytest.raises(NotFoundError):
            inline_tag_manager.delete("missing")
