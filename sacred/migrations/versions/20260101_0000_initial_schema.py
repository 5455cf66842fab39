"""initial_schema

Revision ID: 3c1f9a7d2e40
Revises:
Create Date: 2026-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f9a7d2e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False))
    return columns


def upgrade() -> None:
    """
    Create the SACRED schema.

    Tables:
    1. systematic_tags, inline_tag_types, series (no dependencies)
    2. topics (self-referential, tagged by systematic_tags)
    3. notes, note_tags
    4. systematic_theology and its index, annotations, chapter tags, relations
    """
    op.create_table(
        'systematic_tags',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False, unique=True),
        sa.Column('color', sa.String(length=20), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(updated=False),
        sa.CheckConstraint("name != ''", name='ck_systematic_tag_non_empty_name'),
    )

    op.create_table(
        'inline_tag_types',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False, unique=True),
        sa.Column('color', sa.String(length=20), nullable=False),
        sa.Column('icon', sa.String(length=20), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(updated=False),
        sa.CheckConstraint("name != ''", name='ck_inline_tag_type_non_empty_name'),
    )

    op.create_table(
        'series',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("name != ''", name='ck_series_non_empty_name'),
    )

    op.create_table(
        'topics',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column(
            'parent_id', sa.String(),
            sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=True, index=True,
        ),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column(
            'systematic_tag_id', sa.String(),
            sa.ForeignKey('systematic_tags.id', ondelete='SET NULL'), nullable=True, index=True,
        ),
        *_timestamps(),
        sa.CheckConstraint("name != ''", name='ck_topic_non_empty_name'),
        sa.CheckConstraint('parent_id IS NULL OR parent_id != id', name='ck_topic_no_self_parent'),
    )

    op.create_table(
        'notes',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('book', sa.String(length=3), nullable=False),
        sa.Column('start_chapter', sa.Integer(), nullable=False),
        sa.Column('start_verse', sa.Integer(), nullable=True),
        sa.Column('end_chapter', sa.Integer(), nullable=False),
        sa.Column('end_verse', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(), nullable=False, server_default=''),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('type', sa.String(length=20), nullable=False, server_default='note'),
        sa.Column(
            'primary_topic_id', sa.String(),
            sa.ForeignKey('topics.id', ondelete='SET NULL'), nullable=True, index=True,
        ),
        sa.Column(
            'series_id', sa.String(),
            sa.ForeignKey('series.id', ondelete='SET NULL'), nullable=True, index=True,
        ),
        *_timestamps(),
        sa.CheckConstraint('start_chapter <= end_chapter', name='ck_note_chapter_order'),
        sa.CheckConstraint(
            'start_chapter != end_chapter OR start_verse IS NULL '
            'OR end_verse IS NULL OR start_verse <= end_verse',
            name='ck_note_verse_order',
        ),
        sa.CheckConstraint("type IN ('note', 'commentary', 'sermon')", name='ck_note_type'),
    )
    op.create_index('ix_notes_book_chapter', 'notes', ['book', 'start_chapter'])

    op.create_table(
        'note_tags',
        sa.Column(
            'note_id', sa.String(),
            sa.ForeignKey('notes.id', ondelete='CASCADE'), primary_key=True,
        ),
        sa.Column(
            'topic_id', sa.String(),
            sa.ForeignKey('topics.id', ondelete='CASCADE'), primary_key=True, index=True,
        ),
    )

    op.create_table(
        'systematic_theology',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('entry_type', sa.String(length=20), nullable=False),
        sa.Column('part_number', sa.Integer(), nullable=True),
        sa.Column('chapter_number', sa.Integer(), nullable=True),
        sa.Column('section_letter', sa.String(length=1), nullable=True),
        sa.Column('subsection_number', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column(
            'parent_id', sa.String(),
            sa.ForeignKey('systematic_theology.id', ondelete='CASCADE'), nullable=True, index=True,
        ),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('word_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.CheckConstraint(
            "entry_type IN ('part', 'chapter', 'section', 'subsection')",
            name='ck_systematic_entry_type',
        ),
        sa.CheckConstraint('word_count >= 0', name='positive_systematic_word_count'),
    )
    op.create_index(
        'ix_systematic_address', 'systematic_theology',
        ['chapter_number', 'section_letter', 'subsection_number'],
    )

    op.create_table(
        'systematic_scripture_index',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column(
            'systematic_id', sa.String(),
            sa.ForeignKey('systematic_theology.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column('book', sa.String(length=3), nullable=False),
        sa.Column('chapter', sa.Integer(), nullable=False),
        sa.Column('start_verse', sa.Integer(), nullable=True),
        sa.Column('end_verse', sa.Integer(), nullable=True),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('context_snippet', sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index(
        'ix_scripture_index_passage', 'systematic_scripture_index', ['book', 'chapter']
    )

    op.create_table(
        'systematic_annotations',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column(
            'systematic_id', sa.String(),
            sa.ForeignKey('systematic_theology.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column('annotation_type', sa.String(length=20), nullable=False),
        sa.Column('color', sa.String(length=20), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('text_selection', sa.Text(), nullable=True),
        sa.Column('position_start', sa.Integer(), nullable=True),
        sa.Column('position_end', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "annotation_type IN ('highlight', 'note')", name='ck_systematic_annotation_type'
        ),
    )

    op.create_table(
        'systematic_chapter_tags',
        sa.Column('chapter_number', sa.Integer(), primary_key=True),
        sa.Column(
            'tag_id', sa.String(),
            sa.ForeignKey('systematic_tags.id', ondelete='CASCADE'), primary_key=True, index=True,
        ),
    )

    op.create_table(
        'systematic_related',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('source_chapter', sa.Integer(), nullable=False, index=True),
        sa.Column('target_chapter', sa.Integer(), nullable=False),
        sa.Column('relationship_type', sa.String(length=20), nullable=False, server_default='see_also'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.UniqueConstraint('source_chapter', 'target_chapter', name='uq_systematic_related'),
        sa.CheckConstraint('source_chapter != target_chapter', name='ck_systematic_related_no_self'),
        sa.CheckConstraint(
            "relationship_type IN ('see_also', 'contrasts_with', 'builds_on')",
            name='ck_systematic_relationship_type',
        ),
    )


def downgrade() -> None:
    """Drop every SACRED table (all data is lost)."""
    op.drop_table('systematic_related')
    op.drop_table('systematic_chapter_tags')
    op.drop_table('systematic_annotations')
    op.drop_index('ix_scripture_index_passage', table_name='systematic_scripture_index')
    op.drop_table('systematic_scripture_index')
    op.drop_index('ix_systematic_address', table_name='systematic_theology')
    op.drop_table('systematic_theology')
    op.drop_table('note_tags')
    op.drop_index('ix_notes_book_chapter', table_name='notes')
    op.drop_table('notes')
    op.drop_table('topics')
    op.drop_table('series')
    op.drop_table('inline_tag_types')
    op.drop_table('systematic_tags')
