#!/usr/bin/env python3
"""
managers package
--------------------
Entity managers for the SACRED database.

Each manager wraps one SQLAlchemy session and handles one area:

    BaseManager: Abstract base class with common utilities
    TopicManager: Topic taxonomy (tree, closure, counts, moves, deletes)
    SystematicManager: Systematic theology, Scripture index, doctrine links
    NoteManager: Notes and their topic tags
    SeriesManager: Series and sermon membership
    InlineTagManager: Inline tag types

Usage:
    from sacred.database.managers import TopicManager

    topics = TopicManager(session, logger)
    roots = topics.tree(include_counts=True)
"""
from .base_manager import BaseManager
from .inline_tag_manager import InlineTagManager
from .note_manager import NoteManager, RelatedNote
from .series_manager import SeriesManager
from .systematic_manager import DoctrineMatch, SystematicManager, TopicSuggestion
from .topic_manager import TopicManager, TopicNode, collect_descendants, creates_cycle

__all__ = [
    "BaseManager",
    "InlineTagManager",
    "NoteManager",
    "RelatedNote",
    "SeriesManager",
    "SystematicManager",
    "DoctrineMatch",
    "TopicSuggestion",
    "TopicManager",
    "TopicNode",
    "collect_descendants",
    "creates_cycle",
]
