#!/usr/bin/env python3
"""
reference_parser.py
-------------------
Parse free-text Bible references into structured verse ranges.

Recognized shapes (case-insensitive, surrounding whitespace ignored):

    <book> <chapter>                       "1 Corinthians 13"
    <book> <chapter>:<verse>               "John 3:16"
    <book> <chapter>:<verse>-<verse>       "Romans 3:21-26"
    <book> <chapter>:<verse>-<ch>:<verse>  "Genesis 1:1-2:3"

The book segment is resolved through the static alias table in
``sacred.scripture.books``. Parsing never raises: any input that cannot be
resolved (unknown book, chapter outside the book, reversed range, wrong
type) comes back as a falsy ``NotParsed`` carrying the input and a reason.

Usage:
    ref = parse_reference("Rom 8:28")
    if ref:
        print(format_reference(ref))   # Romans 8:28
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional, Union

from .books import get_book, resolve_book_code

REFERENCE_PATTERN = re.compile(
    r"^(\d?\s*[a-z]+(?:\s+[a-z]+)*)\s*"
    r"(\d+)"
    r"(?::(\d+)(?:\s*-\s*(\d+)(?::(\d+))?)?)?$"
)


@dataclass(frozen=True)
class ScriptureReference:
    """
    A resolved verse range inside one book.

    ``start_verse``/``end_verse`` are both None for a whole-chapter
    reference. A single verse has ``end_verse == start_verse``.
    """
    book: str
    start_chapter: int
    start_verse: Optional[int]
    end_chapter: int
    end_verse: Optional[int]

    def contains(self, chapter: int, verse: Optional[int] = None) -> bool:
        """
        Test whether a chapter (and optionally a verse) falls in this range.

        A missing verse on either side of the range means the whole chapter.
        """
        if chapter < self.start_chapter or chapter > self.end_chapter:
            return False
        if verse is None:
            return True
        if (
            chapter == self.start_chapter
            and self.start_verse is not None
            and verse < self.start_verse
        ):
            return False
        if (
            chapter == self.end_chapter
            and self.end_verse is not None
            and verse > self.end_verse
        ):
            return False
        return True

    @property
    def is_whole_chapter(self) -> bool:
        return self.start_verse is None and self.end_verse is None


@dataclass(frozen=True)
class NotParsed:
    """Result of a reference that could not be resolved. Always falsy."""
    text: Any
    reason: str

    def __bool__(self) -> bool:
        return False


ParseResult = Union[ScriptureReference, NotParsed]


def parse_reference(text: Any) -> ParseResult:
    """
    Parse a free-text reference.

    Args:
        text: Reference such as "Romans 3:21-26" or "1cor 13"

    Returns:
        ScriptureReference on success, NotParsed otherwise

    Examples:
        >>> parse_reference("Romans 3:21-26")
        ScriptureReference(book='ROM', start_chapter=3, start_verse=21, end_chapter=3, end_verse=26)
        >>> bool(parse_reference("Not A Book 1:1"))
        False
    """
    if not isinstance(text, str):
        return NotParsed(text, "reference must be a string")

    normalized = " ".join(text.lower().split())
    if not normalized:
        return NotParsed(text, "empty reference")

    match = REFERENCE_PATTERN.match(normalized)
    if not match:
        return NotParsed(text, "unrecognized reference format")

    book_text, chapter, verse, range_end, range_end_verse = match.groups()

    code = resolve_book_code(book_text)
    if code is None:
        return NotParsed(text, f"unknown book '{book_text.strip()}'")
    book = get_book(code)

    start_chapter = int(chapter)
    start_verse = int(verse) if verse else None

    if start_verse is None:
        end_chapter, end_verse = start_chapter, None
    elif range_end is None:
        end_chapter, end_verse = start_chapter, start_verse
    elif range_end_verse is not None:
        # "<ch>:<v>-<ch>:<v>"
        end_chapter, end_verse = int(range_end), int(range_end_verse)
    else:
        end_chapter, end_verse = start_chapter, int(range_end)

    for ch in (start_chapter, end_chapter):
        if ch < 1 or ch > book.chapters:
            return NotParsed(
                text, f"{book.name} has {book.chapters} chapters (got {ch})"
            )
    if any(v is not None and v < 1 for v in (start_verse, end_verse)):
        return NotParsed(text, "verse numbers start at 1")

    if start_chapter > end_chapter:
        return NotParsed(text, "reversed chapter range")
    if (
        start_chapter == end_chapter
        and start_verse is not None
        and end_verse is not None
        and start_verse > end_verse
    ):
        return NotParsed(text, "reversed verse range")

    return ScriptureReference(
        book=code,
        start_chapter=start_chapter,
        start_verse=start_verse,
        end_chapter=end_chapter,
        end_verse=end_verse,
    )


def format_reference(
    ref: ScriptureReference,
) -> str:
    """
    Render a reference for display.

    Examples:
        "Romans 3:21-26", "1 Corinthians 13", "Genesis 1:1-2:3", "John 3:16"
    """
    book = get_book(ref.book)
    name = book.name if book else ref.book

    if ref.start_verse is None:
        if ref.end_chapter != ref.start_chapter:
            return f"{name} {ref.start_chapter}-{ref.end_chapter}"
        return f"{name} {ref.start_chapter}"

    start = f"{name} {ref.start_chapter}:{ref.start_verse}"
    if ref.end_chapter != ref.start_chapter:
        end_verse = f":{ref.end_verse}" if ref.end_verse is not None else ""
        return f"{start}-{ref.end_chapter}{end_verse}"
    if ref.end_verse is None or ref.end_verse == ref.start_verse:
        return start
    return f"{start}-{ref.end_verse}"
