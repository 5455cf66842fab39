#!/usr/bin/env python3
"""
books.py
-------------------
Static table of the 66 books of the Protestant canon.

Each book carries its 3-letter code (the identifier stored on notes and
scripture-index rows), its display name, its chapter count and the
abbreviations accepted when parsing free text.

The alias table maps every accepted spelling (lower-case) to a code:
full names, the code itself, standard abbreviations and numbered-book
variants ("1 corinthians", "1corinthians", "1cor", "1co").

This module is data; lookups never guess. An alias that is not in the
table resolves to None.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Book:
    """
    One book of the Bible.

    Fields:
    - code:     3-letter code ('GEN', '1CO', 'REV')
    - name:     Display name ('Genesis', '1 Corinthians')
    - chapters: Number of chapters in the book
    - aliases:  Extra lower-case spellings accepted by the parser
    """
    code:     str
    name:     str
    chapters: int
    aliases:  Tuple[str, ...] = ()

    @property
    def testament(self) -> str:
        """'OT' or 'NT', by canonical position."""
        return "OT" if BOOK_INDEX[self.code] < 39 else "NT"


BOOKS: Tuple[Book, ...] = (
    # ---- Old Testament ----
    Book("GEN", "Genesis", 50, ("gen",)),
    Book("EXO", "Exodus", 40, ("exo", "ex")),
    Book("LEV", "Leviticus", 27, ("lev",)),
    Book("NUM", "Numbers", 36, ("num",)),
    Book("DEU", "Deuteronomy", 34, ("deu", "deut")),
    Book("JOS", "Joshua", 24, ("jos", "josh")),
    Book("JDG", "Judges", 21, ("jdg", "judg")),
    Book("RUT", "Ruth", 4, ("rut",)),
    Book("1SA", "1 Samuel", 31, ("1sa", "1sam")),
    Book("2SA", "2 Samuel", 24, ("2sa", "2sam")),
    Book("1KI", "1 Kings", 22, ("1ki", "1kgs")),
    Book("2KI", "2 Kings", 25, ("2ki", "2kgs")),
    Book("1CH", "1 Chronicles", 29, ("1ch", "1chr")),
    Book("2CH", "2 Chronicles", 36, ("2ch", "2chr")),
    Book("EZR", "Ezra", 10, ("ezr",)),
    Book("NEH", "Nehemiah", 13, ("neh",)),
    Book("EST", "Esther", 10, ("est",)),
    Book("JOB", "Job", 42),
    Book("PSA", "Psalms", 150, ("psa", "ps", "psalm")),
    Book("PRO", "Proverbs", 31, ("pro", "prov")),
    Book("ECC", "Ecclesiastes", 12, ("ecc", "eccl")),
    Book("SNG", "Song of Solomon", 8, ("sng", "song", "sos", "song of songs")),
    Book("ISA", "Isaiah", 66, ("isa",)),
    Book("JER", "Jeremiah", 52, ("jer",)),
    Book("LAM", "Lamentations", 5, ("lam",)),
    Book("EZK", "Ezekiel", 48, ("ezk", "ezek")),
    Book("DAN", "Daniel", 12, ("dan",)),
    Book("HOS", "Hosea", 14, ("hos",)),
    Book("JOL", "Joel", 3, ("jol",)),
    Book("AMO", "Amos", 9, ("amo",)),
    Book("OBA", "Obadiah", 1, ("oba", "obad")),
    Book("JON", "Jonah", 4, ("jon",)),
    Book("MIC", "Micah", 7, ("mic",)),
    Book("NAM", "Nahum", 3, ("nam", "nah")),
    Book("HAB", "Habakkuk", 3, ("hab",)),
    Book("ZEP", "Zephaniah", 3, ("zep", "zeph")),
    Book("HAG", "Haggai", 2, ("hag",)),
    Book("ZEC", "Zechariah", 14, ("zec", "zech")),
    Book("MAL", "Malachi", 4, ("mal",)),
    # ---- New Testament ----
    Book("MAT", "Matthew", 28, ("mat", "matt", "mt")),
    Book("MRK", "Mark", 16, ("mrk", "mk")),
    Book("LUK", "Luke", 24, ("luk", "lk")),
    Book("JHN", "John", 21, ("jhn", "jn")),
    Book("ACT", "Acts", 28, ("act",)),
    Book("ROM", "Romans", 16, ("rom",)),
    Book("1CO", "1 Corinthians", 16, ("1co", "1cor", "1 cor")),
    Book("2CO", "2 Corinthians", 13, ("2co", "2cor", "2 cor")),
    Book("GAL", "Galatians", 6, ("gal",)),
    Book("EPH", "Ephesians", 6, ("eph",)),
    Book("PHP", "Philippians", 4, ("php", "phil")),
    Book("COL", "Colossians", 4, ("col",)),
    Book("1TH", "1 Thessalonians", 5, ("1th", "1thess")),
    Book("2TH", "2 Thessalonians", 3, ("2th", "2thess")),
    Book("1TI", "1 Timothy", 6, ("1ti", "1tim")),
    Book("2TI", "2 Timothy", 4, ("2ti", "2tim")),
    Book("TIT", "Titus", 3, ("tit",)),
    Book("PHM", "Philemon", 1, ("phm", "phlm")),
    Book("HEB", "Hebrews", 13, ("heb",)),
    Book("JAS", "James", 5, ("jas",)),
    Book("1PE", "1 Peter", 5, ("1pe", "1pet")),
    Book("2PE", "2 Peter", 3, ("2pe", "2pet")),
    Book("1JN", "1 John", 5, ("1jn", "1john")),
    Book("2JN", "2 John", 1, ("2jn", "2john")),
    Book("3JN", "3 John", 1, ("3jn", "3john")),
    Book("JUD", "Jude", 1, ("jud",)),
    Book("REV", "Revelation", 22, ("rev", "revelations")),
)

BOOKS_BY_CODE: Dict[str, Book] = {book.code: book for book in BOOKS}
BOOK_INDEX: Dict[str, int] = {book.code: i for i, book in enumerate(BOOKS)}


def _build_alias_table() -> Dict[str, str]:
    """Map every accepted lower-case spelling to its book code."""
    table: Dict[str, str] = {}
    for book in BOOKS:
        name = book.name.lower()
        spellings = {book.code.lower(), name, name.replace(" ", "")}
        spellings.update(book.aliases)
        for spelling in spellings:
            table[spelling] = book.code
    return table


BOOK_ALIASES: Dict[str, str] = _build_alias_table()


def resolve_book_code(alias: Optional[str]) -> Optional[str]:
    """
    Resolve a book name or abbreviation to its 3-letter code.

    Whitespace runs are collapsed and case is ignored. Unknown spellings
    return None.

    Examples:
        >>> resolve_book_code("1 Corinthians")
        '1CO'
        >>> resolve_book_code("Rom")
        'ROM'
        >>> resolve_book_code("Not A Book") is None
        True
    """
    if not alias or not isinstance(alias, str):
        return None
    normalized = " ".join(alias.lower().split())
    return BOOK_ALIASES.get(normalized)


def get_book(code: Optional[str]) -> Optional[Book]:
    """Return the Book for a 3-letter code (case-insensitive), or None."""
    if not code:
        return None
    return BOOKS_BY_CODE.get(code.upper())


def book_order(code: str) -> int:
    """Canonical position of a book (0 = Genesis); unknown codes sort last."""
    return BOOK_INDEX.get(code.upper(), len(BOOKS))
