"""
Scripture references and doctrine link grammar.

Pure functions with no database access: the book table, the free-text
reference parser and the ``[[ST:...]]`` link syntax.
"""
from .books import BOOKS, BOOK_ALIASES, Book, book_order, get_book, resolve_book_code
from .doctrine_links import (
    DoctrineAddress,
    find_link_tokens,
    parse_link_token,
    parse_reference_string,
    render_link_token,
)
from .reference_parser import (
    NotParsed,
    ScriptureReference,
    format_reference,
    parse_reference,
)

__all__ = [
    "BOOKS",
    "BOOK_ALIASES",
    "Book",
    "book_order",
    "get_book",
    "resolve_book_code",
    "DoctrineAddress",
    "find_link_tokens",
    "parse_link_token",
    "parse_reference_string",
    "render_link_token",
    "NotParsed",
    "ScriptureReference",
    "format_reference",
    "parse_reference",
]
