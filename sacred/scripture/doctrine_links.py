#!/usr/bin/env python3
"""
doctrine_links.py
-------------------
Grammar of the links between note content and systematic-theology entries.

Two textual forms address an entry:

    Reference string   Ch32 | Ch32:A | Ch32:A.1     (case-insensitive)
    Link token         [[ST:Ch32]] | [[ST:Ch32:A]] | [[ST:Ch32:A.1]]

Link tokens are embedded in note content. Exactly one canonical token
exists per address: the section letter is upper-cased and no whitespace is
allowed. Rendering a token and parsing it back yields the same address.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

LINK_TOKEN_PATTERN = re.compile(
    r"\[\[ST:Ch(\d+)(?::([A-Z])(?:\.(\d+))?)?\]\]", re.IGNORECASE
)
REFERENCE_STRING_PATTERN = re.compile(
    r"^Ch(\d+)(?::([A-Z])(?:\.(\d+))?)?$", re.IGNORECASE
)


@dataclass(frozen=True)
class DoctrineAddress:
    """Chapter, optional section letter and optional subsection number."""
    chapter_number: int
    section_letter: Optional[str] = None
    subsection_number: Optional[int] = None

    def __post_init__(self) -> None:
        if self.section_letter is not None:
            object.__setattr__(self, "section_letter", self.section_letter.upper())

    @property
    def reference_string(self) -> str:
        ref = f"Ch{self.chapter_number}"
        if self.section_letter:
            ref += f":{self.section_letter}"
            if self.subsection_number is not None:
                ref += f".{self.subsection_number}"
        return ref

    @property
    def link_token(self) -> str:
        return f"[[ST:{self.reference_string}]]"


def _address_from_groups(chapter: str, section: Optional[str], sub: Optional[str]) -> DoctrineAddress:
    return DoctrineAddress(
        chapter_number=int(chapter),
        section_letter=section.upper() if section else None,
        subsection_number=int(sub) if sub else None,
    )


def render_link_token(
    chapter_number: int,
    section_letter: Optional[str] = None,
    subsection_number: Optional[int] = None,
) -> str:
    """
    Render the canonical link token for an entry.

    A subsection number without a section letter is ignored, since the
    grammar has no form for it.

    Examples:
        >>> render_link_token(32, "a", 1)
        '[[ST:Ch32:A.1]]'
    """
    return DoctrineAddress(chapter_number, section_letter, subsection_number).link_token


def parse_link_token(text: Optional[str]) -> Optional[DoctrineAddress]:
    """Parse a whole string that is exactly one link token; None otherwise."""
    if not text:
        return None
    match = LINK_TOKEN_PATTERN.fullmatch(text.strip())
    if not match:
        return None
    return _address_from_groups(*match.groups())


def parse_reference_string(text: Optional[str]) -> Optional[DoctrineAddress]:
    """Parse a reference string such as ``Ch32:A.1``; None when malformed."""
    if not text:
        return None
    match = REFERENCE_STRING_PATTERN.match(text.strip())
    if not match:
        return None
    return _address_from_groups(*match.groups())


def find_link_tokens(content: Optional[str]) -> List[DoctrineAddress]:
    """Return every address linked from ``content``, in order of appearance."""
    if not content:
        return []
    return [_address_from_groups(*m.groups()) for m in LINK_TOKEN_PATTERN.finditer(content)]
