"""Text helpers used to normalize values before fuzzy comparison."""

from __future__ import annotations

from typing import List


def collapse_whitespace(value: str) -> str:
    """Collapse whitespace runs into single spaces and strip the ends."""
    return " ".join(value.split())


def fold_text(value: str, *, case_sensitive: bool = False) -> tuple[str, List[int]]:
    """Normalize ``value`` for matching and keep a map back to the original.

    Whitespace runs collapse to one space, leading and trailing whitespace
    is dropped, and characters are case-folded unless ``case_sensitive``.
    The returned offsets hold, for each normalized character, the index of
    the character in ``value`` it came from.
    """
    chars: List[str] = []
    offsets: List[int] = []
    space_at: int | None = None

    for index, char in enumerate(value):
        if char.isspace():
            if chars and space_at is None:
                space_at = index
            continue
        if space_at is not None:
            chars.append(" ")
            offsets.append(space_at)
            space_at = None
        # casefold() may expand one character into several (e.g. "ß" -> "ss")
        for piece in char if case_sensitive else char.casefold():
            chars.append(piece)
            offsets.append(index)

    return "".join(chars), offsets
