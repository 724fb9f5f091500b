"""Identifier schemes: validation and generation of contact keys."""

from __future__ import annotations

import itertools
import logging
import os
import re
import struct
import time
import uuid
from enum import Enum
from typing import Iterable

LOGGER = logging.getLogger(__name__)

_HEX24_RE = re.compile(r"[0-9a-f]{24}")
_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)


class IdentifierScheme(str, Enum):
    HEX24 = "hex24"
    UUID = "uuid"
    OPAQUE = "opaque"


def _coerce_scheme(scheme: IdentifierScheme | str) -> IdentifierScheme:
    try:
        return IdentifierScheme(scheme)
    except ValueError:
        raise ValueError(
            f"Unknown identifier scheme {scheme!r}; expected one of "
            f"{', '.join(s.value for s in IdentifierScheme)}"
        ) from None


def validate(id_string: object, scheme: IdentifierScheme | str) -> bool:
    """Return True when ``id_string`` is a well-formed key for ``scheme``.

    Data never makes this raise: anything that is not a string is simply
    invalid. An unknown ``scheme`` is a programming error and raises
    ``ValueError``.
    """
    resolved = _coerce_scheme(scheme)
    if not isinstance(id_string, str):
        return False
    if resolved is IdentifierScheme.HEX24:
        return _HEX24_RE.fullmatch(id_string) is not None
    if resolved is IdentifierScheme.UUID:
        return _UUID_RE.fullmatch(id_string) is not None
    return len(id_string) > 0


class ObjectIdFactory:
    """Generates 12-byte object ids rendered as 24 lowercase hex characters.

    Layout: 4-byte big-endian seconds since the epoch, 5 random bytes fixed
    for the lifetime of the factory, 3-byte counter seeded at random.
    """

    def __init__(self) -> None:
        self._process_bytes = os.urandom(5)
        self._counter = itertools.count(int.from_bytes(os.urandom(3), "big"))

    def __call__(self) -> str:
        count = next(self._counter) & 0xFFFFFF
        raw = (
            struct.pack(">I", int(time.time()) & 0xFFFFFFFF)
            + self._process_bytes
            + count.to_bytes(3, "big")
        )
        return raw.hex()


_object_ids = ObjectIdFactory()


def _next_integer(existing: set[str]) -> str:
    numbers = [int(value) for value in existing if value.isascii() and value.isdigit()]
    return str(max(numbers) + 1 if numbers else 1)


def generate(scheme: IdentifierScheme | str, existing: Iterable[str] = ()) -> str:
    """Create a fresh identifier for ``scheme`` that is not in ``existing``."""
    resolved = _coerce_scheme(scheme)
    taken = set(existing)

    if resolved is IdentifierScheme.OPAQUE:
        # Auto-increment over the integer-valued keys already in use.
        return _next_integer(taken)

    while True:
        if resolved is IdentifierScheme.HEX24:
            candidate = _object_ids()
        else:
            candidate = str(uuid.uuid4())
        if candidate not in taken:
            return candidate
        LOGGER.debug("Generated identifier %s collided, retrying", candidate)
