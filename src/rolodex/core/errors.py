"""Typed rejection values returned by the upsert resolver."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_IDENTIFIER = "InvalidIdentifier"
    INVALID_INPUT = "InvalidInput"
    NOT_FOUND = "NotFound"


_STATUS_CODES = {
    ErrorKind.INVALID_IDENTIFIER: 400,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
}


@dataclass(frozen=True, slots=True)
class UpsertError:
    """A rejected operation. None of these are retryable."""

    kind: ErrorKind
    message: str

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.kind]

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"
