"""Create / replace / merge resolution for incoming contact records."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, List, Mapping, Sequence

from rolodex.core.errors import ErrorKind, UpsertError
from rolodex.core.identifiers import IdentifierScheme, generate, validate
from rolodex.models import CONTACT_FIELDS, REQUIRED_CONTACT_FIELDS, ContactRecord

LOGGER = logging.getLogger(__name__)

IdFactory = Callable[[IdentifierScheme, Iterable[str]], str]


class UpsertMode(str, Enum):
    CREATE_ONLY = "create-only"
    FULL_REPLACE = "full-replace-upsert"
    PARTIAL_MERGE = "partial-merge-upsert"


@dataclass(slots=True)
class UpsertResult:
    """Outcome of a single upsert.

    On failure ``collection`` is the unchanged input snapshot and ``record``
    is None.
    """

    collection: List[ContactRecord]
    record: ContactRecord | None = None
    created: bool = False
    error: UpsertError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _find(collection: Sequence[ContactRecord], identifier: str) -> int | None:
    # First match wins; later records with the same id are left alone.
    for index, record in enumerate(collection):
        if record.id == identifier:
            return index
    return None


class UpsertResolver:
    """Decides create vs. update for an incoming record and merges fields.

    One resolver handles every endpoint; the differences between them are
    expressed by ``scheme`` (which ids are acceptable), ``mode`` (create,
    replace or merge) and ``fallback_create`` (whether a merge against an
    unknown id may create the record instead of failing).
    """

    def __init__(
        self,
        *,
        scheme: IdentifierScheme | str = IdentifierScheme.HEX24,
        mode: UpsertMode | str = UpsertMode.FULL_REPLACE,
        fallback_create: bool = False,
        id_factory: IdFactory = generate,
    ) -> None:
        self.scheme = IdentifierScheme(scheme)
        self.mode = UpsertMode(mode)
        self.fallback_create = fallback_create
        self.id_factory = id_factory

    def upsert(
        self, collection: Sequence[ContactRecord], incoming: Mapping[str, Any]
    ) -> UpsertResult:
        snapshot = list(collection)
        fields, error = self._present_fields(incoming)
        if error is not None:
            return self._reject(collection, error)

        if self.mode is UpsertMode.CREATE_ONLY:
            return self._create(snapshot, fields)

        identifier = fields.pop("id", None)
        if identifier is None:
            return self._reject(
                collection, UpsertError(ErrorKind.INVALID_INPUT, "id is required")
            )
        if not validate(identifier, self.scheme):
            return self._reject(
                collection,
                UpsertError(
                    ErrorKind.INVALID_IDENTIFIER,
                    f"id {identifier!r} is not a valid {self.scheme.value} identifier",
                ),
            )

        index = _find(snapshot, identifier)
        if index is None:
            if self.mode is UpsertMode.FULL_REPLACE or self.fallback_create:
                return self._append(snapshot, identifier, fields)
            return self._reject(
                collection,
                UpsertError(ErrorKind.NOT_FOUND, f"No contact with id {identifier!r}"),
            )

        existing = snapshot[index]
        if self.mode is UpsertMode.FULL_REPLACE:
            missing = [name for name in REQUIRED_CONTACT_FIELDS if name not in fields]
            if missing:
                return self._reject(collection, self._missing_error(missing))
            updated = ContactRecord(id=existing.id, **fields)
        else:
            updated = dataclasses.replace(existing, **fields)

        snapshot[index] = updated
        LOGGER.debug("%s updated contact %s", self.mode.value, updated.id)
        return UpsertResult(collection=snapshot, record=updated, created=False)

    def _create(self, snapshot: List[ContactRecord], fields: dict[str, Any]) -> UpsertResult:
        if fields.get("id"):
            return self._reject(
                snapshot,
                UpsertError(
                    ErrorKind.INVALID_INPUT,
                    "id must not be supplied when creating a contact",
                ),
            )
        fields.pop("id", None)
        identifier = self.id_factory(self.scheme, (record.id for record in snapshot))
        return self._append(snapshot, identifier, fields)

    def _append(
        self, snapshot: List[ContactRecord], identifier: str, fields: dict[str, Any]
    ) -> UpsertResult:
        missing = [name for name in REQUIRED_CONTACT_FIELDS if name not in fields]
        if missing:
            return self._reject(snapshot, self._missing_error(missing))
        record = ContactRecord(id=identifier, **fields)
        snapshot.append(record)
        LOGGER.debug("%s created contact %s", self.mode.value, record.id)
        return UpsertResult(collection=snapshot, record=record, created=True)

    @staticmethod
    def _present_fields(
        incoming: Mapping[str, Any],
    ) -> tuple[dict[str, Any], UpsertError | None]:
        """Keep only the fields that carry a value, rejecting unknown names."""
        fields: dict[str, Any] = {}
        for name, value in incoming.items():
            if name not in CONTACT_FIELDS:
                return fields, UpsertError(ErrorKind.INVALID_INPUT, f"Unknown field {name!r}")
            if value is None:
                continue
            if name in REQUIRED_CONTACT_FIELDS and (not isinstance(value, str) or not value):
                return fields, UpsertError(
                    ErrorKind.INVALID_INPUT, f"{name} must be a non-empty string"
                )
            fields[name] = value
        return fields, None

    @staticmethod
    def _missing_error(missing: List[str]) -> UpsertError:
        return UpsertError(
            ErrorKind.INVALID_INPUT, f"Missing required fields: {', '.join(missing)}"
        )

    def _reject(self, collection: Sequence[ContactRecord], error: UpsertError) -> UpsertResult:
        LOGGER.info("Rejected %s: %s", self.mode.value, error)
        return UpsertResult(collection=list(collection), error=error)


def upsert(
    collection: Sequence[ContactRecord],
    incoming: Mapping[str, Any],
    mode: UpsertMode | str,
    *,
    scheme: IdentifierScheme | str = IdentifierScheme.HEX24,
    fallback_create: bool = False,
) -> UpsertResult:
    """Resolve ``incoming`` against ``collection`` under ``mode``."""
    resolver = UpsertResolver(scheme=scheme, mode=mode, fallback_create=fallback_create)
    return resolver.upsert(collection, incoming)
