"""Contact service: snapshot the store, run the core, persist the outcome."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping

from rolodex.config import AppConfig
from rolodex.core.errors import ErrorKind, UpsertError
from rolodex.core.identifiers import generate, validate
from rolodex.core.matching import FuzzyMatcher, SearchConfig
from rolodex.core.upsert import UpsertMode, UpsertResult
from rolodex.models import ContactRecord, MatchResult, MealRecord, MenuRecord
from rolodex.store.storage import SQLiteContactStore

LOGGER = logging.getLogger(__name__)

DEMO_CONTACTS = (
    {"name": "Lamis", "phone": "0511111111"},
    {"name": "Lamis", "phone": "0511111111"},
    {"name": "Amani", "phone": "0511111111"},
    {"name": "Amani", "phone": "0511111111"},
    {"name": "Saleh", "phone": "0511111111"},
)


class ContactService:
    """Coordinates the contact store with the upsert resolver and matcher."""

    def __init__(self, store: SQLiteContactStore, config: AppConfig | None = None) -> None:
        self.store = store
        self.config = config or AppConfig(db_path=store.db_path)

    def upsert(self, incoming: Mapping[str, Any], mode: UpsertMode | str) -> UpsertResult:
        resolver = self.config.resolver(mode)
        # The snapshot, the decision and the write happen under one writer.
        with self.store.writer():
            collection = self.store.load_contacts()
            result = resolver.upsert(collection, incoming)
            if result.ok and result.record is not None:
                self.store.save_contact(result.record, created=result.created)
        if result.ok:
            LOGGER.info(
                "%s contact %s", "Created" if result.created else "Updated", result.record.id
            )
        return result

    def create(self, incoming: Mapping[str, Any]) -> UpsertResult:
        return self.upsert(incoming, UpsertMode.CREATE_ONLY)

    def replace(self, incoming: Mapping[str, Any]) -> UpsertResult:
        return self.upsert(incoming, UpsertMode.FULL_REPLACE)

    def merge(self, contact_id: str, changes: Mapping[str, Any]) -> UpsertResult:
        return self.upsert({**changes, "id": contact_id}, UpsertMode.PARTIAL_MERGE)

    def check_identifier(self, contact_id: str) -> UpsertError | None:
        if validate(contact_id, self.config.id_scheme):
            return None
        return UpsertError(
            ErrorKind.INVALID_IDENTIFIER,
            f"id {contact_id!r} is not a valid {self.config.id_scheme.value} identifier",
        )

    def get(self, contact_id: str) -> ContactRecord | None:
        return self.store.get_contact(contact_id)

    def delete(self, contact_id: str) -> ContactRecord | None:
        removed = self.store.delete_contact(contact_id)
        if removed is not None:
            LOGGER.info("Deleted contact %s", contact_id)
        return removed

    def list_contacts(self) -> List[ContactRecord]:
        return self.store.load_contacts()

    def search(self, query: str, config: SearchConfig | None = None) -> List[MatchResult]:
        matcher = FuzzyMatcher(config or self.config.search_config())
        return matcher.search(self.store.load_contacts(), query)

    def seed(self) -> List[ContactRecord]:
        """Insert the demo contacts, duplicates included."""
        created = []
        for contact in DEMO_CONTACTS:
            result = self.create(contact)
            if result.record is not None:
                created.append(result.record)
        return created

    def add_menu(self, payload: Mapping[str, Any]) -> List[MenuRecord]:
        """Store a menu and its meals, generating ids the payload leaves out."""
        scheme = self.config.id_scheme
        meals: List[MealRecord] = []
        for meal in payload.get("meals", []):
            meal_id = meal.get("id") or generate(scheme, (m.id for m in meals))
            meals.append(MealRecord(**{**meal, "id": meal_id}))
        with self.store.writer():
            menu = MenuRecord(
                id=payload.get("id") or generate(scheme, (m.id for m in self.store.list_menus())),
                title=payload["title"],
                restaurant_name=payload["restaurant_name"],
                meals=meals,
            )
            self.store.create_menu(menu)
            return self.store.list_menus()

    def list_menus(self) -> List[MenuRecord]:
        return self.store.list_menus()
