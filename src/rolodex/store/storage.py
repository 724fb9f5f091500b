"""SQLite persistence for contacts and menus."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

from rolodex.models import ContactRecord, MealRecord, MenuRecord


class SQLiteContactStore:
    """Persistence layer for the contact collection and restaurant menus.

    Contacts keep their insertion order through the ``seq`` rowid, which an
    in-place update never changes. All access goes through one connection
    guarded by a re-entrant lock; ``writer()`` holds that lock for a whole
    read-resolve-persist cycle so only one writer works at a time, whichever
    connection it comes from.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._depth = 0
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def writer(self) -> Iterator[sqlite3.Connection]:
        """Hold the write lock and a transaction; nested use joins the outer one.

        The outermost writer opens the transaction with ``BEGIN IMMEDIATE`` so
        SQLite's write lock is taken before anything is read. Other
        connections to the same file wait until this writer commits.
        """
        with self._lock:
            self._depth += 1
            try:
                if self._depth == 1 and not self._conn.in_transaction:
                    self._conn.execute("BEGIN IMMEDIATE")
                yield self._conn
            except Exception:
                if self._depth == 1:
                    self._conn.rollback()
                raise
            else:
                if self._depth == 1:
                    self._conn.commit()
            finally:
                self._depth -= 1

    def _ensure_schema(self) -> None:
        with self.writer() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS contacts (
                    seq INTEGER PRIMARY KEY,
                    id TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    phone TEXT NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TRIGGER IF NOT EXISTS contacts_updated
                AFTER UPDATE ON contacts
                BEGIN
                    UPDATE contacts SET updated_at = CURRENT_TIMESTAMP WHERE seq = NEW.seq;
                END;
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS menus (
                    seq INTEGER PRIMARY KEY,
                    id TEXT NOT NULL UNIQUE,
                    title TEXT NOT NULL,
                    restaurant_name TEXT NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS meals (
                    seq INTEGER PRIMARY KEY,
                    id TEXT NOT NULL,
                    menu_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    type TEXT NOT NULL,
                    price REAL NOT NULL,
                    calories REAL NOT NULL,
                    image_url TEXT NOT NULL,
                    size TEXT NOT NULL,
                    FOREIGN KEY(menu_id) REFERENCES menus(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_meals_menu_id
                    ON meals(menu_id)
                """
            )

    @staticmethod
    def _contact(row: sqlite3.Row) -> ContactRecord:
        return ContactRecord(id=row["id"], name=row["name"], phone=row["phone"])

    def load_contacts(self) -> List[ContactRecord]:
        """Return the whole collection in insertion order."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, name, phone FROM contacts ORDER BY seq"
            ).fetchall()
        return [self._contact(row) for row in rows]

    def get_contact(self, contact_id: str) -> ContactRecord | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT id, name, phone FROM contacts WHERE id = ?", (contact_id,)
            ).fetchone()
        return self._contact(row) if row else None

    def save_contact(self, record: ContactRecord, *, created: bool = False) -> None:
        """Insert ``record`` or update the stored row with the same id in place.

        With ``created`` the row must be new: an existing id raises
        ``sqlite3.IntegrityError`` instead of being overwritten.
        """
        with self.writer() as conn:
            if created:
                conn.execute(
                    "INSERT INTO contacts(id, name, phone) VALUES (?, ?, ?)",
                    (record.id, record.name, record.phone),
                )
                return
            conn.execute(
                """
                INSERT INTO contacts(id, name, phone) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name, phone = excluded.phone
                """,
                (record.id, record.name, record.phone),
            )

    def delete_contact(self, contact_id: str) -> ContactRecord | None:
        """Remove the contact with exactly this id; return it, or None if absent."""
        with self.writer() as conn:
            existing = self.get_contact(contact_id)
            if existing is None:
                return None
            conn.execute("DELETE FROM contacts WHERE id = ?", (contact_id,))
        return existing

    def create_menu(self, menu: MenuRecord) -> None:
        with self.writer() as conn:
            conn.execute(
                "INSERT INTO menus(id, title, restaurant_name) VALUES (?, ?, ?)",
                (menu.id, menu.title, menu.restaurant_name),
            )
            for position, meal in enumerate(menu.meals):
                conn.execute(
                    """
                    INSERT INTO meals(
                        id, menu_id, position, title, description, type,
                        price, calories, image_url, size
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        meal.id,
                        menu.id,
                        position,
                        meal.title,
                        meal.description,
                        meal.type,
                        float(meal.price),
                        float(meal.calories),
                        meal.image_url,
                        meal.size,
                    ),
                )

    def list_menus(self) -> List[MenuRecord]:
        with self._lock:
            menu_rows = self._conn.execute(
                "SELECT id, title, restaurant_name FROM menus ORDER BY seq"
            ).fetchall()
            meal_rows = self._conn.execute(
                """
                SELECT id, menu_id, title, description, type, price, calories, image_url, size
                FROM meals ORDER BY menu_id, position
                """
            ).fetchall()

        meals: dict[str, List[MealRecord]] = {}
        for row in meal_rows:
            meals.setdefault(row["menu_id"], []).append(
                MealRecord(
                    id=row["id"],
                    title=row["title"],
                    description=row["description"],
                    type=row["type"],
                    price=row["price"],
                    calories=row["calories"],
                    image_url=row["image_url"],
                    size=row["size"],
                )
            )
        return [
            MenuRecord(
                id=row["id"],
                title=row["title"],
                restaurant_name=row["restaurant_name"],
                meals=meals.get(row["id"], []),
            )
            for row in menu_rows
        ]

    def count_contacts(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM contacts").fetchone()[0]
