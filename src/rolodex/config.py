"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from rolodex.core.identifiers import IdentifierScheme
from rolodex.core.matching import DEFAULT_FIELDS, DEFAULT_THRESHOLD, SearchConfig
from rolodex.core.upsert import UpsertMode, UpsertResolver

DB_ENV_VAR = "ROLODEX_DB"


def _get_default_db_path() -> Path:
    """Get the default database path from the environment or the platform."""
    from_env = os.environ.get(DB_ENV_VAR)
    if from_env:
        return Path(from_env)

    # When running from a checkout, prefer local data/ if it exists
    local_db = Path("data/rolodex.db")
    if local_db.exists():
        return local_db

    return Path.home() / "Documents" / "Rolodex" / "rolodex.db"


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    id_scheme: IdentifierScheme = IdentifierScheme.HEX24
    fallback_create: bool = False
    search_fields: tuple[str, ...] = DEFAULT_FIELDS
    search_threshold: float = DEFAULT_THRESHOLD

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        self.id_scheme = IdentifierScheme(self.id_scheme)
        self.search_fields = tuple(self.search_fields)

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path

    def search_config(self, **overrides) -> SearchConfig:
        options = {"fields": self.search_fields, "threshold": self.search_threshold}
        options.update({key: value for key, value in overrides.items() if value is not None})
        return SearchConfig(**options)

    def resolver(self, mode: UpsertMode | str) -> UpsertResolver:
        return UpsertResolver(
            scheme=self.id_scheme, mode=mode, fallback_create=self.fallback_create
        )
