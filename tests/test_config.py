"""Tests for application configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from rolodex.config import AppConfig
from rolodex.core.identifiers import IdentifierScheme
from rolodex.core.upsert import UpsertMode


class TestAppConfig:
    """Test AppConfig dataclass."""

    def test_default_config(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Should create config with default values."""
        monkeypatch.delenv("ROLODEX_DB", raising=False)
        monkeypatch.chdir(tmp_path)

        config = AppConfig()

        assert config.db_path == Path.home() / "Documents" / "Rolodex" / "rolodex.db"
        assert config.id_scheme is IdentifierScheme.HEX24
        assert config.fallback_create is False
        assert config.search_fields == ("name", "phone")
        assert config.search_threshold == 1.0

    def test_local_data_dir_preferred(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.delenv("ROLODEX_DB", raising=False)
        monkeypatch.chdir(tmp_path)
        (tmp_path / "data").mkdir()
        (tmp_path / "data" / "rolodex.db").touch()

        assert AppConfig().db_path == Path("data/rolodex.db")

    def test_env_var_overrides_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ROLODEX_DB", "/srv/rolodex/contacts.db")

        assert AppConfig().db_path == Path("/srv/rolodex/contacts.db")

    def test_custom_config(self) -> None:
        config = AppConfig(
            db_path=Path("/custom/path.db"),
            id_scheme="uuid",
            fallback_create=True,
            search_fields=["name"],
            search_threshold=0.4,
        )

        assert config.db_path == Path("/custom/path.db")
        assert config.id_scheme is IdentifierScheme.UUID
        assert config.search_fields == ("name",)

    def test_unknown_scheme_rejected(self) -> None:
        with pytest.raises(ValueError):
            AppConfig(db_path=Path("x.db"), id_scheme="sha1")

    def test_resolve_db_path_absolute(self) -> None:
        config = AppConfig(db_path=Path("/absolute/path/db.db"))

        assert config.resolve_db_path(Path("/base")) == Path("/absolute/path/db.db")

    def test_resolve_db_path_relative_with_base(self) -> None:
        config = AppConfig(db_path=Path("relative/db.db"))

        resolved = config.resolve_db_path(base_dir=Path("/base/directory"))

        assert resolved == Path("/base/directory/relative/db.db")

    def test_resolve_db_path_relative_no_base(self) -> None:
        config = AppConfig(db_path=Path("relative/db.db"))

        assert config.resolve_db_path() == Path("relative/db.db")

    def test_search_config_uses_defaults(self) -> None:
        config = AppConfig(db_path=Path("x.db"), search_threshold=0.3)

        search_config = config.search_config()

        assert search_config.fields == ("name", "phone")
        assert search_config.threshold == 0.3

    def test_search_config_overrides_skip_none(self) -> None:
        config = AppConfig(db_path=Path("x.db"))

        search_config = config.search_config(fields=("name",), threshold=None, all_matches=True)

        assert search_config.fields == ("name",)
        assert search_config.threshold == 1.0
        assert search_config.all_matches is True

    def test_resolver_carries_settings(self) -> None:
        config = AppConfig(db_path=Path("x.db"), id_scheme="opaque", fallback_create=True)

        resolver = config.resolver(UpsertMode.PARTIAL_MERGE)

        assert resolver.scheme is IdentifierScheme.OPAQUE
        assert resolver.mode is UpsertMode.PARTIAL_MERGE
        assert resolver.fallback_create is True
