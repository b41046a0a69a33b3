"""Tests for migrations.migrate against a throwaway SQLite file."""

import sqlite3
from collections.abc import Generator
from pathlib import Path

import pytest

from config import get_settings
from migrations.migrate import migrate


@pytest.fixture()
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    path: Path = tmp_path / "history.db"
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DB_SQLITE_PATH", str(path))
    monkeypatch.setenv("ACTIVITY_DATA_DIR", str(tmp_path / "data"))
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()


def _insert(conn: sqlite3.Connection) -> None:
    conn.execute(
        "INSERT INTO history_entries (entity_type, entity_id, action, created_at) "
        "VALUES ('invoice', '1', 'create', '2026-10-15 10:00:00.000000')"
    )
    conn.commit()


class TestMigrate:
    def test_applies_once(self, db_path: Path) -> None:
        assert migrate() == ["001_history_entries.sql"]
        assert migrate() == []

    def test_dry_run_applies_nothing(self, db_path: Path) -> None:
        assert migrate(dry_run=True) == ["001_history_entries.sql"]
        assert migrate() == ["001_history_entries.sql"]

    def test_entries_are_append_only(self, db_path: Path) -> None:
        migrate()
        conn: sqlite3.Connection = sqlite3.connect(db_path)
        try:
            _insert(conn)
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute("UPDATE history_entries SET action = 'delete'")
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute("DELETE FROM history_entries")
            count: int = conn.execute("SELECT COUNT(*) FROM history_entries").fetchone()[0]
            assert count == 1
        finally:
            conn.close()
