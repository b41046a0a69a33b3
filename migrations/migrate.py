"""Simple SQL migration runner for the SQLite history store.

Reads .sql files from the migrations/ directory in lexicographic order,
tracks applied migrations in a _migrations table, and skips already-applied ones.
PostgreSQL deployments create the schema from the ORM metadata instead.

Usage:
    python -m migrations.migrate                # apply pending migrations
    python -m migrations.migrate --dry-run      # show what would be applied
    python -m migrations.migrate --status       # show migration status
"""

import argparse
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from config import get_settings

MIGRATIONS_DIR: Path = Path(__file__).resolve().parent


def _get_db_path() -> Path:
    return get_settings().database._resolved_sqlite_path()


def _ensure_tracking_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        "CREATE TABLE IF NOT EXISTS _migrations ("
        "  filename TEXT PRIMARY KEY,"
        "  applied_at TEXT NOT NULL"
        ")"
    )
    conn.commit()


def _get_applied(conn: sqlite3.Connection) -> set[str]:
    rows: list[tuple[str, ...]] = conn.execute("SELECT filename FROM _migrations").fetchall()
    return {r[0] for r in rows}


def _get_pending(applied: set[str]) -> list[Path]:
    sql_files: list[Path] = sorted(MIGRATIONS_DIR.glob("*.sql"))
    return [f for f in sql_files if f.name not in applied]


def migrate(dry_run: bool = False) -> list[str]:
    """Apply pending migrations and return the names applied (or that would be)."""
    db_path: Path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    print(f"Database: {db_path}")
    conn: sqlite3.Connection = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode=WAL")

        _ensure_tracking_table(conn)
        pending: list[Path] = _get_pending(_get_applied(conn))

        if not pending:
            print("No pending migrations.")
            return []

        for migration in pending:
            print(f"{'[DRY RUN] ' if dry_run else ''}Applying {migration.name} ...")
            if dry_run:
                continue

            conn.executescript(migration.read_text())
            conn.execute(
                "INSERT INTO _migrations (filename, applied_at) VALUES (?, ?)",
                (migration.name, datetime.now(UTC).isoformat()),
            )
            conn.commit()
            print(f"  Applied {migration.name}")
    finally:
        conn.close()

    print("Done.")
    return [p.name for p in pending]


def status() -> None:
    db_path: Path = _get_db_path()
    if not db_path.exists():
        print(f"Database not found: {db_path}")
        print("No migrations applied yet.")
        return

    conn: sqlite3.Connection = sqlite3.connect(db_path)
    try:
        _ensure_tracking_table(conn)
        applied: set[str] = _get_applied(conn)
        pending: list[Path] = _get_pending(applied)
    finally:
        conn.close()

    print(f"Database: {db_path}")
    print(f"Applied:  {len(applied)}")
    for name in sorted(applied):
        print(f"  [x] {name}")
    print(f"Pending:  {len(pending)}")
    for p in pending:
        print(f"  [ ] {p.name}")


def main() -> None:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(description="SQL migration runner")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be applied")
    parser.add_argument("--status", action="store_true", help="Show migration status")
    args: argparse.Namespace = parser.parse_args()

    if args.status:
        status()
    else:
        migrate(dry_run=args.dry_run)


if __name__ == "__main__":
    main()
