import logging
import shutil
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime
from pathlib import Path

from fncli import cli

from . import config
from .lib.errors import echo

MIGRATIONS_TABLE = "_migrations"
MIGRATIONS_DIR = Path(__file__).parent / "migrations"

Migration = tuple[str, str]

logger = logging.getLogger(__name__)


def _connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, timeout=30)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def get_db(db_path: Path | None = None):
    """Connection that commits on clean exit and rolls back on error."""
    conn = _connect(db_path or config.DB_PATH)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def load_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[Migration]:
    if not migrations_dir.exists():
        return []
    return [(f.stem, f.read_text()) for f in sorted(migrations_dir.glob("*.sql"))]


def _row_counts(conn: sqlite3.Connection) -> dict[str, int]:
    tables = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' AND name != ?",
        (MIGRATIONS_TABLE,),
    ).fetchall()
    counts = {}
    for (table,) in tables:
        try:
            counts[table] = conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0]  # noqa: S608
        except sqlite3.OperationalError:
            counts[table] = 0
    return counts


def _snapshot(db_path: Path) -> Path:
    """Copy the live database aside before a migration touches rows."""
    target_dir = config.BACKUP_DIR / "migrations"
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / f"worklist.{datetime.now():%Y%m%d_%H%M%S}.backup"
    try:
        with closing(sqlite3.connect(db_path, timeout=30)) as src, closing(sqlite3.connect(target)) as dst:
            src.backup(dst)
    except sqlite3.Error:
        target.unlink(missing_ok=True)
        raise
    return target


def _applied(conn: sqlite3.Connection) -> list[str]:
    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} "
        "(id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL UNIQUE, applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
    )
    conn.commit()
    rows = conn.execute(f"SELECT name FROM {MIGRATIONS_TABLE} ORDER BY id").fetchall()  # noqa: S608
    return [r[0] for r in rows]


def _run_one(conn: sqlite3.Connection, name: str, sql: str) -> None:
    before = _row_counts(conn)
    conn.executescript(sql)
    after = _row_counts(conn)
    for table, count in before.items():
        if after.get(table, 0) < count:
            raise ValueError(f"migration data loss: {table} had {count} rows, now {after.get(table, 0)}")
    conn.execute(f"INSERT OR IGNORE INTO {MIGRATIONS_TABLE} (name) VALUES (?)", (name,))  # noqa: S608
    conn.commit()


def init(db_path: Path | None = None) -> list[str]:
    """Create the database if needed and apply pending migrations.

    When existing rows are at stake the file is snapshotted first and restored
    if any migration fails or drops rows. Returns the names applied.
    """
    db_path = db_path or config.DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = _connect(db_path)
    try:
        done = set(_applied(conn))
        pending = [(n, sql) for n, sql in load_migrations() if n not in done]
        if not pending:
            return []

        backup = _snapshot(db_path) if any(_row_counts(conn).values()) else None
        applied: list[str] = []
        for name, sql in pending:
            try:
                _run_one(conn, name, sql)
            except Exception:
                conn.rollback()
                if backup:
                    conn.close()
                    shutil.copy2(backup, db_path)
                    logger.error("migration %s failed, restored %s", name, backup.name)
                raise
            logger.info("applied migration %s", name)
            applied.append(name)
    finally:
        conn.close()

    if backup:
        backup.unlink(missing_ok=True)
    return applied


@cli("worklist db", name="migrate")
def db_migrate():
    """Run pending database migrations"""
    applied = init()
    if not applied:
        echo("nothing to migrate")
        return
    for name in applied:
        echo(f"applied {name}")


@cli("worklist db", name="status")
def db_status():
    """List applied migrations and row counts"""
    with get_db() as conn:
        for name in _applied(conn):
            echo(f"✓ {name}")
        for table, count in sorted(_row_counts(conn).items()):
            echo(f"  {table}: {count}")
