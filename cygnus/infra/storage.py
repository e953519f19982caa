"""SQLite connection management and schema preparation for the cache file."""

from __future__ import annotations

import base64
import hashlib
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from threading import Lock
from typing import Dict, Sequence

import structlog
from alembic import command
from alembic.config import Config
from alembic.script import Script, ScriptDirectory
from alembic.util import CommandError
from sqlalchemy.exc import SQLAlchemyError

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"
VERSION_TABLE = "alembic_version"
METADATA_TABLE = "_database_metadata_"


class CachePolicy(str, Enum):
    """How an existing cache file is reconciled with the compiled schema."""

    MIGRATE = "migrate"
    GROOM = "groom"
    RECREATE = "recreate"


class CacheStoreError(RuntimeError):
    """The cache file cannot be opened or prepared."""


class SchemaDriftError(CacheStoreError):
    """The on-disk schema no longer matches any known migration history."""


METADATA_STATEMENTS: tuple[str, ...] = (
    f"""create table if not exists {METADATA_TABLE}(
        name text not null unique on conflict replace,
        value text
    );""",
)

_DRIFT_HINT = "rebuild the cache with the groom or recreate policy"


def fingerprint_schema(statements: Sequence[str]) -> str:
    """Hash the statement list; position is part of the hash so order matters."""

    digest = hashlib.sha256()
    for index, statement in enumerate(statements):
        digest.update(f"{index}:{statement}\n".encode("utf-8"))
    return base64.b64encode(digest.digest()).decode("ascii")


def alembic_config(script_location: Path, db_path: Path | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(script_location))
    if db_path is not None:
        config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}".replace("%", "%%"))
    return config


def load_revisions(script_location: Path = MIGRATIONS_DIR) -> list[Script]:
    """Return the revision scripts from base to head."""

    scripts = ScriptDirectory.from_config(alembic_config(script_location))
    return list(reversed(list(scripts.walk_revisions())))


def schema_statements(revisions: Sequence[Script]) -> tuple[str, ...]:
    """Flatten the metadata table and every revision's DDL into one ordered list."""

    statements = list(METADATA_STATEMENTS)
    for script in revisions:
        statements.extend(getattr(script.module, "STATEMENTS", ()))
    return tuple(statements)


class SQLiteManager:
    """Open cache connections and bring their schema up to date.

    Forward migrations are Alembic revisions under ``script_location``; each
    revision declares its raw DDL in ``STATEMENTS`` and the fingerprint is
    computed over the metadata table plus those statements in revision order.
    """

    def __init__(
        self,
        script_location: Path = MIGRATIONS_DIR,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.script_location = Path(script_location)
        self.revisions = load_revisions(self.script_location)
        self.head = self.revisions[-1].revision if self.revisions else None
        self.statements = schema_statements(self.revisions)
        self.fingerprint = fingerprint_schema(self.statements)
        self.logger = logger or structlog.get_logger("cygnus.storage")
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path, policy: CachePolicy = CachePolicy.MIGRATE) -> sqlite3.Connection:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheStoreError(f"Cannot create cache directory for {path}: {exc}") from exc
        with self._lock:
            if path in self._connections:
                return self._connections[path]
            if policy is CachePolicy.RECREATE:
                self._unlink(path)
            self.logger.debug("cache_open", path=str(path), policy=policy.value)
            try:
                if policy is CachePolicy.MIGRATE:
                    self.migrate(path)
                else:
                    self.groom(path)
                conn = sqlite3.connect(path, check_same_thread=False)
            except SchemaDriftError:
                raise
            except (sqlite3.Error, SQLAlchemyError, CommandError) as exc:
                raise CacheStoreError(f"Cannot prepare cache at {path}: {exc}") from exc
            conn.row_factory = sqlite3.Row
            conn.execute("pragma foreign_keys = ON;")
            self._connections[path] = conn
            return conn

    def connect_readonly(self, path: Path) -> sqlite3.Connection:
        """Open ``path`` for inspection without touching its schema."""

        try:
            conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True, check_same_thread=False)
        except sqlite3.Error as exc:
            raise CacheStoreError(f"Cannot open cache at {path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        return conn

    # ------------------------------------------------------------------
    # Schema policies
    # ------------------------------------------------------------------
    def groom(self, path: Path) -> bool:
        """Rebuild from scratch unless the stored fingerprint matches.

        Returns ``True`` when the database was rebuilt.
        """

        with closing(sqlite3.connect(path)) as conn:
            stored = self.stored_fingerprint(conn)
            if stored == self.fingerprint:
                return False
            self.logger.info("cache_clobber", stored=stored, expected=self.fingerprint)
            self.clobber(conn)
        self._upgrade(path)
        with closing(sqlite3.connect(path)) as conn:
            self._prepare_metadata(conn)
            self._store_fingerprint(conn, created=True)
            conn.commit()
        return True

    def migrate(self, path: Path) -> list[str]:
        """Apply pending revisions and check for schema drift.

        Returns the revisions applied by this call.
        """

        with closing(sqlite3.connect(path)) as conn:
            self._prepare_metadata(conn)
            stored = self.stored_fingerprint(conn)
            current = self.current_revision(conn)
            if current is None and self._user_tables(conn):
                raise SchemaDriftError(f"Cache at {path} carries tables but no revision; {_DRIFT_HINT}")
            pending = self._pending(current)
            if not pending and stored is not None and stored != self.fingerprint:
                raise SchemaDriftError(
                    f"Cache schema fingerprint {stored!r} does not match {self.fingerprint!r}; {_DRIFT_HINT}"
                )

        if pending:
            for revision in pending:
                self.logger.info("cache_migrate", revision=revision.revision, description=revision.doc)
            self._upgrade(path)
        if pending or stored is None:
            with closing(sqlite3.connect(path)) as conn:
                self._store_fingerprint(conn, created=stored is None)
                conn.commit()
        return [revision.revision for revision in pending]

    @staticmethod
    def clobber(conn: sqlite3.Connection) -> None:
        """Drop every user table, index, trigger and view."""

        rows = conn.execute(
            "select type, name from sqlite_master "
            "where type in ('table', 'index', 'trigger', 'view') and name not like 'sqlite_%'"
        ).fetchall()
        order = {"trigger": 0, "view": 1, "index": 2, "table": 3}
        conn.commit()
        conn.execute("pragma foreign_keys = OFF;")
        try:
            for kind, name in sorted(((r[0], r[1]) for r in rows), key=lambda item: order[item[0]]):
                quoted = name.replace('"', '""')
                conn.execute(f'drop {kind} if exists "{quoted}"')
            conn.commit()
        finally:
            conn.execute("pragma foreign_keys = ON;")
        conn.execute("vacuum;")

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------
    def stored_fingerprint(self, conn: sqlite3.Connection) -> str | None:
        try:
            row = conn.execute(f"select value from {METADATA_TABLE} where name = 'fingerprint';").fetchone()
        except sqlite3.OperationalError:
            return None
        return row[0] if row else None

    def current_revision(self, conn: sqlite3.Connection) -> str | None:
        try:
            row = conn.execute(f"select version_num from {VERSION_TABLE}").fetchone()
        except sqlite3.OperationalError:
            return None
        return row[0] if row else None

    def applied_revisions(self, conn: sqlite3.Connection) -> list[tuple[str, str]]:
        """List ``(revision, description)`` from base up to the file's current revision."""

        current = self.current_revision(conn)
        if current is None:
            return []
        known = [script.revision for script in self.revisions]
        if current not in known:
            return [(current, "unknown revision")]
        return [(script.revision, script.doc) for script in self.revisions[: known.index(current) + 1]]

    # ------------------------------------------------------------------
    def _pending(self, current: str | None) -> list[Script]:
        if current is None:
            return list(self.revisions)
        known = [script.revision for script in self.revisions]
        if current not in known:
            raise SchemaDriftError(f"Cache is at unknown revision {current!r}; {_DRIFT_HINT}")
        return self.revisions[known.index(current) + 1 :]

    def _upgrade(self, path: Path) -> None:
        command.upgrade(alembic_config(self.script_location, path), "head")

    @staticmethod
    def _prepare_metadata(conn: sqlite3.Connection) -> None:
        for statement in METADATA_STATEMENTS:
            conn.execute(statement)
        conn.commit()

    @staticmethod
    def _user_tables(conn: sqlite3.Connection) -> list[str]:
        rows = conn.execute(
            "select name from sqlite_master where type = 'table' and name not like 'sqlite_%' "
            "and name not in (?, ?)",
            (METADATA_TABLE, VERSION_TABLE),
        ).fetchall()
        return [row[0] for row in rows]

    def _store_fingerprint(self, conn: sqlite3.Connection, created: bool) -> None:
        rows = [("fingerprint", self.fingerprint)]
        if created:
            rows.append(("created", _utcnow()))
        conn.executemany(f"insert into {METADATA_TABLE} (name, value) values (?, ?)", rows)

    def _unlink(self, path: Path) -> None:
        for candidate in (path, path.with_name(path.name + "-journal"), path.with_name(path.name + "-wal")):
            if candidate.exists():
                candidate.unlink()

    def disconnect(self, path: Path) -> None:
        with self._lock:
            conn = self._connections.pop(path, None)
        if conn is not None:
            conn.close()

    def reset(self, path: Path) -> None:
        with self._lock:
            if path in self._connections:
                self._connections[path].close()
                del self._connections[path]
            self._unlink(path)

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


__all__ = [
    "CachePolicy",
    "CacheStoreError",
    "METADATA_STATEMENTS",
    "MIGRATIONS_DIR",
    "SQLiteManager",
    "SchemaDriftError",
    "alembic_config",
    "fingerprint_schema",
    "load_revisions",
    "schema_statements",
]
