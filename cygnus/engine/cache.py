"""Idempotent persistence of collected task records."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from threading import Lock

import structlog

from ..infra.storage import CachePolicy, SQLiteManager
from .models import TaskRecord

UNKNOWN = "UNKNOWN"
CACHE_TABLES = ("singularity", "req", "task", "env", "docker_image")


class TaskCache:
    """Accumulate an auditable record of observed tasks in SQLite.

    Every ``add_task`` runs under one lock, so writes for a record never
    interleave with another record's. ``now`` is fixed when the cache is
    opened: a request row captured earlier in the same run is always fresh,
    one captured by a previous run is stale once it is older than
    ``freshness``.

    With ``read_only`` the file is opened as-is for inspection; its schema is
    neither checked nor migrated.
    """

    def __init__(
        self,
        manager: SQLiteManager,
        db_path: Path,
        policy: CachePolicy = CachePolicy.MIGRATE,
        freshness: timedelta = timedelta(seconds=1),
        now: datetime | None = None,
        logger: structlog.BoundLogger | None = None,
        read_only: bool = False,
    ) -> None:
        self.manager = manager
        self.db_path = db_path
        self.policy = policy
        self.freshness = freshness
        self.now = _as_utc(now or datetime.now(timezone.utc))
        self.logger = logger or structlog.get_logger("cygnus.cache")
        self.read_only = read_only
        self._lock = Lock()
        if read_only:
            self._conn = self.manager.connect_readonly(db_path)
        else:
            self._conn = self.manager.connect(db_path, policy)

    def add_task(self, record: TaskRecord, host: str) -> int | None:
        """Persist a record; returns the new task row id or ``None`` when skipped."""

        ident = record.identifier
        with self._lock:
            try:
                singularity_id = self.add_singularity(host)
                request = record.request
                if request is None:
                    req_id = self.add_request(singularity_id, 0, ident.request_id, UNKNOWN, UNKNOWN)
                else:
                    req_id = self.add_request(
                        singularity_id,
                        request.instances,
                        request.request_id,
                        request.request_type,
                        request.state,
                    )
                status = record.status.value if record.status is not None else UNKNOWN
                cursor = self._conn.execute(
                    "insert into task (req_id, deploy_ident, status) values (?, ?, ?)",
                    (req_id, ident.deploy_id, status),
                )
                task_row = cursor.lastrowid
            except sqlite3.Error as exc:
                self._conn.rollback()
                self.logger.warning("cache_task_error", task_id=ident.task_id, error=str(exc))
                return None

            for name, value in record.environment:
                try:
                    self._conn.execute(
                        "insert into env (task_id, name, value) values (?, ?, ?)",
                        (task_row, name, value),
                    )
                except sqlite3.Error as exc:
                    self.logger.warning(
                        "cache_env_error", task_id=ident.task_id, name=name, error=str(exc)
                    )

            if record.image is not None:
                try:
                    self._conn.execute(
                        "insert into docker_image (task_id, image_name) values (?, ?)",
                        (task_row, record.image),
                    )
                except sqlite3.Error as exc:
                    self.logger.warning(
                        "cache_image_error", task_id=ident.task_id, image=record.image, error=str(exc)
                    )

            try:
                self._conn.commit()
            except sqlite3.Error as exc:
                self.logger.warning("cache_commit_error", task_id=ident.task_id, error=str(exc))
                return None
            return task_row

    def add_singularity(self, host: str) -> int:
        row = self._conn.execute(
            "select singularity_id from singularity where url = ?", (host,)
        ).fetchone()
        if row is not None:
            return row[0]
        self.logger.debug("cache_new_singularity", url=host)
        cursor = self._conn.execute("insert into singularity (url) values (?)", (host,))
        return cursor.lastrowid

    def add_request(
        self,
        singularity_id: int,
        instances: int,
        request_ident: str,
        request_type: str,
        state: str,
    ) -> int:
        """Return the row id for ``request_ident``, refreshing stale rows."""

        row = self._conn.execute(
            "select req_id, captured_at from req where request_ident = ? order by req_id limit 1",
            (request_ident,),
        ).fetchone()
        if row is not None:
            captured_at = _parse_timestamp(row["captured_at"])
            if captured_at is not None and self.now - captured_at < self.freshness:
                return row["req_id"]
            self.logger.debug("cache_stale_request", request=request_ident, req_id=row["req_id"])
            self._conn.execute("delete from req where request_ident = ?", (request_ident,))

        cursor = self._conn.execute(
            "insert into req (singularity_id, request_ident, instances, type, state, captured_at)"
            " values (?, ?, ?, ?, ?, ?)",
            (singularity_id, request_ident, instances, request_type, state, self.now.isoformat()),
        )
        self.logger.debug("cache_new_request", request=request_ident)
        return cursor.lastrowid

    # ------------------------------------------------------------------
    def counts(self) -> dict[str, int]:
        """Row count per cache table; tables missing from the file are left out."""

        with self._lock:
            present = {
                row[0]
                for row in self._conn.execute("select name from sqlite_master where type = 'table'").fetchall()
            }
            return {
                table: self._conn.execute(f"select count(*) from {table}").fetchone()[0]
                for table in CACHE_TABLES
                if table in present
            }

    def metadata(self) -> dict[str, str]:
        with self._lock:
            try:
                rows = self._conn.execute("select name, value from _database_metadata_").fetchall()
            except sqlite3.OperationalError:
                return {}
            return {row["name"]: row["value"] for row in rows}

    def migrations(self) -> list[tuple[str, str]]:
        with self._lock:
            return self.manager.applied_revisions(self._conn)

    def close(self) -> None:
        if self.read_only:
            self._conn.close()
            return
        self.manager.disconnect(self.db_path)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return _as_utc(datetime.fromisoformat(value))
    except ValueError:
        return None


__all__ = ["CACHE_TABLES", "TaskCache", "UNKNOWN"]
