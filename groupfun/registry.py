"""Daily one-to-one group marriage registry backed by SQLite."""

from __future__ import annotations

import datetime
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Iterator, Optional, Union

DATE_FORMAT = "%Y/%m/%d"
_UPDATE_TABLE = "updateinfo"

_COUPLE_COLUMNS = "user, target, username, targetname, updatetime"


class RegistryError(Exception):
    """Raised when the registry database cannot complete an operation."""


class Status(IntEnum):
    """Where a user stands in today's registry of a group."""

    TARGET = 0  # someone registered this user as their partner
    USER = 1  # this user registered a partner (or chose to stay single)
    SINGLE = 3  # not registered today


@dataclass(frozen=True)
class Couple:
    """One entry of the registry: the registering user and their partner."""

    user: int
    target: int
    username: str
    targetname: str
    updatetime: str

    @property
    def is_single_noble(self) -> bool:
        """True for an entry recording that the user chose to stay single."""
        return self.target == 0


def _today() -> str:
    return datetime.date.today().strftime(DATE_FORMAT)


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _group_table(gid: Union[int, str]) -> str:
    name = str(gid)
    if not name.isdigit():
        raise RegistryError(f"invalid group id: {name!r}")
    return _quote(name)


class MarriageRegistry:
    """Per-group marriage records, one table per group, reset daily."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(
                str(path), isolation_level=None, check_same_thread=False
            )
        except sqlite3.Error as exc:
            raise RegistryError(str(exc)) from exc

    def __enter__(self) -> "MarriageRegistry":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying database connection."""
        with self._lock:
            self._conn.close()

    @contextmanager
    def _locked(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as exc:
                raise RegistryError(str(exc)) from exc

    @staticmethod
    def _create_group(conn: sqlite3.Connection, table: str) -> None:
        conn.execute(
            f"CREATE TABLE IF NOT EXISTS {table} ("
            "user INTEGER PRIMARY KEY, target INTEGER NOT NULL, "
            "username TEXT NOT NULL, targetname TEXT NOT NULL, "
            "updatetime TEXT NOT NULL)"
        )

    @staticmethod
    def _create_update_table(conn: sqlite3.Connection) -> None:
        conn.execute(
            f"CREATE TABLE IF NOT EXISTS {_UPDATE_TABLE} "
            "(gid INTEGER PRIMARY KEY, updatetime TEXT NOT NULL)"
        )

    def _stamp(self, conn: sqlite3.Connection, gid: int) -> None:
        self._create_update_table(conn)
        conn.execute(
            f"INSERT OR REPLACE INTO {_UPDATE_TABLE} (gid, updatetime) VALUES (?, ?)",
            (gid, _today()),
        )

    @staticmethod
    def _table_exists(conn: sqlite3.Connection, name: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
        ).fetchone()
        return row is not None

    @staticmethod
    def _group_tables(conn: sqlite3.Connection) -> list[str]:
        rows = conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name != ? AND name NOT LIKE 'sqlite_%'",
            (_UPDATE_TABLE,),
        ).fetchall()
        return [name for (name,) in rows]

    def check_update(self, gid: int) -> str:
        """Return the date the group's registry was last reset, stamping today if new."""
        with self._locked() as conn:
            self._create_update_table(conn)
            row = conn.execute(
                f"SELECT updatetime FROM {_UPDATE_TABLE} WHERE gid = ?", (gid,)
            ).fetchone()
            if row is None:
                today = _today()
                conn.execute(
                    f"INSERT INTO {_UPDATE_TABLE} (gid, updatetime) VALUES (?, ?)",
                    (gid, today),
                )
                return today
            return row[0]

    def reset(self, gid: Union[int, str]) -> None:
        """Clear one group's registry, or every group's when gid is "ALL"."""
        name = str(gid)
        with self._locked() as conn:
            if name != "ALL":
                table = _group_table(name)
                if not self._table_exists(conn, name):
                    self._create_group(conn, table)
                    return
                conn.execute(f"DROP TABLE {table}")
                self._stamp(conn, int(name))
                return
            for group in self._group_tables(conn):
                conn.execute(f"DROP TABLE {_quote(group)}")
                if group.isdigit():
                    self._stamp(conn, int(group))

    def divorce(self, gid: int, target: int) -> int:
        """Delete the entries whose partner is target; return how many went."""
        table = _group_table(gid)
        with self._locked() as conn:
            self._create_group(conn, table)
            cursor = conn.execute(f"DELETE FROM {table} WHERE target = ?", (target,))
            return cursor.rowcount

    def remarry(
        self, gid: int, uid: int, target: int, username: str, targetname: str
    ) -> None:
        """Register uid with target, unless both already hold entries of their own."""
        table = _group_table(gid)
        with self._locked() as conn:
            self._create_group(conn, table)
            has_user = conn.execute(
                f"SELECT 1 FROM {table} WHERE user = ?", (uid,)
            ).fetchone()
            if has_user is not None:
                has_target = conn.execute(
                    f"SELECT 1 FROM {table} WHERE user = ?", (target,)
                ).fetchone()
                if has_target is not None:
                    return
            conn.execute(
                f"INSERT OR REPLACE INTO {table} ({_COUPLE_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                (uid, target, username, targetname, _today()),
            )

    def roster(self, gid: int) -> list[Couple]:
        """Return every entry of the group, ordered by registering user."""
        table = _group_table(gid)
        with self._locked() as conn:
            self._create_group(conn, table)
            rows = conn.execute(
                f"SELECT {_COUPLE_COLUMNS} FROM {table} GROUP BY user ORDER BY user"
            ).fetchall()
        return [Couple(*row) for row in rows]

    def lookup(self, gid: int, uid: int) -> tuple[Optional[Couple], Status]:
        """Find the entry uid belongs to and which side of it uid is on."""
        table = _group_table(gid)
        with self._locked() as conn:
            self._create_group(conn, table)
            row = conn.execute(
                f"SELECT {_COUPLE_COLUMNS} FROM {table} WHERE user = ?", (uid,)
            ).fetchone()
            if row is not None:
                return Couple(*row), Status.USER
            row = conn.execute(
                f"SELECT {_COUPLE_COLUMNS} FROM {table} WHERE target = ?", (uid,)
            ).fetchone()
            if row is not None:
                return Couple(*row), Status.TARGET
        return None, Status.SINGLE

    def register(
        self, gid: int, uid: int, target: int, username: str, targetname: str
    ) -> None:
        """Record uid taking target as partner today."""
        table = _group_table(gid)
        with self._locked() as conn:
            self._create_group(conn, table)
            conn.execute(
                f"INSERT OR REPLACE INTO {table} ({_COUPLE_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                (uid, target, username, targetname, _today()),
            )