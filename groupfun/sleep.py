"""Good-night / good-morning tracking: who slept or woke, and for how long."""

from __future__ import annotations

import datetime
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

_TABLE = "sleep_manage"


def _encode(moment: datetime.datetime) -> str:
    return moment.isoformat(sep=" ", timespec="microseconds")


def _now(now: Optional[datetime.datetime]) -> datetime.datetime:
    return now if now is not None else datetime.datetime.now()


class SleepDB:
    """SQLite store of each member's latest sleep or wake time per group."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(path), isolation_level=None, check_same_thread=False
        )
        self._conn.execute(
            f"CREATE TABLE IF NOT EXISTS {_TABLE} ("
            "id INTEGER PRIMARY KEY AUTOINCREMENT, group_id INTEGER, "
            "user_id INTEGER, sleep_time TEXT)"
        )

    def __enter__(self) -> "SleepDB":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def _record(
        self, gid: int, uid: int, now: datetime.datetime, since: datetime.datetime
    ) -> tuple[int, datetime.timedelta]:
        elapsed = datetime.timedelta(0)
        with self._lock:
            row = self._conn.execute(
                f"SELECT sleep_time FROM {_TABLE} "
                "WHERE group_id = ? AND user_id = ? ORDER BY id LIMIT 1",
                (gid, uid),
            ).fetchone()
            if row is None:
                self._conn.execute(
                    f"INSERT INTO {_TABLE} (group_id, user_id, sleep_time) "
                    "VALUES (?, ?, ?)",
                    (gid, uid, _encode(now)),
                )
            else:
                logger.debug("previous time of %s in %s: %s", uid, gid, row[0])
                elapsed = now - datetime.datetime.fromisoformat(row[0])
                self._conn.execute(
                    f"UPDATE {_TABLE} SET sleep_time = ? "
                    "WHERE group_id = ? AND user_id = ?",
                    (_encode(now), gid, uid),
                )
            (position,) = self._conn.execute(
                f"SELECT COUNT(*) FROM {_TABLE} WHERE group_id = ? "
                "AND sleep_time <= ? AND sleep_time >= ?",
                (gid, _encode(now), _encode(since)),
            ).fetchone()
        return int(position), elapsed

    def sleep(
        self, gid: int, uid: int, now: Optional[datetime.datetime] = None
    ) -> tuple[int, datetime.timedelta]:
        """Record uid going to sleep; return their rank tonight and time awake."""
        now = _now(now)
        if now.hour >= 21:
            since = now.replace(hour=21, minute=0, second=0)
        elif now.hour <= 3:
            since = now.replace(minute=0, second=0) - datetime.timedelta(
                hours=3 + now.hour
            )
        else:
            since = datetime.datetime.min
        return self._record(gid, uid, now, since)

    def get_up(
        self, gid: int, uid: int, now: Optional[datetime.datetime] = None
    ) -> tuple[int, datetime.timedelta]:
        """Record uid waking up; return their rank this morning and time asleep."""
        now = _now(now)
        since = now.replace(hour=6, minute=0, second=0)
        return self._record(gid, uid, now, since)


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def time_duration(delta: datetime.timedelta) -> tuple[int, int, int]:
    """Split a duration into whole hours, minutes and seconds."""
    micros = delta // datetime.timedelta(microseconds=1)
    hour = _trunc_div(micros, 3600 * 10**6)
    micros -= hour * 3600 * 10**6
    minute = _trunc_div(micros, 60 * 10**6)
    micros -= minute * 60 * 10**6
    second = _trunc_div(micros, 10**6)
    return hour, minute, second


def is_morning(now: Optional[datetime.datetime] = None) -> bool:
    """Good mornings count from 6 to 12 o'clock."""
    return 6 <= _now(now).hour <= 12


def is_evening(now: Optional[datetime.datetime] = None) -> bool:
    """Good nights count from 21 o'clock to 3 o'clock."""
    hour = _now(now).hour
    return hour >= 21 or hour <= 3


def _is_untracked(hour: int, minute: int, second: int) -> bool:
    return (hour == 0 and minute == 0 and second == 0) or hour >= 24


def morning_message(position: int, duration: datetime.timedelta) -> str:
    """Reply to a good morning."""
    hour, minute, second = time_duration(duration)
    if _is_untracked(hour, minute, second):
        return f"早安成功！你是今天第{position}个起床的"
    return (
        f"早安成功！你的睡眠时长为{hour}时{minute}分{second}秒,"
        f"你是今天第{position}个起床的"
    )


def evening_message(position: int, duration: datetime.timedelta) -> str:
    """Reply to a good night."""
    hour, minute, second = time_duration(duration)
    if _is_untracked(hour, minute, second):
        return f"晚安成功！你是今天第{position}个睡觉的"
    return (
        f"晚安成功！你的清醒时长为{hour}时{minute}分{second}秒,"
        f"你是今天第{position}个睡觉的"
    )