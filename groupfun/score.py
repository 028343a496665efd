"""Daily sign-in that awards cookies, with levels and a score ranking."""

from __future__ import annotations

import datetime
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

SIGNIN_MAX = 1
SCOREMAX = 120
LEVELS = (0, 1, 2, 5, 10, 20, 35, 55, 75, 100, 120)
SIGN_IN_ADD = 1

ALREADY_SIGNED_TEXT = "今天你已经签到过了！"
CAPPED_TEXT = "你获得的小熊饼干已经达到上限"


def _encode(moment: datetime.datetime) -> str:
    return moment.isoformat(sep=" ", timespec="microseconds")


class ScoreDB:
    """SQLite store of each user's cookie score and sign-in count."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._lock = threading.Lock()
        self.clock: Callable[[], datetime.datetime] = datetime.datetime.now
        self._conn = sqlite3.connect(
            str(path), isolation_level=None, check_same_thread=False
        )
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS score "
            "(uid INTEGER PRIMARY KEY, score INTEGER NOT NULL DEFAULT 0)"
        )
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS sign_in "
            "(uid INTEGER PRIMARY KEY, count INTEGER NOT NULL DEFAULT 0, "
            "updated_at TEXT NOT NULL)"
        )

    def __enter__(self) -> "ScoreDB":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def get_score(self, uid: int) -> int:
        """Return uid's score, creating a zero entry if there is none."""
        with self._lock:
            row = self._conn.execute(
                "SELECT score FROM score WHERE uid = ?", (uid,)
            ).fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO score (uid, score) VALUES (?, 0)", (uid,)
                )
                return 0
        return int(row[0])

    def set_score(self, uid: int, score: int) -> None:
        """Store uid's score."""
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO score (uid, score) VALUES (?, ?)",
                (uid, score),
            )

    def get_sign_in(self, uid: int) -> tuple[int, datetime.datetime]:
        """Return uid's sign-in count and when it last changed, creating it if new."""
        with self._lock:
            row = self._conn.execute(
                "SELECT count, updated_at FROM sign_in WHERE uid = ?", (uid,)
            ).fetchone()
            if row is None:
                now = self.clock()
                self._conn.execute(
                    "INSERT INTO sign_in (uid, count, updated_at) VALUES (?, 0, ?)",
                    (uid, _encode(now)),
                )
                return 0, now
        return int(row[0]), datetime.datetime.fromisoformat(row[1])

    def _write_sign_in(self, uid: int, count: int, when: datetime.datetime) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO sign_in (uid, count, updated_at) "
                "VALUES (?, ?, ?)",
                (uid, count, _encode(when)),
            )

    def set_sign_in_count(self, uid: int, count: int) -> None:
        """Store uid's sign-in count, stamped with the current time."""
        self._write_sign_in(uid, count, self.clock())

    def top_scores(self, n: int) -> list[tuple[int, int]]:
        """Return up to n (uid, score) pairs, highest score first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT uid, score FROM score ORDER BY score DESC LIMIT ?", (n,)
            ).fetchall()
        return [(int(uid), int(score)) for uid, score in rows]


@dataclass(frozen=True)
class SignInResult:
    """What happened when a user signed in."""

    already_signed: bool
    score: int
    level: int
    next_level_score: int
    add: int = 0
    capped: bool = False
    hour_word: str = ""
    date_word: str = ""

    @property
    def progress(self) -> str:
        """Score towards the next level, as "score/next"."""
        return f"{self.score}/{self.next_level_score}"


def get_hour_word(t: datetime.datetime) -> str:
    """Greeting for the time of day."""
    hour = t.hour
    if 6 <= hour < 12:
        return "早上好"
    if 12 <= hour < 14:
        return "中午好"
    if 14 <= hour < 19:
        return "下午好"
    if 19 <= hour < 24:
        return "晚上好"
    if 0 <= hour < 6:
        return "凌晨好"
    return ""


def get_level(count: int) -> int:
    """Level reached with a score; -1 beyond the last threshold."""
    for level, threshold in enumerate(LEVELS):
        if count == threshold:
            return level
        if count < threshold:
            return level - 1
    return -1


def next_level_score(level: int) -> int:
    """Score needed for the level after the given one."""
    if level < len(LEVELS) - 1:
        return LEVELS[level + 1]
    return SCOREMAX


def sign_in(
    db: ScoreDB, uid: int, now: Optional[datetime.datetime] = None
) -> SignInResult:
    """Sign uid in for the day, awarding a cookie once per day."""
    now = now if now is not None else datetime.datetime.now()
    hour_word = get_hour_word(now)
    date_word = now.strftime("%m/%d")
    count, updated = db.get_sign_in(uid)
    signed_today = updated.date() == now.date()
    if count >= SIGNIN_MAX and signed_today:
        score = db.get_score(uid)
        level = get_level(score)
        return SignInResult(
            already_signed=True,
            score=score,
            level=level,
            next_level_score=next_level_score(level),
            hour_word=hour_word,
            date_word=date_word,
        )
    if not signed_today:
        db._write_sign_in(uid, 0, now)
    db._write_sign_in(uid, count + 1, now)
    score = db.get_score(uid) + SIGN_IN_ADD
    capped = score > SCOREMAX
    if capped:
        score = SCOREMAX
    db.set_score(uid, score)
    level = get_level(score)
    return SignInResult(
        already_signed=False,
        score=score,
        level=level,
        next_level_score=next_level_score(level),
        add=SIGN_IN_ADD,
        capped=capped,
        hour_word=hour_word,
        date_word=date_word,
    )