"""Canned replies: a keyword thesaurus and a random diary-entry database."""

from __future__ import annotations

import json
import logging
import random
import sqlite3
import threading
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

_DIARY_TABLE = "tiangou"


class Thesaurus:
    """Map exact messages to a list of possible replies."""

    def __init__(
        self,
        mapping: Mapping[str, Sequence[str]],
        rng: Optional[random.Random] = None,
    ) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._replies: dict[str, list[str]] = {}
        for key, replies in mapping.items():
            replies = list(replies)
            if not replies:
                raise ValueError(f"no replies for {key!r}")
            self._replies[key] = replies

    def keys(self) -> list[str]:
        """The messages this thesaurus answers."""
        return list(self._replies)

    def __contains__(self, key: object) -> bool:
        return key in self._replies

    def __len__(self) -> int:
        return len(self._replies)

    def reply(self, key: str) -> str:
        """Pick a reply for key; KeyError if the key is unknown."""
        return self._rng.choice(self._replies[key])


def load_thesaurus(
    data: Union[str, bytes], rng: Optional[random.Random] = None
) -> Thesaurus:
    """Build a thesaurus from a JSON object of message -> list of replies."""
    mapping = json.loads(data)
    if not isinstance(mapping, dict):
        raise ValueError("thesaurus data must be a JSON object")
    thesaurus = Thesaurus(mapping, rng)
    logger.info("[thesaurus] loaded %d entries", len(thesaurus))
    return thesaurus


class DiaryDB:
    """SQLite table of diary entries, one picked at random on request."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(path), isolation_level=None, check_same_thread=False
        )
        self._conn.execute(
            f"CREATE TABLE IF NOT EXISTS {_DIARY_TABLE} "
            "(id INTEGER PRIMARY KEY NOT NULL, text TEXT NOT NULL)"
        )

    def __enter__(self) -> "DiaryDB":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def count(self) -> int:
        """Number of entries stored."""
        with self._lock:
            (total,) = self._conn.execute(
                f"SELECT COUNT(*) FROM {_DIARY_TABLE}"
            ).fetchone()
        return int(total)

    def pick(self, rng: Optional[random.Random] = None) -> str:
        """Return the text of a random entry; LookupError when there is none."""
        chooser = rng if rng is not None else random
        with self._lock:
            (total,) = self._conn.execute(
                f"SELECT COUNT(*) FROM {_DIARY_TABLE}"
            ).fetchone()
            if total == 0:
                raise LookupError("no diary entries")
            row = self._conn.execute(
                f"SELECT text FROM {_DIARY_TABLE} ORDER BY id LIMIT 1 OFFSET ?",
                (chooser.randrange(total),),
            ).fetchone()
        return row[0]