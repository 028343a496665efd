import json
import random
import sqlite3

import pytest

from groupfun.replies import DiaryDB, Thesaurus, load_thesaurus


class _FixedRng:
    def __init__(self, value):
        self.value = value

    def randrange(self, n):
        return self.value % n

    def choice(self, seq):
        return seq[self.value % len(seq)]


def test_thesaurus_reply_comes_from_list():
    thesaurus = Thesaurus({"hi": ["a", "b", "c"]}, random.Random(1))
    for _ in range(20):
        assert thesaurus.reply("hi") in {"a", "b", "c"}


def test_thesaurus_keys_and_contains():
    thesaurus = Thesaurus({"hi": ["a"], "bye": ["b"]})
    assert sorted(thesaurus.keys()) == ["bye", "hi"]
    assert "hi" in thesaurus
    assert "nope" not in thesaurus


def test_thesaurus_unknown_key():
    thesaurus = Thesaurus({"hi": ["a"]})
    with pytest.raises(KeyError):
        thesaurus.reply("nope")


def test_thesaurus_rejects_empty_replies():
    with pytest.raises(ValueError):
        Thesaurus({"hi": []})


def test_thesaurus_uses_rng():
    thesaurus = Thesaurus({"hi": ["a", "b"]}, _FixedRng(1))
    assert thesaurus.reply("hi") == "b"


def test_load_thesaurus_from_json_bytes():
    data = json.dumps({"早": ["早上好", "早安"]}, ensure_ascii=False).encode("utf-8")
    thesaurus = load_thesaurus(data, random.Random(0))
    assert thesaurus.keys() == ["早"]
    assert thesaurus.reply("早") in {"早上好", "早安"}


def test_load_thesaurus_rejects_non_object():
    with pytest.raises(ValueError):
        load_thesaurus("[1, 2]")


@pytest.fixture
def diary(tmp_path):
    path = tmp_path / "tiangou.db"
    db = DiaryDB(path)
    yield db, path
    db.close()


def _insert(path, *texts):
    conn = sqlite3.connect(str(path))
    with conn:
        conn.executemany("INSERT INTO tiangou (text) VALUES (?)", [(t,) for t in texts])
    conn.close()


def test_diary_empty(diary):
    db, _ = diary
    assert db.count() == 0
    with pytest.raises(LookupError):
        db.pick()


def test_diary_count_and_pick(diary):
    db, path = diary
    _insert(path, "one", "two")
    assert db.count() == 2
    assert db.pick(random.Random(3)) in {"one", "two"}


def test_diary_pick_follows_rng(diary):
    db, path = diary
    _insert(path, "one", "two", "three")
    assert db.pick(_FixedRng(0)) == "one"
    assert db.pick(_FixedRng(2)) == "three"