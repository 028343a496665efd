import datetime

import pytest

from groupfun.sleep import (
    SleepDB,
    evening_message,
    is_evening,
    is_morning,
    morning_message,
    time_duration,
)

DT = datetime.datetime
TD = datetime.timedelta


@pytest.fixture
def db(tmp_path):
    database = SleepDB(tmp_path / "manage.db")
    yield database
    database.close()


def test_first_sleep_has_no_duration(db):
    position, elapsed = db.sleep(1, 100, DT(2024, 1, 1, 22, 0))
    assert position == 1
    assert elapsed == TD(0)


def test_positions_within_night_window(db):
    db.sleep(1, 100, DT(2024, 1, 1, 22, 0))
    position, _ = db.sleep(1, 200, DT(2024, 1, 2, 1, 0))
    assert position == 2
    position, _ = db.sleep(1, 300, DT(2024, 1, 2, 22, 0))
    assert position == 1


def test_groups_are_separate(db):
    db.sleep(1, 100, DT(2024, 1, 1, 22, 0))
    position, _ = db.sleep(2, 200, DT(2024, 1, 1, 22, 30))
    assert position == 1


def test_get_up_reports_sleep_length(db):
    db.sleep(1, 100, DT(2024, 1, 1, 23, 0))
    position, elapsed = db.get_up(1, 100, DT(2024, 1, 2, 7, 0))
    assert elapsed == DT(2024, 1, 2, 7, 0) - DT(2024, 1, 1, 23, 0)
    assert position == 1


def test_get_up_excludes_before_six(db):
    db.get_up(1, 100, DT(2024, 1, 2, 5, 0))
    position, _ = db.get_up(1, 200, DT(2024, 1, 2, 7, 0))
    assert position == 1


def test_time_duration_split():
    assert time_duration(TD(hours=1, minutes=2, seconds=3)) == (1, 2, 3)
    assert time_duration(TD(0)) == (0, 0, 0)


def test_morning_and_evening_windows():
    assert is_morning(DT(2024, 1, 1, 6, 0))
    assert is_morning(DT(2024, 1, 1, 12, 59))
    assert not is_morning(DT(2024, 1, 1, 13, 0))
    assert is_evening(DT(2024, 1, 1, 21, 0))
    assert is_evening(DT(2024, 1, 1, 3, 30))
    assert not is_evening(DT(2024, 1, 1, 4, 0))


def test_messages_without_duration():
    assert morning_message(3, TD(0)) == "早安成功！你是今天第3个起床的"
    assert evening_message(2, TD(hours=30)) == "晚安成功！你是今天第2个睡觉的"


def test_messages_with_duration():
    text = morning_message(1, TD(hours=8, minutes=5, seconds=9))
    assert text == "早安成功！你的睡眠时长为8时5分9秒,你是今天第1个起床的"
    text = evening_message(4, TD(hours=2))
    assert text == "晚安成功！你的清醒时长为2时0分0秒,你是今天第4个睡觉的"