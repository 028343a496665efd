import datetime

import pytest

from groupfun.matchmaking import (
    DIVORCE_FAILURE_TEXTS,
    DIVORCE_SUCCESS_TEXTS,
    PROPOSE_FAILURE_TEXTS,
    CooldownManager,
    Matchmaker,
    Outcome,
    cooldown_key,
    slice_name,
)
from groupfun.registry import MarriageRegistry, Status

GID = 123456


class _ScriptedRng:
    def __init__(self, ranges=(), pick=None):
        self._ranges = list(ranges)
        self._pick = pick
        self.seen = []

    def randrange(self, n):
        value = self._ranges.pop(0)
        assert 0 <= value < n
        return value

    def choice(self, seq):
        seq = list(seq)
        self.seen.append(seq)
        if self._pick is not None and self._pick in seq:
            return self._pick
        return seq[0]


def name_of(uid):
    return f"user{uid}"


@pytest.fixture
def registry(tmp_path):
    reg = MarriageRegistry(tmp_path / "wife.db")
    yield reg
    reg.close()


def make(registry, ranges=(), pick=None):
    rng = _ScriptedRng(ranges, pick)
    return Matchmaker(registry, rng), rng


def members(*ids):
    return [{"user_id": uid, "last_sent_time": i} for i, uid in enumerate(ids)]


def test_cooldown_allows_burst_then_blocks():
    now = [0.0]
    manager = CooldownManager(100.0, 1, clock=lambda: now[0])
    assert manager.allow("a") is True
    assert manager.allow("a") is False
    assert manager.allow("b") is True
    now[0] = 100.0
    assert manager.allow("a") is True


def test_cooldown_accepts_timedelta_and_rejects_bad_args():
    now = [0.0]
    manager = CooldownManager(datetime.timedelta(seconds=10), 2, clock=lambda: now[0])
    assert [manager.allow("k") for _ in range(3)] == [True, True, False]
    with pytest.raises(ValueError):
        CooldownManager(0, 1)
    with pytest.raises(ValueError):
        CooldownManager(10, 0)


def test_cooldown_key_joins_ids():
    assert cooldown_key(12, 34) == "12" + "34"


def test_slice_name_short_is_unchanged():
    assert slice_name("abc", lambda ch: 10) == "abc"


def test_slice_name_long_is_cut():
    result = slice_name("abcdefg", lambda ch: 100)
    assert result == "a......"
    assert result.endswith("......")


def test_outcome_avatar_and_text():
    outcome = Outcome("今天你的群老婆是", 42, "bob")
    assert outcome.avatar == "http://q4.qlogo.cn/g?b=qq&nk=42&s=640"
    assert str(outcome).endswith("[bob](42)哒")
    assert Outcome("x").avatar is None


def test_draw_already_married(registry):
    registry.register(GID, 1, 2, "a", "b")
    mm, _ = make(registry)
    outcome = mm.draw(GID, 1, [], name_of)
    assert outcome.text == "\n今天你已经娶过了，群老婆是"
    assert (outcome.partner, outcome.partner_name) == (2, "b")


def test_draw_already_taken(registry):
    registry.register(GID, 1, 2, "a", "b")
    mm, _ = make(registry)
    outcome = mm.draw(GID, 2, [], name_of)
    assert outcome.text == "\n今天你被娶了，群老公是"
    assert outcome.partner == 1


def test_draw_single_noble(registry):
    registry.register(GID, 1, 0, "", "")
    mm, _ = make(registry)
    assert mm.draw(GID, 1, [], name_of).text == "今天你是单身贵族噢"


def test_draw_nobody_left(registry):
    mm, _ = make(registry)
    outcome = mm.draw(GID, 1, members(1), name_of)
    assert outcome.text == "~群里没有ta人是单身了哦 明天再试试叭"


def test_draw_success_registers(registry):
    mm, _ = make(registry, pick=5)
    outcome = mm.draw(GID, 1, members(1, 5), name_of)
    assert outcome.partner == 5
    assert outcome.partner_name == name_of(5)
    couple, status = registry.lookup(GID, 1)
    assert status is Status.USER
    assert couple.target == 5


def test_draw_picks_self(registry):
    mm, _ = make(registry, pick=1)
    outcome = mm.draw(GID, 1, members(5, 1), name_of)
    assert outcome.text == "呜...没娶到，你可以再尝试一次"
    assert registry.lookup(GID, 1)[1] is Status.SINGLE


def test_draw_uses_recent_singles_only(registry):
    registry.register(GID, 39, 38, "x", "y")
    mm, rng = make(registry, pick=100)
    mm.draw(GID, 100, members(*range(40)), name_of)
    candidates = rng.seen[0]
    assert len(candidates) <= 30
    assert 0 not in candidates
    assert 39 not in candidates and 38 not in candidates


def test_propose_self_narcissist(registry):
    mm, _ = make(registry, ranges=[0])
    assert mm.propose(GID, 1, 1, "娶", name_of).text == "今日获得成就：自恋狂"


def test_propose_self_single_noble(registry):
    mm, _ = make(registry, ranges=[1])
    assert mm.propose(GID, 1, 1, "娶", name_of).text == "今日获得成就：单身贵族"
    couple, status = registry.lookup(GID, 1)
    assert status is Status.USER and couple.target == 0


def test_propose_rejected(registry):
    mm, _ = make(registry, ranges=[0])
    assert mm.propose(GID, 1, 2, "娶", name_of).text in PROPOSE_FAILURE_TEXTS
    assert registry.lookup(GID, 1)[1] is Status.SINGLE


def test_propose_marry(registry):
    mm, _ = make(registry, ranges=[1])
    outcome = mm.propose(GID, 1, 2, "娶", name_of)
    assert outcome.text == "\n今天你的群老婆是"
    couple, status = registry.lookup(GID, 1)
    assert status is Status.USER and couple.target == 2


def test_propose_be_married(registry):
    mm, _ = make(registry, ranges=[1])
    outcome = mm.propose(GID, 1, 2, "嫁", name_of)
    assert outcome.text == "\n今天你的群老公是"
    couple, status = registry.lookup(GID, 2)
    assert status is Status.USER and couple.target == 1


def test_check_single_cases(registry):
    mm, _ = make(registry)
    assert mm.check_single(GID, 1, 2) is None
    registry.register(GID, 1, 2, "a", "b")
    assert mm.check_single(GID, 1, 2) == "笨蛋~你们明明已经在一起了啊w"
    assert mm.check_single(GID, 1, 3) == "笨蛋~你家里还有个吃白饭的w"
    assert mm.check_single(GID, 2, 3) == "该是0就是0，当0有什么不好"
    assert mm.check_single(GID, 4, 1) == "他有别的女人了，你该放下了"
    assert mm.check_single(GID, 4, 2) == "这是一个纯爱的世界，拒绝NTR"


def test_check_mistress_cases(registry):
    mm, _ = make(registry)
    assert mm.check_mistress(GID, 3, 1) == "ta现在还是单身哦，快向ta表白吧！"
    registry.register(GID, 1, 2, "a", "b")
    assert mm.check_mistress(GID, 3, 1) is None
    assert mm.check_mistress(GID, 3, 3) is None
    assert mm.check_mistress(GID, 1, 5) == "打灭，不给纳小妾！"
    assert mm.check_mistress(GID, 2, 5) == "该是0就是0，当0有什么不好"


def test_become_mistress_fails(registry):
    registry.register(GID, 1, 2, "a", "b")
    mm, _ = make(registry, ranges=[5])
    assert mm.become_mistress(GID, 3, 1, name_of).text == "失败了！可惜"
    assert registry.lookup(GID, 1)[0].target == 2


def test_become_mistress_of_husband(registry):
    registry.register(GID, 1, 2, "a", "b")
    mm, _ = make(registry, ranges=[0])
    outcome = mm.become_mistress(GID, 3, 1, name_of)
    assert outcome.text == "今天你的群老公是"
    couple, status = registry.lookup(GID, 1)
    assert status is Status.USER and couple.target == 3


def test_become_mistress_self(registry):
    mm, _ = make(registry)
    assert mm.become_mistress(GID, 3, 3, name_of).text == "今日获得成就：自我攻略"


def test_divorce_single_returns_none(registry):
    mm, _ = make(registry)
    mm.ensure_today(GID)
    assert mm.divorce(GID, 1) is None


def test_divorce_user_success(registry):
    registry.register(GID, 1, 2, "a", "b")
    mm, _ = make(registry, ranges=[1])
    assert mm.divorce(GID, 1).text == DIVORCE_SUCCESS_TEXTS[0]
    assert registry.lookup(GID, 1)[1] is Status.SINGLE


def test_divorce_user_refused(registry):
    registry.register(GID, 1, 2, "a", "b")
    mm, _ = make(registry, ranges=[0])
    assert mm.divorce(GID, 1).text in DIVORCE_FAILURE_TEXTS
    assert registry.lookup(GID, 1)[1] is Status.USER


def test_ensure_today_resets_old_registry(registry):
    registry.register(GID, 1, 2, "a", "b")
    tomorrow = datetime.datetime.now() + datetime.timedelta(days=1)
    mm = Matchmaker(registry, _ScriptedRng(), clock=lambda: tomorrow)
    assert mm.ensure_today(GID) is True
    assert registry.lookup(GID, 1)[1] is Status.SINGLE


def test_ensure_today_keeps_current_registry(registry):
    registry.register(GID, 1, 2, "a", "b")
    mm, _ = make(registry)
    assert mm.ensure_today(GID) is False
    assert registry.lookup(GID, 1)[1] is Status.USER