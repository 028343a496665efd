"""Daily group matchmaking: drawing, proposing, mistress and divorce skills."""

from __future__ import annotations

import datetime
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from groupfun.registry import DATE_FORMAT, MarriageRegistry, Status

AVATAR_URL = "http://q4.qlogo.cn/g?b=qq&nk={}&s=640"
MAX_NAME_WIDTH = 350
RECENT_MEMBERS = 30

COOLDOWN_TEXT = "你的技能现在正在CD中"
DIVORCE_COOLDOWN_TEXT = "打灭，禁止离婚"

PROPOSE_SUCCESS_TEXTS = (
    "是个勇敢的孩子(*/ω＼*) 今天的运气都降临在你的身边~\n\n",
    "(´･ω･`)对方答应了你 并表示愿意当今天的CP\n\n",
)
PROPOSE_FAILURE_TEXTS = (
    "今天的运气有一点背哦~明天再试试叭",
    "_(:з」∠)_下次还有机会 咱抱抱你w",
    "今天失败了惹. 摸摸头~咱明天还有机会",
)
MISTRESS_SUCCESS_TEXTS = ("因为你的个人魅力~~今天他就是你的了w\n\n",)
DIVORCE_FAILURE_TEXTS = (
    "打是情，骂是爱，,不打不亲不相爱。答应我不要分手。",
    "床头打架床尾和，夫妻没有隔夜仇。安啦安啦，不要闹变扭。",
)
DIVORCE_SUCCESS_TEXTS = (
    "离婚成功力\n天涯何处无芳草，何必单恋一枝花？不如再摘一支（bushi",
    "离婚成功力\n话说你不考虑当个1？",
)

NameOf = Callable[[int], str]


class CooldownManager:
    """Per-key token buckets: burst uses, one use regained every interval."""

    def __init__(
        self,
        interval: Union[float, datetime.timedelta] = 12 * 3600.0,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if isinstance(interval, datetime.timedelta):
            interval = interval.total_seconds()
        if interval <= 0:
            raise ValueError("interval must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")
        self._interval = float(interval)
        self._burst = burst
        self._clock = clock
        self._buckets: dict[str, tuple[float, float]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        """Consume one use for key if one is available."""
        now = self._clock()
        with self._lock:
            tokens, last = self._buckets.get(key, (float(self._burst), now))
            tokens = min(float(self._burst), tokens + (now - last) / self._interval)
            allowed = tokens >= 1
            if allowed:
                tokens -= 1
            self._buckets[key] = (tokens, now)
        return allowed


def cooldown_key(gid: int, uid: int) -> str:
    """Key that limits a skill per user within a group."""
    return f"{gid}{uid}"


@dataclass(frozen=True)
class Outcome:
    """A reply to a matchmaking command, possibly naming a partner."""

    text: str
    partner: Optional[int] = None
    partner_name: str = ""
    preface: str = ""

    @property
    def avatar(self) -> Optional[str]:
        """Avatar image URL of the partner, if any."""
        if self.partner is None:
            return None
        return AVATAR_URL.format(self.partner)

    def __str__(self) -> str:
        if self.partner is None:
            return self.preface + self.text
        return f"{self.preface}{self.text}\n[{self.partner_name}]({self.partner})哒"


def slice_name(name: str, measure: Callable[[str], float]) -> str:
    """Shorten name with an ellipsis when its measured width exceeds the limit."""
    width = 0
    last = 0
    for index, char in enumerate(name):
        width += int(measure(char))
        if width > MAX_NAME_WIDTH:
            break
        last = index
    if width > MAX_NAME_WIDTH:
        return name[: max(last - 1, 0)] + "......"
    return name


def _last_sent(member: Mapping[str, Any]) -> int:
    return int(member.get("last_sent_time", 0) or 0)


class Matchmaker:
    """Rules of the daily one-husband-one-wife game on top of a registry."""

    def __init__(
        self,
        registry: MarriageRegistry,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        self.registry = registry
        self._rng = rng if rng is not None else random.Random()
        self._clock = clock

    def _today(self) -> str:
        return self._clock().strftime(DATE_FORMAT)

    def ensure_today(self, gid: int) -> bool:
        """Reset the group's registry if it dates from another day; True if reset."""
        if self.registry.check_update(gid) == self._today():
            return False
        self.registry.reset(gid)
        return True

    def check_single(self, gid: int, uid: int, target: int) -> Optional[str]:
        """Return why uid may not propose to target, or None when allowed."""
        if self.ensure_today(gid):
            return None
        own, own_status = self.registry.lookup(gid, uid)
        other, other_status = self.registry.lookup(gid, target)
        if own_status is Status.SINGLE and other_status is Status.SINGLE:
            return None
        own_target = own.target if own is not None else 0
        other_target = other.target if other is not None else 0
        if own_target == target:
            return "笨蛋~你们明明已经在一起了啊w"
        if own_status is Status.USER:
            return "笨蛋~你家里还有个吃白饭的w"
        if own_status is Status.TARGET:
            return "该是0就是0，当0有什么不好"
        if own_status is not Status.SINGLE and own_target == 0:
            return "今天的你是单身贵族噢"
        if other_status is Status.USER:
            return "他有别的女人了，你该放下了"
        if other_status is Status.TARGET:
            return "这是一个纯爱的世界，拒绝NTR"
        if other_status is not Status.SINGLE and other_target == 0:
            return "今天的ta是单身贵族噢"
        return None

    def check_mistress(self, gid: int, uid: int, target: int) -> Optional[str]:
        """Return why uid may not become target's mistress, or None when allowed."""
        if self.ensure_today(gid):
            return "ta现在还是单身哦，快向ta表白吧！"
        if target == uid:
            return None
        own, own_status = self.registry.lookup(gid, uid)
        if own is not None and own.target == target:
            return "笨蛋~你们明明已经在一起了啊w"
        if own is not None and own.target == 0:
            return "今天的你是单身贵族哦"
        if own_status is Status.USER:
            return "打灭，不给纳小妾！"
        if own_status is Status.TARGET:
            return "该是0就是0，当0有什么不好"
        other, other_status = self.registry.lookup(gid, target)
        if other_status is Status.SINGLE or other is None:
            return "ta现在还是单身哦，快向ta表白吧！"
        if other.target == 0:
            return "今天的ta是单身贵族哦"
        return None

    def draw(
        self,
        gid: int,
        uid: int,
        members: Iterable[Mapping[str, Any]],
        name_of: NameOf,
    ) -> Outcome:
        """Marry uid to a random single among the most recently active members."""
        self.ensure_today(gid)
        couple, status = self.registry.lookup(gid, uid)
        if couple is not None and couple.target == 0:
            return Outcome("今天你是单身贵族噢")
        if couple is not None and status is Status.USER:
            return Outcome("\n今天你已经娶过了，群老婆是", couple.target, couple.targetname)
        if couple is not None and status is Status.TARGET:
            return Outcome("\n今天你被娶了，群老公是", couple.user, couple.username)
        recent = sorted(members, key=_last_sent)[-RECENT_MEMBERS:]
        candidates = [
            member_id
            for member_id in (int(member["user_id"]) for member in recent)
            if self.registry.lookup(gid, member_id)[1] is Status.SINGLE
        ]
        if len(candidates) <= 1:
            return Outcome("~群里没有ta人是单身了哦 明天再试试叭")
        fiancee = self._rng.choice(candidates)
        if fiancee == uid:
            return Outcome("呜...没娶到，你可以再尝试一次")
        fiancee_name = name_of(fiancee)
        self.registry.register(gid, uid, fiancee, name_of(uid), fiancee_name)
        return Outcome("今天你的群老婆是", fiancee, fiancee_name)

    def propose(
        self, gid: int, uid: int, target: int, choice: str, name_of: NameOf
    ) -> Outcome:
        """Try to marry ("娶") or be married by ("嫁") target."""
        if uid == target:
            if self._rng.randrange(2) == 0:
                return Outcome("今日获得成就：自恋狂")
            self.registry.register(gid, uid, 0, "", "")
            return Outcome("今日获得成就：单身贵族")
        if self._rng.randrange(2) == 0:
            return Outcome(self._rng.choice(PROPOSE_FAILURE_TEXTS))
        target_name = name_of(target)
        if choice == "娶":
            self.registry.register(gid, uid, target, name_of(uid), target_name)
            text = "\n今天你的群老婆是"
        else:
            self.registry.register(gid, target, uid, target_name, name_of(uid))
            text = "\n今天你的群老公是"
        return Outcome(
            text, target, target_name, preface=self._rng.choice(PROPOSE_SUCCESS_TEXTS)
        )

    def become_mistress(
        self, gid: int, uid: int, target: int, name_of: NameOf
    ) -> Outcome:
        """Try to take target away from their current partner."""
        if target == uid:
            return Outcome("今日获得成就：自我攻略")
        if self._rng.randrange(10) // 4 != 0:
            return Outcome("失败了！可惜")
        _, status = self.registry.lookup(gid, target)
        target_name = name_of(target)
        if status is Status.SINGLE:
            return Outcome("ta现在还是单身哦，快向ta表白吧！")
        if status is Status.USER:
            self.registry.remarry(gid, target, uid, target_name, name_of(uid))
            role = "老公"
        else:
            self.registry.remarry(gid, uid, target, name_of(uid), target_name)
            role = "老婆"
        return Outcome(
            "今天你的群" + role + "是",
            target,
            target_name,
            preface=self._rng.choice(MISTRESS_SUCCESS_TEXTS),
        )

    def divorce(self, gid: int, uid: int) -> Optional[Outcome]:
        """Try to divorce; None when uid has nobody to divorce."""
        if self.ensure_today(gid):
            return Outcome("今天你还没有结婚哦")
        couple, status = self.registry.lookup(gid, uid)
        if couple is None or status is Status.SINGLE:
            return None
        if status is Status.USER:
            if self._rng.randrange(10) != 1:
                return Outcome(self._rng.choice(DIVORCE_FAILURE_TEXTS))
            self.registry.divorce(gid, couple.target)
            return Outcome(DIVORCE_SUCCESS_TEXTS[0])
        if self._rng.randrange(10) != 0:
            return Outcome(self._rng.choice(DIVORCE_FAILURE_TEXTS))
        self.registry.divorce(gid, couple.user)
        return Outcome(DIVORCE_SUCCESS_TEXTS[1])