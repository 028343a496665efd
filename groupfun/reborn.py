"""Reincarnation roll: a weighted country and gender, or a failed birth."""

from __future__ import annotations

import bisect
import json
import logging
import random
from pathlib import Path
from typing import Any, Hashable, Iterable, Optional, Union

logger = logging.getLogger(__name__)

GENDERS = (("男孩子", 50707), ("女孩子", 48292), ("雌雄同体", 1001))
SUCCESS_TEMPLATE = "投胎成功！\n您出生在 {}, 是 {}。"
FAILURE_TEXT = "投胎失败！\n您没能活到出生，祝您下次好运！"
_SURVIVAL_THRESHOLD = 1 << 27
_WEIGHT_SCALE = 1e9


class WeightedChooser:
    """Pick items at random in proportion to non-negative integer weights."""

    def __init__(
        self,
        choices: Iterable[tuple[Any, int]],
        rng: Optional[random.Random] = None,
    ) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._items: list[Any] = []
        self._cumulative: list[int] = []
        total = 0
        for item, weight in choices:
            weight = int(weight)
            if weight < 0:
                raise ValueError(f"negative weight for {item!r}")
            if weight == 0:
                continue
            total += weight
            self._items.append(item)
            self._cumulative.append(total)
        if not self._items:
            raise ValueError("no choices with a positive weight")
        self._total = total

    def pick(self) -> Any:
        """Return one item, chosen with probability weight / total."""
        r = self._rng.randint(1, self._total)
        return self._items[bisect.bisect_left(self._cumulative, r)]


class Reborn:
    """Roll a new life from country birth rates and fixed gender ratios."""

    def __init__(
        self,
        rates: Iterable[tuple[Hashable, float]],
        rng: Optional[random.Random] = None,
    ) -> None:
        self._rng = rng if rng is not None else random.Random()
        rates = list(rates)
        self._countries = WeightedChooser(
            ((name, int(weight * _WEIGHT_SCALE)) for name, weight in rates), self._rng
        )
        self._genders = WeightedChooser(GENDERS, self._rng)
        logger.info("[Reborn] loaded %d countries/regions", len(rates))

    def roll(self) -> str:
        """Return the message announcing the outcome of one reincarnation."""
        if self._rng.getrandbits(31) > _SURVIVAL_THRESHOLD:
            return SUCCESS_TEMPLATE.format(self._countries.pick(), self._genders.pick())
        return FAILURE_TEXT


def load_rates(path: Union[str, Path]) -> list[tuple[str, float]]:
    """Read a JSON list of {"name", "weight"} objects into (name, weight) pairs."""
    with open(path, encoding="utf-8") as handle:
        entries = json.load(handle)
    return [
        (str(entry.get("name", "")), float(entry.get("weight", 0)))
        for entry in entries
    ]