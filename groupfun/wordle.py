"""Word-guessing game: colour-coded guesses on a grid of letter cells."""

from __future__ import annotations

import io
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Union

from PIL import Image, ImageDraw, ImageFont

CLASSES: dict[str, int] = {"": 5, "五阶": 5, "六阶": 6, "七阶": 7}

_SIDE = 20
_SPACE = 10
_STEP = _SIDE + 4
_WHITE = (255, 255, 255)
_GLYPH_ASCENT = 11


class LetterState(IntEnum):
    """How a letter of a guess relates to the target word."""

    MATCH = 0
    EXIST = 1
    NOTEXIST = 2
    UNDONE = 3

    @property
    def color(self) -> tuple[int, int, int]:
        """Colour of a cell in this state."""
        return _COLORS[self]


_COLORS = {
    LetterState.MATCH: (125, 166, 108),
    LetterState.EXIST: (199, 183, 96),
    LetterState.NOTEXIST: (123, 123, 123),
    LetterState.UNDONE: (219, 219, 219),
}


class WordleError(Exception):
    """Raised when a guess cannot be accepted."""


class LengthNotEnoughError(WordleError):
    """The guess does not have the target's length."""

    def __init__(self) -> None:
        super().__init__("length not enough")


class UnknownWordError(WordleError):
    """The guess is not a word of the dictionary."""

    def __init__(self) -> None:
        super().__init__("unknown word")


@dataclass(frozen=True)
class GuessResult:
    """Outcome of an accepted guess."""

    win: bool
    exhausted: bool
    states: tuple[LetterState, ...]

    @property
    def over(self) -> bool:
        """True when the game has ended, won or not."""
        return self.win or self.exhausted


class WordleGame:
    """One round: the target is to be found within length + 1 guesses."""

    def __init__(self, target: str, dictionary: Iterable[str]) -> None:
        self.target = target
        self.length = len(target)
        self.attempts = self.length + 1
        self._dictionary = frozenset(dictionary)
        self._record: list[str] = []
        self._won = False

    @property
    def guesses(self) -> list[str]:
        """Accepted guesses so far."""
        return list(self._record)

    @property
    def finished(self) -> bool:
        """True once the word was found or no guesses remain."""
        return self._won or len(self._record) >= self.attempts

    def _states(self, word: str) -> tuple[LetterState, ...]:
        states = []
        for letter, wanted in zip(word, self.target):
            if letter == wanted:
                states.append(LetterState.MATCH)
            elif letter in self.target:
                states.append(LetterState.EXIST)
            else:
                states.append(LetterState.NOTEXIST)
        return tuple(states)

    def guess(self, word: str) -> GuessResult:
        """Check a guess against the target and record it."""
        if self.finished:
            raise WordleError("times run out")
        word = word.lower()
        win = word == self.target
        if not win:
            if len(word) != self.length:
                raise LengthNotEnoughError()
            if word not in self._dictionary:
                raise UnknownWordError()
        self._record.append(word)
        self._won = win
        return GuessResult(
            win=win,
            exhausted=len(self._record) >= self.attempts,
            states=self._states(word),
        )

    def grid(self) -> list[list[tuple[str, LetterState]]]:
        """Rows of (letter, state) cells; rows not yet guessed are undone."""
        rows = []
        for row in range(self.attempts):
            if row < len(self._record):
                word = self._record[row]
                rows.append(list(zip(word.upper(), self._states(word))))
            else:
                rows.append([("", LetterState.UNDONE)] * self.length)
        return rows

    def render_png(self) -> bytes:
        """Draw the grid as a PNG image."""
        width = _STEP * self.length + _SPACE * 2 - 4
        height = _STEP * self.attempts + _SPACE * 2 - 4
        image = Image.new("RGB", (width, height), _WHITE)
        draw = ImageDraw.Draw(image)
        font = ImageFont.load_default()
        for i, row in enumerate(self.grid()):
            for j, (letter, state) in enumerate(row):
                x = _SPACE + j * _STEP
                y = _SPACE + i * _STEP
                if state is LetterState.UNDONE:
                    draw.rectangle(
                        (x + 1, y + 1, x + _SIDE - 2, y + _SIDE - 2),
                        outline=state.color,
                        width=1,
                    )
                else:
                    draw.rectangle(
                        (x, y, x + _SIDE - 1, y + _SIDE - 1), fill=state.color
                    )
                    draw.text(
                        (x + 7, y + 15 - _GLYPH_ASCENT), letter, fill=_WHITE, font=font
                    )
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()


def load_word_list(text: Union[str, bytes]) -> list[str]:
    """Split a newline-separated word list and sort it."""
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    return sorted(text.split("\n"))


def class_length(name: str) -> int:
    """Word length of a difficulty class name ("", "五阶", "六阶", "七阶")."""
    try:
        return CLASSES[name]
    except KeyError:
        raise ValueError(f"unknown word class: {name!r}") from None