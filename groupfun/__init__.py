"""Group chat entertainment features: matchmaking, sign-in scores, sleep tracking, wordle, replies and picture sets."""

__version__ = "0.1.0"

__all__ = [
    "registry",
    "matchmaking",
    "reborn",
    "replies",
    "sleep",
    "score",
    "wordle",
    "ymgal",
]