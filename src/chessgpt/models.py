"""Shared value types: bot tiers, terminal states, colours and arbitration results."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class BotTier(str, Enum):
    MODEL = "chessgpt"
    ENGINE = "stockfish"
    RANDOM = "random"

    @classmethod
    def from_param(cls, value: Optional[str], default: str = "stockfish") -> "BotTier":
        """Map a request parameter to a tier. Unknown names select RANDOM."""
        key = (value or default or "").strip().lower()
        for tier in cls:
            if tier.value == key:
                return tier
        return cls.RANDOM


class TerminalState(str, Enum):
    CHECKMATE = "Checkmate"
    STALEMATE = "Stalemate"
    DRAW = "Draw"
    THREEFOLD_REPETITION = "Threefold repetition"
    INSUFFICIENT_MATERIAL = "Insufficient material"
    GAME_OVER = "Game over"


class Color(str, Enum):
    WHITE = "white"
    BLACK = "black"

    @classmethod
    def parse(cls, value: str) -> "Color":
        return cls.WHITE if str(value).strip().lower() in ("white", "w") else cls.BLACK


@dataclass(frozen=True)
class MoveResult:
    """Outcome of one arbitration: a SAN move or a terminal state, never both."""

    san: Optional[str] = None
    terminal: Optional[TerminalState] = None
    bot: Optional[BotTier] = None
    source: Optional[str] = None  # "model" | "engine" | "random" | "fallback"
    fen_after: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.terminal is not None
