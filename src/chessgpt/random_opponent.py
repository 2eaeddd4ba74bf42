"""
RandomOpponent: picks a uniformly random legal move.

- Serves the "random" bot tier and is the fallback for every other tier.
- No external resources; choose() samples from the legal SAN list; close() is a no-op.
"""
from __future__ import annotations

import random
from typing import Optional

import chess

from . import rules


class RandomOpponent:
    """Simple opponent that picks a uniformly random legal move."""

    name: str = "Random"

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def choose(self, board: chess.Board) -> str:
        """Return a random legal SAN, or "" when the position has no legal moves."""
        legal = rules.legal_moves(board)
        return self.rng.choice(legal) if legal else ""

    def close(self):
        # No engine resources to release
        pass
