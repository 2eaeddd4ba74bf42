"""
Move arbitration: the single entry point that turns (FEN, history, bot) into one legal move.

- Validates the position and that it is the AI's turn.
- Returns the terminal state of finished games without consulting any bot.
- Dispatches to the model, engine or random tier; engine failures and empty results
  fall back to a uniformly random legal move.
- Re-validates the chosen move; a rejected move raises InvalidMoveGenerated instead of
  being replaced.
"""
from __future__ import annotations

import logging
from typing import Optional

import chess

from . import rules
from .config import Settings
from .engine_gateway import EngineGateway
from .errors import EngineError, IllegalMove, InvalidMoveGenerated, InvalidPosition, NotThisSideToMove
from .llm_opponent import LLMOpponent
from .models import BotTier, Color, MoveResult
from .move_validator import sanitize_history
from .random_opponent import RandomOpponent

log = logging.getLogger("arbiter")


class MoveArbiter:
    def __init__(
        self,
        settings: Settings,
        gateway: Optional[EngineGateway] = None,
        llm: Optional[LLMOpponent] = None,
        random_opponent: Optional[RandomOpponent] = None,
    ):
        self.settings = settings
        self.ai_color = Color.parse(settings.ai_color)
        self.random = random_opponent or RandomOpponent()
        self.gateway = gateway or EngineGateway(settings)
        self.llm = llm or LLMOpponent(settings, fallback=self.random)

    def parse_position(self, fen: Optional[str]) -> chess.Board:
        """Parse `fen` and check it is the AI's move. Raises InvalidPosition/NotThisSideToMove."""
        if not fen:
            raise InvalidPosition("FEN is required")
        if len(fen) > self.settings.max_fen_length:
            raise InvalidPosition("FEN too long")
        board = rules.parse(fen)
        side = rules.side_to_move(board)
        if side is not self.ai_color:
            raise NotThisSideToMove(f"Not {self.ai_color.value}'s turn")
        return board

    async def resolve_move(self, fen: Optional[str], history: Optional[str] = None, bot: Optional[str] = None) -> MoveResult:
        board = self.parse_position(fen)

        terminal = rules.terminal_state(board)
        if terminal is not None:
            log.info("Game already over (%s): %s", terminal.value, board.fen())
            return MoveResult(terminal=terminal)

        tier = BotTier.from_param(bot, self.settings.default_bot)
        san, source = await self._dispatch(tier, board, history)

        if not san:
            log.error("Bot produced no move (bot=%s, fen=%s)", tier.value, board.fen())
            san, source = self.random.choose(board), "fallback"

        try:
            after = rules.apply_move(board, san)
        except IllegalMove:
            log.error("Invalid move from bot (bot=%s, move=%r, fen=%s)", tier.value, san, board.fen())
            raise InvalidMoveGenerated("Invalid move generated") from None

        log.info("AI move successful (bot=%s, source=%s, move=%s, fen=%s)", tier.value, source, san, board.fen())
        return MoveResult(san=san, bot=tier, source=source, fen_after=after.fen())

    async def _dispatch(self, tier: BotTier, board: chess.Board, history: Optional[str]) -> tuple[str, str]:
        if tier is BotTier.MODEL:
            an = sanitize_history(history, self.settings.max_an_length)
            return await self.llm.choose(board, an), "model"
        if tier is BotTier.ENGINE:
            try:
                return await self.gateway.best_move(board), "engine"
            except EngineError as e:
                log.warning("Engine failed (%s: %s); using random move", type(e).__name__, e)
                return self.random.choose(board), "fallback"
        return self.random.choose(board), "random"

    async def close(self) -> None:
        await self.gateway.close()
        self.llm.close()
        self.random.close()
