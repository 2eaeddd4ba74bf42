"""
Rules oracle: the only place that talks to python-chess directly.

- parse() validates a six-field FEN and returns a chess.Board (never a partial parse).
- legal_moves()/apply_move() work in SAN; apply_uci() builds a structural move from engine output.
- terminal_state() names why a finished game is over.

All functions are pure: boards passed in are never mutated.
"""
from __future__ import annotations

import re
from typing import Optional

import chess

from .errors import IllegalMove, InvalidPosition
from .models import Color, TerminalState

UCI_RE = re.compile(r"^[a-h][1-8][a-h][1-8][qrbn]?$", re.I)
FEN_FIELDS = 6


def parse(fen: str) -> chess.Board:
    if not isinstance(fen, str) or not fen.strip():
        raise InvalidPosition("FEN is required")
    if len(fen.split()) != FEN_FIELDS:
        raise InvalidPosition(f"FEN must have {FEN_FIELDS} fields")
    try:
        board = chess.Board(fen=fen.strip())
    except ValueError as e:
        raise InvalidPosition(f"Invalid FEN string: {e}") from e
    if not board.is_valid():
        raise InvalidPosition(f"Invalid position: {board.status()!r}")
    return board


def legal_moves(board: chess.Board) -> list[str]:
    """SAN for every legal move, in generation order. Empty iff no move exists."""
    return [board.san(mv) for mv in board.legal_moves]


def apply_move(board: chess.Board, san: str) -> chess.Board:
    """Return a new board with `san` played. Only exact members of legal_moves() are accepted."""
    if not san or san not in legal_moves(board):
        raise IllegalMove(f"Illegal move {san!r} in {board.fen()}")
    nxt = board.copy(stack=False)
    nxt.push(nxt.parse_san(san))
    return nxt


def apply_uci(board: chess.Board, uci: str) -> tuple[str, chess.Board]:
    """Translate a positional move (from, to, optional promotion) into SAN and play it."""
    if not uci or not UCI_RE.match(uci):
        raise IllegalMove(f"Malformed UCI move {uci!r}")
    uci = uci.lower()
    promotion = chess.PIECE_SYMBOLS.index(uci[4]) if len(uci) == 5 else None
    mv = chess.Move(chess.parse_square(uci[0:2]), chess.parse_square(uci[2:4]), promotion=promotion)
    if mv not in board.legal_moves:
        raise IllegalMove(f"Illegal move {uci!r} in {board.fen()}")
    san = board.san(mv)
    nxt = board.copy(stack=False)
    nxt.push(mv)
    return san, nxt


def terminal_state(board: chess.Board) -> Optional[TerminalState]:
    if board.is_checkmate():
        return TerminalState.CHECKMATE
    if board.is_stalemate():
        return TerminalState.STALEMATE
    if board.is_insufficient_material():
        return TerminalState.INSUFFICIENT_MATERIAL
    # Only draws already reached count; a draw one move away is still a live game
    if board.is_fivefold_repetition() or board.is_repetition(3):
        return TerminalState.THREEFOLD_REPETITION
    if board.is_seventyfive_moves() or board.is_fifty_moves():
        return TerminalState.DRAW
    if board.is_game_over():
        return TerminalState.GAME_OVER
    return None


def side_to_move(board: chess.Board) -> Color:
    return Color.WHITE if board.turn == chess.WHITE else Color.BLACK


def is_in_check(board: chess.Board) -> bool:
    return board.is_check()


def render(board: chess.Board) -> str:
    """ASCII diagram, rank 8 first. Prompt context only."""
    return str(board)
