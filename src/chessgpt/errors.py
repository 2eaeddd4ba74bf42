"""Error taxonomy for move arbitration.

Only InvalidPosition, NotThisSideToMove and InvalidMoveGenerated ever reach a
caller; everything else is absorbed by a fallback to a random legal move.
"""
from __future__ import annotations


class ChessGPTError(Exception):
    """Base class for all arbitration errors."""


class InvalidPosition(ChessGPTError):
    """FEN missing, too long, or rejected by the rules library."""


class NotThisSideToMove(ChessGPTError):
    """The position has the human to move, not the AI's assigned colour."""


class IllegalMove(ChessGPTError):
    """A move string is not a member of the position's legal moves."""


class InvalidMoveGenerated(ChessGPTError):
    """Final re-validation of a resolved move failed."""


class EngineError(ChessGPTError):
    """Any engine gateway failure; callers fall back to a random move."""


class EngineTimeout(EngineError):
    """The engine did not answer before the request deadline."""


class EngineDecodeFailure(EngineError):
    """The engine answered but no legal best move could be read from it."""


class EngineUnavailable(EngineError):
    """The engine process could not be started or exited unexpectedly."""


class RemoteCallFailure(ChessGPTError):
    """Network, auth or quota failure talking to the language model."""


class ModelNoValidCandidate(ChessGPTError):
    """No sampled completion matched a legal move."""
