"""
Prompt builder for model move requests using a modular template.

Every placeholder is filled from the rules oracle except {AN}, which is the
caller's move history after sanitize_history().
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import chess

from . import rules
from .models import Color

DEFAULT_TEMPLATE = """You are ChessGPT, a superintelligent chess computer. What is the optimal move based on the FEN and AN below? Answer in SAN (e.g. e4, Nf3, etc.). Don't provide any explanation.
FEN: {FEN}.
AN: {AN}.
Are you ({SIDE_TO_MOVE}) currently checked? {IN_CHECK}
The chess board represented as ASCII looks like this:
{BOARD}

The following are a list of your available moves: {LEGAL_MOVES}"""

NO_HISTORY = "No AN available"


@dataclass
class PromptConfig:
    """Template used for the single user message sent per attempt."""

    template: str = DEFAULT_TEMPLATE


def render_custom_prompt(template: str, values: Dict[str, str]) -> str:
    """Replace known placeholders in the template. Unknown tokens are left intact."""
    rendered = template or ""
    for key, val in values.items():
        rendered = rendered.replace(f"{{{key}}}", val)
    return rendered


def build_prompt_messages(board: chess.Board, history: str, prompt_cfg: PromptConfig | None = None) -> list[dict]:
    """Construct the chat messages for `board`. `history` must already be sanitized."""
    cfg = prompt_cfg or PromptConfig()
    side = rules.side_to_move(board)
    values = {
        "FEN": board.fen(),
        "AN": history or NO_HISTORY,
        "SIDE_TO_MOVE": "white" if side is Color.WHITE else "black",
        "IN_CHECK": "Yes" if rules.is_in_check(board) else "No",
        "BOARD": rules.render(board),
        "LEGAL_MOVES": ", ".join(rules.legal_moves(board)),
    }
    return [{"role": "user", "content": render_custom_prompt(cfg.template, values)}]
