from __future__ import annotations
"""LLM-backed opponent: samples several completions and keeps the first legal one."""
import asyncio
import logging
from typing import Optional

import chess

from . import rules
from .config import Settings
from .errors import ModelNoValidCandidate, RemoteCallFailure
from .llm_client import LLMClient
from .move_validator import POLICIES, extract_candidates, select_candidate
from .prompting import PromptConfig, build_prompt_messages
from .random_opponent import RandomOpponent

log = logging.getLogger("llm_opponent")


class LLMOpponent:
    """Model-based bot tier.

    Each attempt issues one request for `openai_num_completions` samples with the
    same prompt. The accepted move is chosen by `candidate_policy` among samples
    that name a legal SAN move. Remote failures wait `openai_retry_delay_s` before
    the next attempt. Once `openai_max_attempts` are spent a uniformly random legal
    move is returned; choose() never raises for a live position.
    """

    name: str = "ChessGPT"

    def __init__(
        self,
        settings: Settings,
        client: Optional[LLMClient] = None,
        prompt_cfg: Optional[PromptConfig] = None,
        fallback: Optional[RandomOpponent] = None,
    ):
        self.settings = settings
        self.client = client or LLMClient(settings)
        self.prompt_cfg = prompt_cfg or PromptConfig()
        self.fallback = fallback or RandomOpponent()
        policy = settings.candidate_policy
        self.policy = policy if policy in POLICIES else "first"

    async def _attempt(self, messages: list[dict], legal: list[str], attempt: int) -> str:
        raw = await self.client.request_completions(messages)
        candidates = extract_candidates(raw)
        log.debug("Attempt %d candidates: %s", attempt, candidates)
        move = select_candidate(raw, legal, self.policy)
        if not move:
            raise ModelNoValidCandidate(f"no legal move among {candidates}")
        return move

    async def choose(self, board: chess.Board, history: str) -> str:
        """Return a legal SAN for `board`. `history` must already be sanitized."""
        legal = rules.legal_moves(board)
        if not legal:
            return ""
        messages = build_prompt_messages(board, history, self.prompt_cfg)
        attempts = self.settings.openai_max_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await self._attempt(messages, legal, attempt)
            except ModelNoValidCandidate as e:
                log.warning("No valid move from model (attempt %d/%d): %s", attempt, attempts, e)
            except RemoteCallFailure as e:
                log.error("Model request failed (attempt %d/%d): %s", attempt, attempts, e)
                if attempt < attempts:
                    await asyncio.sleep(self.settings.openai_retry_delay_s)
        move = self.fallback.choose(board)
        log.info("Model attempts exhausted; using random move %s", move)
        return move

    def close(self):
        # Nothing to release for API-based opponents
        return
