import random
import unittest
from collections import Counter
from unittest.mock import AsyncMock, patch

import chess
from openai import OpenAIError

from chessgpt import rules
from chessgpt.llm_client import LLMClient
from chessgpt.llm_opponent import LLMOpponent
from chessgpt.random_opponent import RandomOpponent
from tests.fakes import AFTER_E4_FEN, START_FEN, completion, fake_openai, make_settings


class LLMOpponentTests(unittest.IsolatedAsyncioTestCase):
    def make_opponent(self, script, rng=None, **overrides):
        settings = make_settings(**overrides)
        self.openai = fake_openai(script)
        client = LLMClient(settings, client=self.openai)
        return LLMOpponent(settings, client=client, fallback=RandomOpponent(rng))

    @property
    def calls(self):
        return self.openai.chat.completions.calls

    async def test_first_legal_candidate_wins(self):
        opp = self.make_opponent([completion("e4", "e4", " Nf3\n", "e")])
        move = await opp.choose(chess.Board(START_FEN), "")
        self.assertEqual(move, "e4")
        self.assertEqual(len(self.calls), 1)

    async def test_request_shape_and_prompt(self):
        opp = self.make_opponent([completion("e5")])
        board = chess.Board(AFTER_E4_FEN)
        await opp.choose(board, "1. e4")
        call = self.calls[0]
        self.assertEqual(call["n"], 5)
        self.assertEqual(call["max_tokens"], 4)
        self.assertEqual(call["temperature"], 1.0)
        self.assertEqual(call["model"], "gpt-4o")
        self.assertEqual(len(call["messages"]), 1)
        content = call["messages"][0]["content"]
        self.assertIn(f"FEN: {AFTER_E4_FEN}.", content)
        self.assertIn("AN: 1. e4.", content)
        self.assertIn("Are you (black) currently checked? No", content)
        self.assertIn(rules.render(board), content)
        self.assertIn(", ".join(rules.legal_moves(board)), content)

    async def test_empty_history_placeholder(self):
        opp = self.make_opponent([completion("e5")])
        await opp.choose(chess.Board(AFTER_E4_FEN), "")
        self.assertIn("AN: No AN available.", self.calls[0]["messages"][0]["content"])

    async def test_retries_same_prompt_until_valid(self):
        opp = self.make_opponent([completion("Ke2", "xx"), completion("Nf3")])
        move = await opp.choose(chess.Board(START_FEN), "")
        self.assertEqual(move, "Nf3")
        self.assertEqual(len(self.calls), 2)
        self.assertEqual(self.calls[0]["messages"], self.calls[1]["messages"])

    async def test_remote_failure_backs_off_then_retries(self):
        opp = self.make_opponent([OpenAIError("rate limited"), completion("d4")], openai_retry_delay_s=0.25)
        with patch("chessgpt.llm_opponent.asyncio.sleep", new=AsyncMock()) as sleep:
            move = await opp.choose(chess.Board(START_FEN), "")
        self.assertEqual(move, "d4")
        sleep.assert_awaited_once_with(0.25)
        self.assertEqual(len(self.calls), 2)

    async def test_all_remote_failures_fall_back_to_random(self):
        opp = self.make_opponent([OpenAIError("down")] * 3)
        board = chess.Board(START_FEN)
        move = await opp.choose(board, "")
        self.assertIn(move, rules.legal_moves(board))
        self.assertEqual(len(self.calls), 3)

    async def test_missing_choices_counts_as_no_candidate(self):
        opp = self.make_opponent([completion(), completion(), completion("e4")])
        self.assertEqual(await opp.choose(chess.Board(START_FEN), ""), "e4")

    async def test_exhaustion_returns_uniform_random_legal_move(self):
        board = chess.Board(START_FEN)
        legal = rules.legal_moves(board)
        rng = random.Random(1234)
        runs = 1000
        counts = Counter()
        for _ in range(runs):
            opp = self.make_opponent([completion("Qh9", "??", "resign")] * 3, rng=rng)
            move = await opp.choose(board, "")
            self.assertEqual(len(self.calls), 3)
            counts[move] += 1
        self.assertEqual(set(counts), set(legal))
        expected = runs / len(legal)
        for move in legal:
            self.assertGreater(counts[move], expected * 0.4, move)
            self.assertLess(counts[move], expected * 1.8, move)

    async def test_frequency_policy(self):
        script = [completion("Nf3", "e4", "e4")]
        first = self.make_opponent(list(script))
        self.assertEqual(await first.choose(chess.Board(START_FEN), ""), "Nf3")
        ranked = self.make_opponent(list(script), candidate_policy="frequency")
        self.assertEqual(await ranked.choose(chess.Board(START_FEN), ""), "e4")

    async def test_unknown_policy_defaults_to_first(self):
        opp = self.make_opponent([completion("Nf3", "e4", "e4")], candidate_policy="majority")
        self.assertEqual(opp.policy, "first")


if __name__ == "__main__":
    unittest.main()
