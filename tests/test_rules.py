import unittest

import chess

from chessgpt import rules
from chessgpt.errors import IllegalMove, InvalidPosition
from chessgpt.models import Color, TerminalState
from tests.fakes import AFTER_E4_FEN, SCHOLARS_MATE_FEN, STALEMATE_FEN, START_FEN


class ParseTests(unittest.TestCase):
    def test_parses_start_position(self):
        board = rules.parse(START_FEN)
        self.assertEqual(board.fen(), START_FEN)
        self.assertEqual(rules.side_to_move(board), Color.WHITE)

    def test_rejects_malformed(self):
        for fen in [
            "",
            "   ",
            "not a fen",
            "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -",  # missing clocks
            "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNX w KQkq - 0 1",
            "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP w KQkq - 0 1 extra",
            "8/8/8/8/8/8/8/8 w - - 0 1",  # no kings
        ]:
            with self.subTest(fen=fen), self.assertRaises(InvalidPosition):
                rules.parse(fen)

    def test_rejects_non_string(self):
        with self.assertRaises(InvalidPosition):
            rules.parse(None)


class MoveTests(unittest.TestCase):
    def setUp(self):
        self.board = rules.parse(AFTER_E4_FEN)

    def test_legal_moves_in_san(self):
        legal = rules.legal_moves(self.board)
        self.assertEqual(len(legal), 20)
        self.assertIn("e5", legal)
        self.assertIn("Nf6", legal)

    def test_apply_move_returns_new_board(self):
        after = rules.apply_move(self.board, "e5")
        self.assertEqual(after.fen(), "rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 2")
        self.assertEqual(self.board.fen(), AFTER_E4_FEN)

    def test_apply_move_rejects_non_members(self):
        for move in ["e4", "e7e5", "E5", "e5+", "", "--", "0000"]:
            with self.subTest(move=move), self.assertRaises(IllegalMove):
                rules.apply_move(self.board, move)

    def test_apply_uci(self):
        san, after = rules.apply_uci(self.board, "g8f6")
        self.assertEqual(san, "Nf6")
        self.assertEqual(after.piece_at(chess.F6), chess.Piece(chess.KNIGHT, chess.BLACK))

    def test_apply_uci_rejects(self):
        for uci in ["e2e4", "e7e4", "zz", "e7e8k", ""]:
            with self.subTest(uci=uci), self.assertRaises(IllegalMove):
                rules.apply_uci(self.board, uci)


class TerminalStateTests(unittest.TestCase):
    def test_live_game(self):
        self.assertIsNone(rules.terminal_state(rules.parse(START_FEN)))

    def test_checkmate(self):
        board = rules.parse(SCHOLARS_MATE_FEN)
        self.assertEqual(rules.terminal_state(board), TerminalState.CHECKMATE)
        self.assertTrue(rules.is_in_check(board))
        self.assertEqual(rules.legal_moves(board), [])

    def test_stalemate(self):
        board = rules.parse(STALEMATE_FEN)
        self.assertEqual(rules.terminal_state(board), TerminalState.STALEMATE)
        self.assertFalse(rules.is_in_check(board))

    def test_insufficient_material(self):
        board = rules.parse("8/8/4k3/8/8/3K4/8/8 b - - 0 40")
        self.assertEqual(rules.terminal_state(board), TerminalState.INSUFFICIENT_MATERIAL)

    def test_fifty_move_rule_is_draw(self):
        board = rules.parse("4k3/8/8/8/8/8/4P3/4K2R b - - 100 80")
        self.assertEqual(rules.terminal_state(board), TerminalState.DRAW)

    def test_draw_one_move_away_is_still_live(self):
        board = rules.parse("4k3/8/8/8/8/8/4P3/4K2R b - - 99 80")
        self.assertIsNone(rules.terminal_state(board))
        self.assertTrue(rules.legal_moves(board))

    def test_threefold_repetition(self):
        board = rules.parse(START_FEN)
        for san in ["Nf3", "Nf6", "Ng1", "Ng8", "Nf3", "Nf6", "Ng1"]:
            board.push_san(san)
        # one repetition short: the position after Ng8 has occurred twice so far
        self.assertIsNone(rules.terminal_state(board))
        board.push_san("Ng8")
        self.assertEqual(rules.terminal_state(board), TerminalState.THREEFOLD_REPETITION)


class RenderTests(unittest.TestCase):
    def test_ascii_board(self):
        diagram = rules.render(rules.parse(START_FEN))
        lines = diagram.splitlines()
        self.assertEqual(len(lines), 8)
        self.assertEqual(lines[0], "r n b q k b n r")
        self.assertEqual(lines[-1], "R N B Q K B N R")


if __name__ == "__main__":
    unittest.main()
