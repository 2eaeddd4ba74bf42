"""
Command line entry points.

- chessgpt-move: resolve one AI move for a FEN and print it (or the terminal state).
- chessgpt-serve: run the HTTP API.
"""
import argparse
import asyncio
import logging
import sys

from .arbiter import MoveArbiter
from .config import SETTINGS, load_settings
from .errors import InvalidMoveGenerated, InvalidPosition, NotThisSideToMove


def _setup_logging(level: str) -> None:
    level = (level or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


async def _resolve_once(arbiter: MoveArbiter, fen: str, an: str, bot: str):
    try:
        return await arbiter.resolve_move(fen, an, bot)
    finally:
        await arbiter.close()


def move_main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Resolve one AI move for a position.")
    ap.add_argument("--fen", required=True, help="Position to move from (AI side to move)")
    ap.add_argument("--an", default="", help="Move history, used as model prompt context only")
    ap.add_argument("--bot", default=None, help="chessgpt | stockfish | random (default from settings)")
    ap.add_argument("--settings", default=None, help="Optional settings.yml path")
    ap.add_argument("--log-level", default=None, help="Python logging level (e.g., INFO, DEBUG)")
    args = ap.parse_args(argv)

    settings = load_settings(args.settings) if args.settings else SETTINGS
    _setup_logging(args.log_level or settings.log_level)
    log = logging.getLogger("chessgpt-move")

    arbiter = MoveArbiter(settings)
    try:
        result = asyncio.run(_resolve_once(arbiter, args.fen, args.an, args.bot))
    except (InvalidPosition, NotThisSideToMove) as e:
        log.error("%s", e)
        return 2
    except InvalidMoveGenerated as e:
        log.error("%s", e)
        return 1
    print(result.terminal.value if result.is_terminal else result.san)
    return 0


def serve_main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Run the ChessGPT move API.")
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None)
    ap.add_argument("--settings", default=None, help="Optional settings.yml path")
    ap.add_argument("--debug", action="store_true")
    args = ap.parse_args(argv)

    settings = load_settings(args.settings) if args.settings else SETTINGS
    _setup_logging(settings.log_level)

    from .server import create_app

    app = create_app(settings)
    # The reloader would spawn a second engine process in the child
    app.run(host=args.host or settings.host, port=args.port or settings.port, debug=args.debug, use_reloader=False)
    return 0


if __name__ == "__main__":
    sys.exit(move_main())
