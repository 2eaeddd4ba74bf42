"""
Minimal Flask API that exposes move arbitration over HTTP.

Endpoints:
- GET /ai-move?fen=<FEN>&an=<history>&bot=<chessgpt|stockfish|other>
      -> 200 text/plain SAN move
      -> 200 {"msg": <terminal state>} if the game is already over
      -> 400 {"error": ...} for a missing/too long/invalid FEN or the wrong side to move
      -> 500 {"error": "Invalid move generated"} if final re-validation fails
- GET /health -> {"status": "healthy", "uptime": <s>, "timestamp": <iso>}

Coroutines run on a LoopThread so every request shares one engine gateway.
"""
from __future__ import annotations

import atexit
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from .arbiter import MoveArbiter
from .config import SETTINGS, Settings
from .errors import InvalidMoveGenerated, InvalidPosition, NotThisSideToMove
from .runtime import LoopThread

log = logging.getLogger("server")


def create_app(settings: Optional[Settings] = None, arbiter: Optional[MoveArbiter] = None, runner: Optional[LoopThread] = None) -> Flask:
    settings = settings or SETTINGS
    runner = runner or LoopThread()
    arbiter = arbiter or MoveArbiter(settings)
    started_at = time.time()

    app = Flask(__name__)
    app.config["ARBITER"] = arbiter
    app.config["LOOP_THREAD"] = runner

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify(
            {
                "status": "healthy",
                "uptime": time.time() - started_at,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    @app.route("/ai-move", methods=["GET"])
    def ai_move():
        fen = request.args.get("fen")
        an = request.args.get("an", "")
        bot = request.args.get("bot")
        try:
            result = runner.run(arbiter.resolve_move(fen, an, bot))
        except InvalidPosition as e:
            log.warning("Rejected FEN %r: %s", fen, e)
            return jsonify({"error": str(e)}), 400
        except NotThisSideToMove as e:
            log.warning("AI move requested on the wrong turn (fen=%s)", fen)
            return jsonify({"error": str(e)}), 400
        except InvalidMoveGenerated as e:
            return jsonify({"error": str(e)}), 500
        if result.is_terminal:
            return jsonify({"msg": result.terminal.value})
        return Response(result.san, mimetype="text/plain")

    @app.errorhandler(Exception)
    def unhandled(exc):
        if isinstance(exc, HTTPException):
            return jsonify({"error": exc.description}), exc.code
        log.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        response.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
        # Moves are position-dependent; never cache
        response.headers["Cache-Control"] = "no-store, max-age=0"
        return response

    def _shutdown():
        if runner.loop.is_closed():
            return
        try:
            runner.run(arbiter.close(), timeout=5)
        except Exception:
            log.exception("Failed to close arbiter")
        runner.stop()

    app.config["SHUTDOWN"] = _shutdown
    atexit.register(_shutdown)
    return app
