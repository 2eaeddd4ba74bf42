"""
Engine gateway: exclusive owner of the single long-lived UCI engine process.

- All requests go through one FIFO queue; at most one is in flight against the process.
- Each request carries its own deadline, measured from enqueue. On expiry a queued
  request is dropped and an in-flight one gets a best-effort `stop`; the next request
  is dispatched at once. The process itself is never restarted because of a timeout.
- Every dispatch starts with `ucinewgame` + `isready`. Output read before the matching
  `readyok` belongs to an earlier, abandoned search and is discarded (DRAINING).
- decode_best_move() turns the raw `bestmove` line into SAN via the rules oracle.

The engine path is resolved from: settings.stockfish_path (STOCKFISH_PATH), then PATH.
"""
from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Deque, Optional

import chess

from . import rules
from .config import Settings
from .errors import EngineDecodeFailure, EngineTimeout, EngineUnavailable, IllegalMove

log = logging.getLogger("engine_gateway")

BESTMOVE_RE = re.compile(r"bestmove\s(\w{4,5})")


class GatewayState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"
    DRAINING = "draining"


def resolve_engine_path(candidate: str | None) -> str:
    """Resolve the engine binary. Raises EngineUnavailable with guidance if not found."""
    candidate = candidate or "stockfish"
    resolved = shutil.which(candidate) or (candidate if os.path.isfile(candidate) else None)
    if not resolved:
        resolved = shutil.which("stockfish")
    if not resolved:
        raise EngineUnavailable(
            f"Stockfish engine not found (candidate='{candidate}'). Install it (e.g. 'apt install stockfish' "
            "or 'brew install stockfish') or set STOCKFISH_PATH to the binary path."
        )
    return resolved


class UciProcess:
    """Line-oriented stdin/stdout transport to an engine subprocess."""

    def __init__(self, proc: asyncio.subprocess.Process):
        if proc.stdin is None or proc.stdout is None:
            raise EngineUnavailable("engine process was started without stdio pipes")
        self.proc = proc
        self.stdin = proc.stdin
        self.stdout = proc.stdout

    @classmethod
    async def spawn(cls, path: str) -> "UciProcess":
        proc = await asyncio.create_subprocess_exec(
            path,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        log.info("Started engine process %s (pid=%s)", path, proc.pid)
        return cls(proc)

    def send(self, line: str) -> None:
        log.debug(">> %s", line)
        self.stdin.write((line + "\n").encode())

    async def readline(self) -> Optional[str]:
        """Next output line without the newline, or None at EOF."""
        data = await self.stdout.readline()
        if not data:
            return None
        return data.decode(errors="replace").rstrip("\r\n")

    async def close(self, grace_s: float = 2.0) -> None:
        if self.proc.returncode is not None:
            return
        try:
            await asyncio.wait_for(self.proc.wait(), grace_s)
        except asyncio.TimeoutError:
            log.warning("Engine did not exit after quit; killing pid=%s", self.proc.pid)
            self.proc.kill()
            await self.proc.wait()


ProcessFactory = Callable[[], Awaitable[UciProcess]]


@dataclass(eq=False)
class EngineRequest:
    fen: str
    future: asyncio.Future
    enqueued_at: float
    dispatched_at: Optional[float] = None
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)


def decode_best_move(raw: str, board: chess.Board) -> tuple[str, str]:
    """Return (uci, san) for the engine's answer on `board`.

    Raises EngineDecodeFailure if no bestmove token is present or the move is illegal.
    """
    m = BESTMOVE_RE.search(raw or "")
    if not m:
        raise EngineDecodeFailure(f"No best move found in engine output: {raw!r}")
    uci = m.group(1)
    try:
        san, _ = rules.apply_uci(board, uci)
    except IllegalMove as e:
        raise EngineDecodeFailure(f"Engine move {uci!r} rejected: {e}") from e
    return uci, san


class EngineGateway:
    """Serializes analysis requests against one shared engine process.

    Must be used from a single event loop. analyse() returns the raw `bestmove`
    line; best_move() additionally decodes it to SAN. Neither retries.
    """

    def __init__(self, settings: Settings, process_factory: Optional[ProcessFactory] = None):
        self.settings = settings
        self.depth = settings.stockfish_depth
        self.timeout_s = settings.stockfish_timeout_s
        self._factory = process_factory or self._spawn_default
        self._process: Optional[UciProcess] = None
        self._reader: Optional[asyncio.Task] = None
        self._handshake: Optional[asyncio.Future] = None
        self._start_lock = asyncio.Lock()
        self._queue: Deque[EngineRequest] = deque()
        self._current: Optional[EngineRequest] = None
        self._barriers = 0

    async def _spawn_default(self) -> UciProcess:
        return await UciProcess.spawn(resolve_engine_path(self.settings.stockfish_path))

    # ---------------- State -----------------
    @property
    def state(self) -> GatewayState:
        if self._barriers:
            return GatewayState.DRAINING
        return GatewayState.BUSY if self._current is not None else GatewayState.IDLE

    @property
    def pending(self) -> int:
        """Requests waiting behind the in-flight one."""
        return len(self._queue)

    @property
    def running(self) -> bool:
        return self._process is not None

    # ---------------- Lifecycle -----------------
    async def start(self) -> None:
        """Spawn the engine and complete the UCI handshake. Idempotent."""
        async with self._start_lock:
            if self._process is not None:
                return
            try:
                proc = await self._factory()
            except OSError as e:
                raise EngineUnavailable(f"Failed launching engine: {e}") from e
            loop = asyncio.get_running_loop()
            self._process = proc
            self._handshake = loop.create_future()
            self._reader = asyncio.create_task(self._read_loop(proc))
            self._send("uci")
            try:
                await asyncio.wait_for(asyncio.shield(self._handshake), self.settings.stockfish_handshake_timeout_s)
            except asyncio.TimeoutError:
                log.error("Engine handshake timed out")
                await self._shutdown(EngineUnavailable("engine handshake timed out"))
                raise EngineUnavailable("engine handshake timed out") from None
            log.info("Engine ready (depth=%d, timeout=%.1fs)", self.depth, self.timeout_s)

    async def close(self) -> None:
        await self._shutdown(EngineUnavailable("engine gateway closed"))

    async def _shutdown(self, reason: Exception) -> None:
        proc, self._process = self._process, None
        reader, self._reader = self._reader, None
        self._fail_all(reason)
        if proc is not None:
            try:
                proc.send("quit")
            except (OSError, RuntimeError):
                log.debug("Engine stdin already closed")
            await proc.close()
        if reader is not None and not reader.done():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

    def _fail_all(self, reason: Exception) -> None:
        if self._handshake is not None and not self._handshake.done():
            self._handshake.set_exception(reason)
            # retrieved by start(); avoid "exception never retrieved" if nobody awaits
            self._handshake.exception()
        pending = list(self._queue)
        if self._current is not None:
            pending.insert(0, self._current)
        self._queue.clear()
        self._current = None
        self._barriers = 0
        for req in pending:
            if req.timer:
                req.timer.cancel()
            if not req.future.done():
                req.future.set_exception(reason)

    # ---------------- Requests -----------------
    async def analyse(self, fen: str, timeout: Optional[float] = None) -> str:
        """Queue a fixed-depth search of `fen` and return the raw `bestmove` line.

        Raises EngineTimeout if no answer arrives within `timeout` seconds of enqueue,
        EngineUnavailable if the process cannot be used.
        """
        await self.start()
        loop = asyncio.get_running_loop()
        timeout = self.timeout_s if timeout is None else timeout
        req = EngineRequest(fen=fen, future=loop.create_future(), enqueued_at=loop.time())
        req.timer = loop.call_later(timeout, self._expire, req, timeout)
        self._queue.append(req)
        self._process_queue()
        try:
            return await req.future
        except asyncio.CancelledError:
            self._release(req)
            raise

    async def best_move(self, board: chess.Board, timeout: Optional[float] = None) -> str:
        raw = await self.analyse(board.fen(), timeout=timeout)
        uci, san = decode_best_move(raw, board)
        log.debug("Engine move %s (%s) for %s", san, uci, board.fen())
        return san

    def _process_queue(self) -> None:
        if self._current is not None or self._process is None:
            return
        while self._queue:
            req = self._queue.popleft()
            if req.future.done():
                continue
            self._dispatch(req)
            return

    def _dispatch(self, req: EngineRequest) -> None:
        self._current = req
        req.dispatched_at = asyncio.get_running_loop().time()
        self._barriers += 1
        self._send("ucinewgame")
        self._send("isready")
        self._send(f"position fen {req.fen}")
        self._send(f"go depth {self.depth}")

    def _finish(self, req: EngineRequest, raw: str) -> None:
        if req.timer:
            req.timer.cancel()
        self._current = None
        if not req.future.done():
            req.future.set_result(raw)
        self._process_queue()

    def _release(self, req: EngineRequest) -> None:
        """Drop `req` without an answer: dequeue it, or abort it if in flight."""
        if req.timer:
            req.timer.cancel()
        if self._current is req:
            self._current = None
            self._send("stop")
            self._process_queue()
            return
        try:
            self._queue.remove(req)
        except ValueError:
            pass

    def _expire(self, req: EngineRequest, timeout: float) -> None:
        if req.future.done():
            return
        in_flight = self._current is req
        self._release(req)
        log.warning("Engine request timed out after %.2fs (in_flight=%s, fen=%s)", timeout, in_flight, req.fen)
        req.future.set_exception(EngineTimeout(f"engine timeout after {timeout:.2f}s"))

    def _send(self, line: str) -> None:
        if self._process is None:
            return
        try:
            self._process.send(line)
        except (OSError, RuntimeError) as e:
            log.error("Failed writing %r to engine: %s", line, e)

    # ---------------- Output -----------------
    async def _read_loop(self, proc: UciProcess) -> None:
        try:
            while True:
                line = await proc.readline()
                if line is None:
                    break
                self._on_line(line)
        except Exception:
            log.exception("Engine reader failed")
        if self._process is proc:
            log.error("Engine process exited unexpectedly")
            self._process = None
            self._reader = None
            self._fail_all(EngineUnavailable("engine process exited"))
            await proc.close()

    def _on_line(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        log.debug("<< %s", line)
        if self._handshake is not None and not self._handshake.done():
            if line == "uciok":
                self._handshake.set_result(None)
            return
        if line == "readyok":
            if self._barriers:
                self._barriers -= 1
            return
        if self._barriers:
            if line.startswith("bestmove"):
                log.debug("Discarding stale engine answer: %s", line)
            return
        if line.startswith("bestmove") and self._current is not None:
            self._finish(self._current, line)
