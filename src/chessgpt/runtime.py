"""
Background event loop for synchronous callers.

Flask handles requests on worker threads, while the engine gateway must live on
one event loop. LoopThread runs that loop on a daemon thread; run() submits a
coroutine from any thread and blocks until it finishes.
"""
from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Coroutine, Optional, TypeVar

log = logging.getLogger("runtime")

T = TypeVar("T")


class LoopThread:
    def __init__(self, name: str = "chessgpt-loop"):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def run(self, coro: Coroutine[Any, Any, T], timeout: Optional[float] = None) -> T:
        fut = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return fut.result(timeout)
        except concurrent.futures.TimeoutError:
            fut.cancel()
            raise

    def stop(self) -> None:
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join()
        self.loop.close()
        log.debug("Event loop thread stopped")
