"""Per-connection sequential message dispatcher."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[], Awaitable[None]]
ErrorCallback = Callable[[Exception], Awaitable[None]]

_STOP = object()


class SequentialDispatcher:
    """
    Runs submitted handlers one at a time, in submission order.

    Handler k+1 starts only after handler k has finished, whether it
    returned or raised. A failing handler is logged and reported through
    ``on_error``, then the next one runs. An exception with a truthy
    ``fatal`` attribute stops the dispatcher instead: pending handlers are
    dropped and ``run()`` returns, leaving the exception in ``failure``.

    Usage:
        dispatcher = SequentialDispatcher("conn-1")
        worker = asyncio.create_task(dispatcher.run())
        dispatcher.submit(lambda: handle(message))
    """

    def __init__(self, name: str = "", on_error: Optional[ErrorCallback] = None):
        self.name = name
        self.on_error = on_error
        self.failure: Optional[BaseException] = None
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, handler: Handler) -> bool:
        """
        Queue a handler.

        Returns:
            False if the dispatcher is closed and the handler was dropped
        """
        if self._closed:
            logger.debug(f"Dispatcher {self.name} closed, dropping handler")
            return False
        self._queue.put_nowait(handler)
        return True

    def close(self) -> None:
        """Stop after the handlers already queued have run."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_STOP)

    async def join(self) -> None:
        """Wait until every queued handler has finished."""
        await self._queue.join()

    async def run(self) -> None:
        """Drain the queue until closed or stopped by a fatal error."""
        while True:
            handler = await self._queue.get()
            try:
                if handler is _STOP:
                    return
                await handler()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if getattr(e, "fatal", False):
                    logger.info(f"Dispatcher {self.name} stopped: {e}")
                    self.failure = e
                    self._abort()
                    return
                logger.error(f"Handler failed on {self.name}: {e}", exc_info=True)
                await self._report(e)
            finally:
                self._queue.task_done()

    async def _report(self, error: Exception) -> None:
        if self.on_error is None:
            return
        try:
            await self.on_error(error)
        except Exception as e:
            logger.warning(f"Could not report failure on {self.name}: {e}")

    def _abort(self) -> None:
        self._closed = True
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
