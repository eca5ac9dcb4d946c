import asyncio
import logging
from typing import Optional

from .dispatcher import DispatchSummary, NotificationDispatcher

logger = logging.getLogger(__name__)


class DispatchScheduler:
    """Runs the dispatch tick every ``interval_seconds`` as a background task.

    The tick itself is blocking (database + SMTP), so it runs in a worker
    thread and the event loop keeps serving requests. A tick that is still
    running when the next one is due is not started twice, and ``stop()``
    waits up to ``shutdown_timeout`` seconds for it before returning.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        interval_seconds: float = 60,
        shutdown_timeout: float = 30,
    ):
        self.dispatcher = dispatcher
        self.interval_seconds = interval_seconds
        self.shutdown_timeout = shutdown_timeout
        self.running = False
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None
        self._current: Optional[asyncio.Future] = None

    def start(self) -> None:
        if self._task and not self._task.done():
            logger.info("⚠️ [Scheduler] Already running - skipping duplicate start")
            return
        self.running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(f"⏰ [Scheduler] Dispatching every {self.interval_seconds}s")

    async def stop(self) -> None:
        self.running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self._drain()
        logger.info("🛑 [Scheduler] Stopped")

    async def _drain(self) -> None:
        # Cancelling the loop does not stop the worker thread
        current = self._current
        if current is None or current.done():
            return
        logger.info("⏳ [Scheduler] Waiting for in-flight tick to finish")
        try:
            await asyncio.wait_for(asyncio.shield(current), timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"⚠️ [Scheduler] In-flight tick still running after {self.shutdown_timeout}s")
        except Exception as e:
            logger.error(f"❌ [Scheduler] In-flight tick crashed during shutdown: {e!r}")

    async def tick(self) -> Optional[DispatchSummary]:
        if self._current is not None and not self._current.done():
            logger.info("⚠️ [Scheduler] Previous tick still running - skipping")
            return None
        self._current = asyncio.ensure_future(asyncio.to_thread(self.dispatcher.run_tick))
        try:
            return await asyncio.shield(self._current)
        except Exception as e:
            logger.error(f"❌ [Scheduler] Tick crashed: {e!r}")
            return None
        finally:
            self.ticks += 1

    async def _loop(self) -> None:
        while self.running:
            await self.tick()
            await asyncio.sleep(self.interval_seconds)
