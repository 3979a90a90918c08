"""
Interval scheduler with a single-cycle guard.

A trigger that arrives while a cycle is running is dropped, not queued.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Set

from core.entities import CycleState

logger = logging.getLogger(__name__)


@dataclass
class SchedulerContext:
    state: CycleState = CycleState.IDLE
    cycles_run: int = 0
    skipped_triggers: int = 0

    @property
    def is_running(self) -> bool:
        return self.state is CycleState.RUNNING

    def reset(self) -> None:
        self.state = CycleState.IDLE
        self.cycles_run = 0
        self.skipped_triggers = 0


class Scheduler:
    def __init__(
        self,
        run_cycle: Callable[[], Awaitable[Any]],
        interval_seconds: float = 60.0,
        context: Optional[SchedulerContext] = None,
    ):
        self.run_cycle = run_cycle
        self.interval_seconds = interval_seconds
        self.context = context or SchedulerContext()
        self._stop = asyncio.Event()
        self._tasks: Set[asyncio.Task] = set()

    async def trigger(self) -> bool:
        """
        Run one cycle unless one is already running.
        Returns False when the trigger was skipped.
        """
        if self.context.is_running:
            self.context.skipped_triggers += 1
            logger.info("Previous news check still running, skipping this trigger")
            return False

        self.context.state = CycleState.RUNNING
        try:
            await self.run_cycle()
        except Exception as e:
            logger.exception(f"News check cycle failed: {e}")
        finally:
            self.context.cycles_run += 1
            self.context.state = CycleState.IDLE
        return True

    def _spawn(self) -> None:
        task = asyncio.create_task(self.trigger())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run_forever(self) -> None:
        """Fire a trigger immediately and then every interval until stop()."""
        logger.info(f"Scheduler started, interval={self.interval_seconds}s")
        while not self._stop.is_set():
            self._spawn()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

        await self.wait_idle()
        logger.info("Scheduler stopped")

    def stop(self) -> None:
        self._stop.set()

    async def wait_idle(self) -> None:
        """Wait for the in-flight cycle, if any, to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
