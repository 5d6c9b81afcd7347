# core/scheduler.py
import asyncio
from typing import Callable, Optional, Protocol

from flashdeck.core.log_manager import logger


class TaskHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Something that can run a callback once after `delay_ms` milliseconds."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TaskHandle: ...


class AsyncioScheduler:
    """
    Schedules callbacks on the running asyncio loop (NiceGUI's loop).
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TaskHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_ms / 1000, callback)


class Debouncer:
    """
    Owns at most one pending scheduled task. Re-arming cancels the previous
    task, so a superseded callback can never fire.
    """

    def __init__(self, scheduler: Scheduler, delay_ms: int, name: str = "debounce"):
        self._scheduler = scheduler
        self.delay_ms = delay_ms
        self.name = name
        self._handle: Optional[TaskHandle] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def generation(self) -> int:
        return self._generation

    def schedule(self, callback: Callable[[], None]) -> int:
        """
        Arms the timer. Returns the generation number of this invocation.
        """
        self.cancel()
        self._generation += 1
        generation = self._generation

        def fire():
            if generation != self._generation:
                logger.debug(f"[{self.name}] dropping superseded invocation #{generation}")
                return
            self._handle = None
            callback()

        self._handle = self._scheduler.call_later(self.delay_ms, fire)
        return generation

    def cancel(self) -> bool:
        """Cancels the pending invocation, if any. Returns True if one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        # Bump so a timer that fires despite cancel() is still discarded
        self._generation += 1
        return True
