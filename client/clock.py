"""Timers for the animation engines.

Engines never touch the event loop directly: they schedule through a
:class:`TimerGroup`, which owns every pending handle so a teardown can cancel
all of them at once.
"""
import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class AnimationClock(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopClock:
    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(max(delay, 0.0), callback)


class TimerGroup:
    def __init__(self, clock: AnimationClock) -> None:
        self.clock = clock
        self._handles: set[TimerHandle] = set()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle: TimerHandle | None = None

        def fire() -> None:
            self._handles.discard(handle)
            callback()

        handle = self.clock.call_later(delay, fire)
        self._handles.add(handle)
        return handle

    def cancel_all(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

    def __len__(self) -> int:
        return len(self._handles)
