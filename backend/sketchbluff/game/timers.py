from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Protocol


logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def _spawn_thread(target: Callable[..., Any]) -> Any:
    th = threading.Thread(target=target, daemon=True)
    th.start()
    return th


class PhaseTimer:
    """One-shot delayed callback that can be cancelled before it fires.

    `spawn` and `sleep` default to plain threads; the realtime layer passes
    `socketio.start_background_task` / `socketio.sleep` so the timer cooperates
    with whichever async mode Socket.IO runs under.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        spawn: Callable[[Callable[..., Any]], Any] | None = None,
        sleep: Callable[[float], Any] | None = None,
    ) -> None:
        self.delay = delay
        self.callback = callback
        self._spawn = spawn or _spawn_thread
        self._sleep = sleep or time.sleep
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> "PhaseTimer":
        self._spawn(self._run)
        return self

    def cancel(self) -> None:
        self._cancelled.set()

    def _run(self) -> None:
        self._sleep(self.delay)
        if self._cancelled.is_set():
            return
        try:
            self.callback()
        except Exception:
            logger.exception("[timer-error] callback failed after %ss", self.delay)


def thread_timer_factory(delay: float, callback: Callable[[], None]) -> PhaseTimer:
    return PhaseTimer(delay, callback).start()


def socketio_timer_factory(socketio: Any) -> TimerFactory:
    def factory(delay: float, callback: Callable[[], None]) -> PhaseTimer:
        return PhaseTimer(
            delay,
            callback,
            spawn=socketio.start_background_task,
            sleep=socketio.sleep,
        ).start()

    return factory
