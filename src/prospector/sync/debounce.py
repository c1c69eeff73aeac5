"""Trailing-edge debouncer on the running asyncio loop."""

from __future__ import annotations

import asyncio
from typing import Any, Callable


class Debouncer:
    """Coalesces repeated ``schedule()`` calls into one callback run.

    ``flush()`` cancels the timer and runs the callback now, returning
    whatever the callback returns (the synchronizer's flush task).
    """

    def __init__(self, callback: Callable[[], Any], delay: float) -> None:
        self._callback = callback
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        """(Re)start the timer."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> Any:
        self.cancel()
        return self._callback()

    def _fire(self) -> None:
        self._handle = None
        self._callback()
