# overlay/scheduler.py
"""
Gjentakende jobb i egen daemon-tråd.
Kjører jobben straks ved start, deretter hvert `interval` sekund til cancel().
Neste runde måles fra slutten av forrige, så en jobb overlapper aldri seg selv.
"""
from __future__ import annotations
import logging
import threading
from typing import Callable, Optional

__all__ = ["RepeatingTask"]

log = logging.getLogger(__name__)


class RepeatingTask:
    def __init__(self, interval: float, fn: Callable[[], object], name: str = "task") -> None:
        if interval <= 0:
            raise ValueError("interval må være > 0")
        self.interval = float(interval)
        self.fn = fn
        self.name = name
        self.runs = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def start(self) -> "RepeatingTask":
        if self._thread is not None:
            raise RuntimeError(f"{self.name} er allerede startet")
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        return self

    def cancel(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        t = self._thread
        if t is not None and timeout is not None and t is not threading.current_thread():
            t.join(timeout)

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.fn()
            except Exception:
                # Neste tick er implisitt nytt forsøk
                log.exception("Repeating task %s failed", self.name)
            self.runs += 1
            if self._stop.wait(self.interval):
                break
