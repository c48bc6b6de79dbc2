"""Cancellable background tick that drives periodic metric updates."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger("earshot.sampler")


class PeriodicSampler:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread until stopped."""

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "earshot-sampler"):
        self.interval = interval
        self._callback = callback
        self._name = name
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop.set()
        if thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None

    def _loop(self) -> None:
        logger.debug("Sampler started (interval=%ss)", self.interval)
        while not self._stop.wait(self.interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Periodic metrics update failed")
        logger.debug("Sampler stopped")
