from __future__ import annotations

import logging
import threading
from typing import Callable


logger = logging.getLogger(__name__)


class PeriodicWorker:
    """Runs ``task`` every ``interval_seconds`` on a daemon thread until stopped."""

    def __init__(self, name: str, *, interval_seconds: float, task: Callable[[], object]):
        self.name = name
        self._interval_seconds = interval_seconds
        self._task = task
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self._interval_seconds):
            try:
                self._task()
            except Exception:  # noqa: BLE001
                logger.exception("background: task failed worker=%s", self.name)
