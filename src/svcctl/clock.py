import logging
import threading
from collections.abc import Sequence
from datetime import datetime

logger = logging.getLogger(__name__)


class ClockService:
    """Demo service: prints the current time every tick until stopped."""

    def __init__(self, tick_seconds: float = 1.0) -> None:
        self._tick_seconds = tick_seconds
        self._stop_event = threading.Event()
        self.date = "Not executed yet"

    def start(self, args: Sequence[str]) -> None:
        self._stop_event.clear()
        logger.info("Clock started")
        while not self._stop_event.is_set():
            self.date = datetime.now().ctime()
            print(self.date, flush=True)
            self._stop_event.wait(self._tick_seconds)
        logger.info("Clock stopped")

    def stop(self, args: Sequence[str]) -> None:
        self._stop_event.set()

    def status(self, args: Sequence[str]) -> str:
        return self.date
