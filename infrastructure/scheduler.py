"""Background timers for the maintenance jobs"""
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from application.maintenance import MaintenanceService

logger = logging.getLogger(__name__)


def seconds_until_midnight(now: Optional[datetime] = None) -> float:
    now = now or datetime.now()
    midnight = datetime.combine(now.date() + timedelta(days=1), datetime.min.time())
    return max((midnight - now).total_seconds(), 1.0)


class PeriodicTask:
    """Runs ``job`` on a daemon thread; ``next_delay`` gives the wait before each run"""

    def __init__(self, name: str, job: Callable[[], object], next_delay: Callable[[], float]):
        self.name = name
        self.job = job
        self.next_delay = next_delay
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self.next_delay()):
            try:
                self.job()
            except Exception:
                logger.exception("Maintenance task '%s' failed", self.name)


class MaintenanceScheduler:
    """Starts the stale sweep and the midnight reset"""

    def __init__(self, maintenance: MaintenanceService, sweep_interval_seconds: float = 300.0):
        self.tasks: List[PeriodicTask] = [
            PeriodicTask(
                "reservation-sweep",
                maintenance.sweep_expired,
                lambda: sweep_interval_seconds
            ),
            PeriodicTask(
                "daily-reset",
                maintenance.daily_reset,
                seconds_until_midnight
            ),
        ]

    def start(self) -> None:
        for task in self.tasks:
            task.start()
        logger.info("Maintenance timers started")

    def stop(self) -> None:
        for task in self.tasks:
            task.stop()
        logger.info("Maintenance timers stopped")
