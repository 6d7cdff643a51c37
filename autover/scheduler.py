"""Named periodic tasks on daemon threads with explicit start/stop."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable

from .errors import AutoverError
from .status import ComponentStatus, StatusReporting

logger = logging.getLogger(__name__)

SCAN_TASK = "scan-commits"
HEALTH_TASK = "health-check"


class PeriodicTask(StatusReporting):
    """Runs ``fn`` every ``interval`` seconds until stopped.

    A tick that fires while the previous run is still in flight is skipped
    and counted. Errors are logged and the loop keeps going.
    """

    def __init__(self, name: str, interval: float, fn: Callable[[], object], run_immediately: bool = False):
        self.name = name
        self.interval = interval
        self.fn = fn
        self.run_immediately = run_immediately

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._in_flight_lock = threading.Lock()
        self._in_flight = False

        self.runs = 0
        self.failures = 0
        self.skipped_ticks = 0
        self.last_run: float | None = None
        self.last_error: str | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=f"autover-{self.name}", daemon=True)
        self._thread.start()
        logger.debug("Started task %s (every %ss)", self.name, self.interval)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Task %s did not exit within %ss", self.name, timeout)
        self._thread = None

    def _loop(self) -> None:
        if self.run_immediately:
            self.tick()
        while not self._stop_event.wait(self.interval):
            self._dispatch()

    def _dispatch(self) -> None:
        # Each tick gets its own thread so a slow run is observed as in flight
        threading.Thread(target=self.tick, name=f"autover-{self.name}-tick", daemon=True).start()

    def tick(self) -> bool:
        """Run once unless a previous run is still going. Returns True if it ran."""
        with self._in_flight_lock:
            if self._in_flight:
                self.skipped_ticks += 1
                logger.debug("Task %s still running; tick skipped", self.name)
                return False
            self._in_flight = True

        try:
            self.fn()
            self.runs += 1
            self.last_error = None
        except AutoverError as e:
            self.failures += 1
            self.last_error = str(e)
            if e.retryable:
                logger.warning("Task %s failed (will retry next tick): %s", self.name, e)
            else:
                logger.error("Task %s failed (needs intervention): %s", self.name, e)
        except Exception as e:
            self.failures += 1
            self.last_error = repr(e)
            logger.exception("Task %s crashed", self.name)
        finally:
            self.last_run = time.time()
            with self._in_flight_lock:
                self._in_flight = False
        return True

    def get_status(self) -> ComponentStatus:
        return ComponentStatus(
            name=f"task:{self.name}",
            healthy=self.last_error is None,
            details={
                "running": self.running,
                "interval": self.interval,
                "runs": self.runs,
                "failures": self.failures,
                "skipped_ticks": self.skipped_ticks,
                "last_error": self.last_error,
            },
        )


class Scheduler(StatusReporting):
    def __init__(self) -> None:
        self.tasks: dict[str, PeriodicTask] = {}

    def add(self, name: str, interval: float, fn: Callable[[], object], run_immediately: bool = False) -> PeriodicTask:
        if name in self.tasks:
            raise ValueError(f"Task already registered: {name}")
        task = PeriodicTask(name, interval, fn, run_immediately=run_immediately)
        self.tasks[name] = task
        return task

    def start(self) -> None:
        for task in self.tasks.values():
            task.start()
        logger.info("Scheduler started: %s", ", ".join(self.tasks) or "(no tasks)")

    def stop(self) -> None:
        for task in self.tasks.values():
            task.stop()
        logger.info("Scheduler stopped")

    def get_status(self) -> ComponentStatus:
        statuses = [t.get_status() for t in self.tasks.values()]
        return ComponentStatus(
            name="scheduler",
            healthy=all(s.healthy for s in statuses),
            details={s.name: s.details for s in statuses},
        )


def health_check(components: Iterable[StatusReporting]) -> list[ComponentStatus]:
    """Collect and log the status of every component."""
    statuses = []
    for component in components:
        status = component.get_status()
        statuses.append(status)
        if status.healthy:
            logger.debug("%s healthy: %s", status.name, status.details)
        else:
            logger.warning("%s unhealthy: %s", status.name, status.details)
    return statuses


def scan_commits(engine) -> list:
    """One scan tick.

    Per-commit failures stay on their results. A failed commit listing or a
    disabled engine is raised so the task logs it by category and reports
    itself unhealthy.
    """
    results = engine.scan_recent()
    for result in results:
        if result.commit_hash is None and result.error is not None:
            raise result.error
    return results


def build_scheduler(engine, components: Iterable[StatusReporting] = ()) -> Scheduler:
    """Register the scan-commits and health-check tasks for an engine."""
    scheduler = Scheduler()
    watched = [engine, *components, scheduler]
    scheduler.add(SCAN_TASK, engine.config.scan_interval, lambda: scan_commits(engine), run_immediately=True)
    scheduler.add(HEALTH_TASK, engine.config.health_interval, lambda: health_check(watched))
    return scheduler
