"""
File system watcher feeding the change-risk responder.

- Watchdog-based monitoring of the configured directories
- Debounced: an editor save cycle produces one change, not three
- Created-then-deleted before flush produces nothing
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .config import EngineConfig
from .models import FileChange, FileStatus, TestEscalation
from .responder import ChangeRiskResponder
from .status import ComponentStatus, StatusReporting

logger = logging.getLogger(__name__)


class PendingChange:
    """A change waiting out the debounce window."""

    def __init__(self, status: FileStatus, timestamp: float):
        self.status = status
        self.timestamp = timestamp


class ChangeEventHandler(FileSystemEventHandler, StatusReporting):
    """
    Turns file system events under the watched directories into FileChange
    notifications and hands them to the responder.
    """

    DEBOUNCE_SECONDS = 1.0

    def __init__(
        self,
        repo_path: Path,
        responder: ChangeRiskResponder,
        config: EngineConfig | None = None,
        on_escalation: Callable[[TestEscalation], None] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__()
        self.repo_path = Path(repo_path).resolve()
        self.responder = responder
        self.config = config or EngineConfig()
        self.on_escalation = on_escalation
        self.clock = clock

        self._lock = threading.Lock()
        self.pending: dict[str, PendingChange] = {}
        self.emitted = 0

    def _relative(self, path: str) -> str | None:
        """Repo-relative posix path, or None if outside the watched directories."""
        p = Path(path)
        try:
            rel = p.resolve().relative_to(self.repo_path) if p.is_absolute() else p
        except ValueError:
            return None
        parts = rel.parts
        if not parts or any(part.startswith(".") for part in parts):
            return None
        if parts[0] not in self.config.watch_dirs:
            return None
        return rel.as_posix()

    def _queue(self, path: str, status: FileStatus) -> None:
        rel = self._relative(path)
        if rel is None:
            return
        now = self.clock()
        with self._lock:
            current = self.pending.get(rel)
            if current is not None:
                if current.status == FileStatus.ADDED and status == FileStatus.DELETED:
                    del self.pending[rel]
                    return
                if current.status == FileStatus.ADDED and status == FileStatus.MODIFIED:
                    # Still a creation; just push the window out
                    current.timestamp = now
                    return
            self.pending[rel] = PendingChange(status, now)

    def flush_pending(self) -> list[TestEscalation]:
        """Escalate every change that has passed the debounce window."""
        now = self.clock()
        ready: list[FileChange] = []
        with self._lock:
            for rel, pending in list(self.pending.items()):
                if now - pending.timestamp >= self.DEBOUNCE_SECONDS:
                    ready.append(FileChange(path=rel, status=pending.status))
                    del self.pending[rel]

        escalations = []
        for change in ready:
            logger.debug("Change settled: %s (%s)", change.path, change.status.value)
            escalations.extend(self.responder.escalate_changes([change]))
        self.emitted += len(escalations)

        if self.on_escalation:
            for escalation in escalations:
                self.on_escalation(escalation)
        return escalations

    def on_created(self, event: FileCreatedEvent) -> None:
        if not event.is_directory:
            self._queue(event.src_path, FileStatus.ADDED)

    def on_modified(self, event: FileModifiedEvent) -> None:
        if not event.is_directory:
            self._queue(event.src_path, FileStatus.MODIFIED)

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if not event.is_directory:
            self._queue(event.src_path, FileStatus.DELETED)

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        self._queue(event.src_path, FileStatus.DELETED)
        self._queue(event.dest_path, FileStatus.ADDED)

    def get_status(self) -> ComponentStatus:
        with self._lock:
            pending = len(self.pending)
        return ComponentStatus(
            name="file-watcher",
            healthy=True,
            details={"pending": pending, "escalated": self.emitted, "watch_dirs": list(self.config.watch_dirs)},
        )


def watch_repository(
    repo_path: Path,
    responder: ChangeRiskResponder,
    config: EngineConfig | None = None,
    on_escalation: Callable[[TestEscalation], None] | None = None,
) -> tuple[Observer, ChangeEventHandler]:
    """
    Start watching the configured directories of a repository.

    Returns:
        Tuple of (observer, handler). Caller should call observer.stop() to stop watching.
    """
    cfg = config or EngineConfig()
    repo = Path(repo_path).resolve()
    handler = ChangeEventHandler(repo, responder, cfg, on_escalation=on_escalation)

    observer = Observer()
    scheduled = 0
    for name in cfg.watch_dirs:
        directory = repo / name
        if directory.is_dir():
            observer.schedule(handler, str(directory), recursive=True)
            scheduled += 1
        else:
            logger.debug("Watch directory %s does not exist, skipping", directory)
    if not scheduled:
        logger.warning("None of %s exist under %s; nothing to watch", ", ".join(cfg.watch_dirs), repo)
    observer.start()

    return observer, handler


def run_watch_loop(
    repo_path: Path,
    responder: ChangeRiskResponder,
    config: EngineConfig | None = None,
    on_escalation: Callable[[TestEscalation], None] | None = None,
    stop_event: threading.Event | None = None,
) -> None:
    """Block, flushing settled changes, until interrupted or ``stop_event`` is set."""
    observer, handler = watch_repository(repo_path, responder, config, on_escalation)
    stop = stop_event or threading.Event()

    try:
        while not stop.wait(0.5):
            handler.flush_pending()
    except KeyboardInterrupt:
        pass
    finally:
        observer.stop()
        observer.join()
