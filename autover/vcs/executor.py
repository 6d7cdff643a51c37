"""
Bounded execution of VCS calls.

Git calls block on a subprocess. BoundedBackend runs every call on a small
thread pool and waits with a timeout, so one hung git process cannot stall
the caller's thread (e.g. a scheduler tick that also services health checks).
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, TypeVar

from ..errors import AutoverError, TransientError
from ..models import CommitRecord, FileChange
from .backend import VcsBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BoundedBackend(VcsBackend):
    """Delegates to ``inner`` through a bounded worker pool."""

    def __init__(self, inner: VcsBackend, max_workers: int = 2, timeout: float = 30.0):
        self.inner = inner
        self.timeout = timeout
        self._pool = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="autover-vcs")

    def _call(self, name: str, fn: Callable[..., T], *args: Any) -> T:
        future = self._pool.submit(fn, *args)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout as e:
            future.cancel()
            raise TransientError(f"VCS call {name} exceeded {self.timeout}s", {"call": name}) from e
        except AutoverError:
            raise
        except OSError as e:
            raise TransientError(f"VCS call {name} failed: {e}", {"call": name}) from e

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False)

    def is_repository(self) -> bool:
        return self._call("is_repository", self.inner.is_repository)

    def list_recent_commits(self, n: int) -> list[CommitRecord]:
        return self._call("list_recent_commits", self.inner.list_recent_commits, n)

    def get_commit(self, commit_hash: str) -> CommitRecord:
        return self._call("get_commit", self.inner.get_commit, commit_hash)

    def get_file_changes(self, commit_hash: str) -> list[FileChange]:
        return self._call("get_file_changes", self.inner.get_file_changes, commit_hash)

    def tags_pointing_at(self, commit_hash: str) -> list[str]:
        return self._call("tags_pointing_at", self.inner.tags_pointing_at, commit_hash)

    def create_tag(self, name: str, message: str, commit_hash: str) -> None:
        self._call("create_tag", self.inner.create_tag, name, message, commit_hash)

    def create_branch(self, name: str, commit_hash: str = "HEAD") -> None:
        self._call("create_branch", self.inner.create_branch, name, commit_hash)
