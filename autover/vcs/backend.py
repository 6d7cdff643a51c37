"""
VCS backend port.

The classifiers and the decision engine never talk to git directly; the
engine reaches the repository only through this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import CommitRecord, FileChange


class VcsBackend(ABC):
    @abstractmethod
    def is_repository(self) -> bool:
        """True if the backend points at a usable repository."""
        ...

    @abstractmethod
    def list_recent_commits(self, n: int) -> list[CommitRecord]:
        """Most recent ``n`` commits, newest first, without file changes."""
        ...

    @abstractmethod
    def get_commit(self, commit_hash: str) -> CommitRecord:
        """One commit including its file changes."""
        ...

    @abstractmethod
    def get_file_changes(self, commit_hash: str) -> list[FileChange]:
        ...

    @abstractmethod
    def tags_pointing_at(self, commit_hash: str) -> list[str]:
        ...

    @abstractmethod
    def create_tag(self, name: str, message: str, commit_hash: str) -> None:
        ...

    @abstractmethod
    def create_branch(self, name: str, commit_hash: str = "HEAD") -> None:
        ...
