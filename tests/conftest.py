"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from autover.config import EngineConfig
from autover.engine import VersioningEngine
from autover.errors import ConflictError, InputError, TransientError
from autover.models import CommitRecord, FileChange, FileStatus
from autover.vcs.backend import VcsBackend
from autover.versioning.ledger import JsonlLedgerStore, VersioningLedger
from autover.versioning.manifest import ManifestStore

COMMIT_TIME = "2026-01-01T12:00:00+00:00"


class FakeVcsBackend(VcsBackend):
    """In-memory repository: commits, tags and branches."""

    def __init__(self, available: bool = True):
        self.available = available
        self.commits: list[CommitRecord] = []  # oldest first
        self.tags: dict[str, tuple[str, str]] = {}  # name -> (hash, message)
        self.branches: dict[str, str] = {}
        self.fail_tags = False
        self.fail_branches = False

    def add_commit(
        self,
        commit_hash: str,
        message: str = "",
        changes: list[FileChange] | None = None,
        timestamp: str = COMMIT_TIME,
        author: str = "dev",
    ) -> CommitRecord:
        commit = CommitRecord(
            hash=commit_hash,
            author=author,
            message=message,
            timestamp=timestamp,
            file_changes=tuple(changes or ()),
        )
        self.commits.append(commit)
        return commit

    def is_repository(self) -> bool:
        return self.available

    def list_recent_commits(self, n: int) -> list[CommitRecord]:
        return list(reversed(self.commits))[:n]

    def get_commit(self, commit_hash: str) -> CommitRecord:
        for c in self.commits:
            if c.hash == commit_hash or c.hash.startswith(commit_hash):
                return c
        raise InputError(f"unknown revision {commit_hash}")

    def get_file_changes(self, commit_hash: str) -> list[FileChange]:
        return list(self.get_commit(commit_hash).file_changes)

    def tags_pointing_at(self, commit_hash: str) -> list[str]:
        return [name for name, (h, _) in self.tags.items() if h == commit_hash]

    def create_tag(self, name: str, message: str, commit_hash: str) -> None:
        if self.fail_tags:
            raise TransientError("tag write failed")
        if name in self.tags:
            raise ConflictError(f"tag '{name}' already exists")
        self.tags[name] = (commit_hash, message)

    def create_branch(self, name: str, commit_hash: str = "HEAD") -> None:
        if self.fail_branches:
            raise TransientError("branch write failed")
        if name in self.branches:
            raise ConflictError(f"branch '{name}' already exists")
        self.branches[name] = commit_hash


def added(path: str) -> FileChange:
    return FileChange(path=path, status=FileStatus.ADDED)


def modified(path: str) -> FileChange:
    return FileChange(path=path, status=FileStatus.MODIFIED)


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def backend() -> FakeVcsBackend:
    return FakeVcsBackend()


@pytest.fixture
def ledger(tmp_path: Path) -> VersioningLedger:
    """A fresh JSONL-backed ledger."""
    return VersioningLedger(JsonlLedgerStore(tmp_path / ".autover" / "versioning-ledger.jsonl"))


@pytest.fixture
def manifest(tmp_path: Path) -> ManifestStore:
    """package.json at version 1.2.3."""
    path = tmp_path / "package.json"
    path.write_text(json.dumps({"name": "demo", "version": "1.2.3"}, indent=2), encoding="utf-8")
    return ManifestStore(path)


@pytest.fixture
def engine(backend: FakeVcsBackend, ledger: VersioningLedger, manifest: ManifestStore, config: EngineConfig) -> VersioningEngine:
    return VersioningEngine(backend, ledger, manifest, config)
