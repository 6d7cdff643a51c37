"""Git implementation of the VCS backend port (blocking subprocess calls)."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from ..errors import AutoverError, ConfigurationError, ConflictError, InputError, TransientError
from ..models import CommitRecord, FileChange, FileStatus
from .backend import VcsBackend

logger = logging.getLogger(__name__)

# Field and record separators for --format output
_FS = "\x1f"
_RS = "\x1e"
_COMMIT_FORMAT = f"%H{_FS}%an{_FS}%aI{_FS}%s{_RS}"

_INPUT_MARKERS = (
    "unknown revision",
    "bad object",
    "bad revision",
    "ambiguous argument",
    "needed a single revision",
    "not a valid object name",
)


class GitBackend(VcsBackend):
    """Runs ``git -C <repo>`` with a per-call timeout."""

    def __init__(self, repo_path: Path, timeout: float = 30.0):
        self.repo_path = Path(repo_path).resolve()
        self.timeout = timeout

    def _run(self, *args: str) -> str:
        cmd = ["git", "-C", str(self.repo_path), *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ConfigurationError("git executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise TransientError(
                f"git {args[0]} timed out after {self.timeout}s",
                {"command": " ".join(args)},
            ) from e

        if result.returncode != 0:
            raise self._classify_failure(args, result.stderr.strip())
        return result.stdout

    def _classify_failure(self, args: tuple[str, ...], stderr: str) -> AutoverError:
        context = {"command": " ".join(args), "stderr": stderr}
        lowered = stderr.lower()
        if "not a git repository" in lowered:
            return ConfigurationError(f"{self.repo_path} is not a git repository", context)
        if "already exists" in lowered:
            return ConflictError(stderr or f"git {args[0]}: already exists", context)
        if any(marker in lowered for marker in _INPUT_MARKERS):
            return InputError(stderr or f"git {args[0]}: bad revision", context)
        return TransientError(stderr or f"git {args[0]} failed", context)

    # --- Queries ---

    def is_repository(self) -> bool:
        try:
            self._run("rev-parse", "--git-dir")
            return True
        except AutoverError as e:
            logger.debug("Repository check failed: %s", e)
            return False

    def _parse_commits(self, raw: str) -> list[CommitRecord]:
        commits = []
        for record in raw.split(_RS):
            record = record.strip("\n")
            if not record:
                continue
            parts = record.split(_FS)
            if len(parts) < 4:
                logger.debug("Skipping unparseable commit record: %r", record)
                continue
            commit_hash, author, timestamp, message = parts[0], parts[1], parts[2], parts[3]
            commits.append(
                CommitRecord(
                    hash=commit_hash.strip(),
                    author=author,
                    message=message,
                    timestamp=timestamp,
                )
            )
        return commits

    def list_recent_commits(self, n: int) -> list[CommitRecord]:
        try:
            raw = self._run("log", f"-n{int(n)}", f"--format={_COMMIT_FORMAT}")
        except TransientError as e:
            # A repository without commits is not a failure
            if "does not have any commits" in e.message:
                return []
            raise
        return self._parse_commits(raw)

    def get_commit(self, commit_hash: str) -> CommitRecord:
        raw = self._run("show", "-s", f"--format={_COMMIT_FORMAT}", commit_hash, "--")
        commits = self._parse_commits(raw)
        if not commits:
            raise InputError(f"Could not read commit {commit_hash}", {"commit_hash": commit_hash})
        c = commits[0]
        return CommitRecord(
            hash=c.hash,
            author=c.author,
            message=c.message,
            timestamp=c.timestamp,
            file_changes=tuple(self.get_file_changes(c.hash)),
        )

    def get_file_changes(self, commit_hash: str) -> list[FileChange]:
        # Merges are diffed against their first parent, i.e. what the merge brought in
        base = ("diff-tree", "--root", "-r", "-m", "--first-parent", "--no-commit-id", "--no-renames")
        statuses = self._run(*base, "--name-status", commit_hash)
        numstat = self._run(*base, "--numstat", commit_hash)

        lines: dict[str, tuple[int, int]] = {}
        for line in numstat.splitlines():
            parts = line.split("\t")
            if len(parts) < 3:
                continue
            added, removed, path = parts[0], parts[1], parts[2]
            # Binary files report "-"
            lines[path] = (
                int(added) if added.isdigit() else 0,
                int(removed) if removed.isdigit() else 0,
            )

        changes = []
        for line in statuses.splitlines():
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            status, path = parts[0], parts[-1]
            added, removed = lines.get(path, (0, 0))
            changes.append(
                FileChange(
                    path=path,
                    status=FileStatus.from_git(status),
                    lines_added=added,
                    lines_removed=removed,
                )
            )
        return changes

    def tags_pointing_at(self, commit_hash: str) -> list[str]:
        raw = self._run("tag", "--points-at", commit_hash)
        return [t.strip() for t in raw.splitlines() if t.strip()]

    # --- Writes ---

    def create_tag(self, name: str, message: str, commit_hash: str) -> None:
        self._run("tag", "-a", name, "-m", message, commit_hash)
        logger.info("Created tag %s at %s", name, commit_hash[:12])

    def create_branch(self, name: str, commit_hash: str = "HEAD") -> None:
        self._run("branch", name, commit_hash)
        logger.info("Created branch %s at %s", name, commit_hash[:12])
