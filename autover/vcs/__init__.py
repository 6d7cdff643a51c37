"""VCS access: the backend port, the git adapter, and bounded execution."""

from .backend import VcsBackend
from .executor import BoundedBackend
from .git import GitBackend

__all__ = ["BoundedBackend", "GitBackend", "VcsBackend"]
