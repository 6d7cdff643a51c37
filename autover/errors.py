"""Error taxonomy for the versioning engine.

Every failure is classified into one of four categories:

    configuration - no repository / backend, invalid settings
    input         - malformed commit data or version strings
    conflict      - duplicate tag, branch, or finalized ledger entry
    transient     - subprocess failure or timeout

Only transient errors are worth retrying on the next scheduler tick; the
others will not change without outside intervention.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    INPUT = "input"
    CONFLICT = "conflict"
    TRANSIENT = "transient"


class AutoverError(Exception):
    """Base exception with a category and structured context."""

    category: ErrorCategory = ErrorCategory.TRANSIENT

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    @property
    def retryable(self) -> bool:
        return self.category is ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "message": self.message,
            "context": self.context,
            "retryable": self.retryable,
        }


class ConfigurationError(AutoverError):
    category = ErrorCategory.CONFIGURATION


class InputError(AutoverError):
    category = ErrorCategory.INPUT


class ConflictError(AutoverError):
    category = ErrorCategory.CONFLICT


class TransientError(AutoverError):
    category = ErrorCategory.TRANSIENT
