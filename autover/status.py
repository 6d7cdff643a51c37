"""
Status reporting interface.

Every long-lived component (engine, responder, scheduler, watcher) implements
StatusReporting, so health checks dispatch through the interface rather than
probing objects for a status method.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ComponentStatus:
    name: str
    healthy: bool
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "healthy": self.healthy, "details": dict(self.details)}


class StatusReporting(ABC):
    @abstractmethod
    def get_status(self) -> ComponentStatus:
        """Report current health and a few counters."""
        ...
