"""Project manifest holding the single mutable "current version" field."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ..errors import TransientError
from .semver import is_valid_version

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "0.0.0"


class ManifestStore:
    """Reads and writes the ``version`` key of a JSON manifest (package.json)."""

    def __init__(self, path: Path):
        self.path = path

    def read_version(self) -> str:
        """Current version, or 0.0.0 when the manifest is missing or unusable."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.warning("Manifest not found at %s, using %s", self.path, DEFAULT_VERSION)
            return DEFAULT_VERSION
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s (%s), using %s", self.path, e, DEFAULT_VERSION)
            return DEFAULT_VERSION

        version = data.get("version") if isinstance(data, dict) else None
        if not isinstance(version, str) or not is_valid_version(version):
            logger.warning("Manifest %s has no valid version, using %s", self.path, DEFAULT_VERSION)
            return DEFAULT_VERSION
        return version.lstrip("v")

    def write_version(self, version: str) -> None:
        """Update the version, preserving every other manifest key."""
        data: dict = {}
        if self.path.exists():
            try:
                loaded = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(loaded, dict):
                    data = loaded
            except (OSError, json.JSONDecodeError) as e:
                raise TransientError(f"Could not read manifest {self.path}: {e}") from e

        data["version"] = version
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise TransientError(f"Could not write manifest {self.path}: {e}") from e
