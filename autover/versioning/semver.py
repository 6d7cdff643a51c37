"""Semantic version parsing and increment arithmetic."""

from __future__ import annotations

import re

from ..errors import InputError
from ..models import VersionTier

_SEMVER = re.compile(r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


def parse_version(version: str) -> tuple[int, int, int]:
    """Parse ``X.Y.Z`` (optionally prefixed with ``v``)."""
    m = _SEMVER.match((version or "").strip())
    if not m:
        raise InputError(f"Not a semantic version: {version!r}", {"version": version})
    return (int(m.group(1)), int(m.group(2)), int(m.group(3)))


def format_version(parts: tuple[int, int, int]) -> str:
    return f"{parts[0]}.{parts[1]}.{parts[2]}"


def is_valid_version(version: str) -> bool:
    return bool(_SEMVER.match((version or "").strip()))


def calculate_new_version(current: str, tier: VersionTier | str) -> str:
    """Increment ``current`` by one step of ``tier``.

    major -> (X+1).0.0, minor -> X.(Y+1).0, patch -> X.Y.(Z+1).
    """
    major, minor, patch = parse_version(current)
    t = VersionTier(tier)
    if t == VersionTier.MAJOR:
        return format_version((major + 1, 0, 0))
    if t == VersionTier.MINOR:
        return format_version((major, minor + 1, 0))
    return format_version((major, minor, patch + 1))


def compare_versions(a: str, b: str) -> int:
    """-1, 0 or 1 under semver precedence."""
    pa, pb = parse_version(a), parse_version(b)
    return (pa > pb) - (pa < pb)


def infer_tier(current: str, new: str) -> VersionTier:
    """Which component a jump from ``current`` to ``new`` moved first.

    Non-increasing jumps are reported as patch.
    """
    ca, na = parse_version(current), parse_version(new)
    if na[0] > ca[0]:
        return VersionTier.MAJOR
    if na[0] == ca[0] and na[1] > ca[1]:
        return VersionTier.MINOR
    return VersionTier.PATCH
