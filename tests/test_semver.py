"""Tests for semantic version arithmetic."""

from __future__ import annotations

import pytest

from autover.errors import ErrorCategory, InputError
from autover.models import VersionTier
from autover.versioning.semver import (
    calculate_new_version,
    compare_versions,
    infer_tier,
    is_valid_version,
    parse_version,
)


@pytest.mark.parametrize(
    "tier, expected",
    [(VersionTier.MAJOR, "2.0.0"), (VersionTier.MINOR, "1.3.0"), (VersionTier.PATCH, "1.2.4")],
)
def test_calculate_new_version(tier: VersionTier, expected: str) -> None:
    assert calculate_new_version("1.2.3", tier) == expected


def test_accepts_tier_strings_and_v_prefix() -> None:
    assert calculate_new_version("v0.9.9", "minor") == "0.10.0"


def test_parse_rejects_garbage() -> None:
    with pytest.raises(InputError) as exc:
        parse_version("1.2")
    assert exc.value.category == ErrorCategory.INPUT
    assert not exc.value.retryable


@pytest.mark.parametrize("version", ["1.2.3", "v10.0.1", "0.0.0"])
def test_valid_versions(version: str) -> None:
    assert is_valid_version(version)


@pytest.mark.parametrize("version", ["", "1", "1.2.3.4", "01.2.3", "1.2.x", "latest"])
def test_invalid_versions(version: str) -> None:
    assert not is_valid_version(version)


def test_compare_versions() -> None:
    assert compare_versions("1.10.0", "1.9.9") == 1
    assert compare_versions("1.0.0", "v1.0.0") == 0
    assert compare_versions("0.1.0", "1.0.0") == -1


def test_infer_tier() -> None:
    assert infer_tier("1.2.3", "2.0.0") == VersionTier.MAJOR
    assert infer_tier("1.2.3", "1.5.0") == VersionTier.MINOR
    assert infer_tier("1.2.3", "1.2.9") == VersionTier.PATCH
    assert infer_tier("1.2.3", "1.0.0") == VersionTier.PATCH
