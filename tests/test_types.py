"""Tests for shared types."""

import dataclasses

import pytest

from imagefleet.types import (
    BuildFingerprint,
    BuildMode,
    BuildOutcome,
    OrchestrationState,
)


class TestBuildOutcome:
    """Test BuildOutcome dataclass."""

    def test_frozen(self) -> None:
        """Outcomes should be immutable."""
        outcome = BuildOutcome("api", "repo/api", "abc1234")
        with pytest.raises(dataclasses.FrozenInstanceError):
            outcome.tag = "other"  # type: ignore[misc]


class TestBuildFingerprint:
    """Test BuildFingerprint dataclass."""

    def test_equality(self) -> None:
        """Fingerprints with the same hashes should compare equal."""
        assert BuildFingerprint("a", "b", "c") == BuildFingerprint("a", "b", "c")
        assert BuildFingerprint("a", "b", "c") != BuildFingerprint("a", "b", "d")


class TestEnums:
    """Test enum values."""

    def test_build_mode_values(self) -> None:
        """BuildMode should serialize to lowercase strings."""
        assert BuildMode.SEQUENTIAL.value == "sequential"
        assert BuildMode.CONCURRENT.value == "concurrent"

    def test_orchestration_states(self) -> None:
        """OrchestrationState should cover the invocation lifecycle."""
        assert [s.value for s in OrchestrationState] == [
            "idle",
            "dispatching",
            "draining",
            "all_succeeded",
            "failed",
        ]
