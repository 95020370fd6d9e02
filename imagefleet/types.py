"""Shared type definitions for imagefleet.

This module contains dataclasses, enums, and type aliases shared across
subpackages to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum

# Image name -> tag for every image built in one invocation
BuiltImages = dict[str, str]


class BuildMode(str, Enum):
    """Execution strategy for a set of builds."""

    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"


class OrchestrationState(str, Enum):
    """State of a build_all invocation."""

    IDLE = "idle"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    ALL_SUCCEEDED = "all_succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildFingerprint:
    """Hashes of everything that determines the content of an image.

    Attributes:
        dockerfile_hash: SHA-256 of the Dockerfile.
        context_hash: Tree hash of the build context directory.
        options_hash: SHA-256 of the effective build options.
    """

    dockerfile_hash: str
    context_hash: str
    options_hash: str


@dataclass(frozen=True)
class BuildOutcome:
    """Result of one successful image build.

    Attributes:
        image_config_name: Name of the image entry in the configuration.
        image_name: Repository the image was built for.
        tag: Tag the image was built under.
        fingerprint: Inputs fingerprint recorded in the build cache.
    """

    image_config_name: str
    image_name: str
    tag: str
    fingerprint: BuildFingerprint | None = None


__all__ = [
    "BuildFingerprint",
    "BuildMode",
    "BuildOutcome",
    "BuiltImages",
    "OrchestrationState",
]
