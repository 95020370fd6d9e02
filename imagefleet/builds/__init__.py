"""Build orchestration module.

This module handles:
- Input fingerprinting for rebuild decisions
- Tag allocation
- Running the container build tool
- Sequential and concurrent build orchestration
"""

from imagefleet.builds.builder import ClusterClient, DockerBuilder, new_builder
from imagefleet.builds.orchestrator import BuildAllError, build_all

__all__ = [
    "BuildAllError",
    "ClusterClient",
    "DockerBuilder",
    "build_all",
    "new_builder",
]
