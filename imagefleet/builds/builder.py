"""Per-image builders.

A builder is created once per image before building. It resolves the image
name, decides whether a rebuild is needed and runs the build.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from imagefleet.builds.fingerprint import compute_fingerprint, needs_rebuild
from imagefleet.builds.runner import run_build

if TYPE_CHECKING:
    from imagefleet.cache.store import BuildCache
    from imagefleet.config import Settings
    from imagefleet.images.schema import EffectiveBuild, ImageConfigSchema
    from imagefleet.log import BuildLogger
    from imagefleet.types import BuildFingerprint

logger = logging.getLogger(__name__)

# Contexts whose nodes pull from the local image store
LOCAL_CLUSTER_CONTEXTS = ("minikube", "docker-desktop", "docker-for-desktop")
LOCAL_CLUSTER_PREFIXES = ("kind-", "k3d-")


@dataclass(frozen=True)
class ClusterClient:
    """Handle of the cluster the built images are deployed to.

    Attributes:
        context: Kubernetes context name, None when unknown.
    """

    context: str | None = None

    def is_local(self) -> bool:
        """Check if the cluster runs on the local image store."""
        if self.context is None:
            return False
        return self.context in LOCAL_CLUSTER_CONTEXTS or self.context.startswith(
            LOCAL_CLUSTER_PREFIXES
        )


class Builder(Protocol):
    """Interface the orchestrator uses to build one image."""

    image_config_name: str
    image_name: str

    @property
    def fingerprint(self) -> BuildFingerprint | None: ...

    def should_rebuild(self, cache: BuildCache) -> bool: ...

    def build(self, tag: str, log: BuildLogger) -> None: ...


class BuilderFactory(Protocol):
    """Callable creating the builder of one image."""

    def __call__(
        self,
        client: ClusterClient | None,
        image_config_name: str,
        image_config: ImageConfigSchema,
        is_dev: bool,
        settings: Settings,
    ) -> Builder: ...


class DockerBuilder:
    """Builds an image with the docker CLI.

    Args:
        client: Cluster the image is deployed to.
        image_config_name: Name of the image entry.
        image_config: Image configuration. The builder keeps its own copy.
        is_dev: Apply dev overrides.
        settings: Application settings.
    """

    def __init__(
        self,
        client: ClusterClient | None,
        image_config_name: str,
        image_config: ImageConfigSchema,
        is_dev: bool,
        settings: Settings,
    ) -> None:
        self.client = client
        self.image_config_name = image_config_name
        self.image_config = image_config.model_copy(deep=True)
        self.is_dev = is_dev
        self.settings = settings
        self.image_name = image_config.image or image_config_name
        self._fingerprint: BuildFingerprint | None = None

    @property
    def effective_build(self) -> EffectiveBuild:
        """Build settings after dev overrides."""
        return self.image_config.effective_build(self.is_dev)

    @property
    def fingerprint(self) -> BuildFingerprint | None:
        """Fingerprint computed by the last should_rebuild() call."""
        return self._fingerprint

    @property
    def push(self) -> bool:
        """Whether the built image is pushed to its registry."""
        if self.settings.skip_push or self.effective_build.skip_push:
            return False
        return not (self.client is not None and self.client.is_local())

    def should_rebuild(self, cache: BuildCache) -> bool:
        """Decide whether the image must be rebuilt.

        Does not modify the cache.

        Args:
            cache: Build cache of the active namespace.

        Returns:
            True if the image was never built or its inputs changed.

        Raises:
            FingerprintError: If the build inputs cannot be read.
        """
        self._fingerprint = compute_fingerprint(self.image_name, self.effective_build)
        rebuild = needs_rebuild(self._fingerprint, cache.lookup(self.image_config_name))
        logger.debug("Image %s needs rebuild: %s", self.image_config_name, rebuild)
        return rebuild

    def build(self, tag: str, log: BuildLogger) -> None:
        """Build (and push) the image under a tag.

        Args:
            tag: Tag to build under.
            log: Logger receiving build output.

        Raises:
            BuildExecutionError: If the build tool fails.
        """
        result = run_build(
            image_name=self.image_name,
            tag=tag,
            build=self.effective_build,
            log=log,
            push=self.push,
            docker_bin=self.settings.docker_bin,
            timeout=self.settings.build_timeout,
        )
        logger.debug(
            "Build command for %s: %s", self.image_config_name, result.command
        )
        pushed = "pushed" if result.pushed else "kept local"
        log.info(f"Built {result.image_ref} in {result.duration:.1f}s ({pushed})")


def new_builder(
    client: ClusterClient | None,
    image_config_name: str,
    image_config: ImageConfigSchema,
    is_dev: bool,
    settings: Settings,
) -> Builder:
    """Default BuilderFactory creating DockerBuilder instances."""
    return DockerBuilder(client, image_config_name, image_config, is_dev, settings)


__all__ = [
    "Builder",
    "BuilderFactory",
    "ClusterClient",
    "DockerBuilder",
    "new_builder",
]
