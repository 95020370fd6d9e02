"""Build orchestration.

This module provides build_all(), the entry point that builds every image
of a configuration that changed:
- Skips disabled images and images whose inputs did not change
- Allocates a tag per build
- Runs builds sequentially on the calling thread, or concurrently with one
  worker thread per image
- Applies outcomes to the build cache and the result map from the calling
  thread only

The result is all-or-nothing: either every build succeeded and the full
image-name-to-tag map is returned, or BuildAllError is raised.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING

from imagefleet.builds.builder import new_builder
from imagefleet.builds.fingerprint import FingerprintError
from imagefleet.builds.tags import (
    TagGenerationError,
    allocate_tag,
    generate_random_string,
)
from imagefleet.config import get_settings
from imagefleet.log import BufferedBuildLogger
from imagefleet.types import BuildMode, BuildOutcome, BuiltImages, OrchestrationState

if TYPE_CHECKING:
    from imagefleet.builds.builder import Builder, BuilderFactory, ClusterClient
    from imagefleet.builds.tags import TagGenerator
    from imagefleet.cache.store import BuildCache
    from imagefleet.config import Settings
    from imagefleet.images.schema import ImageConfigSchema
    from imagefleet.log import BuildLogger

logger = logging.getLogger(__name__)


class BuildAllError(Exception):
    """Raised when a build_all invocation fails.

    Attributes:
        code: Failure category (rebuild_check_failed, tag_generation_failed,
            build_failed).
        image_config_name: Image the failure relates to.
    """

    def __init__(
        self,
        message: str,
        code: str = "build_all_error",
        image_config_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.image_config_name = image_config_name


class ImageBuildError(Exception):
    """Raised by a concurrent build unit when its build fails.

    The message carries the image, the tag, the unit's buffered log and the
    underlying cause.
    """

    def __init__(
        self,
        image_config_name: str,
        image_name: str,
        tag: str,
        log_output: str,
        cause: BaseException,
    ) -> None:
        super().__init__(
            f"Error building image {image_name}:{tag}: {log_output.rstrip()} {cause}"
        )
        self.image_config_name = image_config_name
        self.image_name = image_name
        self.tag = tag
        self.log_output = log_output
        self.code = "build_failed"


def select_build_mode(
    images: Mapping[str, ImageConfigSchema],
    sequential: bool,
) -> BuildMode:
    """Choose between sequential and concurrent execution.

    Concurrent execution is only used when more than one image is eligible
    (not disabled).

    Args:
        images: Image configuration entries.
        sequential: Whether the caller asked for sequential builds.

    Returns:
        BuildMode to use.
    """
    if sequential:
        return BuildMode.SEQUENTIAL
    eligible = sum(1 for conf in images.values() if not conf.disabled)
    if eligible <= 1:
        return BuildMode.SEQUENTIAL
    return BuildMode.CONCURRENT


def build_in_isolation(builder: Builder, tag: str) -> BuildOutcome:
    """Build one image on a worker thread.

    Output goes to a private buffered log so concurrent builds never
    interleave on the shared console.

    Args:
        builder: Builder of the image, owned by this unit.
        tag: Tag to build under.

    Returns:
        Success BuildOutcome.

    Raises:
        ImageBuildError: If the build fails.
    """
    build_log = BufferedBuildLogger()
    try:
        builder.build(tag, build_log)
    except Exception as e:
        raise ImageBuildError(
            image_config_name=builder.image_config_name,
            image_name=builder.image_name,
            tag=tag,
            log_output=build_log.getvalue(),
            cause=e,
        ) from e

    return BuildOutcome(
        image_config_name=builder.image_config_name,
        image_name=builder.image_name,
        tag=tag,
        fingerprint=builder.fingerprint,
    )


class ResultCoordinator:
    """Single writer of the build cache and the result map.

    Every method must be called from the thread that runs build_all().

    Args:
        cache: Build cache of the active namespace.
        log: Interactive logger.
    """

    def __init__(self, cache: BuildCache, log: BuildLogger) -> None:
        self.cache = cache
        self.log = log
        self.built_images: BuiltImages = {}
        self.state = OrchestrationState.IDLE

    def commit(self, outcome: BuildOutcome) -> None:
        """Apply a successful build to the cache and the result map.

        Args:
            outcome: Success outcome of one build.
        """
        entry = self.cache.get_image_cache_entry(outcome.image_config_name)
        entry.record_build(outcome.image_name, outcome.tag, outcome.fingerprint)
        self.built_images[outcome.image_name] = outcome.tag
        self.log.done(
            f"Done building image {outcome.image_config_name} "
            f"({outcome.image_name}:{outcome.tag})"
        )

    def drain(self, futures: Mapping[Future[BuildOutcome], str]) -> None:
        """Consume build outcomes in completion order.

        Stops at the first failure. Outcomes of units that have not
        completed by then are never applied.

        Args:
            futures: Launched units mapped to their image config names.

        Raises:
            BuildAllError: On the first failed unit.
        """
        self.state = OrchestrationState.DRAINING
        pending = len(futures)
        completed = as_completed(futures)
        try:
            while pending > 0:
                self.log.start_wait(f"Building {pending} images...")
                future = next(completed)
                try:
                    outcome = future.result()
                except ImageBuildError as e:
                    self.state = OrchestrationState.FAILED
                    raise BuildAllError(
                        str(e),
                        code="build_failed",
                        image_config_name=e.image_config_name,
                    ) from e

                pending -= 1
                self.commit(outcome)
        finally:
            self.log.stop_wait()

        self.state = OrchestrationState.ALL_SUCCEEDED


def _shutdown(
    executor: ThreadPoolExecutor,
    futures: Mapping[Future[BuildOutcome], str],
    log: BuildLogger,
) -> None:
    """Cancel queued units and wait for running ones, discarding results."""
    running = [name for future, name in futures.items() if not future.done()]
    if running:
        log.warn(
            f"Waiting for {len(running)} abandoned builds to finish: "
            f"{', '.join(running)}"
        )
    executor.shutdown(wait=True, cancel_futures=True)
    for future, name in futures.items():
        if future.done() and not future.cancelled() and future.exception():
            logger.debug("Discarded failure of %s: %s", name, future.exception())


def build_all(
    client: ClusterClient | None,
    images: Mapping[str, ImageConfigSchema],
    cache: BuildCache,
    log: BuildLogger,
    *,
    is_dev: bool = False,
    force_rebuild: bool = False,
    sequential: bool = False,
    settings: Settings | None = None,
    builder_factory: BuilderFactory | None = None,
    tag_generator: TagGenerator | None = None,
) -> BuiltImages:
    """Build every image that needs a rebuild.

    An image is skipped if it is disabled, or if force_rebuild is false and
    its builder reports no rebuild is needed.

    Args:
        client: Cluster the images are deployed to.
        images: Image configuration entries in build order.
        cache: Build cache of the active namespace; updated in place.
        log: Interactive logger. Only used from the calling thread.
        is_dev: Apply dev overrides.
        force_rebuild: Rebuild regardless of the rebuild decision.
        sequential: Build one image at a time.
        settings: Application settings.
        builder_factory: Creates the builder of each image.
        tag_generator: Generates random tags.

    Returns:
        Mapping of image name to tag for every image built.

    Raises:
        BuildAllError: If a rebuild check, tag generation or build fails.
            Results of builds that completed are not returned.
    """
    if settings is None:
        settings = get_settings()
    if builder_factory is None:
        builder_factory = new_builder
    if tag_generator is None:
        tag_generator = generate_random_string

    mode = select_build_mode(images, sequential)
    coordinator = ResultCoordinator(cache, log)
    executor: ThreadPoolExecutor | None = None
    futures: dict[Future[BuildOutcome], str] = {}

    logger.debug("Building images in %s mode", mode.value)
    coordinator.state = OrchestrationState.DISPATCHING
    try:
        for image_config_name, image_config in images.items():
            if image_config.disabled:
                log.info(f"Skipping building image {image_config_name}")
                continue

            # Each builder owns a private copy of its configuration
            builder = builder_factory(
                client,
                image_config_name,
                image_config.model_copy(deep=True),
                is_dev,
                settings,
            )

            try:
                need_rebuild = builder.should_rebuild(cache)
            except (FingerprintError, OSError) as e:
                raise BuildAllError(
                    f"Error during rebuild check of image {image_config_name}: {e}",
                    code="rebuild_check_failed",
                    image_config_name=image_config_name,
                ) from e
            if not force_rebuild and not need_rebuild:
                log.info(f"Skip building image '{image_config_name}'")
                continue

            try:
                tag = allocate_tag(image_config, settings.tag_length, tag_generator)
            except TagGenerationError as e:
                raise BuildAllError(
                    f"Image building failed: {e}",
                    code="tag_generation_failed",
                    image_config_name=image_config_name,
                ) from e

            if mode is BuildMode.SEQUENTIAL:
                try:
                    builder.build(tag, log)
                except Exception as e:
                    raise BuildAllError(
                        f"Error building image {builder.image_name}:{tag}: {e}",
                        code="build_failed",
                        image_config_name=image_config_name,
                    ) from e

                coordinator.commit(
                    BuildOutcome(
                        image_config_name=builder.image_config_name,
                        image_name=builder.image_name,
                        tag=tag,
                        fingerprint=builder.fingerprint,
                    )
                )
            else:
                if executor is None:
                    executor = ThreadPoolExecutor(
                        max_workers=len(images),
                        thread_name_prefix="imagefleet-build",
                    )
                future = executor.submit(build_in_isolation, builder, tag)
                futures[future] = image_config_name

        if futures:
            coordinator.drain(futures)
    except BaseException:
        coordinator.state = OrchestrationState.FAILED
        raise
    finally:
        if executor is not None:
            _shutdown(executor, futures, log)

    coordinator.state = OrchestrationState.ALL_SUCCEEDED
    return dict(coordinator.built_images)


__all__ = [
    "BuildAllError",
    "ImageBuildError",
    "ResultCoordinator",
    "build_all",
    "build_in_isolation",
    "select_build_mode",
]
