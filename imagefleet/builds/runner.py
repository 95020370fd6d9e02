"""Build runner for executing container build tool commands.

This module handles:
- Composing `docker build` and `docker push` commands
- Executing them with subprocess
- Forwarding their output to a build logger
- Enforcing command timeouts
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from imagefleet.images.schema import EffectiveBuild
    from imagefleet.log import BuildLogger

logger = logging.getLogger(__name__)


class BuildExecutionError(Exception):
    """Raised when build execution fails."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = "build_error",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.code = code


@dataclass
class BuildResult:
    """Result of a build execution.

    Attributes:
        image_ref: Full image reference (name:tag).
        command: The build command that was executed.
        pushed: Whether the image was pushed.
        started_at: Build start time.
        finished_at: Build finish time.
    """

    image_ref: str
    command: str
    pushed: bool
    started_at: datetime
    finished_at: datetime

    @property
    def duration(self) -> float:
        """Build duration in seconds."""
        return (self.finished_at - self.started_at).total_seconds()


def compose_build_command(
    image_ref: str,
    build: EffectiveBuild,
    docker_bin: str = "docker",
) -> list[str]:
    """Compose the `docker build` command for an image.

    Args:
        image_ref: Full image reference (name:tag).
        build: Effective build settings.
        docker_bin: Build tool executable.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = [docker_bin, "build", "--tag", image_ref, "--file", build.dockerfile]

    if build.target:
        cmd.extend(["--target", build.target])

    for key, value in sorted(build.build_args.items()):
        cmd.extend(["--build-arg", f"{key}={value}"])

    cmd.append(build.context)
    return cmd


def compose_push_command(image_ref: str, docker_bin: str = "docker") -> list[str]:
    """Compose the `docker push` command for an image.

    Args:
        image_ref: Full image reference (name:tag).
        docker_bin: Build tool executable.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    return [docker_bin, "push", image_ref]


def run_command(
    cmd: list[str],
    log: BuildLogger,
    cwd: Path | None = None,
    timeout: int | None = None,
) -> None:
    """Run a build tool command and forward its output to a logger.

    Args:
        cmd: Command to run.
        log: Logger receiving the command output.
        cwd: Working directory.
        timeout: Timeout in seconds (None = no timeout).

    Raises:
        BuildExecutionError: If the command cannot run, times out or fails.
    """
    cmd_str = shlex.join(cmd)
    logger.debug("Executing: %s", cmd_str)
    log.info(f"$ {cmd_str}")

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        if e.output:
            output = e.output if isinstance(e.output, str) else e.output.decode()
            for line in output.splitlines():
                log.info(line)
        raise BuildExecutionError(
            f"Command timed out after {timeout} seconds: {cmd_str}",
            exit_code=-1,
            code="build_timeout",
        ) from e
    except OSError as e:
        raise BuildExecutionError(
            f"Failed to execute {cmd[0]}: {e}",
            exit_code=None,
            code="execution_error",
        ) from e

    for line in (result.stdout or "").splitlines():
        log.info(line)

    if result.returncode != 0:
        raise BuildExecutionError(
            f"Command failed with exit code {result.returncode}: {cmd_str}",
            exit_code=result.returncode,
            code="build_failed",
        )


def run_build(
    image_name: str,
    tag: str,
    build: EffectiveBuild,
    log: BuildLogger,
    push: bool = True,
    docker_bin: str = "docker",
    timeout: int | None = None,
) -> BuildResult:
    """Build an image and optionally push it.

    Args:
        image_name: Repository to build for.
        tag: Tag to build under.
        build: Effective build settings.
        log: Logger receiving build output.
        push: Push the image after building.
        docker_bin: Build tool executable.
        timeout: Per-command timeout in seconds.

    Returns:
        BuildResult with execution details.

    Raises:
        BuildExecutionError: If building or pushing fails.
    """
    # Relative paths resolve against the working directory, as fingerprints do
    build = build.model_copy(
        update={
            "dockerfile": str(Path(build.dockerfile).resolve()),
            "context": str(Path(build.context).resolve()),
        }
    )
    image_ref = f"{image_name}:{tag}"
    cmd = compose_build_command(image_ref, build, docker_bin=docker_bin)

    started_at = datetime.now(timezone.utc)
    log.info(f"Building image {image_ref}")
    run_command(cmd, log, cwd=Path(build.context), timeout=timeout)

    if push:
        log.info(f"Pushing image {image_ref}")
        run_command(
            compose_push_command(image_ref, docker_bin=docker_bin),
            log,
            timeout=timeout,
        )
    finished_at = datetime.now(timezone.utc)

    logger.debug("Finished %s (pushed=%s)", image_ref, push)
    return BuildResult(
        image_ref=image_ref,
        command=shlex.join(cmd),
        pushed=push,
        started_at=started_at,
        finished_at=finished_at,
    )


__all__ = [
    "BuildExecutionError",
    "BuildResult",
    "compose_build_command",
    "compose_push_command",
    "run_build",
    "run_command",
]
