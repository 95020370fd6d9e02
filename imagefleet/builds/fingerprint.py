"""Build input fingerprinting for rebuild decisions.

This module handles:
- Hashing the Dockerfile and the build context tree
- Honoring .dockerignore patterns when hashing the context
- Hashing the effective build options
- Comparing a fingerprint against the build cache

An image needs a rebuild when any part of its fingerprint differs from the
one recorded at its last build.
"""

from __future__ import annotations

import fnmatch
import hashlib
import json
import logging
import stat
from pathlib import Path
from typing import TYPE_CHECKING, Any

from imagefleet.types import BuildFingerprint

if TYPE_CHECKING:
    from imagefleet.cache.models import ImageCacheEntry
    from imagefleet.images.schema import EffectiveBuild

logger = logging.getLogger(__name__)

# Bump when the fingerprint format changes so existing caches are rebuilt
FINGERPRINT_SCHEMA_VERSION = "1"

DOCKERIGNORE_FILE = ".dockerignore"
ALWAYS_IGNORED = (".git",)


class FingerprintError(Exception):
    """Raised when build inputs cannot be fingerprinted."""

    def __init__(self, message: str, code: str = "fingerprint_error") -> None:
        super().__init__(message)
        self.code = code


def load_ignore_patterns(context_dir: Path) -> list[str]:
    """Read .dockerignore patterns from a context directory.

    Args:
        context_dir: Build context directory.

    Returns:
        Normalized patterns in file order ('!' prefix kept for exceptions).
    """
    ignore_file = context_dir / DOCKERIGNORE_FILE
    if not ignore_file.is_file():
        return []

    patterns: list[str] = []
    for line in ignore_file.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        negate = stripped.startswith("!")
        if negate:
            stripped = stripped[1:].strip()
        stripped = stripped.lstrip("/").rstrip("/")
        if stripped.startswith("./"):
            stripped = stripped[2:]
        if stripped:
            patterns.append(f"!{stripped}" if negate else stripped)
    return patterns


def _match_parts(pattern_parts: list[str], path_parts: list[str]) -> bool:
    """Match path segments one by one; "**" spans any number of segments."""
    if not pattern_parts:
        return not path_parts
    head = pattern_parts[0]
    if head == "**":
        return any(
            _match_parts(pattern_parts[1:], path_parts[i:])
            for i in range(len(path_parts) + 1)
        )
    if not path_parts:
        return False
    return fnmatch.fnmatchcase(path_parts[0], head) and _match_parts(
        pattern_parts[1:], path_parts[1:]
    )


def is_ignored(rel_path: str, patterns: list[str]) -> bool:
    """Check if a context-relative path is excluded by ignore patterns.

    A pattern matches a path or any of its parent directories. Wildcards
    stay within one path segment except "**". Later patterns win, so
    '!pattern' re-includes previously excluded paths.

    Args:
        rel_path: POSIX path relative to the context directory.
        patterns: Patterns from load_ignore_patterns().

    Returns:
        True if the path is excluded.
    """
    parts = rel_path.split("/")
    if parts[0] in ALWAYS_IGNORED:
        return True

    ignored = False
    for pattern in patterns:
        negate = pattern.startswith("!")
        body = pattern[1:] if negate else pattern
        pattern_parts = body.split("/")
        matched = any(
            _match_parts(pattern_parts, parts[: i + 1]) for i in range(len(parts))
        )
        if matched:
            ignored = not negate
    return ignored


def compute_file_hash(path: Path) -> str:
    """Compute the SHA-256 of a file.

    Args:
        path: File to hash.

    Returns:
        SHA-256 hex digest.

    Raises:
        FingerprintError: If the file cannot be read.
    """
    hasher = hashlib.sha256()
    try:
        with path.open("rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                hasher.update(chunk)
    except FileNotFoundError:
        raise FingerprintError(
            f"File not found: {path}",
            code="file_not_found",
        ) from None
    except OSError as e:
        raise FingerprintError(
            f"Failed to read {path}: {e}",
            code="read_error",
        ) from e
    return hasher.hexdigest()


def compute_context_hash(context_dir: Path) -> str:
    """Compute a deterministic hash of a build context tree.

    The hash is computed over:
    - Sorted file paths (relative to the context)
    - File contents
    - File modes (lower 9 bits: rwxrwxrwx)

    Paths excluded by .dockerignore (and .git) do not contribute.

    Args:
        context_dir: Build context directory.

    Returns:
        SHA-256 hex digest of the tree.

    Raises:
        FingerprintError: If the context is missing or unreadable.
    """
    if not context_dir.is_dir():
        raise FingerprintError(
            f"Build context is not a directory: {context_dir}",
            code="context_not_found",
        )

    hasher = hashlib.sha256()
    try:
        patterns = load_ignore_patterns(context_dir)
        for path in sorted(context_dir.rglob("*")):
            if not path.is_file():
                continue

            rel_path = path.relative_to(context_dir).as_posix()
            if is_ignored(rel_path, patterns):
                continue

            mode = stat.S_IMODE(path.stat().st_mode)

            # Hash: path\0mode\0content
            hasher.update(rel_path.encode("utf-8"))
            hasher.update(b"\0")
            hasher.update(f"{mode:o}".encode())
            hasher.update(b"\0")
            hasher.update(path.read_bytes())
            hasher.update(b"\0")
    except OSError as e:
        raise FingerprintError(
            f"Failed to read build context {context_dir}: {e}",
            code="context_read_error",
        ) from e

    return hasher.hexdigest()


def normalize_build_options(image_name: str, build: EffectiveBuild) -> dict[str, Any]:
    """Create the normalized options snapshot that affects image content.

    Args:
        image_name: Repository the image is built for.
        build: Effective build settings.

    Returns:
        Dictionary with normalized options.
    """
    snapshot: dict[str, Any] = {
        "schema_version": FINGERPRINT_SCHEMA_VERSION,
        "image_name": image_name,
    }
    if build.target:
        snapshot["target"] = build.target
    if build.build_args:
        snapshot["build_args"] = dict(sorted(build.build_args.items()))
    return snapshot


def compute_options_hash(image_name: str, build: EffectiveBuild) -> str:
    """Hash the normalized build options.

    Args:
        image_name: Repository the image is built for.
        build: Effective build settings.

    Returns:
        SHA-256 hex digest of the canonical JSON snapshot.
    """
    canonical_json = json.dumps(
        normalize_build_options(image_name, build),
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def compute_fingerprint(image_name: str, build: EffectiveBuild) -> BuildFingerprint:
    """Fingerprint everything that determines the content of an image.

    Args:
        image_name: Repository the image is built for.
        build: Effective build settings with absolute paths.

    Returns:
        BuildFingerprint.

    Raises:
        FingerprintError: If the Dockerfile or context cannot be read.
    """
    fingerprint = BuildFingerprint(
        dockerfile_hash=compute_file_hash(Path(build.dockerfile)),
        context_hash=compute_context_hash(Path(build.context)),
        options_hash=compute_options_hash(image_name, build),
    )
    logger.debug(
        "Fingerprint for %s: dockerfile=%s context=%s options=%s",
        image_name,
        fingerprint.dockerfile_hash[:12],
        fingerprint.context_hash[:12],
        fingerprint.options_hash[:12],
    )
    return fingerprint


def needs_rebuild(
    fingerprint: BuildFingerprint,
    entry: ImageCacheEntry | None,
) -> bool:
    """Compare a fingerprint with the cached one.

    Args:
        fingerprint: Fingerprint of the current inputs.
        entry: Cache entry of the image, if any.

    Returns:
        True if the image has never been built or its inputs changed.
    """
    if entry is None or not entry.tag:
        return True
    return entry.fingerprint != fingerprint


__all__ = [
    "FINGERPRINT_SCHEMA_VERSION",
    "FingerprintError",
    "compute_context_hash",
    "compute_file_hash",
    "compute_fingerprint",
    "compute_options_hash",
    "is_ignored",
    "load_ignore_patterns",
    "needs_rebuild",
    "normalize_build_options",
]
