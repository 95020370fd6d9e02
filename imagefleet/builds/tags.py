"""Image tag allocation.

Builds are published under a random alphanumeric tag unless the image
configuration pins an explicit one.
"""

from __future__ import annotations

import secrets
import string
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from imagefleet.images.schema import ImageConfigSchema

DEFAULT_TAG_LENGTH = 7
TAG_ALPHABET = string.ascii_letters + string.digits

TagGenerator = Callable[[int], str]


class TagGenerationError(Exception):
    """Raised when a tag cannot be generated."""

    def __init__(self, message: str, code: str = "tag_generation_error") -> None:
        super().__init__(message)
        self.code = code


def generate_random_string(length: int) -> str:
    """Generate a random alphanumeric string.

    Args:
        length: Number of characters.

    Returns:
        Random string of exactly `length` characters.

    Raises:
        TagGenerationError: If length is not positive.
    """
    if length < 1:
        raise TagGenerationError(
            f"Tag length must be positive, got {length}",
            code="invalid_tag_length",
        )
    return "".join(secrets.choice(TAG_ALPHABET) for _ in range(length))


def allocate_tag(
    image_config: ImageConfigSchema,
    length: int = DEFAULT_TAG_LENGTH,
    generator: TagGenerator = generate_random_string,
) -> str:
    """Allocate the tag a new build is published under.

    The generator always runs; an explicit tag in the image configuration
    replaces its output.

    Args:
        image_config: Configuration of the image being built.
        length: Length of the generated tag.
        generator: Tag string generator.

    Returns:
        Tag string.

    Raises:
        TagGenerationError: If the generator fails.
    """
    tag = generator(length)
    if image_config.tag is not None:
        tag = image_config.tag
    return tag


__all__ = [
    "DEFAULT_TAG_LENGTH",
    "TAG_ALPHABET",
    "TagGenerationError",
    "TagGenerator",
    "allocate_tag",
    "generate_random_string",
]
