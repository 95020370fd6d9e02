"""Pydantic models for image configuration validation.

This module defines the Pydantic models for validating the image
configuration file (YAML/JSON) that lists the images of a project.
"""

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

IMAGE_CONFIG_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.\-]+$")
# Docker tag grammar: up to 128 word characters, dots and dashes
IMAGE_TAG_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.\-]{0,127}$")

DEFAULT_DOCKERFILE_PATH = "./Dockerfile"
DEFAULT_CONTEXT_PATH = "./"


def _validate_build_args(v: dict[str, str] | None) -> dict[str, str] | None:
    if v is None:
        return v
    for key in v:
        if not key or "=" in key or any(c.isspace() for c in key):
            raise ValueError(f"invalid build arg name '{key}'")
    return v


class DevOverridesSchema(BaseModel):
    """Build settings that replace the regular ones in dev mode.

    Attributes:
        dockerfile: Dockerfile to use instead of build.dockerfile.
        target: Build stage to use instead of build.target.
        build_args: Build args merged over build.build_args.
    """

    model_config = ConfigDict(extra="forbid")

    dockerfile: str | None = Field(default=None)
    target: str | None = Field(default=None)
    build_args: dict[str, str] | None = Field(default=None)

    @field_validator("build_args")
    @classmethod
    def validate_build_args(cls, v: dict[str, str] | None) -> dict[str, str] | None:
        """Validate build arg names."""
        return _validate_build_args(v)


class BuildOptionsSchema(BaseModel):
    """Schema for how an image is built.

    Attributes:
        disabled: Never build this image.
        dockerfile: Path to the Dockerfile.
        context: Path to the build context directory.
        target: Optional multi-stage build target.
        build_args: Build-time variables passed to the build tool.
        skip_push: Keep the image local instead of pushing it.
    """

    model_config = ConfigDict(extra="forbid")

    disabled: bool | None = Field(default=None)
    dockerfile: str = Field(default=DEFAULT_DOCKERFILE_PATH)
    context: str = Field(default=DEFAULT_CONTEXT_PATH)
    target: str | None = Field(default=None)
    build_args: dict[str, str] | None = Field(default=None)
    skip_push: bool | None = Field(default=None)

    @field_validator("build_args")
    @classmethod
    def validate_build_args(cls, v: dict[str, str] | None) -> dict[str, str] | None:
        """Validate build arg names."""
        return _validate_build_args(v)


class EffectiveBuild(BaseModel):
    """Build settings after applying dev overrides."""

    model_config = ConfigDict(frozen=True)

    dockerfile: str
    context: str
    target: str | None = None
    build_args: dict[str, str] = Field(default_factory=dict)
    skip_push: bool = False


class ImageConfigSchema(BaseModel):
    """Schema for a single image entry.

    Attributes:
        image: Repository the image is published to. Defaults to the
            entry's name when omitted.
        tag: Explicit tag; replaces the generated tag when set.
        build: Build options.
        dev: Overrides applied in dev mode.
    """

    model_config = ConfigDict(extra="forbid")

    image: str | None = Field(default=None, min_length=1, max_length=255)
    tag: str | None = Field(default=None, description="Explicit image tag")
    build: BuildOptionsSchema | None = Field(default=None)
    dev: DevOverridesSchema | None = Field(default=None)

    @field_validator("image")
    @classmethod
    def validate_image(cls, v: str | None) -> str | None:
        """Validate the repository has no tag or digest."""
        if v is None:
            return v
        last = v.rsplit("/", 1)[-1]
        if ":" in last or "@" in v:
            raise ValueError(f"image must not include a tag or digest, got '{v}'")
        if any(c.isspace() for c in v):
            raise ValueError(f"image must not contain whitespace, got '{v}'")
        return v

    @field_validator("tag")
    @classmethod
    def validate_tag(cls, v: str | None) -> str | None:
        """Validate the tag follows the registry tag grammar."""
        if v is None:
            return v
        if not IMAGE_TAG_PATTERN.match(v):
            raise ValueError(f"tag must match {IMAGE_TAG_PATTERN.pattern}, got '{v}'")
        return v

    @property
    def disabled(self) -> bool:
        """Whether building this image is disabled."""
        return self.build is not None and self.build.disabled is True

    def effective_build(self, is_dev: bool = False) -> EffectiveBuild:
        """Return build settings with dev overrides applied.

        Args:
            is_dev: Whether dev overrides apply.

        Returns:
            EffectiveBuild for this image.
        """
        build = self.build or BuildOptionsSchema()
        dockerfile = build.dockerfile
        target = build.target
        build_args = dict(build.build_args or {})

        if is_dev and self.dev is not None:
            if self.dev.dockerfile:
                dockerfile = self.dev.dockerfile
            if self.dev.target:
                target = self.dev.target
            if self.dev.build_args:
                build_args.update(self.dev.build_args)

        return EffectiveBuild(
            dockerfile=dockerfile,
            context=build.context,
            target=target,
            build_args=build_args,
            skip_push=build.skip_push is True,
        )

    def with_base_path(self, base_path: Path) -> "ImageConfigSchema":
        """Return a copy with relative paths resolved against base_path."""

        def _resolve(value: str) -> str:
            path = Path(value)
            if path.is_absolute():
                return value
            return str((base_path / path).resolve())

        build = self.build or BuildOptionsSchema()
        update: dict[str, object] = {
            "build": build.model_copy(
                update={
                    "dockerfile": _resolve(build.dockerfile),
                    "context": _resolve(build.context),
                }
            )
        }
        if self.dev is not None and self.dev.dockerfile:
            update["dev"] = self.dev.model_copy(
                update={"dockerfile": _resolve(self.dev.dockerfile)}
            )
        return self.model_copy(update=update)


class ImagesConfigSchema(BaseModel):
    """Top-level image configuration.

    Attributes:
        version: Configuration format version.
        images: Image entries keyed by their config name, in file order.
    """

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="v1")
    images: dict[str, ImageConfigSchema] = Field(default_factory=dict)

    @field_validator("images")
    @classmethod
    def validate_image_names(
        cls, v: dict[str, ImageConfigSchema]
    ) -> dict[str, ImageConfigSchema]:
        """Validate image config names match the safe pattern."""
        for name in v:
            if not IMAGE_CONFIG_NAME_PATTERN.match(name):
                raise ValueError(
                    f"image name must match pattern "
                    f"{IMAGE_CONFIG_NAME_PATTERN.pattern}, got '{name}'"
                )
        return v


__all__ = [
    "DEFAULT_CONTEXT_PATH",
    "DEFAULT_DOCKERFILE_PATH",
    "BuildOptionsSchema",
    "DevOverridesSchema",
    "EffectiveBuild",
    "ImageConfigSchema",
    "ImagesConfigSchema",
]
