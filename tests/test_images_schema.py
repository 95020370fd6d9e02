"""Tests for images/schema.py module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from imagefleet.images.schema import (
    DEFAULT_CONTEXT_PATH,
    DEFAULT_DOCKERFILE_PATH,
    ImageConfigSchema,
    ImagesConfigSchema,
)


class TestImageConfigSchema:
    """Tests for ImageConfigSchema model."""

    def test_minimal(self) -> None:
        """An empty entry should be valid and use defaults."""
        conf = ImageConfigSchema()
        build = conf.effective_build()

        assert conf.image is None
        assert conf.disabled is False
        assert build.dockerfile == DEFAULT_DOCKERFILE_PATH
        assert build.context == DEFAULT_CONTEXT_PATH
        assert build.build_args == {}
        assert build.skip_push is False

    def test_full(self) -> None:
        """All fields should be parsed."""
        conf = ImageConfigSchema.model_validate(
            {
                "image": "registry.example.com/team/api",
                "tag": "v1.2.3",
                "build": {
                    "dockerfile": "docker/api.Dockerfile",
                    "context": "services/api",
                    "target": "runtime",
                    "build_args": {"GO_VERSION": "1.22"},
                    "skip_push": True,
                },
                "dev": {"target": "debug", "build_args": {"DEBUG": "1"}},
            }
        )

        assert conf.image == "registry.example.com/team/api"
        assert conf.tag == "v1.2.3"
        assert conf.build is not None
        assert conf.build.target == "runtime"
        assert conf.effective_build().skip_push is True

    def test_registry_port_allowed(self) -> None:
        """A registry host with a port is not a tag."""
        conf = ImageConfigSchema(image="localhost:5000/api")
        assert conf.image == "localhost:5000/api"

    @pytest.mark.parametrize(
        "image",
        ["repo/api:latest", "repo/api@sha256:abcd", "repo/my api", ""],
    )
    def test_invalid_image(self, image: str) -> None:
        """Tags, digests and whitespace should be rejected."""
        with pytest.raises(ValidationError):
            ImageConfigSchema(image=image)

    @pytest.mark.parametrize("tag", ["-bad", "has space", "a" * 129, ".dot"])
    def test_invalid_tag(self, tag: str) -> None:
        """Tags should follow the registry tag grammar."""
        with pytest.raises(ValidationError):
            ImageConfigSchema(tag=tag)

    def test_invalid_build_arg(self) -> None:
        """Build arg names must not contain '='."""
        with pytest.raises(ValidationError):
            ImageConfigSchema.model_validate({"build": {"build_args": {"A=B": "1"}}})

    def test_unknown_field(self) -> None:
        """Unknown fields should be rejected."""
        with pytest.raises(ValidationError):
            ImageConfigSchema.model_validate({"imag": "typo"})

    def test_disabled(self) -> None:
        """build.disabled should mark the entry disabled."""
        conf = ImageConfigSchema.model_validate({"build": {"disabled": True}})
        assert conf.disabled is True


class TestEffectiveBuild:
    """Tests for dev overrides."""

    @pytest.fixture
    def conf(self) -> ImageConfigSchema:
        return ImageConfigSchema.model_validate(
            {
                "build": {
                    "dockerfile": "Dockerfile",
                    "target": "runtime",
                    "build_args": {"A": "1", "B": "2"},
                },
                "dev": {
                    "dockerfile": "Dockerfile.dev",
                    "target": "debug",
                    "build_args": {"B": "dev"},
                },
            }
        )

    def test_regular(self, conf) -> None:
        """Dev overrides should be ignored outside dev mode."""
        build = conf.effective_build(is_dev=False)
        assert build.dockerfile == "Dockerfile"
        assert build.target == "runtime"
        assert build.build_args == {"A": "1", "B": "2"}

    def test_dev(self, conf) -> None:
        """Dev overrides should replace and merge settings."""
        build = conf.effective_build(is_dev=True)
        assert build.dockerfile == "Dockerfile.dev"
        assert build.target == "debug"
        assert build.build_args == {"A": "1", "B": "dev"}

    def test_dev_without_overrides(self) -> None:
        """Dev mode without overrides should match regular mode."""
        conf = ImageConfigSchema()
        assert conf.effective_build(is_dev=True) == conf.effective_build()


class TestWithBasePath:
    """Tests for ImageConfigSchema.with_base_path."""

    def test_resolves_relative(self, tmp_path: Path) -> None:
        """Relative paths should be resolved against the base path."""
        conf = ImageConfigSchema.model_validate(
            {
                "build": {"dockerfile": "api/Dockerfile", "context": "api"},
                "dev": {"dockerfile": "api/Dockerfile.dev"},
            }
        ).with_base_path(tmp_path)

        base = tmp_path.resolve()
        assert conf.build is not None
        assert conf.build.dockerfile == str(base / "api" / "Dockerfile")
        assert conf.build.context == str(base / "api")
        assert conf.dev is not None
        assert conf.dev.dockerfile == str(base / "api" / "Dockerfile.dev")

    def test_defaults_resolved(self, tmp_path: Path) -> None:
        """Default paths should resolve to the base directory."""
        conf = ImageConfigSchema().with_base_path(tmp_path)
        build = conf.effective_build()
        assert build.context == str(tmp_path.resolve())
        assert build.dockerfile == str(tmp_path.resolve() / "Dockerfile")

    def test_absolute_unchanged(self, tmp_path: Path) -> None:
        """Absolute paths should be kept."""
        conf = ImageConfigSchema.model_validate(
            {"build": {"context": "/srv/app"}}
        ).with_base_path(tmp_path)
        assert conf.build is not None
        assert conf.build.context == "/srv/app"


class TestImagesConfigSchema:
    """Tests for ImagesConfigSchema model."""

    def test_preserves_order(self) -> None:
        """Images should keep file order."""
        config = ImagesConfigSchema.model_validate(
            {"images": {"web": {}, "api": {}, "worker": {}}}
        )
        assert list(config.images) == ["web", "api", "worker"]

    def test_invalid_name(self) -> None:
        """Image config names must be safe identifiers."""
        with pytest.raises(ValidationError):
            ImagesConfigSchema.model_validate({"images": {"bad/name": {}}})
