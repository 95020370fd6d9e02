"""Build cache ORM models.

This module defines the ImageCacheEntry model storing, per image config
name, the last image/tag built and the fingerprint of its inputs.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from imagefleet.db import Base
from imagefleet.types import BuildFingerprint


class ImageCacheEntry(Base):
    """ORM model for the last known build of an image.

    Attributes:
        id: Primary key.
        namespace: Cache namespace the entry belongs to.
        image_config_name: Name of the image entry in the configuration.
        image_name: Repository the image was last built for.
        tag: Tag the image was last built under.
        dockerfile_hash: Dockerfile hash at the last build.
        context_hash: Context tree hash at the last build.
        options_hash: Build options hash at the last build.
        updated_at: Timestamp of the last write.
    """

    __tablename__ = "image_cache_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    namespace: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    image_config_name: Mapped[str] = mapped_column(String(255), nullable=False)

    image_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tag: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Fingerprint of the inputs of the last build
    dockerfile_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    context_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    options_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "namespace", "image_config_name", name="uq_image_cache_namespace_name"
        ),
    )

    def __repr__(self) -> str:
        """Return string representation of ImageCacheEntry."""
        return (
            f"<ImageCacheEntry(namespace='{self.namespace}', "
            f"image_config_name='{self.image_config_name}', "
            f"image='{self.image_name}:{self.tag}')>"
        )

    @property
    def fingerprint(self) -> BuildFingerprint | None:
        """Fingerprint recorded at the last build, if complete."""
        if not (self.dockerfile_hash and self.context_hash and self.options_hash):
            return None
        return BuildFingerprint(
            dockerfile_hash=self.dockerfile_hash,
            context_hash=self.context_hash,
            options_hash=self.options_hash,
        )

    def record_build(
        self,
        image_name: str,
        tag: str,
        fingerprint: BuildFingerprint | None = None,
    ) -> None:
        """Record a successful build.

        Args:
            image_name: Repository the image was built for.
            tag: Tag the image was built under.
            fingerprint: Inputs fingerprint of the build, if known.
        """
        self.image_name = image_name
        self.tag = tag
        if fingerprint is not None:
            self.dockerfile_hash = fingerprint.dockerfile_hash
            self.context_hash = fingerprint.context_hash
            self.options_hash = fingerprint.options_hash


__all__ = ["ImageCacheEntry"]
