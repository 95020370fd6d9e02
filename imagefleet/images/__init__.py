"""Image configuration module.

This module handles:
- Validation of the image configuration file
- Loading YAML/JSON configuration and resolving relative paths
- Dev-mode build overrides
"""

from imagefleet.images.io import (
    ImagesConfigError,
    load_images_config,
    parse_images_config,
)
from imagefleet.images.schema import (
    BuildOptionsSchema,
    DevOverridesSchema,
    EffectiveBuild,
    ImageConfigSchema,
    ImagesConfigSchema,
)

__all__ = [
    # Schema
    "BuildOptionsSchema",
    "DevOverridesSchema",
    "EffectiveBuild",
    "ImageConfigSchema",
    "ImagesConfigSchema",
    # IO functions
    "ImagesConfigError",
    "load_images_config",
    "parse_images_config",
]
