"""imagefleet - Build the container images of a project that changed.

This package decides per image whether a rebuild is needed, assigns tags,
runs builds sequentially or concurrently, and reports the resulting
image-name-to-tag mapping for deployment steps.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
