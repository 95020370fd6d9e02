"""Allow running imagefleet as a module: python -m imagefleet."""

from imagefleet.cli import app

app(prog_name="imagefleet")
