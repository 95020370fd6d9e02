"""Image configuration loading.

This module loads the image configuration file (YAML or JSON), validates
it, and resolves relative Dockerfile and context paths against the
directory the file lives in.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from imagefleet.images.schema import ImagesConfigSchema


class ImagesConfigError(Exception):
    """Raised when the image configuration cannot be loaded."""

    def __init__(self, message: str, code: str = "images_config_error") -> None:
        super().__init__(message)
        self.code = code


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed JSON content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_images_config(
    data: dict[str, Any],
    base_path: Path | None = None,
) -> ImagesConfigSchema:
    """Validate image configuration data.

    Args:
        data: Dictionary containing the configuration.
        base_path: Directory relative paths are resolved against.
            Paths are left untouched when omitted.

    Returns:
        Validated ImagesConfigSchema.

    Raises:
        pydantic.ValidationError: If data does not match schema.
    """
    config = ImagesConfigSchema.model_validate(data)
    if base_path is None:
        return config
    return config.model_copy(
        update={
            "images": {
                name: conf.with_base_path(base_path)
                for name, conf in config.images.items()
            }
        }
    )


def load_images_config(path: Path) -> ImagesConfigSchema:
    """Load and validate the image configuration file.

    File format is determined by extension (.yaml, .yml for YAML,
    .json for JSON).

    Args:
        path: Path to the configuration file.

    Returns:
        Validated ImagesConfigSchema with paths resolved against the
        file's directory.

    Raises:
        ImagesConfigError: If the file is missing, unparsable or invalid.
    """
    suffix = path.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            data = load_yaml(path)
        elif suffix == ".json":
            data = load_json(path)
        else:
            raise ImagesConfigError(
                f"Unsupported file extension '{suffix}'. Use .yaml, .yml, or .json",
                code="unsupported_format",
            )
        return parse_images_config(data, base_path=path.resolve().parent)
    except FileNotFoundError:
        raise ImagesConfigError(
            f"Image configuration not found: {path}",
            code="config_not_found",
        ) from None
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ImagesConfigError(
            f"Failed to parse {path}: {e}",
            code="parse_error",
        ) from e
    except ValidationError as e:
        raise ImagesConfigError(
            f"Invalid image configuration {path}: {e}",
            code="validation_error",
        ) from e
    except ValueError as e:
        raise ImagesConfigError(str(e), code="parse_error") from e


__all__ = [
    "ImagesConfigError",
    "load_images_config",
    "load_json",
    "load_yaml",
    "parse_images_config",
]
