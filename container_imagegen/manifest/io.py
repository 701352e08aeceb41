"""Manifest loading.

Manifests are JSON or YAML files; the format is determined by extension.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from container_imagegen.manifest.model import Manifest, ManifestFilter
from container_imagegen.manifest.schema import ManifestSchema


class ManifestLoadError(Exception):
    """Raised when a manifest file cannot be read or validated."""

    def __init__(self, message: str, code: str = "manifest_load_error") -> None:
        super().__init__(message)
        self.code = code


def load_manifest_data(path: Path) -> dict[str, Any]:
    """Load the raw content of a manifest file.

    Args:
        path: Path to a .json, .yaml or .yml file.

    Returns:
        Parsed content as a dictionary.

    Raises:
        ManifestLoadError: If the file is missing, unparsable or not a mapping.
    """
    suffix = path.suffix.lower()
    try:
        with open(path, encoding="utf-8") as f:
            if suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise ManifestLoadError(
                    f"Unsupported manifest extension '{suffix}'. Use .json, .yaml, or .yml",
                    code="unsupported_format",
                )
    except FileNotFoundError as e:
        raise ManifestLoadError(f"Manifest not found: {path}", code="not_found") from e
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ManifestLoadError(f"Parse error in {path}: {e}", code="parse_error") from e

    if not isinstance(data, dict):
        raise ManifestLoadError(
            f"Expected a mapping in {path}, got {type(data).__name__}",
            code="parse_error",
        )
    return data


def parse_manifest_schema(data: dict[str, Any]) -> ManifestSchema:
    """Validate raw manifest data.

    Raises:
        ManifestLoadError: If data does not match the schema.
    """
    try:
        return ManifestSchema.model_validate(data)
    except ValidationError as e:
        raise ManifestLoadError(f"Invalid manifest: {e}", code="validation") from e


def load_manifest(
    path: Path,
    registry_override: str | None = None,
    repo_prefix: str = "",
    platform_filter: ManifestFilter | None = None,
) -> Manifest:
    """Load, validate and resolve a manifest file.

    Args:
        path: Manifest file path.
        registry_override: Registry to use instead of the declared one.
        repo_prefix: Prefix applied to every repo name.
        platform_filter: Platform selection.

    Returns:
        Resolved Manifest.
    """
    schema = parse_manifest_schema(load_manifest_data(path))
    return Manifest(
        schema,
        directory=path.parent,
        registry_override=registry_override,
        repo_prefix=repo_prefix,
        platform_filter=platform_filter,
    )


__all__ = [
    "ManifestLoadError",
    "load_manifest",
    "load_manifest_data",
    "parse_manifest_schema",
]
