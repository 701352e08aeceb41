"""Manifest module.

This module handles:
- Validation of manifest files (JSON/YAML)
- Resolution of repos, images, platforms and tags
- Base image discovery from Dockerfile FROM instructions
- Platform filtering
"""

from container_imagegen.manifest.io import ManifestLoadError, load_manifest
from container_imagegen.manifest.model import (
    DockerfileNotFoundError,
    Manifest,
    ManifestFilter,
    ManifestImage,
    ManifestPlatform,
    ManifestRepo,
    ManifestTag,
    PlatformKey,
)
from container_imagegen.manifest.schema import ManifestSchema

__all__ = [
    "DockerfileNotFoundError",
    "Manifest",
    "ManifestFilter",
    "ManifestImage",
    "ManifestLoadError",
    "ManifestPlatform",
    "ManifestRepo",
    "ManifestSchema",
    "ManifestTag",
    "PlatformKey",
    "load_manifest",
]
