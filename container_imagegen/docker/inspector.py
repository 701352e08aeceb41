"""Registry manifest inspection.

This module handles:
- The ManifestInspector contract returning raw manifest descriptors
- A manifest-tool CLI implementation
- Digest resolution by media type and concrete-tag layer lookup

A descriptor is a dict with ``MediaType``, ``Digest`` and, for single
manifests, ``Layers`` keys.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from container_imagegen.builds.runner import run_process
from container_imagegen.types import ManifestMediaType

logger = logging.getLogger(__name__)

MANIFEST_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.v2+json"
MANIFEST_LIST_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.list.v2+json"


class InspectorError(Exception):
    """Raised when manifest inspection fails or returns unusable data."""

    def __init__(self, message: str, code: str = "inspect_failed") -> None:
        super().__init__(message)
        self.code = code


class ManifestInspector(Protocol):
    """Capability to read raw manifest descriptors from a registry."""

    def inspect(self, image: str, dry_run: bool) -> list[dict[str, Any]]:
        """Return the manifest descriptors of an image reference."""
        ...


class ManifestToolInspector:
    """ManifestInspector backed by the manifest-tool CLI."""

    def __init__(self, executable: str = "manifest-tool") -> None:
        self.executable = executable

    def inspect(self, image: str, dry_run: bool) -> list[dict[str, Any]]:
        """Run ``manifest-tool inspect --raw`` for an image.

        Returns:
            List of descriptors; empty in dry run.

        Raises:
            InspectorError: If the output cannot be parsed.
        """
        result = run_process(
            [self.executable, "inspect", "--raw", image],
            dry_run=dry_run,
        )
        if result is None:
            return []

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise InspectorError(
                f"Invalid manifest-tool output for '{image}': {e}",
                code="inspect_failed",
            ) from e

        if isinstance(data, dict):
            return [data]
        return [item for item in data if isinstance(item, dict)]


def _find_digest(descriptors: list[dict[str, Any]], media_type: str) -> str | None:
    for descriptor in descriptors:
        if descriptor.get("MediaType") == media_type:
            return descriptor.get("Digest") or None
    return None


def get_manifest_digest_sha(
    inspector: ManifestInspector,
    image: str,
    media_type: ManifestMediaType,
    dry_run: bool,
) -> str | None:
    """Resolve the digest hash of an image.

    A manifest list digest is preferred when lists are accepted; otherwise
    the single manifest digest is returned.

    Args:
        inspector: Manifest inspector.
        image: Image reference.
        media_type: Accepted manifest kinds.
        dry_run: Return None instead of raising when no digest is found.

    Returns:
        Digest hash (``sha256:...``), or None in dry run.

    Raises:
        InspectorError: If no digest of an accepted kind exists.
    """
    if not media_type & ManifestMediaType.ANY:
        raise InspectorError(
            f"Unsupported media type: '{media_type}'", code="unsupported_media_type"
        )

    descriptors = inspector.inspect(image, dry_run)

    if media_type & ManifestMediaType.MANIFEST_LIST:
        digest = _find_digest(descriptors, MANIFEST_LIST_MEDIA_TYPE)
        if digest:
            return digest
        if media_type == ManifestMediaType.MANIFEST_LIST and not dry_run:
            raise InspectorError(
                f"Unable to find digest for '{image}' with media type "
                f"'{MANIFEST_LIST_MEDIA_TYPE}'",
                code="missing_digest",
            )

    if media_type & ManifestMediaType.MANIFEST:
        digest = _find_digest(descriptors, MANIFEST_MEDIA_TYPE)
        if digest:
            return digest
        if not dry_run:
            raise InspectorError(
                f"Unable to find digest for '{image}' with media type "
                f"'{MANIFEST_MEDIA_TYPE}'",
                code="missing_digest",
            )

    return None


def get_image_layers(
    inspector: ManifestInspector,
    image: str,
    dry_run: bool,
) -> list[str]:
    """Return the layer digests of a concrete (single-manifest) tag.

    Raises:
        InspectorError: If the tag does not resolve to exactly one manifest.
    """
    descriptors = inspector.inspect(image, dry_run)
    if dry_run and not descriptors:
        return []

    if len(descriptors) != 1:
        raise InspectorError(
            f"'{image}' is expected to be a concrete tag with 1 manifest. "
            f"It has {len(descriptors)} manifests.",
            code="manifest_count",
        )
    return list(descriptors[0].get("Layers") or [])


__all__ = [
    "InspectorError",
    "MANIFEST_LIST_MEDIA_TYPE",
    "MANIFEST_MEDIA_TYPE",
    "ManifestInspector",
    "ManifestToolInspector",
    "get_image_layers",
    "get_manifest_digest_sha",
]
