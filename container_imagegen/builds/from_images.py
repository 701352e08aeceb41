"""Tag resolution for FROM images.

A Dockerfile's FROM reference can differ from the tag used to pull it (when
external images are mirrored under a source repo prefix), from the tag it is
known by locally (when the registry is overridden) and from its public tag.
"""

from __future__ import annotations

from container_imagegen.docker.names import is_in_registry, normalize_repo, trim_registry
from container_imagegen.manifest.model import Manifest


class FromImageResolver:
    """Resolve pull, local and public tags of FROM images.

    Args:
        manifest: Resolved manifest.
        source_repo_prefix: Repo prefix under which external images are
            mirrored in the effective registry. Mirroring is disabled when
            None.
    """

    def __init__(self, manifest: Manifest, source_repo_prefix: str | None = None) -> None:
        self.manifest = manifest
        self.source_repo_prefix = source_repo_prefix

    def is_internally_owned(self, image: str) -> bool:
        """Check whether an image lives in the effective or declared registry."""
        return is_in_registry(image, self.manifest.registry) or is_in_registry(
            image, self.manifest.model_registry
        )

    def trim_internally_owned(self, image: str) -> str:
        """Remove the registry and repo prefix from an internally owned image."""
        if not self.is_internally_owned(image):
            return image
        return trim_registry(image).removeprefix(self.manifest.repo_prefix)

    def get_tag(self, image: str, registry: str | None) -> str:
        """Return the tag used to access a FROM image.

        Images already in ``registry`` or in the declared registry are
        returned unchanged; other images map to their mirror location.
        """
        if (
            is_in_registry(image, registry)
            or is_in_registry(image, self.manifest.model_registry)
            or self.source_repo_prefix is None
        ):
            return image

        source_image = self.trim_internally_owned(normalize_repo(image))
        return f"{self.manifest.registry}/{self.source_repo_prefix}{source_image}"

    def pull_tag(self, image: str) -> str:
        """Tag to pull a FROM image from."""
        return self.get_tag(image, self.manifest.model_registry)

    def local_tag(self, image: str) -> str:
        """Tag a pulled or locally built FROM image is known by."""
        return self.get_tag(image, self.manifest.registry)

    def public_tag(self, image: str) -> str:
        """Publicly available tag of a FROM image."""
        trimmed = self.trim_internally_owned(image)
        if trimmed == image:
            return trimmed
        return f"{self.manifest.model_registry}/{trimmed}"


__all__ = ["FromImageResolver"]
