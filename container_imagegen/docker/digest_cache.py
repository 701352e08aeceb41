"""Per-run cache of image digests.

Lookups are keyed by the fully-qualified tag. Misses are resolved through the
manifest inspector and memoized, including "not found" results, so a tag is
inspected at most once per run unless its entry is overwritten. Only a
missing digest counts as "not found"; inspection failures propagate.
"""

from __future__ import annotations

import logging
import threading

from container_imagegen.docker.inspector import (
    InspectorError,
    ManifestInspector,
    get_manifest_digest_sha,
)
from container_imagegen.docker.names import get_digest_string, get_repo
from container_imagegen.types import ManifestMediaType

logger = logging.getLogger(__name__)


class DigestCache:
    """Thread-safe memo of ``tag -> repo@sha256:...`` digests."""

    def __init__(
        self,
        inspector: ManifestInspector,
        media_type: ManifestMediaType = ManifestMediaType.ANY,
    ) -> None:
        self.inspector = inspector
        self.media_type = media_type
        self._digests: dict[str, str | None] = {}
        self._lock = threading.Lock()

    def get_digest(self, tag: str, dry_run: bool) -> str | None:
        """Return the digest of a tag, inspecting the registry on a miss.

        Args:
            tag: Fully-qualified tag.
            dry_run: Passed to the inspector; a missing digest yields None.

        Returns:
            Digest reference qualified with the tag's repo, or None.

        Raises:
            InspectorError: If inspection fails other than by a missing digest.
            ProcessExecutionError: If the inspector command fails.
        """
        with self._lock:
            if tag in self._digests:
                return self._digests[tag]

        try:
            sha = get_manifest_digest_sha(self.inspector, tag, self.media_type, dry_run)
        except InspectorError as e:
            if e.code != "missing_digest":
                raise
            logger.info("No digest found for %s: %s", tag, e)
            sha = None
        digest = get_digest_string(get_repo(tag), sha) if sha else None
        logger.debug("Resolved digest of %s: %s", tag, digest)

        with self._lock:
            return self._digests.setdefault(tag, digest)

    def add_digest(self, tag: str, digest: str) -> None:
        """Set the digest of a tag, replacing any cached value."""
        with self._lock:
            self._digests[tag] = digest

    def __contains__(self, tag: object) -> bool:
        with self._lock:
            return tag in self._digests


__all__ = ["DigestCache"]
