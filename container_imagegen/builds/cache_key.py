"""Build cache key computation.

Two platforms with the same cache key are build-equivalent: the same
Dockerfile built with the same arguments. Within a run, the second one reuses
the image of the first instead of being rebuilt.
"""

from __future__ import annotations

import hashlib
import json

from container_imagegen.manifest.model import ManifestPlatform


def normalize_build_args(build_args: dict[str, str]) -> list[tuple[str, str]]:
    """Return build args as ``(key, value)`` pairs sorted by key.

    Args:
        build_args: Build arguments.

    Returns:
        Sorted list of pairs.
    """
    return [(key, build_args[key]) for key in sorted(build_args)]


def compute_build_args_hash(build_args: dict[str, str]) -> str:
    """Compute a SHA-256 hash over the normalized build args.

    The pairs are serialized as JSON so keys and values cannot run into
    each other.
    """
    canonical = json.dumps(normalize_build_args(build_args), separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def compute_cache_key(dockerfile: str, build_args: dict[str, str]) -> str:
    """Compute a build cache key.

    Args:
        dockerfile: Dockerfile path relative to the manifest.
        build_args: Manifest build arguments of the platform.

    Returns:
        Cache key of the form ``<dockerfile>-<build args hash>``.
    """
    return f"{dockerfile}-{compute_build_args_hash(build_args)}"


def compute_platform_cache_key(platform: ManifestPlatform) -> str:
    """Compute the build cache key of a manifest platform."""
    return compute_cache_key(
        platform.dockerfile_path_relative_to_manifest,
        platform.build_args,
    )


__all__ = [
    "compute_build_args_hash",
    "compute_cache_key",
    "compute_platform_cache_key",
    "normalize_build_args",
]
