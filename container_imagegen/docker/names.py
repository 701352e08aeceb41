"""Image reference helpers.

Pure string helpers for splitting and composing image references of the
form ``[registry/]repo[:tag][@digest]``.
"""

DOCKER_HUB_REGISTRY = "docker.io"


def get_digest_sha(digest: str) -> str:
    """Return the ``sha256:...`` part of a digest reference.

    Args:
        digest: Either ``repo@sha256:...`` or a bare ``sha256:...``.

    Returns:
        The digest hash including its algorithm prefix.
    """
    return digest.split("@", 1)[1] if "@" in digest else digest


def get_digest_string(repo: str, sha: str) -> str:
    """Compose a ``repo@sha`` digest reference."""
    return f"{repo}@{sha}"


def get_image_name(
    registry: str | None,
    repo: str,
    tag: str | None = None,
    digest: str | None = None,
) -> str:
    """Compose an image reference.

    Args:
        registry: Registry host, may be empty.
        repo: Repository name.
        tag: Optional tag.
        digest: Optional digest hash (takes precedence over tag).

    Returns:
        Image reference string.
    """
    name = f"{registry}/{repo}" if registry else repo
    if digest:
        return f"{name}@{digest}"
    if tag:
        return f"{name}:{tag}"
    return name


def get_repo(image: str) -> str:
    """Return the image reference without its tag or digest."""
    name = image.split("@", 1)[0]
    last_slash = name.rfind("/")
    colon = name.rfind(":")
    if colon > last_slash:
        name = name[:colon]
    return name


def get_tag(image: str) -> str | None:
    """Return the tag of an image reference, if any."""
    name = image.split("@", 1)[0]
    last_slash = name.rfind("/")
    colon = name.rfind(":")
    if colon > last_slash:
        return name[colon + 1 :]
    return None


def get_registry(image: str) -> str | None:
    """Return the registry host of an image reference, if it has one.

    The first path component is treated as a registry when it contains a
    '.' or ':' or is 'localhost'.
    """
    if "/" not in image:
        return None
    first = image.split("/", 1)[0]
    if "." in first or ":" in first or first == "localhost":
        return first
    return None


def is_in_registry(image: str, registry: str | None) -> bool:
    """Check whether an image reference is hosted in the given registry."""
    if not registry:
        return False
    return image.startswith(f"{registry}/")


def trim_registry(image: str, registry: str | None = None) -> str:
    """Remove the registry host from an image reference.

    Args:
        image: Image reference.
        registry: Specific registry to trim; detected when omitted.

    Returns:
        Image reference without its registry.
    """
    if registry is None:
        registry = get_registry(image)
    if registry and image.startswith(f"{registry}/"):
        return image[len(registry) + 1 :]
    return image


def normalize_repo(image: str) -> str:
    """Normalize Docker Hub references.

    Strips an explicit ``docker.io`` registry and adds the ``library/``
    namespace to official images (``ubuntu:focal`` -> ``library/ubuntu:focal``).
    Images in other registries are returned unchanged.
    """
    image = trim_registry(image, DOCKER_HUB_REGISTRY)
    if get_registry(image) is None and "/" not in get_repo(image):
        return f"library/{image}"
    return image


def replace_repo(image: str, new_repo: str) -> str:
    """Replace the repository portion of an image reference, keeping tag/digest."""
    return new_repo + image[len(get_repo(image)) :]


__all__ = [
    "DOCKER_HUB_REGISTRY",
    "get_digest_sha",
    "get_digest_string",
    "get_image_name",
    "get_registry",
    "get_repo",
    "get_tag",
    "is_in_registry",
    "normalize_repo",
    "replace_repo",
    "trim_registry",
]
