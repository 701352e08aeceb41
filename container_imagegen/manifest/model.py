"""In-memory manifest model.

Resolves the raw manifest schema into repos, images, platforms and tags with
fully-qualified names, Dockerfile paths and base-image references. The model
is built once per run and never mutated afterwards.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

from container_imagegen.docker.names import get_image_name, replace_repo
from container_imagegen.manifest.dockerfile import read_from_images
from container_imagegen.manifest.schema import (
    ImageSchema,
    ManifestSchema,
    PlatformSchema,
    TagSchema,
)
from container_imagegen.types import OsType

logger = logging.getLogger(__name__)

DOCKERFILE_NAME = "Dockerfile"


class DockerfileNotFoundError(Exception):
    """Raised when a platform's Dockerfile does not exist."""

    def __init__(self, path: Path, code: str = "dockerfile_not_found") -> None:
        super().__init__(f"Dockerfile not found: {path}")
        self.path = path
        self.code = code


class PlatformKey(NamedTuple):
    """Identity of a platform across manifest and image info records."""

    dockerfile: str
    architecture: str
    os_type: str
    os_version: str


@dataclass(frozen=True)
class ManifestTag:
    """A tag applied to a built image.

    Attributes:
        name: Simple tag name (e.g. '6.0-focal').
        fully_qualified_name: Registry-qualified reference.
        is_local: Local-only tags are never pushed.
    """

    name: str
    fully_qualified_name: str
    is_local: bool = False


@dataclass
class ManifestPlatform:
    """A Dockerfile built for one OS/architecture combination."""

    repo_name: str
    full_repo_model_name: str
    dockerfile_path: Path
    dockerfile_path_relative_to_manifest: str
    build_context_path: Path
    os: OsType
    os_version: str
    architecture: str
    variant: str | None
    build_args: dict[str, str]
    tags: list[ManifestTag]
    from_images: list[str] = field(default_factory=list)
    internal_from_images: list[str] = field(default_factory=list)
    overridden_from_images: list[str] = field(default_factory=list)
    final_stage_from_image: str | None = None
    package_query_script: Path | None = None

    @property
    def key(self) -> PlatformKey:
        """Identity of this platform."""
        return PlatformKey(
            self.dockerfile_path_relative_to_manifest,
            self.architecture,
            self.os.display_name,
            self.os_version,
        )

    @property
    def platform_label(self) -> str:
        """Platform string passed to the engine (e.g. 'linux/arm64/v8')."""
        label = f"{self.os.value}/{self.architecture}"
        if self.variant:
            label += f"/{self.variant}"
        return label

    @property
    def external_from_images(self) -> list[str]:
        """Base images not produced by any repo in the manifest."""
        return [
            image for image in self.from_images if image not in self.internal_from_images
        ]

    def is_internal_from_image(self, image: str) -> bool:
        """Check whether a FROM image is produced by a repo in the manifest."""
        return image in self.internal_from_images


@dataclass
class ManifestImage:
    """A group of platforms sharing a product version and shared tags."""

    product_version: str | None
    shared_tags: list[ManifestTag]
    all_platforms: list[ManifestPlatform]
    filtered_platforms: list[ManifestPlatform]

    def find_platform(self, key: PlatformKey) -> ManifestPlatform | None:
        """Return the platform with the given identity, if any."""
        for platform in self.all_platforms:
            if platform.key == key:
                return platform
        return None


@dataclass
class ManifestRepo:
    """A repository of images.

    Attributes:
        name: Repo name as recorded in image info (repo prefix applied).
        qualified_name: Registry-qualified name used for local tags.
        full_model_name: Name in the manifest's own registry, without
            overrides (the public name).
    """

    id: str | None
    name: str
    qualified_name: str
    full_model_name: str
    all_images: list[ManifestImage] = field(default_factory=list)

    @property
    def filtered_images(self) -> list[ManifestImage]:
        """Images that have at least one platform selected by the filter."""
        return [image for image in self.all_images if image.filtered_platforms]


@dataclass
class ManifestFilter:
    """Selection of platforms to operate on.

    Attributes:
        paths: Glob patterns matched against Dockerfile paths.
        architecture: Only this architecture.
        os_type: Only this OS family.
        os_versions: Glob patterns matched against the OS version.
    """

    paths: list[str] = field(default_factory=list)
    architecture: str | None = None
    os_type: str | None = None
    os_versions: list[str] = field(default_factory=list)

    def matches(self, platform: ManifestPlatform) -> bool:
        """Check whether a platform is selected by this filter."""
        if self.architecture and platform.architecture != self.architecture.lower():
            return False
        if self.os_type and platform.os.value != self.os_type.lower():
            return False
        if self.os_versions and not any(
            fnmatch.fnmatch(platform.os_version, pattern) for pattern in self.os_versions
        ):
            return False
        if self.paths:
            dockerfile = platform.dockerfile_path_relative_to_manifest
            directory = dockerfile.rsplit("/", 1)[0] if "/" in dockerfile else ""
            return any(
                fnmatch.fnmatch(dockerfile, pattern)
                or fnmatch.fnmatch(directory, pattern.rstrip("/"))
                for pattern in self.paths
            )
        return True


class Manifest:
    """Resolved manifest.

    Attributes:
        directory: Directory containing the manifest file.
        model_registry: Registry declared in the manifest.
        registry: Effective registry (override or declared registry).
        repo_prefix: Prefix applied to repo names.
        all_repos: Every repo in the manifest.
    """

    def __init__(
        self,
        schema: ManifestSchema,
        directory: Path,
        registry_override: str | None = None,
        repo_prefix: str = "",
        platform_filter: ManifestFilter | None = None,
    ) -> None:
        self.directory = directory
        self.model_registry = schema.registry
        self.registry = registry_override or schema.registry
        self.repo_prefix = repo_prefix
        self.filter = platform_filter or ManifestFilter()

        self.all_repos: list[ManifestRepo] = [
            ManifestRepo(
                id=repo.id,
                name=f"{repo_prefix}{repo.name}",
                qualified_name=get_image_name(self.registry, f"{repo_prefix}{repo.name}"),
                full_model_name=get_image_name(self.model_registry, repo.name),
            )
            for repo in schema.repos
        ]

        for repo, repo_schema in zip(self.all_repos, schema.repos):
            repo.all_images = [
                self._create_image(repo, image_schema)
                for image_schema in repo_schema.images
            ]

    @property
    def filtered_repos(self) -> list[ManifestRepo]:
        """Repos that have at least one image selected by the filter."""
        return [repo for repo in self.all_repos if repo.filtered_images]

    def get_filtered_platforms(self) -> list[ManifestPlatform]:
        """All platforms selected by the filter, in manifest order."""
        return [
            platform
            for repo in self.filtered_repos
            for image in repo.filtered_images
            for platform in image.filtered_platforms
        ]

    def find_repo(self, name: str) -> ManifestRepo | None:
        """Return the repo recorded under the given name, if any."""
        for repo in self.all_repos:
            if repo.name == name:
                return repo
        return None

    def find_repo_by_full_model_name(self, full_model_name: str) -> ManifestRepo | None:
        """Return the repo with the given public (unoverridden) name, if any."""
        for repo in self.all_repos:
            if repo.full_model_name == full_model_name:
                return repo
        return None

    def _create_tags(self, repo: ManifestRepo, tags: dict[str, TagSchema]) -> list[ManifestTag]:
        return [
            ManifestTag(
                name=name,
                fully_qualified_name=get_image_name(None, repo.qualified_name, tag=name),
                is_local=tag.is_local,
            )
            for name, tag in tags.items()
        ]

    def _create_image(self, repo: ManifestRepo, schema: ImageSchema) -> ManifestImage:
        platforms = [
            self._create_platform(repo, platform_schema)
            for platform_schema in schema.platforms
        ]
        return ManifestImage(
            product_version=schema.product_version,
            shared_tags=self._create_tags(repo, schema.shared_tags),
            all_platforms=platforms,
            filtered_platforms=[p for p in platforms if self.filter.matches(p)],
        )

    def _create_platform(self, repo: ManifestRepo, schema: PlatformSchema) -> ManifestPlatform:
        dockerfile_path = (self.directory / schema.dockerfile).resolve()
        if dockerfile_path.is_dir():
            dockerfile_path = dockerfile_path / DOCKERFILE_NAME
        if not dockerfile_path.is_file():
            raise DockerfileNotFoundError(dockerfile_path)

        relative = dockerfile_path.relative_to(self.directory.resolve()).as_posix()

        package_query_script: Path | None = None
        if (
            schema.package_query_overrides is not None
            and schema.package_query_overrides.get_installed_packages_path
        ):
            package_query_script = (
                self.directory / schema.package_query_overrides.get_installed_packages_path
            )

        platform = ManifestPlatform(
            repo_name=repo.qualified_name,
            full_repo_model_name=repo.full_model_name,
            dockerfile_path=dockerfile_path,
            dockerfile_path_relative_to_manifest=relative,
            build_context_path=dockerfile_path.parent,
            os=schema.os,
            os_version=schema.os_version,
            architecture=schema.architecture,
            variant=schema.variant,
            build_args=dict(schema.build_args),
            tags=self._create_tags(repo, schema.tags),
            package_query_script=package_query_script,
        )
        self._resolve_from_images(platform)
        return platform

    def _resolve_internal_reference(self, image: str) -> tuple[str, bool] | None:
        """Map a FROM image onto a manifest repo.

        Returns:
            Tuple of (effective image reference, was rewritten), or None when
            the image is not produced by the manifest.
        """
        for repo in self.all_repos:
            for prefix in (repo.qualified_name, repo.full_model_name):
                if image.startswith(f"{prefix}:") or image.startswith(f"{prefix}@"):
                    if prefix == repo.qualified_name:
                        return image, False
                    return replace_repo(image, repo.qualified_name), True
        return None

    def _resolve_from_images(self, platform: ManifestPlatform) -> None:
        from_info = read_from_images(platform.dockerfile_path, platform.build_args)
        rewritten: dict[str, str] = {}

        for image in from_info.from_images:
            resolved = self._resolve_internal_reference(image)
            if resolved is None:
                effective = image
            else:
                effective, overridden = resolved
                platform.internal_from_images.append(effective)
                if overridden:
                    platform.overridden_from_images.append(image)
                    rewritten[image] = effective
            platform.from_images.append(effective)

        final = from_info.final_stage_from_image
        platform.final_stage_from_image = rewritten.get(final, final) if final else None
        logger.debug(
            "Resolved base images for %s: %s (final stage: %s)",
            platform.dockerfile_path_relative_to_manifest,
            platform.from_images,
            platform.final_stage_from_image,
        )


__all__ = [
    "DockerfileNotFoundError",
    "Manifest",
    "ManifestFilter",
    "ManifestImage",
    "ManifestPlatform",
    "ManifestRepo",
    "ManifestTag",
    "PlatformKey",
]
