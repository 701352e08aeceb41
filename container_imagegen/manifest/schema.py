"""Pydantic models for the image manifest file.

The manifest declares repositories, their images and the platforms each
image is built for. Field names use camelCase in files; Python code uses
snake_case attributes.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from container_imagegen.types import OsType


class _ManifestModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TagSchema(_ManifestModel):
    """Schema for a tag definition.

    Attributes:
        is_local: Tag exists only during the build and is never pushed.
    """

    is_local: bool = Field(default=False, description="Never push this tag")


class PackageQueryOverridesSchema(_ManifestModel):
    """Per-platform overrides for installed-package enumeration."""

    get_installed_packages_path: str | None = Field(
        default=None,
        description="Script path relative to the manifest directory",
    )


class PlatformSchema(_ManifestModel):
    """Schema for a platform (one Dockerfile built for one OS/architecture).

    Attributes:
        dockerfile: Dockerfile path or directory, relative to the manifest.
        os: Operating system family.
        os_version: OS version name (e.g. 'focal', 'nanoserver-ltsc2022').
        architecture: CPU architecture (e.g. 'amd64', 'arm64').
        variant: Optional architecture variant (e.g. 'v8').
        build_args: Build arguments passed to the build.
        tags: Platform tags keyed by simple tag name.
        package_query_overrides: Optional package query settings.
    """

    dockerfile: Annotated[str, Field(min_length=1)]
    os: OsType = OsType.LINUX
    os_version: Annotated[str, Field(min_length=1)]
    architecture: str = Field(default="amd64", min_length=1)
    variant: str | None = None
    build_args: dict[str, str] = Field(default_factory=dict)
    tags: dict[str, TagSchema] = Field(default_factory=dict)
    package_query_overrides: PackageQueryOverridesSchema | None = None

    @field_validator("architecture")
    @classmethod
    def normalize_architecture(cls, v: str) -> str:
        """Architectures are compared case-insensitively."""
        return v.lower()


class ImageSchema(_ManifestModel):
    """Schema for an image (a group of platforms sharing tags)."""

    product_version: str | None = None
    shared_tags: dict[str, TagSchema] = Field(default_factory=dict)
    platforms: list[PlatformSchema] = Field(default_factory=list)


class RepoSchema(_ManifestModel):
    """Schema for a repository."""

    id: str | None = None
    name: Annotated[str, Field(min_length=1)]
    images: list[ImageSchema] = Field(default_factory=list)


class ManifestSchema(_ManifestModel):
    """Root manifest schema.

    Attributes:
        registry: Registry the repos are published to (may be empty).
        repos: Repositories, in dependency order.
    """

    registry: str = ""
    repos: list[RepoSchema] = Field(default_factory=list)

    @field_validator("repos")
    @classmethod
    def validate_unique_repo_names(cls, v: list[RepoSchema]) -> list[RepoSchema]:
        """Repo names must be unique."""
        names = [repo.name for repo in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate repo names: {', '.join(duplicates)}")
        return v


__all__ = [
    "ImageSchema",
    "ManifestSchema",
    "PackageQueryOverridesSchema",
    "PlatformSchema",
    "RepoSchema",
    "TagSchema",
]
