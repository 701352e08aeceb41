"""Pydantic models for image info records.

An image info document mirrors the manifest tree (repo -> image -> platform)
and records what each build produced: digests, base image digests, layers,
creation time, Dockerfile commit and installed components.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from container_imagegen.manifest.model import ManifestPlatform, PlatformKey


class _ImageInfoModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Component(_ImageInfoModel):
    """An installed package reported for a platform's image."""

    type: str
    name: str
    version: str


class PlatformRecord(_ImageInfoModel):
    """Build results for one platform.

    Attributes:
        dockerfile: Dockerfile path relative to the manifest.
        simple_tags: Sorted pushed tag names.
        digest: Registry-qualified digest of the image.
        base_image_digest: Registry-qualified digest of the final-stage base image.
        os_type: OS family display name (e.g. 'Linux').
        os_version: OS version.
        architecture: CPU architecture.
        created: Image creation time (UTC).
        commit_url: URL of the Dockerfile at the commit it was built from.
        layers: Ordered layer digests.
        components: Installed packages.
        is_unchanged: Internal flag set when a cached image was reused with
            all of its tags already published. Never published.
    """

    dockerfile: str
    simple_tags: list[str] = Field(default_factory=list)
    digest: str | None = None
    base_image_digest: str | None = None
    os_type: str
    os_version: str
    architecture: str
    created: datetime | None = None
    commit_url: str | None = None
    layers: list[str] = Field(default_factory=list)
    components: list[Component] = Field(default_factory=list)
    is_unchanged: bool | None = None

    @property
    def key(self) -> PlatformKey:
        """Identity of this platform."""
        return PlatformKey(self.dockerfile, self.architecture, self.os_type, self.os_version)

    @property
    def identifier(self) -> str:
        """Readable identity string for messages."""
        return "-".join(self.key)

    @classmethod
    def from_manifest_platform(cls, platform: ManifestPlatform) -> "PlatformRecord":
        """Create an empty record for a manifest platform."""
        key = platform.key
        return cls(
            dockerfile=key.dockerfile,
            architecture=key.architecture,
            os_type=key.os_type,
            os_version=key.os_version,
            simple_tags=sorted(tag.name for tag in platform.tags if not tag.is_local),
        )


class SharedTagsRecord(_ImageInfoModel):
    """Shared-tag manifest block of an image."""

    shared_tags: list[str] = Field(default_factory=list)


class ImageRecord(_ImageInfoModel):
    """Build results for the platforms of one image."""

    product_version: str | None = None
    manifest: SharedTagsRecord | None = None
    platforms: list[PlatformRecord] = Field(default_factory=list)

    @property
    def shared_tags(self) -> list[str]:
        """Shared tag names, empty when there is no manifest block."""
        return self.manifest.shared_tags if self.manifest else []


class RepoRecord(_ImageInfoModel):
    """Build results for the images of one repo."""

    repo: str
    images: list[ImageRecord] = Field(default_factory=list)


class ImageInfoDocument(_ImageInfoModel):
    """Root of an image info record."""

    repos: list[RepoRecord] = Field(default_factory=list)

    def iter_platforms(self) -> list[PlatformRecord]:
        """All platform records in document order."""
        return [
            platform
            for repo in self.repos
            for image in repo.images
            for platform in image.platforms
        ]

    def find_repo(self, name: str) -> RepoRecord | None:
        """Return the repo record with the given name, if any."""
        for repo in self.repos:
            if repo.repo == name:
                return repo
        return None


__all__ = [
    "Component",
    "ImageInfoDocument",
    "ImageRecord",
    "PlatformRecord",
    "RepoRecord",
    "SharedTagsRecord",
]
