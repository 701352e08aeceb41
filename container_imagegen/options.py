"""Validated options for CLI commands.

Each command builds its own options model from CLI flags and settings; the
services receive the validated model rather than raw arguments.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from container_imagegen.manifest.model import ManifestFilter


class _OptionsModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class GitOptions(_OptionsModel):
    """Location of a file in a GitHub repository.

    Attributes:
        owner: Repository owner.
        repo: Repository name.
        branch: Branch to read from and commit to.
        path: File path within the repository.
        token: Access token for the GitHub API.
        username: Committer name (defaults to the token's user).
        email: Committer email.
        github_url: Base URL of the GitHub web host.
    """

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    branch: str = "main"
    path: str = Field(min_length=1)
    token: str | None = None
    username: str | None = None
    email: str | None = None
    github_url: str = "https://github.com"

    @field_validator("path")
    @classmethod
    def strip_leading_slash(cls, v: str) -> str:
        """Store the path relative to the repository root."""
        return v.lstrip("/")


class BuildOptions(_OptionsModel):
    """Options of the build command.

    Attributes:
        manifest_path: Manifest file.
        dry_run: Log engine operations without executing them.
        no_cache: Always build, never reuse published images.
        retry: Retry failed builds.
        skip_pulling: Skip the base image pull phase.
        skip_platform_check: Skip the base image architecture check.
        push: Push built images and record their digests.
        output_variable: Name of the pipeline variable receiving built digests.
        image_info_output_path: Where to write the image info of this run.
        image_info_source_path: Previously published image info used for
            cache lookups.
        source_repo_url: URL of the repository containing the Dockerfiles.
        repo_prefix: Prefix applied to every repo name.
        source_repo_prefix: Repo prefix under which external base images are
            mirrored.
        registry_override: Registry to use instead of the manifest's.
        build_args: Build arguments applied to every platform.
        installed_packages_script: Script listing an image's installed
            packages.
        platform_filter: Platform selection.
    """

    manifest_path: Path
    dry_run: bool = False
    no_cache: bool = False
    retry: bool = False
    skip_pulling: bool = False
    skip_platform_check: bool = False
    push: bool = False
    output_variable: str | None = None
    image_info_output_path: Path | None = None
    image_info_source_path: Path | None = None
    source_repo_url: str | None = None
    repo_prefix: str = ""
    source_repo_prefix: str | None = None
    registry_override: str | None = None
    build_args: dict[str, str] = Field(default_factory=dict)
    installed_packages_script: Path | None = None
    platform_filter: ManifestFilter = Field(default_factory=ManifestFilter)

    @field_validator("source_repo_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize the repository URL."""
        return v.rstrip("/") if v else v


class PublishImageInfoOptions(_OptionsModel):
    """Options of the publish-image-info command.

    Attributes:
        image_info_path: Image info produced by a build.
        manifest_path: Manifest the image info was built from.
        git: Location of the published image info.
        dry_run: Compute the update without committing it.
    """

    image_info_path: Path
    manifest_path: Path
    git: GitOptions
    dry_run: bool = False


def parse_build_args(values: list[str] | None) -> dict[str, str]:
    """Parse ``KEY=VALUE`` build arguments.

    Raises:
        ValueError: If an entry has no '='.
    """
    build_args: dict[str, str] = {}
    for value in values or []:
        key, sep, arg = value.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid build arg '{value}', expected KEY=VALUE")
        build_args[key] = arg
    return build_args


__all__ = [
    "BuildOptions",
    "GitOptions",
    "PublishImageInfoOptions",
    "parse_build_args",
]
