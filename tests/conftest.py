"""Shared fixtures.

Manifests are written to a temporary directory together with their
Dockerfiles. The fake inspector, engine and git service record their calls
so tests can assert on what a run did without a container engine.
"""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from container_imagegen.config import Settings
from container_imagegen.docker.inspector import MANIFEST_MEDIA_TYPE
from container_imagegen.manifest.io import load_manifest

DEFAULT_CREATED = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
SOURCE_REPO_URL = "https://github.com/dotnet/dotnet-docker"
COMMIT_SHA = "0123456789abcdef0123456789abcdef01234567"


class FakeInspector:
    """ManifestInspector returning single-manifest descriptors from a dict."""

    def __init__(self) -> None:
        self.digests: dict[str, str] = {}
        self.layers: dict[str, list[str]] = {}
        self.calls: list[str] = []

    def inspect(self, image, dry_run):
        self.calls.append(image)
        if dry_run or image not in self.digests:
            return []
        return [
            {
                "MediaType": MANIFEST_MEDIA_TYPE,
                "Digest": self.digests[image],
                "Layers": self.layers.get(image, []),
            }
        ]


class FakeEngine:
    """ImageEngine recording every call."""

    def __init__(self) -> None:
        self.builds: list[dict] = []
        self.pulls: list[tuple[str, str | None]] = []
        self.pushes: list[str] = []
        self.tags: list[tuple[str, str]] = []
        self.build_output = "Successfully built"
        self.arch: tuple[str | None, str | None] = ("amd64", None)
        self.created: dict[str, datetime] = {}
        self.layers = ["sha256:layer1", "sha256:layer2"]

    def build_image(
        self, dockerfile_path, build_context_path, platform, tags, build_args, retry, dry_run
    ):
        self.builds.append(
            {
                "dockerfile": dockerfile_path,
                "content": dockerfile_path.read_text(encoding="utf-8"),
                "platform": platform,
                "tags": list(tags),
                "build_args": dict(build_args),
            }
        )
        return None if dry_run else self.build_output

    def pull_image(self, image, platform, dry_run):
        self.pulls.append((image, platform))

    def push_image(self, tag, dry_run):
        self.pushes.append(tag)

    def create_tag(self, image, tag, dry_run):
        self.tags.append((image, tag))

    def get_created_date(self, image, dry_run):
        if dry_run:
            return None
        return self.created.get(image, DEFAULT_CREATED)

    def get_image_arch(self, image, dry_run):
        if dry_run:
            return None, None
        return self.arch

    def get_image_manifest_layers(self, image, dry_run):
        return [] if dry_run else list(self.layers)


class FakeGitService:
    """GitService returning commit URLs for a fixed commit."""

    def __init__(self, sha: str = COMMIT_SHA) -> None:
        self.sha = sha
        self.calls: list[Path] = []

    def get_dockerfile_commit_url(self, platform, source_repo_url, source_branch=None):
        self.calls.append(platform.dockerfile_path)
        return (
            f"{source_repo_url}/blob/{self.sha}/"
            f"{platform.dockerfile_path_relative_to_manifest}"
        )


@pytest.fixture
def manifest_dir(tmp_path: Path) -> Path:
    """Directory holding the manifest and its Dockerfiles."""
    directory = tmp_path / "repo"
    directory.mkdir()
    return directory


@pytest.fixture
def make_manifest(manifest_dir: Path):
    """Factory writing Dockerfiles and a manifest, then loading it."""

    def _make(data: dict, dockerfiles: dict[str, str], **kwargs):
        for relative, content in dockerfiles.items():
            path = manifest_dir / relative / "Dockerfile"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        manifest_path = manifest_dir / "manifest.json"
        manifest_path.write_text(json.dumps(data), encoding="utf-8")
        return load_manifest(manifest_path, **kwargs)

    return _make


@pytest.fixture
def inspector() -> FakeInspector:
    return FakeInspector()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def git_service() -> FakeGitService:
    return FakeGitService()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment's work directory."""
    return Settings(work_dir=tmp_path / "work", git_retry_delay=0)
