"""Tests for the manifest module.

Covers schema validation, Dockerfile FROM parsing, model resolution,
filtering and file loading.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from container_imagegen.manifest.dockerfile import parse_from_images, substitute_variables
from container_imagegen.manifest.io import ManifestLoadError, load_manifest
from container_imagegen.manifest.model import (
    DockerfileNotFoundError,
    ManifestFilter,
    PlatformKey,
)
from container_imagegen.manifest.schema import ManifestSchema, PlatformSchema
from container_imagegen.types import OsType

RUNTIME_MANIFEST = {
    "registry": "mcr.microsoft.com",
    "repos": [
        {
            "id": "runtime",
            "name": "dotnet/runtime",
            "images": [
                {
                    "productVersion": "6.0",
                    "sharedTags": {"6.0": {}},
                    "platforms": [
                        {
                            "dockerfile": "src/runtime/6.0/focal/amd64",
                            "os": "linux",
                            "osVersion": "focal",
                            "architecture": "amd64",
                            "tags": {"6.0-focal-amd64": {}},
                        },
                        {
                            "dockerfile": "src/runtime/6.0/focal/arm64v8",
                            "os": "linux",
                            "osVersion": "focal",
                            "architecture": "ARM64",
                            "variant": "v8",
                            "tags": {
                                "6.0-focal-arm64v8": {},
                                "6.0-focal-arm64v8-local": {"isLocal": True},
                            },
                        },
                    ],
                }
            ],
        }
    ],
}

RUNTIME_DOCKERFILES = {
    "src/runtime/6.0/focal/amd64": "FROM ubuntu:focal\nRUN echo amd64\n",
    "src/runtime/6.0/focal/arm64v8": "FROM arm64v8/ubuntu:focal\nRUN echo arm64\n",
}


class TestManifestSchema:
    """Tests for manifest schema validation."""

    def test_defaults(self):
        """Platforms should default to linux/amd64."""
        platform = PlatformSchema.model_validate({"dockerfile": "src", "osVersion": "focal"})

        assert platform.os == OsType.LINUX
        assert platform.architecture == "amd64"
        assert platform.tags == {}

    def test_architecture_lowercased(self):
        platform = PlatformSchema.model_validate(
            {"dockerfile": "src", "osVersion": "focal", "architecture": "ARM64"}
        )
        assert platform.architecture == "arm64"

    def test_unknown_field_rejected(self):
        """Unknown keys should fail validation."""
        with pytest.raises(ValidationError):
            PlatformSchema.model_validate(
                {"dockerfile": "src", "osVersion": "focal", "unknown": 1}
            )

    def test_duplicate_repo_names_rejected(self):
        with pytest.raises(ValidationError, match="duplicate repo names"):
            ManifestSchema.model_validate(
                {"repos": [{"name": "dotnet/runtime"}, {"name": "dotnet/runtime"}]}
            )


class TestParseFromImages:
    """Tests for Dockerfile FROM parsing."""

    def test_single_stage(self):
        info = parse_from_images("FROM ubuntu:focal\nRUN apt-get update\n")

        assert info.from_images == ["ubuntu:focal"]
        assert info.final_stage_from_image == "ubuntu:focal"

    def test_multi_stage_with_arg(self):
        """Global ARG defaults should be substituted into FROM references."""
        content = (
            "ARG REPO=mcr.microsoft.com/dotnet/runtime-deps\n"
            "FROM $REPO:6.0 AS installer\n"
            "RUN echo install\n"
            "\n"
            "FROM ubuntu:focal\n"
            "COPY --from=installer /app /app\n"
        )
        info = parse_from_images(content)

        assert info.from_images == ["mcr.microsoft.com/dotnet/runtime-deps:6.0", "ubuntu:focal"]
        assert info.final_stage_from_image == "ubuntu:focal"

    def test_stage_reference_resolved(self):
        """A final stage built on a named stage resolves to that stage's base."""
        content = "FROM ubuntu:focal AS base\nRUN echo\nFROM base AS final\n"
        info = parse_from_images(content)

        assert info.from_images == ["ubuntu:focal"]
        assert info.final_stage_from_image == "ubuntu:focal"

    def test_scratch(self):
        info = parse_from_images("FROM scratch\nCOPY app /app\n")

        assert info.from_images == []
        assert info.final_stage_from_image is None

    def test_build_args_override_defaults(self):
        content = "ARG TAG=focal\nFROM ubuntu:${TAG}\n"
        info = parse_from_images(content, build_args={"TAG": "jammy"})

        assert info.final_stage_from_image == "ubuntu:jammy"

    def test_platform_flag_and_continuations(self):
        content = "# syntax comment\nFROM --platform=$BUILDPLATFORM \\\n    ubuntu:focal AS build\n"
        info = parse_from_images(content)

        assert info.from_images == ["ubuntu:focal"]

    def test_substitute_unknown_variable_kept(self):
        assert substitute_variables("$A-${B}", {"A": "x"}) == "x-${B}"


class TestManifestModel:
    """Tests for manifest model resolution."""

    def test_repo_names(self, make_manifest):
        manifest = make_manifest(RUNTIME_MANIFEST, RUNTIME_DOCKERFILES)
        repo = manifest.all_repos[0]

        assert repo.name == "dotnet/runtime"
        assert repo.qualified_name == "mcr.microsoft.com/dotnet/runtime"
        assert repo.full_model_name == "mcr.microsoft.com/dotnet/runtime"

    def test_registry_override_and_prefix(self, make_manifest):
        """Overrides should change local names but not the public name."""
        manifest = make_manifest(
            RUNTIME_MANIFEST,
            RUNTIME_DOCKERFILES,
            registry_override="myacr.azurecr.io",
            repo_prefix="build-staging/",
        )
        repo = manifest.all_repos[0]

        assert manifest.model_registry == "mcr.microsoft.com"
        assert manifest.registry == "myacr.azurecr.io"
        assert repo.name == "build-staging/dotnet/runtime"
        assert repo.qualified_name == "myacr.azurecr.io/build-staging/dotnet/runtime"
        assert repo.full_model_name == "mcr.microsoft.com/dotnet/runtime"
        assert manifest.find_repo("build-staging/dotnet/runtime") is repo
        assert manifest.find_repo_by_full_model_name("mcr.microsoft.com/dotnet/runtime") is repo

    def test_platform_resolution(self, make_manifest, manifest_dir):
        manifest = make_manifest(RUNTIME_MANIFEST, RUNTIME_DOCKERFILES)
        image = manifest.all_repos[0].all_images[0]
        amd64, arm64 = image.all_platforms

        assert amd64.dockerfile_path == (
            manifest_dir / "src/runtime/6.0/focal/amd64/Dockerfile"
        ).resolve()
        assert amd64.key == PlatformKey(
            "src/runtime/6.0/focal/amd64/Dockerfile", "amd64", "Linux", "focal"
        )
        assert amd64.platform_label == "linux/amd64"
        assert arm64.platform_label == "linux/arm64/v8"
        assert amd64.tags[0].fully_qualified_name == "mcr.microsoft.com/dotnet/runtime:6.0-focal-amd64"
        assert [tag.is_local for tag in arm64.tags] == [False, True]
        assert image.shared_tags[0].fully_qualified_name == "mcr.microsoft.com/dotnet/runtime:6.0"
        assert image.find_platform(arm64.key) is arm64

    def test_external_from_images(self, make_manifest):
        manifest = make_manifest(RUNTIME_MANIFEST, RUNTIME_DOCKERFILES)
        platform = manifest.all_repos[0].all_images[0].all_platforms[0]

        assert platform.external_from_images == ["ubuntu:focal"]
        assert platform.final_stage_from_image == "ubuntu:focal"
        assert not platform.is_internal_from_image("ubuntu:focal")

    def test_internal_from_image_overridden(self, make_manifest):
        """References to another repo's public name map onto its local name."""
        data = {
            "registry": "mcr.microsoft.com",
            "repos": [
                {
                    "name": "dotnet/runtime-deps",
                    "images": [
                        {
                            "platforms": [
                                {
                                    "dockerfile": "src/runtime-deps",
                                    "osVersion": "focal",
                                    "tags": {"6.0-focal": {}},
                                }
                            ]
                        }
                    ],
                },
                {
                    "name": "dotnet/runtime",
                    "images": [
                        {
                            "platforms": [
                                {
                                    "dockerfile": "src/runtime",
                                    "osVersion": "focal",
                                    "tags": {"6.0-focal": {}},
                                }
                            ]
                        }
                    ],
                },
            ],
        }
        manifest = make_manifest(
            data,
            {
                "src/runtime-deps": "FROM ubuntu:focal\n",
                "src/runtime": "FROM mcr.microsoft.com/dotnet/runtime-deps:6.0-focal\n",
            },
            registry_override="myacr.azurecr.io",
        )
        platform = manifest.all_repos[1].all_images[0].all_platforms[0]
        local = "myacr.azurecr.io/dotnet/runtime-deps:6.0-focal"

        assert platform.from_images == [local]
        assert platform.internal_from_images == [local]
        assert platform.overridden_from_images == ["mcr.microsoft.com/dotnet/runtime-deps:6.0-focal"]
        assert platform.final_stage_from_image == local
        assert platform.external_from_images == []

    def test_missing_dockerfile(self, make_manifest):
        with pytest.raises(DockerfileNotFoundError) as exc_info:
            make_manifest(RUNTIME_MANIFEST, {"src/runtime/6.0/focal/amd64": "FROM ubuntu\n"})

        assert exc_info.value.code == "dockerfile_not_found"

    def test_package_query_override(self, make_manifest, manifest_dir):
        data = {
            "repos": [
                {
                    "name": "app",
                    "images": [
                        {
                            "platforms": [
                                {
                                    "dockerfile": "src/app",
                                    "osVersion": "focal",
                                    "packageQueryOverrides": {
                                        "getInstalledPackagesPath": "eng/get-packages.sh"
                                    },
                                }
                            ]
                        }
                    ],
                }
            ]
        }
        manifest = make_manifest(data, {"src/app": "FROM ubuntu:focal\n"})
        platform = manifest.get_filtered_platforms()[0]

        assert platform.package_query_script == manifest_dir / "eng/get-packages.sh"
        assert manifest.all_repos[0].qualified_name == "app"


class TestManifestFilter:
    """Tests for platform filtering."""

    def test_no_filter_selects_everything(self, make_manifest):
        manifest = make_manifest(RUNTIME_MANIFEST, RUNTIME_DOCKERFILES)
        assert len(manifest.get_filtered_platforms()) == 2

    def test_filter_by_architecture(self, make_manifest):
        manifest = make_manifest(
            RUNTIME_MANIFEST,
            RUNTIME_DOCKERFILES,
            platform_filter=ManifestFilter(architecture="ARM64"),
        )
        platforms = manifest.get_filtered_platforms()

        assert [p.architecture for p in platforms] == ["arm64"]
        assert len(manifest.all_repos[0].all_images[0].all_platforms) == 2

    def test_filter_by_path_glob(self, make_manifest):
        manifest = make_manifest(
            RUNTIME_MANIFEST,
            RUNTIME_DOCKERFILES,
            platform_filter=ManifestFilter(paths=["src/runtime/*/focal/amd64"]),
        )
        platforms = manifest.get_filtered_platforms()

        assert [p.architecture for p in platforms] == ["amd64"]

    def test_filter_excluding_everything(self, make_manifest):
        manifest = make_manifest(
            RUNTIME_MANIFEST,
            RUNTIME_DOCKERFILES,
            platform_filter=ManifestFilter(os_type="windows"),
        )

        assert manifest.filtered_repos == []
        assert manifest.get_filtered_platforms() == []

    def test_filter_by_os_version(self, make_manifest):
        manifest = make_manifest(
            RUNTIME_MANIFEST,
            RUNTIME_DOCKERFILES,
            platform_filter=ManifestFilter(os_versions=["foc*"]),
        )
        assert len(manifest.get_filtered_platforms()) == 2


class TestLoadManifest:
    """Tests for manifest file loading."""

    def test_load_yaml(self, tmp_path: Path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "Dockerfile").write_text("FROM ubuntu:focal\n")
        path = tmp_path / "manifest.yaml"
        path.write_text(
            "registry: mcr.microsoft.com\n"
            "repos:\n"
            "  - name: app\n"
            "    images:\n"
            "      - platforms:\n"
            "          - dockerfile: src\n"
            "            osVersion: focal\n"
            "            tags:\n"
            "              latest: {}\n"
        )
        manifest = load_manifest(path)

        assert manifest.get_filtered_platforms()[0].tags[0].name == "latest"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ManifestLoadError) as exc_info:
            load_manifest(tmp_path / "manifest.json")
        assert exc_info.value.code == "not_found"

    def test_unsupported_extension(self, tmp_path: Path):
        path = tmp_path / "manifest.toml"
        path.write_text("")
        with pytest.raises(ManifestLoadError) as exc_info:
            load_manifest(path)
        assert exc_info.value.code == "unsupported_format"

    def test_parse_error(self, tmp_path: Path):
        path = tmp_path / "manifest.json"
        path.write_text("{not json")
        with pytest.raises(ManifestLoadError) as exc_info:
            load_manifest(path)
        assert exc_info.value.code == "parse_error"

    def test_validation_error(self, tmp_path: Path):
        path = tmp_path / "manifest.json"
        path.write_text('{"repos": [{"images": []}]}')
        with pytest.raises(ManifestLoadError) as exc_info:
            load_manifest(path)
        assert exc_info.value.code == "validation"
