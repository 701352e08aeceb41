"""Tests for the docker module.

Covers manifest inspection, the docker CLI engine, the caching engine
wrapper and the digest cache. External commands are mocked.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from container_imagegen.builds.runner import ProcessExecutionError, ProcessResult
from container_imagegen.docker.digest_cache import DigestCache
from container_imagegen.docker.engine import (
    CachedImageEngine,
    DockerCliEngine,
    parse_created_date,
)
from container_imagegen.docker.inspector import (
    MANIFEST_LIST_MEDIA_TYPE,
    MANIFEST_MEDIA_TYPE,
    InspectorError,
    ManifestToolInspector,
    get_image_layers,
    get_manifest_digest_sha,
)
from container_imagegen.types import ManifestMediaType


def process_result(stdout: str = "", stderr: str = "") -> ProcessResult:
    return ProcessResult(command="", exit_code=0, stdout=stdout, stderr=stderr)


class StaticInspector:
    """Inspector returning the same descriptors for every image."""

    def __init__(self, descriptors):
        self.descriptors = descriptors
        self.calls = 0

    def inspect(self, image, dry_run):
        self.calls += 1
        if isinstance(self.descriptors, Exception):
            raise self.descriptors
        return [] if dry_run else list(self.descriptors)


MANIFEST = {"MediaType": MANIFEST_MEDIA_TYPE, "Digest": "sha256:single", "Layers": ["sha256:l1"]}
MANIFEST_LIST = {"MediaType": MANIFEST_LIST_MEDIA_TYPE, "Digest": "sha256:list"}


class TestManifestToolInspector:
    """Tests for ManifestToolInspector."""

    def test_inspect_list_output(self):
        output = json.dumps([MANIFEST_LIST, MANIFEST])
        with patch(
            "container_imagegen.docker.inspector.run_process",
            return_value=process_result(output),
        ) as mock_run:
            descriptors = ManifestToolInspector("mt").inspect("app:1.0", dry_run=False)

        assert descriptors == [MANIFEST_LIST, MANIFEST]
        assert mock_run.call_args.args[0] == ["mt", "inspect", "--raw", "app:1.0"]

    def test_inspect_single_object(self):
        with patch(
            "container_imagegen.docker.inspector.run_process",
            return_value=process_result(json.dumps(MANIFEST)),
        ):
            assert ManifestToolInspector().inspect("app:1.0", dry_run=False) == [MANIFEST]

    def test_inspect_dry_run(self):
        with patch("container_imagegen.docker.inspector.run_process", return_value=None):
            assert ManifestToolInspector().inspect("app:1.0", dry_run=True) == []

    def test_invalid_output(self):
        with patch(
            "container_imagegen.docker.inspector.run_process",
            return_value=process_result("not json"),
        ):
            with pytest.raises(InspectorError):
                ManifestToolInspector().inspect("app:1.0", dry_run=False)


class TestGetManifestDigestSha:
    """Tests for get_manifest_digest_sha function."""

    def test_list_preferred(self):
        inspector = StaticInspector([MANIFEST, MANIFEST_LIST])
        assert get_manifest_digest_sha(inspector, "app", ManifestMediaType.ANY, False) == "sha256:list"

    def test_falls_back_to_manifest(self):
        inspector = StaticInspector([MANIFEST])
        assert get_manifest_digest_sha(inspector, "app", ManifestMediaType.ANY, False) == "sha256:single"

    def test_manifest_only(self):
        inspector = StaticInspector([MANIFEST_LIST, MANIFEST])
        assert (
            get_manifest_digest_sha(inspector, "app", ManifestMediaType.MANIFEST, False)
            == "sha256:single"
        )

    def test_missing_list_raises(self):
        inspector = StaticInspector([MANIFEST])
        with pytest.raises(InspectorError) as exc_info:
            get_manifest_digest_sha(inspector, "app", ManifestMediaType.MANIFEST_LIST, False)
        assert exc_info.value.code == "missing_digest"

    def test_missing_raises(self):
        with pytest.raises(InspectorError) as exc_info:
            get_manifest_digest_sha(StaticInspector([]), "app", ManifestMediaType.ANY, False)
        assert exc_info.value.code == "missing_digest"

    def test_dry_run_returns_none(self):
        inspector = StaticInspector([MANIFEST])
        assert get_manifest_digest_sha(inspector, "app", ManifestMediaType.ANY, True) is None


class TestGetImageLayers:
    """Tests for get_image_layers function."""

    def test_concrete_tag(self):
        assert get_image_layers(StaticInspector([MANIFEST]), "app", False) == ["sha256:l1"]

    def test_multiple_manifests_raise(self):
        with pytest.raises(InspectorError) as exc_info:
            get_image_layers(StaticInspector([MANIFEST, MANIFEST_LIST]), "app", False)
        assert exc_info.value.code == "manifest_count"

    def test_dry_run(self):
        assert get_image_layers(StaticInspector([MANIFEST]), "app", True) == []


class TestParseCreatedDate:
    """Tests for parse_created_date function."""

    def test_nanoseconds_truncated(self):
        assert parse_created_date("2024-01-02T03:04:05.123456789Z") == datetime(
            2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc
        )

    def test_offset_converted_to_utc(self):
        assert parse_created_date("2024-01-02T05:04:05+02:00") == datetime(
            2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc
        )

    def test_naive_assumed_utc(self):
        assert parse_created_date("2024-01-02T03:04:05").tzinfo == timezone.utc


class TestDockerCliEngine:
    """Tests for DockerCliEngine."""

    @pytest.fixture
    def docker(self):
        return DockerCliEngine(
            StaticInspector([MANIFEST]),
            executable="docker",
            retry_attempts=3,
            retry_delay=0,
            sleep=lambda _: None,
        )

    def test_build_command(self, docker):
        dockerfile = Path("/src/app/Dockerfile")
        with patch(
            "container_imagegen.docker.engine.run_process",
            return_value=process_result("built", "warn"),
        ) as mock_run:
            output = docker.build_image(
                dockerfile,
                Path("/src/app"),
                "linux/arm64/v8",
                ["app:1", "app:latest"],
                {"VERSION": "1"},
                retry=False,
                dry_run=False,
            )

        assert output == "builtwarn"
        assert mock_run.call_args.args[0] == [
            "docker",
            "build",
            "--platform",
            "linux/arm64/v8",
            "-t",
            "app:1",
            "-t",
            "app:latest",
            "--build-arg",
            "VERSION=1",
            "-f",
            str(dockerfile),
            str(Path("/src/app")),
        ]

    def test_build_dry_run(self, docker):
        with patch("container_imagegen.docker.engine.run_process", return_value=None):
            output = docker.build_image(
                Path("Dockerfile"), Path("."), "linux/amd64", ["app:1"], {}, False, True
            )
        assert output is None

    def test_build_retried(self, docker):
        """Failed builds should be retried when requested."""
        with patch(
            "container_imagegen.docker.engine.run_process",
            side_effect=[ProcessExecutionError("failed"), process_result("built")],
        ) as mock_run:
            output = docker.build_image(
                Path("Dockerfile"), Path("."), "linux/amd64", ["app:1"], {}, True, False
            )

        assert output == "built"
        assert mock_run.call_count == 2

    def test_build_not_retried_by_default(self, docker):
        with patch(
            "container_imagegen.docker.engine.run_process",
            side_effect=ProcessExecutionError("failed"),
        ) as mock_run:
            with pytest.raises(ProcessExecutionError):
                docker.build_image(
                    Path("Dockerfile"), Path("."), "linux/amd64", ["app:1"], {}, False, False
                )

        assert mock_run.call_count == 1

    def test_push_retry_exhausted(self, docker):
        """The last error should be raised once attempts are exhausted."""
        error = ProcessExecutionError("push failed")
        with patch(
            "container_imagegen.docker.engine.run_process", side_effect=error
        ) as mock_run:
            with pytest.raises(ProcessExecutionError, match="push failed"):
                docker.push_image("app:1", dry_run=False)

        assert mock_run.call_count == 3

    def test_pull_by_digest_without_platform(self, docker):
        with patch(
            "container_imagegen.docker.engine.run_process", return_value=process_result()
        ) as mock_run:
            docker.pull_image("app@sha256:abc", None, dry_run=False)

        assert mock_run.call_args.args[0] == ["docker", "pull", "app@sha256:abc"]

    def test_create_tag(self, docker):
        with patch(
            "container_imagegen.docker.engine.run_process", return_value=process_result()
        ) as mock_run:
            docker.create_tag("app:1", "app:latest", dry_run=False)

        assert mock_run.call_args.args[0] == ["docker", "tag", "app:1", "app:latest"]

    def test_inspect_queries(self, docker):
        inspect_output = json.dumps(
            [{"Created": "2024-01-02T03:04:05.500000Z", "Architecture": "arm64", "Variant": "v8"}]
        )
        with patch(
            "container_imagegen.docker.engine.run_process",
            return_value=process_result(inspect_output),
        ):
            created = docker.get_created_date("app:1", dry_run=False)
            arch = docker.get_image_arch("app:1", dry_run=False)

        assert created == datetime(2024, 1, 2, 3, 4, 5, 500000, tzinfo=timezone.utc)
        assert arch == ("arm64", "v8")

    def test_inspect_dry_run(self, docker):
        with patch("container_imagegen.docker.engine.run_process", return_value=None):
            assert docker.get_created_date("app:1", dry_run=True) is None
            assert docker.get_image_arch("app:1", dry_run=True) == (None, None)

    def test_layers_from_inspector(self, docker):
        assert docker.get_image_manifest_layers("app:1", dry_run=False) == ["sha256:l1"]


class TestCachedImageEngine:
    """Tests for CachedImageEngine."""

    def test_inspections_memoized(self):
        inner = MagicMock()
        inner.get_created_date.return_value = datetime(2024, 1, 1, tzinfo=timezone.utc)
        inner.get_image_arch.return_value = ("amd64", None)
        inner.get_image_manifest_layers.return_value = ["sha256:l1"]
        engine = CachedImageEngine(inner)

        for _ in range(2):
            engine.get_created_date("app:1", False)
            engine.get_image_arch("app:1", False)
            layers = engine.get_image_manifest_layers("app:1", False)

        assert inner.get_created_date.call_count == 1
        assert inner.get_image_arch.call_count == 1
        assert inner.get_image_manifest_layers.call_count == 1
        assert layers == ["sha256:l1"]

    def test_pulls_deduplicated(self):
        inner = MagicMock()
        engine = CachedImageEngine(inner)

        engine.pull_image("ubuntu:focal", "linux/amd64", False)
        engine.pull_image("ubuntu:focal", "linux/amd64", False)
        engine.pull_image("ubuntu:focal", "linux/arm64", False)

        assert inner.pull_image.call_count == 2

    def test_operations_delegated(self):
        inner = MagicMock()
        inner.build_image.return_value = "out"
        engine = CachedImageEngine(inner)

        assert engine.build_image(Path("D"), Path("."), "linux/amd64", ["a"], {}, False, False) == "out"
        engine.push_image("a", False)
        engine.push_image("a", False)
        engine.create_tag("a", "b", False)

        assert inner.push_image.call_count == 2
        inner.create_tag.assert_called_once_with("a", "b", False)


class TestDigestCache:
    """Tests for DigestCache."""

    def test_resolves_repo_qualified_digest(self):
        inspector = StaticInspector([MANIFEST])
        cache = DigestCache(inspector)

        digest = cache.get_digest("mcr.microsoft.com/dotnet/runtime:6.0", dry_run=False)

        assert digest == "mcr.microsoft.com/dotnet/runtime@sha256:single"

    def test_memoized(self):
        inspector = StaticInspector([MANIFEST])
        cache = DigestCache(inspector)

        cache.get_digest("app:1", False)
        cache.get_digest("app:1", False)

        assert inspector.calls == 1
        assert "app:1" in cache

    def test_not_found_memoized(self):
        """A missing digest is recorded as not found and not retried."""
        inspector = StaticInspector([])
        cache = DigestCache(inspector)

        assert cache.get_digest("app:1", False) is None
        assert cache.get_digest("app:1", False) is None
        assert inspector.calls == 1

    def test_inspector_failure_propagates(self):
        """A failed inspection is an error, not a missing digest."""
        inspector = StaticInspector(ProcessExecutionError("manifest-tool failed"))
        cache = DigestCache(inspector)

        with pytest.raises(ProcessExecutionError):
            cache.get_digest("app:1", False)

        assert "app:1" not in cache

    def test_unparsable_output_propagates(self):
        inspector = StaticInspector(InspectorError("bad output", code="inspect_failed"))
        cache = DigestCache(inspector)

        with pytest.raises(InspectorError) as exc_info:
            cache.get_digest("app:1", False)

        assert exc_info.value.code == "inspect_failed"

    def test_missing_digest_is_none(self):
        cache = DigestCache(StaticInspector([]))
        assert cache.get_digest("app:1", False) is None

    def test_dry_run(self):
        cache = DigestCache(StaticInspector([MANIFEST]))
        assert cache.get_digest("app:1", True) is None

    def test_add_digest_overrides(self):
        inspector = StaticInspector([MANIFEST])
        cache = DigestCache(inspector)
        cache.get_digest("app:1", False)

        cache.add_digest("app:1", "app@sha256:other")

        assert cache.get_digest("app:1", False) == "app@sha256:other"
        assert inspector.calls == 1
