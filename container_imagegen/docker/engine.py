"""Container engine access.

This module handles:
- The ImageEngine contract used by the build orchestrator
- A docker CLI implementation with optional retry of builds and pushes
- A caching wrapper that memoizes image inspections and de-duplicates pulls
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from container_imagegen.builds.runner import (
    ProcessExecutionError,
    ProcessResult,
    run_process,
)
from container_imagegen.docker.inspector import ManifestInspector, get_image_layers
from container_imagegen.retry import execute_with_retry
from container_imagegen.types import OperationResult

logger = logging.getLogger(__name__)

# Docker reports nanosecond precision, datetime supports microseconds
_FRACTION_RE = re.compile(r"\.(\d{6})\d*")


class ImageEngine(Protocol):
    """Capability to build and manage local images."""

    def build_image(
        self,
        dockerfile_path: Path,
        build_context_path: Path,
        platform: str,
        tags: list[str],
        build_args: dict[str, str],
        retry: bool,
        dry_run: bool,
    ) -> str | None:
        """Build an image and return the build output (None in dry run)."""
        ...

    def pull_image(self, image: str, platform: str | None, dry_run: bool) -> None:
        """Pull an image by tag or digest."""
        ...

    def push_image(self, tag: str, dry_run: bool) -> None:
        """Push a tag to its registry."""
        ...

    def create_tag(self, image: str, tag: str, dry_run: bool) -> None:
        """Tag a local image."""
        ...

    def get_created_date(self, image: str, dry_run: bool) -> datetime | None:
        """Return the UTC creation time of a local image (None in dry run)."""
        ...

    def get_image_arch(self, image: str, dry_run: bool) -> tuple[str | None, str | None]:
        """Return the (architecture, variant) of a local image."""
        ...

    def get_image_manifest_layers(self, image: str, dry_run: bool) -> list[str]:
        """Return the layer digests of a pushed image."""
        ...


def parse_created_date(value: str) -> datetime:
    """Parse a docker ``Created`` timestamp into an aware UTC datetime."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    value = _FRACTION_RE.sub(r".\1", value)
    created = datetime.fromisoformat(value)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.astimezone(timezone.utc)


class DockerCliEngine:
    """ImageEngine backed by the docker CLI.

    Args:
        inspector: Manifest inspector used for layer lookups.
        executable: Docker executable.
        retry_attempts: Attempts for builds (when requested) and pushes.
        retry_delay: Initial delay between attempts (seconds).
        sleep: Sleep function (injectable for tests).
    """

    def __init__(
        self,
        inspector: ManifestInspector,
        executable: str = "docker",
        retry_attempts: int = 3,
        retry_delay: float = 5.0,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.inspector = inspector
        self.executable = executable
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    def _run(
        self,
        args: list[str],
        dry_run: bool,
        retry: bool = False,
        error_message: str | None = None,
    ) -> ProcessResult | None:
        command = [self.executable, *args]
        if not retry:
            return run_process(command, dry_run=dry_run, error_message=error_message)

        def attempt() -> OperationResult[ProcessResult]:
            try:
                result = run_process(command, dry_run=dry_run, error_message=error_message)
            except ProcessExecutionError as e:
                return OperationResult(
                    success=False,
                    message=str(e),
                    code=e.code,
                    transient=True,
                    details={"error": e},
                )
            return OperationResult(success=True, message="ok", value=result)

        kwargs: dict[str, Any] = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        outcome = execute_with_retry(
            attempt,
            max_attempts=self.retry_attempts,
            delay=self.retry_delay,
            **kwargs,
        )
        if not outcome.success:
            raise outcome.details["error"]  # type: ignore[misc]
        return outcome.value

    def _inspect(self, image: str, dry_run: bool) -> dict[str, Any] | None:
        result = self._run(["inspect", image], dry_run=dry_run)
        if result is None:
            return None
        data = json.loads(result.stdout)
        if isinstance(data, list):
            if not data:
                raise ProcessExecutionError(f"No local image found for '{image}'")
            data = data[0]
        return data

    def build_image(
        self,
        dockerfile_path: Path,
        build_context_path: Path,
        platform: str,
        tags: list[str],
        build_args: dict[str, str],
        retry: bool,
        dry_run: bool,
    ) -> str | None:
        args = ["build", "--platform", platform]
        for tag in tags:
            args.extend(["-t", tag])
        for key, value in build_args.items():
            args.extend(["--build-arg", f"{key}={value}"])
        args.extend(["-f", str(dockerfile_path), str(build_context_path)])

        result = self._run(
            args,
            dry_run=dry_run,
            retry=retry,
            error_message=f"Failed to build {dockerfile_path}",
        )
        return result.output if result else None

    def pull_image(self, image: str, platform: str | None, dry_run: bool) -> None:
        args = ["pull"]
        if platform:
            args.extend(["--platform", platform])
        args.append(image)
        self._run(args, dry_run=dry_run, retry=True, error_message=f"Failed to pull {image}")

    def push_image(self, tag: str, dry_run: bool) -> None:
        self._run(["push", tag], dry_run=dry_run, retry=True, error_message=f"Failed to push {tag}")

    def create_tag(self, image: str, tag: str, dry_run: bool) -> None:
        self._run(["tag", image, tag], dry_run=dry_run)

    def get_created_date(self, image: str, dry_run: bool) -> datetime | None:
        data = self._inspect(image, dry_run)
        if data is None:
            return None
        return parse_created_date(data["Created"])

    def get_image_arch(self, image: str, dry_run: bool) -> tuple[str | None, str | None]:
        data = self._inspect(image, dry_run)
        if data is None:
            return None, None
        return data.get("Architecture"), data.get("Variant") or None

    def get_image_manifest_layers(self, image: str, dry_run: bool) -> list[str]:
        return get_image_layers(self.inspector, image, dry_run)


class CachedImageEngine:
    """ImageEngine wrapper memoizing inspections for one run.

    Created dates, architectures and layers are cached per image reference.
    Pulls of the same reference and platform happen once.
    """

    def __init__(self, inner: ImageEngine) -> None:
        self.inner = inner
        self._created: dict[str, datetime | None] = {}
        self._arch: dict[str, tuple[str | None, str | None]] = {}
        self._layers: dict[str, list[str]] = {}
        self._pulled: set[tuple[str, str | None]] = set()

    def build_image(
        self,
        dockerfile_path: Path,
        build_context_path: Path,
        platform: str,
        tags: list[str],
        build_args: dict[str, str],
        retry: bool,
        dry_run: bool,
    ) -> str | None:
        return self.inner.build_image(
            dockerfile_path, build_context_path, platform, tags, build_args, retry, dry_run
        )

    def pull_image(self, image: str, platform: str | None, dry_run: bool) -> None:
        key = (image, platform)
        if key in self._pulled:
            logger.debug("Skipping pull of %s, already pulled", image)
            return
        self.inner.pull_image(image, platform, dry_run)
        self._pulled.add(key)

    def push_image(self, tag: str, dry_run: bool) -> None:
        self.inner.push_image(tag, dry_run)

    def create_tag(self, image: str, tag: str, dry_run: bool) -> None:
        self.inner.create_tag(image, tag, dry_run)

    def get_created_date(self, image: str, dry_run: bool) -> datetime | None:
        if image not in self._created:
            self._created[image] = self.inner.get_created_date(image, dry_run)
        return self._created[image]

    def get_image_arch(self, image: str, dry_run: bool) -> tuple[str | None, str | None]:
        if image not in self._arch:
            self._arch[image] = self.inner.get_image_arch(image, dry_run)
        return self._arch[image]

    def get_image_manifest_layers(self, image: str, dry_run: bool) -> list[str]:
        if image not in self._layers:
            self._layers[image] = self.inner.get_image_manifest_layers(image, dry_run)
        return list(self._layers[image])


__all__ = [
    "CachedImageEngine",
    "DockerCliEngine",
    "ImageEngine",
    "parse_created_date",
]
