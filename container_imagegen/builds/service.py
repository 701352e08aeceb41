"""Build orchestration service.

This module provides the build command's engine:
- BuildOrchestrator.run(): pull base images, build or reuse every platform,
  push, then record the results in an image info document
- Cache decisions against this run's builds and a published image info
- Build summary and pipeline output variable

Platforms are processed sequentially in manifest order since a platform's
base image digest depends on its base platform having been processed first.
Tagging, digest pre-resolution and pushes run as parallel batches.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import timezone
from pathlib import Path
from typing import TYPE_CHECKING

from container_imagegen.builds.cache_key import compute_platform_cache_key
from container_imagegen.builds.from_images import FromImageResolver
from container_imagegen.builds.runner import invoke_build_hook, query_installed_packages
from container_imagegen.config import get_settings
from container_imagegen.docker.names import (
    get_digest_sha,
    get_digest_string,
    get_repo,
    replace_repo,
)
from container_imagegen.imageinfo.io import load_image_info, write_image_info
from container_imagegen.imageinfo.merge import find_image_record, find_platform_record
from container_imagegen.imageinfo.models import (
    ImageInfoDocument,
    ImageRecord,
    PlatformRecord,
    RepoRecord,
    SharedTagsRecord,
)
from container_imagegen.manifest.model import (
    Manifest,
    ManifestImage,
    ManifestPlatform,
    ManifestRepo,
    ManifestTag,
)
from container_imagegen.options import BuildOptions
from container_imagegen.types import OsType

if TYPE_CHECKING:
    from container_imagegen.config import Settings
    from container_imagegen.docker.digest_cache import DigestCache
    from container_imagegen.docker.engine import ImageEngine
    from container_imagegen.git.urls import GitService

logger = logging.getLogger(__name__)

TEMP_DOCKERFILE_SUFFIX = ".temp"
UNEXPECTED_PULL_MARKER = "Pulling from"


class BuildError(Exception):
    """Raised when a build run cannot complete consistently."""

    def __init__(self, message: str, code: str = "build_error") -> None:
        super().__init__(message)
        self.code = code


@dataclass
class ProcessedPlatform:
    """A platform handled in this run together with its image info record."""

    repo: ManifestRepo
    image: ManifestImage
    platform: ManifestPlatform
    record: PlatformRecord

    @property
    def push_tags(self) -> list[ManifestTag]:
        """Platform tags that are pushed to the registry."""
        return get_push_tags(self.platform.tags)


@dataclass
class _CachedPlatform:
    record: PlatformRecord
    source: str
    from_published: bool


@dataclass
class BuildSummary:
    """Outcome of a build run.

    Attributes:
        processed_tags: Fully-qualified tags of every processed platform,
            in processing order.
        built_digests: Distinct digests of the platforms that were built.
        image_info: Image info produced by the run.
    """

    processed_tags: list[str] = field(default_factory=list)
    built_digests: list[str] = field(default_factory=list)
    image_info: ImageInfoDocument = field(default_factory=ImageInfoDocument)


def get_push_tags(tags: list[ManifestTag]) -> list[ManifestTag]:
    """Return the tags that are pushed (non-local)."""
    return [tag for tag in tags if not tag.is_local]


def format_output_variable(name: str, value: str) -> str:
    """Format a pipeline output variable logging command."""
    return f"##vso[task.setvariable variable={name}]{value}"


def replace_from_image(contents: str, from_image: str, new_from_image: str) -> str:
    """Replace a FROM reference in Dockerfile contents.

    Only exact references are replaced; stage aliases and platform flags
    are preserved.
    """
    pattern = re.compile(
        rf"^(\s*FROM\s+(?:--platform=\S+\s+)?){re.escape(from_image)}(?=\s|$)",
        re.MULTILINE | re.IGNORECASE,
    )
    return pattern.sub(lambda m: f"{m.group(1)}{new_from_image}", contents)


def _platforms_match(a: ManifestPlatform, b: ManifestPlatform) -> bool:
    return a.key == b.key and a.build_args == b.build_args and a.variant == b.variant


class BuildOrchestrator:
    """Builds the images of a manifest and records the results.

    Args:
        manifest: Resolved manifest.
        options: Build options.
        engine: Image engine.
        digest_cache: Digest cache shared for the run.
        git_service: Source of Dockerfile commit URLs.
        settings: Settings; loaded from the environment when omitted.
    """

    def __init__(
        self,
        manifest: Manifest,
        options: BuildOptions,
        engine: ImageEngine,
        digest_cache: DigestCache,
        git_service: GitService,
        settings: Settings | None = None,
    ) -> None:
        self.manifest = manifest
        self.options = options
        self.engine = engine
        self.digest_cache = digest_cache
        self.git_service = git_service
        self.settings = settings or get_settings()
        self.from_images = FromImageResolver(manifest, options.source_repo_prefix)

        self.image_info = ImageInfoDocument()
        self._processed_tags: list[ManifestTag] = []
        self._processed: list[ProcessedPlatform] = []
        self._built: list[ProcessedPlatform] = []
        self._built_tags: set[str] = set()
        self._cached_platforms: dict[str, _CachedPlatform] = {}
        self._commit_urls: dict[Path, str] = {}

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    def run(self) -> BuildSummary:
        """Execute the build run.

        Returns:
            BuildSummary of the run.

        Raises:
            BuildError: On any inconsistency; nothing is written in that case.
        """
        self.validate_options()

        self.pull_base_images()
        self.build_images()
        if self._processed_tags:
            self.push_images()
        self.publish_image_info()

        summary = BuildSummary(
            processed_tags=[tag.fully_qualified_name for tag in self._processed_tags],
            built_digests=self.get_built_digests(),
            image_info=self.image_info,
        )
        log_build_summary(summary)
        return summary

    def validate_options(self) -> None:
        """Check option combinations before any work is done.

        Raises:
            BuildError: If a required option is missing.
        """
        if self.options.image_info_output_path and not self.options.source_repo_url:
            raise BuildError(
                "Source repo URL must be provided when outputting to an image info file.",
                code="configuration",
            )
        if (
            self.options.image_info_source_path
            and not self.options.no_cache
            and not self.options.source_repo_url
        ):
            raise BuildError(
                "Source repo URL must be provided when checking a source image info "
                "file for cached images.",
                code="configuration",
            )

    # Pull phase

    def pull_base_images(self) -> None:
        """Pull every external base image once and resolve final-stage digests.

        Raises:
            BuildError: If a final-stage external base image was not pulled.
        """
        if self.options.skip_pulling:
            return

        logger.info("PULLING LATEST BASE IMAGES")
        platforms = self.manifest.get_filtered_platforms()

        pulled_tags: list[str] = []
        external_from_images: list[str] = []
        for platform in platforms:
            for from_image in dict.fromkeys(platform.external_from_images):
                if from_image not in external_from_images:
                    external_from_images.append(from_image)
                pull_tag = self.from_images.pull_tag(from_image)
                if pull_tag not in pulled_tags:
                    pulled_tags.append(pull_tag)
                    self.engine.pull_image(pull_tag, platform.platform_label, self.dry_run)

        if not pulled_tags:
            logger.info("No external base images to pull")
            return

        final_stage_images = list(
            dict.fromkeys(
                self.from_images.pull_tag(platform.final_stage_from_image)
                for platform in platforms
                if platform.final_stage_from_image is not None
                and not platform.is_internal_from_image(platform.final_stage_from_image)
            )
        )
        missing = [image for image in final_stage_images if image not in pulled_tags]
        if missing:
            raise BuildError(
                "The following tags are identified as final stage tags but were not pulled: "
                + ", ".join(missing),
                code="missing_pull",
            )

        # Resolve right after pulling so the digest matches what was pulled
        self._run_parallel(
            lambda image: self.digest_cache.get_digest(image, self.dry_run),
            final_stage_images,
            self.settings.max_concurrent_tags,
        )

        def tag_mirror(from_image: str) -> None:
            pull_tag = self.from_images.pull_tag(from_image)
            if pull_tag != from_image:
                self.engine.create_tag(pull_tag, from_image, self.dry_run)

        self._run_parallel(tag_mirror, external_from_images, self.settings.max_concurrent_tags)

    # Build phase

    def build_images(self) -> None:
        """Build or reuse every filtered platform, in manifest order."""
        logger.info("BUILDING IMAGES")

        source_info: ImageInfoDocument | None = None
        if self.options.image_info_source_path is not None:
            source_info = load_image_info(self.options.image_info_source_path)

        for repo in self.manifest.filtered_repos:
            repo_record = RepoRecord(repo=repo.name)
            source_repo = source_info.find_repo(repo.name) if source_info else None

            for image in repo.filtered_images:
                image_record = ImageRecord(product_version=image.product_version)
                if image.shared_tags:
                    image_record.manifest = SharedTagsRecord(
                        shared_tags=[tag.name for tag in image.shared_tags]
                    )
                repo_record.images.append(image_record)

                source_image = (
                    find_image_record(source_repo, repo, image) if source_repo else None
                )

                for platform in image.filtered_platforms:
                    # Shared tags are applied too since FROM instructions may reference them
                    all_tag_infos = platform.tags + image.shared_tags
                    self._processed_tags.extend(all_tag_infos)
                    all_tags = [tag.fully_qualified_name for tag in all_tag_infos]

                    record = PlatformRecord.from_manifest_platform(platform)
                    image_record.platforms.append(record)
                    processed = ProcessedPlatform(repo, image, platform, record)
                    self._processed.append(processed)

                    is_cached = not self.options.no_cache and self._check_for_cached_image(
                        source_image, processed, all_tags
                    )
                    if is_cached:
                        continue

                    self._build_image(platform, all_tags)
                    self._built.append(processed)
                    self._built_tags.update(all_tags)
                    record.base_image_digest = self._get_base_image_digest(platform)
                    if all_tags:
                        self._cached_platforms.setdefault(
                            compute_platform_cache_key(platform),
                            _CachedPlatform(record, source=all_tags[0], from_published=False),
                        )

            if repo_record.images:
                self.image_info.repos.append(repo_record)

    def _get_base_image_digest(self, platform: ManifestPlatform) -> str | None:
        if platform.final_stage_from_image is None:
            return None
        local_tag = self.from_images.local_tag(platform.final_stage_from_image)
        if local_tag in self._built_tags:
            # Not pushed yet; resolved through its platform when recording
            return None
        digest = self.digest_cache.get_digest(local_tag, self.dry_run)
        if digest is None and not self.dry_run:
            raise BuildError(
                f"Unable to resolve the digest of base image '{local_tag}' for "
                f"'{platform.dockerfile_path_relative_to_manifest}'.",
                code="missing_base_digest",
            )
        return digest

    def _check_for_cached_image(
        self,
        source_image: ImageRecord | None,
        processed: ProcessedPlatform,
        all_tags: list[str],
    ) -> bool:
        platform = processed.platform
        record = processed.record
        source_platform = (
            find_platform_record(source_image, platform.key) if source_image else None
        )

        cache_key = compute_platform_cache_key(platform)
        cached = self._cached_platforms.get(cache_key)
        if cached is not None:
            logger.info(
                "Reusing image of build-equivalent platform for %s",
                platform.dockerfile_path_relative_to_manifest,
            )
            self._on_cache_hit(processed.repo, all_tags, cached.source, pull_image=False)
            if not cached.from_published:
                # Aliases of an image built in this run are not in the registry
                # until pushed
                self._built_tags.update(all_tags)
            copy_cached_platform_data(record, cached.record)
            record.is_unchanged = (
                cached.from_published
                and source_platform is not None
                and has_all_tags_published(platform, source_platform)
            )
            return True

        if source_platform is None:
            return False

        logger.info(
            "Checking for cached image for '%s'", platform.dockerfile_path_relative_to_manifest
        )
        if (
            source_platform.digest
            and self._is_base_image_digest_up_to_date(platform, source_platform)
            and self._is_dockerfile_up_to_date(platform, source_platform)
        ):
            self._on_cache_hit(processed.repo, all_tags, source_platform.digest, pull_image=True)
            record.is_unchanged = has_all_tags_published(platform, source_platform)
            copy_cached_platform_data(record, source_platform)
            self._cached_platforms[cache_key] = _CachedPlatform(
                source_platform, source=source_platform.digest, from_published=True
            )
            return True

        logger.info("CACHE MISS")
        return False

    def _on_cache_hit(
        self,
        repo: ManifestRepo,
        all_tags: list[str],
        source: str,
        pull_image: bool,
    ) -> None:
        logger.info("CACHE HIT")

        if pull_image:
            # Pulling by digest, so the platform is implied
            self.engine.pull_image(source, None, self.dry_run)

        sha = get_digest_sha(source) if "@" in source else None

        def tag_image(tag: str) -> None:
            self.engine.create_tag(source, tag, self.dry_run)
            if sha:
                # Qualify with this repo since shared Dockerfiles can be
                # published from several repos
                self.digest_cache.add_digest(
                    tag, get_digest_string(repo.full_model_name, sha)
                )

        self._run_parallel(tag_image, all_tags, self.settings.max_concurrent_tags)

    def _is_dockerfile_up_to_date(
        self, platform: ManifestPlatform, source_platform: PlatformRecord
    ) -> bool:
        current = self._get_commit_url(platform)
        matches = (
            source_platform.commit_url is not None
            and source_platform.commit_url.lower() == current.lower()
        )
        logger.info("Image info's Dockerfile commit: %s", source_platform.commit_url)
        logger.info("Latest Dockerfile commit: %s", current)
        logger.info("Dockerfile commits match: %s", matches)
        return matches

    def _is_base_image_digest_up_to_date(
        self, platform: ManifestPlatform, source_platform: PlatformRecord
    ) -> bool:
        if platform.final_stage_from_image is None:
            logger.info("Image does not have a base image, considered up-to-date")
            return True

        current = self._get_base_image_digest(platform)
        base_sha = (
            get_digest_sha(source_platform.base_image_digest)
            if source_platform.base_image_digest
            else None
        )
        current_sha = get_digest_sha(current) if current else None
        matches = (
            base_sha is not None
            and current_sha is not None
            and base_sha.lower() == current_sha.lower()
        )
        logger.info("Image info's base image digest: %s", source_platform.base_image_digest)
        logger.info("Latest base image digest: %s", current)
        logger.info("Base image digests match: %s", matches)
        return matches

    def _get_commit_url(self, platform: ManifestPlatform) -> str:
        source_repo_url = self.options.source_repo_url
        if source_repo_url is None:
            raise BuildError(
                "Source repo URL must be provided to compute Dockerfile commit URLs.",
                code="configuration",
            )
        if platform.dockerfile_path not in self._commit_urls:
            self._commit_urls[platform.dockerfile_path] = (
                self.git_service.get_dockerfile_commit_url(platform, source_repo_url)
            )
        return self._commit_urls[platform.dockerfile_path]

    def _validate_platform_is_compatible_with_base_image(
        self, platform: ManifestPlatform
    ) -> None:
        if platform.final_stage_from_image is None or self.options.skip_platform_check:
            return

        base_image_tag = self.from_images.local_tag(platform.final_stage_from_image)
        # Already pulled or built, so it can be inspected locally
        arch, variant = self.engine.get_image_arch(base_image_tag, self.dry_run)
        if arch is None and self.dry_run:
            return

        if platform.architecture != (arch or "").lower() or (platform.variant or None) != (
            variant or None
        ):
            raise BuildError(
                f"Platform '{platform.dockerfile_path_relative_to_manifest}' is configured "
                f"with an architecture that is not compatible with the base image "
                f"'{base_image_tag}': manifest platform {platform.architecture}"
                f"/{platform.variant}, base image {arch}/{variant}",
                code="architecture_mismatch",
            )

    def _update_dockerfile_from_commands(
        self, platform: ManifestPlatform
    ) -> tuple[Path, bool]:
        """Write a scratch Dockerfile with overridden FROM references.

        Returns:
            Tuple of (Dockerfile path to build, whether it is a scratch copy).

        Raises:
            BuildError: If an overridden FROM image has no repo in the manifest.
        """
        if not platform.overridden_from_images:
            return platform.dockerfile_path, False

        contents = platform.dockerfile_path.read_text(encoding="utf-8")
        for from_image in platform.overridden_from_images:
            repo = self.manifest.find_repo_by_full_model_name(get_repo(from_image))
            if repo is None:
                raise BuildError(
                    f"Unable to find the manifest repo of overridden FROM image "
                    f"'{from_image}' in '{platform.dockerfile_path_relative_to_manifest}'.",
                    code="configuration",
                )
            new_from_image = replace_repo(from_image, repo.qualified_name)
            logger.info("Replacing FROM `%s` with `%s`", from_image, new_from_image)
            contents = replace_from_image(contents, from_image, new_from_image)

        dockerfile_path = platform.dockerfile_path.with_name(
            platform.dockerfile_path.name + TEMP_DOCKERFILE_SUFFIX
        )
        logger.info("Writing updated Dockerfile: %s", dockerfile_path)
        logger.debug("%s", contents)
        dockerfile_path.write_text(contents, encoding="utf-8")
        return dockerfile_path, True

    def get_build_args(self, platform: ManifestPlatform) -> dict[str, str]:
        """Return build args; manifest args override option args."""
        return {**self.options.build_args, **platform.build_args}

    def _build_image(self, platform: ManifestPlatform, all_tags: list[str]) -> None:
        self._validate_platform_is_compatible_with_base_image(platform)

        dockerfile_path, is_scratch = self._update_dockerfile_from_commands(platform)
        try:
            invoke_build_hook("pre-build", platform.build_context_path, self.dry_run)

            output = self.engine.build_image(
                dockerfile_path,
                platform.build_context_path,
                platform.platform_label,
                all_tags,
                self.get_build_args(platform),
                self.options.retry,
                self.dry_run,
            )

            if (
                not self.options.skip_pulling
                and not self.dry_run
                and output
                and UNEXPECTED_PULL_MARKER in output
            ):
                raise BuildError(
                    "Build resulted in a base image being pulled. All image pulls "
                    "should be done as a pre-build step.",
                    code="unexpected_pull",
                )

            invoke_build_hook("post-build", platform.build_context_path, self.dry_run)
        finally:
            if is_scratch:
                dockerfile_path.unlink(missing_ok=True)

    # Push phase

    def push_images(self) -> None:
        """Push every processed non-local tag once."""
        if not self.options.push:
            return

        logger.info("PUSHING IMAGES")
        tags = list(
            dict.fromkeys(
                tag.fully_qualified_name for tag in get_push_tags(self._processed_tags)
            )
        )
        self._run_parallel(
            lambda tag: self.engine.push_image(tag, self.dry_run),
            tags,
            self.settings.max_concurrent_pushes,
        )

    # Image info

    def publish_image_info(self) -> None:
        """Record digests, dates, layers and components, then write image info.

        Raises:
            BuildError: On digest or created date disagreement across tags, or
                when a platform's data cannot be derived.
        """
        output_path = self.options.image_info_output_path
        if output_path is None:
            return

        platforms_by_tag: dict[str, ProcessedPlatform] = {}
        for processed in self._processed:
            for tag in processed.platform.tags:
                platforms_by_tag.setdefault(tag.fully_qualified_name, processed)

        no_push_tags: list[ProcessedPlatform] = []
        for processed in self._processed:
            push_tags = processed.push_tags
            for tag in push_tags:
                if self.options.push:
                    self._set_digest(processed, tag.fully_qualified_name)
                    self._set_base_image_digest(processed, platforms_by_tag)
                    self._set_layers(processed, tag.fully_qualified_name)
                self._set_created_date(processed, tag.fully_qualified_name)

            if push_tags:
                self._set_components(processed)
            else:
                no_push_tags.append(processed)

            processed.record.commit_url = self._get_commit_url(processed.platform)

        # Platforms without pushed tags duplicate a platform of another image
        for processed in no_push_tags:
            self._copy_from_equivalent_platform(processed)

        write_image_info(self.image_info, output_path)
        logger.info("Wrote image info to %s", output_path)

    def _set_digest(self, processed: ProcessedPlatform, tag: str) -> None:
        record = processed.record
        digest = self.digest_cache.get_digest(tag, self.dry_run)
        if digest is not None:
            # Same digest once the image is transferred to the public registry
            digest = get_digest_string(
                processed.platform.full_repo_model_name, get_digest_sha(digest)
            )

        if record.digest and record.digest != digest:
            raise BuildError(
                f"Tag '{tag}' was pushed with a resulting digest value that differs "
                f"from the corresponding image's digest value. From image info: "
                f"{record.digest}, from query: {digest}",
                code="digest_mismatch",
            )

        if digest is None:
            if self.dry_run:
                return
            raise BuildError(
                f"Unable to retrieve digest for Dockerfile '{record.dockerfile}'.",
                code="missing_digest",
            )
        record.digest = digest

    def _set_base_image_digest(
        self,
        processed: ProcessedPlatform,
        platforms_by_tag: dict[str, ProcessedPlatform],
    ) -> None:
        record = processed.record
        final_stage = processed.platform.final_stage_from_image
        base_image_digest = record.base_image_digest

        if base_image_digest is None and final_stage is not None:
            base = platforms_by_tag.get(final_stage)
            if base is None:
                if self.dry_run:
                    # External base images have no digest in a dry run
                    return
                raise BuildError(
                    f"Unable to find platform data for tag '{final_stage}'. "
                    "It's likely that the platforms are not ordered according to dependency.",
                    code="missing_base_platform",
                )
            if base.record.digest is None:
                if self.dry_run:
                    return
                raise BuildError(
                    f"Digest for platform '{base.record.identifier}' has not been "
                    "calculated yet.",
                    code="missing_base_digest",
                )
            base_image_digest = base.record.digest

        if final_stage is not None and base_image_digest is not None:
            base_image_digest = get_digest_string(
                get_repo(self.from_images.public_tag(final_stage)),
                get_digest_sha(base_image_digest),
            )
        record.base_image_digest = base_image_digest

    def _set_layers(self, processed: ProcessedPlatform, tag: str) -> None:
        if not processed.record.layers:
            processed.record.layers = self.engine.get_image_manifest_layers(tag, self.dry_run)

    def _set_created_date(self, processed: ProcessedPlatform, tag: str) -> None:
        created = self.engine.get_created_date(tag, self.dry_run)
        if created is None:
            return
        created = created.astimezone(timezone.utc)

        record = processed.record
        if record.created is not None and record.created != created:
            raise BuildError(
                f"Tag '{tag}' has a Created date that differs from the corresponding "
                f"image's Created date value of '{record.created}'.",
                code="created_mismatch",
            )
        record.created = created

    def _set_components(self, processed: ProcessedPlatform) -> None:
        record = processed.record
        platform = processed.platform
        if (
            record.components
            or self.options.installed_packages_script is None
            or platform.os == OsType.WINDOWS
        ):
            return

        script_path = platform.package_query_script or self.options.installed_packages_script
        components = query_installed_packages(
            script_path,
            platform.tags[0].fully_qualified_name,
            platform.dockerfile_path,
            self.dry_run,
        )
        if components is not None:
            record.components = components

    def _copy_from_equivalent_platform(self, processed: ProcessedPlatform) -> None:
        candidates = [
            other
            for other in self._processed
            if other.push_tags and _platforms_match(processed.platform, other.platform)
        ]
        if not candidates:
            raise BuildError(
                f"Unable to find a platform with pushed tags matching "
                f"'{processed.record.identifier}'.",
                code="no_matching_platform",
            )
        if len({c.record.digest for c in candidates}) > 1:
            logger.warning(
                "Multiple platforms with differing digests match '%s'; using %s",
                processed.record.identifier,
                candidates[0].record.digest,
            )

        source = candidates[0].record
        processed.record.digest = source.digest
        processed.record.created = source.created
        processed.record.components = [c.model_copy() for c in source.components]

    # Results

    def get_built_digests(self) -> list[str]:
        """Distinct digests of built platforms, qualified with their local repo."""
        digests = [
            get_digest_string(processed.platform.repo_name, get_digest_sha(processed.record.digest))
            for processed in self._built
            if processed.record.digest
        ]
        return list(dict.fromkeys(digests))

    def _run_parallel(
        self, func: Callable[[str], object], items: list[str], max_workers: int
    ) -> None:
        if not items:
            return
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(func, item) for item in items]
            for future in as_completed(futures):
                future.result()


def copy_cached_platform_data(target: PlatformRecord, source: PlatformRecord) -> None:
    """Copy metadata that does not need recomputing for a reused image."""
    target.base_image_digest = source.base_image_digest
    target.components = [c.model_copy() for c in source.components]
    target.layers = list(source.layers)


def has_all_tags_published(platform: ManifestPlatform, source: PlatformRecord) -> bool:
    """Check whether a published record already lists every pushed tag."""
    return {tag.name for tag in get_push_tags(platform.tags)} == set(source.simple_tags)


def log_build_summary(summary: BuildSummary) -> None:
    """Log the tags processed in a run."""
    logger.info("IMAGES BUILT")
    if summary.processed_tags:
        for tag in summary.processed_tags:
            logger.info("%s", tag)
    else:
        logger.info("No images built")


__all__ = [
    "BuildError",
    "BuildOrchestrator",
    "BuildSummary",
    "ProcessedPlatform",
    "copy_cached_platform_data",
    "format_output_variable",
    "get_push_tags",
    "has_all_tags_published",
    "log_build_summary",
    "replace_from_image",
]
