"""Image info merging and pruning.

Merging folds a freshly produced document into an existing one: matching
entries are updated in place and new entries are appended, so the target's
ordering is preserved. Pruning removes entries that no longer correspond to
anything in the live manifest.

Entries are matched structurally:
- repos by name
- images by product version and shared tags
- platforms by (dockerfile, architecture, OS type, OS version)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from container_imagegen.imageinfo.models import (
    ImageInfoDocument,
    ImageRecord,
    PlatformRecord,
    RepoRecord,
)
from container_imagegen.manifest.model import (
    Manifest,
    ManifestImage,
    ManifestRepo,
    PlatformKey,
)

logger = logging.getLogger(__name__)


class ImageInfoIntegrityError(Exception):
    """Raised when an image info operation would leave a corrupt document."""

    def __init__(self, message: str, code: str = "image_info_integrity") -> None:
        super().__init__(message)
        self.code = code


@dataclass
class MergeOptions:
    """Options for merge_image_info.

    Attributes:
        replace_tags: Replace a matching platform's simple tags with the
            source's instead of taking the union.
    """

    replace_tags: bool = False


def _image_key(image: ImageRecord) -> tuple[str | None, tuple[str, ...]]:
    return image.product_version, tuple(sorted(image.shared_tags))


def _platform_keys(image: ImageRecord) -> set[PlatformKey]:
    return {platform.key for platform in image.platforms}


def find_manifest_image(repo: ManifestRepo, image: ImageRecord) -> ManifestImage | None:
    """Find the manifest image an image record corresponds to.

    Candidates must have the same product version and shared tags. A
    candidate containing one of the record's platforms wins; otherwise a sole
    candidate is accepted when the image is identified by shared tags.

    Args:
        repo: Manifest repo to search.
        image: Image record.

    Returns:
        Matching ManifestImage, or None.
    """
    product_version, shared_tags = _image_key(image)
    candidates = [
        candidate
        for candidate in repo.all_images
        if candidate.product_version == product_version
        and tuple(sorted(tag.name for tag in candidate.shared_tags)) == shared_tags
    ]

    keys = _platform_keys(image)
    for candidate in candidates:
        if any(candidate.find_platform(key) is not None for key in keys):
            return candidate

    if len(candidates) == 1 and (shared_tags or not keys):
        return candidates[0]
    return None


def find_image_record(
    repo_record: RepoRecord,
    repo: ManifestRepo,
    image: ManifestImage,
) -> ImageRecord | None:
    """Find the image record that corresponds to a manifest image."""
    for image_record in repo_record.images:
        if find_manifest_image(repo, image_record) is image:
            return image_record
    return None


def find_platform_record(image: ImageRecord, key: PlatformKey) -> PlatformRecord | None:
    """Return the platform record with the given identity, if any."""
    for platform in image.platforms:
        if platform.key == key:
            return platform
    return None


def _find_matching_image(
    targets: list[ImageRecord],
    source: ImageRecord,
) -> ImageRecord | None:
    key = _image_key(source)
    candidates = [target for target in targets if _image_key(target) == key]
    if not candidates:
        return None

    source_keys = _platform_keys(source)
    for candidate in candidates:
        if source_keys & _platform_keys(candidate):
            return candidate

    if len(candidates) == 1:
        return candidates[0]
    return None


def _merge_platform(
    source: PlatformRecord,
    target: PlatformRecord,
    options: MergeOptions,
) -> None:
    target.digest = source.digest
    target.base_image_digest = source.base_image_digest
    target.created = source.created
    target.commit_url = source.commit_url
    target.layers = list(source.layers)
    target.components = [c.model_copy() for c in source.components]
    target.is_unchanged = source.is_unchanged

    if options.replace_tags:
        target.simple_tags = list(source.simple_tags)
    else:
        target.simple_tags = sorted(set(target.simple_tags) | set(source.simple_tags))


def merge_image_info(
    source: ImageInfoDocument,
    target: ImageInfoDocument,
    options: MergeOptions | None = None,
) -> None:
    """Merge a source document into a target document in place.

    Matching platforms take the source's values; entries missing from the
    target are appended. Target entries without a source counterpart are
    left untouched.

    Args:
        source: Newly produced image info.
        target: Existing image info, updated in place.
        options: Merge options.
    """
    if options is None:
        options = MergeOptions()

    for source_repo in source.repos:
        target_repo = target.find_repo(source_repo.repo)
        if target_repo is None:
            logger.debug("Adding repo %s", source_repo.repo)
            target.repos.append(source_repo.model_copy(deep=True))
            continue

        for source_image in source_repo.images:
            target_image = _find_matching_image(target_repo.images, source_image)
            if target_image is None:
                logger.debug(
                    "Adding image %s to repo %s",
                    source_image.product_version,
                    source_repo.repo,
                )
                target_repo.images.append(source_image.model_copy(deep=True))
                continue

            if source_image.manifest is not None:
                target_image.manifest = source_image.manifest.model_copy(deep=True)

            for source_platform in source_image.platforms:
                target_platform = find_platform_record(target_image, source_platform.key)
                if target_platform is None:
                    logger.debug("Adding platform %s", source_platform.identifier)
                    target_image.platforms.append(source_platform.model_copy(deep=True))
                else:
                    _merge_platform(source_platform, target_platform, options)


def remove_out_of_date_content(document: ImageInfoDocument, manifest: Manifest) -> None:
    """Remove entries that have no counterpart in the manifest, in place.

    Args:
        document: Image info document to prune.
        manifest: Live manifest.

    Raises:
        ImageInfoIntegrityError: If no repos remain afterwards.
    """
    for repo_index in range(len(document.repos) - 1, -1, -1):
        repo_record = document.repos[repo_index]
        manifest_repo = manifest.find_repo(repo_record.repo)
        if manifest_repo is None:
            logger.info("Removing repo %s (not in manifest)", repo_record.repo)
            del document.repos[repo_index]
            continue

        for image_index in range(len(repo_record.images) - 1, -1, -1):
            image_record = repo_record.images[image_index]
            manifest_image = find_manifest_image(manifest_repo, image_record)
            if manifest_image is None:
                logger.info(
                    "Removing image %s from repo %s (not in manifest)",
                    image_record.product_version,
                    repo_record.repo,
                )
                del repo_record.images[image_index]
                continue

            for platform_index in range(len(image_record.platforms) - 1, -1, -1):
                platform_record = image_record.platforms[platform_index]
                if manifest_image.find_platform(platform_record.key) is None:
                    logger.info(
                        "Removing platform %s (not in manifest)",
                        platform_record.identifier,
                    )
                    del image_record.platforms[platform_index]

    if not document.repos:
        raise ImageInfoIntegrityError(
            "Removal of out-of-date content left no repos in the image info. "
            "The image info or manifest is likely inconsistent.",
            code="empty_image_info",
        )


__all__ = [
    "ImageInfoIntegrityError",
    "MergeOptions",
    "find_image_record",
    "find_manifest_image",
    "find_platform_record",
    "merge_image_info",
    "remove_out_of_date_content",
]
