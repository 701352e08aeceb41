"""Image info publishing.

Merges the image info produced by a build into the copy kept in source
control:

1. Load the fresh image info and strip internal-only fields
2. Download a checkout of the target repository
3. Prune the published image info against the live manifest
4. Merge the fresh image info into it, replacing tags
5. Commit the result if it differs from the published content

The checkout is always removed, whatever the outcome.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from container_imagegen.config import get_settings
from container_imagegen.git.urls import get_blob_url, get_commit_url
from container_imagegen.imageinfo.io import (
    load_image_info,
    parse_image_info,
    serialize_image_info,
    strip_internal_fields,
)
from container_imagegen.imageinfo.merge import (
    MergeOptions,
    merge_image_info,
    remove_out_of_date_content,
)
from container_imagegen.imageinfo.models import ImageInfoDocument
from container_imagegen.manifest.model import Manifest
from container_imagegen.options import GitOptions, PublishImageInfoOptions
from container_imagegen.retry import execute_with_retry

if TYPE_CHECKING:
    from container_imagegen.config import Settings
    from container_imagegen.git.commit import SourceCommitService

logger = logging.getLogger(__name__)

COMMIT_MESSAGE = "Merging Docker image info updates from build"


class PublishError(Exception):
    """Raised when the image info cannot be published."""

    def __init__(self, message: str, code: str = "publish_error") -> None:
        super().__init__(message)
        self.code = code


@dataclass
class PublishResult:
    """Outcome of a publish.

    Attributes:
        blob_url: URL of the published image info file.
        content: New file content, or None when no change was needed.
        committed: Whether a commit was made.
        commit_url: URL of the commit, when one was made.
    """

    blob_url: str
    content: str | None = None
    committed: bool = False
    commit_url: str | None = None

    @property
    def changed(self) -> bool:
        """Whether the published content needed an update."""
        return self.content is not None


@contextmanager
def checked_out_repo(
    commit_service: SourceCommitService,
    git_options: GitOptions,
    work_dir: Path,
) -> Iterator[Path]:
    """Yield a checkout of the target repository, removed on exit."""
    work_dir.mkdir(parents=True, exist_ok=True)
    checkout_dir = Path(tempfile.mkdtemp(prefix=f"{git_options.repo}-", dir=work_dir))
    try:
        yield commit_service.download_repo_archive(git_options, checkout_dir)
    finally:
        logger.debug("Removing checkout %s", checkout_dir)
        shutil.rmtree(checkout_dir, ignore_errors=True)


def get_updated_image_info(
    source: ImageInfoDocument,
    target_content: str | None,
    manifest: Manifest,
) -> str | None:
    """Compute the new published content.

    Args:
        source: Fresh image info, internal fields stripped.
        target_content: Currently published content, None if absent.
        manifest: Live manifest.

    Returns:
        New content, or None when it equals the published content.

    Raises:
        ImageInfoIntegrityError: If pruning leaves no repos.
    """
    if target_content is None:
        document = source
    else:
        document = parse_image_info(target_content)
        remove_out_of_date_content(document, manifest)
        merge_image_info(source, document, MergeOptions(replace_tags=True))

    new_content = serialize_image_info(document, include_internal=False) + "\n"
    if new_content == target_content:
        return None
    return new_content


def publish_image_info(
    options: PublishImageInfoOptions,
    manifest: Manifest,
    commit_service: SourceCommitService,
    settings: Settings | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PublishResult:
    """Publish build image info to source control.

    Args:
        options: Publish options.
        manifest: Live manifest.
        commit_service: Source control access.
        settings: Settings; loaded from the environment when omitted.
        sleep: Sleep function used between commit attempts.

    Returns:
        PublishResult describing what happened.

    Raises:
        PublishError: If the commit fails after retries.
    """
    if settings is None:
        settings = get_settings()

    blob_url = get_blob_url(options.git)
    source = strip_internal_fields(load_image_info(options.image_info_path))

    with checked_out_repo(commit_service, options.git, settings.work_dir) as repo_root:
        target_path = repo_root / options.git.path
        target_content = (
            target_path.read_text(encoding="utf-8") if target_path.is_file() else None
        )
        if target_content is None:
            logger.info("'%s' does not exist yet, publishing the image info as is", blob_url)
        content = get_updated_image_info(source, target_content, manifest)

    if content is None:
        logger.info("No changes to the '%s' file were needed.", blob_url)
        return PublishResult(blob_url=blob_url)

    logger.info("The '%s' file has been updated with the following content:\n%s", blob_url, content)
    if options.dry_run:
        return PublishResult(blob_url=blob_url, content=content)

    result = execute_with_retry(
        lambda: commit_service.push_file_change(COMMIT_MESSAGE, options.git, content),
        max_attempts=settings.git_retry_attempts,
        delay=settings.git_retry_delay,
        sleep=sleep,
    )
    if not result.success or result.value is None:
        raise PublishError(
            f"Failed to commit '{blob_url}': {result.message}",
            code=result.code or "commit_failed",
        )

    commit_url = get_commit_url(options.git, result.value)
    logger.info("The '%s' file was updated (%s).", blob_url, commit_url)
    return PublishResult(
        blob_url=blob_url,
        content=content,
        committed=True,
        commit_url=commit_url,
    )


__all__ = [
    "COMMIT_MESSAGE",
    "PublishError",
    "PublishResult",
    "checked_out_repo",
    "get_updated_image_info",
    "publish_image_info",
]
