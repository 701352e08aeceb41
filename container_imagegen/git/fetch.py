"""Repository archive download.

This module handles:
- Downloading a tar.gz archive of a GitHub branch
- Safe extraction into a checkout directory
"""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path

import httpx

from container_imagegen.git.urls import get_archive_url
from container_imagegen.options import GitOptions

logger = logging.getLogger(__name__)

# Timeout for archive downloads (seconds)
DOWNLOAD_TIMEOUT = 300

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB


class RepoArchiveError(Exception):
    """Raised when a repository archive cannot be downloaded or extracted."""

    def __init__(self, message: str, code: str = "repo_archive_error") -> None:
        super().__init__(message)
        self.code = code


def _auth_headers(git_options: GitOptions) -> dict[str, str]:
    if git_options.token:
        return {"Authorization": f"token {git_options.token}"}
    return {}


def download_file(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    headers: dict[str, str] | None = None,
    timeout: float = DOWNLOAD_TIMEOUT,
) -> int:
    """Stream a URL to a file.

    Returns:
        Number of bytes written.

    Raises:
        RepoArchiveError: If the download fails.
    """
    logger.info("Downloading %s", url)
    try:
        with client.stream("GET", url, headers=headers, timeout=timeout) as response:
            response.raise_for_status()
            total_bytes = 0
            with dest_path.open("wb") as f:
                for chunk in response.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
                    total_bytes += len(chunk)
    except httpx.HTTPStatusError as e:
        raise RepoArchiveError(
            f"HTTP error downloading {url}: {e.response.status_code} {e.response.reason_phrase}",
            code="http_error",
        ) from e
    except httpx.TimeoutException as e:
        raise RepoArchiveError(f"Timeout downloading {url}", code="timeout") from e
    except httpx.RequestError as e:
        raise RepoArchiveError(
            f"Network error downloading {url}: {e}", code="network_error"
        ) from e

    logger.debug("Downloaded %d bytes to %s", total_bytes, dest_path)
    return total_bytes


def extract_archive(archive_path: Path, dest_dir: Path) -> Path:
    """Extract a tar.gz repository archive.

    Returns:
        The archive's single top-level directory, or dest_dir when the
        archive has no single root.

    Raises:
        RepoArchiveError: If extraction fails or a member escapes dest_dir.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(archive_path, "r:gz") as tar:
            members = tar.getmembers()
            if not members:
                raise RepoArchiveError(
                    f"Archive {archive_path} is empty", code="empty_archive"
                )
            for member in members:
                member_path = Path(member.name)
                if member_path.is_absolute() or ".." in member_path.parts:
                    raise RepoArchiveError(
                        f"Refusing to extract {member.name}: path traversal detected",
                        code="path_traversal",
                    )
            tar.extractall(dest_dir, filter="data")
    except tarfile.TarError as e:
        raise RepoArchiveError(
            f"Failed to extract {archive_path}: {e}", code="tar_error"
        ) from e

    roots = [p for p in dest_dir.iterdir() if p.is_dir()]
    if len(roots) == 1:
        return roots[0]
    return dest_dir


def download_repo_archive(
    client: httpx.Client,
    git_options: GitOptions,
    dest_dir: Path,
) -> Path:
    """Download and extract the configured branch of a repository.

    Args:
        client: HTTPX client instance.
        git_options: Repository location.
        dest_dir: Directory to extract into.

    Returns:
        Path to the checkout root inside dest_dir.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    archive_path = dest_dir / "repo.tar.gz"

    download_file(
        client,
        get_archive_url(git_options),
        archive_path,
        headers=_auth_headers(git_options),
    )
    root_dir = extract_archive(archive_path, dest_dir / "src")
    archive_path.unlink()

    logger.info(
        "Extracted %s/%s@%s to %s",
        git_options.owner,
        git_options.repo,
        git_options.branch,
        root_dir,
    )
    return root_dir


__all__ = [
    "RepoArchiveError",
    "download_file",
    "download_repo_archive",
    "extract_archive",
]
