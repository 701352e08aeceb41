"""Source control URLs.

Dockerfile commit URLs identify the exact Dockerfile content an image was
built from; a changed URL means the Dockerfile changed and the image must be
rebuilt.
"""

from __future__ import annotations

import logging
from pathlib import Path

from container_imagegen.builds.runner import ProcessExecutionError, run_process
from container_imagegen.manifest.model import ManifestPlatform
from container_imagegen.options import GitOptions

logger = logging.getLogger(__name__)


def get_repo_url(git_options: GitOptions) -> str:
    """Web URL of a GitHub repository."""
    return f"{git_options.github_url.rstrip('/')}/{git_options.owner}/{git_options.repo}"


def get_blob_url(git_options: GitOptions) -> str:
    """Web URL of the configured file on the configured branch."""
    return f"{get_repo_url(git_options)}/blob/{git_options.branch}/{git_options.path}"


def get_commit_url(git_options: GitOptions, sha: str) -> str:
    """Web URL of a commit."""
    return f"{get_repo_url(git_options)}/commit/{sha}"


def get_archive_url(git_options: GitOptions) -> str:
    """Download URL of a tar.gz archive of the configured branch."""
    return f"{get_repo_url(git_options)}/archive/{git_options.branch}.tar.gz"


class GitService:
    """Local git queries.

    Args:
        executable: git executable.
    """

    def __init__(self, executable: str = "git") -> None:
        self.executable = executable

    def get_commit_sha(self, file_path: Path) -> str:
        """Return the hash of the last commit that touched a file.

        Raises:
            ProcessExecutionError: If git fails.
        """
        result = run_process(
            [self.executable, "log", "-1", "--format=format:%H", str(file_path)],
            cwd=file_path.parent,
            error_message=f"Failed to get commit of {file_path}",
        )
        if result is None:
            raise ProcessExecutionError(
                f"No output from git for {file_path}", code="execution_error"
            )
        return result.stdout.strip()

    def get_dockerfile_commit_url(
        self,
        platform: ManifestPlatform,
        source_repo_url: str,
        source_branch: str | None = None,
    ) -> str:
        """Return the URL of a platform's Dockerfile at its last commit.

        Args:
            platform: Manifest platform.
            source_repo_url: Web URL of the repository containing the manifest.
            source_branch: Branch to reference instead of the commit hash.

        Returns:
            ``<repo url>/blob/<sha>/<dockerfile path relative to manifest>``.
        """
        ref = source_branch or self.get_commit_sha(platform.dockerfile_path)
        return (
            f"{source_repo_url.rstrip('/')}/blob/{ref}/"
            f"{platform.dockerfile_path_relative_to_manifest}"
        )


__all__ = [
    "GitService",
    "get_archive_url",
    "get_blob_url",
    "get_commit_url",
    "get_repo_url",
]
