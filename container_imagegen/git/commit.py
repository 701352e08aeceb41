"""Source control commits.

This module handles:
- The SourceCommitService contract used by the publish pipeline
- A GitHub implementation built on the repository contents API

Commit attempts report failures as OperationResult values so callers can
retry transient failures with execute_with_retry.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Any, Protocol

import httpx

from container_imagegen.git.fetch import download_repo_archive
from container_imagegen.options import GitOptions
from container_imagegen.types import OperationResult

logger = logging.getLogger(__name__)

# Timeout for API requests (seconds)
API_TIMEOUT = 60

# Status codes that may succeed when retried
TRANSIENT_STATUS_CODES = frozenset({409, 429, 500, 502, 503, 504})


class SourceCommitService(Protocol):
    """Capability to read and update a file in a hosted repository."""

    def download_repo_archive(self, git_options: GitOptions, dest_dir: Path) -> Path:
        """Download and extract the configured branch, returning its root."""
        ...

    def push_file_change(
        self,
        message: str,
        git_options: GitOptions,
        content: str,
    ) -> OperationResult[str]:
        """Commit new content for the configured file.

        Returns:
            Result whose value is the commit hash on success.
        """
        ...


class GitHubCommitService:
    """SourceCommitService backed by the GitHub REST API.

    Args:
        client: HTTPX client instance.
        api_url: Base URL of the GitHub REST API.
    """

    def __init__(self, client: httpx.Client, api_url: str = "https://api.github.com") -> None:
        self.client = client
        self.api_url = api_url.rstrip("/")

    def _headers(self, git_options: GitOptions) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if git_options.token:
            headers["Authorization"] = f"Bearer {git_options.token}"
        return headers

    def _contents_url(self, git_options: GitOptions) -> str:
        return (
            f"{self.api_url}/repos/{git_options.owner}/{git_options.repo}"
            f"/contents/{git_options.path}"
        )

    def download_repo_archive(self, git_options: GitOptions, dest_dir: Path) -> Path:
        return download_repo_archive(self.client, git_options, dest_dir)

    def get_file_sha(self, git_options: GitOptions) -> str | None:
        """Return the blob hash of the configured file, or None if it is absent.

        Raises:
            httpx.HTTPStatusError: On unexpected responses.
        """
        response = self.client.get(
            self._contents_url(git_options),
            params={"ref": git_options.branch},
            headers=self._headers(git_options),
            timeout=API_TIMEOUT,
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json().get("sha")

    def push_file_change(
        self,
        message: str,
        git_options: GitOptions,
        content: str,
    ) -> OperationResult[str]:
        try:
            sha = self.get_file_sha(git_options)

            body: dict[str, Any] = {
                "message": message,
                "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
                "branch": git_options.branch,
            }
            if sha:
                body["sha"] = sha
            if git_options.username and git_options.email:
                body["committer"] = {
                    "name": git_options.username,
                    "email": git_options.email,
                }

            response = self.client.put(
                self._contents_url(git_options),
                json=body,
                headers=self._headers(git_options),
                timeout=API_TIMEOUT,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            return OperationResult(
                success=False,
                message=f"GitHub API error {status} updating {git_options.path}",
                code="http_error",
                transient=status in TRANSIENT_STATUS_CODES,
                details={"status_code": status},
            )
        except httpx.TimeoutException:
            return OperationResult(
                success=False,
                message=f"Timeout updating {git_options.path}",
                code="timeout",
                transient=True,
            )
        except httpx.RequestError as e:
            return OperationResult(
                success=False,
                message=f"Network error updating {git_options.path}: {e}",
                code="network_error",
                transient=True,
            )

        commit_sha = response.json()["commit"]["sha"]
        logger.debug("Committed %s as %s", git_options.path, commit_sha)
        return OperationResult(
            success=True,
            message=f"Updated {git_options.path}",
            value=commit_sha,
        )


__all__ = [
    "GitHubCommitService",
    "SourceCommitService",
    "TRANSIENT_STATUS_CODES",
]
