"""Thin CLI wrapper for container_imagegen.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import logging
from pathlib import Path
from typing import Annotated

import httpx
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from container_imagegen import __version__
from container_imagegen.builds.runner import ProcessExecutionError
from container_imagegen.builds.service import (
    BuildError,
    BuildOrchestrator,
    format_output_variable,
)
from container_imagegen.config import get_settings, print_settings_json
from container_imagegen.docker.digest_cache import DigestCache
from container_imagegen.docker.engine import CachedImageEngine, DockerCliEngine
from container_imagegen.docker.inspector import InspectorError, ManifestToolInspector
from container_imagegen.git.commit import GitHubCommitService
from container_imagegen.git.fetch import RepoArchiveError
from container_imagegen.git.urls import GitService
from container_imagegen.imageinfo.io import ImageInfoLoadError
from container_imagegen.imageinfo.merge import ImageInfoIntegrityError
from container_imagegen.manifest.io import ManifestLoadError, load_manifest
from container_imagegen.manifest.model import DockerfileNotFoundError, ManifestFilter
from container_imagegen.options import (
    BuildOptions,
    GitOptions,
    PublishImageInfoOptions,
    parse_build_args,
)
from container_imagegen.publish.service import PublishError, publish_image_info

app = typer.Typer(
    name="imagegen",
    help="Container Image Generator - build manifest images and publish image info",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

# Errors reported as a message and exit code 1
HANDLED_ERRORS = (
    BuildError,
    DockerfileNotFoundError,
    ImageInfoIntegrityError,
    ImageInfoLoadError,
    InspectorError,
    ManifestLoadError,
    ProcessExecutionError,
    PublishError,
    RepoArchiveError,
    ValidationError,
    ValueError,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"container-imagegen version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(error: Exception) -> None:
    code = getattr(error, "code", None)
    prefix = f"Error ({code})" if code else "Error"
    err_console.print(f"[red]{prefix}: {error}[/red]", highlight=False)
    raise typer.Exit(code=1) from None


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Container Image Generator - build manifest images and publish image info."""


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Work directory:      {settings.work_dir}")
        console.print()
        console.print("[bold]Tools:[/bold]")
        console.print(f"  Docker:              {settings.docker_executable}")
        console.print(f"  Manifest tool:       {settings.manifest_tool_executable}")
        console.print()
        console.print("[bold]Source control:[/bold]")
        console.print(f"  GitHub API URL:      {settings.github_api_url}")
        console.print(f"  GitHub token:        {'(set)' if settings.github_token else '(not set)'}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")
        console.print(f"  Max pushes:          {settings.max_concurrent_pushes}")
        console.print(f"  Max tag operations:  {settings.max_concurrent_tags}")
        console.print(f"  Build attempts:      {settings.build_retry_attempts}")
        console.print(f"  Git attempts:        {settings.git_retry_attempts}")
        console.print(f"  Git retry delay:     {settings.git_retry_delay}")
        console.print(f"  HTTP timeout:        {settings.http_timeout}")


@app.command()
def build(
    manifest: Annotated[
        Path,
        typer.Option("--manifest", "-m", help="Path to the manifest file"),
    ] = Path("manifest.json"),
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Log engine commands without executing them"),
    ] = False,
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", help="Always build, never reuse published images"),
    ] = False,
    retry: Annotated[
        bool,
        typer.Option("--retry", help="Retry failed builds"),
    ] = False,
    skip_pulling: Annotated[
        bool,
        typer.Option("--skip-pulling", help="Skip pulling base images"),
    ] = False,
    skip_platform_check: Annotated[
        bool,
        typer.Option("--skip-platform-check", help="Skip the base image architecture check"),
    ] = False,
    push: Annotated[
        bool,
        typer.Option("--push", help="Push built images"),
    ] = False,
    output_variable: Annotated[
        str | None,
        typer.Option("--output-variable", help="Pipeline variable receiving built digests"),
    ] = None,
    image_info_output: Annotated[
        Path | None,
        typer.Option("--image-info-output", help="Write image info to this file"),
    ] = None,
    image_info_source: Annotated[
        Path | None,
        typer.Option("--image-info-source", help="Published image info used for caching"),
    ] = None,
    source_repo_url: Annotated[
        str | None,
        typer.Option("--source-repo-url", help="URL of the repository with the Dockerfiles"),
    ] = None,
    repo_prefix: Annotated[
        str,
        typer.Option("--repo-prefix", help="Prefix applied to repo names"),
    ] = "",
    source_repo_prefix: Annotated[
        str | None,
        typer.Option("--source-repo-prefix", help="Repo prefix of mirrored base images"),
    ] = None,
    registry_override: Annotated[
        str | None,
        typer.Option("--registry-override", help="Registry to use instead of the manifest's"),
    ] = None,
    build_args: Annotated[
        list[str] | None,
        typer.Option("--build-arg", help="Build argument KEY=VALUE (can be repeated)"),
    ] = None,
    installed_packages_script: Annotated[
        Path | None,
        typer.Option("--installed-packages-script", help="Script listing installed packages"),
    ] = None,
    paths: Annotated[
        list[str] | None,
        typer.Option("--path", help="Dockerfile path glob to build (can be repeated)"),
    ] = None,
    architecture: Annotated[
        str | None,
        typer.Option("--architecture", help="Only build this architecture"),
    ] = None,
    os_type: Annotated[
        str | None,
        typer.Option("--os-type", help="Only build this OS type"),
    ] = None,
    os_versions: Annotated[
        list[str] | None,
        typer.Option("--os-version", help="OS version glob to build (can be repeated)"),
    ] = None,
) -> None:
    """Build, tag and push the images of a manifest.

    Platforms whose published image is still current are pulled and
    re-tagged instead of rebuilt.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        options = BuildOptions(
            manifest_path=manifest,
            dry_run=dry_run,
            no_cache=no_cache,
            retry=retry,
            skip_pulling=skip_pulling,
            skip_platform_check=skip_platform_check,
            push=push,
            output_variable=output_variable,
            image_info_output_path=image_info_output,
            image_info_source_path=image_info_source,
            source_repo_url=source_repo_url,
            repo_prefix=repo_prefix,
            source_repo_prefix=source_repo_prefix,
            registry_override=registry_override,
            build_args=parse_build_args(build_args),
            installed_packages_script=installed_packages_script,
            platform_filter=ManifestFilter(
                paths=paths or [],
                architecture=architecture,
                os_type=os_type,
                os_versions=os_versions or [],
            ),
        )
        loaded_manifest = load_manifest(
            options.manifest_path,
            registry_override=options.registry_override,
            repo_prefix=options.repo_prefix,
            platform_filter=options.platform_filter,
        )

        inspector = ManifestToolInspector(settings.manifest_tool_executable)
        engine = CachedImageEngine(
            DockerCliEngine(
                inspector,
                executable=settings.docker_executable,
                retry_attempts=settings.build_retry_attempts,
            )
        )
        orchestrator = BuildOrchestrator(
            loaded_manifest,
            options,
            engine,
            DigestCache(inspector),
            GitService(),
            settings,
        )
        summary = orchestrator.run()
    except HANDLED_ERRORS as e:
        _fail(e)
        return

    if options.output_variable:
        console.print(
            format_output_variable(options.output_variable, ",".join(summary.built_digests)),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )


@app.command("publish-image-info")
def publish_image_info_command(
    image_info_path: Annotated[
        Path,
        typer.Argument(help="Image info file produced by a build"),
    ],
    manifest: Annotated[
        Path,
        typer.Option("--manifest", "-m", help="Path to the manifest file"),
    ] = Path("manifest.json"),
    git_owner: Annotated[
        str,
        typer.Option("--git-owner", help="Owner of the repository holding the image info"),
    ] = "",
    git_repo: Annotated[
        str,
        typer.Option("--git-repo", help="Repository holding the image info"),
    ] = "",
    git_branch: Annotated[
        str,
        typer.Option("--git-branch", help="Branch holding the image info"),
    ] = "main",
    git_path: Annotated[
        str,
        typer.Option("--git-path", help="Path of the image info in the repository"),
    ] = "",
    git_token: Annotated[
        str | None,
        typer.Option("--git-token", help="GitHub token (defaults to CIMG_GITHUB_TOKEN)"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Compute the update without committing"),
    ] = False,
) -> None:
    """Merge build image info into the copy kept in source control."""
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        options = PublishImageInfoOptions(
            image_info_path=image_info_path,
            manifest_path=manifest,
            git=GitOptions(
                owner=git_owner,
                repo=git_repo,
                branch=git_branch,
                path=git_path,
                token=git_token or settings.github_token,
            ),
            dry_run=dry_run,
        )
        loaded_manifest = load_manifest(options.manifest_path)

        with httpx.Client(timeout=settings.http_timeout, follow_redirects=True) as client:
            result = publish_image_info(
                options,
                loaded_manifest,
                GitHubCommitService(client, api_url=settings.github_api_url),
                settings,
            )
    except HANDLED_ERRORS as e:
        _fail(e)
        return

    if not result.changed:
        console.print(f"[green]No changes to {result.blob_url} were needed[/green]")
    elif result.committed:
        console.print(f"[green]Updated {result.blob_url} ({result.commit_url})[/green]")
    else:
        console.print(f"[yellow]Dry run: {result.blob_url} would be updated[/yellow]")


if __name__ == "__main__":
    app()
