"""Process execution for builds.

This module handles:
- Running external commands with captured output
- Dry-run handling (commands are logged, not executed)
- Build hooks (``hooks/pre-build`` and ``hooks/post-build``)
- Installed-package queries producing image components
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

from container_imagegen.imageinfo.models import Component

logger = logging.getLogger(__name__)

HOOKS_DIR_NAME = "hooks"


class ProcessExecutionError(Exception):
    """Raised when an external command fails."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        output: str = "",
        code: str = "process_failed",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output
        self.code = code


@dataclass
class ProcessResult:
    """Result of a completed command.

    Attributes:
        command: The command that was executed.
        exit_code: Process exit code.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    command: str
    exit_code: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Combined standard output and standard error."""
        return self.stdout + self.stderr


def run_process(
    args: list[str],
    cwd: Path | None = None,
    dry_run: bool = False,
    timeout: int | None = None,
    error_message: str | None = None,
) -> ProcessResult | None:
    """Run a command and capture its output.

    Args:
        args: Command and arguments.
        cwd: Working directory.
        dry_run: Log the command without executing it.
        timeout: Timeout in seconds (None = no timeout).
        error_message: Message used when the command fails.

    Returns:
        ProcessResult, or None in dry run.

    Raises:
        ProcessExecutionError: If the command cannot be started or exits
            with a non-zero code.
    """
    cmd_str = shlex.join(args)
    if dry_run:
        logger.info("[dry run] %s", cmd_str)
        return None

    logger.info("Executing: %s", cmd_str)
    try:
        completed = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise ProcessExecutionError(
            f"Command timed out after {timeout} seconds: {cmd_str}",
            exit_code=-1,
            code="process_timeout",
        ) from e
    except OSError as e:
        raise ProcessExecutionError(
            f"Failed to execute {cmd_str}: {e}",
            code="execution_error",
        ) from e

    result = ProcessResult(
        command=cmd_str,
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    if result.stdout:
        logger.debug("%s", result.stdout.rstrip())

    if result.exit_code != 0:
        message = error_message or f"Command failed with exit code {result.exit_code}"
        logger.error("%s: %s\n%s", message, cmd_str, result.stderr.rstrip())
        raise ProcessExecutionError(
            f"{message}: {cmd_str}",
            exit_code=result.exit_code,
            output=result.output,
        )
    return result


def invoke_build_hook(hook_name: str, build_context_path: Path, dry_run: bool) -> None:
    """Run a build hook from the build context, if one exists.

    ``hooks/<name>`` is executed directly; otherwise ``hooks/<name>.ps1`` is
    run with PowerShell.

    Args:
        hook_name: 'pre-build' or 'post-build'.
        build_context_path: Build context directory.
        dry_run: Log instead of executing.
    """
    hooks_dir = (build_context_path / HOOKS_DIR_NAME).resolve()
    if not hooks_dir.is_dir():
        return

    script_path = hooks_dir / hook_name
    if script_path.is_file():
        args = [str(script_path)]
    else:
        script_path = script_path.with_suffix(".ps1")
        if not script_path.is_file():
            return
        powershell = "PowerShell" if os.name == "nt" else "pwsh"
        args = [powershell, "-NoProfile", "-File", str(script_path)]

    logger.info("Running %s hook %s", hook_name, script_path)
    run_process(
        args,
        cwd=build_context_path,
        dry_run=dry_run,
        error_message=f"Failed to execute build hook '{script_path}'",
    )


def parse_components(output: str) -> list[Component]:
    """Parse installed-package query output.

    Each non-empty line has the form ``type,name=version``.

    Raises:
        ValueError: If a line is malformed.
    """
    components: list[Component] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        package_type, sep, rest = line.partition(",")
        name, sep2, version = rest.partition("=")
        if not sep or not sep2:
            raise ValueError(f"Invalid installed package line: '{line}'")
        components.append(Component(type=package_type, name=name, version=version))
    return components


def query_installed_packages(
    script_path: Path,
    image_tag: str,
    dockerfile_path: Path,
    dry_run: bool,
) -> list[Component] | None:
    """Run an installed-packages script against an image.

    Invoked as ``/bin/sh <script> <image tag> <dockerfile path>``.

    Returns:
        Parsed components, or None in dry run.
    """
    result = run_process(
        ["/bin/sh", str(script_path), image_tag, str(dockerfile_path)],
        dry_run=dry_run,
        error_message=f"Failed to query installed packages of '{image_tag}'",
    )
    if result is None:
        return None
    return parse_components(result.stdout)


__all__ = [
    "HOOKS_DIR_NAME",
    "ProcessExecutionError",
    "ProcessResult",
    "invoke_build_hook",
    "parse_components",
    "query_installed_packages",
    "run_process",
]
