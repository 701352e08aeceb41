"""Dockerfile FROM-instruction parsing.

Only what is needed to identify base images is parsed: global ARG
defaults, FROM references and stage names.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

FROM_PATTERN = re.compile(
    r"^\s*FROM\s+(?:--platform=\S+\s+)?(?P<image>\S+)(?:\s+AS\s+(?P<stage>\S+))?\s*$",
    re.IGNORECASE,
)
ARG_PATTERN = re.compile(r"^\s*ARG\s+(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?:=(?P<value>\S*))?", re.IGNORECASE)
VARIABLE_PATTERN = re.compile(r"\$(?:\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)\}|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))")

SCRATCH_IMAGE = "scratch"


@dataclass
class DockerfileFromInfo:
    """Base images referenced by a Dockerfile.

    Attributes:
        from_images: Distinct image references in FROM instructions, in
            order, excluding stage references and 'scratch'.
        final_stage_from_image: Image the final stage is based on
            (resolved through stage names), or None for 'scratch'.
    """

    from_images: list[str] = field(default_factory=list)
    final_stage_from_image: str | None = None


def _logical_lines(content: str) -> list[str]:
    """Join backslash continuations and drop comments."""
    lines: list[str] = []
    current = ""
    for raw in content.splitlines():
        stripped = raw.strip()
        if not current and stripped.startswith("#"):
            continue
        if stripped.endswith("\\"):
            current += stripped[:-1] + " "
            continue
        current += stripped
        if current:
            lines.append(current)
        current = ""
    if current:
        lines.append(current)
    return lines


def substitute_variables(value: str, variables: dict[str, str]) -> str:
    """Expand ``$NAME`` and ``${NAME}`` references; unknown names are kept."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group("braced") or match.group("bare")
        return variables.get(name, match.group(0))

    return VARIABLE_PATTERN.sub(_replace, value)


def parse_from_images(
    content: str,
    build_args: dict[str, str] | None = None,
) -> DockerfileFromInfo:
    """Parse the base images of a Dockerfile.

    Args:
        content: Dockerfile text.
        build_args: Build arguments overriding global ARG defaults.

    Returns:
        DockerfileFromInfo for the Dockerfile.
    """
    variables: dict[str, str] = {}
    seen_from = False
    stages: dict[str, str | None] = {}
    info = DockerfileFromInfo()
    last_base: str | None = None

    for line in _logical_lines(content):
        arg_match = ARG_PATTERN.match(line)
        if arg_match and not seen_from:
            name = arg_match.group("name")
            if arg_match.group("value") is not None:
                variables[name] = arg_match.group("value").strip("\"'")
            continue

        from_match = FROM_PATTERN.match(line)
        if not from_match:
            continue

        seen_from = True
        effective_vars = {**variables, **(build_args or {})}
        image = substitute_variables(from_match.group("image"), effective_vars)

        if image.lower() in stages:
            base = stages[image.lower()]
        elif image.lower() == SCRATCH_IMAGE:
            base = None
        else:
            base = image
            if image not in info.from_images:
                info.from_images.append(image)

        stage = from_match.group("stage")
        if stage:
            stages[stage.lower()] = base
        last_base = base

    info.final_stage_from_image = last_base
    return info


def read_from_images(
    dockerfile_path: Path,
    build_args: dict[str, str] | None = None,
) -> DockerfileFromInfo:
    """Read a Dockerfile from disk and parse its base images."""
    return parse_from_images(
        dockerfile_path.read_text(encoding="utf-8"), build_args=build_args
    )


__all__ = [
    "DockerfileFromInfo",
    "parse_from_images",
    "read_from_images",
    "substitute_variables",
]
