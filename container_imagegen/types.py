"""Shared type definitions for container_imagegen.

This module contains dataclasses, enums, and type aliases shared across
subpackages to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from typing import Generic, TypeVar

T = TypeVar("T")


class OsType(str, Enum):
    """Operating system family of a platform."""

    LINUX = "linux"
    WINDOWS = "windows"

    @property
    def display_name(self) -> str:
        """Name used in image info records (e.g. 'Linux')."""
        return self.value.capitalize()


class ManifestMediaType(Flag):
    """Registry manifest kinds accepted when resolving a digest."""

    MANIFEST = auto()
    MANIFEST_LIST = auto()
    ANY = MANIFEST | MANIFEST_LIST


@dataclass
class OperationResult(Generic[T]):
    """Result of an operation (commit, push, etc.).

    Attributes:
        success: Whether the operation succeeded.
        message: Human-readable outcome.
        code: Stable error code when the operation failed.
        transient: Whether a failure may succeed when retried.
        value: Operation output on success.
        details: Extra structured details.
    """

    success: bool
    message: str
    code: str | None = None
    transient: bool = False
    value: T | None = None
    details: dict[str, object] = field(default_factory=dict)


__all__ = [
    "ManifestMediaType",
    "OperationResult",
    "OsType",
]
