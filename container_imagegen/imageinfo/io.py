"""Image info load and serialization.

Serialized documents use camelCase keys, two-space indentation and omit
unset fields. The internal ``isUnchanged`` flag can be stripped before a
document is published.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from container_imagegen.imageinfo.models import ImageInfoDocument


class ImageInfoLoadError(Exception):
    """Raised when image info content cannot be parsed."""

    def __init__(self, message: str, code: str = "image_info_load_error") -> None:
        super().__init__(message)
        self.code = code


def parse_image_info(content: str) -> ImageInfoDocument:
    """Parse image info JSON content.

    Raises:
        ImageInfoLoadError: If the content is not valid image info.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ImageInfoLoadError(f"Invalid image info JSON: {e}", code="parse_error") from e
    try:
        return ImageInfoDocument.model_validate(data)
    except ValidationError as e:
        raise ImageInfoLoadError(f"Invalid image info: {e}", code="validation") from e


def load_image_info(path: Path) -> ImageInfoDocument:
    """Load an image info file."""
    return parse_image_info(path.read_text(encoding="utf-8"))


def strip_internal_fields(document: ImageInfoDocument) -> ImageInfoDocument:
    """Return a copy of the document without internal-only fields."""
    stripped = document.model_copy(deep=True)
    for platform in stripped.iter_platforms():
        platform.is_unchanged = None
    return stripped


def image_info_to_dict(
    document: ImageInfoDocument,
    include_internal: bool = True,
) -> dict[str, Any]:
    """Convert a document to JSON-compatible data.

    Args:
        document: Image info document.
        include_internal: Keep internal-only fields that are set.

    Returns:
        Dictionary with camelCase keys and unset fields omitted.
    """
    if not include_internal:
        document = strip_internal_fields(document)
    data: dict[str, Any] = document.model_dump(
        mode="json", by_alias=True, exclude_none=True
    )
    for repo in data.get("repos", []):
        for image in repo.get("images", []):
            for platform in image.get("platforms", []):
                if platform.get("isUnchanged") is False:
                    del platform["isUnchanged"]
    return data


def serialize_image_info(
    document: ImageInfoDocument,
    include_internal: bool = True,
) -> str:
    """Serialize a document to its JSON text form."""
    return json.dumps(
        image_info_to_dict(document, include_internal=include_internal),
        indent=2,
        ensure_ascii=False,
    )


def write_image_info(
    document: ImageInfoDocument,
    path: Path,
    include_internal: bool = True,
) -> None:
    """Write a document to a file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        serialize_image_info(document, include_internal=include_internal),
        encoding="utf-8",
    )


__all__ = [
    "ImageInfoLoadError",
    "image_info_to_dict",
    "load_image_info",
    "parse_image_info",
    "serialize_image_info",
    "strip_internal_fields",
    "write_image_info",
]
