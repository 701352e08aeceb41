"""Image info module.

This module handles:
- The image info record (repos -> images -> platforms with build results)
- Loading and serialization, including stripping internal-only fields
- Merging fresh records into published ones and pruning stale entries
"""

from container_imagegen.imageinfo.io import (
    ImageInfoLoadError,
    load_image_info,
    parse_image_info,
    serialize_image_info,
    strip_internal_fields,
    write_image_info,
)
from container_imagegen.imageinfo.merge import (
    ImageInfoIntegrityError,
    MergeOptions,
    merge_image_info,
    remove_out_of_date_content,
)
from container_imagegen.imageinfo.models import (
    Component,
    ImageInfoDocument,
    ImageRecord,
    PlatformRecord,
    RepoRecord,
    SharedTagsRecord,
)

__all__ = [
    # Models
    "Component",
    "ImageInfoDocument",
    "ImageRecord",
    "PlatformRecord",
    "RepoRecord",
    "SharedTagsRecord",
    # IO
    "ImageInfoLoadError",
    "load_image_info",
    "parse_image_info",
    "serialize_image_info",
    "strip_internal_fields",
    "write_image_info",
    # Merge
    "ImageInfoIntegrityError",
    "MergeOptions",
    "merge_image_info",
    "remove_out_of_date_content",
]
