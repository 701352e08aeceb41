"""Image info publishing module.

This module handles:
- Merging build image info into the copy kept in source control
- Committing the result with retry
"""

from container_imagegen.publish.service import (
    PublishError,
    PublishResult,
    publish_image_info,
)

__all__ = ["PublishError", "PublishResult", "publish_image_info"]
