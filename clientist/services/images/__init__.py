"""Local image storage package."""

from clientist.services.images.local_images import (
    ImageStorageError,
    InvalidImageError,
    LocalImageStore,
)

__all__ = [
    "ImageStorageError",
    "InvalidImageError",
    "LocalImageStore",
]
