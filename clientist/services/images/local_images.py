"""
Local Client Profile Pictures

Profile pictures never leave the device. Each client has at most one
image, stored as client_profile_<client_id>.<ext> in the images
directory; saving a new one replaces the old one.

DESIGN DECISION: The source is opened with Pillow before it is copied,
so an unreadable or non-image file is rejected up front instead of
showing up later as a broken avatar.

Deletion is best-effort and never raises: a file that cannot be removed
must not block deleting the client it belonged to.
"""

import shutil
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlparse
from uuid import UUID

import structlog
from PIL import Image, UnidentifiedImageError


logger = structlog.get_logger(__name__)

FILE_PREFIX = "client_profile_"
LOOKUP_EXTENSIONS = ("jpg", "jpeg", "png", "webp", "heic")

# Pillow cannot decode HEIC without an extra plugin
_UNVERIFIED_EXTENSIONS = {"heic"}


class ImageStorageError(Exception):
    """Base exception for local image storage errors."""
    pass


class InvalidImageError(ImageStorageError):
    """Source file is missing, unsupported or not a readable image."""
    pass


def _to_path(uri: Union[str, Path]) -> Path:
    if isinstance(uri, Path):
        return uri
    if uri.startswith("file://"):
        return Path(unquote(urlparse(uri).path))
    return Path(uri)


class LocalImageStore:
    """
    Saves, finds and deletes client profile pictures on disk.

    Returned URIs are file:// URIs.
    """

    def __init__(
        self,
        images_dir: Path,
        supported_formats: tuple[str, ...] = LOOKUP_EXTENSIONS,
    ):
        self._images_dir = Path(images_dir)
        self._supported_formats = tuple(fmt.lower() for fmt in supported_formats)

    @property
    def images_dir(self) -> Path:
        return self._images_dir

    def _path_for(self, client_id: UUID, extension: str) -> Path:
        return self._images_dir / f"{FILE_PREFIX}{client_id}.{extension}"

    def _ensure_directory(self) -> None:
        self._images_dir.mkdir(parents=True, exist_ok=True)

    def _is_inside_images_dir(self, path: Path) -> bool:
        try:
            return path.resolve().is_relative_to(self._images_dir.resolve())
        except (OSError, ValueError):
            return False

    def _lookup_extensions(self) -> list[str]:
        # Standard extensions first, then anything extra the settings allow
        return list(dict.fromkeys((*LOOKUP_EXTENSIONS, *self._supported_formats)))

    def _verify(self, path: Path) -> None:
        try:
            with Image.open(path) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise InvalidImageError(f"Not a readable image: {path.name}") from e

    async def save_client_image(
        self,
        client_id: UUID,
        source: Union[str, Path],
    ) -> str:
        """
        Copy an image into the images directory for this client.

        Any existing picture for the client is removed first.

        Returns:
            The file:// URI of the stored copy

        Raises:
            InvalidImageError: Source missing, unsupported or unreadable
            ImageStorageError: Copy failed
        """
        source_path = _to_path(source)
        if not source_path.is_file():
            raise InvalidImageError(f"Image not found: {source_path}")

        extension = source_path.suffix.lstrip(".").lower() or "jpg"
        if extension not in self._supported_formats:
            raise InvalidImageError(
                f"Unsupported image format '{extension}'. "
                f"Supported: {', '.join(self._supported_formats)}"
            )

        if extension not in _UNVERIFIED_EXTENSIONS:
            self._verify(source_path)

        try:
            self._ensure_directory()
            await self.cleanup(client_id)
            target = self._path_for(client_id, extension)
            shutil.copyfile(source_path, target)
        except OSError as e:
            raise ImageStorageError(f"Failed to save image: {e}") from e

        logger.info("client_image_saved", client_id=str(client_id), file=target.name)
        return target.resolve().as_uri()

    async def get_client_image_uri(self, client_id: UUID) -> Optional[str]:
        """URI of the client's stored picture, or None if there is none."""
        for extension in self._lookup_extensions():
            path = self._path_for(client_id, extension)
            if path.is_file():
                return path.resolve().as_uri()
        return None

    async def delete_client_image(self, uri: Optional[str]) -> None:
        """Remove a stored picture. Files outside the images directory are left alone."""
        if not uri:
            return
        path = _to_path(uri)
        if not self.is_local_file_uri(uri) or not self._is_inside_images_dir(path):
            logger.warning("client_image_delete_refused", uri=uri)
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("client_image_delete_failed", uri=uri, error=str(e))

    async def cleanup(self, client_id: UUID) -> bool:
        """Remove the client's picture if one exists. Returns True if one did."""
        uri = await self.get_client_image_uri(client_id)
        if uri is None:
            return False
        await self.delete_client_image(uri)
        return True

    def is_local_file_uri(self, uri: Optional[str]) -> bool:
        if not uri:
            return False
        if uri.startswith("file://"):
            return True
        return self._is_inside_images_dir(_to_path(uri))
