"""
ReWear Backend — Listing Media Service
========================================

What:  Validates, stores and removes the images attached to listings.
How:   Checks extension, size and MIME type, then writes each image to a
       date-organized directory under a UUID filename.
Who:   CatalogService (listing creation and deletion) and
       ModerationService (reject-and-delete).

Security Model:
    1. Extension check:   rejects obviously wrong files without reading them
    2. Size check:        Content-Length first, then actual byte count
    3. MIME type check:   python-magic inspects the header bytes
    4. UUID filename:     no user input in stored paths

Directory Structure:
    uploads/
    └── 2024/
        └── 01/
            └── 20/
                ├── a1b2c3d4-5678.jpg
                └── e5f6g7h8-9012.webp
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import aiofiles

from rewear.config import settings
from rewear.exceptions import ValidationError, FileStorageError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

_EXTENSION_MIME = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


class MediaService:
    """
    Manages the lifecycle of listing images.

    Lifecycle of an uploaded image:
        1. CatalogService.create_item() → MediaService.store_images()
        2. Each image: extension → size → MIME → write
        3. Relative paths are saved on the Item row
        4. If any image fails, the images already written for that listing
           are removed before the error propagates
        5. Listing deleted or rejected → delete_images()
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("MediaService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """
        Returns the normalized extension (lowercase with dot).

        Raises:
            ValidationError if the extension is not an allowed image type.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="images",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Rejects empty images and images above MAX_FILE_SIZE.

        The Content-Length value is checked first, then the actual byte count.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Uploaded image is empty.", field="images")

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"Image size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="images",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"Image size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="images",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, file_content: bytes, filename: str) -> str:
        """
        Returns the MIME type detected from the file's magic bytes.

        Raises:
            ValidationError if the content is not an allowed image type.
        """
        try:
            import magic
            mime_type = magic.from_buffer(file_content, mime=True)
        except ImportError:
            # libmagic missing (e.g. CI image): fall back to the extension
            logger.warning(
                "python-magic not available — falling back to extension-based type detection."
            )
            mime_type = _EXTENSION_MIME.get(Path(filename).suffix.lower(), "application/octet-stream")
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"Only image files are allowed."
                ),
                field="images",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES.keys())},
            )

        return mime_type

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for YYYY/MM/DD/<uuid><ext>."""
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{date_dir}/{unique_name}"
        absolute_path = self.storage_root / relative_path

        return absolute_path, relative_path

    def resolve(self, relative_path: str) -> Path:
        """
        Absolute path of a stored file.

        Raises:
            ValidationError if the path escapes the storage root.
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        return full_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Write validated file content to disk.

        Raises:
            FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)

            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("Image stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a file from storage if it exists.

        Missing files are ignored; other failures are logged, not raised,
        so a listing deletion never fails on a stray image.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Removed image: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to remove image %s: %s", file_path, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Validates extension, size and MIME type, then stores the image.

        Returns:
            (absolute_path, relative_path_for_db)
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content, filename)
        return await self.store_file(content, ext)

    async def store_images(
        self,
        uploads: Sequence[Tuple[str, bytes, Optional[int]]],
    ) -> List[str]:
        """
        Store every (filename, content, content_length) upload of one listing.

        All-or-nothing: if one image is rejected, the ones already written
        are removed and the error propagates.

        Returns:
            Relative paths in upload order.
        """
        if len(uploads) > settings.max_images_per_item:
            raise ValidationError(
                message=f"A listing can have at most {settings.max_images_per_item} images.",
                field="images",
                context={"received": len(uploads)},
            )

        stored: List[Tuple[str, str]] = []
        try:
            for filename, content, content_length in uploads:
                stored.append(await self.validate_and_store(filename, content, content_length))
        except Exception:
            for absolute_path, _ in stored:
                await self.cleanup_file(absolute_path)
            raise
        return [relative for _, relative in stored]

    async def delete_images(self, relative_paths: Iterable[str]) -> None:
        """Remove the stored images of a deleted listing. External URLs are skipped."""
        for relative_path in relative_paths:
            if relative_path.startswith(("http://", "https://")):
                continue
            try:
                full_path = self.resolve(relative_path)
            except ValidationError:
                logger.warning("Refusing to delete image outside storage root: %s", relative_path)
                continue
            await self.cleanup_file(str(full_path))


# ── Singleton Instance ────────────────────────────────────────────────────
media_service = MediaService()
