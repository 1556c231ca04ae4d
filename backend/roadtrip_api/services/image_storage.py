"""
Road Trip Planner Backend — Image Storage Service
==================================================

What:  Validates uploaded trip images and stores them locally or on Cloudinary.
Why:   Trip creation must either store every image or none, and the storage
       backend is a deployment choice (IMAGE_STORAGE_BACKEND).
How:   ImageStorage is the abstract interface (store/delete). Two backends:
       - LocalImageStorage: date-organized UUID files under STORAGE_ROOT
         written with aiofiles, served from /api/files/{path}
       - CloudinaryImageStorage: Cloudinary SDK upload in a worker thread,
         retried with tenacity (exponential backoff + jitter)
Who:   Called by TripService on create/update.

Upload Pipeline (upload_images):
    1. validate_images(): count ≤ 5, each ≤ 10MB, content type image/*
       → ValidationError (400) before anything is stored
    2. All files are stored concurrently (asyncio.gather)
    3. If ANY store fails, the ones that succeeded are deleted and
       StorageError (500) is raised: no partial image sets

Directory Structure (local backend):
    storage/
    └── 2025/
        └── 06/
            └── 14/
                ├── a1b2c3d4-....jpg
                └── e5f6g7h8-....png
"""

import asyncio
import logging
import mimetypes
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import aiofiles
import aiofiles.os
import cloudinary
import cloudinary.uploader
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from roadtrip_api.config import settings
from roadtrip_api.exceptions import ConfigurationError, StorageError, ValidationError

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = "/api/files/"

# Extensions used when the client's filename has none we recognise
DEFAULT_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


@dataclass
class UploadedImage:
    """An image read from a multipart request, not yet stored."""

    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def validate_images(
    images: Sequence[UploadedImage],
    max_files: Optional[int] = None,
    max_size: Optional[int] = None,
) -> None:
    """
    Rejects the whole batch before any upload.

    Raises:
        ValidationError: too many files, a file over the size limit, or a
            non-image content type
    """
    max_files = max_files or settings.max_upload_files
    max_size = max_size or settings.max_file_size
    max_mb = max_size / (1024 * 1024)

    if len(images) > max_files:
        raise ValidationError(
            message=f"Too many files. Maximum is {max_files} images per upload.",
            field="images",
            context={"count": len(images), "max": max_files},
        )

    for image in images:
        if not (image.content_type or "").lower().startswith("image/"):
            raise ValidationError(
                message=f"File '{image.filename}' is not an image. Only image files are allowed.",
                field="images",
                context={"content_type": image.content_type},
            )
        if image.size > max_size:
            raise ValidationError(
                message=f"File '{image.filename}' exceeds maximum size of {max_mb:.0f}MB.",
                field="images",
                context={"size": image.size, "max_size": max_size},
            )


# ══════════════════════════════════════════════════════════════════════════
# Storage Backends
# ══════════════════════════════════════════════════════════════════════════


class ImageStorage(ABC):
    """
    Contract:
        - store() returns a URL the frontend can use directly in <img src>
        - delete() is best-effort; it never raises for a missing image
        - backend-specific failures surface as StorageError
    """

    @abstractmethod
    async def store(self, image: UploadedImage) -> str:
        ...

    @abstractmethod
    async def delete(self, url: str) -> None:
        ...


class LocalImageStorage(ImageStorage):
    """Stores images on the local filesystem under `storage_root`."""

    def __init__(self, storage_root: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalImageStorage initialized with storage_root=%s", self.storage_root)

    @staticmethod
    def _extension_for(image: UploadedImage) -> str:
        ext = Path(image.filename or "").suffix.lower()
        if ext and mimetypes.types_map.get(ext, "").startswith("image/"):
            return ext
        return DEFAULT_EXTENSIONS.get(image.content_type.lower(), ".img")

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """YYYY/MM/DD/<uuid><ext>; no user input ends up in the path."""
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    def resolve(self, relative_path: str) -> Optional[Path]:
        """
        Maps a /api/files/ path back to a file on disk.

        Returns None for anything that escapes storage_root (path traversal)
        or does not exist.
        """
        candidate = (self.storage_root / relative_path).resolve()
        if not candidate.is_relative_to(self.storage_root):
            return None
        if not candidate.is_file():
            return None
        return candidate

    async def store(self, image: UploadedImage) -> str:
        absolute_path, relative_path = self._generate_storage_path(self._extension_for(image))
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(image.content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", absolute_path, str(e))
            raise StorageError(context={"path": relative_path, "os_error": str(e)})

        logger.info("Image stored: %s (%d bytes)", relative_path, image.size)
        return f"{LOCAL_URL_PREFIX}{relative_path}"

    async def delete(self, url: str) -> None:
        if not url.startswith(LOCAL_URL_PREFIX):
            return
        path = self.resolve(url[len(LOCAL_URL_PREFIX):])
        if path is None:
            logger.debug("Cleanup: image already gone: %s", url)
            return
        try:
            await aiofiles.os.remove(path)
            logger.info("Cleaned up image: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up image %s: %s", url, str(e))


class CloudinaryImageStorage(ImageStorage):
    """
    Uploads images to Cloudinary.

    Transformations (applied on Cloudinary's side):
        - limit to 1200×800 (never upscales)
        - quality auto:good

    The SDK is synchronous, so each call runs in a worker thread. Upload
    failures are retried UPLOAD_RETRY_ATTEMPTS times with exponential
    backoff and jitter before giving up with StorageError.
    """

    TRANSFORMATION = [
        {"width": 1200, "height": 800, "crop": "limit"},
        {"quality": "auto:good"},
    ]

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        folder: Optional[str] = None,
        attempts: Optional[int] = None,
        min_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
    ):
        self.cloud_name = cloud_name or settings.cloudinary_cloud_name
        self.api_key = api_key or settings.cloudinary_api_key
        self.api_secret = api_secret or settings.cloudinary_api_secret
        self.folder = folder or settings.cloudinary_folder
        self.attempts = attempts or settings.upload_retry_attempts
        self.min_wait = settings.upload_retry_min_wait if min_wait is None else min_wait
        self.max_wait = settings.upload_retry_max_wait if max_wait is None else max_wait

        if not (self.cloud_name and self.api_key and self.api_secret):
            raise ConfigurationError(
                message="Image storage is not configured",
                context={"backend": "cloudinary"},
            )
        cloudinary.config(
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
            secure=True,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(Exception),
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential_jitter(
                initial=self.min_wait, max=self.max_wait, jitter=self.min_wait
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def _upload_sync(self, image: UploadedImage) -> Dict[str, Any]:
        return cloudinary.uploader.upload(
            image.content,
            folder=self.folder,
            resource_type="image",
            transformation=self.TRANSFORMATION,
        )

    async def store(self, image: UploadedImage) -> str:
        try:
            async for attempt in self._retrying():
                with attempt:
                    result = await asyncio.to_thread(self._upload_sync, image)
        except Exception as e:
            logger.error("Cloudinary upload failed for %s: %s", image.filename, str(e))
            raise StorageError(context={"filename": image.filename, "error": str(e)}) from e

        url = result.get("secure_url")
        if not url:
            raise StorageError(context={"filename": image.filename, "error": "no secure_url"})
        logger.info("Image uploaded to Cloudinary: %s", result.get("public_id"))
        return url

    @staticmethod
    def public_id_from_url(url: str) -> Optional[str]:
        """
        https://res.cloudinary.com/<cloud>/image/upload/v123/roadtrips/abc.jpg
        → roadtrips/abc
        """
        marker = "/upload/"
        if marker not in url:
            return None
        tail = url.split(marker, 1)[1]
        parts = tail.split("/")
        if parts and parts[0].startswith("v") and parts[0][1:].isdigit():
            parts = parts[1:]
        if not parts:
            return None
        path = "/".join(parts)
        return path.rsplit(".", 1)[0]

    async def delete(self, url: str) -> None:
        public_id = self.public_id_from_url(url)
        if not public_id:
            return
        try:
            await asyncio.to_thread(cloudinary.uploader.destroy, public_id)
            logger.info("Deleted Cloudinary image %s", public_id)
        except Exception as e:
            logger.warning("Failed to delete Cloudinary image %s: %s", public_id, str(e))


# ══════════════════════════════════════════════════════════════════════════
# Batch Upload
# ══════════════════════════════════════════════════════════════════════════


async def upload_images(storage: ImageStorage, images: Sequence[UploadedImage]) -> List[str]:
    """
    Validates then stores every image concurrently, all-or-nothing.

    Returns:
        URLs in the same order as `images`.
    Raises:
        ValidationError: see validate_images (nothing stored)
        StorageError:    any store failed (successful ones are deleted)
    """
    validate_images(images)
    if not images:
        return []

    results = await asyncio.gather(
        *(storage.store(image) for image in images), return_exceptions=True
    )
    urls = [r for r in results if isinstance(r, str)]
    failures = [r for r in results if isinstance(r, BaseException)]

    if failures:
        logger.error(
            "Image upload failed (%d of %d); removing %d stored image(s)",
            len(failures),
            len(images),
            len(urls),
        )
        await discard_images(storage, urls)
        first = failures[0]
        if isinstance(first, (StorageError, ConfigurationError)):
            raise first
        raise StorageError(context={"error": str(first)})

    return urls


async def discard_images(storage: ImageStorage, urls: Sequence[str]) -> None:
    """Best-effort removal of already stored images."""
    if urls:
        await asyncio.gather(*(storage.delete(url) for url in urls))


# ── Backend Selection ─────────────────────────────────────────────────────
_storage: Optional[ImageStorage] = None


def get_image_storage() -> ImageStorage:
    """
    FastAPI dependency returning the configured backend (created lazily so
    a missing Cloudinary config only fails the requests that upload).
    Tests override this dependency with a LocalImageStorage on a tmp dir.
    """
    global _storage
    if _storage is None:
        if settings.image_storage_backend == "cloudinary":
            _storage = CloudinaryImageStorage()
        else:
            _storage = LocalImageStorage()
    return _storage
