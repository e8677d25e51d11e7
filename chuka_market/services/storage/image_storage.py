import logging
import mimetypes
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from fastapi.concurrency import run_in_threadpool
from firebase_admin import storage
from google.api_core.exceptions import GoogleAPIError, NotFound

from chuka_market.core.config import Settings, StorageBackend
from chuka_market.services.product.exceptions import ImageStorageError

logger = logging.getLogger(__name__)


@dataclass
class ImageUpload:
    filename: str
    content_type: str
    data: bytes


def object_name(upload: ImageUpload) -> str:
    suffix = Path(upload.filename or "").suffix.lower()
    if not suffix:
        suffix = mimetypes.guess_extension(upload.content_type) or ""
    return f"{uuid.uuid4().hex}{suffix}"


class ImageStorage(ABC):
    """Stores listing images outside the database and hands back a reference."""

    @abstractmethod
    async def save(self, upload: ImageUpload) -> str:
        """Stores the image and returns the reference kept in `image_url`."""

    @abstractmethod
    async def delete(self, reference: str) -> None:
        """Removes a previously stored image. Unknown references are ignored."""


class LocalImageStorage(ImageStorage):
    """Writes images to a directory that the app serves under `url_path`."""

    def __init__(self, base_dir: str | Path, url_path: str = "/uploads") -> None:
        self.base = Path(base_dir)
        self.base.mkdir(parents=True, exist_ok=True)
        self.url_path = url_path.rstrip("/")

    async def save(self, upload: ImageUpload) -> str:
        name = object_name(upload)
        try:
            await run_in_threadpool((self.base / name).write_bytes, upload.data)
        except OSError as e:
            raise ImageStorageError(f"Could not write image {name}") from e
        return f"{self.url_path}/{name}"

    def resolve_path(self, reference: str) -> Path | None:
        prefix = f"{self.url_path}/"
        if not reference.startswith(prefix):
            return None
        name = reference[len(prefix) :]
        # references never point outside the upload directory
        if not name or "/" in name or name in (".", ".."):
            return None
        return self.base / name

    async def delete(self, reference: str) -> None:
        path = self.resolve_path(reference)
        if path is None:
            logger.debug("Ignoring foreign image reference %s", reference)
            return
        try:
            await run_in_threadpool(path.unlink, missing_ok=True)
        except OSError as e:
            raise ImageStorageError(f"Could not delete image {reference}") from e


class FirebaseImageStorage(ImageStorage):
    """Stores images as public objects in a Firebase (Cloud Storage) bucket."""

    def __init__(self, firebase_app, bucket_name: str | None = None) -> None:
        self.bucket = storage.bucket(bucket_name, app=firebase_app)

    def _upload(self, name: str, upload: ImageUpload) -> str:
        blob = self.bucket.blob(f"products/{name}")
        blob.upload_from_string(upload.data, content_type=upload.content_type)
        blob.make_public()
        return blob.public_url

    async def save(self, upload: ImageUpload) -> str:
        try:
            return await run_in_threadpool(self._upload, object_name(upload), upload)
        except GoogleAPIError as e:
            raise ImageStorageError("Could not upload image to storage bucket") from e

    def blob_name(self, reference: str) -> str | None:
        prefix = f"https://storage.googleapis.com/{self.bucket.name}/"
        if not reference.startswith(prefix):
            return None
        return unquote(reference[len(prefix) :])

    async def delete(self, reference: str) -> None:
        name = self.blob_name(reference)
        if name is None:
            logger.debug("Ignoring foreign image reference %s", reference)
            return
        try:
            await run_in_threadpool(self.bucket.blob(name).delete)
        except NotFound:
            return
        except GoogleAPIError as e:
            raise ImageStorageError(f"Could not delete image {reference}") from e


def create_storage(settings: Settings, firebase_app=None) -> ImageStorage:
    if settings.storage_backend == StorageBackend.FIREBASE:
        return FirebaseImageStorage(firebase_app, settings.firebase_storage_bucket)
    return LocalImageStorage(settings.upload_dir, settings.upload_url_path)
