"""
Image store: StorageBackend abstract interface plus the local-disk backend.
Swap backends by changing STORAGE_BACKEND; callers only see URLs.
"""

import abc
import logging
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}


class StorageBackend(abc.ABC):
    @abc.abstractmethod
    def save(self, data: bytes, filename: str, subfolder: str = "") -> str:
        """Persist data and return its public URL."""

    @abc.abstractmethod
    def delete(self, url: str) -> bool:
        """Remove the object behind `url`. Returns False if it did not exist."""

    @abc.abstractmethod
    def exists(self, url: str) -> bool:
        """Return True if the object behind `url` exists."""


class LocalDiskStorage(StorageBackend):
    """
    Stores images on the local filesystem under `root` and serves them from
    `base_url` (mounted as static files by the web server).
    """

    def __init__(self, root: str, base_url: str = "/media"):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")

    def save(self, data: bytes, filename: str, subfolder: str = "") -> str:
        target_dir = self.root / subfolder if subfolder else self.root
        target_dir.mkdir(parents=True, exist_ok=True)
        # Unique stored name so replacing an image never overwrites the old one in place
        stored_name = f"{uuid.uuid4().hex}{Path(filename).suffix.lower()}"
        target_path = target_dir / stored_name
        target_path.write_bytes(data)
        return f"{self.base_url}/{target_path.relative_to(self.root).as_posix()}"

    def delete(self, url: str) -> bool:
        path = self._path_for(url)
        if path is None or not path.exists():
            return False
        path.unlink()
        return True

    def exists(self, url: str) -> bool:
        path = self._path_for(url)
        return path is not None and path.exists()

    def _path_for(self, url: str) -> Path | None:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return None
        candidate = (self.root / url[len(prefix):]).resolve()
        if self.root.resolve() not in candidate.parents:
            return None
        return candidate


def validate_image_filename(filename: str) -> None:
    from marketadmin.services.errors import ValidationFailed

    if Path(filename or "").suffix.lower() not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationFailed(
            f"Unsupported image type. Allowed: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}"
        )


def get_storage() -> StorageBackend:
    """Factory, returns the configured storage backend."""
    from marketadmin.settings import settings

    if settings.storage_backend == "local":
        return LocalDiskStorage(settings.local_storage_path, settings.media_base_url)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")
