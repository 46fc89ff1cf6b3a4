"""Local disk storage for imported frames and generated videos."""

import shutil
from functools import lru_cache
from pathlib import Path

from mockups.config import get_settings


class LocalStorageService:
    """Stores files under a root directory and serves them via /api/storage."""

    def __init__(self, base_path: str | Path | None = None, public_base_url: str | None = None) -> None:
        settings = get_settings()
        self.base_path = Path(base_path or settings.local_storage_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")

    def _get_full_path(self, storage_key: str) -> Path:
        full_path = (self.base_path / storage_key).resolve()
        if not full_path.is_relative_to(self.base_path):
            raise ValueError(f"Invalid storage key: {storage_key}")
        return full_path

    def _prepare_upload(self, storage_key: str) -> Path:
        full_path = self._get_full_path(storage_key)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        return full_path

    def get_public_url(self, storage_key: str) -> str:
        """Get URL for accessing the file."""
        return f"{self.public_base_url}/api/storage/files/{storage_key}"

    def upload_file_from_bytes(self, storage_key: str, data: bytes) -> str:
        """Upload file from bytes."""
        full_path = self._prepare_upload(storage_key)
        full_path.write_bytes(data)
        return self.get_public_url(storage_key)

    def upload_file(self, local_path: str | Path, storage_key: str) -> str:
        """Copy a local file into storage."""
        full_path = self._prepare_upload(storage_key)
        shutil.copy(str(local_path), str(full_path))
        return self.get_public_url(storage_key)

    def delete_file(self, storage_key: str) -> bool:
        """Delete file."""
        full_path = self._get_full_path(storage_key)
        if full_path.exists():
            full_path.unlink()
            return True
        return False

    def file_exists(self, storage_key: str) -> bool:
        """Check if file exists."""
        return self._get_full_path(storage_key).exists()

    def get_file_path(self, storage_key: str) -> Path:
        """Get the actual file path for serving."""
        return self._get_full_path(storage_key)


@lru_cache
def get_storage_service() -> LocalStorageService:
    return LocalStorageService()
