"""Blob storage abstraction. Local filesystem for dev, Supabase Storage for production.

Both backends address blobs by key and expose the two calls the tree
manager needs: ``put`` a payload and ``remove`` a batch of keys.
"""
import logging
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import quote

import aiofiles
import aiohttp

from drive.config import Settings
from drive.exceptions import StorageError

logger = logging.getLogger(__name__)


def build_storage_key(original_name: str, now: Optional[float] = None) -> str:
    """Timestamp-prefixed key: ``<epoch-ms>-<random>-<basename>``.

    The random part keeps same-name uploads within one millisecond apart.
    """
    millis = int((time.time() if now is None else now) * 1000)
    name = PurePosixPath(original_name.replace("\\", "/")).name or "unnamed"
    return f"{millis}-{uuid.uuid4().hex[:8]}-{name}"


class BlobStorage(ABC):
    """Key-addressed byte storage."""

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store ``data`` under ``key`` and return the key."""

    @abstractmethod
    async def remove(self, keys: list[str]) -> None:
        """Remove every key in one call. Missing keys are not an error."""


class LocalBlobStorage(BlobStorage):
    """Blobs as files under a base directory."""

    def __init__(self, base_path: str):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        try:
            path.relative_to(self.base_path.resolve())
        except ValueError:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        file_path = self._path_for(key)
        try:
            async with aiofiles.open(file_path, "xb") as f:
                await f.write(data)
        except OSError as e:
            logger.error("Local write of %s failed: %s", key, e)
            raise StorageError(f"Failed to store {key}: {e}") from e
        return key

    async def remove(self, keys: list[str]) -> None:
        paths = [self._path_for(key) for key in keys]
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.error("Local delete of %s failed: %s", path.name, e)
                raise StorageError(f"Failed to remove {path.name}: {e}") from e


class SupabaseBlobStorage(BlobStorage):
    """Blobs in a Supabase Storage bucket, over its REST API."""

    def __init__(self, base_url: str, api_key: str, bucket: str, timeout: float = 30):
        if not base_url or not api_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set for supabase storage")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def open(self) -> None:
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def _headers(self, extra: Optional[dict] = None) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(self, method: str, url: str, **kwargs):
        """Send one request and return the decoded JSON body, or raise StorageError."""
        await self.open()
        try:
            async with self._session.request(method, url, **kwargs) as resp:
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None
                if resp.status >= 400:
                    message = body.get("message") or body.get("error") if isinstance(body, dict) else None
                    raise StorageError(message or f"HTTP {resp.status} from storage")
                return body
        except aiohttp.ClientError as e:
            raise StorageError(f"Storage request failed: {e}") from e

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(key)}"
        headers = self._headers({
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "false",
        })
        await self._request("POST", url, data=data, headers=headers)
        logger.info("Uploaded %s to bucket %s", key, self.bucket)
        return key

    async def remove(self, keys: list[str]) -> None:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}"
        await self._request("DELETE", url, json={"prefixes": keys}, headers=self._headers())
        logger.info("Removed %d object(s) from bucket %s", len(keys), self.bucket)


def create_blob_storage(settings: Settings) -> BlobStorage:
    if settings.FILE_STORAGE_TYPE == "local":
        return LocalBlobStorage(settings.FILE_STORAGE_PATH)
    if settings.FILE_STORAGE_TYPE == "supabase":
        return SupabaseBlobStorage(
            settings.SUPABASE_URL,
            settings.SUPABASE_KEY,
            settings.STORAGE_BUCKET,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    raise ValueError(f"Unknown storage type: {settings.FILE_STORAGE_TYPE}")
