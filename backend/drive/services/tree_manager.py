"""Folder/file tree operations, scoped per owner.

Rows live in the ``folders`` and ``files`` tables; file bytes live in blob
storage under ``File.src``. Multi-step deletes commit phase by phase with no
enclosing transaction, so a failure part-way leaves earlier phases applied.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import select, delete as sql_delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from drive.exceptions import (
    NotFoundError, PersistenceError, StorageError, ValidationError,
)
from drive.models import File, Folder
from drive.services.blob_storage import BlobStorage, build_storage_key

logger = logging.getLogger(__name__)


def _require(**fields) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        names = list(fields)
        if len(names) == 1:
            message = f"{names[0]} is required"
        else:
            message = f"{', '.join(names[:-1])} and {names[-1]} are required"
        raise ValidationError(message, details={"missing": missing})


def _normalize_parent(value: Optional[str]) -> Optional[str]:
    return value or None


class TreeManager:
    """Owner-scoped folder tree backed by a DB session and a blob store."""

    def __init__(self, db: AsyncSession, storage: BlobStorage, max_upload_bytes: Optional[int] = None):
        self.db = db
        self.storage = storage
        self.max_upload_bytes = max_upload_bytes

    @asynccontextmanager
    async def _guard(self, action: str, status_code: Optional[int] = None):
        """Turn database errors raised in the block into PersistenceError."""
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("%s failed: %s", action, e)
            raise PersistenceError(f"{action} failed: {e}", status_code=status_code) from e

    @asynccontextmanager
    async def _phase(self, action: str, status_code: Optional[int] = None):
        """Run one write phase and commit it on its own."""
        async with self._guard(action, status_code):
            yield
            await self.db.commit()

    async def _remove_blobs(self, keys: list[str]) -> None:
        try:
            await self.storage.remove(keys)
        except StorageError as e:
            logger.error("Blob removal of %d key(s) failed: %s", len(keys), e.message)
            raise PersistenceError(e.message) from e

    async def _owned_folder(self, folder_id: str, owner_id: str) -> Optional[Folder]:
        result = await self.db.execute(
            select(Folder).where(Folder.id == folder_id, Folder.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def _require_owned_folder(
        self, folder_id: Optional[str], owner_id: str, status_code: Optional[int] = None,
    ) -> None:
        if not folder_id:
            return
        async with self._guard("Selecting folder", status_code):
            folder = await self._owned_folder(folder_id, owner_id)
        if folder is None:
            raise NotFoundError("Folder", folder_id)

    # ── Listing ──────────────────────────────────────────────────────

    async def list_items(self, owner_id: Optional[str], folder_id: Optional[str] = None) -> dict:
        """Direct children of ``folder_id`` (or the owner's root)."""
        _require(ownerId=owner_id)
        folder_id = _normalize_parent(folder_id)
        async with self._guard("Listing items", status_code=500):
            if folder_id and await self._owned_folder(folder_id, owner_id) is None:
                return {"folders": [], "files": []}

            folder_query = select(Folder).where(Folder.owner_id == owner_id)
            file_query = select(File).where(File.owner_id == owner_id)
            if folder_id:
                folder_query = folder_query.where(Folder.parent_id == folder_id)
                file_query = file_query.where(File.folder_id == folder_id)
            else:
                folder_query = folder_query.where(Folder.parent_id.is_(None))
                file_query = file_query.where(File.folder_id.is_(None))

            folders = (await self.db.execute(folder_query.order_by(Folder.created_at, Folder.name))).scalars().all()
            files = (await self.db.execute(file_query.order_by(File.created_at, File.name))).scalars().all()

        logger.debug("Listed %d folder(s), %d file(s) for %s in %s",
                     len(folders), len(files), owner_id, folder_id or "root")
        return {"folders": list(folders), "files": list(files)}

    # ── Folders ──────────────────────────────────────────────────────

    async def create_folder(self, name: Optional[str], parent_id: Optional[str], owner_id: Optional[str]) -> Folder:
        _require(name=name, ownerId=owner_id)
        parent_id = _normalize_parent(parent_id)
        await self._require_owned_folder(parent_id, owner_id, status_code=500)

        folder = Folder(name=name, parent_id=parent_id, owner_id=owner_id)
        async with self._phase("Creating folder", status_code=500):
            self.db.add(folder)
        await self.db.refresh(folder)
        logger.info("Created folder %s (%s) for %s", folder.id, name, owner_id)
        return folder

    async def rename_folder(self, folder_id: Optional[str], new_name: Optional[str], owner_id: Optional[str]) -> Folder:
        _require(folderId=folder_id, newName=new_name, ownerId=owner_id)
        async with self._guard("Selecting folder"):
            folder = await self._owned_folder(folder_id, owner_id)
        if folder is None:
            raise NotFoundError("Folder", folder_id)

        async with self._phase("Renaming folder"):
            folder.name = new_name
        await self.db.refresh(folder)
        logger.info("Renamed folder %s to %s", folder_id, new_name)
        return folder

    async def delete_folder(self, folder_id: Optional[str], owner_id: Optional[str], recursive: bool = False) -> None:
        """Delete a folder, its files, and its child folders.

        The default cascade is one level deep: child folder rows are deleted
        but their own files and subfolders are left in place, still pointing
        at the removed parent. With ``recursive=True`` the whole subtree is
        collected before anything is removed.
        """
        _require(folderId=folder_id, ownerId=owner_id)
        if recursive:
            await self._delete_subtree(folder_id, owner_id)
            return

        async with self._guard("Selecting folder files"):
            result = await self.db.execute(
                select(File).where(File.folder_id == folder_id, File.owner_id == owner_id)
            )
            files = result.scalars().all()
        if files:
            await self._remove_blobs([f.src for f in files])
            async with self._phase("Deleting folder files"):
                await self.db.execute(sql_delete(File).where(File.id.in_([f.id for f in files])))

        async with self._phase("Deleting subfolders"):
            await self.db.execute(
                sql_delete(Folder).where(Folder.parent_id == folder_id, Folder.owner_id == owner_id)
            )

        async with self._phase("Deleting folder"):
            await self.db.execute(
                sql_delete(Folder).where(Folder.id == folder_id, Folder.owner_id == owner_id)
            )
        logger.info("Deleted folder %s (%d file(s)) for %s", folder_id, len(files), owner_id)

    async def _collect_subtree(self, folder_id: str, owner_id: str) -> list[str]:
        """Breadth-first ids of ``folder_id`` and every descendant folder."""
        collected = [folder_id]
        seen = {folder_id}
        frontier = [folder_id]
        while frontier:
            result = await self.db.execute(
                select(Folder.id).where(Folder.parent_id.in_(frontier), Folder.owner_id == owner_id)
            )
            frontier = [fid for fid in result.scalars().all() if fid not in seen]
            seen.update(frontier)
            collected.extend(frontier)
        return collected

    async def _delete_subtree(self, folder_id: str, owner_id: str) -> None:
        async with self._guard("Collecting subtree"):
            folder_ids = await self._collect_subtree(folder_id, owner_id)
            result = await self.db.execute(
                select(File).where(File.folder_id.in_(folder_ids), File.owner_id == owner_id)
            )
            files = result.scalars().all()

        if files:
            await self._remove_blobs([f.src for f in files])
            async with self._phase("Deleting subtree files"):
                await self.db.execute(sql_delete(File).where(File.id.in_([f.id for f in files])))

        async with self._phase("Deleting subtree folders"):
            await self.db.execute(
                sql_delete(Folder).where(Folder.id.in_(folder_ids), Folder.owner_id == owner_id)
            )
        logger.info("Deleted subtree %s (%d folder(s), %d file(s)) for %s",
                    folder_id, len(folder_ids), len(files), owner_id)

    # ── Files ────────────────────────────────────────────────────────

    async def upload_file(
        self, filename: Optional[str], data: Optional[bytes],
        owner_id: Optional[str] = None, folder_id: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> dict:
        """Store the bytes and return the key. No File row is written."""
        if data is None:
            raise ValidationError("No file uploaded")
        if self.max_upload_bytes is not None and len(data) > self.max_upload_bytes:
            raise ValidationError(
                f"File exceeds the {self.max_upload_bytes} byte upload limit",
                details={"size_bytes": len(data)},
            )

        name = filename or "unnamed"
        src = await self.storage.put(build_storage_key(name), data, content_type=content_type)
        logger.info("Stored upload %s (%d bytes) for %s", src, len(data), owner_id)
        return {"name": name, "src": src, "owner_id": owner_id, "folder_id": folder_id or None}

    async def save_file_meta(
        self, name: Optional[str], folder_id: Optional[str],
        owner_id: Optional[str], src: Optional[str],
    ) -> File:
        _require(name=name, ownerId=owner_id, src=src)
        folder_id = _normalize_parent(folder_id)
        await self._require_owned_folder(folder_id, owner_id)

        file = File(name=name, folder_id=folder_id, owner_id=owner_id, src=src)
        async with self._phase("Saving file metadata"):
            self.db.add(file)
        await self.db.refresh(file)
        logger.info("Saved file %s (%s) for %s", file.id, src, owner_id)
        return file

    async def delete_file(self, file_id: Optional[str], owner_id: Optional[str], src: Optional[str]) -> None:
        """Remove the blob, then the row. A failed blob removal leaves the row untouched."""
        _require(fileId=file_id, ownerId=owner_id, src=src)
        async with self._guard("Selecting file"):
            result = await self.db.execute(
                select(File).where(File.id == file_id, File.owner_id == owner_id)
            )
            file = result.scalar_one_or_none()
        if file is None:
            raise NotFoundError("File", file_id)
        if file.src != src:
            raise ValidationError("src does not match the stored file")

        await self._remove_blobs([src])
        async with self._phase("Deleting file"):
            await self.db.execute(
                sql_delete(File).where(File.id == file_id, File.owner_id == owner_id)
            )
        logger.info("Deleted file %s for %s", file_id, owner_id)
