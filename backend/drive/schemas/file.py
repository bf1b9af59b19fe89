"""File request/response schemas."""
from typing import Optional
from datetime import datetime
from drive.schemas.base import CamelModel, CamelORMModel
from drive.schemas.folder import FolderResponse


class FileMetaCreate(CamelModel):
    name: Optional[str] = None
    folder_id: Optional[str] = None
    owner_id: Optional[str] = None
    src: Optional[str] = None


class FileDelete(CamelModel):
    file_id: Optional[str] = None
    owner_id: Optional[str] = None
    src: Optional[str] = None


class FileResponse(CamelORMModel):
    id: str
    name: str
    folder_id: Optional[str] = None
    owner_id: str
    src: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ItemsResponse(CamelORMModel):
    folders: list[FolderResponse] = []
    files: list[FileResponse] = []


class UploadResponse(CamelModel):
    name: str
    src: str
    owner_id: Optional[str] = None
    folder_id: Optional[str] = None
