"""Folder request/response schemas.

Request fields are optional at the schema level; required-field checks
happen in the tree manager so they report as ValidationError (400).
"""
from typing import Optional
from datetime import datetime
from drive.schemas.base import CamelModel, CamelORMModel


class FolderCreate(CamelModel):
    name: Optional[str] = None
    parent_id: Optional[str] = None
    owner_id: Optional[str] = None


class FolderRename(CamelModel):
    folder_id: Optional[str] = None
    new_name: Optional[str] = None
    owner_id: Optional[str] = None


class FolderDelete(CamelModel):
    folder_id: Optional[str] = None
    owner_id: Optional[str] = None
    recursive: bool = False


class FolderResponse(CamelORMModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    owner_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
