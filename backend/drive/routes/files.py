"""Files API routes: folder tree listing, folder CRUD, file metadata and uploads."""
from typing import Optional
from fastapi import APIRouter, Depends, Form, Query, UploadFile, File as FastAPIFile

from drive.dependencies import bind_owner, get_token_owner, get_tree_manager
from drive.schemas.common import MessageResponse
from drive.schemas.file import FileDelete, FileMetaCreate, FileResponse, ItemsResponse, UploadResponse
from drive.schemas.folder import FolderCreate, FolderDelete, FolderRename, FolderResponse
from drive.services.tree_manager import TreeManager

router = APIRouter(prefix="/api/files", tags=["files"])


@router.get("/items", response_model=ItemsResponse)
async def list_items(
    folder_id: Optional[str] = Query(None, alias="folderId"),
    owner_id: Optional[str] = Query(None, alias="ownerId"),
    tree: TreeManager = Depends(get_tree_manager),
    token_owner: Optional[str] = Depends(get_token_owner),
):
    """List folders and files directly inside a folder (root when folderId is omitted)."""
    items = await tree.list_items(bind_owner(owner_id, token_owner), folder_id)
    return ItemsResponse(
        folders=[FolderResponse.model_validate(f) for f in items["folders"]],
        files=[FileResponse.model_validate(f) for f in items["files"]],
    )


@router.post("/folder", response_model=FolderResponse, status_code=201)
async def create_folder(
    body: FolderCreate,
    tree: TreeManager = Depends(get_tree_manager),
    token_owner: Optional[str] = Depends(get_token_owner),
):
    folder = await tree.create_folder(body.name, body.parent_id, bind_owner(body.owner_id, token_owner))
    return FolderResponse.model_validate(folder)


@router.put("/folder/rename", response_model=FolderResponse)
async def rename_folder(
    body: FolderRename,
    tree: TreeManager = Depends(get_tree_manager),
    token_owner: Optional[str] = Depends(get_token_owner),
):
    folder = await tree.rename_folder(body.folder_id, body.new_name, bind_owner(body.owner_id, token_owner))
    return FolderResponse.model_validate(folder)


@router.delete("/folder", response_model=MessageResponse)
async def delete_folder(
    body: FolderDelete,
    tree: TreeManager = Depends(get_tree_manager),
    token_owner: Optional[str] = Depends(get_token_owner),
):
    """Delete a folder with its files and direct subfolders (whole subtree when recursive)."""
    await tree.delete_folder(body.folder_id, bind_owner(body.owner_id, token_owner), recursive=body.recursive)
    return {"message": "Folder deleted successfully"}


@router.post("/file", response_model=FileResponse, status_code=201)
async def save_file_meta(
    body: FileMetaCreate,
    tree: TreeManager = Depends(get_tree_manager),
    token_owner: Optional[str] = Depends(get_token_owner),
):
    """Persist metadata for a blob that was already uploaded."""
    file = await tree.save_file_meta(body.name, body.folder_id, bind_owner(body.owner_id, token_owner), body.src)
    return FileResponse.model_validate(file)


@router.delete("/file", response_model=MessageResponse)
async def delete_file(
    body: FileDelete,
    tree: TreeManager = Depends(get_tree_manager),
    token_owner: Optional[str] = Depends(get_token_owner),
):
    """Delete a file from storage, then its record."""
    await tree.delete_file(body.file_id, bind_owner(body.owner_id, token_owner), body.src)
    return {"message": "File deleted successfully"}


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: Optional[UploadFile] = FastAPIFile(None),
    owner_id: Optional[str] = Form(None, alias="ownerId"),
    folder_id: Optional[str] = Form(None, alias="folderId"),
    tree: TreeManager = Depends(get_tree_manager),
    token_owner: Optional[str] = Depends(get_token_owner),
):
    """Store uploaded bytes and return their storage key. Metadata is saved separately."""
    contents = await file.read() if file is not None else None
    result = await tree.upload_file(
        file.filename if file is not None else None,
        contents,
        owner_id=bind_owner(owner_id, token_owner),
        folder_id=folder_id,
        content_type=file.content_type if file is not None else None,
    )
    return UploadResponse(**result)
