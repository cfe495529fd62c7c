from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.database import get_db
from app.exceptions import BadRequestError
from app.schemas.auth import CurrentUser
from app.schemas.file import (
    FileOut,
    FolderCreate,
    FolderOut,
    Item,
    MessageOut,
    PublicLinkOut,
    RenameRequest,
    SignedUrlOut,
    SignedUrlRequest,
)
from app.schemas.permission import PermissionOut, ShareRequest
from app.services import file_service, share_service, trash_service
from app.services.identity_service import IdentityProvider, get_identity_provider
from app.services.storage_service import StorageBridge, get_storage
from app.utils.auth import get_current_user

router = APIRouter(prefix="/files", tags=["Files"])


def _parse_folder_id(value: Optional[str]) -> Optional[UUID]:
    # an empty form field means the root
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        raise BadRequestError("folderId must be a valid id.")


@router.post("/upload", status_code=status.HTTP_201_CREATED, response_model=FileOut)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    folderId: Optional[str] = Form(None),
    user: CurrentUser = Depends(get_current_user),
    storage: StorageBridge = Depends(get_storage),
    db: Session = Depends(get_db),
):
    """Upload a file into the root or into `folderId`."""
    if file is None:
        raise BadRequestError("No file uploaded.")
    folder_id = _parse_folder_id(folderId)
    content = await file.read()
    return await run_in_threadpool(
        file_service.upload_file,
        db,
        storage,
        user.id,
        file.filename,
        content,
        file.content_type,
        folder_id,
    )


@router.get("", response_model=List[FileOut])
def list_files(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return file_service.list_files(db, user.id)


@router.post("/folders", status_code=status.HTTP_201_CREATED, response_model=FolderOut)
def create_folder(
    folder: Optional[FolderCreate] = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    folder = folder or FolderCreate()
    return file_service.create_folder(db, user.id, folder.name, folder.parentFolderId)


@router.get("/contents", response_model=List[Item])
def get_contents(
    folderId: Optional[str] = Query(None, description="Folder to list; omit for the root"),
    sortBy: str = Query("name", description="name or created_at"),
    sortOrder: str = Query("asc", description="asc or desc"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    List the folders and files directly inside a folder (or the root).

    Folders always come before files; each group is ordered by `sortBy` in
    `sortOrder` direction.
    """
    items = file_service.get_folder_contents(db, user.id, _parse_folder_id(folderId))
    return file_service.sort_contents(items, sortBy or "name", sortOrder or "asc")


@router.post("/signed-url", response_model=SignedUrlOut)
def create_signed_url(
    body: Optional[SignedUrlRequest] = None,
    user: CurrentUser = Depends(get_current_user),
    storage: StorageBridge = Depends(get_storage),
    db: Session = Depends(get_db),
):
    """Short-lived URL for a blob the caller owns or has been granted access to."""
    path = body.path if body else None
    signed_url = file_service.sign_storage_path(db, storage, user.id, path)
    return SignedUrlOut(signedUrl=signed_url, path=path)


@router.get("/trash", response_model=List[Item])
def list_trash(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return trash_service.list_trash(db, user.id)


@router.get("/shared-with-me", response_model=List[Item])
def shared_with_me(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return share_service.shared_with_me(db, user.id)


@router.get("/search", response_model=List[Item])
def search(
    q: Optional[str] = Query(None, description="Case-insensitive name fragment"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return file_service.search_items(db, user.id, q)


@router.post("/share", response_model=MessageOut)
def share(
    body: Optional[ShareRequest] = None,
    user: CurrentUser = Depends(get_current_user),
    identity: IdentityProvider = Depends(get_identity_provider),
    db: Session = Depends(get_db),
):
    body = body or ShareRequest()
    message = share_service.share_item(
        db, identity, user, body.itemId, body.itemType, body.email, body.role
    )
    return MessageOut(message=message)


@router.delete("/share/{permission_id}", response_model=MessageOut)
def revoke_share(
    permission_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageOut(message=share_service.revoke_permission(db, user.id, permission_id))


@router.get("/{file_id}/public-link", response_model=PublicLinkOut)
def public_link(
    file_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    storage: StorageBridge = Depends(get_storage),
    db: Session = Depends(get_db),
):
    """Long-lived (one year) signed URL for a file the caller owns."""
    return PublicLinkOut(publicUrl=file_service.get_public_link(db, storage, user.id, file_id))


@router.patch("/{item_type}/{item_id}", response_model=Item)
def rename(
    item_type: str,
    item_id: UUID,
    body: Optional[RenameRequest] = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    name = body.name if body else None
    return file_service.rename_item(db, user.id, item_type, item_id, name)


@router.post("/{item_type}/{item_id}/trash", response_model=MessageOut)
def move_to_trash(
    item_type: str,
    item_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageOut(message=trash_service.move_to_trash(db, user.id, item_type, item_id))


@router.post("/{item_type}/{item_id}/restore", response_model=MessageOut)
def restore(
    item_type: str,
    item_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageOut(message=trash_service.restore_from_trash(db, user.id, item_type, item_id))


@router.delete("/{item_type}/{item_id}/permanent", response_model=MessageOut)
def delete_permanently(
    item_type: str,
    item_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    storage: StorageBridge = Depends(get_storage),
    db: Session = Depends(get_db),
):
    message = trash_service.delete_permanently(db, storage, user.id, item_type, item_id)
    return MessageOut(message=message)


@router.get("/{item_type}/{item_id}/permissions", response_model=List[PermissionOut])
def list_permissions(
    item_type: str,
    item_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Share grants on an item the caller owns."""
    return share_service.list_permissions(db, user.id, item_type, item_id)
