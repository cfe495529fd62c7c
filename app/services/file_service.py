"""
File and folder metadata operations, scoped to the calling user.

Listing, rename, search and signed-URL access checks live here together with
the folder-tree helpers the trash and sharing services reuse.
"""
import logging
import time
from pathlib import PurePosixPath
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.database import commit_or_raise
from app.exceptions import (
    BadRequestError,
    NotFoundError,
    PartialFailureError,
    StorageError,
    UpstreamError,
)
from app.models.file import File
from app.models.folder import Folder
from app.models.permission import Permission
from app.schemas.file import FileItem, FolderItem
from app.services.storage_service import StorageBridge

logger = logging.getLogger(__name__)

ITEM_TYPES = ("file", "folder")
SORT_FIELDS = ("name", "created_at")
SORT_ORDERS = ("asc", "desc")


def parse_item_type(item_type: Optional[str]) -> str:
    if item_type not in ITEM_TYPES:
        raise BadRequestError("Invalid item type.")
    return item_type


def model_for(item_type: str):
    return File if parse_item_type(item_type) == "file" else Folder


def to_item(row, **extra):
    """Tag a file or folder row for a mixed listing."""
    if isinstance(row, Folder):
        item = FolderItem.model_validate(row)
    else:
        item = FileItem.model_validate(row)
    return item.model_copy(update=extra) if extra else item


def get_owned_item(db: Session, item_type: str, item_id: UUID, owner_id: UUID):
    model = model_for(item_type)
    return db.query(model).filter(model.id == item_id, model.owner_id == owner_id).first()


def get_active_folder(db: Session, folder_id: UUID, owner_id: UUID) -> Folder:
    folder = db.query(Folder).filter(
        Folder.id == folder_id,
        Folder.owner_id == owner_id,
        Folder.deleted_at.is_(None),
    ).first()
    if folder is None:
        raise NotFoundError("Folder not found.")
    return folder


# Folder tree helpers

def descendant_folder_ids(db: Session, owner_id: UUID, folder_id: UUID) -> List[UUID]:
    """All folders below `folder_id` (any depth, trashed or not), breadth first."""
    found: List[UUID] = []
    seen = {folder_id}
    frontier = [folder_id]
    while frontier:
        children = db.query(Folder.id).filter(
            Folder.owner_id == owner_id,
            Folder.parent_folder_id.in_(frontier),
        ).all()
        frontier = [child_id for (child_id,) in children if child_id not in seen]
        seen.update(frontier)
        found.extend(frontier)
    return found


def ancestor_folder_ids(db: Session, folder_id: Optional[UUID]) -> List[UUID]:
    """`folder_id` followed by each of its parents up to the root."""
    chain: List[UUID] = []
    current = folder_id
    while current is not None and current not in chain:
        chain.append(current)
        row = db.query(Folder.parent_folder_id).filter(Folder.id == current).first()
        current = row[0] if row else None
    return chain


def has_folder_grant(db: Session, user_id: UUID, folder_id: Optional[UUID]) -> bool:
    """True if the user holds a grant on the folder or any folder above it."""
    chain = ancestor_folder_ids(db, folder_id)
    if not chain:
        return False
    return db.query(Permission.id).filter(
        Permission.user_id == user_id,
        Permission.folder_id.in_(chain),
    ).first() is not None


def can_read_file(db: Session, user_id: UUID, record: File) -> bool:
    if record.owner_id == user_id:
        return True
    direct = db.query(Permission.id).filter(
        Permission.user_id == user_id,
        Permission.file_id == record.id,
    ).first()
    return direct is not None or has_folder_grant(db, user_id, record.folder_id)


# Upload and listing

def build_storage_path(owner_id: UUID, filename: str) -> str:
    return f"{owner_id}/{int(time.time() * 1000)}-{filename}"


def upload_file(
    db: Session,
    storage: StorageBridge,
    owner_id: UUID,
    filename: Optional[str],
    content: bytes,
    content_type: Optional[str],
    folder_id: Optional[UUID] = None,
) -> File:
    """
    Store the bytes, then record the file's metadata.

    The two writes are not atomic. When the metadata insert fails the blob is
    removed again; if that removal fails too the orphaned path is reported.
    """
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    if not name:
        raise BadRequestError("No file uploaded.")
    if folder_id is not None:
        get_active_folder(db, folder_id, owner_id)

    content_type = content_type or "application/octet-stream"
    storage_path = build_storage_path(owner_id, name)
    storage.put(storage_path, content, content_type)

    record = File(
        name=name,
        owner_id=owner_id,
        folder_id=folder_id,
        storage_path=storage_path,
        file_type=content_type,
        size=len(content),
    )
    db.add(record)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Metadata insert failed for {storage_path}: {e}")
        try:
            storage.remove([storage_path])
        except StorageError:
            logger.error(f"Orphaned blob left in storage: {storage_path}")
            raise PartialFailureError(
                "File was stored but its metadata could not be saved.", [storage_path]
            ) from e
        raise UpstreamError("Failed to save file metadata.") from e

    db.refresh(record)
    logger.info(f"Uploaded {storage_path} ({record.size} bytes)")
    return record


def list_files(db: Session, owner_id: UUID) -> List[File]:
    return db.query(File).filter(File.owner_id == owner_id).all()


def create_folder(
    db: Session, owner_id: UUID, name: Optional[str], parent_folder_id: Optional[UUID] = None
) -> Folder:
    name = (name or "").strip()
    if not name:
        raise BadRequestError("Folder name is required.")
    if parent_folder_id is not None:
        get_active_folder(db, parent_folder_id, owner_id)

    folder = Folder(name=name, owner_id=owner_id, parent_folder_id=parent_folder_id)
    db.add(folder)
    commit_or_raise(db, "create folder")
    db.refresh(folder)
    return folder


def get_folder_contents(db: Session, user_id: UUID, folder_id: Optional[UUID] = None):
    """
    Active folders and files directly inside `folder_id` (None for the root).

    A folder owned by someone else can be listed when the caller holds a grant on
    it or on one of its ancestors; the listing is then the owner's items.
    """
    owner_id = user_id
    if folder_id is not None:
        folder = db.query(Folder).filter(
            Folder.id == folder_id, Folder.deleted_at.is_(None)
        ).first()
        if folder is None:
            raise NotFoundError("Folder not found.")
        if folder.owner_id != user_id:
            if not has_folder_grant(db, user_id, folder.id):
                raise NotFoundError("Folder not found.")
            owner_id = folder.owner_id

    folders = db.query(Folder).filter(
        Folder.owner_id == owner_id,
        Folder.parent_folder_id == folder_id,
        Folder.deleted_at.is_(None),
    ).all()
    files = db.query(File).filter(
        File.owner_id == owner_id,
        File.folder_id == folder_id,
        File.deleted_at.is_(None),
    ).all()
    return [to_item(f) for f in folders] + [to_item(f) for f in files]


def _sort_key(sort_by: str):
    if sort_by == "name":
        return lambda item: item.name.lower()
    # undated rows sort after dated ones
    return lambda item: (item.created_at is None, item.created_at)


def sort_contents(items, sort_by: str = "name", sort_order: str = "asc"):
    """Folders first, then files; each group ordered by `sort_by` and `sort_order`."""
    if sort_by not in SORT_FIELDS:
        raise BadRequestError(f"sortBy must be one of: {', '.join(SORT_FIELDS)}.")
    if sort_order not in SORT_ORDERS:
        raise BadRequestError(f"sortOrder must be one of: {', '.join(SORT_ORDERS)}.")

    key = _sort_key(sort_by)
    reverse = sort_order == "desc"
    folders = [item for item in items if item.type == "folder"]
    files = [item for item in items if item.type != "folder"]
    return sorted(folders, key=key, reverse=reverse) + sorted(files, key=key, reverse=reverse)


# Rename and search

def rename_item(db: Session, owner_id: UUID, item_type: str, item_id: UUID, name: Optional[str]):
    item_type = parse_item_type(item_type)
    name = (name or "").strip()
    if not name:
        raise BadRequestError("New name is required.")

    item = get_owned_item(db, item_type, item_id, owner_id)
    if item is None:
        raise NotFoundError(f"{item_type.capitalize()} not found.")

    item.name = name
    commit_or_raise(db, f"rename {item_type}")
    db.refresh(item)
    return to_item(item)


def search_items(db: Session, owner_id: UUID, query: Optional[str]):
    """Case-insensitive substring match over the caller's active folders, then files."""
    if not query:
        raise BadRequestError("Search query is required.")

    folders = db.query(Folder).filter(
        Folder.owner_id == owner_id,
        Folder.deleted_at.is_(None),
        Folder.name.icontains(query, autoescape=True),
    ).all()
    files = db.query(File).filter(
        File.owner_id == owner_id,
        File.deleted_at.is_(None),
        File.name.icontains(query, autoescape=True),
    ).all()
    return [to_item(f) for f in folders] + [to_item(f) for f in files]


# Signed URLs

def sign_storage_path(db: Session, storage: StorageBridge, user_id: UUID, path: Optional[str]) -> str:
    if not path:
        raise BadRequestError("File path is required.")

    record = db.query(File).filter(
        File.storage_path == path, File.deleted_at.is_(None)
    ).first()
    if record is None or not can_read_file(db, user_id, record):
        raise NotFoundError("File not found or you do not have permission.")
    return storage.sign_url(path, settings.SIGNED_URL_TTL)


def get_public_link(db: Session, storage: StorageBridge, owner_id: UUID, file_id: UUID) -> str:
    record = get_owned_item(db, "file", file_id, owner_id)
    if record is None:
        raise NotFoundError("File not found or you do not have permission.")
    return storage.sign_url(record.storage_path, settings.PUBLIC_LINK_TTL)
