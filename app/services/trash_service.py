"""
Soft delete, restore, trash listing and permanent deletion.

Trash and restore cascade through the whole subtree of a folder. Permanent
deletion removes blobs from storage first and rows second; the two steps are not
atomic, so a failure between them is reported with the affected paths.
"""
import logging
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import commit_or_raise
from app.exceptions import NotFoundError, PartialFailureError
from app.models.file import File
from app.models.folder import Folder
from app.models.permission import Permission
from app.services.file_service import (
    descendant_folder_ids,
    get_owned_item,
    parse_item_type,
    to_item,
)
from app.services.storage_service import StorageBridge

logger = logging.getLogger(__name__)


def _get_item_or_404(db: Session, owner_id: UUID, item_type: str, item_id: UUID):
    item = get_owned_item(db, item_type, item_id, owner_id)
    if item is None:
        raise NotFoundError(f"{item_type.capitalize()} not found.")
    return item


def _set_deleted_at(db: Session, owner_id: UUID, item_type: str, item, value):
    """Stamp (or clear) `deleted_at` on the item and, for folders, on everything below it."""
    if item_type == "file":
        item.deleted_at = value
        return

    folder_ids = [item.id] + descendant_folder_ids(db, owner_id, item.id)
    folders = db.query(Folder).filter(Folder.id.in_(folder_ids), Folder.owner_id == owner_id)
    files = db.query(File).filter(File.folder_id.in_(folder_ids), File.owner_id == owner_id)
    if value is not None:
        # keep the original stamp on anything already in the trash
        folders = folders.filter(Folder.deleted_at.is_(None))
        files = files.filter(File.deleted_at.is_(None))
    folders.update({Folder.deleted_at: value}, synchronize_session=False)
    files.update({File.deleted_at: value}, synchronize_session=False)


def move_to_trash(db: Session, owner_id: UUID, item_type: str, item_id: UUID) -> str:
    item_type = parse_item_type(item_type)
    item = _get_item_or_404(db, owner_id, item_type, item_id)

    _set_deleted_at(db, owner_id, item_type, item, datetime.now(timezone.utc))
    commit_or_raise(db, f"move {item_type} to trash")
    logger.info(f"{item_type} {item_id} moved to trash by {owner_id}")
    return f"{item_type} and its contents moved to trash."


def _parent_is_active(db: Session, owner_id: UUID, item_type: str, item) -> bool:
    parent_id = item.folder_id if item_type == "file" else item.parent_folder_id
    if parent_id is None:
        return True
    parent = db.query(Folder.id).filter(
        Folder.id == parent_id, Folder.owner_id == owner_id, Folder.deleted_at.is_(None)
    ).first()
    return parent is not None


def restore_from_trash(db: Session, owner_id: UUID, item_type: str, item_id: UUID) -> str:
    """
    Clear `deleted_at` on an item and everything below it.

    An item whose parent is still trashed (or gone) comes back at the root, so it
    is always reachable from a folder listing after a restore.
    """
    item_type = parse_item_type(item_type)
    item = _get_item_or_404(db, owner_id, item_type, item_id)

    if not _parent_is_active(db, owner_id, item_type, item):
        if item_type == "file":
            item.folder_id = None
        else:
            item.parent_folder_id = None
        logger.info(f"{item_type} {item_id} restored to the root; its parent is not active")

    _set_deleted_at(db, owner_id, item_type, item, None)
    commit_or_raise(db, f"restore {item_type}")
    logger.info(f"{item_type} {item_id} restored by {owner_id}")
    return f"{item_type} and its contents restored."


def list_trash(db: Session, owner_id: UUID):
    """
    Top-level trashed items only.

    The queries return every trashed row flatly; an item is kept when it has no
    parent or its parent is not itself trashed.
    """
    trashed_folders = db.query(Folder).filter(
        Folder.owner_id == owner_id, Folder.deleted_at.isnot(None)
    ).all()
    trashed_files = db.query(File).filter(
        File.owner_id == owner_id, File.deleted_at.isnot(None)
    ).all()

    trashed_folder_ids = {folder.id for folder in trashed_folders}
    top_level_folders = [
        folder for folder in trashed_folders
        if folder.parent_folder_id is None or folder.parent_folder_id not in trashed_folder_ids
    ]
    top_level_files = [
        record for record in trashed_files
        if record.folder_id is None or record.folder_id not in trashed_folder_ids
    ]
    return [to_item(f) for f in top_level_folders] + [to_item(f) for f in top_level_files]


def _delete_rows(db: Session, file_ids: List[UUID], folder_ids: List[UUID], storage_paths: List[str]):
    try:
        if file_ids:
            db.query(Permission).filter(Permission.file_id.in_(file_ids)).delete(synchronize_session=False)
            db.query(File).filter(File.id.in_(file_ids)).delete(synchronize_session=False)
        if folder_ids:
            db.query(Permission).filter(Permission.folder_id.in_(folder_ids)).delete(synchronize_session=False)
            db.query(Folder).filter(Folder.id.in_(folder_ids)).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Blobs removed but rows survived; reconcile paths {storage_paths}: {e}")
        raise PartialFailureError(
            "Files were removed from storage but their records could not be deleted.",
            storage_paths,
        ) from e


def delete_permanently(
    db: Session, storage: StorageBridge, owner_id: UUID, item_type: str, item_id: UUID
) -> str:
    """
    Remove an item for good, blobs first.

    Folders are purged recursively: every descendant folder, every file inside
    any of them, and all share grants on the removed items.
    """
    item_type = parse_item_type(item_type)
    item = _get_item_or_404(db, owner_id, item_type, item_id)

    if item_type == "file":
        storage.remove([item.storage_path])
        _delete_rows(db, [item.id], [], [item.storage_path])
        logger.info(f"File {item_id} permanently deleted by {owner_id}")
        return "File permanently deleted."

    folder_ids = [item.id] + descendant_folder_ids(db, owner_id, item.id)
    contained = db.query(File.id, File.storage_path).filter(
        File.owner_id == owner_id, File.folder_id.in_(folder_ids)
    ).all()
    file_ids = [file_id for file_id, _ in contained]
    storage_paths = [path for _, path in contained]

    storage.remove(storage_paths)
    _delete_rows(db, file_ids, folder_ids, storage_paths)
    logger.info(
        f"Folder {item_id} permanently deleted by {owner_id} "
        f"({len(folder_ids)} folder(s), {len(file_ids)} file(s))"
    )
    return "Folder and contents permanently deleted."
