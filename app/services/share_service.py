"""
Share grants: create, list, revoke, and the reverse "shared with me" lookup.
"""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.database import commit_or_raise
from app.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UpstreamError,
)
from app.models.file import File
from app.models.folder import Folder
from app.models.permission import Permission
from app.schemas.auth import CurrentUser
from app.services.file_service import ITEM_TYPES, get_owned_item, parse_item_type, to_item
from app.services.identity_service import IdentityProvider

logger = logging.getLogger(__name__)

MAX_ROLE_LENGTH = 50


def _get_owned_or_403(db: Session, owner_id: UUID, item_type: str, item_id: UUID):
    item = get_owned_item(db, item_type, item_id, owner_id)
    if item is None:
        raise ForbiddenError(f"Forbidden: You are not the owner of this {item_type}.")
    return item


def share_item(
    db: Session,
    identity: IdentityProvider,
    owner: CurrentUser,
    item_id: Optional[UUID],
    item_type: Optional[str],
    email: Optional[str],
    role: Optional[str],
) -> str:
    if not item_id or not item_type or not email or not role:
        raise BadRequestError("Item ID, type, email, and role are required.")
    # ownership comes first so non-owners learn nothing else about the item
    if item_type not in ITEM_TYPES:
        raise ForbiddenError(f"Forbidden: You are not the owner of this {item_type}.")
    _get_owned_or_403(db, owner.id, item_type, item_id)

    role = role.strip()
    if not role or len(role) > MAX_ROLE_LENGTH:
        raise BadRequestError(f"role must be 1-{MAX_ROLE_LENGTH} characters.")

    recipient = identity.find_user_by_email(email)
    if recipient is None:
        raise NotFoundError("User with that email not found.")
    recipient_id = UUID(str(recipient.id))
    if recipient_id == owner.id:
        raise BadRequestError("You cannot share an item with yourself.")

    target = Permission.file_id if item_type == "file" else Permission.folder_id
    existing = db.query(Permission.id).filter(
        Permission.user_id == recipient_id, target == item_id
    ).first()
    if existing is not None:
        raise ConflictError("Could not share item. The user may already have permission.")

    db.add(Permission(
        user_id=recipient_id,
        role=role,
        file_id=item_id if item_type == "file" else None,
        folder_id=item_id if item_type == "folder" else None,
    ))
    try:
        commit_or_raise(db, "share item")
    except UpstreamError as e:
        # lost a race with an identical grant
        if isinstance(e.__cause__, IntegrityError):
            raise ConflictError("Could not share item. The user may already have permission.") from e
        raise

    logger.info(f"{item_type} {item_id} shared with {recipient_id} as {role}")
    return f"{item_type.capitalize()} shared successfully with {email}."


def shared_with_me(db: Session, user_id: UUID):
    """Files then folders the user holds grants on, each tagged with its role."""
    permissions = db.query(Permission).filter(Permission.user_id == user_id).all()
    file_roles = {p.file_id: p.role for p in permissions if p.file_id}
    folder_roles = {p.folder_id: p.role for p in permissions if p.folder_id}

    shared_files = []
    if file_roles:
        shared_files = db.query(File).filter(
            File.id.in_(list(file_roles)), File.deleted_at.is_(None)
        ).all()

    shared_folders = []
    if folder_roles:
        shared_folders = db.query(Folder).filter(
            Folder.id.in_(list(folder_roles)), Folder.deleted_at.is_(None)
        ).all()

    return (
        [to_item(f, role=file_roles[f.id]) for f in shared_files]
        + [to_item(f, role=folder_roles[f.id], file_type="folder") for f in shared_folders]
    )


def list_permissions(db: Session, owner_id: UUID, item_type: str, item_id: UUID):
    item_type = parse_item_type(item_type)
    _get_owned_or_403(db, owner_id, item_type, item_id)
    target = Permission.file_id if item_type == "file" else Permission.folder_id
    return db.query(Permission).filter(target == item_id).all()


def revoke_permission(db: Session, owner_id: UUID, permission_id: UUID) -> str:
    permission = db.query(Permission).filter(Permission.id == permission_id).first()
    if permission is None:
        raise NotFoundError("Permission not found.")

    if permission.file_id is not None:
        _get_owned_or_403(db, owner_id, "file", permission.file_id)
    else:
        _get_owned_or_403(db, owner_id, "folder", permission.folder_id)

    db.delete(permission)
    commit_or_raise(db, "revoke permission")
    logger.info(f"Permission {permission_id} revoked by {owner_id}")
    return "Permission revoked."
