from pydantic import BaseModel, field_validator
from typing import Optional, Literal, Union
from datetime import datetime
from uuid import UUID


class FileOut(BaseModel):
    id: UUID
    name: str
    owner_id: UUID
    folder_id: Optional[UUID] = None
    storage_path: str
    file_type: Optional[str] = None
    size: int
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FolderOut(BaseModel):
    id: UUID
    name: str
    owner_id: UUID
    parent_folder_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Listing entries carry a `type` tag so the client can render files and folders together
class FileItem(FileOut):
    type: Literal["file"] = "file"
    role: Optional[str] = None


class FolderItem(FolderOut):
    type: Literal["folder"] = "folder"
    file_type: Optional[str] = None
    role: Optional[str] = None


Item = Union[FolderItem, FileItem]


class FolderCreate(BaseModel):
    name: Optional[str] = None
    parentFolderId: Optional[UUID] = None

    @field_validator("parentFolderId", mode="before")
    @classmethod
    def empty_means_root(cls, value):
        return value or None


class RenameRequest(BaseModel):
    name: Optional[str] = None


class SignedUrlRequest(BaseModel):
    path: Optional[str] = None


class SignedUrlOut(BaseModel):
    signedUrl: str
    path: str


class PublicLinkOut(BaseModel):
    publicUrl: str


class MessageOut(BaseModel):
    message: str
