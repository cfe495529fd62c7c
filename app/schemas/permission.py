from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from uuid import UUID


class ShareRequest(BaseModel):
    itemId: Optional[UUID] = None
    itemType: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


class PermissionOut(BaseModel):
    id: UUID
    user_id: UUID
    role: str
    file_id: Optional[UUID] = None
    folder_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
