from pydantic import BaseModel
from typing import Optional
from uuid import UUID


class Credentials(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class CurrentUser(BaseModel):
    """Identity resolved from a verified bearer token."""
    id: UUID
    email: Optional[str] = None
