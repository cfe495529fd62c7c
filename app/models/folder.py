import uuid
from sqlalchemy import Column, String, ForeignKey, DateTime, Uuid, func
from app.database import Base

class Folder(Base):
    __tablename__ = "folders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    owner_id = Column(Uuid, nullable=False, index=True)  # identity provider user id
    parent_folder_id = Column(Uuid, ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)
