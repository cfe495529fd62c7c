import uuid
from sqlalchemy import BigInteger, Column, String, Text, ForeignKey, DateTime, Uuid, func
from app.database import Base


class File(Base):
    __tablename__ = "files"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    owner_id = Column(Uuid, nullable=False, index=True)
    folder_id = Column(Uuid, ForeignKey("folders.id", ondelete="SET NULL"), nullable=True, index=True)
    storage_path = Column(Text, nullable=False, unique=True)
    file_type = Column(String(255), nullable=True)
    size = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)
