import uuid
from sqlalchemy import CheckConstraint, Column, String, ForeignKey, DateTime, UniqueConstraint, Uuid, func
from app.database import Base


class Permission(Base):
    __tablename__ = "permissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)  # grantee
    role = Column(String(50), nullable=False)
    file_id = Column(Uuid, ForeignKey("files.id", ondelete="CASCADE"), nullable=True)
    folder_id = Column(Uuid, ForeignKey("folders.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        # exactly one target
        CheckConstraint(
            "(file_id IS NULL) <> (folder_id IS NULL)",
            name="ck_permission_single_target",
        ),
        UniqueConstraint("user_id", "file_id", name="uq_permission_user_file"),
        UniqueConstraint("user_id", "folder_id", name="uq_permission_user_folder"),
    )
