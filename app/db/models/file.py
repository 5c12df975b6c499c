from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from app.db.base import BaseModel


class UploadedFile(BaseModel):
    __tablename__ = "uploaded_files"

    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.uuid"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(50))
    size_bytes = Column(Integer, nullable=False, default=0)
    storage_path = Column(String(500), nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="files")
