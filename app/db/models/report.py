from sqlalchemy import (
    Column, String, Text, Integer, Boolean, ForeignKey, Uuid, Enum, UniqueConstraint
)
from sqlalchemy.orm import relationship

from app.db.base import BaseModel
from app.domains.reports.entities import ReportStatus


class Report(BaseModel):
    __tablename__ = "reports"

    file_id = Column(Uuid(as_uuid=True), ForeignKey("uploaded_files.uuid"), nullable=False)
    generated_by = Column(Uuid(as_uuid=True), ForeignKey("users.uuid"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    status = Column(
        Enum(ReportStatus, values_callable=lambda enum_cls: [item.value for item in enum_cls]),
        nullable=False,
        default=ReportStatus.PENDING
    )
    prompt = Column(Text)
    content = Column(Text)
    error_detail = Column(Text)
    duration_ms = Column(Integer)
    is_deleted = Column(Boolean, default=False, nullable=False)

    # Relationships
    requester = relationship("User", back_populates="reports")
    file = relationship("UploadedFile")
    versions = relationship("ReportVersion", back_populates="report", order_by="ReportVersion.version_number")


class ReportVersion(BaseModel):
    __tablename__ = "report_versions"
    __table_args__ = (
        UniqueConstraint("report_id", "version_number", name="uq_report_versions_number"),
    )

    report_id = Column(Uuid(as_uuid=True), ForeignKey("reports.uuid"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    prompt = Column(Text)
    content = Column(Text, nullable=False)
    duration_ms = Column(Integer)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.uuid"), nullable=False)

    # Relationships
    report = relationship("Report", back_populates="versions")
    creator = relationship("User")
