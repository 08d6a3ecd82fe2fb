"""
DocumentReport model
"""
import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, TIMESTAMP, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
from sinar.db.database import Base


class ReportType(str, enum.Enum):
    TEXT = "TEXT"
    LINK = "LINK"
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"

    @property
    def is_media(self) -> bool:
        return self in (ReportType.AUDIO, ReportType.VIDEO)


class DocumentReport(Base):
    __tablename__ = "document_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Enum(ReportType, name="report_type"), nullable=False)
    content = Column(Text, nullable=False)  # text, URL or object key in the report bucket
    original_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_downloaded = Column(Boolean, nullable=False, default=False)
    downloaded_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    document = relationship("Document", lazy="selectin")
    user = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<DocumentReport(id={self.id}, type='{self.type}', document_id={self.document_id})>"
