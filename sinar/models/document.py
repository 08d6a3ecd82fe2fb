"""
Document model
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, TIMESTAMP, ForeignKey, Table, func
from sqlalchemy.orm import relationship
from sinar.db.database import Base


document_kategori = Table(
    "document_kategori",
    Base.metadata,
    Column("document_id", Integer, ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True),
    Column("kategori_id", Integer, ForeignKey("kategori.id", ondelete="CASCADE"), primary_key=True),
)


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    remark = Column(Text, nullable=True)
    filename = Column(String(512), nullable=False)  # object key in the document bucket
    original_name = Column(String(255), nullable=False)
    url = Column(String(512), nullable=True)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    uploaded_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    is_downloaded = Column(Boolean, nullable=False, default=False)
    downloaded_at = Column(TIMESTAMP(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    categories = relationship("Kategori", secondary=document_kategori, lazy="selectin", order_by="Kategori.id")
    uploader = relationship("User", lazy="selectin")

    @property
    def category_ids(self):
        return [k.id for k in self.categories]

    def __repr__(self):
        return f"<Document(id={self.id}, title='{self.title}')>"
