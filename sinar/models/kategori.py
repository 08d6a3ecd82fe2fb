"""
Kategori (category) model
"""
from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, func
from sinar.db.database import Base


class Kategori(Base):
    __tablename__ = "kategori"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), unique=True, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Kategori(id={self.id}, name='{self.name}')>"
