"""
User model
"""
from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, ForeignKey, func
from sqlalchemy.orm import relationship
from sinar.db.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False)
    password = Column(String(255), nullable=False)  # hash
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="RESTRICT"), nullable=False)
    category_id = Column(Integer, ForeignKey("kategori.id", ondelete="SET NULL"), nullable=True)
    name_mentri = Column(String(255), nullable=True)
    contact_person = Column(String(100), nullable=True)
    filepath = Column(String(512), nullable=True)  # logo object key
    original_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    role = relationship("Role", lazy="selectin")
    category = relationship("Kategori", lazy="selectin")

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role_id={self.role_id})>"
