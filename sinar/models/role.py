"""
Role model
"""
from sqlalchemy import Column, Integer, String, TIMESTAMP, func
from sinar.db.database import Base

ADMIN_ROLE = "admin"
USER_ROLE = "user"


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}')>"
