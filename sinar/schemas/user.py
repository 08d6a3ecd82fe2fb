"""
User schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class RoleInfo(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class CategoryInfo(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """User response, never carries the password hash"""
    id: int
    username: str
    role_id: int
    role: Optional[RoleInfo] = None
    category_id: Optional[int] = None
    category: Optional[CategoryInfo] = None
    name_mentri: Optional[str] = None
    contact_person: Optional[str] = None
    original_name: Optional[str] = None
    logo_url: Optional[str] = None
    is_active: bool
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user, base_url: str) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            role_id=user.role_id,
            role=RoleInfo.model_validate(user.role) if user.role else None,
            category_id=user.category_id,
            category=CategoryInfo.model_validate(user.category) if user.category else None,
            name_mentri=user.name_mentri,
            contact_person=user.contact_person,
            original_name=user.original_name,
            logo_url=f"{base_url}/users/logo/{user.id}" if user.filepath else None,
            is_active=user.is_active,
            created_by=user.created_by,
            updated_by=user.updated_by,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class ChangePasswordRequest(BaseModel):
    """Self-service password change"""
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class ResetPasswordRequest(BaseModel):
    """Admin password reset"""
    new_password: str = Field(..., min_length=6)
