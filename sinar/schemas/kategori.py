"""
Category schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class KategoriCreate(BaseModel):
    """Create category request"""
    name: str = Field(..., min_length=1, max_length=150, description="Category name, stored title-cased")


class KategoriUpdate(BaseModel):
    """Update category request"""
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    is_active: Optional[bool] = None


class KategoriResponse(BaseModel):
    id: int
    name: str
    is_active: bool
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
