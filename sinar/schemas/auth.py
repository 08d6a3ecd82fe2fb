"""
Auth schemas
"""
from pydantic import BaseModel, Field
from typing import Optional


class LoginRequest(BaseModel):
    """Login request"""
    username: str = Field(..., min_length=1, description="Username")
    password: str = Field(..., min_length=1, description="Password")


class LoginUser(BaseModel):
    id: int
    username: str
    role: str
    category_id: Optional[int] = None
    category: Optional[str] = None


class LoginResponse(BaseModel):
    """Login response"""
    token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: LoginUser
