"""Authentication Schemas"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime


class UserBase(BaseModel):
    email: str = Field(..., min_length=3, max_length=100)
    full_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=30)
    assigned_store_id: Optional[int] = None


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)
    roles: List[str] = Field(default_factory=list)


class UserResponse(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool
    is_superuser: bool
    roles: List[str] = Field(default_factory=list)
    last_login: Optional[datetime] = None

    @field_validator("roles", mode="before")
    @classmethod
    def role_names(cls, v):
        """Accept Role rows as well as plain names"""
        return sorted(getattr(role, "name", role) for role in v or [])


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
