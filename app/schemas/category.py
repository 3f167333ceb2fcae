# app/schemas/category.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.collaboration import PermissionLevel

_HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class CategoryCreate(BaseModel):
    """POST /categories body."""
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field("📚", min_length=1, max_length=16)
    color: str = Field("#3B82F6", pattern=_HEX_COLOR)
    is_collaborative: bool = Field(False, alias="isCollaborative")

    model_config = ConfigDict(populate_by_name=True)


class CategoryUpdate(BaseModel):
    """PATCH /categories/{id} body (all optional)."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    icon: Optional[str] = Field(None, min_length=1, max_length=16)
    color: Optional[str] = Field(None, pattern=_HEX_COLOR)
    is_collaborative: Optional[bool] = Field(None, alias="isCollaborative")

    model_config = ConfigDict(populate_by_name=True)


class CategoryOut(BaseModel):
    """
    Category as seen by one member. The invite token itself is never
    returned; `inviteExpiry` is only filled in for admins.
    """
    id: str
    name: str
    icon: str
    color: str
    owner_id: str = Field(..., alias="ownerId")
    is_collaborative: bool = Field(..., alias="isCollaborative")
    shared_with: List[str] = Field(default_factory=list, alias="sharedWith")
    permission: Optional[PermissionLevel] = None
    invite_expiry: Optional[datetime] = Field(None, alias="inviteExpiry")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)
