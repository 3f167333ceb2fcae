# app/schemas/collaboration.py
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class PermissionLevel(str, Enum):
    """Category-wide permission tiers."""
    ADMIN = "admin"      # governance: invite, revoke, promote/demote, delete
    EDITOR = "editor"    # shared content, no governance
    VIEWER = "viewer"    # read-only; granted on self-service join


class _CamelCfgMixin:
    """Accept camelCase (wire) or snake_case (python) field names."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# --------------------------------------------------------------------------- #
#                               Requests                                      #
# --------------------------------------------------------------------------- #

class CollaboratorAdd(_CamelCfgMixin, BaseModel):
    """POST /categories/collaborators"""
    category_id: str = Field(..., alias="categoryId", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)
    permission: PermissionLevel
    # Optional echo of the acting user; must match the authenticated caller.
    admin_id: Optional[str] = Field(None, alias="adminId")


class CollaboratorUpdate(CollaboratorAdd):
    """PATCH /categories/collaborators – same shape as the add payload."""
    pass


class CollaboratorRemove(_CamelCfgMixin, BaseModel):
    """DELETE /categories/collaborators"""
    category_id: str = Field(..., alias="categoryId", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)
    admin_id: Optional[str] = Field(None, alias="adminId")


class AdminTransfer(_CamelCfgMixin, BaseModel):
    """POST /categories/transfer-admin"""
    category_id: str = Field(..., alias="categoryId", min_length=1)
    from_user_id: str = Field(..., alias="fromUserId", min_length=1)
    to_user_id: str = Field(..., alias="toUserId", min_length=1)


# --------------------------------------------------------------------------- #
#                               Responses                                     #
# --------------------------------------------------------------------------- #

class SuccessResponse(BaseModel):
    success: bool = True


class CollaboratorOut(_CamelCfgMixin, BaseModel):
    user_id: str = Field(..., alias="userId")
    permission: PermissionLevel
    added_by: Optional[str] = Field(None, alias="addedBy")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    # "collaborators" → a category_collaborators row, "shared_with" → legacy array entry
    source: Literal["collaborators", "shared_with"] = "collaborators"


class MigratedMembers(_CamelCfgMixin, BaseModel):
    success: bool = True
    migrated: List[str] = Field(default_factory=list)
