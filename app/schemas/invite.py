# app/schemas/invite.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# Longest invite window accepted from a client; keeps the expiry inside datetime range
MAX_EXPIRY_DAYS = 365


class InviteCreate(BaseModel):
    """POST /categories/invite"""
    category_id: str = Field(..., alias="categoryId", min_length=1)
    email: EmailStr = Field(..., examples=["friend@example.com"])
    # None → server default (INVITE_DEFAULT_EXPIRY_DAYS)
    expiry_days: Optional[float] = Field(None, alias="expiryDays", gt=0, le=MAX_EXPIRY_DAYS)

    model_config = ConfigDict(populate_by_name=True)


class InviteCreated(BaseModel):
    invite_link: str
    invite_expiry: datetime


class InviteRevoke(BaseModel):
    """DELETE /categories/invite"""
    category_id: str = Field(..., alias="categoryId", min_length=1)
    user_id: Optional[str] = Field(None, alias="userId")

    model_config = ConfigDict(populate_by_name=True)


class InviteRedeem(BaseModel):
    """POST /categories/join – field names match the links already in the wild."""
    invite_token: str = Field(..., min_length=1)
    user_id: Optional[str] = Field(None, alias="userId")

    model_config = ConfigDict(populate_by_name=True)


class InviteRedeemed(BaseModel):
    success: bool = True
    category_id: str = Field(..., alias="categoryId")

    model_config = ConfigDict(populate_by_name=True)


class JoinStatus(BaseModel):
    """Persistent status rendered by the join page (shared_with flow)."""
    status: Literal["success", "error"]
    message: str
    category_id: Optional[str] = Field(None, alias="categoryId")

    model_config = ConfigDict(populate_by_name=True)
