# app/services/permissions.py
"""
Permission Store and Authorization Guard.

The permission store is the single authority for "what level does user U
hold on category C". The guard turns that into yes/no answers. There is no
cache: every check is one point lookup against the durable store.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from app.db.store import CollaborationStore
from app.schemas.collaboration import PermissionLevel
from app.services.errors import AuthorizationError, ValidationError

logger = logging.getLogger(__name__)


def parse_level(level: Any) -> PermissionLevel:
    """Coerce a raw value into a `PermissionLevel` or raise `ValidationError`."""
    try:
        return PermissionLevel(level)
    except ValueError:
        raise ValidationError(f"Invalid permission level: {level!r}") from None


class PermissionStore:
    """(category, user) → level. Absence means "not a collaborator"."""

    def __init__(self, store: CollaborationStore) -> None:
        self.store = store

    async def get_permission(self, category_id: str, user_id: str) -> Optional[PermissionLevel]:
        raw = await self.store.get_permission(category_id, user_id)
        return PermissionLevel(raw) if raw is not None else None

    async def set_permission(self, category_id: str, user_id: str, level: PermissionLevel) -> bool:
        """Overwrite an existing entry. Returns False when there is none; never creates one."""
        return await self.store.update_permission(category_id, user_id, parse_level(level).value)

    async def remove_permission(self, category_id: str, user_id: str) -> bool:
        return await self.store.delete_collaborator(category_id, user_id)


class AuthorizationGuard:
    def __init__(self, permissions: PermissionStore) -> None:
        self.permissions = permissions

    async def is_admin(self, user_id: str, category_id: str) -> bool:
        return await self.permissions.get_permission(category_id, user_id) == PermissionLevel.ADMIN

    async def require_admin(self, user_id: Optional[str], category_id: str) -> None:
        """Raise `AuthorizationError` unless `user_id` is an admin of `category_id`."""
        if not user_id or not await self.is_admin(user_id, category_id):
            logger.warning("Admin check failed: user %s on category %s", user_id, category_id)
            raise AuthorizationError("Not authorized")

    async def has_access(self, user_id: str, category: Dict[str, Any]) -> bool:
        """Any membership at all: owner, a collaborator entry, or the legacy shared_with array."""
        if category.get("user_id") == user_id or user_id in (category.get("shared_with") or []):
            return True
        return await self.permissions.get_permission(category["id"], user_id) is not None
