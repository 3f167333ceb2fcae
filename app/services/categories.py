# app/services/categories.py
"""Category management around the collaboration core."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from app.db.store import CollaborationStore
from app.schemas.collaboration import PermissionLevel
from app.services.errors import AuthorizationError, CategoryNotFoundError
from app.services.permissions import AuthorizationGuard

logger = logging.getLogger(__name__)


def present(category: Dict[str, Any], permission: Optional[PermissionLevel]) -> Dict[str, Any]:
    """
    Shape a stored category for one viewer: attach their permission, never
    expose the invite token, and show the invite expiry to admins only.
    """
    data = {k: v for k, v in category.items() if k not in ("invite_token", "invite_expiry")}
    data["owner_id"] = category["user_id"]
    data["permission"] = permission.value if permission else None
    if permission == PermissionLevel.ADMIN:
        data["invite_expiry"] = category.get("invite_expiry")
    return data


class CategoryService:
    def __init__(self, store: CollaborationStore, guard: AuthorizationGuard) -> None:
        self.store = store
        self.guard = guard

    async def _load(self, category_id: str) -> Dict[str, Any]:
        category = await self.store.get_category(category_id)
        if category is None:
            raise CategoryNotFoundError()
        return category

    async def create_category(
        self,
        owner_id: str,
        *,
        name: str,
        icon: str,
        color: str,
        is_collaborative: bool = False,
    ) -> Dict[str, Any]:
        """The creator becomes the category's first admin."""
        category = await self.store.create_category(
            owner_id=owner_id, name=name, icon=icon, color=color, is_collaborative=is_collaborative
        )
        return present(category, PermissionLevel.ADMIN)

    async def list_categories(self, user_id: str) -> List[Dict[str, Any]]:
        categories = await self.store.list_categories_for_user(user_id)
        return [
            present(c, await self.guard.permissions.get_permission(c["id"], user_id))
            for c in categories
        ]

    async def get_category(self, category_id: str, user_id: str) -> Dict[str, Any]:
        category = await self._load(category_id)
        if not await self.guard.has_access(user_id, category):
            raise AuthorizationError("Access denied to this category")
        return present(category, await self.guard.permissions.get_permission(category_id, user_id))

    async def update_category(self, category_id: str, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Admins and editors may edit appearance; only admins toggle collaboration."""
        await self._load(category_id)
        permission = await self.guard.permissions.get_permission(category_id, user_id)
        if permission not in (PermissionLevel.ADMIN, PermissionLevel.EDITOR):
            raise AuthorizationError("Not authorized")
        if "is_collaborative" in fields and permission != PermissionLevel.ADMIN:
            raise AuthorizationError("Only admins can change collaboration settings")

        updated = await self.store.update_category(category_id, fields)
        if updated is None:
            raise CategoryNotFoundError()
        logger.info("User %s updated category %s: %s", user_id, category_id, sorted(fields))
        return present(updated, permission)

    async def delete_category(self, category_id: str, user_id: str) -> None:
        """The owner may always delete, even after handing the admin role on; otherwise admins only."""
        category = await self._load(category_id)
        if category["user_id"] != user_id:
            await self.guard.require_admin(user_id, category_id)
        if not await self.store.delete_category(category_id):
            raise CategoryNotFoundError()
        logger.info("User %s deleted category %s", user_id, category_id)
