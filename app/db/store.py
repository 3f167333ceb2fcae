# app/db/store.py
"""
Durable-store interface consumed by the collaboration services.

The services hold no state of their own; every read goes through a
`CollaborationStore`. `PostgresStore` binds one asyncpg connection (one per
request, see `app.api.deps.get_store`) to the SQL helpers in `app.crud`.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

import asyncpg

from app.crud import crud_category, crud_collaborator


class CollaborationStore(Protocol):
    """Reads and writes the core performs. Failures surface as `PersistenceError`."""

    # category_collaborators
    async def get_permission(self, category_id: str, user_id: str) -> Optional[str]: ...

    async def insert_collaborator(
        self, category_id: str, user_id: str, permission: str, added_by: Optional[str]
    ) -> Dict[str, Any]: ...

    async def update_permission(self, category_id: str, user_id: str, permission: str) -> bool: ...

    async def delete_collaborator(self, category_id: str, user_id: str) -> bool: ...

    async def list_collaborators(self, category_id: str) -> List[Dict[str, Any]]: ...

    # categories
    async def create_category(
        self, *, owner_id: str, name: str, icon: str, color: str, is_collaborative: bool
    ) -> Dict[str, Any]: ...

    async def get_category(self, category_id: str) -> Optional[Dict[str, Any]]: ...

    async def get_category_by_invite_token(self, token: str) -> Optional[Dict[str, Any]]: ...

    async def list_categories_for_user(self, user_id: str) -> List[Dict[str, Any]]: ...

    async def update_category(self, category_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]: ...

    async def delete_category(self, category_id: str) -> bool: ...

    async def set_invite(self, category_id: str, token: str, expiry: datetime) -> bool: ...

    async def clear_invite(self, category_id: str) -> bool: ...

    async def add_shared_with(self, category_id: str, user_id: str) -> bool: ...

    async def remove_shared_with(self, category_id: str, user_id: str) -> bool: ...

    async def clear_shared_with(self, category_id: str) -> None: ...


class PostgresStore:
    """`CollaborationStore` over a single asyncpg connection."""

    def __init__(self, db: asyncpg.Connection) -> None:
        self.db = db

    async def get_permission(self, category_id, user_id):
        return await crud_collaborator.get_permission(self.db, category_id, user_id)

    async def insert_collaborator(self, category_id, user_id, permission, added_by):
        return await crud_collaborator.insert_collaborator(self.db, category_id, user_id, permission, added_by)

    async def update_permission(self, category_id, user_id, permission):
        return await crud_collaborator.update_permission(self.db, category_id, user_id, permission)

    async def delete_collaborator(self, category_id, user_id):
        return await crud_collaborator.delete_collaborator(self.db, category_id, user_id)

    async def list_collaborators(self, category_id):
        return await crud_collaborator.list_collaborators(self.db, category_id)

    async def create_category(self, *, owner_id, name, icon, color, is_collaborative):
        # Category row and the owner's admin entry land together.
        async with self.db.transaction():
            category = await crud_category.create_category(
                self.db,
                owner_id=owner_id,
                name=name,
                icon=icon,
                color=color,
                is_collaborative=is_collaborative,
            )
            await crud_collaborator.insert_collaborator(self.db, category["id"], owner_id, "admin", owner_id)
        return category

    async def get_category(self, category_id):
        return await crud_category.get_category(self.db, category_id)

    async def get_category_by_invite_token(self, token):
        return await crud_category.get_category_by_invite_token(self.db, token)

    async def list_categories_for_user(self, user_id):
        return await crud_category.list_categories_for_user(self.db, user_id)

    async def update_category(self, category_id, fields):
        return await crud_category.update_category(self.db, category_id, fields)

    async def delete_category(self, category_id):
        return await crud_category.delete_category(self.db, category_id)

    async def set_invite(self, category_id, token, expiry):
        return await crud_category.set_invite(self.db, category_id, token, expiry)

    async def clear_invite(self, category_id):
        return await crud_category.clear_invite(self.db, category_id)

    async def add_shared_with(self, category_id, user_id):
        return await crud_category.add_shared_with(self.db, category_id, user_id)

    async def remove_shared_with(self, category_id, user_id):
        return await crud_category.remove_shared_with(self.db, category_id, user_id)

    async def clear_shared_with(self, category_id):
        return await crud_category.clear_shared_with(self.db, category_id)
