# app/services/roster.py
"""
Collaborator Roster: who belongs to a category, and at what level.

Membership is backed by `category_collaborators` rows. The legacy
`shared_with` id array is still written by the old join link
(`join_via_shared_with`) and is read as viewer membership, but it is a
migration source: `migrate_shared_with` folds it into rows.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from app.db.store import CollaborationStore
from app.schemas.collaboration import PermissionLevel
from app.services.errors import (
    AuthenticationError,
    AuthorizationError,
    CategoryNotFoundError,
    DuplicateMemberError,
    ExpiredInviteError,
    InvalidInviteError,
    NotCollaboratorError,
    ValidationError,
)
from app.services.invites import InviteManager
from app.services.permissions import AuthorizationGuard, PermissionStore, parse_level

logger = logging.getLogger(__name__)


def _require(**fields: Any) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


class CollaboratorRoster:
    def __init__(
        self,
        store: CollaborationStore,
        guard: AuthorizationGuard,
        invites: InviteManager,
    ) -> None:
        self.store = store
        self.guard = guard
        self.permissions: PermissionStore = guard.permissions
        self.invites = invites

    # ------------------------------------------------------------------ #
    #  Admin operations                                                  #
    # ------------------------------------------------------------------ #
    async def add_collaborator(
        self,
        category_id: str,
        user_id: str,
        level: PermissionLevel,
        requesting_user_id: str,
    ) -> Dict[str, Any]:
        _require(categoryId=category_id, userId=user_id, permission=level, adminId=requesting_user_id)
        level = parse_level(level)
        await self.guard.require_admin(requesting_user_id, category_id)

        entry = await self.store.insert_collaborator(category_id, user_id, level.value, requesting_user_id)
        logger.info("User %s added %s to category %s as %s", requesting_user_id, user_id, category_id, level.value)
        return entry

    async def update_collaborator_permission(
        self,
        category_id: str,
        user_id: str,
        new_level: PermissionLevel,
        requesting_user_id: str,
    ) -> None:
        _require(categoryId=category_id, userId=user_id, permission=new_level, adminId=requesting_user_id)
        new_level = parse_level(new_level)
        await self.guard.require_admin(requesting_user_id, category_id)

        if not await self.permissions.set_permission(category_id, user_id, new_level):
            raise NotCollaboratorError()
        logger.info("User %s set %s to %s on category %s", requesting_user_id, user_id, new_level.value, category_id)

    async def remove_collaborator(self, category_id: str, user_id: str, requesting_user_id: str) -> None:
        _require(categoryId=category_id, userId=user_id, adminId=requesting_user_id)
        await self.guard.require_admin(requesting_user_id, category_id)

        if not await self.permissions.remove_permission(category_id, user_id):
            raise NotCollaboratorError()
        logger.info("User %s removed %s from category %s", requesting_user_id, user_id, category_id)

    async def migrate_shared_with(self, category_id: str, requesting_user_id: str) -> List[str]:
        """Turn every legacy shared_with id into a viewer row, then empty the array."""
        await self.guard.require_admin(requesting_user_id, category_id)
        category = await self.store.get_category(category_id)
        if category is None:
            raise CategoryNotFoundError()

        migrated: List[str] = []
        for user_id in category.get("shared_with") or []:
            if await self.permissions.get_permission(category_id, user_id) is not None:
                continue
            try:
                await self.store.insert_collaborator(
                    category_id, user_id, PermissionLevel.VIEWER.value, requesting_user_id
                )
                migrated.append(user_id)
            except DuplicateMemberError:
                continue
        await self.store.clear_shared_with(category_id)
        logger.info("Migrated %d shared_with members of category %s", len(migrated), category_id)
        return migrated

    # ------------------------------------------------------------------ #
    #  Member operations                                                 #
    # ------------------------------------------------------------------ #
    async def join_via_shared_with(
        self, category_id: Optional[str], invite_token: Optional[str], user_id: Optional[str]
    ) -> bool:
        """
        Legacy join link (`/join?token=…&category=…`): same token checks as
        `InviteManager.redeem_invite`, but membership goes into the
        category's shared_with array. Returns True if the user was added,
        False if already present.
        """
        if not category_id or not invite_token:
            raise InvalidInviteError("Invalid invite link.")
        if not user_id:
            raise AuthenticationError(
                "You must be logged in to join a category. Please sign in and try again."
            )

        category = await self.store.get_category(category_id)
        try:
            self.invites.check_live(category, invite_token)
        except InvalidInviteError:
            raise InvalidInviteError("Invalid or expired invite link.") from None
        except ExpiredInviteError:
            raise ExpiredInviteError("This invite link has expired.") from None

        added = await self.store.add_shared_with(category_id, user_id)
        if added:
            logger.info("User %s joined category %s via shared link", user_id, category_id)
        return added

    async def list_members(self, category_id: str, requesting_user_id: str) -> List[Dict[str, Any]]:
        """Collaborator rows, then shared_with ids that have no row (reported as viewers)."""
        category = await self.store.get_category(category_id)
        if category is None:
            raise CategoryNotFoundError()
        if not await self.guard.has_access(requesting_user_id, category):
            raise AuthorizationError("Access denied to this category")

        members = [dict(row, source="collaborators") for row in await self.store.list_collaborators(category_id)]
        seen = {m["user_id"] for m in members}
        for user_id in category.get("shared_with") or []:
            if user_id not in seen:
                members.append(
                    {
                        "user_id": user_id,
                        "permission": PermissionLevel.VIEWER.value,
                        "added_by": None,
                        "created_at": None,
                        "source": "shared_with",
                    }
                )
                seen.add(user_id)
        return members

    async def leave_category(self, category_id: str, user_id: str) -> None:
        """Self-removal from both representations. No last-admin check."""
        _require(categoryId=category_id, userId=user_id)
        removed_row = await self.permissions.remove_permission(category_id, user_id)
        removed_shared = await self.store.remove_shared_with(category_id, user_id)
        if not (removed_row or removed_shared):
            raise NotCollaboratorError()
        logger.info("User %s left category %s", user_id, category_id)
