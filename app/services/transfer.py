# app/services/transfer.py
"""
Permission Transfer Protocol: hand the admin role from one collaborator to
another.

Two independent writes, promote then demote, with no rollback. Both are
always attempted; whichever failed is reported in `TransferError`. A failed
promote followed by a successful demote leaves the category with no admin,
and a failed demote leaves it with two. Neither outcome is repaired here.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from app.schemas.collaboration import PermissionLevel
from app.services.errors import (
    AuthorizationError,
    NotCollaboratorError,
    PersistenceError,
    TransferError,
    ValidationError,
)
from app.services.permissions import AuthorizationGuard, PermissionStore

logger = logging.getLogger(__name__)

PROMOTE = "promote"
DEMOTE = "demote"


class AdminTransfer:
    def __init__(self, guard: AuthorizationGuard) -> None:
        self.guard = guard
        self.permissions: PermissionStore = guard.permissions

    async def _write(self, step: str, category_id: str, user_id: str, level: PermissionLevel) -> Optional[Exception]:
        """Run one step; returns the failure instead of raising so the next step still runs."""
        try:
            if await self.permissions.set_permission(category_id, user_id, level):
                return None
            return NotCollaboratorError()
        except PersistenceError as exc:
            logger.error("Admin transfer step %s failed on category %s: %s", step, category_id, exc)
            return exc

    async def transfer_admin(
        self,
        category_id: str,
        from_user_id: str,
        to_user_id: str,
        requesting_user_id: str,
    ) -> None:
        if not category_id or not from_user_id or not to_user_id:
            raise ValidationError("Missing required fields")
        if requesting_user_id != from_user_id:
            raise AuthorizationError("Not authorized")
        if from_user_id == to_user_id:
            raise ValidationError("fromUserId and toUserId must differ")

        await self.guard.require_admin(from_user_id, category_id)
        if await self.permissions.get_permission(category_id, to_user_id) is None:
            raise NotCollaboratorError("Target user is not a collaborator on this category.")

        failures: List[str] = []
        cause: Optional[Exception] = None
        for step, user_id, level in (
            (PROMOTE, to_user_id, PermissionLevel.ADMIN),
            (DEMOTE, from_user_id, PermissionLevel.EDITOR),
        ):
            error = await self._write(step, category_id, user_id, level)
            if error is not None:
                failures.append(step)
                cause = error

        if failures:
            logger.error(
                "Admin transfer %s -> %s on category %s partially failed: %s",
                from_user_id, to_user_id, category_id, failures,
            )
            raise TransferError(failures) from cause
        logger.info("Admin of category %s transferred from %s to %s", category_id, from_user_id, to_user_id)
