# app/services/invites.py
"""
Invite Token Manager.

A category carries at most one live invite: an opaque bearer token plus an
absolute expiry, stored on the category row. Issuing overwrites whatever was
there, so an older token stops working the moment a new one is written.

The token is a shared join *link*, not a ticket: redeeming it does not
consume it, and any number of users may join through it until it expires or
is revoked.
"""
from __future__ import annotations

import logging
import math
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from app.db.store import CollaborationStore
from app.schemas.collaboration import PermissionLevel
from app.schemas.invite import MAX_EXPIRY_DAYS
from app.services.errors import (
    CategoryNotFoundError,
    DeliveryError,
    DuplicateMemberError,
    ExpiredInviteError,
    InvalidInviteError,
    ValidationError,
)
from app.services.notifications import Notifier
from app.services.permissions import AuthorizationGuard

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IssuedInvite:
    invite_link: str
    expiry: datetime


class InviteManager:
    def __init__(
        self,
        store: CollaborationStore,
        guard: AuthorizationGuard,
        notifier: Notifier,
        *,
        app_base_url: str,
        default_expiry_days: float = 7,
        max_expiry_days: float = MAX_EXPIRY_DAYS,
        token_bytes: int = 32,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.guard = guard
        self.notifier = notifier
        self.app_base_url = app_base_url.rstrip("/")
        self.default_expiry_days = default_expiry_days
        self.max_expiry_days = max_expiry_days
        self.token_bytes = token_bytes
        self.clock = clock

    def new_token(self) -> str:
        return secrets.token_urlsafe(self.token_bytes)

    def build_link(self, token: str) -> str:
        return f"{self.app_base_url}/join/{token}"

    def _expiry_days(self, expiry_days: Any) -> float:
        if expiry_days is None:
            return self.default_expiry_days
        # bool is an int subclass; reject it explicitly
        if isinstance(expiry_days, bool) or not isinstance(expiry_days, (int, float)):
            raise ValidationError("expiryDays must be a positive number")
        if not math.isfinite(expiry_days) or expiry_days <= 0:
            raise ValidationError("expiryDays must be a positive number")
        if expiry_days > self.max_expiry_days:
            raise ValidationError(f"expiryDays must be at most {self.max_expiry_days:g}")
        return float(expiry_days)

    async def issue_invite(
        self,
        category_id: str,
        recipient_email: str,
        expiry_days: Optional[float],
        requesting_user_id: str,
    ) -> IssuedInvite:
        """
        Write a fresh token + expiry onto the category, then e-mail the link.

        The write is committed before delivery is attempted. If delivery
        fails the token stays valid and `DeliveryError` is raised carrying
        the committed link and expiry.
        """
        if not category_id or not recipient_email:
            raise ValidationError("Missing categoryId or email")
        days = self._expiry_days(expiry_days)

        await self.guard.require_admin(requesting_user_id, category_id)

        category = await self.store.get_category(category_id)
        if category is None:
            raise CategoryNotFoundError()

        token = self.new_token()
        expiry = self.clock() + timedelta(seconds=days * SECONDS_PER_DAY)
        if not await self.store.set_invite(category_id, token, expiry):
            # deleted between the read and the write
            raise CategoryNotFoundError()
        logger.info(
            "Invite issued for category %s by %s (expires %s)",
            category_id, requesting_user_id, expiry.isoformat(),
        )

        link = self.build_link(token)
        try:
            await self.notifier.send_invite(recipient_email, link, category.get("name"))
        except DeliveryError as exc:
            logger.warning(
                "Invite for category %s committed but e-mail to %s failed", category_id, recipient_email
            )
            raise DeliveryError(exc.message, invite_link=link, invite_expiry=expiry) from exc

        return IssuedInvite(invite_link=link, expiry=expiry)

    async def revoke_invite(self, category_id: str, requesting_user_id: str) -> None:
        """Clear both invite fields. Revoking an already-revoked invite is a no-op success."""
        if not category_id:
            raise ValidationError("Missing categoryId or userId")
        await self.guard.require_admin(requesting_user_id, category_id)
        await self.store.clear_invite(category_id)
        logger.info("Invite revoked for category %s by %s", category_id, requesting_user_id)

    def check_live(self, category: Optional[Dict[str, Any]], token: Optional[str]) -> Dict[str, Any]:
        """
        Validate `token` against the category's current invite.

        Raises `InvalidInviteError` when it is not the active token, and
        `ExpiredInviteError` when now is strictly past the expiry (the
        expiry instant itself is still valid).
        """
        if category is None or not token or category.get("invite_token") != token:
            raise InvalidInviteError("Invalid invite link")
        expiry = category.get("invite_expiry")
        if expiry is None:
            raise InvalidInviteError("Invalid invite link")
        if self.clock() > expiry:
            raise ExpiredInviteError("Invite link expired")
        return category

    async def redeem_invite(self, token: str, user_id: str) -> str:
        """
        Join the category behind `token` as a viewer; returns the category id.

        Existing members keep their level (no downgrade) and redeeming twice
        never duplicates membership.
        """
        if not token or not user_id:
            raise ValidationError("Missing invite_token or userId")

        category = self.check_live(await self.store.get_category_by_invite_token(token), token)
        category_id = category["id"]

        if await self.store.get_permission(category_id, user_id) is None:
            try:
                await self.store.insert_collaborator(category_id, user_id, PermissionLevel.VIEWER.value, None)
                logger.info("User %s joined category %s as viewer via invite", user_id, category_id)
            except DuplicateMemberError:
                # a concurrent redemption by the same user got there first
                logger.debug("User %s already joined category %s", user_id, category_id)
        return category_id
