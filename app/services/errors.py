# app/services/errors.py
"""
Exception taxonomy for the collaboration core.

Every error carries the HTTP status the API layer should answer with, so
endpoints can translate them uniformly (see `app.api.deps.to_http_exception`).
Validation and authorization failures are always raised *before* any write.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional


class CollaborationError(Exception):
    """Base class; `status_code` is the HTTP equivalent."""

    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        # default message is the first docstring line
        self.message = message or (self.__doc__ or self.__class__.__name__).strip().splitlines()[0]
        super().__init__(self.message)

    def detail(self) -> Any:
        """Payload placed in the HTTP error body."""
        return self.message


class ValidationError(CollaborationError):
    """Missing or malformed required fields."""

    status_code = 400


class AuthenticationError(CollaborationError):
    """Not authenticated."""

    status_code = 401


class AuthorizationError(CollaborationError):
    """Not authorized."""

    status_code = 403


class CategoryNotFoundError(CollaborationError):
    """Category not found."""

    status_code = 404


class NotCollaboratorError(CollaborationError):
    """User is not a collaborator on this category."""

    status_code = 404


class DuplicateMemberError(CollaborationError):
    """User is already a collaborator on this category."""

    status_code = 409


class InvalidInviteError(CollaborationError):
    """Invalid invite link."""

    status_code = 400


class ExpiredInviteError(CollaborationError):
    """Invite link expired."""

    status_code = 400


class PersistenceError(CollaborationError):
    """A database error occurred."""

    status_code = 500


class DeliveryError(CollaborationError):
    """
    The notification adapter could not deliver the invite.

    When raised out of `InviteManager.issue_invite` the invite itself has
    already been committed; `invite_link` / `invite_expiry` describe it.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Failed to send invite email",
        *,
        invite_link: Optional[str] = None,
        invite_expiry: Optional[datetime] = None,
    ) -> None:
        super().__init__(message)
        self.invite_link = invite_link
        self.invite_expiry = invite_expiry

    def detail(self) -> Any:
        if self.invite_link is None:
            return self.message
        return {
            "message": self.message,
            "invite_committed": True,
            "invite_link": self.invite_link,
            "invite_expiry": self.invite_expiry.isoformat() if self.invite_expiry else None,
        }


class TransferError(CollaborationError):
    """One or both writes of an admin transfer failed; nothing was rolled back."""

    status_code = 500

    def __init__(self, failed_steps: Iterable[str], message: str = "") -> None:
        self.failed_steps = tuple(failed_steps)
        super().__init__(message or f"Admin transfer failed at: {', '.join(self.failed_steps)}")

    def detail(self) -> Any:
        return {"message": self.message, "failed_steps": list(self.failed_steps)}
