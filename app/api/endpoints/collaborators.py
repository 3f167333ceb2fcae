# app/api/endpoints/collaborators.py
import logging

from fastapi import APIRouter, Body, Depends, Request

from app.api import deps
from app.core.rate_limit import limiter
from app.schemas import collaboration as collab_schemas
from app.services.errors import CollaborationError
from app.services.roster import CollaboratorRoster
from app.services.transfer import AdminTransfer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Collaborators", "Categories"])


# --------------------------------------------------------------------------- #
#  POST /categories/collaborators                                             #
# --------------------------------------------------------------------------- #
@router.post("/collaborators", response_model=collab_schemas.SuccessResponse)
@limiter.limit("20/minute")
async def add_collaborator(
    request: Request,
    payload: collab_schemas.CollaboratorAdd = Body(...),
    current_user_id: str = Depends(deps.get_current_user_id),
    roster: CollaboratorRoster = Depends(deps.get_roster),
):
    """
    Add a user to a category at any permission level.
    Only admins of the category can call this endpoint.
    """
    deps.ensure_acting_user(payload.admin_id, current_user_id)
    try:
        await roster.add_collaborator(
            payload.category_id, payload.user_id, payload.permission, current_user_id
        )
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return collab_schemas.SuccessResponse()


# --------------------------------------------------------------------------- #
#  PATCH /categories/collaborators                                            #
# --------------------------------------------------------------------------- #
@router.patch("/collaborators", response_model=collab_schemas.SuccessResponse)
@limiter.limit("20/minute")
async def update_collaborator_permission(
    request: Request,
    payload: collab_schemas.CollaboratorUpdate = Body(...),
    current_user_id: str = Depends(deps.get_current_user_id),
    roster: CollaboratorRoster = Depends(deps.get_roster),
):
    """Change an existing collaborator's level. Admins only."""
    deps.ensure_acting_user(payload.admin_id, current_user_id)
    try:
        await roster.update_collaborator_permission(
            payload.category_id, payload.user_id, payload.permission, current_user_id
        )
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return collab_schemas.SuccessResponse()


# --------------------------------------------------------------------------- #
#  DELETE /categories/collaborators                                           #
# --------------------------------------------------------------------------- #
@router.delete("/collaborators", response_model=collab_schemas.SuccessResponse)
@limiter.limit("20/minute")
async def remove_collaborator(
    request: Request,
    payload: collab_schemas.CollaboratorRemove = Body(...),
    current_user_id: str = Depends(deps.get_current_user_id),
    roster: CollaboratorRoster = Depends(deps.get_roster),
):
    """Remove a collaborator. Admins only; members leave via /{id}/leave."""
    deps.ensure_acting_user(payload.admin_id, current_user_id)
    try:
        await roster.remove_collaborator(payload.category_id, payload.user_id, current_user_id)
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return collab_schemas.SuccessResponse()


# --------------------------------------------------------------------------- #
#  POST /categories/transfer-admin                                            #
# --------------------------------------------------------------------------- #
@router.post("/transfer-admin", response_model=collab_schemas.SuccessResponse)
@limiter.limit("10/minute")
async def transfer_admin(
    request: Request,
    payload: collab_schemas.AdminTransfer = Body(...),
    current_user_id: str = Depends(deps.get_current_user_id),
    transfer: AdminTransfer = Depends(deps.get_admin_transfer),
):
    """
    Promote `toUserId` to admin, then demote `fromUserId` (the caller) to
    editor. On partial failure the 500 body names the failed step(s); the
    step that succeeded is not undone.
    """
    try:
        await transfer.transfer_admin(
            payload.category_id, payload.from_user_id, payload.to_user_id, current_user_id
        )
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return collab_schemas.SuccessResponse()
