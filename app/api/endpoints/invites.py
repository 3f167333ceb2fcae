# app/api/endpoints/invites.py
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.api import deps
from app.core.rate_limit import limiter
from app.schemas import collaboration as collab_schemas
from app.schemas import invite as invite_schemas
from app.services.errors import CollaborationError, DeliveryError, PersistenceError
from app.services.invites import InviteManager
from app.services.roster import CollaboratorRoster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Invites", "Categories"])

JOIN_SUCCESS_TEXT = "You have successfully joined the category! You can now access it from your dashboard."
JOIN_FAILED_TEXT = "Failed to join the category. Please try again later."


# --------------------------------------------------------------------------- #
#  POST /categories/invite                                                    #
# --------------------------------------------------------------------------- #
@router.post("/invite", response_model=invite_schemas.InviteCreated)
@limiter.limit("10/minute")
async def issue_invite(
    request: Request,
    payload: invite_schemas.InviteCreate = Body(...),
    current_user_id: str = Depends(deps.get_current_user_id),
    invites: InviteManager = Depends(deps.get_invite_manager),
):
    """
    Issue (or replace) the category's invite link and e-mail it.
    If the e-mail fails the link still works; the 500 body carries it.
    """
    try:
        issued = await invites.issue_invite(
            payload.category_id, str(payload.email), payload.expiry_days, current_user_id
        )
    except DeliveryError as exc:
        # the live link goes to the client only, never to the log
        logger.warning(f"Invite for category {payload.category_id} committed but e-mail delivery failed")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail()})
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return invite_schemas.InviteCreated(invite_link=issued.invite_link, invite_expiry=issued.expiry)


# --------------------------------------------------------------------------- #
#  DELETE /categories/invite                                                  #
# --------------------------------------------------------------------------- #
@router.delete("/invite", response_model=collab_schemas.SuccessResponse)
@limiter.limit("10/minute")
async def revoke_invite(
    request: Request,
    payload: invite_schemas.InviteRevoke = Body(...),
    current_user_id: str = Depends(deps.get_current_user_id),
    invites: InviteManager = Depends(deps.get_invite_manager),
):
    """Invalidate the current invite link. Idempotent."""
    deps.ensure_acting_user(payload.user_id, current_user_id)
    try:
        await invites.revoke_invite(payload.category_id, current_user_id)
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return collab_schemas.SuccessResponse()


# --------------------------------------------------------------------------- #
#  POST /categories/join  (token flow)                                        #
# --------------------------------------------------------------------------- #
@router.post("/join", response_model=invite_schemas.InviteRedeemed)
@limiter.limit("20/minute")
async def redeem_invite(
    request: Request,
    payload: invite_schemas.InviteRedeem = Body(...),
    current_user_id: str = Depends(deps.get_current_user_id),
    invites: InviteManager = Depends(deps.get_invite_manager),
):
    """Join the category behind an invite token as a viewer."""
    deps.ensure_acting_user(payload.user_id, current_user_id)
    try:
        category_id = await invites.redeem_invite(payload.invite_token, current_user_id)
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return invite_schemas.InviteRedeemed(category_id=category_id)


# --------------------------------------------------------------------------- #
#  GET /categories/join?token=…&category=…  (shared_with flow)                #
# --------------------------------------------------------------------------- #
@router.get("/join", response_model=invite_schemas.JoinStatus)
@limiter.limit("20/minute")
async def join_via_link(
    request: Request,
    token: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    current_user_id: Optional[str] = Depends(deps.get_optional_current_user_id),
    roster: CollaboratorRoster = Depends(deps.get_roster),
):
    """
    Backs the join page. Always answers with a persistent status the page
    can render, even on failure (the status code still reflects the error).
    """
    try:
        await roster.join_via_shared_with(category, token, current_user_id)
    except CollaborationError as exc:
        message = JOIN_FAILED_TEXT if isinstance(exc, PersistenceError) else exc.message
        body = invite_schemas.JoinStatus(status="error", message=message, category_id=category)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(by_alias=True))
    return invite_schemas.JoinStatus(status="success", message=JOIN_SUCCESS_TEXT, category_id=category)
