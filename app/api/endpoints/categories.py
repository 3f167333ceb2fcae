# app/api/endpoints/categories.py
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Path, Request, status

from app.api import deps
from app.core.rate_limit import limiter
from app.schemas import category as category_schemas
from app.schemas import collaboration as collab_schemas
from app.services.categories import CategoryService
from app.services.errors import CollaborationError
from app.services.roster import CollaboratorRoster

logger = logging.getLogger(__name__)
router = APIRouter()

# Define tags for OpenAPI documentation grouping
category_tags = ["Categories"]
member_tags = ["Collaborators", "Categories"]


# === Category CRUD ===
@router.post("", response_model=category_schemas.CategoryOut, status_code=status.HTTP_201_CREATED, tags=category_tags)
@limiter.limit("5/minute")
async def create_category(
    request: Request, # For limiter state
    category_in: category_schemas.CategoryCreate,
    current_user_id: str = Depends(deps.get_current_user_id),
    categories: CategoryService = Depends(deps.get_category_service),
):
    """
    Create a new category owned by the authenticated user, who becomes its admin.
    """
    try:
        created = await categories.create_category(
            current_user_id,
            name=category_in.name,
            icon=category_in.icon,
            color=category_in.color,
            is_collaborative=category_in.is_collaborative,
        )
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return category_schemas.CategoryOut.model_validate(created)


@router.get("", response_model=List[category_schemas.CategoryOut], tags=category_tags)
@limiter.limit("15/minute")
async def list_categories(
    request: Request,
    current_user_id: str = Depends(deps.get_current_user_id),
    categories: CategoryService = Depends(deps.get_category_service),
):
    """Categories the user owns or collaborates on."""
    try:
        items = await categories.list_categories(current_user_id)
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return [category_schemas.CategoryOut.model_validate(item) for item in items]


@router.get("/{category_id}", response_model=category_schemas.CategoryOut, tags=category_tags)
@limiter.limit("15/minute")
async def get_category(
    request: Request,
    category_id: str = Path(..., min_length=1),
    current_user_id: str = Depends(deps.get_current_user_id),
    categories: CategoryService = Depends(deps.get_category_service),
):
    try:
        category = await categories.get_category(category_id, current_user_id)
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return category_schemas.CategoryOut.model_validate(category)


@router.patch("/{category_id}", response_model=category_schemas.CategoryOut, tags=category_tags)
@limiter.limit("10/minute")
async def update_category(
    request: Request,
    category_id: str = Path(..., min_length=1),
    category_in: category_schemas.CategoryUpdate = Body(...),
    current_user_id: str = Depends(deps.get_current_user_id),
    categories: CategoryService = Depends(deps.get_category_service),
):
    """
    Update name, icon, colour or the collaborative flag.
    Editors may change appearance; toggling collaboration is admin-only.
    """
    fields = category_in.model_dump(exclude_unset=True, exclude_none=True)
    try:
        if fields:
            updated = await categories.update_category(category_id, current_user_id, fields)
        else:
            # Nothing to write; answer with the current state
            updated = await categories.get_category(category_id, current_user_id)
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return category_schemas.CategoryOut.model_validate(updated)


@router.delete("/{category_id}", response_model=collab_schemas.SuccessResponse, tags=category_tags)
@limiter.limit("5/minute")
async def delete_category(
    request: Request,
    category_id: str = Path(..., min_length=1),
    current_user_id: str = Depends(deps.get_current_user_id),
    categories: CategoryService = Depends(deps.get_category_service),
):
    """Delete a category and, by cascade, its collaborator rows. Owner or admins only."""
    try:
        await categories.delete_category(category_id, current_user_id)
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return collab_schemas.SuccessResponse()


# === Membership ===
@router.get("/{category_id}/collaborators", response_model=List[collab_schemas.CollaboratorOut], tags=member_tags)
@limiter.limit("15/minute")
async def list_members(
    request: Request,
    category_id: str = Path(..., min_length=1),
    current_user_id: str = Depends(deps.get_current_user_id),
    roster: CollaboratorRoster = Depends(deps.get_roster),
):
    """Everyone with access to the category. Legacy shared_with members are reported as viewers."""
    try:
        members = await roster.list_members(category_id, current_user_id)
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return [collab_schemas.CollaboratorOut.model_validate(m) for m in members]


@router.post("/{category_id}/leave", response_model=collab_schemas.SuccessResponse, tags=member_tags)
@limiter.limit("10/minute")
async def leave_category(
    request: Request,
    category_id: str = Path(..., min_length=1),
    current_user_id: str = Depends(deps.get_current_user_id),
    roster: CollaboratorRoster = Depends(deps.get_roster),
):
    try:
        await roster.leave_category(category_id, current_user_id)
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return collab_schemas.SuccessResponse()


@router.post(
    "/{category_id}/shared-with/migrate",
    response_model=collab_schemas.MigratedMembers,
    tags=member_tags,
)
@limiter.limit("5/minute")
async def migrate_shared_with(
    request: Request,
    category_id: str = Path(..., min_length=1),
    current_user_id: str = Depends(deps.get_current_user_id),
    roster: CollaboratorRoster = Depends(deps.get_roster),
):
    """Fold the legacy shared_with array into viewer rows. Admins only."""
    try:
        migrated = await roster.migrate_shared_with(category_id, current_user_id)
    except CollaborationError as exc:
        raise deps.to_http_exception(exc) from exc
    return collab_schemas.MigratedMembers(migrated=migrated)
