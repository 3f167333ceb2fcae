# app/api/deps.py
import logging
from typing import Optional, AsyncGenerator, Callable

import asyncpg
from fastapi import Depends, HTTPException, status, Request

from app.db import base as db_base # Pool lives on the module; read it at call time
from app.db.store import CollaborationStore, PostgresStore
from app.core.config import settings
from app.schemas.token import FirebaseTokenData
from app.services.categories import CategoryService
from app.services.errors import CollaborationError
from app.services.invites import InviteManager, utcnow
from app.services.notifications import Notifier, build_notifier
from app.services.permissions import AuthorizationGuard, PermissionStore
from app.services.roster import CollaboratorRoster
from app.services.transfer import AdminTransfer

# Firebase Admin SDK (initialized in main.py)
from firebase_admin import auth as firebase_auth

logger = logging.getLogger(__name__)

UNAUTH_TEXT = "Could not validate credentials"


class InvalidTokenError(Exception):
    """The presented ID token could not be verified."""


# --- Database Dependency ---
async def get_db() -> AsyncGenerator[asyncpg.Connection, None]:
    """
    FastAPI dependency that provides an asyncpg connection from the pool.
    Handles acquiring and releasing the connection.
    """
    if not db_base.db_pool:
        # This should ideally not happen if lifespan startup succeeded
        logger.error("Database pool is not available when trying to get connection.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service is not available.",
        )

    # Connection is released when leaving the 'async with' block
    async with db_base.db_pool.acquire() as conn:
        yield conn


async def get_store(db: asyncpg.Connection = Depends(get_db)) -> CollaborationStore:
    return PostgresStore(db)


def get_notifier() -> Notifier:
    return build_notifier(settings)


def get_clock() -> Callable:
    return utcnow


# --- Core service wiring ---
def get_guard(store: CollaborationStore = Depends(get_store)) -> AuthorizationGuard:
    return AuthorizationGuard(PermissionStore(store))


def get_invite_manager(
    store: CollaborationStore = Depends(get_store),
    guard: AuthorizationGuard = Depends(get_guard),
    notifier: Notifier = Depends(get_notifier),
    clock: Callable = Depends(get_clock),
) -> InviteManager:
    return InviteManager(
        store,
        guard,
        notifier,
        app_base_url=settings.APP_BASE_URL,
        default_expiry_days=settings.INVITE_DEFAULT_EXPIRY_DAYS,
        max_expiry_days=settings.INVITE_MAX_EXPIRY_DAYS,
        token_bytes=settings.INVITE_TOKEN_BYTES,
        clock=clock,
    )


def get_roster(
    store: CollaborationStore = Depends(get_store),
    guard: AuthorizationGuard = Depends(get_guard),
    invites: InviteManager = Depends(get_invite_manager),
) -> CollaboratorRoster:
    return CollaboratorRoster(store, guard, invites)


def get_admin_transfer(guard: AuthorizationGuard = Depends(get_guard)) -> AdminTransfer:
    return AdminTransfer(guard)


def get_category_service(
    store: CollaborationStore = Depends(get_store),
    guard: AuthorizationGuard = Depends(get_guard),
) -> CategoryService:
    return CategoryService(store, guard)


# --- Authentication Dependencies ---
# The acting user is resolved here, once, and passed explicitly into the core.

def _extract_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, else the session cookie."""
    auth_header: str | None = request.headers.get("Authorization")
    if auth_header:
        try:
            scheme, token = auth_header.split(" ", 1)
        except ValueError:
            return None
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or None


async def get_verified_token_data(request: Request) -> FirebaseTokenData:
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTH_TEXT,
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Test runs use raw uids as bearer values; real ID tokens are JWTs and always contain dots.
    if settings.ENVIRONMENT == "test" and "." not in token:
        return FirebaseTokenData(uid=token, email=None)

    try:
        return await firebase_verify_token(token)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Firebase token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_optional_verified_token_data(request: Request) -> Optional[FirebaseTokenData]:
    """
    Like `get_verified_token_data` but returns None instead of raising when
    the credential is missing or invalid.
    """
    try:
        return await get_verified_token_data(request)
    except HTTPException as exc:
        logger.debug(f"Optional token verification failed: {exc.detail}")
        return None


async def get_current_user_id(
    token_data: FirebaseTokenData = Depends(get_verified_token_data),
) -> str:
    """The authenticated user's id (the identity provider uid)."""
    return token_data.uid


async def get_optional_current_user_id(
    token_data: Optional[FirebaseTokenData] = Depends(get_optional_verified_token_data),
) -> Optional[str]:
    return token_data.uid if token_data else None


def ensure_acting_user(claimed_id: Optional[str], current_user_id: str) -> None:
    """A body field naming the actor (adminId, userId) must be the caller."""
    if claimed_id and claimed_id != current_user_id:
        logger.warning(f"Actor mismatch: body names {claimed_id}, token is {current_user_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")


def to_http_exception(exc: CollaborationError) -> HTTPException:
    """Convert a core error into the HTTP error the client sees."""
    return HTTPException(status_code=exc.status_code, detail=exc.detail())


# ------------------------------------------------------------------
# Helper: verify a Firebase ID-token and return our Pydantic model
# ------------------------------------------------------------------
async def firebase_verify_token(token: str) -> FirebaseTokenData:
    """
    Verifies a Firebase ID token and converts the decoded claims into our
    FirebaseTokenData schema.  Raises InvalidTokenError on any failure so the
    caller can respond with 401.
    """
    try:
        claims = firebase_auth.verify_id_token(token)
    except Exception as exc:          # all errors → InvalidTokenError
        raise InvalidTokenError(str(exc)) from exc

    return FirebaseTokenData(
        uid=claims.get("uid") or claims.get("user_id"),
        email=claims.get("email"),
        name=claims.get("name"),
    )
