"""
SQL helpers for the `categories` table, including the embedded invite
fields and the legacy `shared_with` array.

Same contract as `crud_collaborator`: plain data in/out, custom errors,
no transaction control.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import asyncpg

from app.services.errors import PersistenceError

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, user_id, name, icon, color, is_collaborative, shared_with, "
    "invite_token, invite_expiry, created_at"
)

# Columns a PATCH may touch, mapped to themselves to keep the SQL whitelist explicit.
_UPDATABLE = {"name": "name", "icon": "icon", "color": "color", "is_collaborative": "is_collaborative"}


def _affected(status: str) -> int:
    return int(status.split(" ")[-1])


def _to_dict(rec: Optional[asyncpg.Record]) -> Optional[Dict[str, Any]]:
    if rec is None:
        return None
    data = dict(rec)
    data["shared_with"] = list(data.get("shared_with") or [])
    return data


async def create_category(
    db: asyncpg.Connection,
    *,
    owner_id: str,
    name: str,
    icon: str,
    color: str,
    is_collaborative: bool,
) -> Dict[str, Any]:
    """Insert the category row only; the owner's admin entry is added by the caller."""
    try:
        rec = await db.fetchrow(
            f"""
            INSERT INTO categories (user_id, name, icon, color, is_collaborative)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING {_COLUMNS}
            """,
            owner_id,
            name,
            icon,
            color,
            is_collaborative,
        )
    except Exception as exc:
        logger.error("Error creating category for %s: %s", owner_id, exc, exc_info=True)
        raise PersistenceError("Database error creating category.") from exc

    if rec is None:
        raise PersistenceError("Insert returned no row.")
    logger.info("Created category %s for owner %s", rec["id"], owner_id)
    return _to_dict(rec)


async def get_category(db: asyncpg.Connection, category_id: str) -> Optional[Dict[str, Any]]:
    try:
        rec = await db.fetchrow(f"SELECT {_COLUMNS} FROM categories WHERE id = $1", category_id)
        return _to_dict(rec)
    except Exception as exc:
        logger.error("Error fetching category %s: %s", category_id, exc, exc_info=True)
        raise PersistenceError("Database error fetching category.") from exc


async def get_category_by_invite_token(db: asyncpg.Connection, token: str) -> Optional[Dict[str, Any]]:
    """Exact match against the single active token of each category."""
    try:
        rec = await db.fetchrow(f"SELECT {_COLUMNS} FROM categories WHERE invite_token = $1", token)
        return _to_dict(rec)
    except Exception as exc:
        logger.error("Error looking up invite token: %s", exc, exc_info=True)
        raise PersistenceError("Database error looking up invite.") from exc


async def list_categories_for_user(db: asyncpg.Connection, user_id: str) -> List[Dict[str, Any]]:
    """Owned, collaborating (any level) or legacy-shared categories, oldest first."""
    try:
        rows = await db.fetch(
            f"""
            SELECT {_COLUMNS}
            FROM categories c
            WHERE c.user_id = $1
               OR $1 = ANY(c.shared_with)
               OR EXISTS (
                    SELECT 1 FROM category_collaborators cc
                    WHERE cc.category_id = c.id AND cc.user_id = $1
               )
            ORDER BY c.created_at, c.id
            """,
            user_id,
        )
        return [_to_dict(r) for r in rows]
    except Exception as exc:
        logger.error("Error listing categories for %s: %s", user_id, exc, exc_info=True)
        raise PersistenceError("Database error fetching categories.") from exc


async def update_category(
    db: asyncpg.Connection, category_id: str, fields: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """PATCH whitelisted columns; returns the new row or `None` if absent."""
    sets: list[str] = []
    params: list[Any] = []
    for key, value in fields.items():
        column = _UPDATABLE.get(key)
        if column is None:
            continue
        params.append(value)
        sets.append(f"{column} = ${len(params)}")

    if not sets:
        return await get_category(db, category_id)

    params.append(category_id)
    try:
        rec = await db.fetchrow(
            f"""
            UPDATE categories
            SET {', '.join(sets)}
            WHERE id = ${len(params)}
            RETURNING {_COLUMNS}
            """,
            *params,
        )
        return _to_dict(rec)
    except Exception as exc:
        logger.error("Error updating category %s: %s", category_id, exc, exc_info=True)
        raise PersistenceError("Database error updating category.") from exc


async def delete_category(db: asyncpg.Connection, category_id: str) -> bool:
    """Collaborator rows go with it (ON DELETE CASCADE)."""
    try:
        status = await db.execute("DELETE FROM categories WHERE id = $1", category_id)
        return _affected(status) > 0
    except Exception as exc:
        logger.error("Error deleting category %s: %s", category_id, exc, exc_info=True)
        raise PersistenceError("Database error deleting category.") from exc


# --------------------------------------------------------------------------- #
#  Invite fields                                                              #
# --------------------------------------------------------------------------- #
async def set_invite(
    db: asyncpg.Connection, category_id: str, token: str, expiry: datetime
) -> bool:
    """Overwrite both invite fields in one statement (last write wins)."""
    try:
        status = await db.execute(
            "UPDATE categories SET invite_token = $2, invite_expiry = $3 WHERE id = $1",
            category_id,
            token,
            expiry,
        )
        return _affected(status) > 0
    except Exception as exc:
        logger.error("Error storing invite for category %s: %s", category_id, exc, exc_info=True)
        raise PersistenceError("Database error storing invite.") from exc


async def clear_invite(db: asyncpg.Connection, category_id: str) -> bool:
    try:
        status = await db.execute(
            "UPDATE categories SET invite_token = NULL, invite_expiry = NULL WHERE id = $1",
            category_id,
        )
        return _affected(status) > 0
    except Exception as exc:
        logger.error("Error clearing invite for category %s: %s", category_id, exc, exc_info=True)
        raise PersistenceError("Database error revoking invite.") from exc


# --------------------------------------------------------------------------- #
#  Legacy shared_with array                                                   #
# --------------------------------------------------------------------------- #
async def add_shared_with(db: asyncpg.Connection, category_id: str, user_id: str) -> bool:
    """Set-union append; False when the id was already present."""
    try:
        status = await db.execute(
            """
            UPDATE categories
            SET shared_with = array_append(COALESCE(shared_with, '{}'), $2)
            WHERE id = $1 AND NOT ($2 = ANY(COALESCE(shared_with, '{}')))
            """,
            category_id,
            user_id,
        )
        return _affected(status) > 0
    except Exception as exc:
        logger.error("Error sharing category %s with %s: %s", category_id, user_id, exc, exc_info=True)
        raise PersistenceError("Database error joining category.") from exc


async def remove_shared_with(db: asyncpg.Connection, category_id: str, user_id: str) -> bool:
    try:
        status = await db.execute(
            """
            UPDATE categories
            SET shared_with = array_remove(shared_with, $2)
            WHERE id = $1 AND $2 = ANY(shared_with)
            """,
            category_id,
            user_id,
        )
        return _affected(status) > 0
    except Exception as exc:
        logger.error("Error unsharing category %s from %s: %s", category_id, user_id, exc, exc_info=True)
        raise PersistenceError("Database error leaving category.") from exc


async def clear_shared_with(db: asyncpg.Connection, category_id: str) -> None:
    try:
        await db.execute("UPDATE categories SET shared_with = '{}' WHERE id = $1", category_id)
    except Exception as exc:
        logger.error("Error clearing shared_with of %s: %s", category_id, exc, exc_info=True)
        raise PersistenceError("Database error clearing shared users.") from exc
