"""
SQL helpers for the `category_collaborators` table.

Every public function:
• takes an `asyncpg.Connection`
• returns plain Python data (dict / list / bool / str) or raises a custom error
• never commits/rolls back – the calling layer controls transactions
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import asyncpg

from app.services.errors import CategoryNotFoundError, DuplicateMemberError, PersistenceError

logger = logging.getLogger(__name__)

_COLUMNS = "category_id, user_id, permission::text AS permission, added_by, created_at"


def _affected(status: str) -> int:
    """Row count from an asyncpg command tag such as 'UPDATE 1'."""
    return int(status.split(" ")[-1])


async def get_permission(db: asyncpg.Connection, category_id: str, user_id: str) -> Optional[str]:
    """Single point lookup; `None` means "not a collaborator"."""
    try:
        return await db.fetchval(
            """
            SELECT permission::text
            FROM category_collaborators
            WHERE category_id = $1 AND user_id = $2
            """,
            category_id,
            user_id,
        )
    except Exception as exc:
        logger.error("Error reading permission of %s on category %s: %s", user_id, category_id, exc, exc_info=True)
        raise PersistenceError("Database error reading permission.") from exc


async def insert_collaborator(
    db: asyncpg.Connection,
    category_id: str,
    user_id: str,
    permission: str,
    added_by: Optional[str],
) -> Dict[str, Any]:
    """Insert a membership row; the unique (category_id, user_id) constraint guards duplicates."""
    try:
        rec = await db.fetchrow(
            f"""
            INSERT INTO category_collaborators (category_id, user_id, permission, added_by)
            VALUES ($1, $2, $3, $4)
            RETURNING {_COLUMNS}
            """,
            category_id,
            user_id,
            permission,
            added_by,
        )
    except asyncpg.exceptions.UniqueViolationError as exc:
        raise DuplicateMemberError() from exc
    except asyncpg.exceptions.ForeignKeyViolationError as exc:
        raise CategoryNotFoundError() from exc
    except Exception as exc:
        logger.error("Error inserting collaborator %s into %s: %s", user_id, category_id, exc, exc_info=True)
        raise PersistenceError("Database error adding collaborator.") from exc

    if rec is None:
        raise PersistenceError("Insert returned no row.")
    return dict(rec)


async def update_permission(
    db: asyncpg.Connection, category_id: str, user_id: str, permission: str
) -> bool:
    """Overwrite an existing row's level. False when there is no such row."""
    try:
        status = await db.execute(
            """
            UPDATE category_collaborators
            SET permission = $3
            WHERE category_id = $1 AND user_id = $2
            """,
            category_id,
            user_id,
            permission,
        )
        return _affected(status) > 0
    except Exception as exc:
        logger.error("Error updating permission of %s on %s: %s", user_id, category_id, exc, exc_info=True)
        raise PersistenceError("Database error updating permission.") from exc


async def delete_collaborator(db: asyncpg.Connection, category_id: str, user_id: str) -> bool:
    """True if a row was deleted."""
    try:
        status = await db.execute(
            "DELETE FROM category_collaborators WHERE category_id = $1 AND user_id = $2",
            category_id,
            user_id,
        )
        return _affected(status) > 0
    except Exception as exc:
        logger.error("Error deleting collaborator %s from %s: %s", user_id, category_id, exc, exc_info=True)
        raise PersistenceError("Database error removing collaborator.") from exc


async def list_collaborators(db: asyncpg.Connection, category_id: str) -> List[Dict[str, Any]]:
    try:
        rows = await db.fetch(
            f"""
            SELECT {_COLUMNS}
            FROM category_collaborators
            WHERE category_id = $1
            ORDER BY created_at, user_id
            """,
            category_id,
        )
        return [dict(r) for r in rows]
    except Exception as exc:
        logger.error("Error listing collaborators of %s: %s", category_id, exc, exc_info=True)
        raise PersistenceError("Database error fetching collaborators.") from exc
