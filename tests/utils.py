# tests/utils.py
from types import SimpleNamespace
from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock

import asyncpg

from app.services.categories import CategoryService
from app.services.invites import InviteManager
from app.services.permissions import AuthorizationGuard, PermissionStore
from app.services.roster import CollaboratorRoster
from app.services.transfer import AdminTransfer

API = "/api/v1"
CATEGORIES = f"{API}/categories"
BASE_URL = "http://testserver.local"

# --- Mocking Helpers ---

def create_mock_record(data: Dict[str, Any]) -> MagicMock:
    """ Creates a mock asyncpg.Record for unit testing CRUD functions. """
    mock = MagicMock(spec=asyncpg.Record)
    mock.__getitem__.side_effect = lambda key: data[key]
    mock.get.side_effect = lambda key, default=None: data.get(key, default)
    # dict(record) goes through keys() + __getitem__
    mock.keys.return_value = list(data.keys())
    mock.items.return_value = data.items()
    return mock


def mock_connection() -> AsyncMock:
    """An asyncpg.Connection stand-in whose query methods are AsyncMocks."""
    conn = AsyncMock(spec=asyncpg.Connection)
    conn.fetchrow = AsyncMock()
    conn.fetchval = AsyncMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="UPDATE 1")
    return conn


# --- Service wiring (same graph as app.api.deps) ---

def build_services(store, notifier, clock, base_url: str = BASE_URL) -> SimpleNamespace:
    guard = AuthorizationGuard(PermissionStore(store))
    invites = InviteManager(store, guard, notifier, app_base_url=base_url, clock=clock)
    return SimpleNamespace(
        guard=guard,
        permissions=guard.permissions,
        invites=invites,
        roster=CollaboratorRoster(store, guard, invites),
        transfer=AdminTransfer(guard),
        categories=CategoryService(store, guard),
    )


def token_from_link(link: str) -> str:
    return link.rsplit("/", 1)[-1]
