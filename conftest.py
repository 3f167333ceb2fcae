"""
conftest.py  – test fixtures for the collaboration API.

Key points
----------
* Settings come from `.env.test` (ENVIRONMENT=test), pointed at *before*
  the app is imported.
* No database: the store, the e-mail notifier and the clock are swapped for
  the in-memory doubles in `tests/fakes.py` through
  `app.dependency_overrides`.
* In the test environment a bearer token without dots is taken as the raw
  uid, so `make_auth_header("u1")` authenticates as user `u1`.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DOTENV_PATH", os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env.test"))

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from main import app as fastapi_app
from app.api import deps
from tests.fakes import FrozenClock, InMemoryStore, RecordingNotifier
from tests.utils import build_services


# --------------------------------------------------------------------------
# In-memory collaborators
# --------------------------------------------------------------------------
@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store(clock: FrozenClock) -> InMemoryStore:
    return InMemoryStore(clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def services(store, notifier, clock):
    """Guard, invites, roster, transfer and categories wired over the fakes."""
    return build_services(store, notifier, clock)


@pytest.fixture
def cat1(store: InMemoryStore):
    """Scenario fixture: category `cat1` with admin `u1`."""
    return store.seed_category("cat1", "u1", name="Household")


# --------------------------------------------------------------------------
# httpx.AsyncClient with dependency overrides for store / notifier / clock
# --------------------------------------------------------------------------
@pytest_asyncio.fixture
async def client(store, notifier, clock):
    fastapi_app.dependency_overrides[deps.get_store] = lambda: store
    fastapi_app.dependency_overrides[deps.get_notifier] = lambda: notifier
    fastapi_app.dependency_overrides[deps.get_clock] = lambda: clock

    async with AsyncClient(transport=ASGITransport(app=fastapi_app),
                           base_url="http://testserver") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


# ---------- helper: build an Authorization header for a given user ----------
@pytest.fixture
def make_auth_header():
    """
    Tests call:  headers = make_auth_header("u1")
    """
    def _make(uid: str, token_type: str = "Bearer") -> dict[str, str]:
        return {"Authorization": f"{token_type} {uid}"}

    return _make


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """SlowAPI keeps its counters in memory; start every test from zero."""
    limiter = getattr(fastapi_app.state, "limiter", None)
    if limiter:
        limiter.reset()
    yield
    if limiter:
        limiter.reset()
