# tests/collaboration/test_permissions.py
import pytest

from app.schemas.collaboration import PermissionLevel
from app.services.errors import AuthorizationError, PersistenceError, ValidationError
from app.services.permissions import parse_level


async def test_get_permission_absent_means_not_a_collaborator(services, cat1):
    assert await services.permissions.get_permission("cat1", "stranger") is None
    assert await services.permissions.get_permission("cat1", "u1") == PermissionLevel.ADMIN


async def test_set_permission_only_overwrites_existing_entries(services, store, cat1):
    assert await services.permissions.set_permission("cat1", "u9", PermissionLevel.EDITOR) is False
    assert store.level("cat1", "u9") is None

    store.seed_member("cat1", "u2", "viewer")
    assert await services.permissions.set_permission("cat1", "u2", "editor") is True
    assert store.level("cat1", "u2") == "editor"


async def test_remove_permission(services, store, cat1):
    store.seed_member("cat1", "u2", "viewer")
    assert await services.permissions.remove_permission("cat1", "u2") is True
    assert await services.permissions.remove_permission("cat1", "u2") is False


def test_parse_level_rejects_unknown_values():
    assert parse_level("viewer") is PermissionLevel.VIEWER
    with pytest.raises(ValidationError):
        parse_level("owner")


@pytest.mark.parametrize("level", [None, "viewer", "editor"])
async def test_is_admin_false_for_anyone_below_admin(services, store, cat1, level):
    if level:
        store.seed_member("cat1", "u2", level)
    assert await services.guard.is_admin("u2", "cat1") is False


async def test_is_admin_false_on_other_categories(services, store, cat1):
    store.seed_category("cat2", "u7")
    assert await services.guard.is_admin("u1", "cat2") is False
    assert await services.guard.is_admin("u1", "cat1") is True


async def test_require_admin_raises_authorization_error(services, store, cat1):
    store.seed_member("cat1", "u4", "editor")
    with pytest.raises(AuthorizationError) as exc_info:
        await services.guard.require_admin("u4", "cat1")
    assert exc_info.value.status_code == 403

    with pytest.raises(AuthorizationError):
        await services.guard.require_admin(None, "cat1")


async def test_each_check_is_a_fresh_lookup(services, store, cat1):
    await services.guard.is_admin("u1", "cat1")
    await services.guard.is_admin("u1", "cat1")
    assert store.calls.count("get_permission") == 2


async def test_store_failure_surfaces_as_persistence_error(services, store, cat1):
    store.fail("get_permission", user_id="u1")
    with pytest.raises(PersistenceError):
        await services.guard.is_admin("u1", "cat1")


async def test_has_access_covers_owner_rows_and_shared_with(services, store):
    category = store.seed_category("cat3", "owner", shared_with=["legacy"], admin=False)
    store.seed_member("cat3", "viewer1", "viewer")

    assert await services.guard.has_access("owner", category)
    assert await services.guard.has_access("legacy", category)
    assert await services.guard.has_access("viewer1", category)
    assert not await services.guard.has_access("nobody", category)
