# tests/collaboration/test_transfer.py
import pytest

from app.services.errors import (
    AuthorizationError,
    NotCollaboratorError,
    PersistenceError,
    TransferError,
    ValidationError,
)


@pytest.fixture
def with_editor(store, cat1):
    store.seed_member("cat1", "u2", "editor")


async def test_transfer_promotes_then_demotes(services, store, with_editor):
    await services.transfer.transfer_admin("cat1", "u1", "u2", "u1")
    assert store.level("cat1", "u2") == "admin"
    assert store.level("cat1", "u1") == "editor"

    writes = [c for c in store.calls if c == "update_permission"]
    assert len(writes) == 2


async def test_transfer_from_viewer_target(services, store, cat1):
    store.seed_member("cat1", "u3", "viewer")
    await services.transfer.transfer_admin("cat1", "u1", "u3", "u1")
    assert store.level("cat1", "u3") == "admin"


async def test_caller_must_be_the_source_admin(services, store, with_editor):
    before = store.snapshot()
    with pytest.raises(AuthorizationError):
        await services.transfer.transfer_admin("cat1", "u1", "u2", "u2")
    assert store.snapshot() == before


async def test_non_admin_source_is_rejected(services, store, with_editor):
    store.seed_member("cat1", "u3", "viewer")
    before = store.snapshot()
    with pytest.raises(AuthorizationError):
        await services.transfer.transfer_admin("cat1", "u2", "u3", "u2")
    assert store.snapshot() == before


async def test_target_must_already_be_a_collaborator(services, store, cat1):
    before = store.snapshot()
    with pytest.raises(NotCollaboratorError):
        await services.transfer.transfer_admin("cat1", "u1", "outsider", "u1")
    assert store.snapshot() == before


@pytest.mark.parametrize(
    "args",
    [("", "u1", "u2"), ("cat1", "", "u2"), ("cat1", "u1", ""), ("cat1", "u1", "u1")],
)
async def test_invalid_arguments(services, store, with_editor, args):
    category_id, from_user, to_user = args
    with pytest.raises((ValidationError, AuthorizationError)):
        await services.transfer.transfer_admin(category_id, from_user, to_user, from_user)
    assert store.level("cat1", "u1") == "admin"


async def test_failed_demote_leaves_two_admins(services, store, with_editor):
    store.fail("update_permission", user_id="u1")
    with pytest.raises(TransferError) as exc_info:
        await services.transfer.transfer_admin("cat1", "u1", "u2", "u1")

    assert exc_info.value.failed_steps == ("demote",)
    assert isinstance(exc_info.value.__cause__, PersistenceError)
    assert store.level("cat1", "u1") == "admin"
    assert store.level("cat1", "u2") == "admin"


async def test_failed_promote_still_demotes_leaving_no_admin(services, store, with_editor):
    # documented behaviour: nothing checks that an admin remains
    store.fail("update_permission", user_id="u2")
    with pytest.raises(TransferError) as exc_info:
        await services.transfer.transfer_admin("cat1", "u1", "u2", "u1")

    assert exc_info.value.failed_steps == ("promote",)
    assert store.level("cat1", "u1") == "editor"
    assert store.level("cat1", "u2") == "editor"
    assert not any(row["permission"] == "admin" for row in store.collaborators.values())


async def test_both_steps_failing_are_both_reported(services, store, with_editor):
    store.fail("update_permission")
    with pytest.raises(TransferError) as exc_info:
        await services.transfer.transfer_admin("cat1", "u1", "u2", "u1")
    assert exc_info.value.detail() == {
        "message": "Admin transfer failed at: promote, demote",
        "failed_steps": ["promote", "demote"],
    }


async def test_target_removed_between_check_and_write(services, store, with_editor, monkeypatch):
    original = store.update_permission

    async def racing_update(category_id, user_id, permission):
        if user_id == "u2":
            store.collaborators.pop(("cat1", "u2"), None)
        return await original(category_id, user_id, permission)

    monkeypatch.setattr(store, "update_permission", racing_update)
    with pytest.raises(TransferError) as exc_info:
        await services.transfer.transfer_admin("cat1", "u1", "u2", "u1")
    assert exc_info.value.failed_steps == ("promote",)
