# tests/crud/test_crud_category.py
from datetime import datetime, timedelta, timezone

import asyncpg
import pytest

from app.crud import crud_category
from app.services.errors import PersistenceError
from tests.utils import create_mock_record, mock_connection

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def category_row(**overrides):
    row = {
        "id": "cat1",
        "user_id": "u1",
        "name": "Household",
        "icon": "📚",
        "color": "#3B82F6",
        "is_collaborative": True,
        "shared_with": None,
        "invite_token": None,
        "invite_expiry": None,
        "created_at": NOW,
    }
    row.update(overrides)
    return row


async def test_get_category_normalises_shared_with():
    db = mock_connection()
    db.fetchrow.return_value = create_mock_record(category_row())
    category = await crud_category.get_category(db, "cat1")
    assert category["shared_with"] == []
    assert category["id"] == "cat1"


async def test_get_category_missing():
    db = mock_connection()
    db.fetchrow.return_value = None
    assert await crud_category.get_category(db, "cat1") is None


async def test_lookup_by_invite_token_uses_exact_match():
    db = mock_connection()
    db.fetchrow.return_value = create_mock_record(category_row(invite_token="tok", shared_with=["u5"]))
    category = await crud_category.get_category_by_invite_token(db, "tok")
    assert category["shared_with"] == ["u5"]
    sql, token = db.fetchrow.call_args.args
    assert "invite_token = $1" in sql
    assert token == "tok"


async def test_create_category():
    db = mock_connection()
    db.fetchrow.return_value = create_mock_record(category_row(is_collaborative=False))
    created = await crud_category.create_category(
        db, owner_id="u1", name="Household", icon="📚", color="#3B82F6", is_collaborative=False
    )
    assert created["user_id"] == "u1"
    assert db.fetchrow.call_args.args[1:] == ("u1", "Household", "📚", "#3B82F6", False)


async def test_update_category_ignores_unknown_columns():
    db = mock_connection()
    db.fetchrow.return_value = create_mock_record(category_row(name="Chores"))
    updated = await crud_category.update_category(db, "cat1", {"name": "Chores", "user_id": "hijack"})
    assert updated["name"] == "Chores"
    sql, *params = db.fetchrow.call_args.args
    assert "name = $1" in sql and "user_id =" not in sql.split("RETURNING")[0]
    assert params == ["Chores", "cat1"]


async def test_update_category_with_nothing_to_change_reads_back():
    db = mock_connection()
    db.fetchrow.return_value = create_mock_record(category_row())
    await crud_category.update_category(db, "cat1", {"invite_token": "x"})
    assert "UPDATE" not in db.fetchrow.call_args.args[0]


async def test_set_invite_writes_both_fields():
    db = mock_connection()
    expiry = NOW + timedelta(days=7)
    assert await crud_category.set_invite(db, "cat1", "tok", expiry) is True
    sql, *params = db.execute.call_args.args
    assert "invite_token = $2, invite_expiry = $3" in sql
    assert params == ["cat1", "tok", expiry]


async def test_set_invite_on_missing_category():
    db = mock_connection()
    db.execute.return_value = "UPDATE 0"
    assert await crud_category.set_invite(db, "gone", "tok", NOW) is False


async def test_clear_invite_nulls_both_fields():
    db = mock_connection()
    assert await crud_category.clear_invite(db, "cat1") is True
    assert "invite_token = NULL, invite_expiry = NULL" in db.execute.call_args.args[0]


@pytest.mark.parametrize("tag,expected", [("UPDATE 1", True), ("UPDATE 0", False)])
async def test_add_shared_with_is_set_union(tag, expected):
    db = mock_connection()
    db.execute.return_value = tag
    assert await crud_category.add_shared_with(db, "cat1", "u2") is expected
    assert "NOT ($2 = ANY" in db.execute.call_args.args[0]


async def test_delete_category():
    db = mock_connection()
    db.execute.return_value = "DELETE 1"
    assert await crud_category.delete_category(db, "cat1") is True


@pytest.mark.parametrize(
    "call",
    [
        lambda db: crud_category.get_category(db, "cat1"),
        lambda db: crud_category.list_categories_for_user(db, "u1"),
        lambda db: crud_category.set_invite(db, "cat1", "tok", NOW),
        lambda db: crud_category.clear_invite(db, "cat1"),
        lambda db: crud_category.add_shared_with(db, "cat1", "u2"),
        lambda db: crud_category.remove_shared_with(db, "cat1", "u2"),
        lambda db: crud_category.clear_shared_with(db, "cat1"),
        lambda db: crud_category.delete_category(db, "cat1"),
    ],
)
async def test_database_errors_become_persistence_errors(call):
    db = mock_connection()
    error = asyncpg.PostgresError("boom")
    db.fetchrow.side_effect = error
    db.fetch.side_effect = error
    db.execute.side_effect = error
    with pytest.raises(PersistenceError):
        await call(db)


async def test_list_categories_for_user_covers_all_memberships():
    db = mock_connection()
    db.fetch.return_value = [create_mock_record(category_row()), create_mock_record(category_row(id="cat2"))]
    categories = await crud_category.list_categories_for_user(db, "u1")
    assert [c["id"] for c in categories] == ["cat1", "cat2"]
    sql = db.fetch.call_args.args[0]
    assert "c.user_id = $1" in sql
    assert "ANY(c.shared_with)" in sql
    assert "category_collaborators" in sql
