# tests/collaboration/test_scenarios.py
"""End-to-end walkthroughs of the invite lifecycle at the service layer."""
import asyncio
from datetime import timedelta

import pytest

from app.services.errors import AuthorizationError, ExpiredInviteError, InvalidInviteError
from tests.utils import token_from_link


async def test_one_day_invite_expires_for_late_joiners(services, store, clock, cat1):
    issued = await services.invites.issue_invite("cat1", "u2@example.com", 1, "u1")
    token = token_from_link(issued.invite_link)

    clock.advance(seconds=1)
    assert await services.invites.redeem_invite(token, "u2") == "cat1"
    assert store.level("cat1", "u2") == "viewer"

    clock.advance(days=1)  # one day and one second after issuance
    with pytest.raises(ExpiredInviteError):
        await services.invites.redeem_invite(token, "u3")
    assert store.level("cat1", "u3") is None


async def test_editor_cannot_remove_members(services, store, cat1):
    store.seed_member("cat1", "u2", "viewer")
    await services.roster.add_collaborator("cat1", "u4", "editor", "u1")

    with pytest.raises(AuthorizationError) as exc_info:
        await services.roster.remove_collaborator("cat1", "u2", "u4")
    assert exc_info.value.status_code == 403
    assert store.level("cat1", "u2") == "viewer"


async def test_reissued_invite_replaces_the_old_token(services, store, cat1):
    a = await services.invites.issue_invite("cat1", "a@example.com", None, "u1")
    b = await services.invites.issue_invite("cat1", "b@example.com", None, "u1")

    with pytest.raises(InvalidInviteError):
        await services.invites.redeem_invite(token_from_link(a.invite_link), "u5")
    assert await services.invites.redeem_invite(token_from_link(b.invite_link), "u5") == "cat1"


async def test_concurrent_redemptions_by_one_user_join_once(services, store, cat1):
    issued = await services.invites.issue_invite("cat1", "a@example.com", None, "u1")
    token = token_from_link(issued.invite_link)
    store.interleave = True

    results = await asyncio.gather(*(services.invites.redeem_invite(token, "u2") for _ in range(5)))

    assert results == ["cat1"] * 5
    assert store.level("cat1", "u2") == "viewer"
    # every caller saw "not a member" and tried; the losers hit the unique guard
    assert store.calls.count("insert_collaborator") == 5


async def test_revocation_beats_remaining_validity(services, store, clock, cat1):
    issued = await services.invites.issue_invite("cat1", "a@example.com", 30, "u1")
    await services.invites.revoke_invite("cat1", "u1")
    clock.advance(seconds=5)
    with pytest.raises(InvalidInviteError):
        await services.invites.redeem_invite(token_from_link(issued.invite_link), "u2")


async def test_transfer_hands_over_governance(services, store, cat1):
    store.seed_member("cat1", "u2", "editor")
    await services.transfer.transfer_admin("cat1", "u1", "u2", "u1")

    # the new admin can invite, the old one no longer can
    await services.invites.issue_invite("cat1", "x@example.com", None, "u2")
    with pytest.raises(AuthorizationError):
        await services.invites.issue_invite("cat1", "x@example.com", None, "u1")
    assert store.categories["cat1"]["invite_expiry"] > store.clock() + timedelta(days=6)
