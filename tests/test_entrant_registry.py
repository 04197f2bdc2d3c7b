"""Unit tests for EntrantRegistry."""

import asyncio

import pytest

from core.constants import Collections, EntrantStatus, InvitationStatus, MembershipStatus
from core.exceptions import NotFoundError, ValidationError
from database.models import membership_id


@pytest.mark.asyncio
async def test_apply_then_status_is_waitlisted(registry, event):
    assert await registry.apply(event.id, "alice") is True
    assert await registry.status_of(event.id, "alice") == EntrantStatus.WAITLISTED


@pytest.mark.asyncio
async def test_apply_creates_membership(registry, store, event):
    await registry.apply(event.id, "alice")

    membership = await store.get(Collections.MEMBERSHIPS, membership_id(event.id, "alice"))
    assert membership["status"] == MembershipStatus.APPLIED.value
    assert membership["winnerNotified"] is False


@pytest.mark.asyncio
async def test_apply_twice_is_noop(registry, app, event):
    await registry.apply(event.id, "alice")
    assert await registry.apply(event.id, "alice") is False

    stored = await app.events.get_event(event.id)
    assert stored.waitlist == ["alice"]


@pytest.mark.asyncio
async def test_apply_unknown_event(registry):
    with pytest.raises(NotFoundError):
        await registry.apply("no-such-event", "alice")


@pytest.mark.asyncio
async def test_apply_rejects_blank_user(registry, event):
    with pytest.raises(ValidationError):
        await registry.apply(event.id, "  ")


@pytest.mark.asyncio
async def test_apply_withdraw_round_trip(registry, store, event):
    await registry.apply(event.id, "alice")
    assert await registry.withdraw(event.id, "alice") is True

    assert await registry.status_of(event.id, "alice") == EntrantStatus.NOT_APPLIED
    assert await store.get(Collections.MEMBERSHIPS, membership_id(event.id, "alice")) is None


@pytest.mark.asyncio
async def test_withdraw_absent_user_is_noop(registry, event):
    assert await registry.withdraw(event.id, "nobody") is False


@pytest.mark.asyncio
async def test_status_of_unknown_ids(registry, event):
    assert await registry.status_of("missing-event", "alice") == EntrantStatus.NOT_APPLIED
    assert await registry.status_of(event.id, "stranger") == EntrantStatus.NOT_APPLIED


@pytest.mark.asyncio
async def test_concurrent_applies_lose_no_updates(registry, app, event):
    """Fifty parallel applies against one event all land on the waitlist."""
    users = [f"user-{i}" for i in range(50)]

    results = await asyncio.gather(*(registry.apply(event.id, user) for user in users))

    stored = await app.events.get_event(event.id)
    assert all(results)
    assert len(stored.waitlist) == 50
    assert set(stored.waitlist) == set(users)


@pytest.mark.asyncio
async def test_entrant_counts(registry, lottery, dispatcher, populated_event):
    await lottery.select_winners(populated_event.id, 2)
    await dispatcher.dispatch_winner_notifications(populated_event.id)
    chosen = (await registry.entrants_by_status(populated_event.id, EntrantStatus.SELECTED))
    await registry.respond_to_invitation(populated_event.id, chosen[0], "accepted")

    counts = await registry.entrant_counts(populated_event.id)

    assert counts.waitlisted == 3
    assert counts.chosen == 2
    assert counts.cancelled == 0
    assert counts.enrolled == 1
    assert counts.on_waitlist == 5


@pytest.mark.asyncio
async def test_accept_invitation_enrolls(registry, lottery, dispatcher, populated_event):
    result = await lottery.select_winners(populated_event.id, 1)
    winner = result.winner_ids[0]
    await dispatcher.dispatch_winner_notifications(populated_event.id)

    status = await registry.respond_to_invitation(populated_event.id, winner, InvitationStatus.ACCEPTED)

    assert status == EntrantStatus.ENROLLED
    assert await registry.status_of(populated_event.id, winner) == EntrantStatus.ENROLLED
    # Repeating the answer changes nothing
    assert await registry.respond_to_invitation(populated_event.id, winner, "accepted") == EntrantStatus.ENROLLED


@pytest.mark.asyncio
async def test_decline_invitation_moves_to_cancelled(registry, app, lottery, dispatcher, populated_event):
    result = await lottery.select_winners(populated_event.id, 1)
    winner = result.winner_ids[0]
    await dispatcher.dispatch_winner_notifications(populated_event.id)

    status = await registry.respond_to_invitation(populated_event.id, winner, "declined")

    stored = await app.events.get_event(populated_event.id)
    assert status == EntrantStatus.DECLINED
    assert winner in stored.cancelled
    assert winner not in stored.chosen
    assert winner not in stored.invitation_status
    assert await registry.respond_to_invitation(populated_event.id, winner, "declined") == EntrantStatus.DECLINED


@pytest.mark.asyncio
async def test_respond_requires_pending_invitation(registry, lottery, populated_event):
    # Chosen but not yet notified: no invitation to answer
    result = await lottery.select_winners(populated_event.id, 1)

    with pytest.raises(ValidationError):
        await registry.respond_to_invitation(populated_event.id, result.winner_ids[0], "accepted")
    with pytest.raises(ValidationError):
        await registry.respond_to_invitation(populated_event.id, "u-never-applied", "declined")


@pytest.mark.asyncio
async def test_respond_rejects_unknown_answer(registry, populated_event):
    with pytest.raises(ValidationError):
        await registry.respond_to_invitation(populated_event.id, "u1", "maybe")
    with pytest.raises(ValidationError):
        await registry.respond_to_invitation(populated_event.id, "u1", "pending")


@pytest.mark.asyncio
async def test_cancel_entrant_notifies_and_frees_slot(registry, app, inbox, lottery, populated_event):
    result = await lottery.select_winners(populated_event.id, 2)
    target = result.winner_ids[0]

    assert await registry.cancel_entrant(populated_event.id, target) is True
    assert await registry.cancel_entrant(populated_event.id, "u-not-chosen") is False

    stored = await app.events.get_event(populated_event.id)
    notices = await inbox.list_notifications(target)
    assert target in stored.cancelled and target not in stored.chosen
    assert await registry.status_of(populated_event.id, target) == EntrantStatus.DECLINED
    assert [notice.message for notice in notices] == ["Your invitation has been cancelled."]


@pytest.mark.asyncio
async def test_cancelled_user_must_withdraw_before_reapplying(registry, lottery, populated_event):
    result = await lottery.select_winners(populated_event.id, 1)
    target = result.winner_ids[0]
    await registry.cancel_entrant(populated_event.id, target)

    assert await registry.apply(populated_event.id, target) is False
    await registry.withdraw(populated_event.id, target)
    assert await registry.apply(populated_event.id, target) is True
    assert await registry.status_of(populated_event.id, target) == EntrantStatus.WAITLISTED


@pytest.mark.asyncio
async def test_entrant_history(registry, app, event):
    other = await app.events.create_event(title="Chess Evening")
    await registry.apply(event.id, "alice")
    await registry.apply(other.id, "alice")
    await registry.apply(other.id, "bob")

    history = {evt.id: status for evt, status in await registry.entrant_history("alice")}

    assert history == {event.id: EntrantStatus.WAITLISTED, other.id: EntrantStatus.WAITLISTED}
    assert await registry.entrant_history("nobody") == []


@pytest.mark.asyncio
async def test_list_events_by_organizer_and_tag(app, event):
    await app.events.create_event(title="Chess Evening", organizer_id="org-2", tags=["Games"])

    by_organizer = await app.events.list_events(organizer_id="org-1")
    by_tag = await app.events.list_events(tag="Games")

    assert [evt.id for evt in by_organizer] == [event.id]
    assert [evt.title for evt in by_tag] == ["Chess Evening"]
    assert len(await app.events.list_events()) == 2


@pytest.mark.asyncio
async def test_registry_recovers_after_cancelled_apply(registry, store, event, monkeypatch):
    real_apply = store._apply
    calls = {"n": 0}

    async def interrupted_apply(conn, op):
        calls["n"] += 1
        if calls["n"] == 2:
            raise asyncio.CancelledError()
        await real_apply(conn, op)

    monkeypatch.setattr(store, "_apply", interrupted_apply)
    with pytest.raises(asyncio.CancelledError):
        await registry.apply(event.id, "u1")
    monkeypatch.setattr(store, "_apply", real_apply)

    assert await registry.status_of(event.id, "u1") == EntrantStatus.NOT_APPLIED
    assert await store.get(Collections.MEMBERSHIPS, membership_id(event.id, "u1")) is None
    for i in range(8):
        assert await registry.apply(event.id, f"late-{i}") is True
    assert await registry.apply(event.id, "u1") is True
