"""Unit tests for NotificationInbox."""

import pytest

from core.exceptions import NotFoundError


@pytest.mark.asyncio
async def test_inbox_lists_newest_first_and_tracks_unread(inbox, registry, lottery, dispatcher, populated_event):
    result = await lottery.select_winners(populated_event.id, 1)
    winner = result.winner_ids[0]
    await dispatcher.dispatch_winner_notifications(populated_event.id)
    await dispatcher.notify_group(populated_event.id, "chosen", "Schedule attached")

    notices = await inbox.list_notifications(winner)

    assert [notice.message for notice in notices] == [
        "Schedule attached",
        "You have been selected for Summer Music Night. Please accept or decline your invitation.",
    ]
    assert await inbox.unread_count(winner) == 2


@pytest.mark.asyncio
async def test_mark_read(inbox, lottery, dispatcher, populated_event):
    result = await lottery.select_winners(populated_event.id, 1)
    dispatched = await dispatcher.dispatch_winner_notifications(populated_event.id)
    winner = result.winner_ids[0]

    record = await inbox.mark_read(dispatched.notification_ids[0])

    assert record.read is True
    assert await inbox.unread_count(winner) == 0
    assert await inbox.list_notifications(winner, unread_only=True) == []
    assert len(await inbox.list_notifications(winner)) == 1


@pytest.mark.asyncio
async def test_mark_read_unknown_id(inbox):
    with pytest.raises(NotFoundError):
        await inbox.mark_read("does-not-exist")


@pytest.mark.asyncio
async def test_mark_all_read(inbox, dispatcher, populated_event):
    await dispatcher.notify_group(populated_event.id, "waitlist", "First")
    await dispatcher.notify_group(populated_event.id, "waitlist", "Second")

    assert await inbox.mark_all_read("u1") == 2
    assert await inbox.mark_all_read("u1") == 0
    assert await inbox.unread_count("u1") == 0
    assert await inbox.unread_count("u2") == 2
