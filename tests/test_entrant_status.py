"""Unit tests for derive_status."""

import pytest

from core.constants import EntrantStatus
from database.models import Event
from services.entrant_status import derive_status


def make_event(**sets):
    return Event(id="e1", title="Test", **sets)


def test_status_enum_values():
    """Display labels stay stable."""
    assert EntrantStatus.NOT_APPLIED.value == "NotApplied"
    assert EntrantStatus.WAITLISTED.value == "Waitlisted"
    assert EntrantStatus.SELECTED.value == "Selected"
    assert EntrantStatus.ENROLLED.value == "Enrolled"
    assert EntrantStatus.DECLINED.value == "Declined"


@pytest.mark.parametrize("sets, expected", [
    ({}, EntrantStatus.NOT_APPLIED),
    ({"waitlist": ["u"]}, EntrantStatus.WAITLISTED),
    ({"chosen": ["u"]}, EntrantStatus.SELECTED),
    ({"chosen": ["u"], "invitation_status": {"u": "pending"}}, EntrantStatus.SELECTED),
    ({"chosen": ["u"], "invitation_status": {"u": "accepted"}}, EntrantStatus.ENROLLED),
    ({"cancelled": ["u"]}, EntrantStatus.DECLINED),
])
def test_single_set_membership(sets, expected):
    assert derive_status(make_event(**sets), "u") == expected


def test_chosen_beats_cancelled():
    """An id left in both chosen and cancelled resolves through chosen."""
    pending = make_event(chosen=["u"], cancelled=["u"], invitation_status={"u": "pending"})
    accepted = make_event(chosen=["u"], cancelled=["u"], invitation_status={"u": "accepted"})

    assert derive_status(pending, "u") == EntrantStatus.SELECTED
    assert derive_status(accepted, "u") == EntrantStatus.ENROLLED


def test_cancelled_beats_waitlist():
    assert derive_status(make_event(waitlist=["u"], cancelled=["u"]), "u") == EntrantStatus.DECLINED


def test_missing_event_is_not_applied():
    assert derive_status(None, "u") == EntrantStatus.NOT_APPLIED
