"""Derivation of the human-facing entrant status used by history views."""

from __future__ import annotations

from typing import Optional

from core.constants import EntrantStatus, InvitationStatus
from database.models import Event


def derive_status(event: Optional[Event], user_id: str) -> EntrantStatus:
    """Summarize where ``user_id`` stands in ``event``.

    Precedence is fixed: chosen+accepted, then chosen, then cancelled, then
    waitlist. An id that shows up in several sets during a concurrent update
    therefore always resolves through the chosen branch first.
    """
    if event is None:
        return EntrantStatus.NOT_APPLIED

    if user_id in event.chosen:
        if event.invitation_status.get(user_id) == InvitationStatus.ACCEPTED.value:
            return EntrantStatus.ENROLLED
        return EntrantStatus.SELECTED
    if user_id in event.cancelled:
        return EntrantStatus.DECLINED
    if user_id in event.waitlist:
        return EntrantStatus.WAITLISTED
    return EntrantStatus.NOT_APPLIED
