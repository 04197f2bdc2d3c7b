"""Search and tag filtering over event lists."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Sequence, TypeVar, Union

from core import get_logger, LotteryDefaults

logger = get_logger(__name__)

E = TypeVar("E")
DateLike = Union[date, datetime]


def _field(event: Any, name: str) -> Any:
    if isinstance(event, dict):
        return event.get(name)
    return getattr(event, name, None)


def _text(event: Any, name: str) -> str:
    value = _field(event, name)
    return value.lower() if isinstance(value, str) else ""


def _as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def matches_query(event: Any, query: Optional[str]) -> bool:
    """Case-insensitive substring match on title, description or organizer."""
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(needle in _text(event, name) for name in ("title", "description", "organizer"))


def matches_tags(event: Any, required_tags: Optional[Iterable[str]]) -> bool:
    """True when the event carries every required tag."""
    if isinstance(required_tags, str):
        required_tags = (required_tags,)
    required = set(required_tags or ())
    if not required:
        return True
    tags = _field(event, "tags") or ()
    if isinstance(tags, str):
        tags = (tags,)
    return required.issubset(set(tags))


def matches_date_range(
    event: Any,
    start_date: Optional[DateLike],
    end_date: Optional[DateLike],
) -> bool:
    """True when the event date lies within ``[start_date, end_date]``.

    The range only applies when both ends are given; events without a
    parseable date are then excluded.
    """
    if start_date is None or end_date is None:
        return True
    raw = _field(event, "date")
    if not raw or not isinstance(raw, str):
        return False
    try:
        event_date = datetime.strptime(raw.strip(), LotteryDefaults.DATE_FORMAT).date()
    except ValueError:
        logger.debug(f"Failed to parse event date: {raw!r}")
        return False
    return _as_date(start_date) <= event_date <= _as_date(end_date)


def filter_events(
    events: Optional[Sequence[E]],
    query: Optional[str] = "",
    required_tags: Optional[Iterable[str]] = None,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
) -> List[E]:
    """Return the events matching query, tags and date range, order preserved."""
    if isinstance(required_tags, str):
        required_tags = (required_tags,)
    required = list(required_tags or ())
    return [
        event
        for event in (events or ())
        if event is not None
        and matches_query(event, query)
        and matches_tags(event, required)
        and matches_date_range(event, start_date, end_date)
    ]
