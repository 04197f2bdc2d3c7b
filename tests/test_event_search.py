"""Unit tests for event search filtering."""

from datetime import date, datetime

import pytest

from database.models import Event
from services.event_search import filter_events


@pytest.fixture
def events():
    return [
        Event(id="1", title="Summer MUSIC Fest", description="Bands", organizer="City",
              tags=["Rock", "Outdoor"], date="05 December, 2025"),
        Event(id="2", title="Chess Night", description="Board games", organizer="Club",
              tags=["Games"], date="10 January, 2026"),
        Event(id="3", title="Jam Session", description="Open mic and music for all",
              organizer="Cafe", tags=["Rock"], date="not a date"),
    ]


def test_query_matches_title_or_description_case_insensitive(events):
    result = filter_events(events, "music", [])

    assert [event.id for event in result] == ["1", "3"]


def test_query_matches_organizer(events):
    assert [event.id for event in filter_events(events, "  CLUB ")] == ["2"]


def test_empty_query_and_tags_return_everything(events):
    assert filter_events(events, "", []) == events
    assert filter_events(events, None, None) == events


def test_required_tags_subset(events):
    assert [event.id for event in filter_events(events, "", ["Rock"])] == ["1", "3"]
    assert [event.id for event in filter_events(events, "", ["Rock", "Outdoor"])] == ["1"]
    assert filter_events(events, "", ["Rock", "Games"]) == []


def test_query_and_tags_combined(events):
    assert [event.id for event in filter_events(events, "jam", ["Rock"])] == ["3"]


def test_missing_fields_are_treated_as_empty():
    sparse = [
        {"id": "a", "title": None, "tags": None},
        {"id": "b"},
        Event(id="c", title="Music"),
        None,
    ]

    assert [item["id"] for item in filter_events(sparse[:2], "", [])] == ["a", "b"]
    assert filter_events(sparse, "music", ["Rock"]) == []
    assert filter_events(sparse, "music") == [sparse[2]]
    assert filter_events(None, "music") == []


def test_date_range(events):
    december = filter_events(events, "", None, date(2025, 12, 1), date(2025, 12, 31))
    inclusive = filter_events(events, "", None, datetime(2025, 12, 5, 18, 0), date(2026, 1, 10))

    assert [event.id for event in december] == ["1"]
    assert [event.id for event in inclusive] == ["1", "2"]


def test_single_date_bound_is_ignored(events):
    assert filter_events(events, "", None, date(2030, 1, 1), None) == events


def test_single_tag_string_is_one_tag(events):
    assert [event.id for event in filter_events(events, "", "Rock")] == ["1", "3"]
    assert filter_events(events, "", "R") == []
