"""Tests for Google Calendar adapter."""

from datetime import date
from unittest.mock import MagicMock

import pytest
import requests

from dayview.adapters.google_calendar import API_BASE, GoogleCalendarAdapter
from dayview.errors import AuthError, NetworkError, ServerError

CLASSES = "classes@group.calendar.google.com"
PRIMARY_URL = f"{API_BASE}/calendars/primary/events"
CLASSES_URL = f"{API_BASE}/calendars/classes%40group.calendar.google.com/events"


def event_item(event_id: str, day: int = 18, **extra) -> dict:
    item = {
        "id": event_id,
        "summary": event_id.title(),
        "start": {"dateTime": f"2026-01-{day:02d}T09:00:00-05:00"},
        "end": {"dateTime": f"2026-01-{day:02d}T10:30:00-05:00"},
    }
    item.update(extra)
    return item


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def adapter(session):
    return GoogleCalendarAdapter(
        class_calendar_ids=[CLASSES],
        timezone="America/Toronto",
        session=session,
    )


def route(responses: dict):
    """Map request URLs to fake responses."""
    def _request(method, url, **kwargs):
        result = responses[url]
        if isinstance(result, Exception):
            raise result
        return result
    return _request


class TestCalendarIds:
    def test_primary_first(self, adapter):
        assert adapter.calendar_ids() == ["primary", CLASSES]

    def test_duplicates_removed(self, session):
        adapter = GoogleCalendarAdapter(class_calendar_ids=["primary", CLASSES, CLASSES], session=session)
        assert adapter.calendar_ids() == ["primary", CLASSES]


class TestFetchCalendarEvents:
    def test_merges_collections(self, adapter, session, make_response):
        session.request.side_effect = route(
            {
                PRIMARY_URL: make_response(200, {"items": [event_item("dentist")]}),
                CLASSES_URL: make_response(200, {"items": [event_item("lecture"), event_item("lab", 19)]}),
            }
        )

        events = adapter.fetch_calendar_events("at", date(2026, 1, 18), date(2026, 1, 31))

        assert [e.id for e in events] == ["dentist", "lecture", "lab"]
        assert [e.source_collection_id for e in events] == ["primary", CLASSES, CLASSES]

    def test_query_parameters(self, adapter, session, make_response):
        session.request.return_value = make_response(200, {"items": []})

        adapter.fetch_calendar_events("at", date(2026, 1, 18), date(2026, 1, 31))

        method, url = session.request.call_args_list[0].args
        kwargs = session.request.call_args_list[0].kwargs
        assert method == "GET"
        assert url == PRIMARY_URL
        assert kwargs["headers"] == {"Authorization": "Bearer at"}
        assert kwargs["params"] == {
            "timeMin": "2026-01-18T00:00:00-05:00",
            "timeMax": "2026-02-01T00:00:00-05:00",
            "singleEvents": "true",
            "orderBy": "startTime",
            "timeZone": "America/Toronto",
        }

    def test_one_forbidden_collection_is_skipped(self, adapter, session, make_response):
        session.request.side_effect = route(
            {
                PRIMARY_URL: make_response(403, {"error": {"message": "Forbidden"}}),
                CLASSES_URL: make_response(
                    200, {"items": [event_item("a"), event_item("b"), event_item("c")]}
                ),
            }
        )

        events = adapter.fetch_calendar_events("at", date(2026, 1, 18), date(2026, 1, 31))

        assert [e.id for e in events] == ["a", "b", "c"]

    def test_non_json_collection_is_skipped(self, adapter, session, make_response):
        session.request.side_effect = route(
            {
                PRIMARY_URL: make_response(200, text="<html>Sign in to continue</html>"),
                CLASSES_URL: make_response(200, {"items": [event_item("lecture")]}),
            }
        )

        events = adapter.fetch_calendar_events("at", date(2026, 1, 18), date(2026, 1, 31))

        assert [e.id for e in events] == ["lecture"]

    def test_all_failed_raises_auth_error_first(self, adapter, session, make_response):
        session.request.side_effect = route(
            {
                PRIMARY_URL: make_response(503, {"error": "unavailable"}),
                CLASSES_URL: make_response(401, {"error": "unauthorized"}),
            }
        )

        with pytest.raises(AuthError) as exc_info:
            adapter.fetch_calendar_events("at", date(2026, 1, 18), date(2026, 1, 31))
        assert exc_info.value.status == 401

    def test_all_failed_server_error(self, adapter, session, make_response):
        session.request.return_value = make_response(500, {"error": "boom"})
        with pytest.raises(ServerError):
            adapter.fetch_calendar_events("at", date(2026, 1, 18), date(2026, 1, 31))

    def test_transport_failure_is_network_error(self, adapter, session):
        session.request.side_effect = requests.ConnectionError("offline")
        with pytest.raises(NetworkError):
            adapter.fetch_calendar_events("at", date(2026, 1, 18), date(2026, 1, 31))

    def test_follows_pages(self, adapter, session, make_response):
        pages = [
            make_response(200, {"items": [event_item("one")], "nextPageToken": "p2"}),
            make_response(200, {"items": [event_item("two")]}),
            make_response(200, {"items": []}),
        ]
        session.request.side_effect = pages

        events = adapter.fetch_calendar_events("at", date(2026, 1, 18), date(2026, 1, 31))

        assert [e.id for e in events] == ["one", "two"]
        second_params = session.request.call_args_list[1].kwargs["params"]
        assert second_params["pageToken"] == "p2"

    def test_cancelled_and_startless_items_skipped(self, adapter, session, make_response):
        session.request.side_effect = route(
            {
                PRIMARY_URL: make_response(
                    200,
                    {
                        "items": [
                            event_item("kept"),
                            event_item("cancelled", status="cancelled"),
                            {"id": "no-start", "summary": "Broken"},
                        ]
                    },
                ),
                CLASSES_URL: make_response(200, {"items": []}),
            }
        )

        events = adapter.fetch_calendar_events("at", date(2026, 1, 18), date(2026, 1, 31))

        assert [e.id for e in events] == ["kept"]
