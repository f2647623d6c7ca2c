"""Tests for the Google Calendar client against a mock transport"""

import json
from datetime import datetime

import httpx
import pytest
import pytz

from models.entities import InterviewBooking
from services.errors import CalendarNotConfiguredError, CalendarSyncError
from services.google_calendar_client import GoogleCalendarClient
from services.settings import SchedulingSettings
from tests.conftest import CANDIDATE, INTERVIEWER, interval

NY = pytz.timezone("America/New_York")

CONFIGURED = SchedulingSettings(
    timezone="America/New_York",
    google_client_id="client-id",
    google_client_secret="secret",
    google_refresh_token="refresh-token",
)

BOOKING = InterviewBooking(
    id="int_001",
    participants=(INTERVIEWER, CANDIDATE),
    start=datetime(2025, 3, 11, 10),
    duration_minutes=45,
    subject_title="Platform Engineer",
    interviewer=INTERVIEWER,
    candidate=CANDIDATE,
)


class GoogleStub:
    """Records requests and answers like the token and calendar endpoints."""

    def __init__(self, events=None, status_codes=None):
        self.events = events or []
        self.status_codes = status_codes or {}
        self.requests: list[httpx.Request] = []

    def token_requests(self):
        return [r for r in self.requests if r.url.host == "oauth2.googleapis.com"]

    def api_requests(self):
        return [r for r in self.requests if r.url.host == "www.googleapis.com"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, json={"access_token": "token-abc", "expires_in": 3600})

        status = self.status_codes.get(request.method)
        if status:
            return httpx.Response(status, json={"error": {"code": status}})
        if request.method == "GET":
            return httpx.Response(200, json={"items": self.events})
        if request.method == "POST":
            return httpx.Response(200, json={"id": "evt_google_1"})
        if request.method == "PATCH":
            return httpx.Response(200, json={"id": "evt_google_1"})
        return httpx.Response(204)


async def make_client(stub, settings=CONFIGURED) -> GoogleCalendarClient:
    client = GoogleCalendarClient(settings, transport=httpx.MockTransport(stub))
    await client.init()
    return client


@pytest.mark.asyncio
async def test_list_events_parses_items():
    stub = GoogleStub(events=[
        {
            "id": "e1",
            "summary": "Design review",
            "start": {"dateTime": "2025-03-11T14:00:00Z"},
            "end": {"dateTime": "2025-03-11T15:00:00Z"},
            "attendees": [
                {"email": "Interviewer@Example.com", "responseStatus": "tentative"},
                {"email": "other@example.com"},
            ],
        },
        {
            "id": "e2",
            "start": {"date": "2025-03-11"},
            "end": {"date": "2025-03-12"},
            "transparency": "transparent",
            "extendedProperties": {"private": {"bookingId": "int_009"}},
        },
        {"id": "cancelled-without-times"},
    ])
    client = await make_client(stub)
    try:
        events = await client.list_events(INTERVIEWER, interval("2025-03-11T09:00", "2025-03-11T17:00"))
    finally:
        await client.close()

    assert [e.id for e in events] == ["e1", "e2"]
    review, all_day = events
    assert review.title == "Design review"
    assert review.start == pytz.UTC.localize(datetime(2025, 3, 11, 14))
    assert review.attendee_responses == {INTERVIEWER: "tentative", "other@example.com": "needsAction"}
    assert all_day.title == "Busy"
    assert all_day.transparency == "transparent"
    assert all_day.start == NY.localize(datetime(2025, 3, 11))
    assert all_day.booking_id == "int_009"

    request = stub.api_requests()[0]
    assert request.headers["Authorization"] == "Bearer token-abc"
    assert request.url.params["timeMin"] == "2025-03-11T09:00:00-04:00"
    assert request.url.params["singleEvents"] == "true"
    assert INTERVIEWER in request.url.path


@pytest.mark.asyncio
async def test_access_token_is_cached():
    stub = GoogleStub()
    client = await make_client(stub)
    try:
        window = interval("2025-03-11T09:00", "2025-03-11T10:00")
        await client.list_events(INTERVIEWER, window)
        await client.list_events(CANDIDATE, window)
    finally:
        await client.close()

    assert len(stub.token_requests()) == 1
    assert b"grant_type=refresh_token" in stub.token_requests()[0].content
    assert len(stub.api_requests()) == 2


@pytest.mark.asyncio
async def test_unconfigured_client_reads_nothing_and_refuses_writes():
    stub = GoogleStub()
    client = await make_client(stub, settings=SchedulingSettings())

    assert client.is_configured is False
    assert client.is_initialized is False
    assert await client.list_events(INTERVIEWER, interval("2025-03-11T09:00", "2025-03-11T10:00")) == []
    with pytest.raises(CalendarNotConfiguredError):
        await client.create_event(BOOKING)
    assert stub.requests == []


@pytest.mark.asyncio
async def test_writes_require_init():
    client = GoogleCalendarClient(CONFIGURED, transport=httpx.MockTransport(GoogleStub()))
    with pytest.raises(CalendarNotConfiguredError):
        await client.delete_event("evt_1")


@pytest.mark.asyncio
async def test_reads_require_init_when_configured():
    stub = GoogleStub()
    client = await make_client(stub)
    await client.close()

    with pytest.raises(CalendarNotConfiguredError):
        await client.list_events(INTERVIEWER, interval("2025-03-11T09:00", "2025-03-11T10:00"))
    assert stub.requests == []


@pytest.mark.asyncio
async def test_create_event_body():
    stub = GoogleStub()
    client = await make_client(stub)
    try:
        event_id = await client.create_event(BOOKING)
    finally:
        await client.close()

    assert event_id == "evt_google_1"
    request = stub.api_requests()[0]
    assert request.method == "POST"
    assert request.url.params["sendUpdates"] == "all"
    body = json.loads(request.content)
    assert body["summary"] == "Interview: Platform Engineer"
    assert body["start"] == {"dateTime": "2025-03-11T10:00:00-04:00", "timeZone": "America/New_York"}
    assert body["end"]["dateTime"] == "2025-03-11T10:45:00-04:00"
    assert body["attendees"] == [{"email": INTERVIEWER}, {"email": CANDIDATE}]
    assert body["extendedProperties"] == {"private": {"bookingId": "int_001"}}
    assert body["conferenceData"]["createRequest"]["conferenceSolutionKey"] == {"type": "hangoutsMeet"}


@pytest.mark.asyncio
async def test_update_event_patches_time_only():
    stub = GoogleStub()
    client = await make_client(stub)
    try:
        await client.update_event("evt_google_1", BOOKING)
    finally:
        await client.close()

    request = stub.api_requests()[0]
    assert request.method == "PATCH"
    assert set(json.loads(request.content)) == {"start", "end"}


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 410])
async def test_delete_of_missing_event_succeeds(status):
    client = await make_client(GoogleStub(status_codes={"DELETE": status}))
    try:
        await client.delete_event("evt_gone", calendar_id=INTERVIEWER)
    finally:
        await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("method, call", [
    ("POST", lambda c: c.create_event(BOOKING)),
    ("PATCH", lambda c: c.update_event("evt_1", BOOKING)),
    ("DELETE", lambda c: c.delete_event("evt_1")),
])
async def test_api_errors_become_sync_errors(method, call):
    client = await make_client(GoogleStub(status_codes={method: 500}))
    try:
        with pytest.raises(CalendarSyncError):
            await call(client)
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_list_errors_propagate_for_degraded_check():
    client = await make_client(GoogleStub(status_codes={"GET": 503}))
    try:
        with pytest.raises(httpx.HTTPStatusError):
            await client.list_events(INTERVIEWER, interval("2025-03-11T09:00", "2025-03-11T10:00"))
    finally:
        await client.close()
