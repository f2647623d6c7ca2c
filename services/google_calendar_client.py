"""Google Calendar API client used for conflict reads and event sync."""

import asyncio
import time as monotonic_clock
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import structlog

from models.entities import CalendarEvent, InterviewBooking, ParticipantIdentity, TimeInterval
from services.errors import CalendarNotConfiguredError, CalendarSyncError
from services.settings import SchedulingSettings

log = structlog.get_logger()


class GoogleCalendarClient:
    """
    Client for the Google Calendar v3 REST API.

    Constructed explicitly and shared by every conflict check; ``init()`` and
    ``close()`` are called by the process entry point. When no refresh token is
    configured, reads return no events and writes raise
    ``CalendarNotConfiguredError``.
    """

    def __init__(
        self,
        settings: SchedulingSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            settings: Scheduling settings carrying the Google OAuth credentials
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
        """
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return self.settings.calendar_configured

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    async def init(self):
        """Open the shared HTTP client if credentials are present."""
        if not self.is_configured:
            log.warning("calendar_client_not_configured")
            return
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.google_calendar_base_url,
                timeout=self.settings.google_calendar_timeout_seconds,
                transport=self._transport,
            )
            log.info("calendar_client_initialized")

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self._access_token = None

    async def _get_access_token(self) -> str:
        """Exchange the refresh token for an access token, cached until shortly before expiry."""
        async with self._token_lock:
            if self._access_token and monotonic_clock.monotonic() < self._token_expires_at:
                return self._access_token

            response = await self._client.post(
                self.settings.google_token_url,
                data={
                    "client_id": self.settings.google_client_id,
                    "client_secret": self.settings.google_client_secret or "",
                    "refresh_token": self.settings.google_refresh_token,
                    "grant_type": "refresh_token",
                },
            )
            response.raise_for_status()
            payload = response.json()
            self._access_token = payload["access_token"]
            # Refresh a minute early
            self._token_expires_at = monotonic_clock.monotonic() + int(payload.get("expires_in", 3600)) - 60
            return self._access_token

    async def _get_headers(self) -> Dict[str, str]:
        token = await self._get_access_token()
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}"
        }

    def _require_client(self) -> httpx.AsyncClient:
        if not self.is_configured:
            raise CalendarNotConfiguredError("Google Calendar credentials are not configured")
        if self._client is None:
            raise CalendarNotConfiguredError("Google Calendar client has not been initialized")
        return self._client

    def _rfc3339(self, moment: datetime) -> str:
        if moment.tzinfo is None:
            moment = self.settings.tz.localize(moment)
        return moment.isoformat()

    def _parse_event_time(self, value: Dict[str, Any]) -> datetime:
        """Parse an event start/end, handling all-day ``date`` values."""
        if value.get("dateTime"):
            return datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
        day = date.fromisoformat(value["date"])
        return self.settings.tz.localize(datetime.combine(day, time.min))

    def _parse_event(self, item: Dict[str, Any]) -> Optional[CalendarEvent]:
        if not item.get("start") or not item.get("end"):
            return None
        return CalendarEvent(
            id=item.get("id", ""),
            title=item.get("summary") or "Busy",
            start=self._parse_event_time(item["start"]),
            end=self._parse_event_time(item["end"]),
            transparency=item.get("transparency", "opaque"),
            attendee_responses={
                attendee["email"].lower(): attendee.get("responseStatus", "needsAction")
                for attendee in item.get("attendees", [])
                if attendee.get("email")
            },
            booking_id=item.get("extendedProperties", {}).get("private", {}).get("bookingId") or None,
        )

    async def list_events(self, participant: ParticipantIdentity, window: TimeInterval) -> list[CalendarEvent]:
        """
        List events on a participant's calendar overlapping a window.

        Returns an empty list when the calendar is not configured. A
        configured client that is not initialized raises
        ``CalendarNotConfiguredError``; that error and HTTP failures propagate
        so the caller can record a degraded check.
        """
        if not self.is_configured:
            return []
        client = self._require_client()

        response = await client.get(
            f"/calendars/{quote(participant, safe='')}/events",
            params={
                "timeMin": self._rfc3339(window.start),
                "timeMax": self._rfc3339(window.end),
                "singleEvents": "true",
                "orderBy": "startTime",
            },
            headers=await self._get_headers(),
        )
        response.raise_for_status()

        events = []
        for item in response.json().get("items", []):
            event = self._parse_event(item)
            if event:
                events.append(event)
        return events

    def _event_body(self, booking: InterviewBooking) -> Dict[str, Any]:
        """Build the Google event resource for a booking."""
        end = booking.start + timedelta(minutes=booking.duration_minutes)
        description_lines = [
            "Interview Details:",
            f"- Subject: {booking.subject_title}",
            f"- Type: {booking.interview_type}",
            f"- Duration: {booking.duration_minutes} minutes",
        ]
        if booking.meeting_link:
            description_lines.append(f"- Meeting Link: {booking.meeting_link}")
        if booking.location and booking.interview_type == "IN_PERSON":
            description_lines.append(f"- Location: {booking.location}")
        if booking.notes:
            description_lines.extend(["", "Notes:", booking.notes])

        body: Dict[str, Any] = {
            "summary": f"Interview: {booking.subject_title}",
            "description": "\n".join(description_lines),
            "start": {"dateTime": self._rfc3339(booking.start), "timeZone": self.settings.timezone},
            "end": {"dateTime": self._rfc3339(end), "timeZone": self.settings.timezone},
            "attendees": [{"email": email} for email in booking.participants],
            "extendedProperties": {"private": {"bookingId": booking.id or ""}},
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": "email", "minutes": 24 * 60},
                    {"method": "email", "minutes": 60},
                    {"method": "popup", "minutes": 15},
                ],
            },
        }
        location = booking.location if booking.interview_type == "IN_PERSON" else booking.meeting_link
        if location:
            body["location"] = location
        if booking.interview_type == "VIDEO" and not booking.meeting_link:
            body["conferenceData"] = {
                "createRequest": {
                    "requestId": f"interview-{booking.id}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            }
        return body

    def _calendar_for(self, booking: InterviewBooking) -> str:
        owner = booking.interviewer or (booking.participants[0] if booking.participants else "primary")
        return quote(owner, safe="")

    async def create_event(self, booking: InterviewBooking) -> str:
        """Create the booking's event in the interviewer's calendar and return its id."""
        client = self._require_client()
        try:
            response = await client.post(
                f"/calendars/{self._calendar_for(booking)}/events",
                params={"sendUpdates": "all", "conferenceDataVersion": "1"},
                json=self._event_body(booking),
                headers=await self._get_headers(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CalendarSyncError(f"Failed to create calendar event for booking {booking.id}: {e}") from e

        event_id = response.json()["id"]
        log.info("calendar_event_created", booking_id=booking.id, event_id=event_id)
        return event_id

    async def update_event(self, event_id: str, booking: InterviewBooking) -> None:
        """Move an existing event to the booking's current time and location."""
        client = self._require_client()
        body = self._event_body(booking)
        patch = {key: body[key] for key in ("start", "end", "location") if key in body}
        try:
            response = await client.patch(
                f"/calendars/{self._calendar_for(booking)}/events/{quote(event_id, safe='')}",
                params={"sendUpdates": "all"},
                json=patch,
                headers=await self._get_headers(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CalendarSyncError(f"Failed to update calendar event {event_id}: {e}") from e
        log.info("calendar_event_updated", booking_id=booking.id, event_id=event_id)

    async def delete_event(self, event_id: str, calendar_id: str = "primary") -> None:
        """Delete an event. An event that is already gone counts as deleted."""
        client = self._require_client()
        try:
            response = await client.delete(
                f"/calendars/{quote(calendar_id, safe='')}/events/{quote(event_id, safe='')}",
                params={"sendUpdates": "all"},
                headers=await self._get_headers(),
            )
            if response.status_code in (404, 410):
                log.info("calendar_event_already_deleted", event_id=event_id)
                return
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CalendarSyncError(f"Failed to delete calendar event {event_id}: {e}") from e
        log.info("calendar_event_deleted", event_id=event_id)
