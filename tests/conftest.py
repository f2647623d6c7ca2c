import asyncio
from datetime import datetime
from typing import Optional

import pytest

from models.entities import CalendarEvent, InterviewBooking, LeaveRecord, TimeInterval
from services.booking_engine import BookingDecisionEngine
from services.conflict_aggregator import ConflictAggregator
from services.conflict_notifier import ConflictNotifier
from services.conflict_sources import (
    ExternalCalendarConflictSource,
    InternalBookingConflictSource,
    LeaveConflictSource,
)
from services.email_service_mock import EmailServiceMock
from services.hr_records_mock import HRRecordsMock, StaffMember
from services.settings import SchedulingSettings
from services.soft_conflicts import SoftConflictHeuristics
from services.time_intervals import overlaps

INTERVIEWER = "interviewer@example.com"
CANDIDATE = "candidate@example.com"
ADMIN = "admin@example.com"


class FakeCalendar:
    """ExternalCalendar + CalendarSync double."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.events: dict[str, list[CalendarEvent]] = {}
        self.failing: set[str] = set()
        self.delays: dict[str, float] = {}
        self.fail_writes = False
        self.created: list[InterviewBooking] = []
        self.updated: list[tuple[str, InterviewBooking]] = []
        self.deleted: list[tuple[str, str]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def add_event(self, participant: str, event: CalendarEvent):
        self.events.setdefault(participant.lower(), []).append(event)

    async def list_events(self, participant, window):
        if participant.lower() in self.delays:
            await asyncio.sleep(self.delays[participant.lower()])
        if participant.lower() in self.failing:
            raise ConnectionError("calendar feed unreachable")
        return [
            e for e in self.events.get(participant.lower(), [])
            if overlaps(window, TimeInterval(e.start, e.end))
        ]

    async def create_event(self, booking):
        if self.fail_writes:
            raise RuntimeError("calendar API down")
        self.created.append(booking)
        return f"evt_{len(self.created)}"

    async def update_event(self, event_id, booking):
        if self.fail_writes:
            raise RuntimeError("calendar API down")
        self.updated.append((event_id, booking))

    async def delete_event(self, event_id, calendar_id="primary"):
        if self.fail_writes:
            raise RuntimeError("calendar API down")
        self.deleted.append((event_id, calendar_id))


class FailingTransport:
    async def send(self, recipient, subject, body, from_user: Optional[str] = None):
        raise ConnectionError("smtp down")


@pytest.fixture
def settings() -> SchedulingSettings:
    return SchedulingSettings(timezone="America/New_York", source_timeout_seconds=0.5)


@pytest.fixture
def records() -> HRRecordsMock:
    return HRRecordsMock(
        staff=[
            StaffMember(email=INTERVIEWER, name="Ivy Interviewer", role="MANAGER"),
            StaffMember(email=ADMIN, name="Ada Admin", role="ADMIN"),
        ],
        leave=[],
        bookings=[],
    )


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def email() -> EmailServiceMock:
    return EmailServiceMock()


@pytest.fixture
def aggregator(records, calendar, settings) -> ConflictAggregator:
    tz = settings.tz
    return ConflictAggregator(
        sources=[
            LeaveConflictSource(records, tz),
            InternalBookingConflictSource(records, tz),
            ExternalCalendarConflictSource(calendar, tz),
        ],
        heuristics=SoftConflictHeuristics(tz),
        settings=settings,
    )


@pytest.fixture
def notifier(email, records, settings) -> ConflictNotifier:
    return ConflictNotifier(email, records, settings)


@pytest.fixture
def engine(aggregator, records, notifier, calendar) -> BookingDecisionEngine:
    return BookingDecisionEngine(aggregator, records, notifier, calendar_sync=calendar)


def interval(start: str, end: str) -> TimeInterval:
    return TimeInterval(datetime.fromisoformat(start), datetime.fromisoformat(end))


def leave(employee: str, start: str, end: str, status: str = "APPROVED") -> LeaveRecord:
    return LeaveRecord(
        employee=employee,
        start=datetime.fromisoformat(start),
        end=datetime.fromisoformat(end),
        status=status,
    )
