"""Conflict sources: leave, internal bookings and external calendars."""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import structlog

from models.entities import (
    Conflict,
    ConflictSourceType,
    ParticipantIdentity,
    SourceResult,
    TimeInterval,
)
from services.hr_store import BookingStore, ExternalCalendar, LeaveStore
from services.time_intervals import align_to, overlaps

log = structlog.get_logger()

DEGRADED_CHECK_WARNING = (
    "Unable to perform complete conflict check for {participant}. Please verify availability manually."
)


class ConflictSource(ABC):
    """A source of commitments that can block a proposed interval."""

    source_type: ConflictSourceType

    def __init__(self, tz):
        self.tz = tz

    @abstractmethod
    async def find_conflicts(
        self,
        participant: ParticipantIdentity,
        window: TimeInterval,
        exclude_id: Optional[str] = None
    ) -> list[Conflict]:
        """Commitments of ``participant`` overlapping ``window``."""

    async def check(
        self,
        participant: ParticipantIdentity,
        window: TimeInterval,
        exclude_id: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> SourceResult:
        """Run ``find_conflicts`` and fold any failure or timeout into the result."""
        try:
            conflicts = await asyncio.wait_for(
                self.find_conflicts(participant, window, exclude_id),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            log.warning("conflict_source_timeout", source=self.source_type, participant=participant, timeout=timeout)
            return SourceResult(ok=False, warning=DEGRADED_CHECK_WARNING.format(participant=participant))
        except Exception as e:
            log.error("conflict_source_failed", source=self.source_type, participant=participant, error=str(e))
            return SourceResult(ok=False, warning=DEGRADED_CHECK_WARNING.format(participant=participant))
        return SourceResult(ok=True, conflicts=conflicts)

    def _interval(self, start, end, window: TimeInterval) -> TimeInterval:
        return TimeInterval(align_to(start, window.start, self.tz), align_to(end, window.start, self.tz))


class LeaveConflictSource(ConflictSource):
    """Approved time off. Pending or denied leave never conflicts."""

    source_type = "LEAVE"

    def __init__(self, leave_store: LeaveStore, tz):
        super().__init__(tz)
        self.leave_store = leave_store

    async def find_conflicts(
        self,
        participant: ParticipantIdentity,
        window: TimeInterval,
        exclude_id: Optional[str] = None
    ) -> list[Conflict]:
        conflicts = []
        for record in await self.leave_store.get_approved_leave(participant):
            if record.status != "APPROVED":
                continue
            leave = self._interval(record.start, record.end, window)
            if overlaps(window, leave):
                conflicts.append(Conflict(
                    source_type="LEAVE",
                    title=f"{record.employee_name or participant} - Time Off",
                    interval=leave,
                    participants=frozenset([participant]),
                    severity="HARD"
                ))
        return conflicts


class InternalBookingConflictSource(ConflictSource):
    """Interviews already scheduled with the participant."""

    source_type = "INTERNAL_BOOKING"

    def __init__(self, booking_store: BookingStore, tz):
        super().__init__(tz)
        self.booking_store = booking_store

    async def find_conflicts(
        self,
        participant: ParticipantIdentity,
        window: TimeInterval,
        exclude_id: Optional[str] = None
    ) -> list[Conflict]:
        conflicts = []
        for booking in await self.booking_store.get_active_bookings_for(participant):
            if exclude_id and booking.id == exclude_id:
                continue
            existing = booking.interval
            existing = self._interval(existing.start, existing.end, window)
            if overlaps(window, existing):
                conflicts.append(Conflict(
                    source_type="INTERNAL_BOOKING",
                    title=f"Interview: {booking.subject_title}",
                    interval=existing,
                    participants=frozenset([participant]),
                    severity="HARD"
                ))
        return conflicts


class ExternalCalendarConflictSource(ConflictSource):
    """
    Events on the participant's external calendar.

    Free/transparent events and events the participant declined are ignored.
    Tentative acceptance makes the conflict SOFT. An unconfigured calendar is
    reported as a degraded check rather than an error.
    """

    source_type = "EXTERNAL_CALENDAR"

    def __init__(self, calendar: ExternalCalendar, tz):
        super().__init__(tz)
        self.calendar = calendar

    async def check(
        self,
        participant: ParticipantIdentity,
        window: TimeInterval,
        exclude_id: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> SourceResult:
        if not self.calendar.is_configured:
            return SourceResult(ok=False, warning=DEGRADED_CHECK_WARNING.format(participant=participant))
        return await super().check(participant, window, exclude_id, timeout)

    async def find_conflicts(
        self,
        participant: ParticipantIdentity,
        window: TimeInterval,
        exclude_id: Optional[str] = None
    ) -> list[Conflict]:
        conflicts = []
        for event in await self.calendar.list_events(participant, window):
            if exclude_id and exclude_id in (event.id, event.booking_id):
                continue
            if event.transparency == "transparent":
                continue

            response = event.attendee_responses.get(participant.lower())
            if response == "declined":
                continue

            busy = self._interval(event.start, event.end, window)
            if overlaps(window, busy):
                conflicts.append(Conflict(
                    source_type="EXTERNAL_CALENDAR",
                    title=event.title or "Busy",
                    interval=busy,
                    participants=frozenset([participant, *event.attendee_responses]),
                    severity="SOFT" if response == "tentative" else "HARD"
                ))
        return conflicts
