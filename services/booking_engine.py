"""Booking decision engine: the only component with side effects."""

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

import structlog

from models.entities import (
    BookingContext,
    BookingDecision,
    BookingRequest,
    CancellationResult,
    Conflict,
    ConflictReport,
    InterviewBooking,
    ParticipantIdentity,
    TimeInterval,
)
from services.conflict_aggregator import ConflictAggregator, normalize_participants
from services.conflict_notifier import ConflictNotifier
from services.errors import BookingNotFoundError, InvalidBookingError
from services.hr_store import BookingStore, CalendarSync
from services.time_intervals import validate_interval

log = structlog.get_logger()

CALENDAR_SYNC_WARNING = "Interview was booked but the calendar event could not be {action}: {error}"
NOTIFICATION_WARNING = "Interview conflict alerts could not be sent: {error}"


class BookingDecisionEngine:
    """
    Decides whether a proposed interview can be booked.

    Transitions per attempt:
        hard conflicts, no override  -> REJECTED_PENDING_CONFIRMATION (nothing persisted or synced)
        hard conflicts, override     -> ACCEPTED_WITH_OVERRIDE (persist, sync, forced alerts)
        no hard conflicts            -> ACCEPTED (persist, sync, informational alerts for soft conflicts)

    Persistence failures propagate. Calendar sync and notification failures
    are logged and returned as advisories; they never undo a booking.
    """

    def __init__(
        self,
        aggregator: ConflictAggregator,
        booking_store: BookingStore,
        notifier: ConflictNotifier,
        calendar_sync: Optional[CalendarSync] = None
    ):
        self.aggregator = aggregator
        self.booking_store = booking_store
        self.notifier = notifier
        self.calendar_sync = calendar_sync

    async def check_conflicts(
        self,
        participants: Iterable[ParticipantIdentity],
        proposed: TimeInterval,
        exclude_id: Optional[str] = None
    ) -> ConflictReport:
        """Conflict report for a proposed interval, without booking anything."""
        return await self.aggregator.check_conflicts(participants, proposed, exclude_id)

    def _validate(self, request: BookingRequest):
        if not normalize_participants(request.participants):
            raise InvalidBookingError("At least one participant is required")
        validate_interval(request.proposed)

    async def decide(self, request: BookingRequest, acting_user: Optional[str] = None) -> BookingDecision:
        """
        Run the conflict check for a new booking and act on the result.

        Args:
            request: Booking request
            acting_user: Identity of the already-authorized caller, used only in alert content

        Returns:
            BookingDecision carrying the conflict report and, when accepted, the stored booking
        """
        self._validate(request)
        report = await self.aggregator.check_conflicts(
            request.participants,
            request.proposed,
            request.exclude_id
        )
        hard = report.hard_conflicts
        context = BookingContext.from_request(request)

        if hard and not request.force_override:
            return await self._reject(report, context, acting_user)

        booking = await self.booking_store.save_booking(InterviewBooking(
            id=None,
            participants=tuple(normalize_participants(request.participants)),
            start=request.proposed.start,
            duration_minutes=request.proposed.duration_minutes,
            subject_title=request.subject,
            interviewer=request.interviewer,
            candidate=request.candidate,
            interview_type=request.interview_type,
            location=request.location,
            meeting_link=request.meeting_link,
            notes=request.notes,
            scheduled_with_conflicts=bool(hard),
        ))
        log.info("interview_booked", booking_id=booking.id, override=bool(hard))

        advisories: list[str] = []
        booking = await self._create_calendar_event(booking, advisories)
        return await self._accept(report, replace(context, booking_id=booking.id), booking, advisories, acting_user)

    async def reschedule(
        self,
        booking_id: str,
        start: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
        location: Optional[str] = None,
        meeting_link: Optional[str] = None,
        force_override: bool = False,
        acting_user: Optional[str] = None
    ) -> BookingDecision:
        """
        Change an existing booking's time, duration, location or link.

        The new interval is re-checked (ignoring the booking itself) before
        anything is committed; a synced calendar event is moved afterwards.
        """
        existing = await self._get_scheduled(booking_id)
        if duration_minutes is not None and duration_minutes <= 0:
            raise InvalidBookingError("Duration must be positive")

        updated = replace(
            existing,
            start=start or existing.start,
            duration_minutes=duration_minutes or existing.duration_minutes,
            location=location if location is not None else existing.location,
            meeting_link=meeting_link if meeting_link is not None else existing.meeting_link,
        )
        request = BookingRequest(
            participants=existing.participants,
            proposed=updated.interval,
            force_override=force_override,
            interviewer=existing.interviewer,
            candidate=existing.candidate,
            subject=existing.subject_title,
            interview_type=existing.interview_type,
            location=updated.location,
            meeting_link=updated.meeting_link,
            notes=existing.notes,
            exclude_id=existing.id,
        )
        self._validate(request)
        report = await self.aggregator.check_conflicts(request.participants, request.proposed, existing.id)
        hard = report.hard_conflicts
        context = BookingContext.from_request(request, booking_id=existing.id)

        if hard and not force_override:
            decision = await self._reject(report, context, acting_user)
            decision.booking = existing
            return decision

        booking = await self.booking_store.update_booking(replace(updated, scheduled_with_conflicts=bool(hard)))
        log.info("interview_rescheduled", booking_id=booking.id, override=bool(hard))

        advisories: list[str] = []
        if booking.calendar_event_id and self.calendar_sync is not None:
            try:
                await self.calendar_sync.update_event(booking.calendar_event_id, booking)
            except Exception as e:
                log.error("calendar_event_update_failed", booking_id=booking.id, error=str(e))
                advisories.append(CALENDAR_SYNC_WARNING.format(action="updated", error=e))

        return await self._accept(report, context, booking, advisories, acting_user)

    async def cancel(self, booking_id: str, status: str = "CANCELLED") -> CancellationResult:
        """Cancel (or mark no-show) a booking and delete its synced calendar event."""
        if status not in ("CANCELLED", "NO_SHOW"):
            raise InvalidBookingError(f"Cannot cancel a booking with status {status}")
        existing = await self._get_scheduled(booking_id)

        booking = await self.booking_store.update_booking(replace(existing, status=status))
        log.info("interview_cancelled", booking_id=booking.id, status=status)

        advisories = []
        if existing.calendar_event_id and self.calendar_sync is not None:
            try:
                await self.calendar_sync.delete_event(
                    existing.calendar_event_id,
                    calendar_id=existing.interviewer or "primary"
                )
            except Exception as e:
                log.error("calendar_event_delete_failed", booking_id=booking.id, error=str(e))
                advisories.append(f"Calendar event could not be deleted: {e}")
        return CancellationResult(booking=booking, advisories=advisories)

    async def send_reminder(self, booking_id: str, hours_before: int = 24) -> bool:
        """Remind the interviewer of an upcoming booking that was scheduled with conflicts."""
        booking = await self.booking_store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        if not booking.scheduled_with_conflicts:
            return False
        return await self.notifier.send_conflict_reminder(booking, hours_before)

    async def _get_scheduled(self, booking_id: str) -> InterviewBooking:
        booking = await self.booking_store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        if booking.status != "SCHEDULED":
            raise InvalidBookingError(f"Booking {booking_id} is {booking.status}, not SCHEDULED")
        return booking

    async def _reject(
        self,
        report: ConflictReport,
        context: BookingContext,
        acting_user: Optional[str]
    ) -> BookingDecision:
        log.info("interview_rejected_pending_confirmation", hard_conflicts=len(report.hard_conflicts))
        advisories: list[str] = []
        await self._notify(report.hard_conflicts, context, False, acting_user, advisories)
        return BookingDecision(
            outcome="REJECTED_PENDING_CONFIRMATION",
            report=report,
            advisories=advisories
        )

    async def _accept(
        self,
        report: ConflictReport,
        context: BookingContext,
        booking: InterviewBooking,
        advisories: list[str],
        acting_user: Optional[str]
    ) -> BookingDecision:
        if report.hard_conflicts:
            await self._notify(report.conflicts, context, True, acting_user, advisories)
            outcome = "ACCEPTED_WITH_OVERRIDE"
        else:
            if report.soft_conflicts:
                await self._notify(report.soft_conflicts, context, False, acting_user, advisories)
            outcome = "ACCEPTED"
        return BookingDecision(outcome=outcome, report=report, booking=booking, advisories=advisories)

    async def _create_calendar_event(self, booking: InterviewBooking, advisories: list[str]) -> InterviewBooking:
        """Best-effort calendar sync for a freshly stored booking."""
        if self.calendar_sync is None:
            return booking
        try:
            event_id = await self.calendar_sync.create_event(booking)
        except Exception as e:
            log.error("calendar_event_create_failed", booking_id=booking.id, error=str(e))
            advisories.append(CALENDAR_SYNC_WARNING.format(action="created", error=e))
            return booking
        return await self.booking_store.update_booking(replace(booking, calendar_event_id=event_id))

    async def _notify(
        self,
        conflicts: list[Conflict],
        context: BookingContext,
        forced: bool,
        acting_user: Optional[str],
        advisories: list[str]
    ):
        try:
            await self.notifier.notify(conflicts, context, forced, acting_user)
        except Exception as e:
            log.error("conflict_notification_failed", booking_id=context.booking_id, error=str(e))
            advisories.append(NOTIFICATION_WARNING.format(error=e))
