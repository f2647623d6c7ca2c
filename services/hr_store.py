"""Collaborator interfaces consumed by the conflict engine."""

from typing import Optional, Protocol

from models.entities import (
    CalendarEvent,
    InterviewBooking,
    LeaveRecord,
    ParticipantIdentity,
    TimeInterval,
)


class LeaveStore(Protocol):
    async def get_approved_leave(self, participant: ParticipantIdentity) -> list[LeaveRecord]:
        ...


class BookingStore(Protocol):
    async def get_active_bookings_for(self, participant: ParticipantIdentity) -> list[InterviewBooking]:
        ...

    async def get_booking(self, booking_id: str) -> Optional[InterviewBooking]:
        ...

    async def save_booking(self, booking: InterviewBooking) -> InterviewBooking:
        """Persist a new booking and return it with its id assigned."""
        ...

    async def update_booking(self, booking: InterviewBooking) -> InterviewBooking:
        ...


class StaffDirectory(Protocol):
    async def list_admin_emails(self) -> list[str]:
        ...

    async def display_name(self, participant: ParticipantIdentity) -> Optional[str]:
        ...


class ExternalCalendar(Protocol):
    """Read side of the external calendar. Returns [] when not configured."""

    @property
    def is_configured(self) -> bool:
        ...

    async def list_events(self, participant: ParticipantIdentity, window: TimeInterval) -> list[CalendarEvent]:
        ...


class CalendarSync(Protocol):
    """Write side of the external calendar."""

    async def create_event(self, booking: InterviewBooking) -> str:
        ...

    async def update_event(self, event_id: str, booking: InterviewBooking) -> None:
        ...

    async def delete_event(self, event_id: str, calendar_id: str = "primary") -> None:
        ...


class NotificationTransport(Protocol):
    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        from_user: Optional[str] = None,
    ) -> None:
        ...
