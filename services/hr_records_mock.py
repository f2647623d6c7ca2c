"""Mock HR record store with synthetic data."""

import itertools
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from typing import Literal, Optional

from models.entities import InterviewBooking, LeaveRecord, ParticipantIdentity


@dataclass
class StaffMember:
    """An employee known to the HR system."""
    email: str
    name: str
    role: Literal["ADMIN", "HR_ADMIN", "MANAGER", "EMPLOYEE"]


ADMIN_ROLES = ("ADMIN", "HR_ADMIN")


class HRRecordsMock:
    """In-memory leave, booking and staff records."""

    def __init__(
        self,
        staff: Optional[list[StaffMember]] = None,
        leave: Optional[list[LeaveRecord]] = None,
        bookings: Optional[list[InterviewBooking]] = None,
    ):
        """Initialize with the given records, or synthetic data when none are passed."""
        synthetic = staff is None and leave is None and bookings is None
        self._staff = staff if staff is not None else self._generate_staff()
        self._leave = leave if leave is not None else (self._generate_leave() if synthetic else [])
        self._bookings: dict[str, InterviewBooking] = {}
        self._ids = itertools.count(1)
        for booking in bookings or []:
            booking_id = booking.id or self._next_id()
            self._bookings[booking_id] = replace(booking, id=booking_id)

    def _next_id(self) -> str:
        return f"int_{next(self._ids):03d}"

    def _generate_staff(self) -> list[StaffMember]:
        """Generate synthetic staff."""
        return [
            StaffMember(email="vikram.singh@example.com", name="Vikram Singh", role="MANAGER"),
            StaffMember(email="david.thompson@example.com", name="David Thompson", role="MANAGER"),
            StaffMember(email="lisa.anderson@example.com", name="Lisa Anderson", role="HR_ADMIN"),
            StaffMember(email="anjali.mehta@example.com", name="Anjali Mehta", role="EMPLOYEE"),
            StaffMember(email="hr@example.com", name="HR Team", role="ADMIN"),
        ]

    def _generate_leave(self) -> list[LeaveRecord]:
        """Generate synthetic leave starting a few days out."""
        today = date.today()
        return [
            LeaveRecord(
                employee="vikram.singh@example.com",
                start=datetime.combine(today + timedelta(days=3), time(9, 0)),
                end=datetime.combine(today + timedelta(days=3), time(17, 0)),
                status="APPROVED",
                employee_name="Vikram Singh",
            ),
            LeaveRecord(
                employee="david.thompson@example.com",
                start=datetime.combine(today + timedelta(days=5), time.min),
                end=datetime.combine(today + timedelta(days=7), time.min),
                status="PENDING",
                employee_name="David Thompson",
            ),
        ]

    # Leave

    async def get_approved_leave(self, participant: ParticipantIdentity) -> list[LeaveRecord]:
        """Approved leave for a participant."""
        return [
            record for record in self._leave
            if record.employee.lower() == participant.lower() and record.status == "APPROVED"
        ]

    def add_leave(self, record: LeaveRecord):
        self._leave.append(record)

    # Bookings

    async def get_active_bookings_for(self, participant: ParticipantIdentity) -> list[InterviewBooking]:
        """Scheduled bookings where the participant is a party."""
        participant = participant.lower()
        return [
            booking for booking in self._bookings.values()
            if booking.status == "SCHEDULED"
            and participant in (p.lower() for p in booking.participants)
        ]

    async def get_booking(self, booking_id: str) -> Optional[InterviewBooking]:
        return self._bookings.get(booking_id)

    async def save_booking(self, booking: InterviewBooking) -> InterviewBooking:
        saved = replace(booking, id=booking.id or self._next_id())
        self._bookings[saved.id] = saved
        return saved

    async def update_booking(self, booking: InterviewBooking) -> InterviewBooking:
        if booking.id not in self._bookings:
            raise KeyError(booking.id)
        self._bookings[booking.id] = booking
        return booking

    def list_bookings(self) -> list[InterviewBooking]:
        return list(self._bookings.values())

    # Staff directory

    async def list_admin_emails(self) -> list[str]:
        return [member.email for member in self._staff if member.role in ADMIN_ROLES and member.email]

    async def display_name(self, participant: ParticipantIdentity) -> Optional[str]:
        for member in self._staff:
            if member.email.lower() == participant.lower():
                return member.name
        return None
