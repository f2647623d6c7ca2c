"""Domain models for the interview conflict engine."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal, Optional

# Email-equivalent contact identifier used as the join key across all sources.
ParticipantIdentity = str

ConflictSourceType = Literal["LEAVE", "INTERNAL_BOOKING", "EXTERNAL_CALENDAR"]
Severity = Literal["HARD", "SOFT"]
DecisionOutcome = Literal["ACCEPTED", "REJECTED_PENDING_CONFIRMATION", "ACCEPTED_WITH_OVERRIDE"]
BookingStatus = Literal["SCHEDULED", "CANCELLED", "NO_SHOW", "COMPLETED"]
InterviewType = Literal["PHONE", "VIDEO", "IN_PERSON"]


@dataclass(frozen=True)
class TimeInterval:
    """Half-open interval [start, end)."""
    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class Conflict:
    """A commitment that overlaps a proposed interval."""
    source_type: ConflictSourceType
    title: str
    interval: TimeInterval
    participants: frozenset[ParticipantIdentity]
    severity: Severity

    @property
    def dedup_key(self) -> tuple[str, datetime, datetime]:
        return (self.source_type, self.interval.start, self.interval.end)


@dataclass
class ConflictReport:
    """Result of a conflict check over a set of participants."""
    has_conflicts: bool
    conflicts: list[Conflict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggested_slots: list[TimeInterval] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)  # degradation subset of warnings

    @property
    def hard_conflicts(self) -> list[Conflict]:
        return [c for c in self.conflicts if c.severity == "HARD"]

    @property
    def soft_conflicts(self) -> list[Conflict]:
        return [c for c in self.conflicts if c.severity == "SOFT"]

    @property
    def advisories(self) -> list[str]:
        """Scheduling advisories, excluding degradation notices."""
        return [w for w in self.warnings if w not in self.notices]


@dataclass
class SourceResult:
    """Outcome of a single conflict source query for one participant."""
    ok: bool
    conflicts: list[Conflict] = field(default_factory=list)
    warning: Optional[str] = None


@dataclass(frozen=True)
class BookingRequest:
    """Immutable request to book (or rebook) an interview."""
    participants: tuple[ParticipantIdentity, ...]
    proposed: TimeInterval
    force_override: bool = False
    interviewer: Optional[ParticipantIdentity] = None
    candidate: Optional[ParticipantIdentity] = None
    subject: str = "Interview"
    interview_type: InterviewType = "VIDEO"
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    notes: Optional[str] = None
    exclude_id: Optional[str] = None  # own booking id when rescheduling

    @property
    def direct_parties(self) -> list[ParticipantIdentity]:
        """Participants hosting the interview (everyone but the candidate)."""
        return [p for p in self.participants if p != self.candidate]


@dataclass
class BookingDecision:
    """Outcome of a booking attempt."""
    outcome: DecisionOutcome
    report: ConflictReport
    booking: Optional["InterviewBooking"] = None
    advisories: list[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.outcome != "REJECTED_PENDING_CONFIRMATION"


@dataclass
class LeaveRecord:
    """Time-off record from the HR store."""
    employee: ParticipantIdentity
    start: datetime
    end: datetime
    status: Literal["APPROVED", "PENDING", "DENIED"] = "APPROVED"
    employee_name: Optional[str] = None


@dataclass
class InterviewBooking:
    """An interview booking as persisted by the HR store."""
    id: Optional[str]
    participants: tuple[ParticipantIdentity, ...]
    start: datetime
    duration_minutes: int
    subject_title: str
    interviewer: Optional[ParticipantIdentity] = None
    candidate: Optional[ParticipantIdentity] = None
    interview_type: InterviewType = "VIDEO"
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    notes: Optional[str] = None
    status: BookingStatus = "SCHEDULED"
    calendar_event_id: Optional[str] = None
    scheduled_with_conflicts: bool = False

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start, self.start + timedelta(minutes=self.duration_minutes))


@dataclass
class CalendarEvent:
    """An event read from a participant's external calendar feed."""
    id: str
    title: str
    start: datetime
    end: datetime
    transparency: Literal["opaque", "transparent"] = "opaque"
    attendee_responses: dict[str, str] = field(default_factory=dict)  # email -> responseStatus
    booking_id: Optional[str] = None  # set on events this engine created


@dataclass
class BookingContext:
    """What the notifier needs to know about the booking being alerted on."""
    participants: tuple[ParticipantIdentity, ...]
    proposed: TimeInterval
    subject: str
    interviewer: Optional[ParticipantIdentity] = None
    candidate: Optional[ParticipantIdentity] = None
    interview_type: Optional[str] = None
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    booking_id: Optional[str] = None

    @classmethod
    def from_request(cls, request: BookingRequest, booking_id: Optional[str] = None) -> "BookingContext":
        return cls(
            participants=request.participants,
            proposed=request.proposed,
            subject=request.subject,
            interviewer=request.interviewer,
            candidate=request.candidate,
            interview_type=request.interview_type,
            location=request.location,
            meeting_link=request.meeting_link,
            booking_id=booking_id,
        )

    @property
    def direct_parties(self) -> list[ParticipantIdentity]:
        return [p for p in self.participants if p != self.candidate]


@dataclass
class CancellationResult:
    """Outcome of cancelling (or marking no-show) a booking."""
    booking: InterviewBooking
    advisories: list[str] = field(default_factory=list)
