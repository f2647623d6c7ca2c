"""Interview conflict checker - command line entry point."""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import structlog
from dotenv import load_dotenv

from models.entities import BookingDecision, BookingRequest, ConflictReport, TimeInterval
from services.booking_engine import BookingDecisionEngine
from services.conflict_aggregator import ConflictAggregator
from services.conflict_notifier import ConflictNotifier, format_conflict_message
from services.conflict_sources import (
    ExternalCalendarConflictSource,
    InternalBookingConflictSource,
    LeaveConflictSource,
)
from services.email_service_mock import EmailServiceMock
from services.errors import SchedulingError
from services.google_calendar_client import GoogleCalendarClient
from services.hr_records_mock import HRRecordsMock
from services.settings import SchedulingSettings
from services.soft_conflicts import SoftConflictHeuristics

# ============================================================================
# SERVICE INITIALIZATION
# ============================================================================


@dataclass
class Services:
    """Everything the entry point wires together."""
    settings: SchedulingSettings
    records: HRRecordsMock
    calendar: GoogleCalendarClient
    email: EmailServiceMock
    aggregator: ConflictAggregator
    engine: BookingDecisionEngine


def configure_logging(verbose: bool = False):
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if verbose else logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def build_services(settings: SchedulingSettings, records: Optional[HRRecordsMock] = None) -> Services:
    """Wire sources, aggregator, notifier and engine around one shared calendar client."""
    records = records or HRRecordsMock()
    calendar = GoogleCalendarClient(settings)
    email = EmailServiceMock()
    tz = settings.tz

    aggregator = ConflictAggregator(
        sources=[
            LeaveConflictSource(records, tz),
            InternalBookingConflictSource(records, tz),
            ExternalCalendarConflictSource(calendar, tz),
        ],
        heuristics=SoftConflictHeuristics(tz),
        settings=settings,
    )
    notifier = ConflictNotifier(email, records, settings)
    engine = BookingDecisionEngine(aggregator, records, notifier, calendar_sync=calendar)
    return Services(settings, records, calendar, email, aggregator, engine)


# ============================================================================
# OUTPUT
# ============================================================================

def format_report(report: ConflictReport) -> str:
    lines = [f"Conflicts: {'yes' if report.has_conflicts else 'none'}"]
    for conflict in report.conflicts:
        lines.append(f"  [{conflict.severity}] {format_conflict_message(conflict)}")
    for warning in report.warnings:
        lines.append(f"  Warning: {warning}")
    if report.suggested_slots:
        lines.append("Suggested times:")
        for slot in report.suggested_slots:
            lines.append(f"  • {slot.start.strftime('%A, %B %d, %Y at %I:%M %p')}")
    return "\n".join(lines)


def format_decision(decision: BookingDecision) -> str:
    lines = [f"Decision: {decision.outcome}"]
    if decision.booking:
        lines.append(f"Booking: {decision.booking.id} (calendar event: {decision.booking.calendar_event_id or 'none'})")
    lines.append(format_report(decision.report))
    for advisory in decision.advisories:
        lines.append(f"Advisory: {advisory}")
    return "\n".join(lines)


# ============================================================================
# COMMANDS
# ============================================================================

def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="conflict-checker", description="Interview scheduling conflict checker")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("check", "Check a proposed time for conflicts"), ("book", "Book an interview")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--participant", "-p", action="append", required=True, help="Participant email (repeatable)")
        sub.add_argument("--start", required=True, type=datetime.fromisoformat, help="Start time, ISO format")
        sub.add_argument("--duration", type=int, default=60, help="Duration in minutes")
        if name == "book":
            sub.add_argument("--interviewer", help="Interviewer email")
            sub.add_argument("--candidate", help="Candidate email")
            sub.add_argument("--subject", default="Interview", help="Interview subject")
            sub.add_argument("--force", action="store_true", help="Book despite hard conflicts")
            sub.add_argument("--as-user", dest="acting_user", help="Email of the user scheduling")

    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    services = build_services(SchedulingSettings.from_env())
    await services.calendar.init()
    try:
        proposed = TimeInterval(args.start, args.start + timedelta(minutes=args.duration))
        if args.command == "check":
            report = await services.engine.check_conflicts(args.participant, proposed)
            print(format_report(report))
            return 1 if report.hard_conflicts else 0

        decision = await services.engine.decide(
            BookingRequest(
                participants=tuple(args.participant),
                proposed=proposed,
                force_override=args.force,
                interviewer=args.interviewer,
                candidate=args.candidate,
                subject=args.subject,
            ),
            acting_user=args.acting_user,
        )
        print(format_decision(decision))
        for email in services.email.get_sent_emails():
            print(f"Alert to {email['to']}: {email['subject']}")
        return 0 if decision.accepted else 1
    finally:
        await services.calendar.close()


def main(argv: Optional[list[str]] = None) -> int:
    # Load environment variables from .env file
    load_dotenv()
    args = parse_args(argv)
    configure_logging(args.verbose)
    try:
        return asyncio.run(run(args))
    except SchedulingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
