"""Conflict alert fan-out to interviewers, admins and candidates."""

from typing import Iterable, Optional

import structlog

from models.entities import BookingContext, Conflict, InterviewBooking, ParticipantIdentity
from services.hr_store import NotificationTransport, StaffDirectory
from services.settings import SchedulingSettings
from services.time_intervals import to_local

log = structlog.get_logger()

SCHEDULED_TIME_FORMAT = "%A, %B %d, %Y at %I:%M %p"
CONFLICT_TIME_FORMAT = "%I:%M %p"


def format_conflict_message(conflict: Conflict) -> str:
    """One-line display message for a conflict."""
    start_str = conflict.interval.start.strftime("%b %d, %I:%M %p")
    end_str = conflict.interval.end.strftime("%I:%M %p")

    if conflict.source_type == "LEAVE":
        who = sorted(conflict.participants)[0] if conflict.participants else "Participant"
        return f"❌ {who} is on leave from {start_str} to {end_str}"
    if conflict.source_type == "INTERNAL_BOOKING":
        return f"❌ {conflict.title} scheduled from {start_str} to {end_str}"
    return f"⚠️ {conflict.title} scheduled from {start_str} to {end_str}"


def is_attributed_to(conflict: Conflict, participant: ParticipantIdentity) -> bool:
    return participant.lower() in {p.lower() for p in conflict.participants}


class ConflictNotifier:
    """Decides who hears about detected conflicts and hands rendered alerts to the transport."""

    def __init__(
        self,
        transport: NotificationTransport,
        directory: StaffDirectory,
        settings: SchedulingSettings
    ):
        self.transport = transport
        self.directory = directory
        self.settings = settings

    def render_conflict_summary(self, conflicts: Iterable[Conflict]) -> str:
        """Render conflicts grouped by severity; hard and soft lists are never merged."""
        conflicts = list(conflicts)
        if not conflicts:
            return "No conflicts detected."

        hard = [c for c in conflicts if c.severity == "HARD"]
        soft = [c for c in conflicts if c.severity == "SOFT"]
        lines = []

        if hard:
            lines.append("Hard Conflicts (Must Resolve):")
            lines.extend(self._conflict_line(c) for c in hard)
        if soft:
            if lines:
                lines.append("")
            lines.append("Soft Conflicts (Warnings):")
            lines.extend(self._conflict_line(c) for c in soft)

        return "\n".join(lines)

    def _conflict_line(self, conflict: Conflict) -> str:
        start = to_local(conflict.interval.start, self.settings.tz).strftime(CONFLICT_TIME_FORMAT)
        end = to_local(conflict.interval.end, self.settings.tz).strftime(CONFLICT_TIME_FORMAT)
        return f"• {conflict.source_type}: {conflict.title} ({start} - {end})"

    def _scheduled_time(self, context: BookingContext) -> str:
        return to_local(context.proposed.start, self.settings.tz).strftime(SCHEDULED_TIME_FORMAT)

    async def _name(self, participant: Optional[ParticipantIdentity]) -> str:
        if not participant:
            return "Not assigned"
        return await self.directory.display_name(participant) or participant

    async def _send(self, recipient: str, subject: str, body: str, from_user: Optional[str]) -> bool:
        """Deliver one alert. Transport failures are logged, never raised."""
        try:
            await self.transport.send(recipient, subject, body, from_user=from_user)
        except Exception as e:
            log.error("conflict_alert_failed", recipient=recipient, subject=subject, error=str(e))
            return False
        return True

    async def notify(
        self,
        conflicts: list[Conflict],
        context: BookingContext,
        forced: bool,
        acting_user: Optional[str] = None
    ) -> list[str]:
        """
        Send conflict alerts for a booking attempt.

        Args:
            conflicts: Conflicts to report
            context: Booking the conflicts were found for
            forced: True when the booking proceeded despite hard conflicts
            acting_user: Already-authorized identity of whoever scheduled it

        Returns:
            Recipients whose alert was handed to the transport
        """
        if not conflicts:
            return []

        delivered = []
        summary = self.render_conflict_summary(conflicts)
        scheduled_time = self._scheduled_time(context)
        direct_parties = {p.lower() for p in context.direct_parties}

        for party in context.direct_parties:
            if not any(is_attributed_to(c, party) for c in conflicts):
                continue
            subject, body = await self._interviewer_alert(party, context, scheduled_time, summary, forced, acting_user)
            if await self._send(party, subject, body, acting_user):
                delivered.append(party)

        try:
            admins = list(dict.fromkeys(await self.directory.list_admin_emails()))
        except Exception as e:
            log.error("admin_lookup_failed", error=str(e))
            admins = []
        if admins:
            subject, body = await self._admin_alert(context, scheduled_time, summary, forced, acting_user)
            for admin in admins:
                if await self._send(admin, subject, body, acting_user):
                    delivered.append(admin)

        if forced:
            for participant in context.participants:
                if participant.lower() in direct_parties:
                    continue
                own_conflicts = [c for c in conflicts if is_attributed_to(c, participant)]
                if not own_conflicts:
                    continue
                subject, body = await self._courtesy_notice(
                    participant,
                    context,
                    scheduled_time,
                    self.render_conflict_summary(own_conflicts)
                )
                if await self._send(participant, subject, body, acting_user):
                    delivered.append(participant)

        log.info(
            "conflict_alerts_sent",
            booking_id=context.booking_id,
            forced=forced,
            recipients=len(delivered)
        )
        return delivered

    async def _interviewer_alert(
        self,
        party: ParticipantIdentity,
        context: BookingContext,
        scheduled_time: str,
        summary: str,
        forced: bool,
        acting_user: Optional[str]
    ) -> tuple[str, str]:
        """Alert for a direct party with conflicts of their own."""
        if forced:
            subject = f"⚠️ Interview Scheduled Despite Conflicts - {context.subject}"
            status = "✅ Scheduled despite conflicts"
            closing = (
                "The interview has been scheduled as requested.\n"
                "Please review the conflicts above and make any necessary adjustments to your schedule."
            )
        else:
            subject = f"⚠️ Interview Conflict Alert - {context.subject}"
            status = "⚠️ Requires attention"
            closing = (
                "Action Required: Please review these conflicts and either:\n"
                "• Choose an alternative time slot\n"
                "• Confirm if you want to proceed despite the conflicts"
            )

        lines = [
            f"Dear {await self._name(party)},",
            "",
            "Calendar conflicts were detected for the following interview:",
            "",
            "Interview Details:",
            f"• Subject: {context.subject}",
            f"• Candidate: {await self._name(context.candidate)}",
            f"• Scheduled Time: {scheduled_time}",
            f"• Status: {status}",
        ]
        if acting_user:
            lines.append(f"• Scheduled by: {acting_user}")
        lines.extend([
            "",
            "Detected Conflicts:",
            summary,
            "",
            closing,
            "",
            f"View in HR System: {self.settings.app_url}/recruiting",
            "",
            "---",
            "This is an automated notification. Please do not reply to this email.",
        ])
        return subject, "\n".join(lines)

    async def _admin_alert(
        self,
        context: BookingContext,
        scheduled_time: str,
        summary: str,
        forced: bool,
        acting_user: Optional[str]
    ) -> tuple[str, str]:
        """Summary alert sent to every administrator."""
        if forced:
            subject = f"[HR Alert] Interview Scheduled Despite Conflicts - {context.subject}"
            status = "Scheduled with conflicts"
            closing = (
                "Note: The interview was scheduled despite these conflicts. "
                "Please monitor for any issues or cancellations."
            )
        else:
            subject = f"[HR Alert] Interview Conflict Detected - {context.subject}"
            status = "Pending resolution"
            closing = "Action Required: Please review and help resolve these scheduling conflicts."

        lines = [
            "HR System Alert: Interview Scheduling Conflict",
            "",
            "Interview Information:",
            f"• Subject: {context.subject}",
            f"• Candidate: {await self._name(context.candidate)}",
            f"• Interviewer: {await self._name(context.interviewer)}",
            f"• Scheduled Time: {scheduled_time}",
            f"• Status: {status}",
        ]
        if acting_user:
            lines.append(f"• Scheduled by: {acting_user}")
        lines.extend([
            "",
            "Conflicts Detected:",
            summary,
            "",
            closing,
            "",
            f"View in HR System: {self.settings.app_url}/recruiting",
        ])
        return subject, "\n".join(lines)

    async def _courtesy_notice(
        self,
        participant: ParticipantIdentity,
        context: BookingContext,
        scheduled_time: str,
        summary: str
    ) -> tuple[str, str]:
        """Notice to a non-hosting participant whose own calendar conflicts."""
        lines = [
            f"Dear {await self._name(participant)},",
            "",
            "We wanted to let you know that your interview has been scheduled, "
            "though we noticed some potential conflicts with your calendar.",
            "",
            "Interview Details:",
            f"• Subject: {context.subject}",
            f"• Interviewer: {await self._name(context.interviewer)}",
            f"• Scheduled Time: {scheduled_time}",
            "",
            "Please Note: The following calendar conflicts were detected:",
            summary,
            "",
            "If this time doesn't work for you, please reply to this email so we can reschedule.",
            "",
            "Best regards,",
            "HR Team",
        ]
        return "Interview Scheduled - Please Review Time Conflicts", "\n".join(lines)

    async def send_conflict_reminder(self, booking: InterviewBooking, hours_before: int = 24) -> bool:
        """
        Remind the interviewer about an upcoming interview booked with known conflicts.

        Returns:
            True if a reminder was handed to the transport
        """
        if booking.status != "SCHEDULED" or not booking.interviewer:
            return False

        scheduled_time = to_local(booking.start, self.settings.tz).strftime(SCHEDULED_TIME_FORMAT)
        lines = [
            f"This is a reminder that an interview is scheduled for {scheduled_time}.",
            "",
            "Note: This interview was scheduled with known calendar conflicts. "
            "Please ensure all parties are still available.",
            "",
            f"• Subject: {booking.subject_title}",
            f"• Candidate: {await self._name(booking.candidate)}",
            f"• Interviewer: {await self._name(booking.interviewer)}",
            "",
            "If you need to reschedule, please do so as soon as possible.",
        ]
        sent = await self._send(
            booking.interviewer,
            f"⚠️ Interview Reminder ({hours_before}h) - Potential Conflicts",
            "\n".join(lines),
            None
        )
        if sent:
            log.info("conflict_reminder_sent", booking_id=booking.id)
        return sent
