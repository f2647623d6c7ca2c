"""Aggregates every conflict source into a single conflict report."""

import asyncio
from dataclasses import replace
from typing import Iterable, Optional

import structlog

from models.entities import Conflict, ConflictReport, ParticipantIdentity, TimeInterval
from services.conflict_sources import ConflictSource
from services.errors import InvalidBookingError
from services.settings import SchedulingSettings
from services.slot_finder import SlotFinder
from services.soft_conflicts import SoftConflictHeuristics
from services.time_intervals import validate_interval

log = structlog.get_logger()

INCOMPLETE_CHECK_WARNING = "Unable to perform complete conflict check. Please verify availability manually."


def deduplicate_conflicts(conflicts: Iterable[Conflict]) -> list[Conflict]:
    """
    Collapse conflicts with the same (source type, start, end).

    The first seen keeps its position and title. A later duplicate merges its
    participants in and upgrades the severity to HARD if it is hard, so a
    firm conflict is never dropped behind a tentative one.
    """
    positions: dict = {}
    unique: list[Conflict] = []
    for conflict in conflicts:
        index = positions.get(conflict.dedup_key)
        if index is None:
            positions[conflict.dedup_key] = len(unique)
            unique.append(conflict)
            continue
        kept = unique[index]
        unique[index] = replace(
            kept,
            participants=kept.participants | conflict.participants,
            severity="HARD" if "HARD" in (kept.severity, conflict.severity) else kept.severity,
        )
    return unique


def normalize_participants(participants: Iterable[ParticipantIdentity]) -> list[ParticipantIdentity]:
    """Drop blanks and case-insensitive duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for participant in participants:
        participant = (participant or "").strip()
        if not participant or participant.lower() in seen:
            continue
        seen.add(participant.lower())
        result.append(participant)
    return result


class ConflictAggregator:
    """
    Runs every conflict source for every participant and merges the results.

    Sources are queried concurrently, one task per (participant, source). A
    failing or slow source only degrades the report with a warning; the
    aggregator never raises for source problems.
    """

    def __init__(
        self,
        sources: list[ConflictSource],
        heuristics: SoftConflictHeuristics,
        settings: SchedulingSettings,
        slot_finder: Optional[SlotFinder] = None
    ):
        """
        Initialize the aggregator.

        Args:
            sources: Conflict sources in dedup priority order (leave, internal booking, external calendar)
            heuristics: Soft-conflict advisory rules
            settings: Scheduling settings (timeouts, slot search bounds)
            slot_finder: Alternative slot search; built from settings when omitted
        """
        self.sources = sources
        self.heuristics = heuristics
        self.settings = settings
        self.slot_finder = slot_finder or SlotFinder(self, settings)

    async def check_conflicts(
        self,
        participants: Iterable[ParticipantIdentity],
        proposed: TimeInterval,
        exclude_id: Optional[str] = None,
        suggest: bool = True
    ) -> ConflictReport:
        """
        Check a proposed interval for every participant.

        Args:
            participants: Contact identities of everyone attending
            proposed: Proposed interval
            exclude_id: Booking (or external event) id to ignore, used when rescheduling
            suggest: Search alternative slots when conflicts are found

        Returns:
            ConflictReport with deduplicated conflicts, warnings and suggested slots

        Raises:
            InvalidBookingError: empty participant set or malformed interval
        """
        participants = normalize_participants(participants)
        if not participants:
            raise InvalidBookingError("At least one participant is required")
        validate_interval(proposed)

        try:
            return await self._check(participants, proposed, exclude_id, suggest)
        except Exception as e:
            log.error("conflict_check_failed", participants=participants, error=str(e))
            return ConflictReport(
                has_conflicts=False,
                warnings=[INCOMPLETE_CHECK_WARNING],
                notices=[INCOMPLETE_CHECK_WARNING]
            )

    async def _check(
        self,
        participants: list[ParticipantIdentity],
        proposed: TimeInterval,
        exclude_id: Optional[str],
        suggest: bool
    ) -> ConflictReport:
        timeout = self.settings.source_timeout_seconds
        # gather preserves task order, so results come back participant-major, source-minor
        results = await asyncio.gather(*[
            source.check(participant, proposed, exclude_id, timeout)
            for participant in participants
            for source in self.sources
        ])

        conflicts: list[Conflict] = []
        warnings = list(dict.fromkeys(self.heuristics.evaluate(proposed)))
        notices: list[str] = []
        for result in results:
            conflicts.extend(result.conflicts)
            if result.warning and result.warning not in warnings:
                warnings.append(result.warning)
                notices.append(result.warning)

        conflicts = deduplicate_conflicts(conflicts)
        report = ConflictReport(
            has_conflicts=bool(conflicts),
            conflicts=conflicts,
            warnings=warnings,
            notices=notices
        )

        if conflicts and suggest:
            try:
                report.suggested_slots = await self.slot_finder.find_available_slots(
                    participants,
                    proposed.start,
                    exclude_id=exclude_id
                )
            except Exception as e:
                log.error("slot_search_failed", participants=participants, error=str(e))

        if notices:
            log.warning("conflict_check_degraded", participants=participants, notices=len(notices))
        return report
