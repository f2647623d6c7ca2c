"""Greedy nearest-first search for alternative interview slots."""

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Iterable, Optional

from models.entities import ParticipantIdentity, TimeInterval
from services.settings import SchedulingSettings
from services.time_intervals import local_datetime, to_local

if TYPE_CHECKING:
    from services.conflict_aggregator import ConflictAggregator


class SlotFinder:
    """Finds one-hour weekday business-hours slots free for every participant."""

    def __init__(self, aggregator: "ConflictAggregator", settings: SchedulingSettings):
        self.aggregator = aggregator
        self.settings = settings

    def candidate_slots(self, preferred_start: datetime) -> Iterable[TimeInterval]:
        """
        Candidate slots in day-then-hour order.

        Starts on ``preferred_start``'s calendar day and covers
        ``slot_search_days`` calendar days, skipping Saturday and Sunday.
        """
        tz = self.settings.tz
        first_day = to_local(preferred_start, tz).date()

        for day_offset in range(self.settings.slot_search_days):
            current_date = first_day + timedelta(days=day_offset)
            # Skip weekends
            if current_date.weekday() >= 5:
                continue
            for hour in range(self.settings.slot_day_start_hour, self.settings.slot_day_end_hour):
                yield TimeInterval(
                    start=local_datetime(current_date, hour, preferred_start, tz),
                    end=local_datetime(current_date, hour + 1, preferred_start, tz),
                )

    async def find_available_slots(
        self,
        participants: Iterable[ParticipantIdentity],
        preferred_start: datetime,
        max_suggestions: Optional[int] = None,
        exclude_id: Optional[str] = None
    ) -> list[TimeInterval]:
        """
        Probe candidate slots until enough are free.

        A slot qualifies only when it has no conflicts and raises no
        scheduling advisory. Degradation notices (an unreachable source) do
        not disqualify a slot.

        Args:
            participants: Everyone who must be free
            preferred_start: Originally requested start time
            max_suggestions: Stop after this many slots (defaults to settings)
            exclude_id: Booking being rescheduled, ignored as a conflict

        Returns:
            Free slots, nearest first
        """
        if max_suggestions is None:
            max_suggestions = self.settings.slot_max_suggestions
        participants = list(participants)
        suggestions: list[TimeInterval] = []
        if max_suggestions <= 0:
            return suggestions

        for slot in self.candidate_slots(preferred_start):
            report = await self.aggregator.check_conflicts(
                participants,
                slot,
                exclude_id=exclude_id,
                suggest=False
            )
            if not report.has_conflicts and not report.advisories:
                suggestions.append(slot)
                if len(suggestions) >= max_suggestions:
                    break

        return suggestions
