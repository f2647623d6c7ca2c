"""Business-hours heuristics that produce advisory warnings."""

from models.entities import TimeInterval
from services.time_intervals import to_local

LUNCH_WARNING = "Interview scheduled during typical lunch hours (12pm–1pm)"
EARLY_WARNING = "Interview scheduled before typical business hours (before 9am)"
LATE_WARNING = "Interview scheduled after typical business hours (after 5pm)"
FRIDAY_AFTERNOON_WARNING = "Interview scheduled on Friday afternoon"
MONDAY_MORNING_WARNING = "Interview scheduled early Monday morning"

MONDAY = 0
FRIDAY = 4


class SoftConflictHeuristics:
    """Stateless advisory rules evaluated against a proposed interval's local time."""

    def __init__(self, tz):
        self.tz = tz

    def evaluate(self, proposed: TimeInterval) -> list[str]:
        """Return every advisory that applies. These never block a booking."""
        start = to_local(proposed.start, self.tz)
        end = to_local(proposed.end, self.tz)
        hour = start.hour
        weekday = start.weekday()
        warnings = []

        noon = start.replace(hour=12, minute=0, second=0, microsecond=0)
        if hour == 12 or start < noon < end:
            warnings.append(LUNCH_WARNING)

        if hour < 9:
            warnings.append(EARLY_WARNING)

        if hour >= 17:
            warnings.append(LATE_WARNING)

        if weekday == FRIDAY and hour >= 15:
            warnings.append(FRIDAY_AFTERNOON_WARNING)

        if weekday == MONDAY and hour < 10:
            warnings.append(MONDAY_MORNING_WARNING)

        return warnings
