"""Planned revision dates from a study date and an interval table.

Nothing here touches the database: planned dates are always recomputed from
the study date, the owner's current intervals and any reschedule shifts.
"""
from datetime import tzinfo
from typing import Optional, Sequence

from revision_tracker.timeutil import add_days


def planned_dates(
    study_date: int,
    intervals: Sequence[int],
    shifts: Optional[Sequence[int]] = None,
    tz: Optional[tzinfo] = None,
) -> list[int]:
    """Return one timestamp per interval, in slot order.

    Args:
        study_date: Anchor timestamp (ns since epoch).
        intervals: Day offsets for the subtopic's difficulty, e.g. [7, 21, 45, 90].
        shifts: Extra days per slot added by rescheduling. Missing entries count as 0.
        tz: Timezone whose calendar days are added. None means local time.

    Returns:
        ``study_date + intervals[i] + shifts[i]`` calendar days for each slot.
        Preferred review days are not applied.
    """
    shifts = reconcile_slots(shifts or [], len(intervals), 0)
    return [
        add_days(study_date, offset + shift, tz)
        for offset, shift in zip(intervals, shifts)
    ]


def reconcile_slots(values: Sequence, n: int, fill) -> list:
    """Pad with ``fill`` or truncate so there is exactly one value per slot."""
    values = list(values[:n])
    values.extend([fill] * (n - len(values)))
    return values


def next_pending(dates: Sequence[int], statuses: Sequence[bool]) -> tuple[int, Optional[int]]:
    """Index and date of the earliest pending slot, or ``(len(dates), None)``.

    Earliest means smallest date, which after rescheduling need not be the
    lowest slot number.
    """
    pending = [(d, i) for i, (d, done) in enumerate(zip(dates, statuses)) if not done]
    if not pending:
        return len(dates), None
    date, index = min(pending)
    return index, date


def count_completed(statuses: Sequence[bool]) -> int:
    return sum(1 for s in statuses if s)
