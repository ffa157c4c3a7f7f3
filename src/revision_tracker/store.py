"""Reading and writing stored revision schedules.

A stored schedule holds only per-slot completion flags and reschedule
shifts. review_count, next_review and the subtopic's current_interval_index
are derived from them on every write.
"""
import json
import logging
import sqlite3
from datetime import tzinfo
from typing import Optional, Sequence

from revision_tracker.models import IntervalSettings, RevisionSchedule
from revision_tracker.schedule import count_completed, next_pending, planned_dates, reconcile_slots

logger = logging.getLogger(__name__)


def schedule_from_row(row: sqlite3.Row) -> RevisionSchedule:
    return RevisionSchedule(
        owner=row["owner"],
        subtopic_id=row["subtopic_id"],
        review_statuses=json.loads(row["review_statuses"]),
        slot_shifts=json.loads(row["slot_shifts"]),
        review_count=row["review_count"],
        next_review=row["next_review"],
    )


def load_schedule(conn: sqlite3.Connection, owner: str, subtopic_id: int) -> RevisionSchedule:
    row = conn.execute(
        "SELECT * FROM revision_schedules WHERE owner = ? AND subtopic_id = ?",
        (owner, subtopic_id),
    ).fetchone()
    if row is None:
        return RevisionSchedule(owner=owner, subtopic_id=subtopic_id)
    return schedule_from_row(row)


def write_schedule(
    conn: sqlite3.Connection,
    owner: str,
    subtopic_id: int,
    study_date: int,
    intervals: Sequence[int],
    statuses: Sequence[bool],
    shifts: Sequence[int],
    tz: Optional[tzinfo] = None,
) -> RevisionSchedule:
    """Fit statuses and shifts to the interval list, derive the rest, store it."""
    statuses = reconcile_slots(statuses, len(intervals), False)
    shifts = reconcile_slots(shifts, len(intervals), 0)
    dates = planned_dates(study_date, intervals, shifts, tz)
    index, next_review = next_pending(dates, statuses)
    schedule = RevisionSchedule(
        owner=owner,
        subtopic_id=subtopic_id,
        review_statuses=statuses,
        slot_shifts=shifts,
        review_count=count_completed(statuses),
        next_review=next_review,
    )
    conn.execute(
        """INSERT INTO revision_schedules
        (subtopic_id, owner, review_statuses, slot_shifts, review_count, next_review)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(subtopic_id) DO UPDATE SET
            review_statuses=excluded.review_statuses,
            slot_shifts=excluded.slot_shifts,
            review_count=excluded.review_count,
            next_review=excluded.next_review""",
        (
            subtopic_id, owner, json.dumps(statuses), json.dumps(shifts),
            schedule.review_count, next_review,
        ),
    )
    conn.execute(
        "UPDATE subtopics SET current_interval_index = ? WHERE id = ?",
        (index, subtopic_id),
    )
    return schedule


def init_schedule(
    conn: sqlite3.Connection,
    subtopic: sqlite3.Row,
    settings: IntervalSettings,
    tz: Optional[tzinfo] = None,
) -> RevisionSchedule:
    """Start a subtopic's schedule over: every slot pending, no shifts."""
    intervals = settings.for_difficulty(subtopic["difficulty"])
    return write_schedule(
        conn, subtopic["owner"], subtopic["id"], subtopic["study_date"], intervals, [], [], tz,
    )


def refresh_schedule(
    conn: sqlite3.Connection,
    subtopic: sqlite3.Row,
    settings: IntervalSettings,
    tz: Optional[tzinfo] = None,
) -> RevisionSchedule:
    """Re-fit a stored schedule to the current intervals, keeping completed slots."""
    current = load_schedule(conn, subtopic["owner"], subtopic["id"])
    intervals = settings.for_difficulty(subtopic["difficulty"])
    if len(current.review_statuses) != len(intervals):
        logger.debug(
            "Subtopic %s: %d slots -> %d",
            subtopic["id"], len(current.review_statuses), len(intervals),
        )
    return write_schedule(
        conn, subtopic["owner"], subtopic["id"], subtopic["study_date"], intervals,
        current.review_statuses, current.slot_shifts, tz,
    )


def refresh_owner_schedules(
    conn: sqlite3.Connection,
    owner: str,
    settings: IntervalSettings,
    tz: Optional[tzinfo] = None,
) -> int:
    rows = conn.execute("SELECT * FROM subtopics WHERE owner = ?", (owner,)).fetchall()
    for row in rows:
        refresh_schedule(conn, row, settings, tz)
    return len(rows)

