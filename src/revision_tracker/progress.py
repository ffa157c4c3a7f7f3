"""Per-subtopic revision progress: completion state, next review, rescheduling."""
import logging
from datetime import timedelta, tzinfo
from typing import Optional

from revision_tracker.db import fetch_owned, get_connection
from revision_tracker.errors import InvalidArgument
from revision_tracker.intervals import load_effective_settings
from revision_tracker.models import RevisionSchedule
from revision_tracker.schedule import next_pending, planned_dates, reconcile_slots
from revision_tracker.store import load_schedule, refresh_schedule, schedule_from_row, write_schedule
from revision_tracker.timeutil import date_key, days_between, now_ns

logger = logging.getLogger(__name__)


def _check_revision_number(revision_number: int, slots: int) -> None:
    if not 1 <= revision_number <= slots:
        raise InvalidArgument(
            f"Revision {revision_number} is out of range; this subtopic has {slots} revisions"
        )


def _set_slot(
    db_path: str,
    owner: str,
    subtopic_id: int,
    revision_number: int,
    done: bool,
    now: Optional[int],
    tz: Optional[tzinfo],
) -> RevisionSchedule:
    conn = get_connection(db_path)
    try:
        with conn:
            row = fetch_owned(conn, "subtopics", owner, subtopic_id, "Subtopic")
            intervals = load_effective_settings(conn, owner).for_difficulty(row["difficulty"])
            current = load_schedule(conn, owner, subtopic_id)
            statuses = reconcile_slots(current.review_statuses, len(intervals), False)
            _check_revision_number(revision_number, len(statuses))
            if statuses[revision_number - 1] == done:
                return current
            statuses[revision_number - 1] = done
            if done:
                conn.execute(
                    "UPDATE subtopics SET last_reviewed = ? WHERE id = ?",
                    (now_ns() if now is None else now, subtopic_id),
                )
            schedule = write_schedule(
                conn, owner, subtopic_id, row["study_date"], intervals,
                statuses, current.slot_shifts, tz,
            )
    finally:
        conn.close()
    logger.info(
        "Subtopic %s revision %d %s (%d/%d done)",
        subtopic_id, revision_number, "completed" if done else "reopened",
        schedule.review_count, len(schedule.review_statuses),
    )
    return schedule


def mark_specific_revision(
    db_path: str,
    owner: str,
    subtopic_id: int,
    revision_number: int,
    now: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> RevisionSchedule:
    """Mark revision ``revision_number`` (1-based) complete.

    Revisions may be completed in any order. Marking a completed revision
    again changes nothing.
    """
    return _set_slot(db_path, owner, subtopic_id, revision_number, True, now, tz)


def unmark_specific_revision(
    db_path: str,
    owner: str,
    subtopic_id: int,
    revision_number: int,
    tz: Optional[tzinfo] = None,
) -> RevisionSchedule:
    """Put revision ``revision_number`` back to pending. No-op if already pending."""
    return _set_slot(db_path, owner, subtopic_id, revision_number, False, None, tz)


def mark_revision_as_reviewed(
    db_path: str,
    owner: str,
    subtopic_id: int,
    now: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> int | None:
    """Complete the next pending revision. Returns its number, or None if all are done."""
    conn = get_connection(db_path)
    try:
        row = fetch_owned(conn, "subtopics", owner, subtopic_id, "Subtopic")
        intervals = load_effective_settings(conn, owner).for_difficulty(row["difficulty"])
        current = load_schedule(conn, owner, subtopic_id)
    finally:
        conn.close()
    statuses = reconcile_slots(current.review_statuses, len(intervals), False)
    dates = planned_dates(row["study_date"], intervals, current.slot_shifts, tz)
    index, next_review = next_pending(dates, statuses)
    if next_review is None:
        return None
    mark_specific_revision(db_path, owner, subtopic_id, index + 1, now=now, tz=tz)
    return index + 1


def reschedule_revision_to_next_day(
    db_path: str,
    owner: str,
    subtopic_id: int,
    now: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> int:
    """Move overdue pending revisions so the earliest one falls tomorrow.

    Every pending revision moves by the same number of days, so the gaps
    between them stay the same. Completed revisions keep their dates.

    Returns:
        Days moved; 0 when nothing pending is overdue.
    """
    now = now_ns() if now is None else now
    today = date_key(now, tz)
    conn = get_connection(db_path)
    try:
        with conn:
            row = fetch_owned(conn, "subtopics", owner, subtopic_id, "Subtopic")
            intervals = load_effective_settings(conn, owner).for_difficulty(row["difficulty"])
            current = load_schedule(conn, owner, subtopic_id)
            statuses = reconcile_slots(current.review_statuses, len(intervals), False)
            shifts = reconcile_slots(current.slot_shifts, len(intervals), 0)
            dates = planned_dates(row["study_date"], intervals, shifts, tz)
            overdue = [
                date_key(d, tz) for d, done in zip(dates, statuses)
                if not done and date_key(d, tz) < today
            ]
            if not overdue:
                return 0
            delta = days_between(min(overdue), today + timedelta(days=1))
            shifts = [s if done else s + delta for s, done in zip(shifts, statuses)]
            write_schedule(
                conn, owner, subtopic_id, row["study_date"], intervals, statuses, shifts, tz,
            )
    finally:
        conn.close()
    logger.info("Subtopic %s: pending revisions moved %d days", subtopic_id, delta)
    return delta


def update_revision_schedule(
    db_path: str,
    owner: str,
    subtopic_id: int,
    tz: Optional[tzinfo] = None,
) -> RevisionSchedule:
    conn = get_connection(db_path)
    try:
        with conn:
            row = fetch_owned(conn, "subtopics", owner, subtopic_id, "Subtopic")
            return refresh_schedule(conn, row, load_effective_settings(conn, owner), tz)
    finally:
        conn.close()


def get_subtopic_schedule(db_path: str, owner: str, subtopic_id: int) -> RevisionSchedule:
    conn = get_connection(db_path)
    try:
        fetch_owned(conn, "subtopics", owner, subtopic_id, "Subtopic")
        return load_schedule(conn, owner, subtopic_id)
    finally:
        conn.close()


def get_revision_schedule(db_path: str, owner: str) -> list[RevisionSchedule]:
    """All schedules belonging to ``owner``."""
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM revision_schedules WHERE owner = ? ORDER BY subtopic_id", (owner,)
    ).fetchall()
    conn.close()
    return [schedule_from_row(r) for r in rows]
