"""Date-range queries: due today, overdue, calendar items, missed days."""
import calendar
from datetime import date, tzinfo
from typing import Optional

from revision_tracker.db import fetch_owned, get_connection
from revision_tracker.intervals import load_effective_settings
from revision_tracker.models import REVISION, STUDY, PlannedItem, RevisionSchedule, SubTopic
from revision_tracker.progress import get_revision_schedule
from revision_tracker.store import load_schedule
from revision_tracker.schedule import planned_dates, reconcile_slots
from revision_tracker.timeutil import date_key, end_of_day, now_ns, start_of_day
from revision_tracker.topics import get_subtopics, load_subtopics


def _pending_with_next_review(db_path: str, owner: str) -> list[tuple[SubTopic, int]]:
    """(subtopic, next_review) for every non-completed subtopic with a pending revision."""
    schedules = {s.subtopic_id: s for s in get_revision_schedule(db_path, owner)}
    result = []
    for st in get_subtopics(db_path, owner):
        schedule = schedules.get(st.id)
        if st.completed or schedule is None or schedule.next_review is None:
            continue
        result.append((st, schedule.next_review))
    return result


def due_on(db_path: str, owner: str, day: date, tz: Optional[tzinfo] = None) -> list[SubTopic]:
    """Subtopics whose next pending revision falls on ``day``."""
    start, end = start_of_day(day, tz), end_of_day(day, tz)
    return [st for st, nxt in _pending_with_next_review(db_path, owner) if start <= nxt <= end]


def overdue_as_of(db_path: str, owner: str, day: date, tz: Optional[tzinfo] = None) -> list[SubTopic]:
    """Subtopics whose next pending revision is before ``day``."""
    start = start_of_day(day, tz)
    return [st for st, nxt in _pending_with_next_review(db_path, owner) if nxt < start]


def get_today_subtopics(
    db_path: str, owner: str, now: Optional[int] = None, tz: Optional[tzinfo] = None
) -> list[SubTopic]:
    return due_on(db_path, owner, date_key(now_ns() if now is None else now, tz), tz)


def _subtopic_plans(db_path: str, owner: str, tz: Optional[tzinfo]):
    """Yield (subtopic, planned dates, statuses) for all of the owner's subtopics."""
    conn = get_connection(db_path)
    try:
        settings = load_effective_settings(conn, owner)
        subtopics = load_subtopics(conn, owner)
        schedules = {st.id: load_schedule(conn, owner, st.id) for st in subtopics}
    finally:
        conn.close()
    for st in subtopics:
        intervals = settings.for_difficulty(st.difficulty)
        schedule: RevisionSchedule = schedules[st.id]
        dates = planned_dates(st.study_date, intervals, schedule.slot_shifts, tz)
        statuses = reconcile_slots(schedule.review_statuses, len(intervals), False)
        yield st, dates, statuses


def get_planned_revision_dates(
    db_path: str, owner: str, subtopic_id: int, tz: Optional[tzinfo] = None
) -> list[int]:
    conn = get_connection(db_path)
    try:
        row = fetch_owned(conn, "subtopics", owner, subtopic_id, "Subtopic")
        intervals = load_effective_settings(conn, owner).for_difficulty(row["difficulty"])
        schedule = load_schedule(conn, owner, subtopic_id)
    finally:
        conn.close()
    return planned_dates(row["study_date"], intervals, schedule.slot_shifts, tz)


def get_all_planned_revision_dates(db_path: str, owner: str, tz: Optional[tzinfo] = None) -> list[dict]:
    return [
        {
            "subtopic_id": st.id,
            "owner": st.owner,
            "difficulty": st.difficulty,
            "planned_dates": dates,
        }
        for st, dates, _ in _subtopic_plans(db_path, owner, tz)
    ]


def planned_items_in_range(
    db_path: str, owner: str, start: date, end: date, tz: Optional[tzinfo] = None
) -> list[PlannedItem]:
    """Study days and revision days between ``start`` and ``end`` inclusive.

    Completed subtopics and completed revisions are included. A subtopic
    appears at most once per day and kind.
    """
    seen = set()
    items = []

    def add(item: PlannedItem) -> None:
        key = (item.subtopic_id, item.date_key, item.kind)
        if start <= item.date_key <= end and key not in seen:
            seen.add(key)
            items.append(item)

    for st, dates, statuses in _subtopic_plans(db_path, owner, tz):
        add(PlannedItem(
            subtopic_id=st.id, title=st.title, difficulty=st.difficulty, kind=STUDY,
            timestamp=st.study_date, date_key=date_key(st.study_date, tz),
        ))
        for number, (ts, done) in enumerate(zip(dates, statuses), 1):
            add(PlannedItem(
                subtopic_id=st.id, title=st.title, difficulty=st.difficulty, kind=REVISION,
                timestamp=ts, date_key=date_key(ts, tz), revision_number=number, completed=done,
            ))
    items.sort(key=lambda i: (i.date_key, i.kind != STUDY, i.subtopic_id))
    return items


def calendar_month(
    db_path: str, owner: str, year: int, month: int, tz: Optional[tzinfo] = None
) -> dict[date, list[PlannedItem]]:
    """Planned items for one month, bucketed by day."""
    last = calendar.monthrange(year, month)[1]
    buckets: dict[date, list[PlannedItem]] = {}
    for item in planned_items_in_range(db_path, owner, date(year, month, 1), date(year, month, last), tz):
        buckets.setdefault(item.date_key, []).append(item)
    return buckets


def missed_date_keys(
    db_path: str, owner: str, now: Optional[int] = None, tz: Optional[tzinfo] = None
) -> set[date]:
    """Days holding at least one pending revision that is now in the past."""
    today = date_key(now_ns() if now is None else now, tz)
    missed = set()
    for st, dates, statuses in _subtopic_plans(db_path, owner, tz):
        if st.completed:
            continue
        for ts, done in zip(dates, statuses):
            key = date_key(ts, tz)
            if not done and key < today:
                missed.add(key)
    return missed
