"""Progress statistics for the dashboard."""
from datetime import tzinfo
from typing import Optional

from revision_tracker.db import get_connection
from revision_tracker.progress import get_revision_schedule
from revision_tracker.queries import due_on, overdue_as_of
from revision_tracker.timeutil import date_key, now_ns


def get_progress_label(pct: float) -> str:
    if pct >= 80:
        return "ON TRACK"
    elif pct >= 50:
        return "STEADY"
    elif pct > 0:
        return "STARTED"
    return "NOT STARTED"


def get_progress_color(pct: float) -> str:
    if pct >= 80:
        return "green"
    elif pct >= 50:
        return "yellow"
    elif pct > 0:
        return "dark_orange"
    return "red"


def get_progress_stats(
    db_path: str, owner: str, now: Optional[int] = None, tz: Optional[tzinfo] = None
) -> dict:
    today = date_key(now_ns() if now is None else now, tz)
    conn = get_connection(db_path)
    main_topics = conn.execute(
        "SELECT COUNT(*) FROM main_topics WHERE owner = ?", (owner,)
    ).fetchone()[0]
    row = conn.execute(
        "SELECT COUNT(*) AS t, SUM(completed) AS c FROM subtopics WHERE owner = ?", (owner,)
    ).fetchone()
    conn.close()
    schedules = get_revision_schedule(db_path, owner)
    total = sum(len(s.review_statuses) for s in schedules)
    done = sum(s.review_count for s in schedules)
    pct = round(done / total * 100, 1) if total else 0.0
    return {
        "main_topics": main_topics,
        "subtopics": row["t"],
        "completed_subtopics": row["c"] or 0,
        "revisions_total": total,
        "revisions_done": done,
        "completion_pct": pct,
        "due_today": len(due_on(db_path, owner, today, tz)),
        "overdue": len(overdue_as_of(db_path, owner, today, tz)),
    }
