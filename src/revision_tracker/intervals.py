"""Per-difficulty interval tables and per-owner review settings."""
import json
import logging
import sqlite3
from datetime import tzinfo
from typing import Optional

from revision_tracker.db import get_connection
from revision_tracker.errors import InvalidArgument
from revision_tracker.models import DIFFICULTIES, IntervalSettings
from revision_tracker.store import refresh_owner_schedules

logger = logging.getLogger(__name__)

MAX_INTERVAL_DAYS = 36500

DEFAULT_INTERVALS = {
    "easy": [7, 21, 45, 90],
    "medium": [3, 7, 21, 45, 90],
    "hard": [1, 3, 7, 21, 45],
}


def get_default_interval_days() -> dict[str, list[int]]:
    return {k: list(v) for k, v in DEFAULT_INTERVALS.items()}


def default_settings() -> IntervalSettings:
    return IntervalSettings(
        easy_intervals=list(DEFAULT_INTERVALS["easy"]),
        medium_intervals=list(DEFAULT_INTERVALS["medium"]),
        hard_intervals=list(DEFAULT_INTERVALS["hard"]),
    )


def check_difficulty(difficulty: str) -> str:
    if difficulty not in DIFFICULTIES:
        raise InvalidArgument(
            f"Unknown difficulty {difficulty!r}; expected one of {', '.join(DIFFICULTIES)}"
        )
    return difficulty


def _check_intervals(name: str, values) -> list[int]:
    values = list(values)
    if not values:
        raise InvalidArgument(f"{name} intervals must not be empty")
    for v in values:
        if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
            raise InvalidArgument(f"{name} intervals must be positive whole days, got {v!r}")
        if v > MAX_INTERVAL_DAYS:
            raise InvalidArgument(f"{name} intervals are capped at {MAX_INTERVAL_DAYS} days, got {v}")
    return values


def _check_days(days) -> set[int]:
    days = set(days)
    for d in days:
        if isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6:
            raise InvalidArgument(f"Preferred review days must be 0 (Sunday) to 6 (Saturday), got {d!r}")
    return days


def load_settings(conn: sqlite3.Connection, owner: str) -> IntervalSettings | None:
    row = conn.execute("SELECT * FROM user_settings WHERE owner = ?", (owner,)).fetchone()
    if not row:
        return None
    return IntervalSettings(
        easy_intervals=json.loads(row["easy_intervals"]),
        medium_intervals=json.loads(row["medium_intervals"]),
        hard_intervals=json.loads(row["hard_intervals"]),
        preferred_review_days=set(json.loads(row["preferred_review_days"])),
    )


def load_effective_settings(conn: sqlite3.Connection, owner: str) -> IntervalSettings:
    return load_settings(conn, owner) or default_settings()


def get_user_settings(db_path: str, owner: str) -> IntervalSettings | None:
    """Saved settings for ``owner``, or None if they never saved any."""
    conn = get_connection(db_path)
    try:
        return load_settings(conn, owner)
    finally:
        conn.close()


def get_effective_settings(db_path: str, owner: str) -> IntervalSettings:
    return get_user_settings(db_path, owner) or default_settings()


def get_interval_for_difficulty(db_path: str, owner: str, difficulty: str) -> list[int]:
    check_difficulty(difficulty)
    return get_effective_settings(db_path, owner).for_difficulty(difficulty)


def set_user_settings(
    db_path: str,
    owner: str,
    easy_intervals,
    medium_intervals,
    hard_intervals,
    preferred_days=(),
    tz: Optional[tzinfo] = None,
) -> IntervalSettings:
    """Validate and save settings, then re-fit every schedule the owner has.

    Changing a list's length adds pending slots or drops trailing ones.
    """
    settings = IntervalSettings(
        easy_intervals=_check_intervals("easy", easy_intervals),
        medium_intervals=_check_intervals("medium", medium_intervals),
        hard_intervals=_check_intervals("hard", hard_intervals),
        preferred_review_days=_check_days(preferred_days),
    )
    conn = get_connection(db_path)
    try:
        with conn:
            conn.execute(
                """INSERT INTO user_settings
                (owner, easy_intervals, medium_intervals, hard_intervals, preferred_review_days)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(owner) DO UPDATE SET
                    easy_intervals=excluded.easy_intervals,
                    medium_intervals=excluded.medium_intervals,
                    hard_intervals=excluded.hard_intervals,
                    preferred_review_days=excluded.preferred_review_days""",
                (
                    owner,
                    json.dumps(settings.easy_intervals),
                    json.dumps(settings.medium_intervals),
                    json.dumps(settings.hard_intervals),
                    json.dumps(sorted(settings.preferred_review_days)),
                ),
            )
            refreshed = refresh_owner_schedules(conn, owner, settings, tz)
    finally:
        conn.close()
    logger.info("Saved interval settings for %s (%d schedules refreshed)", owner, refreshed)
    return settings
