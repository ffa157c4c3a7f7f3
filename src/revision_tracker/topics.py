"""Main topics and subtopics: create, edit, delete, list."""
import logging
import sqlite3
from datetime import tzinfo
from typing import Optional

from revision_tracker.db import fetch_owned, get_connection
from revision_tracker.errors import InvalidArgument
from revision_tracker.intervals import check_difficulty, load_effective_settings
from revision_tracker.models import MainTopic, SubTopic
from revision_tracker.store import init_schedule, refresh_schedule
from revision_tracker.timeutil import now_ns

logger = logging.getLogger(__name__)

SUBTOPIC_SELECT = """SELECT s.*, m.title AS main_topic_title
    FROM subtopics s JOIN main_topics m ON s.main_topic_id = m.id"""


def _clean_title(title: str) -> str:
    title = (title or "").strip()
    if not title:
        raise InvalidArgument("Title must not be empty")
    return title


def main_topic_from_row(row: sqlite3.Row) -> MainTopic:
    return MainTopic(
        id=row["id"],
        owner=row["owner"],
        title=row["title"],
        description=row["description"] or "",
        creation_date=row["creation_date"],
    )


def subtopic_from_row(row: sqlite3.Row) -> SubTopic:
    return SubTopic(
        id=row["id"],
        owner=row["owner"],
        main_topic_id=row["main_topic_id"],
        title=row["title"],
        difficulty=row["difficulty"],
        study_date=row["study_date"],
        description=row["description"] or "",
        current_interval_index=row["current_interval_index"],
        completed=bool(row["completed"]),
        creation_date=row["creation_date"],
        last_reviewed=row["last_reviewed"],
        main_topic_title=row["main_topic_title"],
    )


# --- Main topics ---


def create_main_topic(
    db_path: str, owner: str, title: str, description: str = "", now: Optional[int] = None
) -> int:
    title = _clean_title(title)
    conn = get_connection(db_path)
    try:
        with conn:
            cur = conn.execute(
                "INSERT INTO main_topics (owner, title, description, creation_date) VALUES (?, ?, ?, ?)",
                (owner, title, (description or "").strip(), now_ns() if now is None else now),
            )
    finally:
        conn.close()
    logger.info("Created main topic %s for %s", cur.lastrowid, owner)
    return cur.lastrowid


def update_main_topic(db_path: str, owner: str, topic_id: int, title: str, description: str = "") -> None:
    title = _clean_title(title)
    conn = get_connection(db_path)
    try:
        with conn:
            fetch_owned(conn, "main_topics", owner, topic_id, "Main topic")
            conn.execute(
                "UPDATE main_topics SET title = ?, description = ? WHERE id = ?",
                (title, (description or "").strip(), topic_id),
            )
    finally:
        conn.close()


def delete_main_topic(db_path: str, owner: str, topic_id: int) -> None:
    """Delete a main topic with all its subtopics and their schedules."""
    conn = get_connection(db_path)
    try:
        with conn:
            fetch_owned(conn, "main_topics", owner, topic_id, "Main topic")
            conn.execute("DELETE FROM main_topics WHERE id = ?", (topic_id,))
    finally:
        conn.close()
    logger.info("Deleted main topic %s", topic_id)


def get_main_topics(db_path: str, owner: str) -> list[MainTopic]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM main_topics WHERE owner = ? ORDER BY creation_date, id", (owner,)
    ).fetchall()
    conn.close()
    return [main_topic_from_row(r) for r in rows]


# --- Subtopics ---


def create_subtopic(
    db_path: str,
    owner: str,
    main_topic_id: int,
    title: str,
    description: str,
    difficulty: str,
    study_date: int,
    now: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> int:
    """Create a subtopic and its revision schedule together. Returns the new id."""
    title = _clean_title(title)
    check_difficulty(difficulty)
    conn = get_connection(db_path)
    try:
        with conn:
            fetch_owned(conn, "main_topics", owner, main_topic_id, "Main topic")
            cur = conn.execute(
                """INSERT INTO subtopics
                (owner, main_topic_id, title, description, difficulty, study_date, creation_date)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    owner, main_topic_id, title, (description or "").strip(), difficulty,
                    study_date, now_ns() if now is None else now,
                ),
            )
            row = conn.execute("SELECT * FROM subtopics WHERE id = ?", (cur.lastrowid,)).fetchone()
            init_schedule(conn, row, load_effective_settings(conn, owner), tz)
    finally:
        conn.close()
    logger.info("Created subtopic %s (%s) under main topic %s", cur.lastrowid, difficulty, main_topic_id)
    return cur.lastrowid


def update_subtopic(
    db_path: str,
    owner: str,
    subtopic_id: int,
    title: str,
    description: str,
    difficulty: str,
    study_date: int,
    tz: Optional[tzinfo] = None,
) -> None:
    """Edit a subtopic.

    A new difficulty or study date starts the schedule over, since the old
    slots no longer describe the same dates.
    """
    title = _clean_title(title)
    check_difficulty(difficulty)
    conn = get_connection(db_path)
    try:
        with conn:
            old = fetch_owned(conn, "subtopics", owner, subtopic_id, "Subtopic")
            conn.execute(
                """UPDATE subtopics SET title = ?, description = ?, difficulty = ?, study_date = ?
                WHERE id = ?""",
                (title, (description or "").strip(), difficulty, study_date, subtopic_id),
            )
            row = conn.execute("SELECT * FROM subtopics WHERE id = ?", (subtopic_id,)).fetchone()
            settings = load_effective_settings(conn, owner)
            if old["difficulty"] != difficulty or old["study_date"] != study_date:
                logger.info("Subtopic %s rescheduled from scratch", subtopic_id)
                init_schedule(conn, row, settings, tz)
            else:
                refresh_schedule(conn, row, settings, tz)
    finally:
        conn.close()


def delete_subtopic(db_path: str, owner: str, subtopic_id: int) -> None:
    conn = get_connection(db_path)
    try:
        with conn:
            fetch_owned(conn, "subtopics", owner, subtopic_id, "Subtopic")
            conn.execute("DELETE FROM subtopics WHERE id = ?", (subtopic_id,))
    finally:
        conn.close()
    logger.info("Deleted subtopic %s", subtopic_id)


def _set_completed(db_path: str, owner: str, subtopic_id: int, completed: bool) -> None:
    conn = get_connection(db_path)
    try:
        with conn:
            fetch_owned(conn, "subtopics", owner, subtopic_id, "Subtopic")
            conn.execute(
                "UPDATE subtopics SET completed = ? WHERE id = ?", (int(completed), subtopic_id)
            )
    finally:
        conn.close()


def mark_subtopic_completed(db_path: str, owner: str, subtopic_id: int) -> None:
    """Set the manual completed flag. Revision statuses are left alone."""
    _set_completed(db_path, owner, subtopic_id, True)


def mark_subtopic_pending(db_path: str, owner: str, subtopic_id: int) -> None:
    _set_completed(db_path, owner, subtopic_id, False)


def get_subtopic(db_path: str, owner: str, subtopic_id: int) -> SubTopic:
    conn = get_connection(db_path)
    try:
        fetch_owned(conn, "subtopics", owner, subtopic_id, "Subtopic")
        row = conn.execute(f"{SUBTOPIC_SELECT} WHERE s.id = ?", (subtopic_id,)).fetchone()
    finally:
        conn.close()
    return subtopic_from_row(row)


def load_subtopics(conn: sqlite3.Connection, owner: str) -> list[SubTopic]:
    rows = conn.execute(
        f"{SUBTOPIC_SELECT} WHERE s.owner = ? ORDER BY s.study_date, s.id", (owner,)
    ).fetchall()
    return [subtopic_from_row(r) for r in rows]


def get_subtopics(db_path: str, owner: str) -> list[SubTopic]:
    conn = get_connection(db_path)
    subtopics = load_subtopics(conn, owner)
    conn.close()
    return subtopics


def get_subtopics_by_main_topic(db_path: str, owner: str, main_topic_id: int) -> list[SubTopic]:
    conn = get_connection(db_path)
    try:
        fetch_owned(conn, "main_topics", owner, main_topic_id, "Main topic")
        rows = conn.execute(
            f"{SUBTOPIC_SELECT} WHERE s.main_topic_id = ? ORDER BY s.study_date, s.id",
            (main_topic_id,),
        ).fetchall()
    finally:
        conn.close()
    return [subtopic_from_row(r) for r in rows]


def get_topics_with_hierarchy(db_path: str, owner: str) -> dict:
    """Main topics plus all subtopics, for rendering the topic tree."""
    return {
        "main_topics": get_main_topics(db_path, owner),
        "subtopics": get_subtopics(db_path, owner),
    }
