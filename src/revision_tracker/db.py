"""Database initialization and connection management."""
import os
import sqlite3
from pathlib import Path

from revision_tracker.errors import NotFound, Unauthorized

DEFAULT_DB_PATH = os.environ.get(
    "REVISION_TRACKER_DB", str(Path.home() / ".revision_tracker" / "tracker.db")
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS main_topics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT DEFAULT '',
    creation_date INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_main_topics_owner ON main_topics(owner, id);

CREATE TABLE IF NOT EXISTS subtopics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner TEXT NOT NULL,
    main_topic_id INTEGER NOT NULL REFERENCES main_topics(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    description TEXT DEFAULT '',
    difficulty TEXT NOT NULL CHECK (difficulty IN ('easy', 'medium', 'hard')),
    study_date INTEGER NOT NULL,
    current_interval_index INTEGER DEFAULT 0,
    completed INTEGER DEFAULT 0,
    creation_date INTEGER NOT NULL,
    last_reviewed INTEGER
);
CREATE INDEX IF NOT EXISTS idx_subtopics_owner ON subtopics(owner, id);

CREATE TABLE IF NOT EXISTS revision_schedules (
    subtopic_id INTEGER PRIMARY KEY REFERENCES subtopics(id) ON DELETE CASCADE,
    owner TEXT NOT NULL,
    review_statuses TEXT NOT NULL DEFAULT '[]',
    slot_shifts TEXT NOT NULL DEFAULT '[]',
    review_count INTEGER DEFAULT 0,
    next_review INTEGER
);
CREATE INDEX IF NOT EXISTS idx_schedules_owner ON revision_schedules(owner, subtopic_id);

CREATE TABLE IF NOT EXISTS user_settings (
    owner TEXT PRIMARY KEY,
    easy_intervals TEXT NOT NULL,
    medium_intervals TEXT NOT NULL,
    hard_intervals TEXT NOT NULL,
    preferred_review_days TEXT NOT NULL DEFAULT '[]'
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def fetch_owned(conn: sqlite3.Connection, table: str, owner: str, entity_id: int, label: str) -> sqlite3.Row:
    """Fetch one row by id, telling a missing row apart from another owner's row."""
    row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (entity_id,)).fetchone()
    if row is None:
        raise NotFound(f"{label} {entity_id} not found")
    if row["owner"] != owner:
        raise Unauthorized(f"{label} {entity_id} belongs to another user")
    return row
