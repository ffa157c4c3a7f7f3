from datetime import datetime, timezone

import pytest

from revision_tracker.timeutil import to_ns

UTC = timezone.utc


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tracker.db")
    return db_path


@pytest.fixture
def at():
    """Build a UTC timestamp (ns): at(2024, 1, 1) is 09:00 on that day."""
    def _at(year, month, day, hour=9, minute=0):
        return to_ns(datetime(year, month, day, hour, minute, tzinfo=UTC))
    return _at
