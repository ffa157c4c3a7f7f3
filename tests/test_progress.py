# tests/test_progress.py
from datetime import date, timezone

import pytest

from revision_tracker.db import init_db
from revision_tracker.errors import InvalidArgument, NotFound, Unauthorized
from revision_tracker.progress import (
    get_revision_schedule, get_subtopic_schedule, mark_revision_as_reviewed,
    mark_specific_revision, reschedule_revision_to_next_day, unmark_specific_revision,
    update_revision_schedule,
)
from revision_tracker.queries import get_planned_revision_dates
from revision_tracker.timeutil import date_key
from revision_tracker.topics import create_main_topic, create_subtopic, get_subtopic

UTC = timezone.utc


def _easy_subtopic(tmp_db, at, owner="alice"):
    """Easy subtopic studied 2024-01-01: revisions Jan 8, Jan 22, Feb 15, Mar 31."""
    init_db(tmp_db)
    mt = create_main_topic(tmp_db, owner, "Languages")
    return create_subtopic(tmp_db, owner, mt, "Spanish verbs", "", "easy", at(2024, 1, 1), tz=UTC)


def _days(tmp_db, st):
    return [date_key(d, UTC) for d in get_planned_revision_dates(tmp_db, "alice", st, tz=UTC)]


def test_mark_revision_updates_count_and_next_review(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    schedule = mark_specific_revision(tmp_db, "alice", st, 2, tz=UTC)
    assert schedule.review_statuses == [False, True, False, False]
    assert schedule.review_count == 1
    assert schedule.next_review == at(2024, 1, 8)  # slot 1 still pending

    schedule = mark_specific_revision(tmp_db, "alice", st, 1, tz=UTC)
    assert schedule.review_count == 2
    assert schedule.next_review == at(2024, 2, 15)
    assert get_subtopic(tmp_db, "alice", st).current_interval_index == 2


def test_mark_revision_is_idempotent(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    once = mark_specific_revision(tmp_db, "alice", st, 3, tz=UTC)
    twice = mark_specific_revision(tmp_db, "alice", st, 3, tz=UTC)
    assert once == twice
    assert get_subtopic_schedule(tmp_db, "alice", st) == once


def test_unmark_restores_slot(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    before = get_subtopic_schedule(tmp_db, "alice", st)
    mark_specific_revision(tmp_db, "alice", st, 1, tz=UTC)
    after = unmark_specific_revision(tmp_db, "alice", st, 1, tz=UTC)
    assert after == before


def test_unmark_pending_slot_is_noop(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    schedule = unmark_specific_revision(tmp_db, "alice", st, 4, tz=UTC)
    assert schedule.review_statuses == [False] * 4


def test_review_count_matches_statuses(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    for n, done in [(1, True), (3, True), (1, False), (4, True), (2, True)]:
        if done:
            schedule = mark_specific_revision(tmp_db, "alice", st, n, tz=UTC)
        else:
            schedule = unmark_specific_revision(tmp_db, "alice", st, n, tz=UTC)
        assert schedule.review_count == sum(schedule.review_statuses)


def test_all_revisions_done(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    for n in range(1, 5):
        schedule = mark_specific_revision(tmp_db, "alice", st, n, tz=UTC)
    assert schedule.next_review is None
    assert schedule.is_reviewed
    assert get_subtopic(tmp_db, "alice", st).current_interval_index == 4


def test_mark_records_last_reviewed(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    assert get_subtopic(tmp_db, "alice", st).last_reviewed is None
    mark_specific_revision(tmp_db, "alice", st, 1, now=at(2024, 1, 9), tz=UTC)
    assert get_subtopic(tmp_db, "alice", st).last_reviewed == at(2024, 1, 9)


@pytest.mark.parametrize("number", [0, 5, -1])
def test_revision_number_out_of_range(tmp_db, at, number):
    st = _easy_subtopic(tmp_db, at)
    with pytest.raises(InvalidArgument):
        mark_specific_revision(tmp_db, "alice", st, number, tz=UTC)
    with pytest.raises(InvalidArgument):
        unmark_specific_revision(tmp_db, "alice", st, number, tz=UTC)
    assert get_subtopic_schedule(tmp_db, "alice", st).review_statuses == [False] * 4


def test_unknown_subtopic(tmp_db, at):
    _easy_subtopic(tmp_db, at)
    with pytest.raises(NotFound):
        mark_specific_revision(tmp_db, "alice", 999, 1)
    with pytest.raises(NotFound):
        reschedule_revision_to_next_day(tmp_db, "alice", 999)


def test_other_owner_cannot_touch_schedule(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    with pytest.raises(Unauthorized):
        mark_specific_revision(tmp_db, "bob", st, 1)
    with pytest.raises(Unauthorized):
        get_subtopic_schedule(tmp_db, "bob", st)
    assert get_revision_schedule(tmp_db, "bob") == []


def test_mark_revision_as_reviewed_advances_in_order(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    mark_specific_revision(tmp_db, "alice", st, 2, tz=UTC)
    assert mark_revision_as_reviewed(tmp_db, "alice", st, tz=UTC) == 1
    assert mark_revision_as_reviewed(tmp_db, "alice", st, tz=UTC) == 3
    assert mark_revision_as_reviewed(tmp_db, "alice", st, tz=UTC) == 4
    assert mark_revision_as_reviewed(tmp_db, "alice", st, tz=UTC) is None
    assert get_subtopic_schedule(tmp_db, "alice", st).is_reviewed


def test_reschedule_moves_pending_revisions(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    mark_specific_revision(tmp_db, "alice", st, 1, tz=UTC)
    moved = reschedule_revision_to_next_day(tmp_db, "alice", st, now=at(2024, 2, 20), tz=UTC)
    assert moved == 30
    assert _days(tmp_db, st) == [
        date(2024, 1, 8),   # completed, untouched
        date(2024, 2, 21),  # tomorrow
        date(2024, 3, 16),
        date(2024, 4, 30),
    ]
    schedule = get_subtopic_schedule(tmp_db, "alice", st)
    assert schedule.slot_shifts == [0, 30, 30, 30]
    assert schedule.next_review == at(2024, 2, 21)


def test_reschedule_preserves_gaps(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    before = _days(tmp_db, st)
    reschedule_revision_to_next_day(tmp_db, "alice", st, now=at(2024, 3, 1), tz=UTC)
    after = _days(tmp_db, st)
    assert after[0] == date(2024, 3, 2)
    for i in range(3):
        assert (after[i + 1] - after[i]) == (before[i + 1] - before[i])


def test_reschedule_keeps_completed_dates_and_order(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    mark_specific_revision(tmp_db, "alice", st, 2, tz=UTC)
    reschedule_revision_to_next_day(tmp_db, "alice", st, now=at(2024, 1, 21), tz=UTC)
    days = _days(tmp_db, st)
    assert days[1] == date(2024, 1, 22)  # completed slot keeps its date
    assert days[0] == date(2024, 1, 22)  # pending slot 1 moved to tomorrow
    assert days[2] == date(2024, 2, 29)


def test_reschedule_nothing_overdue_is_noop(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    before = get_subtopic_schedule(tmp_db, "alice", st)
    assert reschedule_revision_to_next_day(tmp_db, "alice", st, now=at(2024, 1, 2), tz=UTC) == 0
    assert get_subtopic_schedule(tmp_db, "alice", st) == before


def test_reschedule_due_today_is_not_overdue(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    assert reschedule_revision_to_next_day(tmp_db, "alice", st, now=at(2024, 1, 8, 23), tz=UTC) == 0


def test_reschedule_all_completed_is_noop(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    for n in range(1, 5):
        mark_specific_revision(tmp_db, "alice", st, n, tz=UTC)
    assert reschedule_revision_to_next_day(tmp_db, "alice", st, now=at(2025, 1, 1), tz=UTC) == 0


def test_update_revision_schedule_returns_current_state(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    mark_specific_revision(tmp_db, "alice", st, 1, tz=UTC)
    schedule = update_revision_schedule(tmp_db, "alice", st, tz=UTC)
    assert schedule.review_statuses == [True, False, False, False]
    assert schedule.next_review == at(2024, 1, 22)


def test_get_revision_schedule_lists_owner_schedules(tmp_db, at):
    st = _easy_subtopic(tmp_db, at)
    mt = create_main_topic(tmp_db, "bob", "Music")
    create_subtopic(tmp_db, "bob", mt, "Scales", "", "hard", at(2024, 1, 1), tz=UTC)
    schedules = get_revision_schedule(tmp_db, "alice")
    assert [s.subtopic_id for s in schedules] == [st]
    assert schedules[0].owner == "alice"
