"""Tests for core task logic."""

from datetime import date

import pytest

from dayview.core.tasks import (
    RawTask,
    Task,
    filter_incomplete,
    normalize_task,
    parse_due_date,
)


class TestParseDueDate:
    def test_utc_midnight_is_literal_date(self):
        assert parse_due_date("2026-01-18T00:00:00.000Z") == date(2026, 1, 18)

    def test_plain_date(self):
        assert parse_due_date("2026-01-18") == date(2026, 1, 18)

    def test_offset_does_not_shift_date(self):
        assert parse_due_date("2026-01-18T00:00:00-05:00") == date(2026, 1, 18)

    @pytest.mark.parametrize("value", [None, "", "not a date", "2026-13-40T00:00:00Z"])
    def test_unusable_values(self, value):
        assert parse_due_date(value) is None

    def test_idempotent_through_isoformat(self):
        first = parse_due_date("2026-01-18T00:00:00.000Z")
        assert parse_due_date(first.isoformat()) == first


class TestRawTaskFromApi:
    def test_full_resource(self):
        raw = RawTask.from_api(
            {
                "id": "t1",
                "title": "Read chapter 3",
                "notes": "pages 40-60",
                "status": "completed",
                "due": "2026-01-18T00:00:00.000Z",
            }
        )
        assert raw == RawTask(
            id="t1",
            title="Read chapter 3",
            notes="pages 40-60",
            status="completed",
            due=date(2026, 1, 18),
        )

    def test_missing_fields_are_defaulted(self):
        raw = RawTask.from_api({"id": "t2"})
        assert raw.title == ""
        assert raw.notes is None
        assert raw.status == "needsAction"
        assert raw.due is None
        assert raw.deleted is False

    def test_unknown_status_means_needs_action(self):
        assert RawTask.from_api({"id": "t3", "status": "weird"}).status == "needsAction"

    def test_empty_notes_become_none(self):
        assert RawTask.from_api({"id": "t4", "notes": ""}).notes is None

    def test_deleted_flag(self):
        assert RawTask.from_api({"id": "t5", "deleted": True}).deleted is True


class TestNormalizeTask:
    def test_dated_task(self):
        task = normalize_task(RawTask(id="t1", title="Essay", due=date(2026, 1, 18)))
        assert task.due_date == "2026-01-18"
        assert task.is_completed is False
        assert task.time_of_day is None
        assert not task.is_undated

    def test_undated_task(self):
        task = normalize_task(RawTask(id="t1", title="Someday"))
        assert task.due_date == ""
        assert task.is_undated

    def test_completed_status(self):
        task = normalize_task(RawTask(id="t1", title="Done", status="completed"))
        assert task.is_completed is True

    def test_notes_carry_over(self):
        task = normalize_task(RawTask(id="t1", title="Essay", notes="draft first"))
        assert task.notes == "draft first"


class TestFilterIncomplete:
    def test_drops_completed(self):
        tasks = [
            Task(id="a", title="A", notes=None, is_completed=False, due_date=""),
            Task(id="b", title="B", notes=None, is_completed=True, due_date=""),
        ]
        assert [t.id for t in filter_incomplete(tasks)] == ["a"]
