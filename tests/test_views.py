# tests/test_views.py

import pytest

from core.models import ValidationError

from .helpers import task_data, utc

NOW = utc(2024, 1, 10, 12)


@pytest.mark.asyncio
async def test_unknown_view_is_rejected(views_service) -> None:
    with pytest.raises(ValidationError):
        await views_service.get_view("alice", "gantt")


@pytest.mark.asyncio
async def test_list_view_uses_canonical_order(task_service, views_service) -> None:
    await task_service.create_task("alice", task_data("Low", "2024-01-09T10:00:00Z", "low"))
    await task_service.create_task("alice", task_data("High", "2024-01-20T10:00:00Z", "high"))

    tasks = await views_service.get_view("alice", "list")

    assert [t.title for t in tasks] == ["High", "Low"]


@pytest.mark.asyncio
async def test_kanban_groups_by_status(task_service, views_service) -> None:
    first = await task_service.create_task("alice", task_data("First", "2024-01-10T10:00:00Z"))
    second = await task_service.create_task("alice", task_data("Second", "2024-01-10T11:00:00Z"))
    third = await task_service.create_task("alice", task_data("Third", "2024-01-10T12:00:00Z"))
    await task_service.update_status(second.task_id, "alice", "done")
    await task_service.update_status(third.task_id, "alice", "archived")

    board = await views_service.get_view("alice", "kanban")

    assert list(board) == ["pending", "done", "not_needed"]
    assert [t.task_id for t in board["pending"]] == [first.task_id]
    assert [t.task_id for t in board["done"]] == [second.task_id]
    assert board["not_needed"] == []


@pytest.mark.asyncio
async def test_calendar_groups_pending_by_day(task_service, views_service) -> None:
    await task_service.create_task("alice", task_data("Morning", "2024-01-11T08:00:00Z", "low"))
    await task_service.create_task("alice", task_data("Evening", "2024-01-11T20:00:00Z", "high"))
    earlier = await task_service.create_task("alice", task_data("Earlier", "2024-01-09T08:00:00Z"))
    finished = await task_service.create_task("alice", task_data("Finished", "2024-01-12T08:00:00Z"))
    await task_service.update_status(finished.task_id, "alice", "done")

    calendar = await views_service.get_view("alice", "calendar")

    assert list(calendar) == ["2024-01-09", "2024-01-11"]
    assert [t.task_id for t in calendar["2024-01-09"]["tasks"]] == [earlier.task_id]
    assert calendar["2024-01-11"]["top_priority"] == "high"
    assert [t.title for t in calendar["2024-01-11"]["tasks"]] == ["Evening", "Morning"]


@pytest.mark.asyncio
async def test_timeline_buckets(task_service, views_service) -> None:
    titles = {
        "Overdue": "2024-01-09T10:00:00Z",
        "Today": "2024-01-10T10:30:00Z",
        "Tomorrow": "2024-01-11T09:00:00Z",
        "Week": "2024-01-14T09:00:00Z",
        "Later": "2024-02-01T09:00:00Z",
    }
    for title, deadline in titles.items():
        await task_service.create_task("alice", task_data(title, deadline))

    timeline = await views_service.get_view("alice", "timeline", now=NOW)

    assert {bucket: [t.title for t in tasks] for bucket, tasks in timeline.items()} == {
        "overdue": ["Overdue"],
        "today": ["Today"],
        "tomorrow": ["Tomorrow"],
        "this_week": ["Week"],
        "later": ["Later"],
    }


@pytest.mark.asyncio
async def test_matrix_quadrants(task_service, views_service) -> None:
    await task_service.create_task("alice", task_data("Fire", "2024-01-10T18:00:00Z", "high"))
    await task_service.create_task("alice", task_data("Plan", "2024-01-20T18:00:00Z", "high"))
    await task_service.create_task("alice", task_data("Call", "2024-01-11T11:00:00Z", "medium"))
    await task_service.create_task("alice", task_data("Someday", "2024-03-01T18:00:00Z", "low"))

    matrix = await views_service.get_view("alice", "matrix", now=NOW)

    assert {name: [t.title for t in tasks] for name, tasks in matrix.items()} == {
        "urgent_important": ["Fire"],
        "not_urgent_important": ["Plan"],
        "urgent_not_important": ["Call"],
        "not_urgent_not_important": ["Someday"],
    }


@pytest.mark.asyncio
async def test_summary_counts(task_service, views_service) -> None:
    await task_service.create_task("alice", task_data("A", "2024-01-10T10:00:00Z", "high"))
    await task_service.create_task("alice", task_data("B", "2024-01-10T11:00:00Z", "low"))
    done = await task_service.create_task("alice", task_data("C", "2024-01-10T12:00:00Z", "high"))
    await task_service.update_status(done.task_id, "alice", "done")

    summary = await views_service.summary("alice")

    assert summary["total"] == 3
    assert summary["pending_by_priority"] == {"high": 1, "medium": 0, "low": 1}
    assert summary["by_status"]["done"] == 1
    assert summary["by_status"]["pending"] == 2
