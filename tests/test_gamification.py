# tests/test_gamification.py

from datetime import date, timedelta

import pytest

from core.models import Task
from services.gamification import next_streak

from .helpers import task_data

DAY_1 = date(2024, 3, 1)


def _task(user_id: str = "alice") -> Task:
    return Task.create(user_id=user_id, **task_data())


@pytest.mark.parametrize("last, current, today, expected", [
    (None, 0, DAY_1, 1),
    (DAY_1, 1, DAY_1, 1),
    (DAY_1, 4, DAY_1 + timedelta(days=1), 5),
    (DAY_1, 4, DAY_1 + timedelta(days=2), 1),
    (DAY_1, 4, DAY_1 - timedelta(days=1), 1),
])
def test_next_streak(last, current, today, expected) -> None:
    assert next_streak(last, current, today) == expected


@pytest.mark.asyncio
async def test_stats_are_created_lazily(tracker, stats_repository) -> None:
    stats = await tracker.get_user_stats("alice")

    assert stats.current_streak == 0
    assert stats.achievements == []
    assert (await stats_repository.get_or_create("alice")).user_id == "alice"


@pytest.mark.asyncio
async def test_record_task_created_increments_counter(tracker) -> None:
    await tracker.record_task_created("alice")
    await tracker.record_task_created("alice")

    assert (await tracker.get_user_stats("alice")).total_tasks_created == 2


@pytest.mark.asyncio
async def test_gap_day_resets_streak(tracker) -> None:
    await tracker.record_task_completed("alice", _task(), today=DAY_1)
    assert (await tracker.get_user_stats("alice")).current_streak == 1

    await tracker.record_task_completed("alice", _task(), today=DAY_1 + timedelta(days=2))
    stats = await tracker.get_user_stats("alice")

    assert stats.current_streak == 1
    assert stats.last_activity_date == DAY_1 + timedelta(days=2)


@pytest.mark.asyncio
async def test_consecutive_days_grow_streak(tracker) -> None:
    for offset in range(3):
        await tracker.record_task_completed("alice", _task(), today=DAY_1 + timedelta(days=offset))
    # Второе выполнение в тот же день серию не меняет
    await tracker.record_task_completed("alice", _task(), today=DAY_1 + timedelta(days=2))

    stats = await tracker.get_user_stats("alice")
    assert stats.current_streak == 3
    assert stats.longest_streak >= 3
    assert stats.total_tasks_completed == 4


@pytest.mark.asyncio
async def test_longest_streak_survives_reset(tracker) -> None:
    for offset in range(4):
        await tracker.record_task_completed("alice", _task(), today=DAY_1 + timedelta(days=offset))
    await tracker.record_task_completed("alice", _task(), today=DAY_1 + timedelta(days=10))

    stats = await tracker.get_user_stats("alice")
    assert stats.current_streak == 1
    assert stats.longest_streak == 4


@pytest.mark.asyncio
async def test_streak_achievement_unlocked_once(tracker, stats_repository) -> None:
    stats = await tracker.get_user_stats("alice")
    stats.current_streak = 6
    stats.last_activity_date = DAY_1
    await stats_repository.save(stats)

    unlocked = await tracker.record_task_completed("alice", _task(), today=DAY_1 + timedelta(days=1))
    assert [(a.type, a.value) for a in unlocked] == [("streak", 7)]

    # 7 -> 6 -> 7
    stats = await tracker.get_user_stats("alice")
    stats.current_streak = 6
    await stats_repository.save(stats)
    unlocked = await tracker.record_task_completed("alice", _task(), today=DAY_1 + timedelta(days=2))

    stats = await tracker.get_user_stats("alice")
    assert unlocked == []
    assert stats.current_streak == 7
    assert [(a.type, a.value) for a in stats.achievements] == [("streak", 7)]


@pytest.mark.asyncio
async def test_milestone_requires_exact_count(tracker, stats_repository) -> None:
    stats = await tracker.get_user_stats("alice")
    stats.total_tasks_completed = 99
    await stats_repository.save(stats)

    unlocked = await tracker.record_task_completed("alice", _task(), today=DAY_1)
    assert [(a.type, a.value) for a in unlocked] == [("milestone", 100)]

    bob = await tracker.get_user_stats("bob")
    bob.total_tasks_completed = 100
    await stats_repository.save(bob)

    assert await tracker.record_task_completed("bob", _task("bob"), today=DAY_1) == []


@pytest.mark.asyncio
async def test_focus_session_counters(tracker) -> None:
    await tracker.record_focus_session("alice", 25)
    await tracker.record_focus_session("alice", 15)

    stats = await tracker.get_user_stats("alice")
    assert stats.total_pomodoros == 2
    assert stats.total_focus_minutes == 40
