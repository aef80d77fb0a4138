from __future__ import annotations

import random
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from dreamplan.db.models.activity_log import ActivityLog
from dreamplan.db.models.plan import Plan
from dreamplan.db.models.resource import Resource
from dreamplan.db.models.task import TASK_TYPE_PROOF, TASK_TYPE_QUIZ, DailyTask
from dreamplan.services import habit_generator
from dreamplan.services.habit_generator import HabitPlan
from dreamplan.services.plan_provisioning import (
    PlanProvisioningError,
    provision_plan,
    select_quiz_indices,
)


def test_provision_plan_creates_tasks_quizzes_and_resources(session_factory, fake_generators) -> None:
    user_id = uuid4()
    with session_factory() as db:
        result = provision_plan(db, user_id=user_id, title="Learn guitar", rng=random.Random(7))

        assert result.quiz_failures == 0
        assert len(result.tasks) == 5
        quiz_tasks = [task for task in result.tasks if task.task_type == TASK_TYPE_QUIZ]
        assert len(quiz_tasks) == 2
        assert all(len(task.quiz_questions) == 2 for task in quiz_tasks)
        assert all(task.quiz_questions is None for task in result.tasks if task.task_type == TASK_TYPE_PROOF)
        assert all(task.completed is False for task in result.tasks)
        assert sorted(fake_generators["quiz_calls"]) == sorted(task.title for task in quiz_tasks)

    with session_factory() as db:
        assert db.query(Plan).count() == 1
        assert db.query(DailyTask).filter(DailyTask.user_id == user_id).count() == 5
        resources = db.query(Resource).all()
        assert len(resources) == 5
        assert {resource.resource_type for resource in resources} == {"youtube"}
        assert resources[0].url.startswith("https://www.youtube.com/watch?v=vid")
        log = db.query(ActivityLog).filter(ActivityLog.action_type == "plan_provisioned").one()
        assert len(log.action_payload["task_ids"]) == 5
        assert log.action_payload["resources"] == 5


def test_habit_failure_leaves_only_plan_row(session_factory, fake_generators) -> None:
    fake_generators["fail_habits"] = True

    with session_factory() as db:
        with pytest.raises(PlanProvisioningError) as excinfo:
            provision_plan(db, user_id=uuid4(), title="Learn guitar")

    assert excinfo.value.stage == "habits"
    assert excinfo.value.plan_id is not None
    with session_factory() as db:
        assert db.query(Plan).count() == 1
        assert db.query(DailyTask).count() == 0
        assert db.query(Resource).count() == 0


def test_quiz_failure_is_isolated_per_task(session_factory, fake_generators) -> None:
    rng = random.Random(3)
    expected = select_quiz_indices(5, random.Random(3))
    failing_index = min(expected)
    with session_factory() as db:
        habit_titles = habit_generator.generate_habits("Learn guitar").habits
        fake_generators["fail_quiz_for"].add(habit_titles[failing_index])

        result = provision_plan(db, user_id=uuid4(), title="Learn guitar", rng=rng)

    assert result.quiz_failures == 1
    assert len(result.tasks) == 5
    assert len(result.resources) == 5
    with session_factory() as db:
        quiz_tasks = db.query(DailyTask).filter(DailyTask.task_type == TASK_TYPE_QUIZ).all()
        assert len(quiz_tasks) == 2
        assert sorted(task.quiz_questions is None for task in quiz_tasks) == [False, True]


def test_plan_without_videos_creates_no_resources(session_factory, fake_generators) -> None:
    original = habit_generator.generate_habits

    def no_videos(dream, timeline=None):
        plan = original(dream, timeline)
        return HabitPlan(habits=plan.habits, videos=[])

    with session_factory() as db:
        result = provision_plan(db, user_id=uuid4(), title="Learn guitar", habit_generator=no_videos)

    assert result.resources == []
    assert len(result.tasks) == 5


@pytest.mark.parametrize("count", [0, 1, 2, 3, 4, 5])
def test_select_quiz_indices_picks_distinct_positions(count) -> None:
    indices = select_quiz_indices(count, random.Random(11))

    assert len(indices) == min(2, count)
    assert all(0 <= index < count for index in indices)


def test_select_quiz_indices_is_deterministic_for_seed() -> None:
    assert select_quiz_indices(5, random.Random(42)) == select_quiz_indices(5, random.Random(42))



def test_task_save_failure_leaves_only_plan_row(session_factory, fake_generators, fail_commit_with_pending) -> None:
    fail_commit_with_pending(DailyTask)

    with session_factory() as db:
        with pytest.raises(PlanProvisioningError) as excinfo:
            provision_plan(db, user_id=uuid4(), title="Learn guitar")

    assert excinfo.value.stage == "tasks"
    assert excinfo.value.plan_id is not None
    assert fake_generators["quiz_calls"] == []
    with session_factory() as db:
        assert db.query(Plan).count() == 1
        assert db.query(DailyTask).count() == 0
        assert db.query(Resource).count() == 0


def test_resource_save_failure_propagates_and_keeps_tasks(
    session_factory, fake_generators, fail_commit_with_pending
) -> None:
    fail_commit_with_pending(Resource)

    with session_factory() as db:
        with pytest.raises(OperationalError):
            provision_plan(db, user_id=uuid4(), title="Learn guitar")

    with session_factory() as db:
        assert db.query(Plan).count() == 1
        assert db.query(DailyTask).count() == 5
        assert db.query(Resource).count() == 0
        assert db.query(ActivityLog).filter(ActivityLog.action_type == "plan_provisioned").count() == 0
