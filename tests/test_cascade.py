"""Tests for the cascading rescheduler."""
import random
from datetime import timedelta

import pytest

from conftest import day
from planning.cascade import cascade_schedule_update, minimum_permissible_start
from planning.constraints import required_successor_date, successor_anchor
from planning.exceptions import InvalidDateRangeError, UnknownTaskError
from planning.graph import DependencyGraph
from planning.models import DependencyType, Task, TaskDependency


def run_cascade(tasks, dependencies, task_id, new_start, new_due):
    graph = DependencyGraph.build(tasks, dependencies)
    working = {task.id: task for task in tasks}
    updated = cascade_schedule_update(graph, working, task_id, new_start, new_due)
    return updated, working


def dates(task):
    return task.start_date, task.due_date


class TestScenario:

    def test_delay_ripples_down_the_chain(self, scenario):
        tasks, dependencies = scenario
        updated, working = run_cascade(tasks, dependencies, 1, day(0), day(7))

        assert [task.id for task in updated] == [1, 2, 3]
        assert dates(working[1]) == (day(0), day(7))
        assert dates(working[2]) == (day(7), day(10))
        assert dates(working[3]) == (day(10), day(12))
        assert working[4] == tasks[3]

    def test_cascade_is_idempotent(self, scenario):
        tasks, dependencies = scenario
        graph = DependencyGraph.build(tasks, dependencies)
        working = {task.id: task for task in tasks}

        cascade_schedule_update(graph, working, 1, day(0), day(7))
        snapshot = dict(working)

        assert cascade_schedule_update(graph, working, 1, day(0), day(7)) == []
        assert working == snapshot

    def test_no_op_change_returns_nothing(self, scenario):
        tasks, dependencies = scenario
        updated, working = run_cascade(tasks, dependencies, 2, day(5), day(8))
        assert updated == []

    def test_small_delay_absorbed_by_slack_stops_propagation(self):
        tasks = [
            Task(id=1, project_id=1, start_date=day(0), due_date=day(5), title="A"),
            Task(id=2, project_id=1, start_date=day(7), due_date=day(9), title="B"),
            Task(id=3, project_id=1, start_date=day(9), due_date=day(10), title="C"),
        ]
        dependencies = [
            TaskDependency(id=1, predecessor_id=1, successor_id=2),
            TaskDependency(id=2, predecessor_id=2, successor_id=3),
        ]
        updated, working = run_cascade(tasks, dependencies, 1, day(0), day(6))
        assert [task.id for task in updated] == [1]
        assert dates(working[2]) == (day(7), day(9))

    def test_moving_earlier_never_pulls_successors(self, scenario):
        tasks, dependencies = scenario
        updated, working = run_cascade(tasks, dependencies, 1, day(0), day(2))
        assert [task.id for task in updated] == [1]
        assert dates(working[2]) == (day(5), day(8))


class TestDependencyTypes:

    def test_finish_to_finish_keeps_successor_duration(self):
        tasks = [
            Task(id=1, project_id=1, start_date=day(0), due_date=day(5)),
            Task(id=2, project_id=1, start_date=day(2), due_date=day(5)),
        ]
        dependencies = [TaskDependency(id=1, predecessor_id=1, successor_id=2, type=DependencyType.FINISH_TO_FINISH)]
        updated, working = run_cascade(tasks, dependencies, 1, day(0), day(8))
        assert dates(working[2]) == (day(5), day(8))

    def test_start_to_start_with_lag(self):
        tasks = [
            Task(id=1, project_id=1, start_date=day(0), due_date=day(5)),
            Task(id=2, project_id=1, start_date=day(2), due_date=day(4)),
        ]
        dependencies = [
            TaskDependency(id=1, predecessor_id=1, successor_id=2, type=DependencyType.START_TO_START, lag_days=2)
        ]
        updated, working = run_cascade(tasks, dependencies, 1, day(3), day(8))
        assert dates(working[2]) == (day(5), day(7))

    def test_start_to_finish(self):
        tasks = [
            Task(id=1, project_id=1, start_date=day(0), due_date=day(5)),
            Task(id=2, project_id=1, start_date=day(0), due_date=day(1)),
        ]
        dependencies = [TaskDependency(id=1, predecessor_id=1, successor_id=2, type=DependencyType.START_TO_FINISH)]
        updated, working = run_cascade(tasks, dependencies, 1, day(4), day(9))
        assert dates(working[2]) == (day(3), day(4))


class TestMultiplePredecessors:

    def test_most_restrictive_predecessor_wins(self):
        tasks = [
            Task(id=1, project_id=1, start_date=day(0), due_date=day(3)),
            Task(id=2, project_id=1, start_date=day(0), due_date=day(4)),
            Task(id=3, project_id=1, start_date=day(4), due_date=day(6)),
        ]
        dependencies = [
            TaskDependency(id=1, predecessor_id=1, successor_id=3),
            TaskDependency(id=2, predecessor_id=2, successor_id=3, lag_days=1),
        ]
        # A задерживается до 6, но B с задержкой 1 требует начала не раньше 5
        updated, working = run_cascade(tasks, dependencies, 1, day(0), day(6))
        assert dates(working[3]) == (day(6), day(8))

        updated, working = run_cascade(tasks, dependencies, 1, day(0), day(4))
        # A требует 4, B требует 5: C сдвигается до 5
        assert dates(working[3]) == (day(5), day(7))

    def test_tie_goes_to_lowest_dependency_id(self):
        tasks = {
            1: Task(id=1, project_id=1, start_date=day(0), due_date=day(4)),
            2: Task(id=2, project_id=1, start_date=day(0), due_date=day(4)),
            3: Task(id=3, project_id=1, start_date=day(0), due_date=day(1)),
        }
        incoming = [
            TaskDependency(id=7, predecessor_id=2, successor_id=3),
            TaskDependency(id=3, predecessor_id=1, successor_id=3),
        ]
        earliest, binding = minimum_permissible_start(tasks[3], incoming, tasks)
        assert earliest == day(4)
        assert binding.id == 3

    def test_diamond_shifts_join_once(self):
        tasks = [
            Task(id=1, project_id=1, start_date=day(0), due_date=day(2)),
            Task(id=2, project_id=1, start_date=day(2), due_date=day(4)),
            Task(id=3, project_id=1, start_date=day(2), due_date=day(5)),
            Task(id=4, project_id=1, start_date=day(5), due_date=day(6)),
        ]
        dependencies = [
            TaskDependency(id=1, predecessor_id=1, successor_id=2),
            TaskDependency(id=2, predecessor_id=1, successor_id=3),
            TaskDependency(id=3, predecessor_id=2, successor_id=4),
            TaskDependency(id=4, predecessor_id=3, successor_id=4),
        ]
        updated, working = run_cascade(tasks, dependencies, 1, day(0), day(4))
        assert [task.id for task in updated] == [1, 2, 3, 4]
        assert dates(working[4]) == (day(7), day(8))


class TestEdgeCases:

    def test_unscheduled_successor_is_left_alone(self):
        tasks = [
            Task(id=1, project_id=1, start_date=day(0), due_date=day(2)),
            Task(id=2, project_id=1, duration=3),
        ]
        dependencies = [TaskDependency(id=1, predecessor_id=1, successor_id=2)]
        updated, working = run_cascade(tasks, dependencies, 1, day(0), day(5))
        assert [task.id for task in updated] == [1]
        assert working[2].start_date is None

    def test_missing_due_date_is_derived_from_duration(self, scenario):
        tasks, dependencies = scenario
        updated, working = run_cascade(tasks, dependencies, 1, day(3), None)
        assert dates(working[1]) == (day(3), day(8))
        assert dates(working[2]) == (day(8), day(11))

    def test_inverted_range_is_rejected(self, scenario):
        with pytest.raises(InvalidDateRangeError):
            run_cascade(*scenario, 1, day(5), day(1))

    def test_unknown_task(self, scenario):
        with pytest.raises(UnknownTaskError):
            run_cascade(*scenario, 42, day(0), day(1))


def random_project(rng, size=12):
    """Случайный ацикличный проект с изначально согласованным расписанием."""
    types = list(DependencyType)
    dependencies = []
    for successor_id in range(2, size + 1):
        for predecessor_id in rng.sample(range(1, successor_id), k=min(successor_id - 1, rng.randint(0, 2))):
            dependencies.append(TaskDependency(
                id=len(dependencies) + 1,
                predecessor_id=predecessor_id,
                successor_id=successor_id,
                type=rng.choice(types),
                lag_days=rng.randint(-2, 3),
            ))

    tasks = {}
    for task_id in range(1, size + 1):
        duration = rng.randint(0, 5)
        draft = Task(id=task_id, project_id=1, start_date=day(0), due_date=day(duration))
        incoming = [dep for dep in dependencies if dep.successor_id == task_id]
        earliest, _ = minimum_permissible_start(draft, incoming, tasks)
        start = max(day(0), earliest or day(0)) + timedelta(days=rng.randint(0, 2))
        tasks[task_id] = Task(id=task_id, project_id=1, start_date=start,
                              due_date=start + timedelta(days=duration))
    return list(tasks.values()), dependencies


@pytest.mark.parametrize("seed", range(25))
def test_cascade_properties_on_random_projects(seed):
    rng = random.Random(seed)
    tasks, dependencies = random_project(rng)
    before = {task.id: task for task in tasks}

    origin = rng.choice(tasks)
    delay = timedelta(days=rng.randint(1, 6))
    new_start, new_due = origin.start_date + delay, origin.due_date + delay

    graph = DependencyGraph.build(tasks, dependencies)
    working = dict(before)
    updated = cascade_schedule_update(graph, working, origin.id, new_start, new_due)

    # каждая связь выполняется после каскада
    for dependency in dependencies:
        predecessor = working[dependency.predecessor_id]
        successor = working[dependency.successor_id]
        required = required_successor_date(dependency, predecessor.start_date, predecessor.due_date)
        assert successor_anchor(dependency.type, successor.start_date, successor.due_date) >= required

    # задачи только сдвигаются вперед и сохраняют длительность
    for task_id, task in working.items():
        assert task.start_date >= before[task_id].start_date
        assert task.duration_days == before[task_id].duration_days

    assert updated[0].id == origin.id
    assert {task.id for task in updated} == {task_id for task_id in working if working[task_id] != before[task_id]}

    # повторный вызов ничего не меняет
    assert cascade_schedule_update(graph, working, origin.id, new_start, new_due) == []
