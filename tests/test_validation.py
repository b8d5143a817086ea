"""Tests for one-hop date change validation."""
import pytest

from conftest import day
from planning.exceptions import UnknownTaskError
from planning.graph import DependencyGraph
from planning.models import DependencyType, Task, TaskDependency
from planning.validation import validate_task_date_change


def validate(tasks, dependencies, task_id, new_start, new_due):
    graph = DependencyGraph.build(tasks, dependencies)
    return validate_task_date_change(graph, {task.id: task for task in tasks}, task_id, new_start, new_due)


def pair(dependency_type, lag=0, predecessor=(0, 5), successor=(5, 8)):
    tasks = [
        Task(id=1, project_id=1, start_date=day(predecessor[0]), due_date=day(predecessor[1]), title="A"),
        Task(id=2, project_id=1, start_date=day(successor[0]), due_date=day(successor[1]), title="B"),
    ]
    dependencies = [TaskDependency(id=10, predecessor_id=1, successor_id=2, type=dependency_type, lag_days=lag)]
    return tasks, dependencies


def test_no_op_change_has_no_violations(scenario):
    tasks, dependencies = scenario
    for task in tasks:
        assert validate(tasks, dependencies, task.id, task.start_date, task.due_date) == []


def test_no_op_change_on_inconsistent_schedule_has_no_violations():
    tasks, dependencies = pair(DependencyType.FINISH_TO_START, successor=(2, 4))
    assert validate(tasks, dependencies, 2, day(2), day(4)) == []


def test_consistent_change_has_no_violations(scenario):
    tasks, dependencies = scenario
    assert validate(tasks, dependencies, 2, day(6), day(8)) == []


def test_finish_to_start_predecessor_violation(scenario):
    tasks, dependencies = scenario
    violations = validate(tasks, dependencies, 2, day(4), day(7))

    assert len(violations) == 1
    violation = violations[0]
    assert violation.task_id == 2
    assert violation.dependency.id == 1
    assert violation.related_task_id == 1
    assert violation.side == "predecessor"
    assert violation.shortfall_days == 1
    assert violation.message == "Task 'B' cannot start before 'A' finishes (1 day too early)"


def test_finish_to_start_successor_violation_when_delaying(scenario):
    tasks, dependencies = scenario
    violations = validate(tasks, dependencies, 1, day(0), day(7))

    assert len(violations) == 1
    violation = violations[0]
    assert violation.side == "successor"
    assert violation.related_task_id == 2
    assert violation.shortfall_days == 2
    assert violation.resolvable_by_cascade
    assert violation.message == "Task 'B' would start 2 days before 'A' finishes"


def test_start_to_start_with_lag():
    tasks, dependencies = pair(DependencyType.START_TO_START, lag=2, successor=(2, 5))
    violations = validate(tasks, dependencies, 2, day(1), day(4))
    assert [v.message for v in violations] == [
        "Task 'B' cannot start before 'A' starts (1 day too early) (with +2 day lag)"
    ]


def test_finish_to_finish():
    tasks, dependencies = pair(DependencyType.FINISH_TO_FINISH, successor=(3, 6))
    violations = validate(tasks, dependencies, 2, day(1), day(4))
    assert [v.message for v in violations] == ["Task 'B' cannot finish before 'A' finishes (1 day too early)"]


def test_start_to_finish():
    tasks, dependencies = pair(DependencyType.START_TO_FINISH, predecessor=(3, 6), successor=(1, 4))
    violations = validate(tasks, dependencies, 2, day(0), day(2))
    assert len(violations) == 1
    assert violations[0].shortfall_days == 1
    assert violations[0].message == "Task 'B' cannot finish before 'A' starts (1 day too early)"


def test_negative_lag_allows_overlap():
    tasks, dependencies = pair(DependencyType.FINISH_TO_START, lag=-2, successor=(3, 6))
    assert validate(tasks, dependencies, 2, day(4), day(7)) == []
    violations = validate(tasks, dependencies, 2, day(2), day(5))
    assert violations[0].message == "Task 'B' cannot start before 'A' finishes (1 day too early) (with -2 day lag)"


@pytest.mark.parametrize("dependency_type, new_dates", [
    (DependencyType.START_TO_START, (6, 9)),
    (DependencyType.FINISH_TO_FINISH, (5, 9)),
    (DependencyType.START_TO_FINISH, (9, 12)),
])
def test_successor_side_rules(dependency_type, new_dates):
    # B = day 5-8; перенос A так, чтобы B оказалась раньше допустимого
    tasks, dependencies = pair(dependency_type)
    violations = validate(tasks, dependencies, 1, day(new_dates[0]), day(new_dates[1]))
    assert len(violations) == 1
    assert violations[0].side == "successor"


def test_only_direct_neighbours_are_checked(scenario):
    tasks, dependencies = scenario
    # перенос A сталкивается с B, но C (через B) не проверяется
    violations = validate(tasks, dependencies, 1, day(0), day(20))
    assert [v.related_task_id for v in violations] == [2]


def test_inverted_range_is_reported():
    tasks, dependencies = pair(DependencyType.FINISH_TO_START)
    violations = validate(tasks, dependencies, 2, day(9), day(7))
    assert len(violations) == 1
    assert violations[0].side == "self"
    assert violations[0].dependency is None
    assert violations[0].shortfall_days == 2


def test_missing_neighbour_dates_are_skipped():
    tasks = [
        Task(id=1, project_id=1, duration=3, title="A"),
        Task(id=2, project_id=1, start_date=day(0), due_date=day(2), title="B"),
    ]
    dependencies = [TaskDependency(id=1, predecessor_id=1, successor_id=2)]
    assert validate(tasks, dependencies, 2, day(0), day(1)) == []


def test_validation_does_not_mutate(scenario):
    tasks, dependencies = scenario
    graph = DependencyGraph.build(tasks, dependencies)
    working = {task.id: task for task in tasks}
    snapshot = dict(working)
    validate_task_date_change(graph, working, 2, day(1), day(3))
    assert working == snapshot


def test_unknown_task(scenario):
    with pytest.raises(UnknownTaskError):
        validate(*scenario, 99, day(0), day(1))


def test_start_only_change_checks_derived_finish_against_ff_predecessor():
    tasks, dependencies = pair(DependencyType.FINISH_TO_FINISH, predecessor=(0, 10), successor=(8, 10))
    # B keeps its 2 days, so it would finish on day 4 while A finishes on day 10
    violations = validate(tasks, dependencies, 2, day(2), None)
    assert [v.message for v in violations] == ["Task 'B' cannot finish before 'A' finishes (6 days too early)"]
    assert violations[0].side == "predecessor"


def test_due_only_change_checks_derived_start_against_fs_predecessor():
    tasks, dependencies = pair(DependencyType.FINISH_TO_START)
    violations = validate(tasks, dependencies, 2, None, day(6))
    assert [v.shortfall_days for v in violations] == [2]


def test_single_date_equal_to_current_is_a_no_op():
    tasks, dependencies = pair(DependencyType.FINISH_TO_START, successor=(2, 4))
    assert validate(tasks, dependencies, 2, day(2), None) == []


def test_milestone_with_date_span_is_reported():
    tasks = [Task(id=1, project_id=1, start_date=day(3), due_date=day(3), is_milestone=True, title="M")]
    violations = validate(tasks, [], 1, day(3), day(5))
    assert len(violations) == 1
    assert violations[0].side == "self"
    assert violations[0].message.startswith("Milestone 'M' must start and finish on the same day")
