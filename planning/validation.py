"""
Validation of a proposed date change against the direct neighbours of a task.
"""
from datetime import date
from typing import Dict, List, Optional

from planning.constraints import (
    FINISH_DRIVEN,
    constrains_successor_start,
    required_successor_date,
    successor_anchor,
)
from planning.exceptions import UnknownTaskError
from planning.graph import DependencyGraph
from planning.models import Task, TaskDependency, Violation


def _days(count):
    return f"{count} day" if count == 1 else f"{count} days"


def _lag_suffix(dependency: TaskDependency) -> str:
    if not dependency.lag_days:
        return ""
    sign = "+" if dependency.lag_days > 0 else ""
    return f" (with {sign}{dependency.lag_days} day lag)"


def _verbs(dependency: TaskDependency):
    successor_verb = "start" if constrains_successor_start(dependency.type) else "finish"
    predecessor_verb = "finishes" if dependency.type in FINISH_DRIVEN else "starts"
    return successor_verb, predecessor_verb


def _predecessor_message(task, predecessor, dependency, shortfall):
    successor_verb, predecessor_verb = _verbs(dependency)
    return (
        f"Task '{task.name}' cannot {successor_verb} before '{predecessor.name}' {predecessor_verb} "
        f"({_days(shortfall)} too early){_lag_suffix(dependency)}"
    )


def _successor_message(task, successor, dependency, shortfall):
    successor_verb, predecessor_verb = _verbs(dependency)
    return (
        f"Task '{successor.name}' would {successor_verb} {_days(shortfall)} before "
        f"'{task.name}' {predecessor_verb}{_lag_suffix(dependency)}"
    )


def validate_task_date_change(graph: DependencyGraph, tasks: Dict[int, Task], task_id: int,
                              new_start: Optional[date], new_due: Optional[date]) -> List[Violation]:
    """
    Checks a proposed date change against the task's direct predecessors and successors.

    Only one hop is inspected; transitive consistency is what the cascade is for.
    Nothing is modified.

    Args:
        graph: Dependency graph of the project
        tasks: Working copy of the project tasks by id
        task_id: ID of the task being changed
        new_start: Proposed start date (derived from the duration when None)
        new_due: Proposed due date (derived from the duration when None)

    Returns:
        List of violations, empty if the change fits the current neighbours
    """
    if task_id not in tasks:
        raise UnknownTaskError(task_id)

    task = tasks[task_id]
    if new_start and new_due and new_due < new_start:
        return [Violation(
            task_id=task_id,
            dependency=None,
            message=f"Task '{task.name}' cannot finish ({new_due}) before it starts ({new_start})",
            side="self",
            shortfall_days=(new_start - new_due).days,
        )]

    if task.is_milestone and new_start and new_due and new_start != new_due:
        return [Violation(
            task_id=task_id,
            dependency=None,
            message=f"Milestone '{task.name}' must start and finish on the same day ({new_start} - {new_due})",
            side="self",
            shortfall_days=(new_due - new_start).days,
        )]

    # Недостающая дата выводится из длительности так же, как при каскаде
    proposed = task.with_dates(new_start, new_due)
    new_start, new_due = proposed.start_date, proposed.due_date
    if new_start == task.start_date and new_due == task.due_date:
        return []

    violations = []

    # Предшественники ограничивают новые даты снизу
    for dependency in graph.predecessors_of(task_id):
        predecessor = tasks[dependency.predecessor_id]
        required = required_successor_date(dependency, predecessor.start_date, predecessor.due_date)
        actual = successor_anchor(dependency.type, new_start, new_due)
        if required is None or actual is None or actual >= required:
            continue
        shortfall = (required - actual).days
        violations.append(Violation(
            task_id=task_id,
            dependency=dependency,
            message=_predecessor_message(task, predecessor, dependency, shortfall),
            related_task_id=predecessor.id,
            side="predecessor",
            shortfall_days=shortfall,
        ))

    # Последователи в их текущих датах не должны оказаться раньше допустимого
    for dependency in graph.successors_of(task_id):
        successor = tasks[dependency.successor_id]
        required = required_successor_date(dependency, new_start, new_due)
        actual = successor_anchor(dependency.type, successor.start_date, successor.due_date)
        if required is None or actual is None or actual >= required:
            continue
        shortfall = (required - actual).days
        violations.append(Violation(
            task_id=task_id,
            dependency=dependency,
            message=_successor_message(task, successor, dependency, shortfall),
            related_task_id=successor.id,
            side="successor",
            shortfall_days=shortfall,
        ))

    return violations
