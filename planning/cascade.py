"""
Cascading reschedule along the dependency graph.
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from planning.constraints import constrains_successor_start, required_successor_date
from planning.exceptions import InvalidDateRangeError, UnknownTaskError
from planning.graph import DependencyGraph
from planning.models import Task, TaskDependency

logger = logging.getLogger(__name__)


def minimum_permissible_start(task: Task, incoming: List[TaskDependency],
                              tasks: Dict[int, Task]) -> Tuple[Optional[date], Optional[TaskDependency]]:
    """
    Returns the latest start any predecessor edge allows, and the edge that sets it.

    Edges are evaluated in dependency id order and a later edge only wins if it
    is strictly more restrictive, so on ties the lowest dependency id binds.
    """
    best = None
    binding = None
    for dependency in sorted(incoming, key=lambda dep: dep.id):
        predecessor = tasks[dependency.predecessor_id]
        required = required_successor_date(dependency, predecessor.start_date, predecessor.due_date)
        if required is None:
            continue
        if not constrains_successor_start(dependency.type):
            # ограничение на окончание переводим в ограничение на начало
            required = required - timedelta(days=task.duration_days)
        if best is None or required > best:
            best = required
            binding = dependency
    return best, binding


def cascade_schedule_update(graph: DependencyGraph, tasks: Dict[int, Task], task_id: int,
                            new_start: Optional[date], new_due: Optional[date]) -> List[Task]:
    """
    Applies new dates to a task and pushes every dependent task forward as needed.

    The working copy in `tasks` is updated with new Task values; a task is only
    ever moved later, never earlier, and keeps its duration.

    Args:
        graph: Dependency graph of the project
        tasks: Working copy of the project tasks by id (updated in place)
        task_id: ID of the task being moved
        new_start: New start date (derived from the duration when None)
        new_due: New due date (derived from the duration when None)

    Returns:
        Changed tasks in the order visited, the moved task first
    """
    if task_id not in tasks:
        raise UnknownTaskError(task_id)
    if new_start and new_due and new_due < new_start:
        raise InvalidDateRangeError(task_id, new_start, new_due)

    origin = tasks[task_id]
    moved = origin.with_dates(new_start, new_due)
    if moved.start_date == origin.start_date and moved.due_date == origin.due_date:
        logger.debug(f"Даты задачи {task_id} не изменились, каскад не требуется")
        return []

    tasks[task_id] = moved
    updated = [moved]
    changed_ids = {task_id}
    affected = graph.reachable_from(task_id)

    order = graph.topological_order()
    for current_id in order[graph.position(task_id) + 1:]:
        if current_id not in affected:
            continue

        incoming = graph.predecessors_of(current_id)
        # Если ни один предшественник не сдвинулся, дальше волна не идет
        if not any(dependency.predecessor_id in changed_ids for dependency in incoming):
            continue

        task = tasks[current_id]
        if not task.is_scheduled:
            logger.debug(f"Задача {current_id} не запланирована, пропускаем")
            continue

        earliest, binding = minimum_permissible_start(task, incoming, tasks)
        if earliest is None or task.start_date >= earliest:
            continue

        shift = (earliest - task.start_date).days
        shifted = task.shifted(shift)
        tasks[current_id] = shifted
        changed_ids.add(current_id)
        updated.append(shifted)
        logger.debug(
            f"Задача {current_id} сдвинута на {shift} дн. "
            f"(связь {binding.id} от задачи {binding.predecessor_id})"
        )

    logger.info(f"Каскадный перенос от задачи {task_id}: изменено задач {len(updated)}")
    return updated
