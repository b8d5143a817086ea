"""
Scheduling engine: a working copy of the project tasks and the operations on it.
"""
import logging
from datetime import date
from typing import Iterable, List, Optional

from planning.cascade import cascade_schedule_update
from planning.exceptions import ProjectScopeError, UnknownTaskError
from planning.graph import DependencyGraph
from planning.models import CriticalPathResult, Task, TaskDependency, Violation
from planning.network import calculate_critical_path
from planning.validation import validate_task_date_change

logger = logging.getLogger(__name__)


class SchedulingEngine:
    """
    Scheduling engine for the tasks of one project.

    Construct it per request from freshly loaded tasks and dependencies, run
    the operations, read the snapshot back and throw the engine away.
    Construction raises CycleError / DanglingReferenceError for broken input.
    """

    def __init__(self, tasks: Iterable[Task], dependencies: Iterable[TaskDependency]):
        tasks = list(tasks)
        project_ids = {task.project_id for task in tasks}
        if len(project_ids) > 1:
            raise ProjectScopeError(f"Tasks belong to several projects: {sorted(project_ids)}")

        self.graph = DependencyGraph.build(tasks, dependencies)
        self._originals = {task.id: task for task in tasks}
        self._tasks = dict(self._originals)
        logger.debug(f"Движок планирования создан: {len(tasks)} задач")

    def get_task(self, task_id: int) -> Task:
        if task_id not in self._tasks:
            raise UnknownTaskError(task_id)
        return self._tasks[task_id]

    def validate_task_date_change(self, task_id: int, new_start: Optional[date],
                                  new_due: Optional[date]) -> List[Violation]:
        return validate_task_date_change(self.graph, self._tasks, task_id, new_start, new_due)

    def cascade_schedule_update(self, task_id: int, new_start: Optional[date],
                                new_due: Optional[date]) -> List[Task]:
        return cascade_schedule_update(self.graph, self._tasks, task_id, new_start, new_due)

    def calculate_critical_path(self) -> CriticalPathResult:
        return calculate_critical_path(self.graph, self._tasks)

    def get_updated_tasks(self) -> List[Task]:
        """Snapshot of the working copy, in the order the tasks were supplied."""
        return [self._tasks[task_id] for task_id in self._originals]

    def get_changed_tasks(self) -> List[Task]:
        """Tasks whose dates or critical path flag differ from what was loaded."""
        return [task for task in self.get_updated_tasks() if task != self._originals[task.id]]
