"""
Exceptions raised by the scheduling engine.
"""


class SchedulingError(Exception):
    """Base class for scheduling engine failures."""


class CycleError(SchedulingError):
    """The dependency set of a project is not a DAG; task_ids are the tasks on the cycle."""

    def __init__(self, task_ids):
        self.task_ids = list(task_ids)
        super().__init__(
            f"Circular dependency between tasks: {', '.join(str(task_id) for task_id in self.task_ids)}"
        )


class DanglingReferenceError(SchedulingError):
    """A dependency references a task that is not part of the project."""

    def __init__(self, dependency, missing_task_id):
        self.dependency = dependency
        self.missing_task_id = missing_task_id
        super().__init__(
            f"Dependency {dependency.id} references unknown task {missing_task_id}"
        )


class UnknownTaskError(SchedulingError):
    def __init__(self, task_id):
        self.task_id = task_id
        super().__init__(f"Task {task_id} is not part of this schedule")


class InvalidDateRangeError(SchedulingError, ValueError):
    def __init__(self, task_id, start_date, due_date, message=None):
        self.task_id = task_id
        self.start_date = start_date
        self.due_date = due_date
        super().__init__(
            message or f"Task {task_id}: due date {due_date} is before start date {start_date}"
        )


class InvalidMilestoneError(InvalidDateRangeError):
    """A milestone has zero duration, so its start and due dates must coincide."""

    def __init__(self, task_id, start_date, due_date):
        super().__init__(
            task_id, start_date, due_date,
            f"Milestone {task_id} must start and finish on the same day, got {start_date} - {due_date}"
        )


class ProjectScopeError(SchedulingError):
    """Tasks do not form a single project (mixed projects or duplicate ids)."""


class GraphTooLargeError(SchedulingError):
    def __init__(self, size, limit):
        self.size = size
        self.limit = limit
        super().__init__(f"Project has {size} tasks, the scheduling limit is {limit}")


class ScheduleConflictError(SchedulingError):
    """A proposed date change breaks dependency constraints."""

    def __init__(self, violations):
        self.violations = list(violations)
        super().__init__(
            "Dependency violations: " + "; ".join(v.message for v in self.violations)
        )
