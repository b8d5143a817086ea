from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional

from planning.exceptions import InvalidDateRangeError, InvalidMilestoneError


class DependencyType(Enum):
    """Kind of link between two tasks."""
    FINISH_TO_START = "fs"
    START_TO_START = "ss"
    FINISH_TO_FINISH = "ff"
    START_TO_FINISH = "sf"

    @classmethod
    def parse(cls, value):
        """
        Converts a stored or user supplied value into a DependencyType.

        Accepts the enum itself, the short codes ("fs", "ss", "ff", "sf") and
        the long names ("finish_to_start", ...). Empty values mean
        finish-to-start.
        """
        if isinstance(value, cls):
            return value
        if value is None or str(value).strip() == "":
            return cls.FINISH_TO_START

        normalized = str(value).strip().lower()
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Unknown dependency type: {value!r}")

    @property
    def label(self):
        return self.name.lower()


@dataclass(frozen=True)
class Task:
    """Working copy of a task as the scheduling engine sees it."""
    id: int
    project_id: int
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    duration: Optional[int] = None
    is_milestone: bool = False
    is_on_critical_path: bool = False
    title: str = ""

    def __post_init__(self):
        if self.start_date and self.due_date and self.due_date < self.start_date:
            raise InvalidDateRangeError(self.id, self.start_date, self.due_date)
        if self.is_milestone and self.start_date and self.due_date and self.start_date != self.due_date:
            raise InvalidMilestoneError(self.id, self.start_date, self.due_date)

    @property
    def duration_days(self) -> int:
        """Duration in whole days, derived from the dates when both are set."""
        if self.is_milestone:
            return 0
        if self.start_date and self.due_date:
            return (self.due_date - self.start_date).days
        if self.duration is not None:
            return max(0, self.duration)
        return 1

    @property
    def is_scheduled(self) -> bool:
        return self.start_date is not None

    @property
    def name(self) -> str:
        return self.title or f"#{self.id}"

    def with_dates(self, start_date: Optional[date], due_date: Optional[date]) -> "Task":
        """Returns a copy with new dates; a missing side is derived from the duration."""
        if start_date is None and due_date is not None:
            start_date = due_date - timedelta(days=self.duration_days)
        elif due_date is None and start_date is not None:
            due_date = start_date + timedelta(days=self.duration_days)
        return replace(self, start_date=start_date, due_date=due_date)

    def shifted(self, days: int) -> "Task":
        """Moves the whole interval by the given number of days."""
        delta = timedelta(days=days)
        return replace(
            self,
            start_date=self.start_date + delta if self.start_date else None,
            due_date=self.due_date + delta if self.due_date else None,
        )

    def with_critical_flag(self, is_critical: bool) -> "Task":
        if self.is_on_critical_path == is_critical:
            return self
        return replace(self, is_on_critical_path=is_critical)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'project_id': self.project_id,
            'title': self.title,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'duration': self.duration_days,
            'is_milestone': self.is_milestone,
            'is_on_critical_path': self.is_on_critical_path,
        }


@dataclass(frozen=True)
class TaskDependency:
    """Directed edge predecessor -> successor."""
    id: int
    predecessor_id: int
    successor_id: int
    type: DependencyType = DependencyType.FINISH_TO_START
    lag_days: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'type', DependencyType.parse(self.type))
        object.__setattr__(self, 'lag_days', int(self.lag_days or 0))


@dataclass(frozen=True)
class Violation:
    """One broken constraint."""
    task_id: int
    dependency: Optional[TaskDependency]
    message: str
    related_task_id: Optional[int] = None
    side: str = "predecessor"
    shortfall_days: int = 0

    @property
    def resolvable_by_cascade(self) -> bool:
        # Конфликт с последователем снимается каскадным сдвигом
        return self.side == "successor"

    def to_dict(self) -> Dict:
        return {
            'task_id': self.task_id,
            'dependency_id': self.dependency.id if self.dependency else None,
            'related_task_id': self.related_task_id,
            'side': self.side,
            'shortfall_days': self.shortfall_days,
            'message': self.message,
        }


@dataclass
class TaskSchedule:
    """Network model values of one task, in days from the project origin."""
    task_id: int
    duration: int
    earliest_start: int = 0
    earliest_finish: int = 0
    latest_start: int = 0
    latest_finish: int = 0
    slack: int = 0
    is_critical: bool = False
    earliest_start_date: Optional[date] = None
    earliest_finish_date: Optional[date] = None

    def to_dict(self) -> Dict:
        return {
            'task_id': self.task_id,
            'duration': self.duration,
            'earliest_start': self.earliest_start,
            'earliest_finish': self.earliest_finish,
            'latest_start': self.latest_start,
            'latest_finish': self.latest_finish,
            'slack': self.slack,
            'is_critical': self.is_critical,
            'earliest_start_date': self.earliest_start_date.isoformat() if self.earliest_start_date else None,
            'earliest_finish_date': self.earliest_finish_date.isoformat() if self.earliest_finish_date else None,
        }


@dataclass
class CriticalPathResult:
    """Outcome of a critical path calculation."""
    path: List[int] = field(default_factory=list)
    tasks: List[TaskSchedule] = field(default_factory=list)
    project_duration: int = 0
    origin: Optional[date] = None

    def critical_task_ids(self) -> List[int]:
        return [schedule.task_id for schedule in self.tasks if schedule.is_critical]

    def schedule_for(self, task_id: int) -> TaskSchedule:
        for schedule in self.tasks:
            if schedule.task_id == task_id:
                return schedule
        raise KeyError(task_id)

    def to_dict(self) -> Dict:
        return {
            'path': list(self.path),
            'tasks': [schedule.to_dict() for schedule in self.tasks],
            'project_duration': self.project_duration,
            'origin': self.origin.isoformat() if self.origin else None,
        }
