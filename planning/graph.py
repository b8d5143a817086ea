"""
Dependency graph of the tasks of one project.
"""
import heapq
import logging
from typing import Dict, Iterable, List, Set

from planning.exceptions import CycleError, DanglingReferenceError, ProjectScopeError
from planning.models import Task, TaskDependency

logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    Directed acyclic graph of task dependencies.

    Built once per engine; construction fails if the edges reference unknown
    tasks or contain a cycle, so every later operation may assume a DAG.
    """

    def __init__(self, task_ids: List[int], dependencies: List[TaskDependency]):
        self._task_ids = list(task_ids)
        self._index = {task_id: position for position, task_id in enumerate(self._task_ids)}
        self._predecessors: Dict[int, List[TaskDependency]] = {task_id: [] for task_id in self._task_ids}
        self._successors: Dict[int, List[TaskDependency]] = {task_id: [] for task_id in self._task_ids}

        for dependency in sorted(dependencies, key=lambda dep: dep.id):
            for endpoint in (dependency.predecessor_id, dependency.successor_id):
                if endpoint not in self._index:
                    logger.error(f"Зависимость {dependency.id} ссылается на неизвестную задачу {endpoint}")
                    raise DanglingReferenceError(dependency, endpoint)
            self._successors[dependency.predecessor_id].append(dependency)
            self._predecessors[dependency.successor_id].append(dependency)

        self._order = self._topological_sort()
        self._order_index = {task_id: position for position, task_id in enumerate(self._order)}

    @classmethod
    def build(cls, tasks: Iterable[Task], dependencies: Iterable[TaskDependency]) -> "DependencyGraph":
        task_ids = []
        seen: Set[int] = set()
        for task in tasks:
            if task.id in seen:
                raise ProjectScopeError(f"Duplicate task id {task.id}")
            seen.add(task.id)
            task_ids.append(task.id)
        return cls(task_ids, list(dependencies))

    def _topological_sort(self) -> List[int]:
        """Kahn's algorithm; among ready tasks the one supplied first goes first."""
        in_degree = {task_id: len(edges) for task_id, edges in self._predecessors.items()}
        ready = [self._index[task_id] for task_id, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)

        order = []
        while ready:
            task_id = self._task_ids[heapq.heappop(ready)]
            order.append(task_id)
            for dependency in self._successors[task_id]:
                in_degree[dependency.successor_id] -= 1
                if in_degree[dependency.successor_id] == 0:
                    heapq.heappush(ready, self._index[dependency.successor_id])

        if len(order) != len(self._task_ids):
            remaining = [task_id for task_id in self._task_ids if in_degree[task_id] > 0]
            members = self._cycle_members(remaining)
            logger.error(f"Обнаружена циклическая зависимость между задачами: {members}")
            raise CycleError(members)

        return order

    def _cycle_members(self, remaining: List[int]) -> List[int]:
        """
        Narrows the tasks left over by Kahn's algorithm down to the cycles.

        Tasks that merely depend on a cycle are also left over; they are peeled
        off from the sink side until every remaining task has a successor among
        the remaining ones.
        """
        members = set(remaining)
        out_degree = {
            task_id: sum(1 for dep in self._successors[task_id] if dep.successor_id in members)
            for task_id in members
        }
        leaves = [task_id for task_id, degree in out_degree.items() if degree == 0]
        while leaves:
            task_id = leaves.pop()
            members.discard(task_id)
            for dependency in self._predecessors[task_id]:
                if dependency.predecessor_id in members:
                    out_degree[dependency.predecessor_id] -= 1
                    if out_degree[dependency.predecessor_id] == 0:
                        leaves.append(dependency.predecessor_id)
        return [task_id for task_id in remaining if task_id in members]

    def __contains__(self, task_id) -> bool:
        return task_id in self._index

    def __len__(self) -> int:
        return len(self._task_ids)

    def predecessors_of(self, task_id: int) -> List[TaskDependency]:
        return list(self._predecessors[task_id])

    def successors_of(self, task_id: int) -> List[TaskDependency]:
        return list(self._successors[task_id])

    def topological_order(self) -> List[int]:
        return list(self._order)

    def position(self, task_id: int) -> int:
        """Position of the task in the topological order."""
        return self._order_index[task_id]

    def sources(self) -> List[int]:
        return [task_id for task_id in self._order if not self._predecessors[task_id]]

    def sinks(self) -> List[int]:
        return [task_id for task_id in self._order if not self._successors[task_id]]

    def reachable_from(self, task_id: int) -> Set[int]:
        """All tasks transitively depending on the given one (itself excluded)."""
        reached: Set[int] = set()
        stack = [task_id]
        while stack:
            current = stack.pop()
            for dependency in self._successors[current]:
                if dependency.successor_id not in reached:
                    reached.add(dependency.successor_id)
                    stack.append(dependency.successor_id)
        return reached

    def would_create_cycle(self, predecessor_id: int, successor_id: int) -> bool:
        if predecessor_id == successor_id:
            return True
        return predecessor_id in self.reachable_from(successor_id)
