# planning/network.py
"""
Модуль для расчета параметров сетевой модели и определения критического пути
"""
import logging
from datetime import timedelta
from typing import Dict, List

from planning.constraints import earliest_successor_start, latest_predecessor_finish
from planning.graph import DependencyGraph
from planning.models import CriticalPathResult, Task, TaskSchedule

logger = logging.getLogger(__name__)

# Резерв меньше этого значения считается нулевым
SLACK_EPSILON = 1e-9


def calculate_critical_path(graph: DependencyGraph, tasks: Dict[int, Task]) -> CriticalPathResult:
    """
    Рассчитывает параметры сетевой модели и критический путь.

    Выполняет прямой и обратный проходы по всему графу, считает резервы,
    строит критические цепочки и обновляет флаг is_on_critical_path у каждой
    задачи рабочей копии, снимая устаревшие флаги.

    Args:
        graph: Граф зависимостей проекта
        tasks: Рабочая копия задач проекта по id (обновляется на месте)

    Returns:
        CriticalPathResult с цепочкой критических задач и параметрами каждой задачи
    """
    if not tasks:
        logger.warning("Нет задач для расчета сетевой модели")
        return CriticalPathResult()

    network = create_network_model(graph, tasks)
    origin = find_project_origin(tasks)

    # Рассчитываем ранние сроки начала и окончания
    calculate_early_times(graph, tasks, network, origin)

    # Рассчитываем поздние сроки начала и окончания
    project_duration = calculate_late_times(graph, network)

    # Рассчитываем резервы времени и отмечаем критические работы
    calculate_reserves(network)

    critical_path = identify_critical_path(graph, network)

    for task_id, schedule in network.items():
        tasks[task_id] = tasks[task_id].with_critical_flag(schedule.is_critical)
        if origin is not None:
            schedule.earliest_start_date = origin + timedelta(days=schedule.earliest_start)
            schedule.earliest_finish_date = origin + timedelta(days=schedule.earliest_finish)

    logger.info(f"Рассчитана сетевая модель: {len(network)} задач, проект: {project_duration} дней")
    logger.info(f"Критический путь: {critical_path}")

    return CriticalPathResult(
        path=critical_path,
        tasks=[network[task_id] for task_id in graph.topological_order()],
        project_duration=project_duration,
        origin=origin,
    )


def create_network_model(graph: DependencyGraph, tasks: Dict[int, Task]) -> Dict[int, TaskSchedule]:
    """Создает узлы сетевой модели в топологическом порядке."""
    return {
        task_id: TaskSchedule(task_id=task_id, duration=tasks[task_id].duration_days)
        for task_id in graph.topological_order()
    }


def find_project_origin(tasks: Dict[int, Task]):
    """День 0 проекта: самая ранняя дата начала среди задач (None, если дат нет)."""
    start_dates = [task.start_date for task in tasks.values() if task.start_date]
    return min(start_dates) if start_dates else None


def calculate_early_times(graph: DependencyGraph, tasks: Dict[int, Task],
                          network: Dict[int, TaskSchedule], origin) -> None:
    """Прямой проход: ранние сроки начала и окончания."""
    for task_id in graph.topological_order():
        node = network[task_id]
        incoming = graph.predecessors_of(task_id)

        if not incoming:
            # Без предшественников задача начинается со своей даты начала
            start_date = tasks[task_id].start_date
            node.earliest_start = (start_date - origin).days if start_date and origin else 0
        else:
            early_start = 0
            for dependency in incoming:
                predecessor = network[dependency.predecessor_id]
                early_start = max(early_start, earliest_successor_start(
                    dependency, predecessor.earliest_start, predecessor.earliest_finish, node.duration
                ))
            node.earliest_start = early_start

        node.earliest_finish = node.earliest_start + node.duration


def calculate_late_times(graph: DependencyGraph, network: Dict[int, TaskSchedule]) -> int:
    """
    Обратный проход: поздние сроки начала и окончания.

    Returns:
        Длительность проекта (максимальный ранний срок окончания)
    """
    project_duration = max(node.earliest_finish for node in network.values())

    for task_id in reversed(graph.topological_order()):
        node = network[task_id]
        late_finish = project_duration
        for dependency in graph.successors_of(task_id):
            successor = network[dependency.successor_id]
            late_finish = min(late_finish, latest_predecessor_finish(
                dependency, successor.latest_start, successor.latest_finish, node.duration
            ))

        node.latest_finish = late_finish
        node.latest_start = late_finish - node.duration

    return project_duration


def calculate_reserves(network: Dict[int, TaskSchedule]) -> None:
    """Полный резерв времени = поздний срок начала - ранний срок начала."""
    for node in network.values():
        node.slack = node.latest_start - node.earliest_start
        node.is_critical = abs(node.slack) < SLACK_EPSILON


def identify_critical_path(graph: DependencyGraph, network: Dict[int, TaskSchedule]) -> List[int]:
    """
    Определяет критический путь в сетевой модели.

    Каждая цепочка начинается с критической задачи без критических
    предшественников и идет по критическим последователям. Цепочки выводятся
    одна за другой в топологическом порядке, общая задача попадает в путь один раз.
    """
    critical = {task_id for task_id, node in network.items() if node.is_critical}

    def critical_successors(task_id):
        return [dep.successor_id for dep in graph.successors_of(task_id) if dep.successor_id in critical]

    path = []
    emitted = set()
    for task_id in graph.topological_order():
        if task_id not in critical:
            continue
        if any(dep.predecessor_id in critical for dep in graph.predecessors_of(task_id)):
            continue

        chain = {task_id}
        stack = [task_id]
        while stack:
            for successor_id in critical_successors(stack.pop()):
                if successor_id not in chain:
                    chain.add(successor_id)
                    stack.append(successor_id)

        for chain_task_id in sorted(chain, key=graph.position):
            if chain_task_id not in emitted:
                emitted.add(chain_task_id)
                path.append(chain_task_id)

    return path


def format_critical_path(result: CriticalPathResult, tasks: Dict[int, Task]) -> str:
    """Текстовое описание критического пути для отправки пользователю."""
    if not result.tasks:
        return "В проекте нет задач."

    lines = [f"Длительность проекта: {result.project_duration} дн."]
    lines.append("Критический путь: " + " → ".join(tasks[task_id].name for task_id in result.path))
    lines.append("")
    for schedule in result.tasks:
        marker = "🔴" if schedule.is_critical else "⚪"
        lines.append(
            f"{marker} {tasks[schedule.task_id].name}: "
            f"ES={schedule.earliest_start}, EF={schedule.earliest_finish}, "
            f"LS={schedule.latest_start}, LF={schedule.latest_finish}, резерв={schedule.slack}"
        )
    return "\n".join(lines)
