"""
Сценарии работы с расписанием проекта поверх хранилища.

Каждая функция загружает свежую копию проекта из БД, запускает на ней новый
SchedulingEngine и записывает результат обратно одной транзакцией.
"""
from config import MAX_SCHEDULE_TASKS
from database import operations
from logger import logger
from planning.engine import SchedulingEngine
from planning.exceptions import (
    CycleError,
    GraphTooLargeError,
    ProjectScopeError,
    ScheduleConflictError,
    UnknownTaskError,
)
from planning.graph import DependencyGraph
from planning.models import DependencyType


def load_engine(project_id):
    """Создает движок планирования по текущему состоянию проекта в БД."""
    tasks = operations.get_project_tasks(project_id)
    if len(tasks) > MAX_SCHEDULE_TASKS:
        raise GraphTooLargeError(len(tasks), MAX_SCHEDULE_TASKS)
    dependencies = operations.get_project_dependencies(project_id)
    return SchedulingEngine(tasks, dependencies)


def _require_task(task_id):
    task = operations.get_task(task_id)
    if task is None:
        raise UnknownTaskError(task_id)
    return task


def check_task_dates(task_id, start_date, due_date):
    """
    Проверяет, не нарушает ли новое расписание задачи зависимости.

    Returns:
        Dict {'valid': bool, 'violations': [Violation]}
    """
    task = _require_task(task_id)
    engine = load_engine(task.project_id)
    violations = engine.validate_task_date_change(task_id, start_date, due_date)
    return {
        'valid': not violations,
        'violations': violations,
    }


def update_task_dates(task_id, start_date, due_date):
    """
    Переносит задачу на новые даты с каскадным сдвигом зависимых задач.

    Конфликты с предшественниками и некорректный диапазон дат отклоняются
    с ScheduleConflictError, конфликты с последователями снимает каскад.
    Недостающая дата выводится из длительности до проверки. Все измененные
    задачи вместе с флагами критического пути сохраняются одной транзакцией.

    Args:
        task_id: ID задачи
        start_date: Новая дата начала (None - вычислить по длительности)
        due_date: Новый срок окончания (None - вычислить по длительности)

    Returns:
        Dict с перенесенной задачей, каскадными изменениями и критическим путем
    """
    task = _require_task(task_id)
    engine = load_engine(task.project_id)

    violations = engine.validate_task_date_change(task_id, start_date, due_date)
    blocking = [violation for violation in violations if not violation.resolvable_by_cascade]
    if blocking:
        logger.warning(f"Перенос задачи {task_id} отклонен: {len(blocking)} нарушений")
        raise ScheduleConflictError(blocking)

    updated = engine.cascade_schedule_update(task_id, start_date, due_date)
    critical_path = engine.calculate_critical_path()

    changed = engine.get_changed_tasks()
    if changed:
        operations.save_schedule_changes(changed)

    return {
        'task': engine.get_task(task_id),
        'cascaded_updates': [updated_task for updated_task in updated if updated_task.id != task_id],
        'critical_path': critical_path.path,
    }


def refresh_critical_path(project_id):
    """
    Пересчитывает критический путь проекта и сохраняет изменившиеся флаги.

    Returns:
        Dict {'critical_path': [task_id], 'critical_tasks': [Task], 'tasks': [Task],
              'result': CriticalPathResult}
    """
    engine = load_engine(project_id)
    result = engine.calculate_critical_path()

    changed = engine.get_changed_tasks()
    if changed:
        operations.save_schedule_changes(changed, fields=('is_on_critical_path',))

    return {
        'critical_path': result.path,
        'critical_tasks': [task for task in engine.get_updated_tasks() if task.is_on_critical_path],
        'tasks': engine.get_updated_tasks(),
        'result': result,
    }


def add_dependency(predecessor_id, successor_id, dependency_type='fs', lag=0):
    """
    Добавляет зависимость, если она не нарушает структуру графа проекта.

    Raises:
        ProjectScopeError: задачи из разных проектов
        CycleError: связь замкнула бы цикл
    """
    dependency_type = DependencyType.parse(dependency_type)
    predecessor = _require_task(predecessor_id)
    successor = _require_task(successor_id)
    if predecessor.project_id != successor.project_id:
        raise ProjectScopeError(
            f"Tasks {predecessor_id} and {successor_id} belong to different projects"
        )

    graph = DependencyGraph.build(
        operations.get_project_tasks(successor.project_id),
        operations.get_project_dependencies(successor.project_id),
    )
    if graph.would_create_cycle(predecessor_id, successor_id):
        logger.warning(f"Связь {predecessor_id} -> {successor_id} создает цикл")
        raise CycleError([predecessor_id, successor_id])

    return operations.add_task_dependency(predecessor_id, successor_id, dependency_type, lag)
