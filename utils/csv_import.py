"""
Модуль для работы с импортом данных из CSV-файлов
"""
import csv
import io
import logging
from datetime import datetime

from database.models import Project, Task, TaskDependency
from database.operations import session_scope
from planning.exceptions import SchedulingError
from planning.graph import DependencyGraph
from planning import models as planning_models

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('key', 'title')
DATE_FORMATS = ('%Y-%m-%d', '%d.%m.%Y')
TRUE_VALUES = ('1', 'true', 'yes', 'да')


class CsvImportError(ValueError):
    def __init__(self, message, line=None):
        self.line = line
        if line is not None:
            message = f"Строка {line}: {message}"
        super().__init__(message)


def parse_date(value, line=None):
    """Разбирает дату в формате ГГГГ-ММ-ДД или ДД.ММ.ГГГГ; пустое значение - None."""
    value = (value or '').strip()
    if not value:
        return None
    for date_format in DATE_FORMATS:
        try:
            return datetime.strptime(value, date_format).date()
        except ValueError:
            continue
    raise CsvImportError(f"не удалось разобрать дату '{value}'", line)


def parse_predecessors(value, line=None):
    """
    Разбирает список предшественников.

    Формат: "KEY[:тип[:задержка]]", элементы разделяются ';'.
    Например: "A;B:ss;C:fs:2"

    Returns:
        Список кортежей (key, DependencyType, lag)
    """
    result = []
    for item in (value or '').split(';'):
        item = item.strip()
        if not item:
            continue
        parts = [part.strip() for part in item.split(':')]
        if len(parts) > 3:
            raise CsvImportError(f"неверный формат предшественника '{item}'", line)
        try:
            dependency_type = planning_models.DependencyType.parse(parts[1] if len(parts) > 1 else None)
            lag = int(parts[2]) if len(parts) > 2 and parts[2] else 0
        except ValueError as e:
            raise CsvImportError(f"неверный предшественник '{item}': {e}", line) from e
        result.append((parts[0], dependency_type, lag))
    return result


def parse_csv_tasks(csv_data):
    """
    Парсит CSV-файл с задачами.

    Формат CSV:
    key,title,start_date,due_date,duration,predecessors,is_milestone

    Args:
        csv_data: Содержимое CSV-файла (строка или файловый объект)

    Returns:
        Список задач (словари)
    """
    # Если данные в виде строки, преобразуем в StringIO
    if isinstance(csv_data, str):
        csv_data = io.StringIO(csv_data)

    reader = csv.DictReader(csv_data)
    if not reader.fieldnames or not all(field in reader.fieldnames for field in REQUIRED_FIELDS):
        raise CsvImportError(f"в CSV отсутствуют обязательные поля: {', '.join(REQUIRED_FIELDS)}")

    tasks = []
    keys = set()
    # Первая строка файла - заголовок
    for line, row in enumerate(reader, start=2):
        key = (row.get('key') or '').strip()
        title = (row.get('title') or '').strip()
        if not key or not title:
            raise CsvImportError("пустой ключ или название задачи", line)
        if key in keys:
            raise CsvImportError(f"повторяющийся ключ задачи '{key}'", line)
        keys.add(key)

        start_date = parse_date(row.get('start_date'), line)
        due_date = parse_date(row.get('due_date'), line)
        if start_date and due_date and due_date < start_date:
            raise CsvImportError(f"срок окончания раньше даты начала у задачи '{key}'", line)

        duration = None
        if (row.get('duration') or '').strip():
            try:
                duration = int(row['duration'])
            except ValueError:
                raise CsvImportError(f"длительность должна быть целым числом: '{row['duration']}'", line)

        is_milestone = (row.get('is_milestone') or '').strip().lower() in TRUE_VALUES
        if is_milestone and start_date and due_date and start_date != due_date:
            raise CsvImportError(f"контрольная точка '{key}' должна начинаться и заканчиваться в один день", line)

        tasks.append({
            'key': key,
            'title': title,
            'start_date': start_date,
            'due_date': due_date,
            'duration': duration,
            'is_milestone': is_milestone,
            'predecessors': parse_predecessors(row.get('predecessors'), line),
            'line': line,
        })

    logger.info(f"Из CSV прочитано задач: {len(tasks)}")
    return tasks


def check_task_graph(tasks):
    """Проверяет ссылки и отсутствие циклов до записи в БД."""
    index = {task['key']: position for position, task in enumerate(tasks, start=1)}
    engine_tasks = [planning_models.Task(id=index[task['key']], project_id=0) for task in tasks]
    dependencies = []
    for task in tasks:
        for key, dependency_type, lag in task['predecessors']:
            if key not in index:
                raise CsvImportError(f"неизвестный предшественник '{key}'", task['line'])
            dependencies.append(planning_models.TaskDependency(
                id=len(dependencies) + 1,
                predecessor_id=index[key],
                successor_id=index[task['key']],
                type=dependency_type,
                lag_days=lag,
            ))
    try:
        DependencyGraph.build(engine_tasks, dependencies)
    except SchedulingError as e:
        raise CsvImportError(f"некорректные зависимости: {e}") from e


def import_project_from_csv(name, csv_data):
    """
    Создает проект с задачами и зависимостями из CSV одной транзакцией.

    Args:
        name: Название проекта
        csv_data: Содержимое CSV-файла

    Returns:
        ID созданного проекта
    """
    tasks = parse_csv_tasks(csv_data)
    if not tasks:
        raise CsvImportError("CSV не содержит задач")
    check_task_graph(tasks)

    with session_scope() as session:
        project = Project(name=name)
        session.add(project)
        session.flush()

        ids_by_key = {}
        for task_data in tasks:
            task = Task(
                project_id=project.id,
                title=task_data['title'],
                start_date=task_data['start_date'],
                due_date=task_data['due_date'],
                duration=task_data['duration'],
                is_milestone=task_data['is_milestone']
            )
            session.add(task)
            session.flush()
            ids_by_key[task_data['key']] = task.id

        for task_data in tasks:
            for key, dependency_type, lag in task_data['predecessors']:
                session.add(TaskDependency(
                    predecessor_id=ids_by_key[key],
                    successor_id=ids_by_key[task_data['key']],
                    type=dependency_type.value,
                    lag=lag
                ))

        logger.info(f"Импортирован проект '{name}' (ID {project.id}): {len(tasks)} задач")
        return project.id
