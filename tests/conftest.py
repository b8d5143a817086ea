import os
import tempfile

# Настройки окружения должны быть заданы до импорта модулей проекта
_db_dir = tempfile.mkdtemp(prefix="scheduler-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["LOG_FILE"] = ""
os.environ["ALLOWED_USERS"] = ""

from datetime import date, timedelta

import pytest

from database import operations
from database.models import Base
from planning.models import DependencyType, Task, TaskDependency

BASE_DATE = date(2024, 1, 1)


def day(offset):
    return BASE_DATE + timedelta(days=offset)


@pytest.fixture
def db():
    """Пустая база данных для каждого теста."""
    Base.metadata.drop_all(operations.engine)
    Base.metadata.create_all(operations.engine)
    yield operations
    Base.metadata.drop_all(operations.engine)


@pytest.fixture
def scenario():
    """
    A (day 0-5) -> B (day 5-8) -> C (day 8-10), finish-to-start, and a parallel D (day 0-3).
    """
    tasks = [
        Task(id=1, project_id=1, start_date=day(0), due_date=day(5), title="A"),
        Task(id=2, project_id=1, start_date=day(5), due_date=day(8), title="B"),
        Task(id=3, project_id=1, start_date=day(8), due_date=day(10), title="C"),
        Task(id=4, project_id=1, start_date=day(0), due_date=day(3), title="D"),
    ]
    dependencies = [
        TaskDependency(id=1, predecessor_id=1, successor_id=2, type=DependencyType.FINISH_TO_START),
        TaskDependency(id=2, predecessor_id=2, successor_id=3, type=DependencyType.FINISH_TO_START),
    ]
    return tasks, dependencies


@pytest.fixture
def stored_scenario(db):
    """The same A/B/C/D project stored in the database; returns {title: task_id}."""
    project_id = db.create_new_project("Scenario")
    ids = {
        "A": db.add_project_task(project_id, "A", day(0), day(5)),
        "B": db.add_project_task(project_id, "B", day(5), day(8)),
        "C": db.add_project_task(project_id, "C", day(8), day(10)),
        "D": db.add_project_task(project_id, "D", day(0), day(3)),
    }
    db.add_task_dependency(ids["A"], ids["B"])
    db.add_task_dependency(ids["B"], ids["C"])
    ids["project"] = project_id
    return ids
