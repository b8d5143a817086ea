# init_db_data.py
from datetime import date, timedelta

from database.models import Project, Task, TaskDependency
from database.operations import init_db, session_scope
from logger import logger

DEMO_PROJECT_NAME = "Демонстрационный проект"


def init_predefined_data(project_start=None):
    """
    Создает демонстрационный проект, если его еще нет.

    Цепочка A -> B -> C (finish-to-start) и независимая задача D.

    Returns:
        ID демонстрационного проекта
    """
    # Создаем базу данных, если она не существует
    init_db()
    project_start = project_start or date.today()

    with session_scope() as session:
        # Проверяем, есть ли демонстрационный проект
        project = session.query(Project).filter(Project.name == DEMO_PROJECT_NAME).first()
        if project:
            logger.info("Демонстрационные данные уже существуют")
            return project.id

        project = Project(name=DEMO_PROJECT_NAME)
        session.add(project)
        session.flush()

        default_tasks = [
            ("A", "Анализ требований", 0, 5),
            ("B", "Разработка", 5, 8),
            ("C", "Тестирование", 8, 10),
            ("D", "Подготовка документации", 0, 3),
        ]
        tasks = {}
        for key, title, start_offset, finish_offset in default_tasks:
            task = Task(
                project_id=project.id,
                title=title,
                start_date=project_start + timedelta(days=start_offset),
                due_date=project_start + timedelta(days=finish_offset)
            )
            session.add(task)
            session.flush()
            tasks[key] = task

        for predecessor, successor in (("A", "B"), ("B", "C")):
            session.add(TaskDependency(
                predecessor_id=tasks[predecessor].id,
                successor_id=tasks[successor].id,
                type='fs',
                lag=0
            ))

        logger.info(f"Демонстрационные данные успешно инициализированы (проект {project.id})")
        return project.id


if __name__ == "__main__":
    init_predefined_data()
