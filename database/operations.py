from contextlib import contextmanager

from sqlalchemy import create_engine, func
from sqlalchemy.orm import sessionmaker

from config import ALLOWED_USERS, DATABASE_URL
from database.models import Base, Project, Task, TaskDependency, AllowedUser
from logger import logger
from planning import models as planning_models

# Поля задачи, которые движок планирования может изменить
SCHEDULE_FIELDS = ('start_date', 'due_date', 'is_on_critical_path')

# Создаем соединение с БД
engine = create_engine(DATABASE_URL)
Session = sessionmaker(bind=engine, expire_on_commit=False)


def init_db():
    """Инициализирует базу данных."""
    logger.info(f"Инициализация базы данных с URL: {DATABASE_URL}")
    try:
        Base.metadata.create_all(engine)
        logger.info("База данных успешно инициализирована")
    except Exception as e:
        logger.error(f"Ошибка при инициализации базы данных: {str(e)}")
        raise


@contextmanager
def session_scope():
    """
    Контекстный менеджер для работы с сессиями SQLAlchemy.
    Автоматически выполняет commit при успешном завершении
    и rollback при возникновении исключения.
    """
    session = Session()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Ошибка при работе с БД: {str(e)}")
        raise
    finally:
        session.close()


def to_engine_task(task):
    """Преобразует строку задачи в неизменяемое значение для движка планирования."""
    return planning_models.Task(
        id=task.id,
        project_id=task.project_id,
        start_date=task.start_date,
        due_date=task.due_date,
        duration=task.duration,
        is_milestone=bool(task.is_milestone),
        is_on_critical_path=bool(task.is_on_critical_path),
        title=task.title,
    )


def to_engine_dependency(dependency):
    return planning_models.TaskDependency(
        id=dependency.id,
        predecessor_id=dependency.predecessor_id,
        successor_id=dependency.successor_id,
        type=dependency.type,
        lag_days=dependency.lag or 0,
    )


def create_new_project(name):
    """
    Создает новый проект в БД.

    Args:
        name: Название проекта

    Returns:
        ID созданного проекта
    """
    with session_scope() as session:
        project = Project(name=name)
        session.add(project)
        session.flush()
        return project.id


def add_project_task(project_id, title, start_date=None, due_date=None, duration=None, is_milestone=False):
    """
    Добавляет задачу в проект.

    Args:
        project_id: ID проекта
        title: Название задачи
        start_date: Дата начала (может отсутствовать)
        due_date: Срок окончания (может отсутствовать)
        duration: Длительность в днях, если даты не заданы
        is_milestone: Контрольная точка (нулевая длительность)

    Returns:
        ID созданной задачи
    """
    if start_date and due_date and due_date < start_date:
        raise ValueError(f"Срок окончания {due_date} раньше даты начала {start_date}")
    if is_milestone and start_date and due_date and start_date != due_date:
        raise ValueError(f"Контрольная точка должна начинаться и заканчиваться в один день: {start_date} - {due_date}")

    with session_scope() as session:
        task = Task(
            project_id=project_id,
            title=title,
            start_date=start_date,
            due_date=due_date,
            duration=duration,
            is_milestone=is_milestone
        )
        session.add(task)
        session.flush()
        return task.id


def add_task_dependency(predecessor_id, successor_id, dependency_type='fs', lag=0):
    """
    Добавляет зависимость между задачами.

    Проверка на циклы выполняется уровнем выше (planning.schedule_service.add_dependency).

    Args:
        predecessor_id: ID предшествующей задачи
        successor_id: ID зависимой задачи
        dependency_type: Тип связи (fs, ss, ff, sf)
        lag: Задержка в днях (отрицательная - опережение)

    Returns:
        ID созданной зависимости
    """
    dependency_type = planning_models.DependencyType.parse(dependency_type)
    with session_scope() as session:
        dependency = TaskDependency(
            predecessor_id=predecessor_id,
            successor_id=successor_id,
            type=dependency_type.value,
            lag=lag or 0
        )
        session.add(dependency)
        session.flush()
        return dependency.id


def get_task(task_id):
    """Возвращает задачу как значение движка или None, если ее нет."""
    with session_scope() as session:
        task = session.get(Task, task_id)
        return to_engine_task(task) if task else None


def get_project(project_id):
    with session_scope() as session:
        project = session.get(Project, project_id)
        if not project:
            return None
        return {'id': project.id, 'name': project.name, 'created_at': project.created_at}


def get_project_tasks(project_id):
    """
    Получает все задачи проекта.

    Args:
        project_id: ID проекта

    Returns:
        Список planning.models.Task, упорядоченный по id
    """
    with session_scope() as session:
        tasks = session.query(Task).filter(Task.project_id == project_id).order_by(Task.id).all()
        return [to_engine_task(task) for task in tasks]


def get_project_dependencies(project_id):
    """
    Получает все зависимости, последователь которых входит в проект.

    Args:
        project_id: ID проекта

    Returns:
        Список planning.models.TaskDependency, упорядоченный по id
    """
    with session_scope() as session:
        dependencies = (
            session.query(TaskDependency)
            .join(Task, TaskDependency.successor_id == Task.id)
            .filter(Task.project_id == project_id)
            .order_by(TaskDependency.id)
            .all()
        )
        return [to_engine_dependency(dependency) for dependency in dependencies]


def get_user_projects():
    """
    Получает список проектов.

    Returns:
        Список словарей с информацией о проектах
    """
    with session_scope() as session:
        rows = (
            session.query(Project, func.count(Task.id))
            .outerjoin(Task, Task.project_id == Project.id)
            .group_by(Project.id)
            .order_by(Project.id)
            .all()
        )
        return [
            {'id': project.id, 'name': project.name, 'tasks_count': tasks_count}
            for project, tasks_count in rows
        ]


def save_schedule_changes(tasks, fields=SCHEDULE_FIELDS):
    """
    Сохраняет результат работы движка планирования одной транзакцией.

    Записываются либо все задачи, либо, при любой ошибке, ни одна.

    Args:
        tasks: Задачи planning.models.Task для сохранения
        fields: Поля задачи, копируемые в строки БД

    Returns:
        Количество обновленных задач
    """
    unknown = set(fields) - set(SCHEDULE_FIELDS)
    if unknown:
        raise ValueError(f"Поля не относятся к расписанию: {sorted(unknown)}")

    count = 0
    with session_scope() as session:
        for task in tasks:
            row = session.get(Task, task.id)
            if row is None:
                raise LookupError(f"Задача {task.id} не найдена в БД")
            for field_name in fields:
                setattr(row, field_name, getattr(task, field_name))
            count += 1
    logger.info(f"Сохранено изменений расписания: {count} задач")
    return count


def is_user_allowed(telegram_id):
    """
    Проверяет, есть ли у пользователя доступ к боту.

    Args:
        telegram_id: Telegram ID пользователя

    Returns:
        bool: True, если доступ разрешен
    """
    if telegram_id in ALLOWED_USERS:
        return True
    with session_scope() as session:
        user = session.query(AllowedUser).filter(AllowedUser.telegram_id == telegram_id).first()
        return user is not None


def add_allowed_user(telegram_id, name=None, added_by=None, is_admin=False):
    """
    Добавляет пользователя в список разрешенных.

    Returns:
        bool: True, если пользователь добавлен, False если уже существует
    """
    with session_scope() as session:
        existing = session.query(AllowedUser).filter(AllowedUser.telegram_id == telegram_id).first()
        if existing:
            return False

        user = AllowedUser(
            telegram_id=telegram_id,
            name=name,
            added_by=added_by,
            is_admin=is_admin
        )
        session.add(user)
        return True
