from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime, Date as SQLAlchemyDate
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()


class Project(Base):
    """Модель проекта в БД."""
    __tablename__ = 'projects'

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}')>"


class Task(Base):
    """Модель задачи в БД."""
    __tablename__ = 'tasks'

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey('projects.id'), nullable=False)
    title = Column(String, nullable=False)
    start_date = Column(SQLAlchemyDate, nullable=True)
    due_date = Column(SQLAlchemyDate, nullable=True)
    duration = Column(Integer, nullable=True)  # Длительность в днях, если даты не заданы
    is_milestone = Column(Boolean, default=False)
    is_on_critical_path = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    project = relationship("Project", back_populates="tasks")
    predecessors = relationship(
        "TaskDependency",
        foreign_keys="[TaskDependency.successor_id]",
        back_populates="successor",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', start={self.start_date}, due={self.due_date})>"


class TaskDependency(Base):
    """Модель зависимости между задачами в БД."""
    __tablename__ = 'task_dependencies'

    id = Column(Integer, primary_key=True)
    predecessor_id = Column(Integer, ForeignKey('tasks.id'), nullable=False)
    successor_id = Column(Integer, ForeignKey('tasks.id'), nullable=False)
    type = Column(String, nullable=False, default='fs')  # fs / ss / ff / sf
    lag = Column(Integer, nullable=False, default=0)  # Задержка в днях, может быть отрицательной
    created_at = Column(DateTime, default=datetime.now)

    successor = relationship("Task", foreign_keys=[successor_id], back_populates="predecessors")
    predecessor = relationship("Task", foreign_keys=[predecessor_id])

    def __repr__(self):
        return (f"<TaskDependency(predecessor_id={self.predecessor_id}, successor_id={self.successor_id}, "
                f"type='{self.type}', lag={self.lag})>")


class AllowedUser(Base):
    """Модель разрешенного пользователя в БД."""
    __tablename__ = 'allowed_users'

    id = Column(Integer, primary_key=True)
    telegram_id = Column(Integer, unique=True, nullable=False)
    name = Column(String, nullable=True)
    added_by = Column(Integer, nullable=True)  # ID администратора, добавившего пользователя
    added_at = Column(DateTime, default=datetime.now)
    is_admin = Column(Boolean, default=False)  # Флаг администратора

    def __repr__(self):
        return f"<AllowedUser(telegram_id={self.telegram_id}, name='{self.name}')>"
