"""
Date constraints that a dependency edge imposes on its tasks.

Every function dispatches over all four dependency types; an unknown type is
a programming error and raises ValueError.
"""
from datetime import date, timedelta
from typing import Optional

from planning.models import DependencyType, TaskDependency

START_DRIVEN = (DependencyType.START_TO_START, DependencyType.START_TO_FINISH)
FINISH_DRIVEN = (DependencyType.FINISH_TO_START, DependencyType.FINISH_TO_FINISH)


def constrains_successor_start(dependency_type: DependencyType) -> bool:
    """True if the edge limits the successor's start, False if its finish."""
    if dependency_type in (DependencyType.FINISH_TO_START, DependencyType.START_TO_START):
        return True
    if dependency_type in (DependencyType.FINISH_TO_FINISH, DependencyType.START_TO_FINISH):
        return False
    raise ValueError(f"Unsupported dependency type: {dependency_type!r}")


def predecessor_anchor(dependency_type: DependencyType, start, finish):
    """The predecessor date (or day offset) the edge is measured from."""
    if dependency_type in FINISH_DRIVEN:
        return finish
    if dependency_type in START_DRIVEN:
        return start
    raise ValueError(f"Unsupported dependency type: {dependency_type!r}")


def successor_anchor(dependency_type: DependencyType, start, finish):
    """The successor date (or day offset) the edge constrains."""
    return start if constrains_successor_start(dependency_type) else finish


def required_successor_date(dependency: TaskDependency, pred_start: Optional[date],
                            pred_due: Optional[date]) -> Optional[date]:
    """
    Earliest date allowed for the successor's constrained end.

    Returns None when the predecessor date the edge is measured from is not set.
    """
    anchor = predecessor_anchor(dependency.type, pred_start, pred_due)
    if anchor is None:
        return None
    return anchor + timedelta(days=dependency.lag_days)


def earliest_successor_start(dependency: TaskDependency, pred_start: int, pred_finish: int,
                             successor_duration: int) -> int:
    """Forward pass: earliest start offset the edge allows for the successor."""
    bound = predecessor_anchor(dependency.type, pred_start, pred_finish) + dependency.lag_days
    if constrains_successor_start(dependency.type):
        return bound
    return bound - successor_duration


def latest_predecessor_finish(dependency: TaskDependency, succ_start: int, succ_finish: int,
                              predecessor_duration: int) -> int:
    """Backward pass: latest finish offset the edge allows for the predecessor."""
    bound = successor_anchor(dependency.type, succ_start, succ_finish) - dependency.lag_days
    if dependency.type in FINISH_DRIVEN:
        return bound
    # связь от начала предшественника: сдвигаем на его длительность
    return bound + predecessor_duration
