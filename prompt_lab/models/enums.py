"""
Enums module - Task kinds, task statuses and legacy aliases
"""

from enum import Enum
from typing import Union


class TaskType(str, Enum):
    """Closed set of task kinds the executor knows how to run"""
    DATA_INPUT = "DATA_INPUT"
    TEXT_GENERATION = "TEXT_GENERATION"
    GROUNDED_GENERATION = "GROUNDED_GENERATION"
    IMAGE_ANALYSIS = "IMAGE_ANALYSIS"
    TEXT_MANIPULATION = "TEXT_MANIPULATION"
    SIMULATED_PROCESS = "SIMULATED_PROCESS"
    DISPLAY = "DISPLAY"


class TaskStatus(str, Enum):
    """Enumeration of possible task statuses during a run"""
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.SKIPPED)


# Names used by older stored workflows
TASK_TYPE_ALIASES = {
    "GEMINI_PROMPT": TaskType.TEXT_GENERATION,
    "GEMINI_GROUNDED": TaskType.GROUNDED_GENERATION,
    "SIMULATE_PROCESS": TaskType.SIMULATED_PROCESS,
    "DISPLAY_CHART": TaskType.DISPLAY,
}


def normalize_task_type(value: Union[str, TaskType]) -> Union[TaskType, str]:
    """
    Map a stored task-kind name to a ``TaskType``.

    Unknown names are returned unchanged so the executor can report them.
    """
    if isinstance(value, TaskType):
        return value
    if value in TASK_TYPE_ALIASES:
        return TASK_TYPE_ALIASES[value]
    try:
        return TaskType(value)
    except ValueError:
        return value
