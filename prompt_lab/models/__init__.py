"""
Models module - Data structures and enums for the workflow engine
"""

from .enums import TaskType, TaskStatus, TASK_TYPE_ALIASES, normalize_task_type
from .task import (
    GenerationConfig,
    Task,
    Workflow,
    TaskState,
    ImagePayload,
    FilePayload,
    StagedUserInput,
)
from .prompt import (
    SFLField,
    SFLTenor,
    SFLMode,
    LibraryPrompt,
    PromptLibrary,
    InMemoryPromptLibrary,
)

__all__ = [
    'TaskType',
    'TaskStatus',
    'TASK_TYPE_ALIASES',
    'normalize_task_type',
    'GenerationConfig',
    'Task',
    'Workflow',
    'TaskState',
    'ImagePayload',
    'FilePayload',
    'StagedUserInput',
    'SFLField',
    'SFLTenor',
    'SFLMode',
    'LibraryPrompt',
    'PromptLibrary',
    'InMemoryPromptLibrary',
]
