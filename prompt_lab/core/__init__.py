"""
Core module - Interpolation, dependency resolution, task execution and runs
"""

from .interpolator import interpolate, get_nested, set_nested, extract_placeholders
from .dependency_resolver import SortResult, topological_sort
from .task_executor import TaskExecutor, ResolvedInputs, resolve_inputs, build_system_instruction
from .workflow_validator import validate_workflow
from .event_bus import EventBus, RunEvent, EventSubscription
from .workflow_runner import WorkflowRunner

__all__ = [
    'interpolate',
    'get_nested',
    'set_nested',
    'extract_placeholders',
    'SortResult',
    'topological_sort',
    'TaskExecutor',
    'ResolvedInputs',
    'resolve_inputs',
    'build_system_instruction',
    'validate_workflow',
    'EventBus',
    'RunEvent',
    'EventSubscription',
    'WorkflowRunner',
]
