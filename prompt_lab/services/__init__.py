"""
Services module - Workflow generation, built-in workflows and file helpers
"""

from .default_workflows import DEFAULT_WORKFLOWS, get_default_workflow
from .workflow_generator import generate_workflow_from_goal, ORCHESTRATOR_INSTRUCTION
from .workflow_io import load_workflow, dump_workflow

__all__ = [
    'DEFAULT_WORKFLOWS',
    'get_default_workflow',
    'generate_workflow_from_goal',
    'ORCHESTRATOR_INSTRUCTION',
    'load_workflow',
    'dump_workflow',
]
