"""
Soft structural checks on a workflow. Warnings only, never errors.
"""

from collections import Counter
from typing import List, Set

from prompt_lab.core.interpolator import extract_placeholders
from prompt_lab.core.task_executor import parse_input_key
from prompt_lab.models import Workflow


def _consumed_keys(workflow: Workflow) -> Set[str]:
    consumed: Set[str] = set()
    for task in workflow.tasks:
        for key in task.input_keys:
            consumed.add(parse_input_key(key)[0])
        if task.display_data_key:
            consumed.add(task.display_data_key)
        consumed.update(extract_placeholders(task.static_value))
        consumed.update(extract_placeholders(task.prompt_template))
    return consumed


def _is_consumed(output_key: str, consumed: Set[str]) -> bool:
    # Reading "summary.title" consumes the "summary" output too
    return any(key == output_key or key.startswith(output_key + ".") for key in consumed)


def validate_workflow(workflow: Workflow) -> List[str]:
    """
    Return human-readable warnings about ``workflow``.

    - outputs no other task reads ("Potential Dead End")
    - output keys written by more than one task
    """
    warnings: List[str] = []
    consumed = _consumed_keys(workflow)

    for task in workflow.tasks:
        if task.output_key and not _is_consumed(task.output_key, consumed):
            warnings.append(
                f'Potential Dead End: Output "{task.output_key}" from task "{task.name}" '
                f'is not used by any other task.'
            )

    counts = Counter(task.output_key for task in workflow.tasks if task.output_key)
    for output_key, count in counts.items():
        if count > 1:
            producers = [t.name for t in workflow.tasks if t.output_key == output_key]
            warnings.append(
                f'Warning: Output "{output_key}" is written by {count} tasks: {", ".join(producers)}.'
            )

    return warnings
