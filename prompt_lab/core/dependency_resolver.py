"""
Dependency Resolver - DFS topological sort over a workflow's tasks
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set

from prompt_lab.models import Task
from prompt_lab.utils.logger import get_logger

logger = get_logger(__name__)

CYCLE_MARKER = "Cycle detected"


@dataclass
class SortResult:
    """Execution order plus non-fatal diagnostics."""
    order: List[Task] = field(default_factory=list)
    diagnostics: List[str] = field(default_factory=list)

    @property
    def has_cycle(self) -> bool:
        return any(CYCLE_MARKER in d for d in self.diagnostics)


def topological_sort(tasks: Sequence[Task]) -> SortResult:
    """
    Order tasks so every task follows its dependencies.

    Depth-first with a visited set and a recursion stack. Tasks are visited
    in list order and dependencies in their declared order, so the result is
    deterministic. A cycle or an unknown dependency produces a diagnostic
    instead of an exception; if any cycle is found the order is empty.

    Args:
        tasks: All tasks of the workflow

    Returns:
        SortResult with ``order`` and ``diagnostics``
    """
    task_map: Dict[str, Task] = {task.id: task for task in tasks}
    visited: Set[str] = set()
    recursion_stack: Set[str] = set()
    order: List[Task] = []
    diagnostics: List[str] = []

    def visit(task_id: str) -> None:
        if task_id in recursion_stack:
            diagnostics.append(f"{CYCLE_MARKER} involving: {task_id}")
            return
        if task_id in visited:
            return

        visited.add(task_id)
        recursion_stack.add(task_id)

        task = task_map[task_id]
        for dep_id in task.dependencies:
            if dep_id not in task_map:
                diagnostics.append(
                    f'Warning: Unknown dependency "{dep_id}" in "{task.name}".'
                )
                continue
            visit(dep_id)

        recursion_stack.discard(task_id)
        order.append(task)

    for task in tasks:
        if task.id not in visited:
            visit(task.id)

    result = SortResult(order=order, diagnostics=diagnostics)
    if result.has_cycle:
        logger.warning(f"Workflow graph is not runnable: {'; '.join(diagnostics)}")
        result.order = []
    elif diagnostics:
        logger.debug(f"Sorted {len(order)} tasks with {len(diagnostics)} diagnostic(s)")

    return result
