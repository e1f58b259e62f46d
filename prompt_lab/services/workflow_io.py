"""
JSON file helpers for workflows.
"""

import json
from pathlib import Path
from typing import Union

from prompt_lab.models import Workflow
from prompt_lab.utils.exceptions import WorkflowSchemaError


def load_workflow(path: Union[str, Path]) -> Workflow:
    """Read a workflow JSON file (camelCase or snake_case keys)."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise WorkflowSchemaError(f"Workflow file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict) or "id" not in data or not isinstance(data.get("tasks"), list):
        raise WorkflowSchemaError(f"Workflow file {path} must contain an object with 'id' and 'tasks'.")

    try:
        return Workflow.from_dict(data)
    except KeyError as e:
        raise WorkflowSchemaError(f"Workflow file {path}: task is missing field {e}") from e


def dump_workflow(workflow: Workflow, path: Union[str, Path]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(workflow.to_dict(), f, indent=2, ensure_ascii=False)
