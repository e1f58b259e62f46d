"""
Workflow Generator - Ask the JSON capability to draft a workflow for a goal
"""

import uuid
from typing import Any, Dict

from prompt_lab.capabilities import Capabilities
from prompt_lab.models import GenerationConfig, Workflow
from prompt_lab.utils.exceptions import (
    CapabilityUnavailableError,
    PromptLabError,
    WorkflowSchemaError,
    wrap_exception,
)
from prompt_lab.utils.logger import get_logger

logger = get_logger(__name__)

ORCHESTRATOR_INSTRUCTION = """You are an AI workflow orchestrator. Generate a multi-task workflow JSON from the user's goal.
Root object: { "name", "description", "tasks": [] }.
Tasks: { "id", "name", "description", "type", "dependencies" (array of IDs), "inputKeys" (array), "outputKey", "promptTemplate"?, "staticValue"?, "functionBody"?, "dataKey"? }.
Task Types: DATA_INPUT, TEXT_GENERATION, GROUNDED_GENERATION, IMAGE_ANALYSIS, TEXT_MANIPULATION, SIMULATED_PROCESS, DISPLAY.
Staged user input is available as userInput.text, userInput.image and userInput.file.content.
TEXT_MANIPULATION functionBody is the body of a Python function that reads the `inputs` dict (keyed by the last segment of each input key) and returns a value.
Reference stored values in templates with {{key}} placeholders."""


def _check_shape(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise WorkflowSchemaError("Generated workflow is invalid.")
    if not data.get("name") or not data.get("description") or not isinstance(data.get("tasks"), list):
        raise WorkflowSchemaError(
            "Generated workflow is invalid.",
            data_sample={k: data.get(k) for k in ("name", "description") if k in data},
        )
    return data


async def generate_workflow_from_goal(goal: str, capabilities: Capabilities) -> Workflow:
    """
    Draft a workflow for ``goal``.

    Args:
        goal: Plain-language description of what the workflow should do
        capabilities: Must provide ``generate_json``

    Returns:
        A new ``Workflow`` with id ``wf-custom-<8 hex>``

    Raises:
        WorkflowSchemaError: The model's output is not a usable workflow
    """
    if capabilities.generate_json is None:
        raise CapabilityUnavailableError("generate_json", "workflow generator")

    logger.info(f"Generating workflow for goal: {goal[:80]}")
    try:
        data = await capabilities.generate_json(
            f'User\'s goal: "{goal}"',
            GenerationConfig(system_instruction=ORCHESTRATOR_INSTRUCTION),
        )
    except PromptLabError:
        raise
    except Exception as e:
        raise wrap_exception(e, "generate_json", {"task_name": "workflow generator"}) from e

    data = dict(_check_shape(data))
    data["id"] = f"wf-custom-{uuid.uuid4().hex[:8]}"
    data["is_default"] = False

    try:
        workflow = Workflow.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise WorkflowSchemaError(f"Generated workflow is invalid: {e}") from e

    logger.info(f"Generated workflow '{workflow.name}' with {len(workflow.tasks)} tasks")
    return workflow
