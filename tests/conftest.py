"""
Shared fixtures for the Prompt Lab test suite.
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from prompt_lab.capabilities import Capabilities
from prompt_lab.config import EngineConfig
from prompt_lab.models import Task, TaskType


def make_task(task_id: str, type: Any = TaskType.DATA_INPUT, **kwargs) -> Task:
    """Task with a name and output key derived from its id."""
    kwargs.setdefault("name", f"Task {task_id}")
    kwargs.setdefault("output_key", f"{task_id}_out")
    return Task(id=task_id, type=type, **kwargs)


@pytest.fixture
def fake_capabilities():
    """Capability set backed by AsyncMocks."""
    return Capabilities(
        generate_text=AsyncMock(return_value="generated text"),
        generate_json=AsyncMock(return_value={}),
        generate_grounded=AsyncMock(return_value={"text": "grounded", "sources": []}),
        analyze_image=AsyncMock(return_value="image description"),
        run_sandboxed_code=AsyncMock(return_value="sandbox result"),
    )


@pytest.fixture
def engine_config():
    """Config with no simulated delay."""
    return EngineConfig(simulated_delay_ms=0, validate_on_run=False)
