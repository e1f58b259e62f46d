"""
Prompt Lab Engine - Dependency-ordered execution of AI prompt workflows

A workflow is a graph of tasks (static inputs, LLM prompts, search-grounded
prompts, image analysis, sandboxed Python transforms, displays). The engine
orders the tasks topologically, runs them one at a time against a shared data
store, and tracks per-task status for observers.

Features:
- {{path.to.value}} template interpolation with type preservation
- DFS topological sort with cycle and dangling-dependency diagnostics
- Fail-fast runs with skip propagation to dependent tasks
- Multi-provider LLM support (Google, OpenAI, Anthropic, OpenRouter)
- Out-of-process Python sandbox with a hard timeout
- Environment-based configuration

Installation:
pip install langchain-core langchain-google-genai google-genai python-dotenv

Configuration:
    Create a .env file with your LLM provider configuration:

    GOOGLE_API_KEY=AIza...
    PROMPT_LAB_LLM_PROVIDER=google
    PROMPT_LAB_LLM_MODEL=gemini-2.5-flash

Example:
    >>> import asyncio
    >>> from prompt_lab import EngineConfig, EnvConfig, WorkflowRunner, build_capabilities
    >>> from prompt_lab.services import get_default_workflow
    >>>
    >>> EnvConfig.load_env_file()
    >>> config = EngineConfig.from_env()
    >>> runner = WorkflowRunner(get_default_workflow("wf-default-1"), build_capabilities(config), config=config)
    >>> runner.stage_input({"text": "Some article..."})
    >>> states = asyncio.run(runner.run())
    >>> print(runner.data_store["finalReport"])
"""

# Fix Unicode support on Windows BEFORE any other imports
import sys
import codecs
if sys.platform == 'win32':
    try:
        if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding and sys.stdout.encoding.lower() != 'utf-8':
            sys.stdout = codecs.getwriter('utf-8')(sys.stdout.buffer, 'backslashreplace')
            sys.stderr = codecs.getwriter('utf-8')(sys.stderr.buffer, 'backslashreplace')
    except (AttributeError, TypeError):
        pass

__version__ = "1.0.0"
__all__ = [
    'WorkflowRunner',
    'TaskExecutor',
    'interpolate',
    'topological_sort',
    'validate_workflow',
    'EventBus',
    'Capabilities',
    'build_capabilities',
    'EngineConfig',
    'LLMConfig',
    'EnvConfig',
    'Task',
    'TaskType',
    'TaskStatus',
    'TaskState',
    'Workflow',
    'StagedUserInput',
    'LibraryPrompt',
    'InMemoryPromptLibrary',
    'PromptLabError',
]

from .config import EngineConfig, LLMConfig, EnvConfig
from .models import (
    Task,
    TaskType,
    TaskStatus,
    TaskState,
    Workflow,
    StagedUserInput,
    LibraryPrompt,
    InMemoryPromptLibrary,
)
from .capabilities import Capabilities, build_capabilities
from .core import (
    WorkflowRunner,
    TaskExecutor,
    interpolate,
    topological_sort,
    validate_workflow,
    EventBus,
)
from .utils.exceptions import PromptLabError
