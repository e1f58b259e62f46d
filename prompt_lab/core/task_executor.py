"""
Task Executor - Runs a single task against a data store snapshot.

Each task kind has one handler; ``HANDLERS`` maps every ``TaskType`` to its
handler and is checked for completeness at import time. Handlers never
mutate the store, they only return the task's output value.
"""

import asyncio
import copy
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from prompt_lab.capabilities import Capabilities
from prompt_lab.core.interpolator import get_nested, has_nested, interpolate, stringify
from prompt_lab.models import (
    GenerationConfig,
    ImagePayload,
    LibraryPrompt,
    PromptLibrary,
    Task,
    TaskType,
)
from prompt_lab.utils.exceptions import (
    CapabilityUnavailableError,
    MalformedImageDataError,
    MissingInputKeyError,
    PromptLabError,
    PromptNotFoundError,
    TaskDefinitionError,
    UnsupportedTaskTypeError,
    wrap_exception,
)
from prompt_lab.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SIMULATED_DELAY_MS = 1000


@dataclass
class ResolvedInputs:
    """Inputs bound from ``task.input_keys``.

    ``by_path`` is keyed by the full dot-path, ``simplified`` by the last
    path segment (the names user code sees).
    """
    by_path: Dict[str, Any] = field(default_factory=dict)
    simplified: Dict[str, Any] = field(default_factory=dict)


def parse_input_key(key: str) -> Tuple[str, bool]:
    """Split ``"path?"`` into ``("path", True)``."""
    if key.endswith("?"):
        return key[:-1], True
    return key, False


def resolve_inputs(task: Task, store: Dict[str, Any]) -> ResolvedInputs:
    """
    Bind each input key of ``task`` from ``store``.

    Raises:
        MissingInputKeyError: A required key is absent
    """
    resolved = ResolvedInputs()
    for key in task.input_keys:
        path, optional = parse_input_key(key)
        if has_nested(store, path):
            resolved.by_path[path] = get_nested(store, path)
        elif not optional:
            raise MissingInputKeyError(task.name, path)

    for path, value in resolved.by_path.items():
        resolved.simplified[path.split(".")[-1]] = value
    return resolved


def build_system_instruction(prompt: LibraryPrompt) -> str:
    """Compose a system instruction from a library prompt's tenor and mode."""
    tenor, mode = prompt.sfl_tenor, prompt.sfl_mode
    parts: List[str] = []
    if tenor.ai_persona:
        parts.append(f"You will act as a {tenor.ai_persona}.")
    if tenor.desired_tone:
        parts.append(f"Your tone should be {tenor.desired_tone}.")
    if tenor.target_audience:
        parts.append(f"You are writing for {', '.join(tenor.target_audience)}.")
    if mode.textual_directives:
        parts.append(f"Follow these directives: {mode.textual_directives}.")
    return " ".join(parts)


def _as_prompt_text(value: Any) -> str:
    # A single-placeholder template can resolve to a non-string value
    return value if isinstance(value, str) else stringify(value)


class TaskExecutor:
    """
    Executes one task at a time.

    Usage:
        executor = TaskExecutor(capabilities, prompt_library)
        result = await executor.execute(task, data_store)
    """

    def __init__(
        self,
        capabilities: Optional[Capabilities] = None,
        prompt_library: Optional[PromptLibrary] = None,
        simulated_delay_ms: int = DEFAULT_SIMULATED_DELAY_MS,
        sandbox_timeout_ms: int = 5000,
    ):
        self.capabilities = capabilities or Capabilities()
        self.prompt_library = prompt_library
        self.simulated_delay_ms = simulated_delay_ms
        self.sandbox_timeout_ms = sandbox_timeout_ms

    async def execute(self, task: Task, store: Dict[str, Any]) -> Any:
        """
        Produce the output value of ``task``.

        Args:
            task: Task definition
            store: Data store snapshot (not mutated)

        Returns:
            The task's result

        Raises:
            PromptLabError: Definition, input or capability failure naming the task
        """
        handler = HANDLERS.get(task.type)
        if handler is None:
            raise UnsupportedTaskTypeError(task.type, task.name)

        inputs = resolve_inputs(task, store)
        logger.debug(f"Executing task {task.id} ({task.type.value}) with inputs {list(inputs.by_path)}")
        return await handler(self, task, store, inputs)

    def _capability(self, name: str, task: Task) -> Callable[..., Awaitable[Any]]:
        capability = getattr(self.capabilities, name, None)
        if capability is None:
            raise CapabilityUnavailableError(name, task.name)
        return capability

    async def _call(self, name: str, task: Task, *args: Any) -> Any:
        """Invoke a capability, converting foreign errors into ones naming the task."""
        capability = self._capability(name, task)
        try:
            return await capability(*args)
        except PromptLabError as e:
            raise e.for_task(task.name)
        except Exception as e:
            raise wrap_exception(e, name, {"task_name": task.name}) from e

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _data_input(self, task: Task, store: Dict[str, Any], inputs: ResolvedInputs) -> Any:
        if isinstance(task.static_value, str):
            return interpolate(task.static_value, store)
        return copy.deepcopy(task.static_value)

    async def _text_generation(self, task: Task, store: Dict[str, Any], inputs: ResolvedInputs) -> Any:
        config = task.generation_config or GenerationConfig()

        if task.prompt_library_id:
            prompt = None
            if self.prompt_library is not None:
                prompt = self.prompt_library.find_prompt_by_id(task.prompt_library_id)
            if prompt is None:
                raise PromptNotFoundError(task.prompt_library_id, task.name)
            synthesized = build_system_instruction(prompt)
            if synthesized:
                config = config.merged(system_instruction=synthesized)
            prompt_text = interpolate(prompt.prompt_text, store)
        else:
            if not task.prompt_template:
                raise TaskDefinitionError(task.name, "prompt_template", "Prompt template is missing.")
            prompt_text = interpolate(task.prompt_template, store)

        return await self._call("generate_text", task, _as_prompt_text(prompt_text), config)

    async def _grounded_generation(self, task: Task, store: Dict[str, Any], inputs: ResolvedInputs) -> Any:
        if not task.prompt_template:
            raise TaskDefinitionError(task.name, "prompt_template", "Prompt template is missing.")
        prompt_text = _as_prompt_text(interpolate(task.prompt_template, store))
        result = await self._call("generate_grounded", task, prompt_text,
                                  task.generation_config or GenerationConfig())

        sources, seen = [], set()
        for source in (result or {}).get("sources") or []:
            uri = source.get("uri") if isinstance(source, dict) else None
            if uri and uri not in seen:
                seen.add(uri)
                sources.append({"uri": uri, "title": source.get("title") or uri})
        return {"text": (result or {}).get("text", ""), "sources": sources}

    async def _image_analysis(self, task: Task, store: Dict[str, Any], inputs: ResolvedInputs) -> Any:
        if not task.prompt_template:
            raise TaskDefinitionError(task.name, "prompt_template", "Prompt template is missing.")
        if not task.input_keys:
            raise TaskDefinitionError(task.name, "input_keys", "Missing input key for image.")

        path, optional = parse_input_key(task.input_keys[0])
        image = ImagePayload.from_value(inputs.by_path.get(path))
        if image is None:
            if optional:
                return ""
            raise MalformedImageDataError(task.name, path, "expected an object with base64 and type")

        prompt_text = _as_prompt_text(interpolate(task.prompt_template, store))
        return await self._call("analyze_image", task, prompt_text, image,
                                task.generation_config or GenerationConfig())

    async def _text_manipulation(self, task: Task, store: Dict[str, Any], inputs: ResolvedInputs) -> Any:
        if not task.function_body:
            raise TaskDefinitionError(task.name, "function_body", "Function body is missing.")
        return await self._call("run_sandboxed_code", task, task.function_body,
                                inputs.simplified, self.sandbox_timeout_ms)

    async def _simulated_process(self, task: Task, store: Dict[str, Any], inputs: ResolvedInputs) -> Any:
        delay_ms = task.simulated_delay_ms
        if delay_ms is None:
            delay_ms = self.simulated_delay_ms
        await asyncio.sleep(delay_ms / 1000)
        return {"status": "ok", "message": f"Simulated {task.name}"}

    async def _display(self, task: Task, store: Dict[str, Any], inputs: ResolvedInputs) -> Any:
        if not task.display_data_key:
            raise TaskDefinitionError(task.name, "display_data_key", "Data key is missing.")
        return get_nested(store, task.display_data_key)


Handler = Callable[[TaskExecutor, Task, Dict[str, Any], ResolvedInputs], Awaitable[Any]]

HANDLERS: Dict[TaskType, Handler] = {
    TaskType.DATA_INPUT: TaskExecutor._data_input,
    TaskType.TEXT_GENERATION: TaskExecutor._text_generation,
    TaskType.GROUNDED_GENERATION: TaskExecutor._grounded_generation,
    TaskType.IMAGE_ANALYSIS: TaskExecutor._image_analysis,
    TaskType.TEXT_MANIPULATION: TaskExecutor._text_manipulation,
    TaskType.SIMULATED_PROCESS: TaskExecutor._simulated_process,
    TaskType.DISPLAY: TaskExecutor._display,
}

_unhandled = set(TaskType) - set(HANDLERS)
if _unhandled:
    raise RuntimeError(f"Task types without a handler: {sorted(t.value for t in _unhandled)}")
