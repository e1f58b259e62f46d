"""
Task module - Workflow graph structures and per-task run state
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union

from .enums import TaskStatus, TaskType, normalize_task_type


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in ``data`` (camelCase or snake_case)."""
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass
class GenerationConfig:
    """Per-task overrides for a generation call."""
    provider: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    system_instruction: Optional[str] = None

    def merged(self, **overrides: Any) -> "GenerationConfig":
        """Copy with the given fields replaced; ``None`` overrides are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GenerationConfig":
        data = data or {}
        return cls(
            provider=data.get("provider"),
            model=data.get("model"),
            temperature=data.get("temperature"),
            top_k=_pick(data, "topK", "top_k"),
            top_p=_pick(data, "topP", "top_p"),
            max_tokens=_pick(data, "maxTokens", "max_tokens"),
            system_instruction=_pick(data, "systemInstruction", "system_instruction"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "provider": self.provider,
            "model": self.model,
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxTokens": self.max_tokens,
            "systemInstruction": self.system_instruction,
        }
        return {k: v for k, v in result.items() if v is not None}


@dataclass
class Task:
    """
    A single node in the workflow graph.

    ``input_keys`` are dot-paths into the data store; a trailing ``?`` marks a
    key optional. ``output_key`` is where the result is written on success.
    """
    id: str
    name: str
    type: Union[TaskType, str]
    description: str = ""
    dependencies: List[str] = field(default_factory=list)
    input_keys: List[str] = field(default_factory=list)
    output_key: str = ""
    prompt_template: Optional[str] = None
    prompt_library_id: Optional[str] = None
    function_body: Optional[str] = None
    static_value: Any = None
    display_data_key: Optional[str] = None
    generation_config: Optional[GenerationConfig] = None
    # SIMULATED_PROCESS only; falls back to the engine setting when unset
    simulated_delay_ms: Optional[int] = None

    def __post_init__(self):
        self.type = normalize_task_type(self.type)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Build a task from stored JSON (camelCase) or snake_case keys."""
        config = _pick(data, "agentConfig", "generationConfig", "generation_config")
        if isinstance(config, dict):
            config = GenerationConfig.from_dict(config)
        return cls(
            id=str(data["id"]),
            name=data.get("name", str(data["id"])),
            type=data["type"],
            description=data.get("description", ""),
            dependencies=list(data.get("dependencies") or []),
            input_keys=list(_pick(data, "inputKeys", "input_keys", default=None) or []),
            output_key=_pick(data, "outputKey", "output_key", default=""),
            prompt_template=_pick(data, "promptTemplate", "prompt_template"),
            prompt_library_id=_pick(data, "promptId", "promptLibraryId", "prompt_library_id"),
            function_body=_pick(data, "functionBody", "function_body"),
            static_value=_pick(data, "staticValue", "static_value"),
            display_data_key=_pick(data, "dataKey", "displayDataKey", "display_data_key"),
            generation_config=config,
            simulated_delay_ms=_pick(data, "simulatedDelayMs", "simulated_delay_ms"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the stored-workflow (camelCase) key names."""
        result: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value if isinstance(self.type, TaskType) else self.type,
            "dependencies": list(self.dependencies),
            "inputKeys": list(self.input_keys),
            "outputKey": self.output_key,
        }
        optional = {
            "promptTemplate": self.prompt_template,
            "promptId": self.prompt_library_id,
            "functionBody": self.function_body,
            "staticValue": self.static_value,
            "dataKey": self.display_data_key,
            "simulatedDelayMs": self.simulated_delay_ms,
        }
        result.update({k: v for k, v in optional.items() if v is not None})
        if self.generation_config is not None:
            result["agentConfig"] = self.generation_config.to_dict()
        return result


@dataclass
class Workflow:
    """An ordered list of tasks forming a dependency graph."""
    id: str
    name: str
    description: str = ""
    tasks: List[Task] = field(default_factory=list)
    is_default: bool = False

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workflow":
        return cls(
            id=str(data["id"]),
            name=data.get("name", str(data["id"])),
            description=data.get("description", ""),
            tasks=[Task.from_dict(t) for t in data.get("tasks") or []],
            is_default=bool(_pick(data, "isDefault", "is_default", default=False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "tasks": [t.to_dict() for t in self.tasks],
        }
        if self.is_default:
            result["isDefault"] = True
        return result


@dataclass
class TaskState:
    """Observable run-time record for one task. Timestamps are epoch milliseconds."""
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    error: Optional[str] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value}
        if self.status == TaskStatus.COMPLETED:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        if self.start_time is not None:
            data["startTime"] = self.start_time
        if self.end_time is not None:
            data["endTime"] = self.end_time
        return data


@dataclass
class ImagePayload:
    """Image handed to a vision capability: base64 payload plus MIME type."""
    name: str
    type: str
    base64: str

    @classmethod
    def from_value(cls, value: Any) -> Optional["ImagePayload"]:
        """Accept a payload or a mapping; returns None when base64/type is missing."""
        if isinstance(value, ImagePayload):
            return value
        if not isinstance(value, dict):
            return None
        if not value.get("base64") or not value.get("type"):
            return None
        return cls(name=value.get("name", "image"), type=value["type"], base64=value["base64"])

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "type": self.type, "base64": self.base64}


@dataclass
class FilePayload:
    name: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "content": self.content}


@dataclass
class StagedUserInput:
    """
    User-provided text/image/file bundle installed as the ``userInput``
    sub-tree of the data store before a run.
    """
    text: Optional[str] = None
    image: Optional[ImagePayload] = None
    file: Optional[FilePayload] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "StagedUserInput":
        data = data or {}
        image = data.get("image")
        file = data.get("file")
        if isinstance(image, dict):
            image = ImagePayload(name=image.get("name", "image"), type=image.get("type", ""),
                                 base64=image.get("base64", ""))
        if isinstance(file, dict):
            file = FilePayload(name=file.get("name", "file"), content=file.get("content", ""))
        return cls(text=data.get("text"), image=image, file=file)

    def is_empty(self) -> bool:
        return not (self.text and self.text.strip()) and self.image is None and self.file is None

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form stored in the data store; absent parts are omitted."""
        data: Dict[str, Any] = {}
        if self.text is not None:
            data["text"] = self.text
        if self.image is not None:
            data["image"] = self.image.to_dict()
        if self.file is not None:
            data["file"] = self.file.to_dict()
        return data
