"""
Prompt library records referenced by TEXT_GENERATION tasks
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol


@dataclass
class SFLField:
    topic: str = ""
    task_type: str = ""
    domain_specifics: str = ""
    keywords: str = ""


@dataclass
class SFLTenor:
    """Who is speaking to whom, and how."""
    ai_persona: str = ""
    target_audience: List[str] = field(default_factory=list)
    desired_tone: str = ""
    interpersonal_stance: str = ""


@dataclass
class SFLMode:
    """Shape of the expected output."""
    output_format: str = ""
    rhetorical_structure: str = ""
    length_constraint: str = ""
    textual_directives: str = ""


@dataclass
class LibraryPrompt:
    """A reusable prompt record: text plus tone/persona/format metadata."""
    id: str
    title: str
    prompt_text: str
    sfl_field: SFLField = field(default_factory=SFLField)
    sfl_tenor: SFLTenor = field(default_factory=SFLTenor)
    sfl_mode: SFLMode = field(default_factory=SFLMode)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryPrompt":
        sfl_field = data.get("sflField") or {}
        tenor = data.get("sflTenor") or {}
        mode = data.get("sflMode") or {}
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            prompt_text=data.get("promptText", ""),
            sfl_field=SFLField(
                topic=sfl_field.get("topic", ""),
                task_type=sfl_field.get("taskType", ""),
                domain_specifics=sfl_field.get("domainSpecifics", ""),
                keywords=sfl_field.get("keywords", ""),
            ),
            sfl_tenor=SFLTenor(
                ai_persona=tenor.get("aiPersona", ""),
                target_audience=list(tenor.get("targetAudience") or []),
                desired_tone=tenor.get("desiredTone", ""),
                interpersonal_stance=tenor.get("interpersonalStance", ""),
            ),
            sfl_mode=SFLMode(
                output_format=mode.get("outputFormat", ""),
                rhetorical_structure=mode.get("rhetoricalStructure", ""),
                length_constraint=mode.get("lengthConstraint", ""),
                textual_directives=mode.get("textualDirectives", ""),
            ),
        )


class PromptLibrary(Protocol):
    """Lookup of library prompts by id."""

    def find_prompt_by_id(self, prompt_id: str) -> Optional[LibraryPrompt]:
        ...


class InMemoryPromptLibrary:
    """Dictionary-backed ``PromptLibrary``."""

    def __init__(self, prompts: Optional[Iterable[LibraryPrompt]] = None):
        self._prompts: Dict[str, LibraryPrompt] = {}
        for prompt in prompts or []:
            self.add(prompt)

    def add(self, prompt: LibraryPrompt) -> None:
        self._prompts[prompt.id] = prompt

    def find_prompt_by_id(self, prompt_id: str) -> Optional[LibraryPrompt]:
        return self._prompts.get(prompt_id)

    def __len__(self) -> int:
        return len(self._prompts)
