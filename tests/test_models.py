"""
Test suite for workflow models.

Tests verify:
- Stored (camelCase) and snake_case workflow JSON both load
- Legacy task-kind names are normalized
- Serialization uses the stored key names
"""

from prompt_lab.models import (
    GenerationConfig,
    ImagePayload,
    InMemoryPromptLibrary,
    LibraryPrompt,
    StagedUserInput,
    Task,
    TaskState,
    TaskStatus,
    TaskType,
    Workflow,
)


STORED_WORKFLOW = {
    "id": "wf-1",
    "name": "Stored",
    "description": "From JSON",
    "isDefault": True,
    "tasks": [
        {
            "id": "t1",
            "name": "Input",
            "type": "DATA_INPUT",
            "dependencies": [],
            "inputKeys": [],
            "outputKey": "text",
            "staticValue": "{{userInput.text}}",
        },
        {
            "id": "t2",
            "name": "Summarize",
            "type": "GEMINI_PROMPT",
            "dependencies": ["t1"],
            "inputKeys": ["text"],
            "outputKey": "summary",
            "promptTemplate": "Summarize {{text}}",
            "agentConfig": {"model": "gemini-2.5-pro", "temperature": 0.2, "topK": 20},
        },
    ],
}


class TestTaskModel:
    """Task parsing and normalization."""

    def test_from_stored_json(self):
        wf = Workflow.from_dict(STORED_WORKFLOW)
        assert wf.is_default is True
        assert [t.id for t in wf.tasks] == ["t1", "t2"]
        summarize = wf.get_task("t2")
        assert summarize.type == TaskType.TEXT_GENERATION
        assert summarize.input_keys == ["text"]
        assert summarize.generation_config == GenerationConfig(model="gemini-2.5-pro", temperature=0.2, top_k=20)
        assert wf.get_task("t1").static_value == "{{userInput.text}}"

    def test_snake_case_keys(self):
        task = Task.from_dict({
            "id": "d",
            "type": "DISPLAY",
            "display_data_key": "summary",
            "output_key": "shown",
            "simulated_delay_ms": 5,
        })
        assert task.name == "d"
        assert task.display_data_key == "summary"
        assert task.output_key == "shown"
        assert task.simulated_delay_ms == 5

    def test_unknown_type_is_kept(self):
        task = Task(id="x", name="x", type="QUANTUM")
        assert task.type == "QUANTUM"

    def test_legacy_aliases(self):
        assert Task(id="a", name="a", type="GEMINI_GROUNDED").type == TaskType.GROUNDED_GENERATION
        assert Task(id="b", name="b", type="SIMULATE_PROCESS").type == TaskType.SIMULATED_PROCESS
        assert Task(id="c", name="c", type="DISPLAY_CHART").type == TaskType.DISPLAY

    def test_to_dict_uses_stored_names(self):
        data = Workflow.from_dict(STORED_WORKFLOW).to_dict()
        summarize = data["tasks"][1]
        assert summarize["type"] == "TEXT_GENERATION"
        assert summarize["promptTemplate"] == "Summarize {{text}}"
        assert summarize["agentConfig"] == {"model": "gemini-2.5-pro", "temperature": 0.2, "topK": 20}
        assert "functionBody" not in summarize
        assert data["isDefault"] is True

    def test_generation_config_merge_ignores_none(self):
        base = GenerationConfig(model="m", temperature=0.5)
        merged = base.merged(temperature=None, top_p=0.9)
        assert merged == GenerationConfig(model="m", temperature=0.5, top_p=0.9)
        assert base.top_p is None


class TestRunRecords:
    """TaskState, payloads and staged input."""

    def test_task_state_defaults(self):
        state = TaskState()
        assert state.status == TaskStatus.PENDING
        assert state.to_dict() == {"status": "PENDING"}

    def test_terminal_statuses(self):
        assert TaskStatus.SKIPPED.is_terminal
        assert not TaskStatus.RUNNING.is_terminal

    def test_image_payload_from_value(self):
        assert ImagePayload.from_value({"type": "image/png", "base64": "AA"}) == ImagePayload("image", "image/png", "AA")
        assert ImagePayload.from_value({"type": "image/png"}) is None
        assert ImagePayload.from_value("not an image") is None

    def test_staged_input_empty(self):
        assert StagedUserInput().is_empty()
        assert StagedUserInput(text="   ").is_empty()
        assert not StagedUserInput(text="hi").is_empty()

    def test_staged_input_from_dict(self):
        staged = StagedUserInput.from_dict({"text": "t", "file": {"name": "a.py", "content": "x"}})
        assert staged.to_dict() == {"text": "t", "file": {"name": "a.py", "content": "x"}}


class TestPromptLibrary:

    def test_library_prompt_from_camel_case(self):
        prompt = LibraryPrompt.from_dict({
            "id": "p1",
            "title": "Critic",
            "promptText": "Review this",
            "sflTenor": {"aiPersona": "critic", "targetAudience": ["editors"], "desiredTone": "blunt"},
            "sflMode": {"textualDirectives": "use bullets"},
        })
        assert prompt.sfl_tenor.ai_persona == "critic"
        assert prompt.sfl_tenor.target_audience == ["editors"]
        assert prompt.sfl_mode.textual_directives == "use bullets"
        assert prompt.sfl_field.topic == ""

    def test_in_memory_lookup(self):
        library = InMemoryPromptLibrary([LibraryPrompt(id="p1", title="t", prompt_text="x")])
        assert len(library) == 1
        assert library.find_prompt_by_id("p1").title == "t"
        assert library.find_prompt_by_id("missing") is None
