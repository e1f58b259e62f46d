"""
Test suite for WorkflowRunner.

Tests verify:
- End-to-end data flow through the store
- Fail-fast halting and skip propagation
- Cycle aborts and run feedback
- stage_input / reset semantics
- Lifecycle guards and run events
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from prompt_lab.core.event_bus import EventBus
from prompt_lab.core.task_executor import TaskExecutor
from prompt_lab.core.workflow_runner import (
    EMPTY_INPUT_WARNING,
    NO_WORKFLOW_MESSAGE,
    SKIPPED_REASON,
    WorkflowRunner,
)
from prompt_lab.models import StagedUserInput, TaskState, TaskStatus, TaskType, Workflow
from prompt_lab.utils.exceptions import LLMError, RunInProgressError, SandboxExecutionError

from conftest import make_task


def run(coro):
    return asyncio.run(coro)


def make_runner(tasks, capabilities, config, **kwargs):
    workflow = Workflow(id="wf-test", name="Test", tasks=tasks)
    return WorkflowRunner(workflow, capabilities, config=config, **kwargs)


class FailingExecutor(TaskExecutor):
    """Executor that raises for selected task ids and records calls."""

    def __init__(self, fail_ids, **kwargs):
        super().__init__(**kwargs)
        self.fail_ids = set(fail_ids)
        self.executed = []

    async def execute(self, task, store):
        self.executed.append(task.id)
        if task.id in self.fail_ids:
            raise RuntimeError(f"boom in {task.id}")
        return f"{task.id}-result"


class TestEndToEnd:
    """Data flows from staged input through tasks."""

    def test_summarize_article(self, fake_capabilities, engine_config):
        tasks = [
            make_task("input", static_value="{{userInput.text}}", output_key="articleText"),
            make_task("summarize", type=TaskType.TEXT_GENERATION, dependencies=["input"],
                      input_keys=["articleText"], output_key="summary",
                      prompt_template="Summarize: {{articleText}}"),
        ]
        runner = make_runner(tasks, fake_capabilities, engine_config)
        runner.stage_input(StagedUserInput(text="The quick fox."))

        states = run(runner.run())

        assert runner.data_store["articleText"] == "The quick fox."
        assert runner.data_store["summary"] == "generated text"
        assert fake_capabilities.generate_text.await_args.args[0] == "Summarize: The quick fox."
        assert states["input"].status == TaskStatus.COMPLETED
        assert states["summarize"].status == TaskStatus.COMPLETED
        assert states["summarize"].result == "generated text"
        assert runner.run_feedback == []
        assert runner.is_running is False

    def test_timestamps_recorded(self, fake_capabilities, engine_config):
        runner = make_runner([make_task("a", static_value=1)], fake_capabilities, engine_config)
        runner.stage_input({"text": "x"})
        state = run(runner.run())["a"]
        assert state.start_time is not None
        assert state.end_time is not None
        assert state.end_time >= state.start_time
        assert state.error is None

    def test_dotted_output_key_is_nested(self, fake_capabilities, engine_config):
        tasks = [
            make_task("a", static_value="S", output_key="report.summary"),
            make_task("b", type=TaskType.DISPLAY, dependencies=["a"],
                      input_keys=["report.summary"], display_data_key="report.summary",
                      output_key="shown"),
        ]
        runner = make_runner(tasks, fake_capabilities, engine_config)
        runner.stage_input({"text": "x"})
        run(runner.run())
        assert runner.data_store["report"] == {"summary": "S"}
        assert runner.data_store["shown"] == "S"

    def test_executor_cannot_mutate_runner_store(self, engine_config):
        class MutatingExecutor(TaskExecutor):
            async def execute(self, task, store):
                store["userInput"]["text"] = "tampered"
                return "ok"

        runner = make_runner([make_task("a")], None, engine_config, executor=MutatingExecutor())
        runner.stage_input({"text": "original"})
        run(runner.run())
        assert runner.data_store["userInput"]["text"] == "original"


class TestFailurePropagation:
    """Fail-fast and skip semantics."""

    def test_chain_failure_skips_downstream(self, engine_config):
        tasks = [
            make_task("A"),
            make_task("B", dependencies=["A"]),
            make_task("C", dependencies=["B"]),
        ]
        executor = FailingExecutor({"B"})
        runner = make_runner(tasks, None, engine_config, executor=executor)
        runner.stage_input({"text": "x"})

        states = run(runner.run())

        assert states["A"].status == TaskStatus.COMPLETED
        assert states["B"].status == TaskStatus.FAILED
        assert states["B"].error == "boom in B"
        assert states["B"].end_time is not None
        assert states["C"].status == TaskStatus.SKIPPED
        assert states["C"].error == SKIPPED_REASON
        assert states["C"].start_time is None
        assert executor.executed == ["A", "B"]

    def test_run_halts_on_first_failure(self, engine_config):
        tasks = [make_task("A"), make_task("B"), make_task("C")]
        executor = FailingExecutor({"A"})
        runner = make_runner(tasks, None, engine_config, executor=executor)
        runner.stage_input({"text": "x"})

        states = run(runner.run())

        assert executor.executed == ["A"]
        assert states["B"].status == TaskStatus.PENDING
        assert states["C"].status == TaskStatus.PENDING

    def test_transitive_dependents_skipped_independent_untouched(self, engine_config):
        tasks = [
            make_task("A"),
            make_task("B", dependencies=["A"]),
            make_task("C", dependencies=["B"]),
            make_task("D"),
            make_task("E", dependencies=["D"]),
        ]
        executor = FailingExecutor({"A"})
        runner = make_runner(tasks, None, engine_config, executor=executor)
        runner.stage_input({"text": "x"})

        states = run(runner.run())

        assert states["A"].status == TaskStatus.FAILED
        assert states["B"].status == TaskStatus.SKIPPED
        assert states["C"].status == TaskStatus.SKIPPED
        assert states["D"].status == TaskStatus.PENDING
        assert states["E"].status == TaskStatus.PENDING

    def test_missing_input_fails_with_message(self, fake_capabilities, engine_config):
        task = make_task("t", type=TaskType.TEXT_GENERATION, input_keys=["missing"],
                         prompt_template="x")
        runner = make_runner([task], fake_capabilities, engine_config)
        runner.stage_input({"text": "x"})

        state = run(runner.run())["t"]

        assert state.status == TaskStatus.FAILED
        assert state.error == 'Missing required input key "missing" in data store for task "Task t".'
        assert state.result is None

    def test_sandbox_error_names_task(self, fake_capabilities, engine_config):
        fake_capabilities.run_sandboxed_code.side_effect = SandboxExecutionError(
            "ZeroDivisionError: division by zero")
        task = make_task("wc", type=TaskType.TEXT_MANIPULATION, name="Word Counter",
                         function_body="return 1 / 0")
        runner = make_runner([task], fake_capabilities, engine_config)
        runner.stage_input({"text": "x"})

        state = run(runner.run())["wc"]

        assert state.status == TaskStatus.FAILED
        assert state.error == ('Task "Word Counter": Error in custom function: '
                               'ZeroDivisionError: division by zero')

    def test_llm_error_names_task(self, fake_capabilities, engine_config):
        fake_capabilities.generate_text.side_effect = LLMError(provider="google", message="quota exceeded")
        task = make_task("sum", type=TaskType.TEXT_GENERATION, name="Summarizer", prompt_template="x")
        runner = make_runner([task], fake_capabilities, engine_config)
        runner.stage_input({"text": "x"})

        state = run(runner.run())["sum"]

        assert state.status == TaskStatus.FAILED
        assert "Summarizer" in state.error
        assert "quota exceeded" in state.error

    def test_output_not_written_on_failure(self, engine_config):
        runner = make_runner([make_task("A", output_key="out")], None, engine_config,
                             executor=FailingExecutor({"A"}))
        runner.stage_input({"text": "x"})
        run(runner.run())
        assert "out" not in runner.data_store


class TestDiagnostics:
    """run_feedback contents."""

    def test_cycle_aborts_with_zero_tasks(self, engine_config):
        tasks = [make_task("X", dependencies=["Y"]), make_task("Y", dependencies=["X"])]
        executor = FailingExecutor(set())
        runner = make_runner(tasks, None, engine_config, executor=executor)
        runner.stage_input({"text": "x"})

        states = run(runner.run())

        assert executor.executed == []
        assert all(s.status == TaskStatus.PENDING for s in states.values())
        assert any("Cycle detected" in f for f in runner.run_feedback)
        assert runner.is_running is False

    def test_dangling_dependency_still_runs(self, engine_config):
        tasks = [make_task("A", dependencies=["ghost"]), make_task("B", dependencies=["A"])]
        executor = FailingExecutor(set())
        runner = make_runner(tasks, None, engine_config, executor=executor)
        runner.stage_input({"text": "x"})

        states = run(runner.run())

        assert executor.executed == ["A", "B"]
        assert states["B"].status == TaskStatus.COMPLETED
        assert runner.run_feedback == ['Warning: Unknown dependency "ghost" in "Task A".']

    def test_empty_input_warning_but_runs(self, engine_config):
        executor = FailingExecutor(set())
        runner = make_runner([make_task("A")], None, engine_config, executor=executor)

        states = run(runner.run())

        assert runner.run_feedback[0] == EMPTY_INPUT_WARNING
        assert states["A"].status == TaskStatus.COMPLETED

    def test_blank_text_counts_as_empty(self, engine_config):
        runner = make_runner([make_task("A")], None, engine_config, executor=FailingExecutor(set()))
        runner.stage_input({"text": ""})
        run(runner.run())
        assert EMPTY_INPUT_WARNING in runner.run_feedback

    def test_validation_warnings_appended_when_enabled(self, fake_capabilities, engine_config):
        engine_config.validate_on_run = True
        runner = make_runner([make_task("A", output_key="lonely")], fake_capabilities, engine_config)
        runner.stage_input({"text": "x"})
        run(runner.run())
        assert any("Potential Dead End" in f for f in runner.run_feedback)

    def test_feedback_cleared_between_runs(self, engine_config):
        runner = make_runner([make_task("A")], None, engine_config, executor=FailingExecutor(set()))
        run(runner.run())
        assert runner.run_feedback == [EMPTY_INPUT_WARNING]
        runner.stage_input({"text": "now staged"})
        run(runner.run())
        assert runner.run_feedback == []

    def test_no_workflow(self, engine_config, fake_capabilities):
        runner = WorkflowRunner(None, fake_capabilities, config=engine_config)
        assert run(runner.run()) == {}
        assert runner.run_feedback == [NO_WORKFLOW_MESSAGE]


class TestLifecycle:
    """stage_input, reset and guards."""

    def test_reset_after_run(self, fake_capabilities, engine_config):
        runner = make_runner([make_task("A", static_value="v")], fake_capabilities, engine_config)
        runner.stage_input({"text": "x"})
        run(runner.run())

        runner.reset()

        assert runner.data_store == {}
        assert runner.run_feedback == []
        assert runner.task_states == {"A": TaskState()}
        state = runner.task_states["A"]
        assert state.status == TaskStatus.PENDING
        assert state.result is None and state.error is None
        assert state.start_time is None and state.end_time is None

    def test_stage_input_replaces_store(self, fake_capabilities, engine_config):
        runner = make_runner([make_task("A", static_value="v")], fake_capabilities, engine_config)
        runner.stage_input({"text": "first"})
        run(runner.run())

        runner.stage_input(StagedUserInput(text="second"))

        assert runner.data_store == {"userInput": {"text": "second"}}
        assert runner.task_states["A"].status == TaskStatus.PENDING

    def test_stage_input_with_image_and_file(self, fake_capabilities, engine_config):
        runner = make_runner([make_task("A")], fake_capabilities, engine_config)
        runner.stage_input({
            "image": {"name": "a.png", "type": "image/png", "base64": "AAA"},
            "file": {"name": "main.py", "content": "print(1)"},
        })
        staged = runner.data_store["userInput"]
        assert staged["image"] == {"name": "a.png", "type": "image/png", "base64": "AAA"}
        assert staged["file"] == {"name": "main.py", "content": "print(1)"}
        assert "text" not in staged

    def test_rerun_sees_outputs_of_earlier_run(self, fake_capabilities, engine_config):
        tasks = [
            make_task("A", static_value="{{count}}", input_keys=["count?"], output_key="previous"),
            make_task("B", static_value=1, output_key="count"),
        ]
        runner = make_runner(tasks, fake_capabilities, engine_config)
        runner.stage_input({"text": "x"})

        run(runner.run())
        assert runner.data_store["previous"] == "{{count}}"

        run(runner.run())
        assert runner.data_store == {"userInput": {"text": "x"}, "previous": 1, "count": 1}

    def test_stage_input_drops_earlier_outputs(self, fake_capabilities, engine_config):
        runner = make_runner([make_task("A", static_value="v", output_key="out")],
                             fake_capabilities, engine_config)
        runner.stage_input({"text": "x"})
        run(runner.run())
        runner.stage_input({"text": "y"})
        assert runner.data_store == {"userInput": {"text": "y"}}

    def test_snapshots_are_copies(self, fake_capabilities, engine_config):
        runner = make_runner([make_task("A")], fake_capabilities, engine_config)
        runner.stage_input({"text": "x"})
        runner.data_store["userInput"]["text"] = "changed"
        runner.task_states["A"].status = TaskStatus.FAILED
        assert runner.data_store["userInput"]["text"] == "x"
        assert runner.task_states["A"].status == TaskStatus.PENDING

    def test_operations_rejected_while_running(self, engine_config):
        observed = {}

        class ReentrantExecutor(TaskExecutor):
            async def execute(self, task, store):
                observed["is_running"] = runner.is_running
                for op in (runner.reset, lambda: runner.stage_input({"text": "y"})):
                    with pytest.raises(RunInProgressError):
                        op()
                with pytest.raises(RunInProgressError):
                    await runner.run()
                return "ok"

        runner = make_runner([make_task("A")], None, engine_config, executor=ReentrantExecutor())
        runner.stage_input({"text": "x"})
        states = run(runner.run())

        assert observed["is_running"] is True
        assert states["A"].status == TaskStatus.COMPLETED
        assert runner.is_running is False

    def test_set_workflow_resets_states(self, fake_capabilities, engine_config):
        runner = make_runner([make_task("A")], fake_capabilities, engine_config)
        runner.set_workflow(Workflow(id="other", name="Other", tasks=[make_task("Z")]))
        assert list(runner.task_states) == ["Z"]
        assert runner.data_store == {}


class TestRunEvents:
    """EventBus notifications."""

    def test_events_published_in_order(self, engine_config):
        bus = EventBus()
        seen = []
        bus.subscribe("*", lambda e: seen.append((e.event_type, e.task_id)))

        tasks = [make_task("A"), make_task("B", dependencies=["A"]), make_task("C", dependencies=["B"])]
        runner = make_runner(tasks, None, engine_config, executor=FailingExecutor({"B"}), event_bus=bus)
        runner.stage_input({"text": "x"})
        run(runner.run())

        assert seen == [
            ("run_started", None),
            ("task_started", "A"),
            ("task_completed", "A"),
            ("task_started", "B"),
            ("task_failed", "B"),
            ("task_skipped", "C"),
            ("run_finished", None),
        ]

    def test_task_event_carries_state(self, engine_config):
        bus = EventBus()
        handler = AsyncMock()
        bus.subscribe("task_completed", handler)

        runner = make_runner([make_task("A")], None, engine_config,
                             executor=FailingExecutor(set()), event_bus=bus)
        runner.stage_input({"text": "x"})
        run(runner.run())

        event = handler.await_args.args[0]
        assert event.payload["state"]["status"] == "COMPLETED"
        assert event.payload["state"]["result"] == "A-result"
        assert event.run_id == runner.run_id

    def test_cycle_publishes_abort(self, engine_config):
        bus = EventBus()
        tasks = [make_task("X", dependencies=["Y"]), make_task("Y", dependencies=["X"])]
        runner = make_runner(tasks, None, engine_config, executor=FailingExecutor(set()), event_bus=bus)
        run(runner.run())
        types = [e.event_type for e in bus.get_event_history()]
        assert types == ["run_started", "run_aborted"]

    def test_reset_publishes_event(self, engine_config):
        bus = EventBus()
        runner = make_runner([make_task("A")], None, engine_config,
                             executor=FailingExecutor(set()), event_bus=bus)
        runner.reset()
        assert [e.event_type for e in bus.get_event_history()] == ["run_reset"]

    def test_failing_handler_does_not_break_run(self, engine_config):
        bus = EventBus()

        def broken(event):
            raise ValueError("observer bug")

        bus.subscribe("task_started", broken)
        runner = make_runner([make_task("A")], None, engine_config,
                             executor=FailingExecutor(set()), event_bus=bus)
        runner.stage_input({"text": "x"})

        states = run(runner.run())

        assert states["A"].status == TaskStatus.COMPLETED
        assert len(bus.dead_letter_queue) == 1
