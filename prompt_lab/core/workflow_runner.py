"""
Workflow Runner - Drives one workflow through the resolver and executor.

The runner owns the data store and the task-state map. A run walks the
topologically sorted tasks strictly one at a time:

- a task whose dependency FAILED or was SKIPPED is marked SKIPPED
- otherwise it goes RUNNING, then COMPLETED (result written at its
  ``output_key``) or FAILED
- the first FAILED task halts the run; remaining tasks that depend on a
  failed or skipped task are marked SKIPPED, all others stay PENDING

Observers read ``data_store``, ``task_states``, ``is_running`` and
``run_feedback`` (snapshots), or subscribe to the ``EventBus``.
"""

import copy
import dataclasses
import time
import uuid
from typing import Any, Dict, List, Optional, Union

from prompt_lab.capabilities import Capabilities, build_capabilities
from prompt_lab.config import EngineConfig
from prompt_lab.core import event_bus as events
from prompt_lab.core.dependency_resolver import topological_sort
from prompt_lab.core.event_bus import EventBus, RunEvent
from prompt_lab.core.interpolator import set_nested
from prompt_lab.core.task_executor import TaskExecutor
from prompt_lab.core.workflow_validator import validate_workflow
from prompt_lab.models import (
    PromptLibrary,
    StagedUserInput,
    Task,
    TaskState,
    TaskStatus,
    Workflow,
)
from prompt_lab.utils.exceptions import PromptLabError, RunInProgressError
from prompt_lab.utils.logger import get_logger

logger = get_logger(__name__)

EMPTY_INPUT_WARNING = "Warning: No input was staged. Running with empty input."
NO_WORKFLOW_MESSAGE = "No workflow selected."
SKIPPED_REASON = "Skipped due to dependency failure."


def _now_ms() -> int:
    return int(time.time() * 1000)


def _error_text(error: Exception) -> str:
    if isinstance(error, PromptLabError):
        return error.message
    return str(error) or error.__class__.__name__


class WorkflowRunner:
    """
    Orchestrates runs of a single workflow.

    Usage:
        runner = WorkflowRunner(workflow, capabilities)
        runner.stage_input({"text": "The quick fox."})
        states = await runner.run()
        print(runner.data_store["summary"])
    """

    def __init__(
        self,
        workflow: Optional[Workflow] = None,
        capabilities: Optional[Capabilities] = None,
        prompt_library: Optional[PromptLibrary] = None,
        config: Optional[EngineConfig] = None,
        event_bus: Optional[EventBus] = None,
        executor: Optional[TaskExecutor] = None,
    ):
        self.config = config or EngineConfig()
        self.event_bus = event_bus
        self.executor = executor or TaskExecutor(
            capabilities=capabilities if capabilities is not None else build_capabilities(self.config),
            prompt_library=prompt_library,
            simulated_delay_ms=self.config.simulated_delay_ms,
            sandbox_timeout_ms=self.config.sandbox.timeout_ms,
        )

        self.workflow = workflow
        self.run_id: Optional[str] = None
        self._data_store: Dict[str, Any] = {}
        self._task_states: Dict[str, TaskState] = {}
        self._run_feedback: List[str] = []
        self._is_running = False
        self._reset_task_states()

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def data_store(self) -> Dict[str, Any]:
        """Snapshot of the current data store."""
        return copy.deepcopy(self._data_store)

    @property
    def task_states(self) -> Dict[str, TaskState]:
        """Snapshot of task id -> TaskState."""
        return {task_id: dataclasses.replace(state) for task_id, state in self._task_states.items()}

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def run_feedback(self) -> List[str]:
        """Diagnostics collected by the most recent ``run()``."""
        return list(self._run_feedback)

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    def _reset_task_states(self) -> None:
        tasks = self.workflow.tasks if self.workflow else []
        self._task_states = {task.id: TaskState() for task in tasks}
        self._run_feedback = []

    def set_workflow(self, workflow: Optional[Workflow]) -> None:
        """Switch to another workflow; clears all run state."""
        if self._is_running:
            raise RunInProgressError("change the workflow")
        self.workflow = workflow
        self._data_store = {}
        self._reset_task_states()

    def stage_input(self, user_input: Union[StagedUserInput, Dict[str, Any], None]) -> None:
        """
        Prepare input for the next run without starting it.

        All tasks return to PENDING and the data store is replaced by
        ``{"userInput": <input>}``.
        """
        if self._is_running:
            raise RunInProgressError("stage input")
        if not isinstance(user_input, StagedUserInput):
            user_input = StagedUserInput.from_dict(user_input)

        self._reset_task_states()
        self._data_store = {"userInput": user_input.to_dict()}
        logger.info(f"Input staged: {sorted(self._data_store['userInput'].keys())}")

    def reset(self) -> None:
        """Clear the data store, all task states and diagnostics."""
        if self._is_running:
            raise RunInProgressError("reset")
        self._data_store = {}
        self._reset_task_states()
        logger.info("Runner reset")
        if self.event_bus is not None:
            self.event_bus.publish_nowait(RunEvent(event_type=events.RUN_RESET, run_id=self.run_id))

    async def run(self) -> Dict[str, TaskState]:
        """
        Execute the workflow once.

        The run starts from the current data store, so values from
        ``stage_input`` and outputs of an earlier run stay visible until
        ``reset`` or ``stage_input`` clears them.

        Returns:
            Final task-state snapshot

        Raises:
            RunInProgressError: A run is already active
        """
        if self._is_running:
            raise RunInProgressError("start a run")

        if self.workflow is None:
            self._run_feedback = [NO_WORKFLOW_MESSAGE]
            logger.warning(NO_WORKFLOW_MESSAGE)
            return self.task_states

        staged = self._data_store.get("userInput")
        self._is_running = True
        self.run_id = str(uuid.uuid4())
        try:
            self._reset_task_states()

            if not isinstance(staged, dict) or not any(staged.values()):
                self._add_feedback(EMPTY_INPUT_WARNING)

            logger.info(f"Run {self.run_id} started: workflow '{self.workflow.name}' "
                        f"({len(self.workflow.tasks)} tasks)")
            await self._publish(events.RUN_STARTED, payload={"workflow_id": self.workflow.id})

            sort_result = topological_sort(self.workflow.tasks)
            for diagnostic in sort_result.diagnostics:
                self._add_feedback(diagnostic)

            if sort_result.has_cycle:
                logger.error(f"Run {self.run_id} aborted: dependency cycle")
                await self._publish(events.RUN_ABORTED, payload={"reason": "cycle",
                                                                 "feedback": self.run_feedback})
                return self.task_states

            if self.config.validate_on_run:
                for warning in validate_workflow(self.workflow):
                    self._add_feedback(warning)

            await self._execute_in_order(sort_result.order)
        finally:
            self._is_running = False

        await self._publish(events.RUN_FINISHED, payload={
            "statuses": {task_id: state.status.value for task_id, state in self._task_states.items()}
        })
        logger.info(f"Run {self.run_id} finished")
        return self.task_states

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    def _has_failed_dependency(self, task: Task) -> bool:
        for dep_id in task.dependencies:
            state = self._task_states.get(dep_id)
            if state is not None and state.status in (TaskStatus.FAILED, TaskStatus.SKIPPED):
                return True
        return False

    async def _skip(self, task: Task) -> None:
        self._task_states[task.id] = TaskState(status=TaskStatus.SKIPPED, error=SKIPPED_REASON)
        logger.info(f"Task {task.id} skipped: {SKIPPED_REASON}")
        await self._publish(events.TASK_SKIPPED, task.id)

    async def _execute_in_order(self, order: List[Task]) -> None:
        for index, task in enumerate(order):
            if self._has_failed_dependency(task):
                await self._skip(task)
                continue

            running = TaskState(status=TaskStatus.RUNNING, start_time=_now_ms())
            self._task_states[task.id] = running
            logger.info(f"Task {task.id} ({task.name}) running")
            await self._publish(events.TASK_STARTED, task.id)

            try:
                result = await self.executor.execute(task, copy.deepcopy(self._data_store))
            except Exception as e:
                error = _error_text(e)
                self._task_states[task.id] = dataclasses.replace(
                    running, status=TaskStatus.FAILED, error=error, end_time=_now_ms()
                )
                logger.error(f"Task {task.id} ({task.name}) failed: {error}")
                await self._publish(events.TASK_FAILED, task.id)

                for remaining in order[index + 1:]:
                    if self._has_failed_dependency(remaining):
                        await self._skip(remaining)
                logger.warning(f"Run {self.run_id} halted after failure of {task.id}")
                return

            if task.output_key:
                set_nested(self._data_store, task.output_key, result)
            self._task_states[task.id] = dataclasses.replace(
                running, status=TaskStatus.COMPLETED, result=result, end_time=_now_ms()
            )
            logger.info(f"Task {task.id} ({task.name}) completed")
            await self._publish(events.TASK_COMPLETED, task.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _add_feedback(self, message: str) -> None:
        self._run_feedback.append(message)
        logger.warning(f"Run feedback: {message}")

    async def _publish(
        self,
        event_type: str,
        task_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.event_bus is None:
            return
        data = dict(payload or {})
        if task_id is not None:
            data["state"] = self._task_states[task_id].to_dict()
        await self.event_bus.publish(RunEvent(event_type=event_type, run_id=self.run_id,
                                              task_id=task_id, payload=data))
