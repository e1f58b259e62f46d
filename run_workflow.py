#!/usr/bin/env python
"""
Prompt Lab - Run a workflow from the command line

Examples:
    python run_workflow.py --list
    python run_workflow.py --workflow wf-default-1 --text "Some article..."
    python run_workflow.py --workflow wf-default-3 --text "Crash on empty list" --file buggy.py
    python run_workflow.py --workflow wf-default-2 --image photo.jpg
    python run_workflow.py --file-workflow my_workflow.json --text "..."
    python run_workflow.py --goal "Translate the input to French and summarize it" --text "..."
"""

import argparse
import asyncio
import base64
import json
import mimetypes
import sys
from pathlib import Path

from prompt_lab import EngineConfig, EnvConfig, EventBus, WorkflowRunner, build_capabilities
from prompt_lab.core import event_bus as events
from prompt_lab.services import DEFAULT_WORKFLOWS, generate_workflow_from_goal, get_default_workflow, load_workflow
from prompt_lab.utils.exceptions import PromptLabError
from prompt_lab.utils.logger import configure_logging


def build_input(args) -> dict:
    staged = {}
    if args.text is not None:
        staged["text"] = args.text
    if args.image:
        path = Path(args.image)
        mime_type = mimetypes.guess_type(path.name)[0] or "image/png"
        staged["image"] = {
            "name": path.name,
            "type": mime_type,
            "base64": base64.b64encode(path.read_bytes()).decode("ascii"),
        }
    if args.file:
        path = Path(args.file)
        staged["file"] = {"name": path.name, "content": path.read_text(encoding="utf-8")}
    return staged


def print_progress(event):
    if event.task_id:
        state = event.payload.get("state", {})
        line = f"  [{state.get('status', '?'):<9}] {event.task_id}"
        if state.get("error"):
            line += f" - {state['error']}"
        print(line)


async def main_async(args) -> int:
    config = EngineConfig.from_env()
    if args.no_validate:
        config.validate_on_run = False
    capabilities = build_capabilities(config)

    if args.goal:
        print(f"Generating workflow for goal: {args.goal}")
        workflow = await generate_workflow_from_goal(args.goal, capabilities)
    elif args.file_workflow:
        workflow = load_workflow(args.file_workflow)
    else:
        workflow = get_default_workflow(args.workflow)
        if workflow is None:
            print(f"Unknown workflow: {args.workflow}. Use --list to see built-in workflows.")
            return 2

    bus = EventBus()
    for event_type in (events.TASK_STARTED, events.TASK_COMPLETED, events.TASK_FAILED, events.TASK_SKIPPED):
        bus.subscribe(event_type, print_progress, subscriber_name="cli")

    runner = WorkflowRunner(workflow, capabilities, config=config, event_bus=bus)
    runner.stage_input(build_input(args))

    print("=" * 70)
    print(f"Running: {workflow.name} ({len(workflow.tasks)} tasks)")
    print("=" * 70)
    states = await runner.run()

    print()
    print("Task states:")
    for task in workflow.tasks:
        print(f"  {task.id:<20} {states[task.id].status.value}")

    if runner.run_feedback:
        print()
        print("Feedback:")
        for message in runner.run_feedback:
            print(f"  - {message}")

    print()
    print("Data store:")
    print(json.dumps(runner.data_store, indent=2, ensure_ascii=False, default=str))

    failed = any(state.status.value == "FAILED" for state in states.values())
    return 1 if failed else 0


def main():
    parser = argparse.ArgumentParser(description="Run a Prompt Lab workflow")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--workflow", default="wf-default-1", help="Built-in workflow id (default: wf-default-1)")
    source.add_argument("--file-workflow", help="Path to a workflow JSON file")
    source.add_argument("--goal", help="Generate a workflow for this goal first")
    parser.add_argument("--text", help="Text input")
    parser.add_argument("--image", help="Image file to stage as userInput.image")
    parser.add_argument("--file", help="Text file to stage as userInput.file")
    parser.add_argument("--env", help="Path to .env file")
    parser.add_argument("--no-validate", action="store_true", help="Skip workflow validation warnings")
    parser.add_argument("--list", action="store_true", help="List built-in workflows and exit")
    args = parser.parse_args()

    if args.list:
        for workflow in DEFAULT_WORKFLOWS:
            print(f"{workflow.id:<28} {workflow.name}")
        return

    EnvConfig.load_env_file(args.env)
    configure_logging()

    try:
        sys.exit(asyncio.run(main_async(args)))
    except KeyboardInterrupt:
        print()
        print("Run interrupted by user.")
        sys.exit(130)
    except PromptLabError as e:
        print(f"Error: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
