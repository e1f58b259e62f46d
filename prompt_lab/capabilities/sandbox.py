"""
Python Sandbox - Run TEXT_MANIPULATION function bodies out of process.

A function body is Python code that reads the ``inputs`` dict and
``return``s a value, for example::

    text = inputs.get("articleText", "")
    return len(text.split())

It runs in a fresh isolated interpreter (``python -I``) with an empty
environment, a throwaway working directory, a reduced set of builtins and no
``import``. ``json`` and ``re`` are pre-bound. Inputs and the result cross
the process boundary as JSON, and the child is killed when the wall-clock
limit is reached.
"""

import asyncio
import json
import subprocess
import tempfile
import textwrap
import time
from typing import Any, Dict, Optional

from prompt_lab.config import SandboxConfig
from prompt_lab.utils.exceptions import SandboxExecutionError, SandboxTimeoutError
from prompt_lab.utils.logger import get_logger

logger = get_logger(__name__)


# Executed by the child interpreter; reads {"code", "inputs"} from stdin.
RUNNER_SOURCE = r'''
import builtins
import json
import re
import sys

SAFE_BUILTINS = {
    name: getattr(builtins, name)
    for name in (
        "abs", "all", "any", "bool", "chr", "dict", "divmod", "enumerate",
        "filter", "float", "format", "frozenset", "int", "isinstance", "len",
        "list", "map", "max", "min", "ord", "pow", "print", "range", "repr",
        "reversed", "round", "set", "slice", "sorted", "str", "sum", "tuple",
        "zip", "Exception", "ValueError", "TypeError", "KeyError",
        "IndexError", "ZeroDivisionError",
    )
}


def main():
    out = sys.stdout
    sys.stdout = sys.stderr
    payload = json.loads(sys.stdin.read())
    namespace = {"__builtins__": SAFE_BUILTINS, "json": json, "re": re}
    try:
        exec(compile(payload["source"], "<custom function>", "exec"), namespace)
        result = namespace["__task_fn__"](payload["inputs"])
    except Exception as exc:
        out.write(json.dumps({"ok": False, "error": "%s: %s" % (type(exc).__name__, exc)}))
        return
    try:
        encoded = json.dumps({"ok": True, "result": result})
    except (TypeError, ValueError) as exc:
        encoded = json.dumps({"ok": False, "error": "Result is not JSON-serializable: %s" % exc})
    out.write(encoded)


main()
'''


def wrap_function_body(code: str) -> str:
    """Turn a function body into ``def __task_fn__(inputs): ...``."""
    body = textwrap.dedent(code).strip("\n") or "return None"
    return "def __task_fn__(inputs):\n" + textwrap.indent(body, "    ") + "\n"


class PythonSandbox:
    """
    Out-of-process executor for user function bodies.

    Usage:
        sandbox = PythonSandbox(SandboxConfig(timeout_ms=2000))
        result = await sandbox.run("return inputs['a'] * 2", {"a": 21})
    """

    def __init__(self, config: Optional[SandboxConfig] = None):
        self.config = config or SandboxConfig()

    def _run_blocking(self, code: str, inputs: Dict[str, Any], timeout_ms: int) -> Any:
        """Execute in a subprocess and decode the JSON reply."""
        try:
            payload = json.dumps({"source": wrap_function_body(code), "inputs": inputs})
        except (TypeError, ValueError) as e:
            raise SandboxExecutionError(f"Inputs are not JSON-serializable: {e}", code_snippet=code)

        start_time = time.time()
        with tempfile.TemporaryDirectory(prefix="prompt_lab_sandbox_") as workdir:
            try:
                result = subprocess.run(
                    [self.config.python_executable, "-I", "-c", RUNNER_SOURCE],
                    input=payload,
                    capture_output=True,
                    text=True,
                    timeout=timeout_ms / 1000,
                    cwd=workdir,
                    env={},
                )
            except subprocess.TimeoutExpired:
                logger.error(f"Sandboxed code timed out after {timeout_ms} ms")
                raise SandboxTimeoutError(timeout_ms)

        execution_time = time.time() - start_time
        stdout = result.stdout or ""

        if len(stdout.encode("utf-8")) > self.config.max_output_bytes:
            raise SandboxExecutionError(
                f"Result exceeds {self.config.max_output_bytes} bytes", code_snippet=code
            )

        if result.returncode != 0 or not stdout.strip():
            stderr = (result.stderr or "").strip()
            last_line = stderr.splitlines()[-1] if stderr else f"exit code {result.returncode}"
            logger.error(f"Sandbox process failed: {last_line}")
            raise SandboxExecutionError(last_line, code_snippet=code, execution_output=stderr)

        try:
            reply = json.loads(stdout)
        except json.JSONDecodeError:
            raise SandboxExecutionError("Sandbox returned unreadable output", code_snippet=code,
                                        execution_output=stdout)

        if not reply.get("ok"):
            logger.warning(f"Custom function raised: {reply.get('error')}")
            raise SandboxExecutionError(reply.get("error", "Unknown error"), code_snippet=code,
                                        execution_output=result.stderr)

        logger.debug(f"Sandboxed code finished in {execution_time:.2f}s")
        return reply.get("result")

    async def run(self, code: str, inputs: Dict[str, Any], timeout_ms: Optional[int] = None) -> Any:
        """
        Run a function body with ``inputs``.

        Args:
            code: Function body text
            inputs: JSON-serializable input record
            timeout_ms: Wall-clock limit (default from config)

        Returns:
            The value returned by the function body

        Raises:
            SandboxTimeoutError: The limit was reached and the child was killed
            SandboxExecutionError: User code raised or returned a non-JSON value
        """
        limit = timeout_ms or self.config.timeout_ms
        return await asyncio.to_thread(self._run_blocking, code, inputs, limit)
