"""
Test suite for the out-of-process Python sandbox.

These tests start real interpreter subprocesses.
"""

import asyncio

import pytest

from prompt_lab.capabilities.sandbox import PythonSandbox, wrap_function_body
from prompt_lab.config import SandboxConfig
from prompt_lab.utils.exceptions import SandboxExecutionError, SandboxTimeoutError


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def sandbox():
    return PythonSandbox(SandboxConfig(timeout_ms=5000))


class TestWrapFunctionBody:

    def test_body_is_indented(self):
        source = wrap_function_body("x = 1\nreturn x")
        assert source == "def __task_fn__(inputs):\n    x = 1\n    return x\n"

    def test_empty_body_returns_none(self):
        assert "return None" in wrap_function_body("")


class TestSandboxRun:
    """Behaviour of PythonSandbox.run()."""

    def test_returns_value(self, sandbox):
        assert run(sandbox.run("return inputs['a'] * 2", {"a": 21})) == 42

    def test_structured_result(self, sandbox):
        code = "words = inputs['text'].split()\nreturn {'count': len(words), 'first': words[0]}"
        assert run(sandbox.run(code, {"text": "hello big world"})) == {"count": 3, "first": "hello"}

    def test_json_and_re_available(self, sandbox):
        code = "return json.loads(inputs['raw'])['k'] + len(re.findall(r'a', 'banana'))"
        assert run(sandbox.run(code, {"raw": '{"k": 1}'})) == 4

    def test_print_does_not_corrupt_result(self, sandbox):
        assert run(sandbox.run("print('noise')\nreturn 'ok'", {})) == "ok"

    def test_user_exception_reported(self, sandbox):
        with pytest.raises(SandboxExecutionError) as exc_info:
            run(sandbox.run("raise ValueError('bad input')", {}))
        assert exc_info.value.message == "Error in custom function: ValueError: bad input"

    def test_import_blocked(self, sandbox):
        with pytest.raises(SandboxExecutionError, match="ImportError"):
            run(sandbox.run("import os\nreturn os.getcwd()", {}))

    def test_open_not_available(self, sandbox):
        with pytest.raises(SandboxExecutionError, match="NameError"):
            run(sandbox.run("return open('x').read()", {}))

    def test_syntax_error(self, sandbox):
        with pytest.raises(SandboxExecutionError, match="SyntaxError"):
            run(sandbox.run("return (", {}))

    def test_non_serializable_result(self, sandbox):
        with pytest.raises(SandboxExecutionError, match="not JSON-serializable"):
            run(sandbox.run("return {1, 2}", {}))

    def test_timeout(self, sandbox):
        with pytest.raises(SandboxTimeoutError) as exc_info:
            run(sandbox.run("while True:\n    pass", {}, timeout_ms=300))
        assert "timed out" in exc_info.value.message
        assert exc_info.value.timeout_ms == 300

    def test_inputs_must_be_serializable(self, sandbox):
        with pytest.raises(SandboxExecutionError, match="not JSON-serializable"):
            run(sandbox.run("return 1", {"bad": object()}))

    def test_output_limit(self):
        small = PythonSandbox(SandboxConfig(timeout_ms=5000, max_output_bytes=64))
        with pytest.raises(SandboxExecutionError, match="exceeds 64 bytes"):
            run(small.run("return 'x' * 1000", {}))
