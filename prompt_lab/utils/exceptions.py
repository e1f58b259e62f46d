"""
Standardized Exception Hierarchy for the Prompt Lab workflow engine

Every error a task can raise ends up in ``TaskState.error`` and is shown to
the end user, so each message names the task and the offending field.

Exception Categories:
- Configuration Errors: Issues with settings, environment, or initialization
- Validation Errors: Malformed task definitions, missing inputs, bad payloads
- Execution Errors: Capability (LLM / sandbox) failures at run time
- Runner Errors: Lifecycle misuse of the workflow runner

Usage:
    from prompt_lab.utils.exceptions import (
        PromptLabError,
        TaskDefinitionError,
        MissingInputKeyError
    )

    if not task.prompt_template:
        raise TaskDefinitionError(task.name, "prompt_template", "Prompt template is missing.")
"""

from typing import Optional, Any, Dict


# ============================================================================
# Base Exception
# ============================================================================

class PromptLabError(Exception):
    """
    Base exception for all Prompt Lab errors.

    All custom exceptions inherit from this class so the runner can record a
    clean, human-readable message instead of a raw traceback.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for categorization
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }

    def for_task(self, task_name: str) -> "PromptLabError":
        """Prefix the message with the task name unless it already names it."""
        if f'"{task_name}"' not in self.message:
            self.message = f'Task "{task_name}": {self.message}'
        if not self.details.get("task_name"):
            self.details["task_name"] = task_name
        return self

    def __str__(self) -> str:
        return self.message


# ============================================================================
# Configuration and Initialization Errors
# ============================================================================

class ConfigurationError(PromptLabError):
    """Raised when there's an issue with configuration or settings."""

    def __init__(
        self,
        setting_name: str,
        message: str,
        expected_value: Optional[Any] = None,
        actual_value: Optional[Any] = None
    ):
        details = {"setting_name": setting_name}
        if expected_value is not None:
            details["expected_value"] = str(expected_value)
        if actual_value is not None:
            details["actual_value"] = str(actual_value)

        super().__init__(
            message=f"Configuration error for '{setting_name}': {message}",
            error_code="CONFIG_ERROR",
            details=details
        )
        self.setting_name = setting_name


class MissingDependencyError(PromptLabError):
    """Raised when a required provider package is not installed."""

    def __init__(
        self,
        package_name: str,
        install_command: Optional[str] = None,
        purpose: Optional[str] = None
    ):
        message = f"Required package '{package_name}' is not installed"
        if purpose:
            message += f" (needed for {purpose})"
        if install_command:
            message += f"\nInstall with: {install_command}"

        super().__init__(
            message=message,
            error_code="MISSING_DEPENDENCY",
            details={
                "package_name": package_name,
                "install_command": install_command,
                "purpose": purpose
            }
        )
        self.package_name = package_name


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationError(PromptLabError):
    """Base class for validation errors."""
    pass


class TaskDefinitionError(ValidationError):
    """Raised when a task definition lacks a field its kind requires."""

    def __init__(self, task_name: str, field_name: str, message: str):
        super().__init__(
            message=f'Task "{task_name}": {message}',
            error_code="TASK_DEFINITION",
            details={"task_name": task_name, "field_name": field_name}
        )
        self.task_name = task_name
        self.field_name = field_name


class MissingInputKeyError(ValidationError):
    """Raised when a required input key is absent from the data store."""

    def __init__(self, task_name: str, key: str):
        super().__init__(
            message=f'Missing required input key "{key}" in data store for task "{task_name}".',
            error_code="MISSING_INPUT_KEY",
            details={"task_name": task_name, "key": key}
        )
        self.task_name = task_name
        self.key = key


class MalformedImageDataError(ValidationError):
    """Raised when an image input does not carry a base64 payload and MIME type."""

    def __init__(self, task_name: str, key: str, reason: Optional[str] = None):
        message = f'Malformed image data at "{key}" for task "{task_name}"'
        if reason:
            message += f": {reason}"
        super().__init__(
            message=message + ".",
            error_code="MALFORMED_IMAGE",
            details={"task_name": task_name, "key": key}
        )
        self.task_name = task_name
        self.key = key


class UnsupportedTaskTypeError(ValidationError):
    """Raised when a task kind has no executor."""

    def __init__(self, task_type: Any, task_name: str):
        super().__init__(
            message=f'Unsupported task type: {task_type} (task "{task_name}").',
            error_code="UNSUPPORTED_TASK_TYPE",
            details={"task_type": str(task_type), "task_name": task_name}
        )
        self.task_type = task_type


class PromptNotFoundError(ValidationError):
    """Raised when a task references a library prompt that does not exist."""

    def __init__(self, prompt_id: str, task_name: str):
        super().__init__(
            message=f'Linked prompt ID "{prompt_id}" not found for task "{task_name}".',
            error_code="PROMPT_NOT_FOUND",
            details={"prompt_id": prompt_id, "task_name": task_name}
        )
        self.prompt_id = prompt_id


class WorkflowSchemaError(ValidationError):
    """Raised when workflow data doesn't match the expected shape."""

    def __init__(self, message: str, data_sample: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="WORKFLOW_SCHEMA",
            details={"data_sample": data_sample} if data_sample else None
        )


# ============================================================================
# Execution Errors
# ============================================================================

class ExecutionError(PromptLabError):
    """Base class for execution-time errors."""
    pass


class CapabilityError(ExecutionError):
    """Raised when a capability (LLM call, sandbox) fails for a task."""

    def __init__(
        self,
        capability: str,
        message: str,
        task_name: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        full_message = f"Capability '{capability}' failed"
        if task_name:
            full_message += f' for task "{task_name}"'
        full_message += f": {message}"

        super().__init__(
            message=full_message,
            error_code="CAPABILITY_ERROR",
            details={
                "capability": capability,
                "task_name": task_name,
                "original_error": str(original_error) if original_error else None
            }
        )
        self.capability = capability
        self.task_name = task_name
        self.original_error = original_error


class CapabilityUnavailableError(CapabilityError):
    """Raised when a task needs a capability that was not supplied."""

    def __init__(self, capability: str, task_name: str):
        super().__init__(
            capability=capability,
            message="capability is not configured",
            task_name=task_name
        )


class LLMError(ExecutionError):
    """Raised when a provider call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        model: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        full_message = f"LLM error with provider '{provider}': {message}"
        if model:
            full_message += f" (model: {model})"

        super().__init__(
            message=full_message,
            error_code="LLM_ERROR",
            details={
                "provider": provider,
                "model": model,
                "original_error": str(original_error) if original_error else None
            }
        )
        self.provider = provider
        self.model = model
        self.original_error = original_error


class SandboxExecutionError(ExecutionError):
    """Raised when sandboxed user code fails."""

    def __init__(
        self,
        message: str,
        code_snippet: Optional[str] = None,
        execution_output: Optional[str] = None
    ):
        details = {}
        if code_snippet:
            details["code_snippet"] = code_snippet[:200]
        if execution_output:
            details["execution_output"] = execution_output[:200]

        super().__init__(
            message=f"Error in custom function: {message}",
            error_code="SANDBOX_ERROR",
            details=details
        )


class SandboxTimeoutError(SandboxExecutionError):
    """Raised when sandboxed user code exceeds its wall-clock limit."""

    def __init__(self, timeout_ms: int):
        super().__init__(f"Execution timed out ({timeout_ms / 1000:g}s limit)")
        self.error_code = "SANDBOX_TIMEOUT"
        self.timeout_ms = timeout_ms


# ============================================================================
# Runner Errors
# ============================================================================

class RunInProgressError(PromptLabError):
    """Raised when a lifecycle operation is requested while a run is active."""

    def __init__(self, operation: str):
        super().__init__(
            message=f"Cannot {operation} while a workflow run is in progress",
            error_code="RUN_IN_PROGRESS",
            details={"operation": operation}
        )
        self.operation = operation


# ============================================================================
# Convenience Functions
# ============================================================================

def wrap_exception(
    original_error: Exception,
    operation: str,
    context: Optional[Dict[str, Any]] = None
) -> PromptLabError:
    """
    Wrap a generic exception in an appropriate Prompt Lab exception.

    Args:
        original_error: The original exception to wrap
        operation: The capability or operation that was being performed
        context: Additional context about the error (``task_name``, ``package_name``)

    Returns:
        An appropriate PromptLabError subclass
    """
    context = context or {}

    if isinstance(original_error, PromptLabError):
        return original_error

    if isinstance(original_error, ImportError):
        return MissingDependencyError(
            package_name=context.get("package_name", "unknown"),
            purpose=operation,
            install_command=context.get("install_command")
        )

    message = str(original_error) or original_error.__class__.__name__
    return CapabilityError(
        capability=operation,
        message=message,
        task_name=context.get("task_name"),
        original_error=original_error
    )


__all__ = [
    "PromptLabError",
    "ConfigurationError",
    "MissingDependencyError",
    "ValidationError",
    "TaskDefinitionError",
    "MissingInputKeyError",
    "MalformedImageDataError",
    "UnsupportedTaskTypeError",
    "PromptNotFoundError",
    "WorkflowSchemaError",
    "ExecutionError",
    "CapabilityError",
    "CapabilityUnavailableError",
    "LLMError",
    "SandboxExecutionError",
    "SandboxTimeoutError",
    "RunInProgressError",
    "wrap_exception",
]
