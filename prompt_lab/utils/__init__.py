"""
Utilities module - Helper functions and utilities
"""

from .logger import get_logger, configure_logging
from .json_utils import parse_json_from_text
from .rate_limiter import RateLimiter

from .exceptions import (
    # Base
    PromptLabError,
    # Configuration
    ConfigurationError,
    MissingDependencyError,
    # Validation
    ValidationError,
    TaskDefinitionError,
    MissingInputKeyError,
    MalformedImageDataError,
    UnsupportedTaskTypeError,
    PromptNotFoundError,
    WorkflowSchemaError,
    # Execution
    ExecutionError,
    CapabilityError,
    CapabilityUnavailableError,
    LLMError,
    SandboxExecutionError,
    SandboxTimeoutError,
    # Runner
    RunInProgressError,
    # Utilities
    wrap_exception,
)

__all__ = [
    'get_logger',
    'configure_logging',
    'parse_json_from_text',
    'RateLimiter',

    # Exception hierarchy
    'PromptLabError',
    'ConfigurationError',
    'MissingDependencyError',
    'ValidationError',
    'TaskDefinitionError',
    'MissingInputKeyError',
    'MalformedImageDataError',
    'UnsupportedTaskTypeError',
    'PromptNotFoundError',
    'WorkflowSchemaError',
    'ExecutionError',
    'CapabilityError',
    'CapabilityUnavailableError',
    'LLMError',
    'SandboxExecutionError',
    'SandboxTimeoutError',
    'RunInProgressError',
    'wrap_exception',
]
