"""
Capabilities module - The generation and code-execution functions a run uses

The engine only ever sees a ``Capabilities`` bundle of async callables, so
tests (and alternative providers) can supply fakes.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from prompt_lab.config import EngineConfig
from prompt_lab.utils.logger import get_logger
from prompt_lab.utils.rate_limiter import RateLimiter

from .llm_client import LLMClient
from .sandbox import PythonSandbox

logger = get_logger(__name__)


@dataclass
class Capabilities:
    """
    Async capability set handed to the task executor.

    Signatures:
        generate_text(prompt, config) -> str
        generate_json(prompt, config) -> Any
        generate_grounded(prompt, config) -> {"text", "sources"}
        analyze_image(prompt, image, config) -> str
        run_sandboxed_code(code, inputs, timeout_ms) -> Any
    """
    generate_text: Optional[Callable[..., Awaitable[str]]] = None
    generate_json: Optional[Callable[..., Awaitable[Any]]] = None
    generate_grounded: Optional[Callable[..., Awaitable[Dict[str, Any]]]] = None
    analyze_image: Optional[Callable[..., Awaitable[str]]] = None
    run_sandboxed_code: Optional[Callable[..., Awaitable[Any]]] = None


def build_capabilities(config: Optional[EngineConfig] = None) -> Capabilities:
    """Wire an ``LLMClient`` and ``PythonSandbox`` from engine settings."""
    config = config or EngineConfig()
    client = LLMClient(config.llm, rate_limiter=RateLimiter.from_config(config.rate_limit))
    sandbox = PythonSandbox(config.sandbox)
    logger.debug(f"Capabilities built for provider {config.llm.provider}")
    return Capabilities(
        generate_text=client.generate_text,
        generate_json=client.generate_json,
        generate_grounded=client.generate_grounded,
        analyze_image=client.analyze_image,
        run_sandboxed_code=sandbox.run,
    )


__all__ = [
    'Capabilities',
    'build_capabilities',
    'LLMClient',
    'PythonSandbox',
]
