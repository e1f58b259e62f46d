"""
Configuration module - Settings and configuration management
"""

from .engine_config import (
    EngineConfig,
    LLMConfig,
    LLMProvider,
    RateLimitConfig,
    SandboxConfig,
    PROVIDER_KEY_VARIABLES,
)
from .env_config import EnvConfig

__all__ = [
    'EngineConfig',
    'LLMConfig',
    'LLMProvider',
    'RateLimitConfig',
    'SandboxConfig',
    'PROVIDER_KEY_VARIABLES',
    'EnvConfig',
]
