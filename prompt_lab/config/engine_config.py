"""
Engine configuration - Settings for the workflow engine and its capabilities
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import os
import sys
from enum import Enum

from .env_config import EnvConfig


class LLMProvider(str, Enum):
    """Supported LLM providers"""
    GOOGLE = "google"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"


PROVIDER_KEY_VARIABLES = {
    "google": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


@dataclass
class LLMConfig:
    """
    Configuration for the default LLM provider and model.

    Attributes:
        provider: LLM provider (google, openai, anthropic, openrouter)
        model_name: Default model identifier for the provider
        api_key: API key (reads LLM_API_KEY, then the provider key variable)
        base_url: Custom API base URL (OpenAI-compatible providers)
        temperature: Default temperature for generation (0-2)
        max_tokens: Default maximum tokens in a response
        timeout: Request timeout in seconds
        extra_params: Additional provider-specific parameters
    """

    provider: str = "google"
    model_name: str = "gemini-2.5-flash"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    timeout: int = 60
    extra_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate and set up LLM configuration."""
        self.provider = self.provider.lower()
        valid_providers = [p.value for p in LLMProvider]
        if self.provider not in valid_providers:
            raise ValueError(f"Provider must be one of {valid_providers}, got {self.provider}")

        if not 0 <= self.temperature <= 2:
            raise ValueError(f"Temperature must be between 0 and 2, got {self.temperature}")

        if self.timeout < 1:
            raise ValueError("timeout must be at least 1 second")

        # A missing key is reported by the client when a call is actually made
        if not self.api_key:
            self.api_key = os.getenv('LLM_API_KEY') or os.getenv(self.key_variable)

    @property
    def key_variable(self) -> str:
        """Provider-specific environment variable holding the API key."""
        return PROVIDER_KEY_VARIABLES.get(self.provider, f"{self.provider.upper()}_API_KEY")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding API key for security."""
        return {
            "provider": self.provider,
            "model_name": self.model_name,
            "base_url": self.base_url,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
        }


@dataclass
class RateLimitConfig:
    """
    Configuration for LLM rate limiting.

    Attributes:
        requests_per_minute: Maximum requests per minute (0 = unlimited)
        requests_per_second: Maximum requests per second (0 = unlimited, overrides RPM)
        min_request_delay: Minimum delay between requests in seconds (0 = no delay)
    """
    requests_per_minute: int = 60
    requests_per_second: int = 0
    min_request_delay: float = 0.0

    def __post_init__(self):
        """Validate rate limit configuration."""
        if self.requests_per_minute < 0:
            raise ValueError("requests_per_minute cannot be negative")
        if self.requests_per_second < 0:
            raise ValueError("requests_per_second cannot be negative")
        if self.min_request_delay < 0:
            raise ValueError("min_request_delay cannot be negative")

    @classmethod
    def from_env(cls) -> "RateLimitConfig":
        """Create rate limit config from environment variables."""
        return cls(
            requests_per_minute=EnvConfig.get_int("LLM_RATE_LIMIT_RPM", 60),
            requests_per_second=EnvConfig.get_int("LLM_RATE_LIMIT_RPS", 0),
            min_request_delay=EnvConfig.get_float("LLM_MIN_REQUEST_DELAY", 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requests_per_minute": self.requests_per_minute,
            "requests_per_second": self.requests_per_second,
            "min_request_delay": self.min_request_delay,
        }


@dataclass
class SandboxConfig:
    """
    Configuration for the sandboxed code capability.

    Attributes:
        timeout_ms: Wall-clock limit for one function body
        python_executable: Interpreter used for the isolated child process
        max_output_bytes: Cap on the child's captured stdout
    """
    timeout_ms: int = 5000
    python_executable: str = field(default_factory=lambda: sys.executable)
    max_output_bytes: int = 1024 * 1024

    def __post_init__(self):
        if self.timeout_ms < 1:
            raise ValueError("timeout_ms must be at least 1")
        if self.max_output_bytes < 1:
            raise ValueError("max_output_bytes must be positive")

    @classmethod
    def from_env(cls, prefix: str = "PROMPT_LAB_") -> "SandboxConfig":
        return cls(
            timeout_ms=EnvConfig.get_int(f"{prefix}SANDBOX_TIMEOUT_MS", 5000),
            python_executable=os.getenv(f"{prefix}SANDBOX_PYTHON", sys.executable),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timeout_ms": self.timeout_ms,
            "python_executable": self.python_executable,
            "max_output_bytes": self.max_output_bytes,
        }


@dataclass
class EngineConfig:
    """
    Configuration settings for the workflow engine.

    Attributes:
        llm: Default LLM configuration
        rate_limit: Rate limiting configuration for LLM calls
        sandbox: Sandboxed code execution settings
        simulated_delay_ms: Delay of SIMULATED_PROCESS tasks
        validate_on_run: Append workflow validation warnings to run feedback
        log_level: Logging level (default: 'INFO')
    """

    llm: LLMConfig = field(default_factory=LLMConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    sandbox: SandboxConfig = field(default_factory=SandboxConfig)
    simulated_delay_ms: int = 1000
    validate_on_run: bool = True
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.llm, dict):
            self.llm = LLMConfig(**self.llm)
        if isinstance(self.rate_limit, dict):
            self.rate_limit = RateLimitConfig(**self.rate_limit)
        if isinstance(self.sandbox, dict):
            self.sandbox = SandboxConfig(**self.sandbox)

        if self.simulated_delay_ms < 0:
            raise ValueError("simulated_delay_ms cannot be negative")

        if self.log_level not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError(f"Invalid log_level: {self.log_level}")

    @classmethod
    def from_env(cls, prefix: str = "PROMPT_LAB_") -> "EngineConfig":
        """
        Create configuration from environment variables.

        Example:
            export PROMPT_LAB_LLM_PROVIDER=google
            export PROMPT_LAB_LLM_MODEL=gemini-2.5-flash
            export GOOGLE_API_KEY=AIza...
            config = EngineConfig.from_env()
        """
        return cls(
            llm=LLMConfig(
                provider=os.getenv(f"{prefix}LLM_PROVIDER", "google"),
                model_name=os.getenv(f"{prefix}LLM_MODEL", "gemini-2.5-flash"),
                api_key=os.getenv("LLM_API_KEY"),
                base_url=os.getenv("LLM_API_BASE_URL"),
                temperature=EnvConfig.get_float(f"{prefix}LLM_TEMPERATURE", 0.7),
                max_tokens=EnvConfig.get_optional_int(f"{prefix}LLM_MAX_TOKENS"),
                timeout=EnvConfig.get_int(f"{prefix}LLM_TIMEOUT", 60),
                extra_params=EnvConfig.get_json(f"{prefix}LLM_EXTRA_PARAMS", None) or {},
            ),
            rate_limit=RateLimitConfig.from_env(),
            sandbox=SandboxConfig.from_env(prefix),
            simulated_delay_ms=EnvConfig.get_int(f"{prefix}SIMULATED_DELAY_MS", 1000),
            validate_on_run=EnvConfig.get_bool(f"{prefix}VALIDATE_ON_RUN", True),
            log_level=os.getenv(f"{prefix}LOG_LEVEL", "INFO").upper(),
        )

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "EngineConfig":
        """
        Create configuration from dictionary.

        Example:
            config = EngineConfig.from_dict({
                "llm": {"provider": "openai", "model_name": "gpt-4o-mini"},
                "sandbox": {"timeout_ms": 2000},
            })
        """
        values = dict(config_dict)
        llm_config = values.pop("llm", {})
        rate_limit_config = values.pop("rate_limit", {})
        sandbox_config = values.pop("sandbox", {})
        return cls(
            llm=LLMConfig(**llm_config) if isinstance(llm_config, dict) else llm_config,
            rate_limit=RateLimitConfig(**rate_limit_config) if isinstance(rate_limit_config, dict) else rate_limit_config,
            sandbox=SandboxConfig(**sandbox_config) if isinstance(sandbox_config, dict) else sandbox_config,
            **values
        )

    def to_dict(self, include_secrets: bool = False) -> Dict[str, Any]:
        """
        Convert to dictionary.

        Args:
            include_secrets: Whether to include API keys (default: False)
        """
        result = {
            "llm": self.llm.to_dict(),
            "rate_limit": self.rate_limit.to_dict(),
            "sandbox": self.sandbox.to_dict(),
            "simulated_delay_ms": self.simulated_delay_ms,
            "validate_on_run": self.validate_on_run,
            "log_level": self.log_level,
        }

        if include_secrets and self.llm.api_key:
            result["llm"]["api_key"] = self.llm.api_key

        return result
