"""
Environment configuration - .env discovery and typed variable access
"""

import os
import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from dotenv import load_dotenv

T = TypeVar("T")

_TRUE_VALUES = ('true', '1', 'yes', 'on')


class EnvConfig:
    """
    Reads engine settings from the process environment.

    A ``.env`` file fills in variables that are not already set; values
    exported in the shell always win.
    """

    @staticmethod
    def find_env_file(start: Optional[Path] = None) -> Optional[Path]:
        """Search the start directory and up to 3 parent levels for a .env file."""
        current = start or Path.cwd()
        for _ in range(4):
            candidate = current / ".env"
            if candidate.exists():
                return candidate
            if current.parent == current:
                break
            current = current.parent
        return None

    @staticmethod
    def load_env_file(path: Optional[str] = None) -> bool:
        """
        Load a .env file without overriding variables that are already set.

        Args:
            path: Explicit file path; searched for when omitted

        Returns:
            Whether a file was found and loaded
        """
        env_path = Path(path) if path else EnvConfig.find_env_file()
        if env_path is None or not env_path.exists():
            return False
        load_dotenv(env_path, override=False)
        return True

    @staticmethod
    def _typed(key: str, default: T, cast: Callable[[str], T]) -> T:
        raw = os.getenv(key)
        if raw is None or raw.strip() == "":
            return default
        try:
            return cast(raw.strip())
        except ValueError:
            return default

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> Optional[str]:
        return os.getenv(key, default)

    @staticmethod
    def get_bool(key: str, default: bool = False) -> bool:
        return EnvConfig._typed(key, default, lambda raw: raw.lower() in _TRUE_VALUES)

    @staticmethod
    def get_int(key: str, default: int = 0) -> int:
        """Integer value; unparsable text falls back to ``default``."""
        return EnvConfig._typed(key, default, int)

    @staticmethod
    def get_optional_int(key: str) -> Optional[int]:
        return EnvConfig._typed(key, None, int)

    @staticmethod
    def get_float(key: str, default: float = 0.0) -> float:
        return EnvConfig._typed(key, default, float)

    @staticmethod
    def get_json(key: str, default: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """JSON object value, e.g. provider ``extra_params``."""
        return EnvConfig._typed(key, default, json.loads)

    @staticmethod
    def show_config_template(llm_provider: str = "google") -> str:
        """
        Sample .env contents for a provider.

        Args:
            llm_provider: google, openai, anthropic or openrouter

        Returns:
            Template text
        """
        provider_blocks = {
            "google": ("Google Gemini (also enables grounded search)", "GOOGLE_API_KEY=AIza...",
                       "gemini-2.5-flash"),
            "openai": ("OpenAI", "OPENAI_API_KEY=sk-...", "gpt-4o-mini"),
            "anthropic": ("Anthropic", "ANTHROPIC_API_KEY=sk-ant-...", "claude-3-5-sonnet-20241022"),
            "openrouter": ("OpenRouter (OpenAI-compatible)", "OPENROUTER_API_KEY=sk-or-...",
                           "openai/gpt-4o-mini"),
        }
        if llm_provider not in provider_blocks:
            llm_provider = "google"
        title, key_line, model = provider_blocks[llm_provider]

        return "\n".join([
            f"# {title}",
            key_line,
            f"PROMPT_LAB_LLM_PROVIDER={llm_provider}",
            f"PROMPT_LAB_LLM_MODEL={model}",
            "",
            "PROMPT_LAB_LOG_LEVEL=INFO",
            "PROMPT_LAB_SANDBOX_TIMEOUT_MS=5000",
            "PROMPT_LAB_SIMULATED_DELAY_MS=1000",
            "",
        ])
