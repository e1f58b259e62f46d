"""
Generic LLM Client Wrapper

This module provides a unified async wrapper over the supported LLM providers
(Google Gemini, OpenAI, Anthropic, OpenRouter) for the generation capabilities
a workflow uses.

Supports:
- LangChain chat models for text, JSON and vision generation
- Native google-genai SDK for search-grounded generation
- Per-task overrides (model, temperature, top-k, top-p, system instruction)
- Client-side rate limiting for API calls

Example usage:
    from prompt_lab.capabilities.llm_client import LLMClient
    from prompt_lab.config import LLMConfig

    client = LLMClient(LLMConfig(provider="google"))
    text = await client.generate_text("Explain AI")
"""

from typing import Any, Dict, List, Optional, Tuple

from prompt_lab.config import LLMConfig
from prompt_lab.models import GenerationConfig, ImagePayload
from prompt_lab.utils.exceptions import (
    ConfigurationError,
    LLMError,
    MissingDependencyError,
)
from prompt_lab.utils.json_utils import parse_json_from_text
from prompt_lab.utils.logger import get_logger
from prompt_lab.utils.rate_limiter import RateLimiter

logger = get_logger(__name__)

JSON_INSTRUCTION = (
    "Respond only with a single valid JSON value. "
    "Do not wrap it in markdown code fences and do not add commentary."
)


class LLMClient:
    """
    Generic LLM client - one instance serves every generation task of a run.

    Chat models are created lazily and cached per distinct combination of
    provider, model and sampling settings.
    """

    PROVIDER_DEFAULTS = {
        'google': {
            'model': 'gemini-2.5-flash',
            'base_url': None,
            'langchain_package': 'langchain-google-genai',
        },
        'openai': {
            'model': 'gpt-4o-mini',
            'base_url': None,
            'langchain_package': 'langchain-openai',
        },
        'anthropic': {
            'model': 'claude-3-5-sonnet-20241022',
            'base_url': None,
            'langchain_package': 'langchain-anthropic',
        },
        'openrouter': {
            'model': 'openai/gpt-4o-mini',
            'base_url': 'https://openrouter.ai/api/v1',
            'langchain_package': 'langchain-openai',
        },
    }

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Initialize LLM Client.

        Args:
            config: Default provider settings (from ``EngineConfig.llm``)
            rate_limiter: Limiter awaited before every provider call
        """
        self.config = config or LLMConfig()
        self.rate_limiter = rate_limiter
        self._chat_models: Dict[Tuple, Any] = {}
        self._genai_client = None

        logger.info("Initializing LLM Client")
        logger.debug(f"  Provider: {self.config.provider}")
        logger.debug(f"  Model: {self.config.model_name}")

    # ------------------------------------------------------------------
    # Configuration resolution
    # ------------------------------------------------------------------

    def _resolve(self, overrides: Optional[GenerationConfig]) -> GenerationConfig:
        """Merge per-task overrides onto the client's defaults."""
        base = GenerationConfig(
            provider=self.config.provider,
            model=self.config.model_name,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        if overrides is None:
            return base
        resolved = base.merged(
            provider=overrides.provider,
            model=overrides.model,
            temperature=overrides.temperature,
            top_k=overrides.top_k,
            top_p=overrides.top_p,
            max_tokens=overrides.max_tokens,
            system_instruction=overrides.system_instruction,
        )
        # A provider switch without an explicit model uses that provider's default
        if overrides.provider and overrides.provider != self.config.provider and not overrides.model:
            resolved.model = self.PROVIDER_DEFAULTS.get(overrides.provider, {}).get('model', resolved.model)
        return resolved

    def _api_key_for(self, provider: str) -> str:
        if provider == self.config.provider and self.config.api_key:
            return self.config.api_key
        key = LLMConfig(provider=provider).api_key
        if not key:
            raise ConfigurationError(
                setting_name="LLM_API_KEY",
                message=f"API key not found for provider '{provider}'. "
                f"Set LLM_API_KEY or the provider-specific key variable."
            )
        return key

    def _extra_params(self, provider: str) -> Dict[str, Any]:
        # Provider-specific kwargs only apply to the configured default provider
        return dict(self.config.extra_params) if provider == self.config.provider else {}

    # ------------------------------------------------------------------
    # Chat model construction
    # ------------------------------------------------------------------

    def _get_chat_model(self, gen: GenerationConfig) -> Any:
        provider = (gen.provider or self.config.provider).lower()
        if provider not in self.PROVIDER_DEFAULTS:
            raise ConfigurationError(
                setting_name="provider",
                message=f"Unsupported provider: {provider}. "
                f"Supported: {list(self.PROVIDER_DEFAULTS.keys())}"
            )

        cache_key = (provider, gen.model, gen.temperature, gen.top_k, gen.top_p, gen.max_tokens)
        if cache_key not in self._chat_models:
            api_key = self._api_key_for(provider)
            if provider == 'google':
                model = self._init_langchain_google(gen, api_key)
            elif provider == 'anthropic':
                model = self._init_langchain_anthropic(gen, api_key)
            else:
                model = self._init_langchain_openai(gen, api_key, provider)
            self._chat_models[cache_key] = model
            logger.info(f"Initialized {provider} chat model: {gen.model}")

        return self._chat_models[cache_key]

    def _init_langchain_google(self, gen: GenerationConfig, api_key: str) -> Any:
        """Initialize LangChain Google wrapper."""
        try:
            from langchain_google_genai import ChatGoogleGenerativeAI
        except ImportError:
            raise MissingDependencyError(
                package_name="langchain-google-genai",
                install_command="pip install langchain-google-genai",
                purpose="LangChain Google wrapper"
            )

        kwargs: Dict[str, Any] = {
            'model': gen.model,
            'google_api_key': api_key,
            'temperature': gen.temperature,
            'timeout': self.config.timeout,
        }
        if gen.top_k is not None:
            kwargs['top_k'] = gen.top_k
        if gen.top_p is not None:
            kwargs['top_p'] = gen.top_p
        if gen.max_tokens is not None:
            kwargs['max_output_tokens'] = gen.max_tokens
        kwargs.update(self._extra_params('google'))
        return ChatGoogleGenerativeAI(**kwargs)

    def _init_langchain_openai(self, gen: GenerationConfig, api_key: str, provider: str) -> Any:
        """Initialize LangChain OpenAI wrapper (also used for OpenRouter)."""
        try:
            from langchain_openai import ChatOpenAI
        except ImportError:
            raise MissingDependencyError(
                package_name="langchain-openai",
                install_command="pip install langchain-openai",
                purpose="LangChain OpenAI wrapper"
            )

        base_url = self.PROVIDER_DEFAULTS[provider]['base_url']
        if provider == self.config.provider and self.config.base_url:
            base_url = self.config.base_url

        kwargs: Dict[str, Any] = {
            'model': gen.model,
            'api_key': api_key,
            'temperature': gen.temperature,
            'timeout': self.config.timeout,
        }
        if base_url:
            kwargs['base_url'] = base_url
        if gen.top_p is not None:
            kwargs['top_p'] = gen.top_p
        if gen.max_tokens is not None:
            kwargs['max_tokens'] = gen.max_tokens
        kwargs.update(self._extra_params(provider))
        return ChatOpenAI(**kwargs)

    def _init_langchain_anthropic(self, gen: GenerationConfig, api_key: str) -> Any:
        """Initialize LangChain Anthropic wrapper."""
        try:
            from langchain_anthropic import ChatAnthropic
        except ImportError:
            raise MissingDependencyError(
                package_name="langchain-anthropic",
                install_command="pip install langchain-anthropic",
                purpose="LangChain Anthropic wrapper"
            )

        kwargs: Dict[str, Any] = {
            'model_name': gen.model,
            'api_key': api_key,
            'temperature': gen.temperature,
            'max_tokens': gen.max_tokens or 4096,
            'timeout': self.config.timeout,
        }
        if gen.top_k is not None:
            kwargs['top_k'] = gen.top_k
        if gen.top_p is not None:
            kwargs['top_p'] = gen.top_p
        kwargs.update(self._extra_params('anthropic'))
        return ChatAnthropic(**kwargs)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    @staticmethod
    def _content_to_text(content: Any) -> str:
        """Flatten a LangChain message content (string or content blocks)."""
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts = []
            for block in content:
                if isinstance(block, str):
                    parts.append(block)
                elif isinstance(block, dict) and block.get("type") == "text":
                    parts.append(block.get("text", ""))
            return "".join(parts)
        return str(content)

    async def _ainvoke(self, gen: GenerationConfig, human_content: Any) -> str:
        from langchain_core.messages import SystemMessage, HumanMessage

        messages: List[Any] = []
        if gen.system_instruction:
            messages.append(SystemMessage(content=gen.system_instruction))
        messages.append(HumanMessage(content=human_content))

        provider = gen.provider or self.config.provider
        chat_model = self._get_chat_model(gen)

        if self.rate_limiter is not None:
            wait_time = await self.rate_limiter.acquire()
            if wait_time > 0:
                logger.debug(f"Rate limiter delayed request by {wait_time:.2f}s")

        try:
            response = await chat_model.ainvoke(messages)
        except Exception as e:
            logger.error(f"Error in LangChain invoke: {str(e)}")
            raise LLMError(provider=provider, message=str(e), model=gen.model, original_error=e) from e

        content = response.content if hasattr(response, 'content') else response
        return self._content_to_text(content)

    async def generate_text(self, prompt: str, config: Optional[GenerationConfig] = None) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Fully interpolated prompt text
            config: Per-task overrides

        Returns:
            Generated text
        """
        gen = self._resolve(config)
        logger.debug(f"generate_text: model={gen.model}, prompt_chars={len(prompt)}")
        return await self._ainvoke(gen, prompt)

    async def generate_json(self, prompt: str, config: Optional[GenerationConfig] = None) -> Any:
        """Generate and parse a JSON value."""
        gen = self._resolve(config)
        instruction = JSON_INSTRUCTION
        if gen.system_instruction:
            instruction = f"{gen.system_instruction}\n\n{JSON_INSTRUCTION}"
        gen = gen.merged(system_instruction=instruction)

        text = await self._ainvoke(gen, prompt)
        try:
            return parse_json_from_text(text)
        except ValueError as e:
            raise LLMError(
                provider=gen.provider or self.config.provider,
                message=str(e),
                model=gen.model,
            ) from e

    @staticmethod
    def build_image_content(provider: str, prompt: str, image: ImagePayload) -> List[Dict[str, Any]]:
        """Build a multimodal HumanMessage content list for the provider."""
        if provider == 'anthropic':
            image_block = {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.type,
                    "data": image.base64,
                }
            }
        else:
            image_block = {
                "type": "image_url",
                "image_url": {
                    "url": f"data:{image.type};base64,{image.base64}"
                }
            }
        return [
            image_block,
            {
                "type": "text",
                "text": prompt
            }
        ]

    async def analyze_image(
        self,
        prompt: str,
        image: ImagePayload,
        config: Optional[GenerationConfig] = None
    ) -> str:
        """Generate text about an image."""
        gen = self._resolve(config)
        provider = (gen.provider or self.config.provider).lower()
        logger.debug(f"analyze_image: model={gen.model}, mime={image.type}")
        return await self._ainvoke(gen, self.build_image_content(provider, prompt, image))

    # ------------------------------------------------------------------
    # Grounded generation (native google-genai)
    # ------------------------------------------------------------------

    def _get_genai_client(self) -> Any:
        if self._genai_client is None:
            try:
                from google import genai
            except ImportError:
                raise MissingDependencyError(
                    package_name="google-genai",
                    install_command="pip install google-genai",
                    purpose="Google Search grounding"
                )
            self._genai_client = genai.Client(api_key=self._api_key_for('google'))
            logger.info("Initialized native Google GenAI SDK for grounded generation")
        return self._genai_client

    @staticmethod
    def extract_sources(response: Any) -> List[Dict[str, str]]:
        """Web references from grounding metadata, deduplicated by URI."""
        sources: List[Dict[str, str]] = []
        seen = set()
        for candidate in getattr(response, 'candidates', None) or []:
            metadata = getattr(candidate, 'grounding_metadata', None)
            for chunk in getattr(metadata, 'grounding_chunks', None) or []:
                web = getattr(chunk, 'web', None)
                uri = getattr(web, 'uri', None)
                if not uri or uri in seen:
                    continue
                seen.add(uri)
                sources.append({"uri": uri, "title": getattr(web, 'title', None) or uri})
        return sources

    async def generate_grounded(
        self,
        prompt: str,
        config: Optional[GenerationConfig] = None
    ) -> Dict[str, Any]:
        """
        Search-grounded generation.

        Always served by Gemini; a non-Google task provider falls back to
        the default Gemini model.

        Returns:
            ``{"text": str, "sources": [{"uri", "title"}, ...]}``
        """
        gen = self._resolve(config)
        model = gen.model
        if (gen.provider or self.config.provider) != 'google':
            model = self.PROVIDER_DEFAULTS['google']['model']

        client = self._get_genai_client()
        from google.genai import types

        generate_config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
            temperature=gen.temperature,
            top_k=gen.top_k,
            top_p=gen.top_p,
            max_output_tokens=gen.max_tokens,
            system_instruction=gen.system_instruction,
        )

        if self.rate_limiter is not None:
            await self.rate_limiter.acquire()

        try:
            response = await client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=generate_config,
            )
        except Exception as e:
            logger.error(f"Error in grounded generation: {str(e)}")
            raise LLMError(provider='google', message=str(e), model=model, original_error=e) from e

        sources = self.extract_sources(response)
        logger.debug(f"Grounded generation returned {len(sources)} source(s)")
        return {"text": response.text or "", "sources": sources}
