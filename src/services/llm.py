"""
Summarization providers.

Every backend implements `invoke(prompt, settings) -> str`. Providers are
looked up by id in a registry so that adding a backend means registering a
class, not editing the summarizer.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import httpx
from langchain_core.messages import HumanMessage

from core.entities import ModelConfig
from core.errors import (
    EmptyResponseError,
    MissingCredentialError,
    ProviderError,
    ProviderNotFoundError,
    RateLimitError,
)
from services.config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSettings:
    temperature: float
    max_output_length: int
    top_p: float
    model: str

    @classmethod
    def from_model_config(cls, model_config: ModelConfig) -> "ProviderSettings":
        return cls(
            temperature=model_config.temperature,
            max_output_length=model_config.max_output_length,
            top_p=model_config.top_p,
            model=model_config.model,
        )

    @property
    def max_tokens(self) -> int:
        # Portuguese prose averages roughly three characters per token
        return self.max_output_length // 3 + 128


class LLMProvider(ABC):
    """
    Base interface for summarization backends.
    """

    name: str = "base"

    @abstractmethod
    async def invoke(self, prompt: str, settings: ProviderSettings) -> str:
        """
        Return the model's text for prompt.
        May raise ProviderError / RateLimitError on transport or quota failure.
        """
        raise NotImplementedError

    async def health_check(self) -> bool:
        """Whether the backend looks reachable. Hosted APIs are assumed up."""
        return True


def _status_of(error: Exception) -> Optional[int]:
    """
    HTTP status carried by a client library error.

    openai exposes `status_code`, httpx keeps it on `response`, and
    google-api-core errors store it in `code`.
    """
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return int(status)

    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return int(status)

    code = getattr(error, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return int(code)
    return None


def _translate_error(provider: str, error: Exception) -> Exception:
    """Map client library errors onto the shared error taxonomy."""
    if isinstance(error, (ProviderError, RateLimitError)):
        return error

    message = str(error)
    status = _status_of(error)

    lowered = message.lower()
    if (
        status == 429
        or lowered.startswith("429")
        or "rate limit" in lowered
        or "exhausted" in lowered
    ):
        retry_after = None
        response = getattr(error, "response", None)
        headers = getattr(response, "headers", None)
        if headers is not None and headers.get("retry-after"):
            try:
                retry_after = float(headers.get("retry-after"))
            except ValueError:
                retry_after = None
        return RateLimitError(f"{provider}: {message}", retry_after=retry_after)

    if status in (401, 403):
        return ProviderError(f"{provider}: {message}", provider=provider, retryable=False)

    return ProviderError(f"{provider}: {message}", provider=provider)


class OllamaProvider(LLMProvider):
    """
    LangChain-based Ollama provider.
    """

    name = "ollama"

    def __init__(self, base_url: str):
        # ChatOllama uses Ollama's native API, not OpenAI-compatible /v1 endpoint
        if base_url.endswith("/v1"):
            base_url = base_url[:-3]
        elif base_url.endswith("/v1/"):
            base_url = base_url[:-4]
        self.base_url = base_url.rstrip('/')

    def _client(self, settings: ProviderSettings):
        from langchain_ollama import ChatOllama

        return ChatOllama(
            base_url=self.base_url,
            model=settings.model,
            temperature=settings.temperature,
            top_p=settings.top_p,
            num_predict=settings.max_tokens,
            num_ctx=8192,
        )

    async def invoke(self, prompt: str, settings: ProviderSettings) -> str:
        try:
            response = await self._client(settings).ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            raise _translate_error(self.name, e) from e
        return str(response.content or "")

    async def health_check(self) -> bool:
        """
        Check if the Ollama server is reachable by calling /api/tags.
        """
        url = f"{self.base_url}/api/tags"
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(url)
                if resp.status_code == 200:
                    return True
                logger.error(f"Ollama health check failed: {resp.status_code} {resp.text}")
                return False
        except httpx.HTTPError as e:
            logger.error(f"Ollama health check error: {e} (url={url})")
            return False


class OpenAIProvider(LLMProvider):
    """
    OpenAI or any OpenAI-compatible endpoint through langchain-openai.
    """

    name = "openai"

    def __init__(self, api_key: Optional[str], base_url: Optional[str] = None):
        self.api_key = api_key
        self.base_url = base_url

    async def invoke(self, prompt: str, settings: ProviderSettings) -> str:
        if not self.api_key:
            raise MissingCredentialError(self.name, "OPENAI_API_KEY")

        from langchain_openai import ChatOpenAI

        llm = ChatOpenAI(
            model=settings.model,
            api_key=self.api_key,
            base_url=self.base_url,
            temperature=settings.temperature,
            top_p=settings.top_p,
            max_tokens=settings.max_tokens,
            max_retries=0,
        )
        try:
            response = await llm.ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            raise _translate_error(self.name, e) from e
        return str(response.content or "")


class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key

    async def invoke(self, prompt: str, settings: ProviderSettings) -> str:
        if not self.api_key:
            raise MissingCredentialError(self.name, "GEMINI_API_KEY")

        import google.generativeai as genai

        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(settings.model)
        try:
            response = await model.generate_content_async(
                prompt,
                generation_config={
                    "temperature": settings.temperature,
                    "top_p": settings.top_p,
                    "max_output_tokens": settings.max_tokens,
                },
            )
            text = response.text
        except Exception as e:
            raise _translate_error(self.name, e) from e
        return text or ""


ProviderFactory = Callable[[Config], LLMProvider]

_REGISTRY: Dict[str, ProviderFactory] = {
    "ollama": lambda config: OllamaProvider(config.OLLAMA_BASE_URL),
    "openai": lambda config: OpenAIProvider(config.OPENAI_API_KEY, config.OPENAI_BASE_URL),
    "gemini": lambda config: GeminiProvider(config.GEMINI_API_KEY),
}


def register_provider(provider_id: str, factory: ProviderFactory) -> None:
    _REGISTRY[provider_id.lower()] = factory


def available_providers() -> List[str]:
    return sorted(_REGISTRY)


class ProviderRegistry:
    """
    Resolves provider ids to provider instances, building each one lazily.
    """

    def __init__(self, config: Config, providers: Optional[Dict[str, LLMProvider]] = None):
        self.config = config
        self._instances: Dict[str, LLMProvider] = dict(providers or {})

    def __contains__(self, provider_id: str) -> bool:
        key = provider_id.lower()
        return key in self._instances or key in _REGISTRY

    def get(self, provider_id: str) -> LLMProvider:
        key = provider_id.lower()
        if key not in self._instances:
            factory = _REGISTRY.get(key)
            if factory is None:
                raise ProviderNotFoundError(provider_id)
            self._instances[key] = factory(self.config)
            logger.info(f"Created LLM provider: {key}")
        return self._instances[key]


async def invoke_with_timeout(
    provider: LLMProvider,
    prompt: str,
    settings: ProviderSettings,
    timeout: float,
) -> str:
    """Single provider call with a hard timeout and empty-response check."""
    try:
        text = await asyncio.wait_for(provider.invoke(prompt, settings), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ProviderError(
            f"Request timed out after {timeout}s", provider=provider.name
        ) from e

    text = text.strip()
    if not text:
        raise EmptyResponseError(provider.name)
    return text
