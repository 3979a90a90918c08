import httpx
import openai
import pytest
from google.api_core import exceptions as google_exceptions

from core.errors import MissingCredentialError, ProviderError, ProviderNotFoundError, RateLimitError
from services.config import Config
from services.llm import (
    GeminiProvider,
    OllamaProvider,
    OpenAIProvider,
    ProviderRegistry,
    ProviderSettings,
    available_providers,
    _translate_error,
    register_provider,
)
from fakes import FakeProvider

SETTINGS = ProviderSettings(temperature=0.5, max_output_length=1700, top_p=0.9, model="m")


def test_registry_builds_builtin_providers_lazily():
    registry = ProviderRegistry(Config(OLLAMA_BASE_URL="http://ollama.test:11434/v1"))

    provider = registry.get("ollama")

    assert isinstance(provider, OllamaProvider)
    assert provider.base_url == "http://ollama.test:11434"
    assert registry.get("OLLAMA") is provider
    assert {"ollama", "openai", "gemini"} <= set(available_providers())


def test_unknown_provider():
    registry = ProviderRegistry(Config())

    assert "nope" not in registry
    with pytest.raises(ProviderNotFoundError):
        registry.get("nope")


def test_register_provider_adds_implementation():
    fake = FakeProvider()
    register_provider("test-only", lambda config: fake)

    assert ProviderRegistry(Config()).get("test-only") is fake


@pytest.mark.parametrize("provider", [OpenAIProvider(api_key=None), GeminiProvider(api_key=None)])
async def test_missing_credentials_are_not_retryable(provider):
    with pytest.raises(MissingCredentialError) as excinfo:
        await provider.invoke("prompt", SETTINGS)

    assert excinfo.value.retryable is False


def test_settings_max_tokens_scales_with_length():
    assert SETTINGS.max_tokens > ProviderSettings(0.5, 300, 0.9, "m").max_tokens


def _request() -> httpx.Request:
    return httpx.Request("POST", "https://llm.test/v1/chat")


def _httpx_error(status: int, headers=None) -> httpx.HTTPStatusError:
    response = httpx.Response(status, headers=headers or {}, request=_request())
    return httpx.HTTPStatusError(f"HTTP {status}", request=_request(), response=response)


def _openai_error(error_cls, status: int, headers=None):
    response = httpx.Response(status, headers=headers or {}, request=_request())
    return error_cls("upstream refused", response=response, body=None)


@pytest.mark.parametrize(
    "error, retry_after",
    [
        (_httpx_error(429, {"Retry-After": "5"}), 5.0),
        (_httpx_error(429), None),
        (_openai_error(openai.RateLimitError, 429, {"retry-after": "7"}), 7.0),
        (google_exceptions.ResourceExhausted("Resource has been exhausted (e.g. check quota)."), None),
    ],
)
def test_quota_errors_become_rate_limits(error, retry_after):
    translated = _translate_error("p", error)

    assert isinstance(translated, RateLimitError)
    assert translated.retry_after == retry_after


@pytest.mark.parametrize(
    "error",
    [
        _httpx_error(401),
        _httpx_error(403),
        _openai_error(openai.AuthenticationError, 401),
        _openai_error(openai.PermissionDeniedError, 403),
        google_exceptions.PermissionDenied("API key not valid. Please pass a valid API key."),
        google_exceptions.Unauthenticated("Request had invalid authentication credentials."),
    ],
)
def test_credential_errors_are_not_retryable(error):
    translated = _translate_error("p", error)

    assert isinstance(translated, ProviderError)
    assert translated.retryable is False


@pytest.mark.parametrize(
    "error",
    [
        _httpx_error(503),
        _openai_error(openai.InternalServerError, 500),
        google_exceptions.ServiceUnavailable("The service is currently unavailable."),
        httpx.ConnectError("connection refused"),
    ],
)
def test_transient_errors_stay_retryable(error):
    translated = _translate_error("p", error)

    assert isinstance(translated, ProviderError)
    assert translated.retryable is True


def test_taxonomy_errors_pass_through_unchanged():
    error = RateLimitError("slow down", retry_after=3)

    assert _translate_error("p", error) is error


def _patch_async_client(monkeypatch, handler):
    real_client = httpx.AsyncClient
    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: real_client(transport=transport, **kwargs))


async def test_ollama_health_check_hits_tags_endpoint(monkeypatch):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"models": []})

    _patch_async_client(monkeypatch, handler)

    assert await OllamaProvider("http://ollama.test:11434/v1").health_check() is True
    assert seen == ["http://ollama.test:11434/api/tags"]


async def test_ollama_health_check_reports_unreachable_server(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    _patch_async_client(monkeypatch, handler)

    assert await OllamaProvider("http://ollama.test:11434").health_check() is False


async def test_hosted_providers_are_assumed_healthy():
    assert await OpenAIProvider(api_key=None).health_check() is True
