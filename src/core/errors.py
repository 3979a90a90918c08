"""
Exception hierarchy shared by every layer of the news bot.
"""
from typing import Optional

import httpx


class NewsBotError(Exception):
    """Base exception for the news bot."""

    retryable: bool = True


class ConfigError(NewsBotError):
    """Unrecoverable configuration problem detected at startup."""

    retryable = False


class ProviderError(NewsBotError):
    """Raised by summarization providers on transport or quota failures."""

    def __init__(self, message: str, provider: str, retryable: bool = True):
        super().__init__(message)
        self.provider = provider
        self.retryable = retryable


class ProviderNotFoundError(ProviderError):
    """Raised when the active provider id has no registered implementation."""

    def __init__(self, provider: str):
        super().__init__(f"Unknown provider: {provider}", provider=provider, retryable=False)


class MissingCredentialError(ProviderError):
    """Raised when the selected provider has no credential configured."""

    def __init__(self, provider: str, variable: str):
        super().__init__(
            f"Provider '{provider}' requires {variable} to be set",
            provider=provider,
            retryable=False,
        )
        self.variable = variable


class EmptyResponseError(ProviderError):
    """The provider answered but returned no text."""

    def __init__(self, provider: str):
        super().__init__(f"Provider '{provider}' returned an empty response", provider=provider)


class RateLimitError(NewsBotError):
    """
    Upstream asked us to slow down. retry_after is in seconds when the
    upstream told us how long to wait.
    """

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class DeliveryError(NewsBotError):
    """A destination could not be reached."""


def rate_limit_from_response(response: httpx.Response) -> Optional[RateLimitError]:
    """Translate an HTTP 429 into a RateLimitError, honouring Retry-After."""
    if response.status_code != 429:
        return None

    retry_after = None
    header = response.headers.get("Retry-After")
    if header:
        try:
            retry_after = float(header)
        except ValueError:
            retry_after = None

    return RateLimitError(f"Rate limited by {response.request.url.host}", retry_after=retry_after)
