"""
Summarizer - rewrites an article into a short message via the active provider.

summarize() never raises: when the provider cannot produce text after all
retries, the raw body truncated to the configured length is used instead.
"""
import asyncio
import logging
from typing import Awaitable, Callable

from core.entities import Item, ModelConfig
from services.config import SummaryConfig
from services.llm import ProviderRegistry, ProviderSettings, invoke_with_timeout
from services.retry import Sleep, retry

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "..."
TARGET_LENGTH = 1700

PROMPT_TEMPLATE = """Reescreva o texto da notícia para ter no máximo {target} caracteres, deve conter todas as informações importantes. Esta notícia foi obtida via web scraping. Abaixo, o título e o conteúdo completo da notícia.
Não repita o título no texto gerado e mantenha o foco no assunto do título, ignorando trechos do conteúdo que não tratem dele.
Só responda o texto gerado, nenhum preâmbulo, nada mais.
Título: {title}
Conteúdo: {body}"""


def truncate(text: str, max_length: int, marker: str = TRUNCATION_MARKER) -> str:
    """Clip text to max_length characters, marker included."""
    text = text.strip()
    if len(text) <= max_length:
        return text
    if max_length <= len(marker):
        return text[:max_length]
    return text[: max_length - len(marker)].rstrip() + marker


def build_prompt(item: Item, max_length: int) -> str:
    return PROMPT_TEMPLATE.format(
        target=min(TARGET_LENGTH, max_length),
        title=item.title.strip(),
        body=item.body.strip(),
    )


class Summarizer:
    def __init__(
        self,
        providers: ProviderRegistry,
        model_config: Callable[[], Awaitable[ModelConfig]],
        settings: SummaryConfig = SummaryConfig(),
        sleep: Sleep = asyncio.sleep,
        defaults: ModelConfig = ModelConfig(),
    ):
        self.providers = providers
        self.model_config = model_config
        self.settings = settings
        self.defaults = defaults
        self._sleep = sleep

    async def summarize(self, item: Item) -> str:
        try:
            model_config = await self.model_config()
        except Exception as e:
            logger.error(f"Could not read model config, using defaults: {e}")
            model_config = self.defaults
        max_length = model_config.max_output_length

        try:
            provider = self.providers.get(model_config.provider_id)
            provider_settings = ProviderSettings.from_model_config(model_config)
            prompt = build_prompt(item, max_length)

            text = await retry(
                lambda: invoke_with_timeout(provider, prompt, provider_settings, self.settings.timeout),
                max_attempts=self.settings.max_attempts,
                initial_delay=self.settings.retry_delay,
                sleep=self._sleep,
                label=f"summarize[{model_config.provider_id}]",
            )
        except Exception as e:
            logger.warning(f"Summarization failed for {item.id}, using truncated body: {e}")
            return fallback_summary(item, max_length)

        return truncate(text, max_length)


def fallback_summary(item: Item, max_length: int) -> str:
    """Deterministic local summary: the raw body clipped to max_length."""
    return truncate(item.body, max_length)
