"""
Loads and handles config from config.yml
Credentials (webhook URL, bot token, API keys) are loaded from .env for security
"""
import os
from typing import List, Dict, Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from core.entities import ModelConfig
from core.errors import ConfigError

LEDGER_BACKENDS = ("memory", "file", "sqlite")


class SourceConfig(BaseModel):
    """Configuration for the news site being polled."""
    listing_urls: List[str] = ["https://www.centraldatoca.com.br/ultimas/"]
    item_selector: str = "div.tdb_module_loop.td_module_wrap"
    link_selector: str = ".td-module-meta-info h3.entry-title a"
    body_selector: str = "div.td-post-content"
    title_selector: str = "h1.tdb-title-text, h1.entry-title, h1"
    fetch_timeout: float = 15.0
    max_attempts: int = 2
    retry_delay: float = 1.0


class SummaryConfig(BaseModel):
    """Retry and timeout settings for summarization calls."""
    timeout: float = 30.0
    max_attempts: int = 3
    retry_delay: float = 1.0


class ModelDefaults(BaseModel):
    """Initial model configuration, used until an administrator changes it."""
    provider_id: str = "ollama"
    model: str = "llama3:8b"
    temperature: float = 0.7
    max_output_length: int = 1700
    top_p: float = 0.9

    def to_model_config(self) -> ModelConfig:
        return ModelConfig(
            provider_id=self.provider_id,
            model=self.model,
            temperature=self.temperature,
            max_output_length=self.max_output_length,
            top_p=self.top_p,
        )


class LedgerConfig(BaseModel):
    backend: str = "sqlite"
    file_path: str = "data/processed_news.json"


class Config(BaseModel):
    # Core
    DATABASE_PATH: str = "data/newsbot.db"
    POLL_INTERVAL_SECONDS: float = 60.0
    OUTPUT_DIR: str = "output"

    LEDGER: LedgerConfig = LedgerConfig()
    SOURCE: SourceConfig = SourceConfig()
    SUMMARY: SummaryConfig = SummaryConfig()
    MODEL: ModelDefaults = ModelDefaults()

    # Providers
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None
    GEMINI_API_KEY: Optional[str] = None

    # Delivery
    DELIVERY_TIMEOUT: float = 15.0
    DISCORD_WEBHOOK_URL: Optional[str] = None
    TELEGRAM_BOT_TOKEN: Optional[str] = None


def _get_config_path() -> str:
    """Get the path to config.yml, handling different working directories."""
    env_path = os.getenv("NEWS_CONFIG_PATH")
    if env_path:
        if not os.path.exists(env_path):
            raise FileNotFoundError(f"NEWS_CONFIG_PATH points to a missing file: {env_path}")
        return env_path

    # Try relative path first
    if os.path.exists('resources/config.yml'):
        return 'resources/config.yml'

    # Try from project root
    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    config_path = os.path.join(project_root, 'resources', 'config.yml')
    if os.path.exists(config_path):
        return config_path

    raise FileNotFoundError("Cannot find resources/config.yml")


def build_config(data: Dict[str, Any]) -> Config:
    """Build a Config from parsed YAML data plus credentials from the environment."""
    data = dict(data or {})

    return Config(
        DATABASE_PATH=data.get("DATABASE_PATH", "data/newsbot.db"),
        POLL_INTERVAL_SECONDS=float(data.get("POLL_INTERVAL_SECONDS", 60)),
        OUTPUT_DIR=data.get("OUTPUT_DIR", "output"),

        LEDGER=LedgerConfig(**data.get("LEDGER", {})),
        SOURCE=SourceConfig(**data.get("SOURCE", {})),
        SUMMARY=SummaryConfig(**data.get("SUMMARY", {})),
        MODEL=ModelDefaults(**data.get("MODEL", {})),

        OLLAMA_BASE_URL=os.getenv("OLLAMA_BASE_URL") or data.get("OLLAMA_BASE_URL", "http://localhost:11434"),
        OPENAI_BASE_URL=os.getenv("OPENAI_BASE_URL") or data.get("OPENAI_BASE_URL"),
        OPENAI_API_KEY=os.getenv("OPENAI_API_KEY"),
        GEMINI_API_KEY=os.getenv("GEMINI_API_KEY"),

        DELIVERY_TIMEOUT=float(data.get("DELIVERY_TIMEOUT", 15)),
        DISCORD_WEBHOOK_URL=os.getenv("DISCORD_WEBHOOK_URL"),
        TELEGRAM_BOT_TOKEN=os.getenv("TELEGRAM_BOT_TOKEN"),
    )


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from config.yml and credentials from .env."""
    # Load .env for sensitive credentials
    load_dotenv()

    config_path = path or _get_config_path()

    with open(config_path, 'r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}

    return build_config(data)


def validate_startup(config: Config) -> None:
    """Raise ConfigError for problems that must prevent the bot from starting."""
    if not config.SOURCE.listing_urls:
        raise ConfigError("SOURCE.listing_urls must contain at least one URL")
    if config.POLL_INTERVAL_SECONDS <= 0:
        raise ConfigError("POLL_INTERVAL_SECONDS must be positive")
    if config.LEDGER.backend not in LEDGER_BACKENDS:
        raise ConfigError(
            f"Unknown ledger backend '{config.LEDGER.backend}', expected one of {', '.join(LEDGER_BACKENDS)}"
        )
    if config.SOURCE.max_attempts < 1 or config.SUMMARY.max_attempts < 1:
        raise ConfigError("max_attempts settings must be at least 1")
