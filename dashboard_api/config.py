"""Configuration management for the dashboard API."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from .models import CommandEntry

DEFAULT_NEWS_CATEGORIES = [
    "Innenriks",
    "Utenriks",
    "Politikk",
    "Nyheter",
    "Teknologi",
    "Forbruker",
]


@dataclass
class LLMConfig:
    """Configuration for the summarization model."""

    provider: str = "openai"
    api_key: str = ""
    api_url: str = "https://api.openai.com/v1/chat/completions"
    model: str = "gpt-4o-mini"
    bedrock_model_id: str = "amazon.nova-micro-v1:0"
    region: str = "us-east-1"
    temperature: float = 0.3
    max_tokens: int = 150
    timeout: int = 30


@dataclass
class NewsConfig:
    """Configuration for the news summary feed."""

    feed_url: str = "https://www.vg.no/rss/feed"
    categories: list[str] = field(default_factory=lambda: list(DEFAULT_NEWS_CATEGORIES))
    max_items: int = 5
    ttl_seconds: int = 30 * 60


@dataclass
class CalendarConfig:
    """Configuration for the calendar endpoint."""

    default_calendar: str = ""
    api_key: str = ""
    horizon_days: int = 7
    max_events: int = 20


@dataclass
class CacheConfig:
    """Configuration for the cache store backing the TTL caches."""

    table_name: str = ""
    region: str = "us-east-1"
    command_ttl_seconds: int = 12 * 60 * 60


class Config:
    """Main configuration manager."""

    COMMANDS_FILE = "commands.json"
    PACKAGE_DATA_DIR = Path(__file__).parent / "data"

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.aws_region = os.getenv(
            "CURRENT_AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        )
        self.llm_provider = os.getenv("LLM_PROVIDER", "openai").lower()
        self.openai_api_key = os.getenv("OPENAI_API_KEY", "")
        self.openai_secret_name = os.getenv("OPENAI_SECRET_NAME", "")
        self.openai_api_url = os.getenv(
            "OPENAI_API_URL", "https://api.openai.com/v1/chat/completions"
        )
        self.llm_model = os.getenv("LLM_MODEL", "gpt-4o-mini")
        self.bedrock_model_id = os.getenv("BEDROCK_MODEL_ID", "amazon.nova-micro-v1:0")
        self.news_feed_url = os.getenv("NEWS_FEED_URL", "https://www.vg.no/rss/feed")
        self.news_categories = os.getenv("NEWS_CATEGORIES", "")
        self.commands_file = os.getenv("COMMANDS_FILE", "")
        self.calendar_id = os.getenv("GOOGLE_CALENDAR_ID", "")
        self.calendar_api_key = os.getenv("GOOGLE_CALENDAR_API_KEY", "")
        self.calendar_secret_name = os.getenv("GOOGLE_CALENDAR_SECRET_NAME", "")
        self.twitch_client_id = os.getenv(
            "VITE_TWITCH_CLIENT_ID", os.getenv("TWITCH_CLIENT_ID", "")
        )
        self.twitch_redirect_uri = os.getenv(
            "VITE_TWITCH_REDIRECT_URI", os.getenv("TWITCH_REDIRECT_URI", "")
        )
        self.cache_table = os.getenv("CACHE_TABLE", "")
        self.metrics_enabled = os.getenv("METRICS_ENABLED", "false").lower() in (
            "1",
            "true",
            "yes",
        )

    def get_news_categories(self) -> list[str]:
        """Get the category allow-list for the news feed."""
        if not self.news_categories.strip():
            return list(DEFAULT_NEWS_CATEGORIES)
        return [c.strip() for c in self.news_categories.split(",") if c.strip()]

    def get_commands_path(self) -> Path:
        """Locate the command list file.

        Looks at COMMANDS_FILE, then the working directory, then the Lambda
        root, then the copy shipped with the package.
        """
        if self.commands_file:
            return Path(self.commands_file)

        candidates = [
            Path(self.COMMANDS_FILE),
            Path("/var/task") / self.COMMANDS_FILE,
            self.PACKAGE_DATA_DIR / self.COMMANDS_FILE,
        ]
        for candidate in candidates:
            if candidate.exists():
                return candidate
        return candidates[-1]

    def load_commands(self) -> list[CommandEntry]:
        """Load the static command list.

        Raises:
            FileNotFoundError: If the command file does not exist
            ValueError: If the file is not a JSON list of commands
        """
        commands_file = self.get_commands_path()
        if not commands_file.exists():
            raise FileNotFoundError(f"Commands file not found: {commands_file}")

        try:
            with open(commands_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in commands file: {e}")

        if isinstance(data, dict):
            data = data.get("commands", [])
        if not isinstance(data, list):
            raise ValueError("Commands file must contain a list of commands")

        return [
            CommandEntry(
                command=row["command"],
                description=row.get("description", ""),
                example=row.get("example") or None,
            )
            for row in data
            if isinstance(row, dict) and row.get("command")
        ]

    def get_llm_config(self) -> LLMConfig:
        """Get summarization model configuration.

        The API key may still be empty here; it can be resolved from Secrets
        Manager later by the caller.
        """
        return LLMConfig(
            provider=self.llm_provider,
            api_key=self.openai_api_key,
            api_url=self.openai_api_url,
            model=self.llm_model,
            bedrock_model_id=self.bedrock_model_id,
            region=self.aws_region,
        )

    def get_news_config(self) -> NewsConfig:
        return NewsConfig(
            feed_url=self.news_feed_url,
            categories=self.get_news_categories(),
        )

    def get_calendar_config(self) -> CalendarConfig:
        return CalendarConfig(
            default_calendar=self.calendar_id,
            api_key=self.calendar_api_key,
        )

    def get_cache_config(self) -> CacheConfig:
        return CacheConfig(table_name=self.cache_table, region=self.aws_region)
