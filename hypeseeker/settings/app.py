"""Application secrets powered by Pydantic BaseSettings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Credentials read from the environment or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    anthropic_api_key: str | None = Field(
        default=None, validation_alias="ANTHROPIC_API_KEY"
    )
    gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    telegram_bot_token: str | None = Field(
        default=None, validation_alias="TELEGRAM_BOT_TOKEN"
    )
    telegram_chat_id: str | None = Field(
        default=None, validation_alias="TELEGRAM_CHAT_ID"
    )
    slack_webhook_url: str | None = Field(
        default=None, validation_alias="SLACK_WEBHOOK_URL"
    )
    github_token: str | None = Field(default=None, validation_alias="GITHUB_TOKEN")
    replicate_api_token: str | None = Field(
        default=None, validation_alias="REPLICATE_API_TOKEN"
    )


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
