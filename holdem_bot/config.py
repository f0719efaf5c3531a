"""Application configuration."""
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    log_level: str = "DEBUG"

    # Discord - 필수 필드 (환경변수에서 반드시 읽어야 함)
    discord_token: str = Field(
        ...,
        description="Discord bot token (required)",
    )

    # Recruitment
    recruit_timeout_seconds: float = Field(
        default=30.0,
        description="Length of the join window in seconds",
    )
    reaction_page_limit: int = Field(
        default=20,
        description="Maximum number of reactors read when the join window closes",
    )
    join_emoji: str = Field(
        default="\U0001f91d",
        description="Reaction players add to the recruitment message to join",
    )

    # Game
    default_buy_in: int = Field(
        default=1000,
        description="Buy-in used when `holdem!` is sent without an amount",
    )
    blind_divisor: int = Field(
        default=100,
        description="Big blind is the buy-in divided by this value",
    )

    @field_validator("discord_token")
    @classmethod
    def validate_discord_token(cls, v: str) -> str:
        """Reject blank tokens."""
        if not v.strip():
            raise ValueError("discord_token must not be empty")
        return v.strip()

    @field_validator("recruit_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("recruit_timeout_seconds must be positive")
        return v

    @field_validator("default_buy_in", "blind_divisor", "reaction_page_limit")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.app_env == "production" and self.log_level == "DEBUG":
            # 경고만 하고 에러는 발생시키지 않음
            import warnings
            warnings.warn(
                "DEBUG log level in production may expose sensitive information"
            )
        return self

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
