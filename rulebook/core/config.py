"""Engine configuration loaded from the environment."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Rulebook settings loaded from environment."""

    # Logging
    log_level: str = "WARNING"
    json_logs: bool = False

    # Evaluation
    placeholder_delimiter: str = "."
    default_rule_order: int = 10

    # Paths
    rules_dir: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="RULEBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
