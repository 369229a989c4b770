"""
Application configuration using Pydantic Settings.
All configuration values can be overridden via environment variables or .env file.
"""
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    app_name: str = "Prompt Laboratory API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    # Local storage (relative to backend root)
    data_file: Path = Path("data/prompts.json")

    # Notion backend - both must be set to select the Notion store
    notion_api_token: Optional[str] = None
    notion_database_id: Optional[str] = None

    # Sessions
    session_secret: str = "your-secret-key"
    session_max_age: int = 7 * 24 * 60 * 60  # 7 days
    session_https_only: bool = False

    # Seeded account for first login
    admin_username: str = "admin"
    admin_password: str = "admin"

    # Notion field limits (rich text fields hold ~2000 characters)
    content_chunk_size: int = 1990
    title_max_length: int = 1990
    part_title_max_length: int = 100

    # Trash
    trash_retention_days: int = 7

    # Prompt taxonomy
    prompt_categories: List[str] = [
        "creative",
        "academic",
        "business",
        "technical",
        "short_prompt",
        "other",
    ]
    default_tags: List[str] = ["gpt", "writing", "code", "business", "academic"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def notion_configured(self) -> bool:
        """Check if both Notion credentials are present."""
        return bool(self.notion_api_token and self.notion_database_id)

    def is_valid_category(self, category: str) -> bool:
        """Check a category against the configured enumeration."""
        return category in self.prompt_categories


# Global settings instance (lazily initialized)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
