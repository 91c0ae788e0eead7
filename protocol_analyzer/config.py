"""
Configuration for the protocol analyzer.
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # OpenAI API settings
    openai_api_key: Optional[str] = None
    openai_model: str = 'gpt-4o-mini'
    api_base_url: Optional[str] = None

    # Enhancement settings
    llm_enabled: bool = False
    enhancement_timeout: float = Field(60.0, gt=0)

    # Source settings
    github_token: Optional[str] = None
    request_timeout: float = Field(15.0, gt=0)
    max_repository_files: int = Field(200, gt=0)

    # Logging settings
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    # Report settings
    default_report_format: str = 'text'

    @property
    def enhancement_available(self) -> bool:
        """Enhancement needs both the toggle and an API key."""
        return self.llm_enabled and bool(self.openai_api_key)
