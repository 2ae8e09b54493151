"""
Configuration management for the trip planner.
Supports OpenAI-compatible LLM providers: Gemini, OpenAI, OpenRouter, Ollama.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


PROVIDER_BASE_URLS = {
    "gemini": "https://generativelanguage.googleapis.com/v1beta/openai/",
    "openai": "https://api.openai.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
    "ollama": "http://localhost:11434/v1",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # LLM Configuration
    llm_provider: Literal["gemini", "openai", "openrouter", "ollama", "mock"] = "mock"
    llm_api_key: str = ""
    llm_base_url: str = ""
    llm_model: str = "gemini-2.5-flash"

    # LLM Parameters
    llm_temperature: float = 0.7
    llm_max_tokens: int = 4000
    llm_timeout_seconds: float = 60.0

    # Server Configuration
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = True
    log_level: str = "INFO"

    # Path the front end is served from; share links point here
    share_path: str = "/"


# Global settings instance
settings = Settings()


def get_llm_config() -> dict:
    """Get LLM configuration based on provider."""
    config = {
        "api_key": settings.llm_api_key or "ollama",
        "model": settings.llm_model,
        "temperature": settings.llm_temperature,
        "max_tokens": settings.llm_max_tokens,
        "timeout": settings.llm_timeout_seconds,
    }

    default_url = PROVIDER_BASE_URLS.get(settings.llm_provider, PROVIDER_BASE_URLS["openai"])
    config["base_url"] = settings.llm_base_url or default_url

    return config
