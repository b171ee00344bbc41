"""
Configuration settings for the Screenshot Test Case Generator
"""
from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Screenshot Test Case Generator"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Claude settings
    ANTHROPIC_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-3-5-sonnet-20241022"
    CLAUDE_MAX_TOKENS: int = 8000

    # Ollama settings
    OLLAMA_HOST: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llava"

    # Generation settings
    DEFAULT_MODEL: str = "claude"
    TEMPERATURE: float = 0.05
    REGENERATE_TEMPERATURE: float = 0.2
    MIN_SCREENSHOTS: int = 1
    MAX_SCREENSHOTS: int = 25

    # Retry settings
    MAX_RETRIES: int = 3
    RETRY_BASE_DELAY_MS: int = 1000
    RETRY_MAX_DELAY_MS: int = 10000
    TRANSIENT_RETRY_AFTER_SECONDS: int = 30

    # Cache and session stores
    CACHE_MAX_ENTRIES: int = 256
    CACHE_TTL_SECONDS: int = 0  # 0 disables expiry
    CACHE_KEY_INCLUDES_CONTEXT: bool = True
    SESSION_MAX_ENTRIES: int = 512
    SESSION_TTL_SECONDS: int = 86400

    # OCR settings
    OCR_LANGUAGES: List[str] = ["en"]
    OCR_GPU: bool = False

    class Config:
        env_file = ".env"
        extra = "allow"


settings = Settings()
