"""
Application Settings
Load from environment variables
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Application
    # ======================
    APP_NAME: str = "Smart Discount Generator"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Local clock used for the time-of-day adjustment
    TIMEZONE: str = "UTC"

    # ======================
    # Algolia
    # ======================
    ALGOLIA_APP_ID: Optional[str] = None
    ALGOLIA_API_KEY: Optional[str] = None
    ALGOLIA_PRODUCTS_INDEX: str = "sdg_products"
    ALGOLIA_MARKET_INDEX: str = "market_intelligence"
    ALGOLIA_HISTORY_INDEX: str = "pricing_history"
    ALGOLIA_EVENTS_INDEX: str = "sdg_user_events"
    ALGOLIA_VETO_INDEX: str = "veto_decisions"
    ALGOLIA_CACHE_TTL: int = 60

    # Seed data for the in-memory catalog
    MOCK_DATA_FILE: str = "config/mock_data.yml"

    # ======================
    # LLM providers
    # ======================
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_MODEL: str = "gemini-1.5-flash"
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com"
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-latest"
    ANTHROPIC_VERSION: str = "2023-06-01"
    LLM_TIMEOUT_SECONDS: float = 30.0
    USE_LLM_STRATEGY: bool = False
    POLISH_REASONING: bool = False

    # ======================
    # Discounts & profit protection
    # ======================
    DISCOUNT_EXPIRY_MINUTES: int = 30
    DEFAULT_REQUESTED_DISCOUNT: float = 15.0
    MAX_DISCOUNT_PERCENTAGE: int = 25
    MIN_PROFIT_MARGIN: float = 0.15
    PROFIT_PROTECTION_THRESHOLD: float = 0.8

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="forbid",
    )


settings = Settings()
