"""
Configuration loader for the job board backend.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """
    Centralized configuration for scoring, credit gating and AI operations.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== MongoDB =====
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGO_DB_NAME: str = os.getenv("MONGO_DB_NAME", "job_board")

    # ===== LLM APIs =====
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    # OpenAI-compatible gateway; empty means api.openai.com
    LLM_BASE_URL: str = os.getenv("LLM_BASE_URL", "")

    # ===== Web Scraping =====
    FIRECRAWL_API_KEY: str = os.getenv("FIRECRAWL_API_KEY", "")
    # Characters of scraped posting content handed to the extractor
    SCRAPE_CONTENT_LIMIT: int = int(os.getenv("SCRAPE_CONTENT_LIMIT", "15000"))
    # Below this many characters a scrape is treated as empty
    SCRAPE_MIN_CONTENT: int = int(os.getenv("SCRAPE_MIN_CONTENT", "50"))

    # ===== LLM Model Configuration =====
    DEFAULT_MODEL: str = os.getenv("DEFAULT_MODEL", "gpt-4o-mini")
    # English resumes use the stronger model
    QUALITY_MODEL: str = os.getenv("QUALITY_MODEL", "gpt-4o")

    # Temperature settings
    ANALYTICAL_TEMPERATURE: float = 0.2  # Fit evaluation, job extraction
    CREATIVE_TEMPERATURE: float = float(os.getenv("CREATIVE_TEMPERATURE", "0.6"))  # Resume writing

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required configuration is present.
        Raises ValueError if critical settings are missing.
        """
        required_settings = {
            "MONGODB_URI": cls.MONGODB_URI,
            "OPENAI_API_KEY": cls.OPENAI_API_KEY,
            "FIRECRAWL_API_KEY": cls.FIRECRAWL_API_KEY,
        }

        missing = [name for name, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Please check your .env file."
            )

    @classmethod
    def get_llm_api_key(cls) -> str:
        """Get the API key for LLM calls."""
        return cls.OPENAI_API_KEY

    @classmethod
    def get_llm_base_url(cls) -> Optional[str]:
        """LLM base URL (None to use OpenAI directly)."""
        return cls.LLM_BASE_URL or None

    @classmethod
    def get_resume_model(cls, language: str) -> str:
        """Model used for tailored resume generation in the given language."""
        if language == "en":
            return cls.QUALITY_MODEL
        return cls.DEFAULT_MODEL

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  MongoDB: {'✓ Configured' if cls.MONGODB_URI else '✗ Missing'} (db={cls.MONGO_DB_NAME})
  LLM: {'Gateway' if cls.get_llm_base_url() else 'OpenAI'} {'✓' if cls.get_llm_api_key() else '✗ Missing'}
  FireCrawl: {'✓ Configured' if cls.FIRECRAWL_API_KEY else '✗ Missing'}
  Default Model: {cls.DEFAULT_MODEL}
  Quality Model: {cls.QUALITY_MODEL}
        """.strip()
