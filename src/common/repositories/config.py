"""
Repository Configuration and Factory

Provides factory functions returning the repository implementations,
configured from environment variables.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from .base import LedgerRepositoryInterface, PostingRepositoryInterface

logger = logging.getLogger(__name__)


@dataclass
class RepositoryConfig:
    """
    Configuration for repository initialization.

    Loaded from environment variables with sensible defaults.
    """
    mongodb_uri: str

    database: str = "job_board"
    postings_collection: str = "job_postings"
    resumes_collection: str = "tailored_resumes"
    subscriptions_collection: str = "user_subscriptions"
    usage_collection: str = "credit_usage_history"

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - MONGODB_URI (required): MongoDB connection string
        - MONGO_DB_NAME: Database name (default: job_board)

        Raises:
            ValueError: If MONGODB_URI is not set
        """
        mongodb_uri = os.getenv("MONGODB_URI")
        if not mongodb_uri:
            raise ValueError("MONGODB_URI environment variable is required")

        return cls(
            mongodb_uri=mongodb_uri,
            database=os.getenv("MONGO_DB_NAME", "job_board"),
        )


_posting_repository_instance: Optional[PostingRepositoryInterface] = None
_ledger_repository_instance: Optional[LedgerRepositoryInterface] = None


def get_posting_repository() -> PostingRepositoryInterface:
    """
    Get the posting repository instance (singleton).

    Raises:
        ValueError: If MongoDB URI is not configured
    """
    global _posting_repository_instance

    if _posting_repository_instance is None:
        config = RepositoryConfig.from_env()

        from .posting_repository import AtlasPostingRepository
        _posting_repository_instance = AtlasPostingRepository(
            mongodb_uri=config.mongodb_uri,
            database=config.database,
            collection=config.postings_collection,
            resume_collection=config.resumes_collection,
        )
        logger.info("Initialized posting repository")

    return _posting_repository_instance


def reset_posting_repository() -> None:
    """
    Reset the posting repository singleton.

    Used for testing or when configuration changes.
    """
    global _posting_repository_instance

    if _posting_repository_instance is not None:
        from .posting_repository import AtlasPostingRepository
        if isinstance(_posting_repository_instance, AtlasPostingRepository):
            AtlasPostingRepository.reset_connection()

    _posting_repository_instance = None
    logger.info("Posting repository singleton reset")


def get_ledger_repository() -> LedgerRepositoryInterface:
    """
    Get the credit ledger repository instance (singleton).

    Raises:
        ValueError: If MongoDB URI is not configured
    """
    global _ledger_repository_instance

    if _ledger_repository_instance is None:
        config = RepositoryConfig.from_env()

        from .ledger_repository import AtlasLedgerRepository
        _ledger_repository_instance = AtlasLedgerRepository(
            mongodb_uri=config.mongodb_uri,
            database=config.database,
            collection=config.subscriptions_collection,
            usage_collection=config.usage_collection,
        )
        logger.info("Initialized ledger repository")

    return _ledger_repository_instance


def reset_ledger_repository() -> None:
    """Reset the ledger repository singleton."""
    global _ledger_repository_instance

    if _ledger_repository_instance is not None:
        from .ledger_repository import AtlasLedgerRepository
        if isinstance(_ledger_repository_instance, AtlasLedgerRepository):
            AtlasLedgerRepository.reset_connection()

    _ledger_repository_instance = None
    logger.info("Ledger repository singleton reset")
