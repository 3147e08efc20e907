"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- MongoDB connection attempts (would cause 5-30s timeout per test)
- Environment variable isolation (prevents credential leakage)

and the in-memory repositories most tests build on.
"""

import os
import pytest
from unittest.mock import patch, MagicMock

os.environ["ENVIRONMENT"] = "development"

from src.billing.credit_gate import CreditGate
from src.services.posting_score_service import PostingScoreService
from tests.helpers.fakes import InMemoryLedgerRepository, InMemoryPostingRepository


@pytest.fixture(autouse=True)
def mock_mongodb():
    """
    Prevent MongoDB connection attempts in all unit tests.

    MongoClient("") defaults to localhost:27017, causing 5-30s timeout per test.
    """
    with patch("pymongo.MongoClient") as mock_client:
        mock_instance = MagicMock()
        mock_db = MagicMock()
        mock_collection = MagicMock()

        # Setup chain: client["db"]["collection"]
        mock_instance.__getitem__ = MagicMock(return_value=mock_db)
        mock_db.__getitem__ = MagicMock(return_value=mock_collection)
        mock_collection.find_one = MagicMock(return_value=None)
        mock_collection.find = MagicMock(return_value=[])

        mock_client.return_value = mock_instance
        yield mock_client


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    Mock API keys prevent accidental real LLM or scraping calls.
    """
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-mock-key")
    monkeypatch.setenv("FIRECRAWL_API_KEY", "fc-test-mock-key")
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017")


@pytest.fixture
def posting_repo():
    return InMemoryPostingRepository()


@pytest.fixture
def ledger_repo():
    return InMemoryLedgerRepository()


@pytest.fixture
def score_service(posting_repo, ledger_repo):
    return PostingScoreService(posting_repo, ledger_repo)


@pytest.fixture
def credit_gate(ledger_repo):
    return CreditGate(ledger_repo)
