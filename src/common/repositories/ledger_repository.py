"""
MongoDB Credit Ledger Repository

Credit counters live on the user's document in ``user_subscriptions``:

    {
        "user_id": "...",
        "plan_id": "...",
        "job_limit": 30,
        "ai_credits_remaining": 10, "ai_credits_used": 0,
        "resume_credits_remaining": 3, "resume_credits_used": 0,
    }

Deduction is a single ``update_one`` whose filter pins the remaining count
the caller observed (compare-and-swap), so two requests racing on the same
ledger cannot both succeed from the same observation.
"""

import logging
from datetime import datetime
from typing import Optional

from pymongo import MongoClient
from pymongo.collection import Collection

from src.common.types import CREDIT_TYPES, CreditLedger, CreditUsageRecord
from .base import LedgerRepositoryInterface, WriteResult

logger = logging.getLogger(__name__)


def ledger_fields(credit_type: str) -> tuple:
    """(remaining_field, used_field) for a credit type."""
    if credit_type not in CREDIT_TYPES:
        raise ValueError(f"Unknown credit type: {credit_type}")
    return f"{credit_type}_credits_remaining", f"{credit_type}_credits_used"


class AtlasLedgerRepository(LedgerRepositoryInterface):
    """
    MongoDB implementation of the credit ledger.

    Uses a class-level MongoClient singleton like the posting repository.
    """

    _client: Optional[MongoClient] = None

    def __init__(
        self,
        mongodb_uri: str,
        database: str = "job_board",
        collection: str = "user_subscriptions",
        usage_collection: str = "credit_usage_history",
    ):
        self._mongodb_uri = mongodb_uri
        self._database_name = database
        self._collection_name = collection
        self._usage_collection_name = usage_collection

    def _get_client(self) -> MongoClient:
        if AtlasLedgerRepository._client is None:
            AtlasLedgerRepository._client = MongoClient(self._mongodb_uri)
            logger.info("Created new MongoDB client for ledger repository")
        return AtlasLedgerRepository._client

    def _get_collection(self) -> Collection:
        return self._get_client()[self._database_name][self._collection_name]

    def _get_usage_collection(self) -> Collection:
        return self._get_client()[self._database_name][self._usage_collection_name]

    def read_ledger(self, user_id: str, credit_type: str) -> Optional[CreditLedger]:
        remaining_field, used_field = ledger_fields(credit_type)
        doc = self._get_collection().find_one(
            {"user_id": user_id},
            {remaining_field: 1, used_field: 1},
        )
        if doc is None:
            return None
        return CreditLedger(
            user_id=user_id,
            credit_type=credit_type,
            remaining=doc.get(remaining_field) or 0,
            used=doc.get(used_field) or 0,
        )

    def conditional_deduct(
        self,
        user_id: str,
        credit_type: str,
        amount: int,
        expected_remaining: int,
    ) -> int:
        if amount <= 0:
            raise ValueError(f"Deduction amount must be positive, got {amount}")
        if expected_remaining < amount:
            raise ValueError(
                f"Cannot deduct {amount} from an observed balance of {expected_remaining}"
            )

        remaining_field, used_field = ledger_fields(credit_type)
        result = self._get_collection().update_one(
            {"user_id": user_id, remaining_field: expected_remaining},
            {
                "$inc": {remaining_field: -amount, used_field: amount},
                "$set": {"updated_at": datetime.utcnow()},
            },
        )
        return result.modified_count

    def record_usage(self, record: CreditUsageRecord) -> WriteResult:
        result = self._get_usage_collection().insert_one(record.to_document())
        return WriteResult(
            matched_count=0,
            modified_count=0,
            upserted_id=str(result.inserted_id) if result.inserted_id else None,
        )

    def get_job_limit(self, user_id: str) -> Optional[int]:
        doc = self._get_collection().find_one({"user_id": user_id}, {"job_limit": 1})
        if doc is None:
            return None
        return doc.get("job_limit")

    @classmethod
    def reset_connection(cls) -> None:
        """Reset the MongoDB client connection."""
        if cls._client is not None:
            cls._client.close()
            cls._client = None
            logger.info("Ledger repository connection reset")
