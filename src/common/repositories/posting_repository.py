"""
MongoDB Posting Repository

Stores job postings in the ``job_postings`` collection and generated
resumes in ``tailored_resumes``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from src.common.types import JobPosting, PostingScores, TailoredResume
from .base import PostingRepositoryInterface, WriteResult

logger = logging.getLogger(__name__)

SCORE_PROJECTION = {"_id": 1, "company_score": 1, "fit_score": 1, "priority": 1}


def to_object_id(posting_id: str) -> Union[ObjectId, str]:
    """Convert to ObjectId, falling back to the raw string for non-ObjectId ids."""
    try:
        return ObjectId(posting_id)
    except (InvalidId, TypeError):
        return posting_id


class AtlasPostingRepository(PostingRepositoryInterface):
    """
    MongoDB implementation of the posting repository.

    Connection Management:
    - Uses a class-level MongoClient for connection pooling
    - Client is created once and reused across requests

    Error Handling:
    - Fail-fast: database errors propagate to the caller
    """

    _client: Optional[MongoClient] = None
    _db: Optional[Database] = None

    def __init__(
        self,
        mongodb_uri: str,
        database: str = "job_board",
        collection: str = "job_postings",
        resume_collection: str = "tailored_resumes",
    ):
        self._mongodb_uri = mongodb_uri
        self._database_name = database
        self._collection_name = collection
        self._resume_collection_name = resume_collection

    def _get_db(self) -> Database:
        if AtlasPostingRepository._db is None:
            AtlasPostingRepository._client = MongoClient(self._mongodb_uri)
            AtlasPostingRepository._db = AtlasPostingRepository._client[self._database_name]
            logger.info(f"Posting repository connected: {self._database_name}")
        return AtlasPostingRepository._db

    def _get_collection(self) -> Collection:
        return self._get_db()[self._collection_name]

    def _get_resume_collection(self) -> Collection:
        return self._get_db()[self._resume_collection_name]

    def find_posting(self, user_id: str, posting_id: str) -> Optional[JobPosting]:
        doc = self._get_collection().find_one(
            {"_id": to_object_id(posting_id), "user_id": user_id}
        )
        if doc is None:
            return None
        return JobPosting.from_document(doc)

    def read_posting_scores(self, user_id: str) -> List[PostingScores]:
        cursor = self._get_collection().find({"user_id": user_id}, SCORE_PROJECTION)
        return [
            PostingScores(
                posting_id=str(doc["_id"]),
                company_score=doc.get("company_score") or 0,
                fit_score=doc.get("fit_score") or 0,
                priority=doc.get("priority") or 0,
            )
            for doc in cursor
        ]

    def write_posting(
        self,
        user_id: str,
        posting_id: str,
        fields: Dict[str, Any],
    ) -> WriteResult:
        update = dict(fields)
        update["updated_at"] = datetime.utcnow()
        result = self._get_collection().update_one(
            {"_id": to_object_id(posting_id), "user_id": user_id},
            {"$set": update},
        )
        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
        )

    def insert_posting(self, posting: JobPosting) -> str:
        document = posting.to_document()
        if posting.id:
            document["_id"] = to_object_id(posting.id)
        result = self._get_collection().insert_one(document)
        return str(result.inserted_id)

    def count_postings(self, user_id: str) -> int:
        return self._get_collection().count_documents({"user_id": user_id})

    def insert_tailored_resume(self, resume: TailoredResume) -> str:
        result = self._get_resume_collection().insert_one(resume.to_document())
        return str(result.inserted_id)

    @classmethod
    def reset_connection(cls) -> None:
        """
        Reset the connection pool.

        Used for testing or connection recovery.
        """
        if cls._client:
            cls._client.close()
        cls._client = None
        cls._db = None
        logger.info("Posting repository connection reset")
