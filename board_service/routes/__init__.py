"""
Board service route modules.

Each module handles a specific area of functionality.
"""

from .credits import router as credits_router
from .operations import router as operations_router
from .postings import router as postings_router
from .scoring import router as scoring_router

__all__ = [
    "credits_router",
    "operations_router",
    "postings_router",
    "scoring_router",
]
