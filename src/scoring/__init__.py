# Scoring: aggregate ratings and relative priority buckets
#
# Exports:
# - compute_aggregate: rounded mean of rated items (0 when none rated)
# - validate_rating: single 1-5 rating check
# - combined_score: mean of nonzero company/fit scores
# - compute_priority: 0-5 priority bucket against the user's other postings

from src.scoring.aggregate import compute_aggregate, validate_rating
from src.scoring.priority import combined_score, compute_priority

__all__ = [
    "compute_aggregate",
    "validate_rating",
    "combined_score",
    "compute_priority",
]
