"""
Relative priority ranking of job postings.

A posting's combined score (mean of its nonzero company/fit scores) is ranked
against the combined scores of the user's other scored postings and mapped to
a bucket: 1 = best, 5 = worst, 0 = unscored.

Ties: a posting ranks ahead of every other posting with the same combined
score, i.e. its rank is the number of other postings scoring strictly higher.
Recomputing with the same population always gives the same bucket.
"""

from typing import Any, Iterable, List, Tuple

from src.common.error_handling import ValidationError
from src.common.types import PostingScores

UNSCORED = 0

# (inclusive lower bound on combined score, bucket) for a posting with no peers
ABSOLUTE_THRESHOLDS: List[Tuple[float, int]] = [
    (4.0, 1),
    (3.0, 2),
    (2.0, 3),
    (1.0, 4),
]

# (exclusive upper bound on percentile rank, bucket)
PERCENTILE_THRESHOLDS: List[Tuple[float, int]] = [
    (0.2, 1),
    (0.4, 2),
    (0.6, 3),
    (0.8, 4),
]

LOWEST_BUCKET = 5


def _validate_aggregate(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer 0-5, got {value!r}")
    if not 0 <= value <= 5:
        raise ValidationError(f"{name} must be between 0 and 5, got {value}")
    return value


def combined_score(company_score: int, fit_score: int) -> float:
    """
    Mean of whichever of company_score / fit_score are nonzero.

    Returns:
        0.0 when both are 0 (unscored)
    """
    company_score = _validate_aggregate("company_score", company_score)
    fit_score = _validate_aggregate("fit_score", fit_score)

    nonzero = [s for s in (company_score, fit_score) if s]
    if not nonzero:
        return 0.0
    return sum(nonzero) / len(nonzero)


def _population_pair(entry: Any) -> Tuple[int, int]:
    """Accept (company, fit) tuples, PostingScores, or dicts with score keys."""
    if isinstance(entry, PostingScores):
        return entry.company_score, entry.fit_score
    if isinstance(entry, dict):
        return entry.get("company_score") or 0, entry.get("fit_score") or 0
    company, fit = entry
    return company or 0, fit or 0


def absolute_bucket(combined: float) -> int:
    """Bucket for the only scored posting on the board."""
    for lower_bound, bucket in ABSOLUTE_THRESHOLDS:
        if combined >= lower_bound:
            return bucket
    return LOWEST_BUCKET


def percentile_bucket(percentile: float) -> int:
    """Bucket for a percentile rank in [0, 1)."""
    for upper_bound, bucket in PERCENTILE_THRESHOLDS:
        if percentile < upper_bound:
            return bucket
    return LOWEST_BUCKET


def compute_priority(
    company_score: int,
    fit_score: int,
    population: Iterable[Any],
) -> int:
    """
    Compute the priority bucket of one posting.

    Args:
        company_score: Aggregate company score 0-5 (0 = unset)
        fit_score: Aggregate fit score 0-5 (0 = unset)
        population: Scores of every *other* posting of the same user, as
                    (company, fit) pairs, PostingScores or score dicts

    Returns:
        0 when the posting has no scores, otherwise a bucket 1 (best) - 5

    Raises:
        ValidationError: any score outside 0-5
    """
    this_combined = combined_score(company_score, fit_score)
    if this_combined == 0:
        return UNSCORED

    others = []
    for entry in population:
        combined = combined_score(*_population_pair(entry))
        if combined > 0:
            others.append(combined)

    if not others:
        return absolute_bucket(this_combined)

    merged = sorted(others + [this_combined], reverse=True)
    rank = merged.index(this_combined)
    percentile = rank / len(merged)
    return percentile_bucket(percentile)
