"""
Score aggregation for rated posting items.

Turns a list of optionally-rated items (company criteria or key competencies)
into one representative 0-5 score:

- Unrated items (score None or 0) are excluded from numerator and denominator
- Rated items must be integers 1-5; anything else raises ValidationError
- Mean is rounded half up (3.5 -> 4), 0 when nothing is rated
"""

from typing import Any, Iterable, Optional

from src.common.error_handling import ValidationError

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(value: Any, allow_unset: bool = True) -> Optional[int]:
    """
    Check a single rating.

    Args:
        value: Candidate rating
        allow_unset: Whether None/0 ("not rated") is acceptable

    Returns:
        The rating as int, or None when unset

    Raises:
        ValidationError: value is not an integer in 1-5 (or unset when allowed)
    """
    if isinstance(value, bool) or not isinstance(value, (int, type(None))):
        raise ValidationError(f"Rating must be an integer 1-5, got {value!r}")

    if value is None or value == 0:
        if allow_unset:
            return None
        raise ValidationError("A rating between 1 and 5 is required")

    if not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError(f"Rating must be between 1 and 5, got {value}")

    return value


def _item_rating(item: Any) -> Any:
    """Pull the rating out of a bare value, a mapping or an object with .score."""
    if isinstance(item, dict):
        return item.get("score")
    if hasattr(item, "score"):
        return item.score
    return item


def round_half_up_mean(total: int, count: int) -> int:
    """Integer mean rounded half up, exact for integer inputs."""
    return (2 * total + count) // (2 * count)


def compute_aggregate(items: Iterable[Any]) -> int:
    """
    Compute the aggregate score of a sequence of rated items.

    Args:
        items: Ratings as ints/None, dicts with a "score" key, or objects
               with a ``score`` attribute (CompanyCriteriaScore, KeyCompetency)

    Returns:
        0 if no item is rated, otherwise the rounded mean of rated items (1-5)

    Raises:
        ValidationError: any rating outside 1-5
    """
    total = 0
    count = 0
    for item in items:
        rating = validate_rating(_item_rating(item))
        if rating is None:
            continue
        total += rating
        count += 1

    if count == 0:
        return 0
    return round_half_up_mean(total, count)
