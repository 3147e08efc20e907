"""
Unit tests for priority ranking.
"""

import pytest

from src.common.error_handling import ValidationError
from src.common.types import PostingScores
from src.scoring.priority import (
    absolute_bucket,
    combined_score,
    compute_priority,
    percentile_bucket,
)


class TestCombinedScore:

    def test_mean_of_both(self):
        assert combined_score(4, 2) == 3.0

    def test_zero_is_ignored(self):
        assert combined_score(4, 0) == 4.0
        assert combined_score(0, 3) == 3.0

    def test_both_zero(self):
        assert combined_score(0, 0) == 0.0

    def test_half_values(self):
        assert combined_score(5, 4) == 4.5


class TestComputePriority:
    """Relative bucketing against the user's other postings."""

    def test_unscored_stays_unscored(self):
        """Both scores 0 -> 0 regardless of population."""
        assert compute_priority(0, 0, []) == 0
        assert compute_priority(0, 0, [(5, 5), (1, 1)]) == 0

    def test_sole_scored_absolute_bucket(self):
        """Combined 4.5 with no peers is bucket 1."""
        assert compute_priority(5, 4, []) == 1

    def test_single_posting_combined_four(self):
        assert compute_priority(4, 4, []) == 1

    def test_unscored_peers_are_ignored(self):
        """Peers with combined 0 do not count as a comparison set."""
        assert compute_priority(3, 3, [(0, 0), (0, 0)]) == 2

    @pytest.mark.parametrize("company,fit,expected", [
        (5, 5, 1),
        (4, 0, 1),
        (3, 4, 2),   # 3.5
        (3, 3, 2),
        (2, 3, 3),   # 2.5
        (2, 0, 3),
        (1, 2, 4),   # 1.5
        (1, 1, 4),
    ])
    def test_absolute_thresholds(self, company, fit, expected):
        assert compute_priority(company, fit, []) == expected

    def test_relative_boundaries(self):
        """Population [5,4,3,2,1] with this=3: rank 2 of 6 -> percentile 0.33 -> bucket 2."""
        population = [(5, 5), (4, 4), (3, 3), (2, 2), (1, 1)]
        assert compute_priority(3, 3, population) == 2

    def test_best_of_population_is_bucket_one(self):
        assert compute_priority(5, 5, [(1, 1), (2, 2), (3, 3)]) == 1

    def test_worst_of_population_is_bucket_five(self):
        # merged [5,5,5,5,1]: rank 4 of 5 -> 0.8 -> bucket 5
        assert compute_priority(1, 1, [(5, 5)] * 4) == 5

    def test_ties_rank_ahead_of_equal_scores(self):
        """Self is ranked first among equal combined scores."""
        # merged [4,4,4,4,4]: rank 0 -> bucket 1
        assert compute_priority(4, 4, [(4, 4)] * 4) == 1
        # merged [5,3,3,3,3]: rank 1 of 5 -> 0.2 -> bucket 2
        assert compute_priority(3, 3, [(5, 5), (3, 3), (3, 3), (3, 3)]) == 2

    def test_idempotent(self):
        population = [(5, 4), (2, 0), (3, 3), (0, 0), (1, 5)]
        first = compute_priority(3, 4, population)
        second = compute_priority(3, 4, population)
        assert first == second

    def test_accepts_posting_scores_and_dicts(self):
        population = [
            PostingScores(posting_id="a", company_score=5, fit_score=5),
            {"company_score": 1, "fit_score": 1},
        ]
        # merged [5, 3, 1]: rank 1 of 3 -> 0.33 -> bucket 2
        assert compute_priority(3, 3, population) == 2

    def test_result_always_in_range(self):
        population = [(c, f) for c in range(6) for f in range(6)]
        for company in range(6):
            for fit in range(6):
                bucket = compute_priority(company, fit, population)
                assert 0 <= bucket <= 5
                assert (bucket == 0) == (company == 0 and fit == 0)

    @pytest.mark.parametrize("company,fit", [(6, 3), (-1, 2), (3, 7), (2.5, 3), (True, 3)])
    def test_invalid_scores_raise(self, company, fit):
        with pytest.raises(ValidationError):
            compute_priority(company, fit, [])

    def test_invalid_population_score_raises(self):
        with pytest.raises(ValidationError):
            compute_priority(3, 3, [(9, 1)])


class TestBuckets:

    def test_absolute_bucket_floor(self):
        assert absolute_bucket(0.5) == 5

    def test_percentile_bucket_edges(self):
        assert percentile_bucket(0.0) == 1
        assert percentile_bucket(0.19) == 1
        assert percentile_bucket(0.2) == 2
        assert percentile_bucket(0.4) == 3
        assert percentile_bucket(0.6) == 4
        assert percentile_bucket(0.8) == 5
        assert percentile_bucket(0.99) == 5
