"""
Unit tests for PostingScoreService.
"""

import pytest

from src.common.error_handling import NotFoundError, PlanLimitExceeded, ValidationError
from src.common.types import CompanyCriteriaScore, KeyCompetency
from tests.helpers.fakes import make_posting


def _insert(posting_repo, **kwargs):
    posting = make_posting(**kwargs)
    return posting_repo.insert_posting(posting)


class TestRatings:
    """Manual ratings recompute aggregates and priority in one write."""

    def test_rate_company_criterion(self, score_service, posting_repo):
        posting_id = _insert(posting_repo, company_scores=[None, None, 3])

        updated = score_service.rate_company_criterion("user-1", posting_id, 0, 5)

        assert updated.company_score == 4
        assert updated.priority == 1
        doc = posting_repo.raw(posting_id)
        assert doc["company_criteria_scores"][0]["score"] == 5
        assert doc["company_score"] == 4
        assert doc["priority"] == 1
        assert len(posting_repo.write_calls) == 1

    def test_clear_rating(self, score_service, posting_repo):
        posting_id = _insert(posting_repo, company_scores=[4], company_score=4, priority=1)

        updated = score_service.rate_company_criterion("user-1", posting_id, 0, None)

        assert updated.company_score == 0
        assert updated.priority == 0
        assert posting_repo.raw(posting_id)["company_criteria_scores"][0]["score"] is None

    def test_rate_competency_keeps_company_score(self, score_service, posting_repo):
        posting_id = _insert(
            posting_repo, company_scores=[], company_score=3, competency_scores=[None, 2, None]
        )

        updated = score_service.rate_competency("user-1", posting_id, 0, 5)

        assert updated.fit_score == 4       # mean(5, 2) = 3.5 -> 4
        assert updated.company_score == 3
        assert posting_repo.raw(posting_id)["key_competencies"][0]["score"] == 5

    def test_ranked_against_other_postings(self, score_service, posting_repo):
        for score in (5, 4, 2, 1):
            _insert(posting_repo, company_scores=[score], company_score=score)
        posting_id = _insert(posting_repo, company_scores=[None])

        updated = score_service.rate_company_criterion("user-1", posting_id, 0, 3)

        # merged [5,4,3,2,1]: rank 2 of 5 -> 0.4 -> bucket 3
        assert updated.priority == 3

    def test_other_users_do_not_count(self, score_service, posting_repo):
        _insert(posting_repo, user_id="user-2", company_scores=[5], company_score=5)
        posting_id = _insert(posting_repo, company_scores=[None])

        updated = score_service.rate_company_criterion("user-1", posting_id, 0, 3)

        assert updated.priority == 2        # absolute bucket, no peers

    def test_other_postings_not_reranked(self, score_service, posting_repo):
        other_id = _insert(posting_repo, company_scores=[3], company_score=3, priority=2)
        posting_id = _insert(posting_repo, company_scores=[None])

        score_service.rate_company_criterion("user-1", posting_id, 0, 5)

        assert posting_repo.raw(other_id)["priority"] == 2

    @pytest.mark.parametrize("score", [0, None])
    def test_unset_values_clear(self, score_service, posting_repo, score):
        posting_id = _insert(posting_repo, competency_scores=[4])
        updated = score_service.rate_competency("user-1", posting_id, 0, score)
        assert updated.fit_score == 0

    @pytest.mark.parametrize("score", [6, -2, 2.5, "4", True])
    def test_invalid_rating(self, score_service, posting_repo, score):
        posting_id = _insert(posting_repo, company_scores=[None])

        with pytest.raises(ValidationError):
            score_service.rate_company_criterion("user-1", posting_id, 0, score)
        assert posting_repo.write_calls == []

    def test_index_out_of_range(self, score_service, posting_repo):
        posting_id = _insert(posting_repo, competency_scores=[None, None])

        with pytest.raises(ValidationError):
            score_service.rate_competency("user-1", posting_id, 2, 3)
        with pytest.raises(ValidationError):
            score_service.rate_competency("user-1", posting_id, -1, 3)

    def test_unknown_posting(self, score_service):
        with pytest.raises(NotFoundError):
            score_service.rate_competency("user-1", "missing", 0, 3)

    def test_posting_of_another_user(self, score_service, posting_repo):
        posting_id = _insert(posting_repo, user_id="user-2", competency_scores=[None])

        with pytest.raises(NotFoundError):
            score_service.rate_competency("user-1", posting_id, 0, 3)


class TestApplyScores:

    def test_extra_fields_in_same_write(self, score_service, posting_repo):
        posting_id = _insert(posting_repo, competency_scores=[None, None])
        posting = score_service.get_posting("user-1", posting_id)
        competencies = [
            KeyCompetency(title="a", score=4, evaluation="strong"),
            KeyCompetency(title="b", score=3, evaluation="ok"),
        ]

        score_service.apply_scores(
            posting,
            key_competencies=competencies,
            extra_fields={"minimum_requirements_check": {"experience_met": "met", "reason": ""}},
        )

        assert len(posting_repo.write_calls) == 1
        fields = posting_repo.write_calls[0]["fields"]
        assert fields["fit_score"] == 4
        assert fields["minimum_requirements_check"]["experience_met"] == "met"
        assert fields["key_competencies"][0]["evaluation"] == "strong"

    def test_no_arrays_keeps_stored_aggregates(self, score_service, posting_repo):
        posting_id = _insert(posting_repo, company_score=4, fit_score=2)
        posting = score_service.get_posting("user-1", posting_id)

        updated = score_service.apply_scores(posting)

        assert (updated.company_score, updated.fit_score) == (4, 2)
        assert updated.priority == 2        # combined 3.0

    def test_deleted_posting(self, score_service, posting_repo):
        posting = make_posting(posting_id="gone")

        with pytest.raises(NotFoundError):
            score_service.apply_scores(posting, key_competencies=[])


class TestPriorityOverride:

    def test_override_sets_flag(self, score_service, posting_repo):
        posting_id = _insert(posting_repo, company_scores=[5], company_score=5, priority=1)

        updated = score_service.override_priority("user-1", posting_id, 4)

        assert updated.priority == 4
        assert updated.priority_overridden is True
        doc = posting_repo.raw(posting_id)
        assert doc["priority"] == 4
        assert doc["priority_overridden"] is True
        assert doc["company_score"] == 5

    def test_next_score_change_replaces_override(self, score_service, posting_repo):
        posting_id = _insert(posting_repo, company_scores=[5, None], company_score=5, priority=1)
        score_service.override_priority("user-1", posting_id, 5)

        updated = score_service.rate_company_criterion("user-1", posting_id, 1, 5)

        assert updated.priority == 1
        assert updated.priority_overridden is False
        assert posting_repo.raw(posting_id)["priority_overridden"] is False

    @pytest.mark.parametrize("priority", [0, 6, 2.0, True, None])
    def test_invalid_override(self, score_service, posting_repo, priority):
        posting_id = _insert(posting_repo)

        with pytest.raises(ValidationError):
            score_service.override_priority("user-1", posting_id, priority)


class TestCreatePosting:

    def test_seeds_from_initial_scores(self, score_service, posting_repo):
        posting = score_service.create_posting(
            "user-1",
            {"company_name": "Acme", "title": "Data Engineer"},
            company_criteria=[CompanyCriteriaScore(name="culture")],
            key_competencies=[KeyCompetency(title=f"c{i}") for i in range(5)],
            initial_company_score=4,
            initial_fit_score=5,
        )

        assert posting.id
        assert posting.company_score == 4
        assert posting.fit_score == 5
        assert posting.priority == 1
        doc = posting_repo.raw(posting.id)
        assert doc["company_name"] == "Acme"
        assert doc["priority"] == 1

    def test_rated_arrays_win_over_initial_scores(self, score_service):
        posting = score_service.create_posting(
            "user-1",
            {"company_name": "Acme", "title": "Data Engineer"},
            company_criteria=[
                CompanyCriteriaScore(name="culture", score=2),
                CompanyCriteriaScore(name="pay", score=3),
            ],
            initial_company_score=5,
        )

        assert posting.company_score == 3   # 2.5 -> 3

    def test_unscored_posting(self, score_service):
        posting = score_service.create_posting("user-1", {"company_name": "Acme", "title": "x"})
        assert posting.priority == 0

    def test_ranked_against_existing(self, score_service, posting_repo):
        _insert(posting_repo, company_score=5, fit_score=5)

        posting = score_service.create_posting(
            "user-1", {"company_name": "B", "title": "y"},
            initial_company_score=1, initial_fit_score=1,
        )

        # merged [5, 1]: rank 1 of 2 -> 0.5 -> bucket 3
        assert posting.priority == 3

    def test_job_limit(self, score_service, posting_repo, ledger_repo):
        ledger_repo.add_subscription("user-1", job_limit=2)
        _insert(posting_repo)
        _insert(posting_repo)

        with pytest.raises(PlanLimitExceeded) as exc_info:
            score_service.create_posting("user-1", {"company_name": "C", "title": "z"})
        assert exc_info.value.charged is False
        assert posting_repo.count_postings("user-1") == 2

    def test_job_limit_can_be_skipped(self, score_service, posting_repo, ledger_repo):
        ledger_repo.add_subscription("user-1", job_limit=1)
        _insert(posting_repo)

        score_service.create_posting(
            "user-1", {"company_name": "C", "title": "z"}, enforce_limit=False
        )
        assert posting_repo.count_postings("user-1") == 2

    def test_no_limit_without_subscription(self, score_service):
        score_service.check_job_limit("user-without-plan")

    def test_invalid_initial_score(self, score_service):
        with pytest.raises(ValidationError):
            score_service.create_posting(
                "user-1", {"company_name": "C", "title": "z"}, initial_fit_score=9
            )

    def test_status_kept(self, score_service, posting_repo):
        posting = score_service.create_posting(
            "user-1", {"company_name": "C", "title": "z", "status": "applied"}
        )
        assert posting_repo.raw(posting.id)["status"] == "applied"

    def test_unknown_status(self, score_service, posting_repo):
        with pytest.raises(ValidationError, match="Unknown job status"):
            score_service.create_posting(
                "user-1", {"company_name": "C", "title": "z", "status": "ghosted"}
            )
        assert posting_repo.count_postings("user-1") == 0


class TestBoardPriorities:

    def test_lists_only_users_postings(self, score_service, posting_repo):
        _insert(posting_repo, company_score=3, priority=2)
        _insert(posting_repo, user_id="user-2", company_score=5, priority=1)

        scores = score_service.board_priorities("user-1")

        assert len(scores) == 1
        assert scores[0].company_score == 3
        assert scores[0].priority == 2
