"""
Tests for the posting score endpoints.
"""

import inspect

import pytest

from tests.helpers.fakes import make_posting


@pytest.fixture
def posting_id(posting_repo):
    return posting_repo.insert_posting(
        make_posting(company_scores=[None, 3], competency_scores=[None, None])
    )


class TestRatingEndpoints:

    def test_rate_company_criterion(self, client, auth_headers, posting_id, posting_repo):
        response = client.put(
            f"/users/user-1/postings/{posting_id}/company-criteria/0",
            json={"score": 5},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["posting_id"] == posting_id
        assert data["company_score"] == 4
        assert data["priority"] == 1
        assert data["priority_overridden"] is False
        assert posting_repo.raw(posting_id)["company_score"] == 4

    def test_rate_competency(self, client, auth_headers, posting_id):
        response = client.put(
            f"/users/user-1/postings/{posting_id}/competencies/1",
            json={"score": 2},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["fit_score"] == 2

    def test_clear_rating(self, client, auth_headers, posting_id):
        response = client.put(
            f"/users/user-1/postings/{posting_id}/company-criteria/1",
            json={"score": None},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["company_score"] == 0
        assert response.json()["priority"] == 0

    @pytest.mark.parametrize("score", [6, -1, 2.5, "high"])
    def test_invalid_rating(self, client, auth_headers, posting_id, posting_repo, score):
        response = client.put(
            f"/users/user-1/postings/{posting_id}/company-criteria/0",
            json={"score": score},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["charged"] is False
        assert posting_repo.write_calls == []

    def test_index_out_of_range(self, client, auth_headers, posting_id):
        response = client.put(
            f"/users/user-1/postings/{posting_id}/competencies/5",
            json={"score": 3},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_unknown_posting(self, client, auth_headers):
        response = client.put(
            "/users/user-1/postings/missing/competencies/0",
            json={"score": 3},
            headers=auth_headers,
        )
        assert response.status_code == 404

    def test_other_users_posting(self, client, auth_headers, posting_id):
        response = client.put(
            f"/users/user-2/postings/{posting_id}/competencies/0",
            json={"score": 3},
            headers=auth_headers,
        )
        assert response.status_code == 404


class TestPriorityOverride:

    def test_override(self, client, auth_headers, posting_id, posting_repo):
        response = client.put(
            f"/users/user-1/postings/{posting_id}/priority",
            json={"priority": 5},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["priority"] == 5
        assert response.json()["priority_overridden"] is True
        assert posting_repo.raw(posting_id)["priority_overridden"] is True

    @pytest.mark.parametrize("priority", [0, 6, "1"])
    def test_invalid_override(self, client, auth_headers, posting_id, priority):
        response = client.put(
            f"/users/user-1/postings/{posting_id}/priority",
            json={"priority": priority},
            headers=auth_headers,
        )
        assert response.status_code == 400


class TestBoardPriorities:

    def test_lists_postings(self, client, auth_headers, posting_repo):
        posting_repo.insert_posting(make_posting(company_score=5, priority=1))
        posting_repo.insert_posting(make_posting(company_score=2, priority=3))
        posting_repo.insert_posting(make_posting(user_id="user-2", company_score=4, priority=1))

        response = client.get("/users/user-1/priorities", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == "user-1"
        assert sorted(p["priority"] for p in data["postings"]) == [1, 3]


class TestHandlerKinds:
    """Database-only handlers run in the threadpool, not on the event loop."""

    @pytest.mark.parametrize("path", [
        "/users/{user_id}/postings/{posting_id}/company-criteria/{index}",
        "/users/{user_id}/postings/{posting_id}/competencies/{index}",
        "/users/{user_id}/postings/{posting_id}/priority",
        "/users/{user_id}/priorities",
        "/users/{user_id}/credits",
    ])
    def test_sync_handlers(self, app, path):
        endpoints = [route.endpoint for route in app.routes if getattr(route, "path", None) == path]

        assert endpoints
        assert not any(inspect.iscoroutinefunction(e) for e in endpoints)
