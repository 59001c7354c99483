"""Tests for recommendation API endpoints."""

from fastapi.testclient import TestClient

from helpers import vec


def auth(user) -> dict:
    return {"X-User-Id": str(user.id)}


class TestAuthentication:
    def test_missing_user_header(self, client: TestClient):
        response = client.get("/api/v1/recommendations")
        assert response.status_code == 401

    def test_non_numeric_user_header(self, client: TestClient):
        response = client.get("/api/v1/recommendations", headers={"X-User-Id": "abc"})
        assert response.status_code == 401

    def test_unknown_user(self, client: TestClient):
        response = client.get("/api/v1/recommendations", headers={"X-User-Id": "999"})
        assert response.status_code == 404


class TestGetRecommendations:
    def test_new_user_gets_popular(self, client: TestClient, make_user, make_movie):
        user = make_user()
        popular = make_movie("Popular", popularity=50.0)
        make_movie("Obscure", popularity=1.0)

        response = client.get("/api/v1/recommendations?limit=1", headers=auth(user))

        assert response.status_code == 200
        data = response.json()
        assert [m["id"] for m in data] == [popular.id]
        assert data[0]["bayesian_rating"] == 3.5

    def test_limit_validated(self, client: TestClient, make_user):
        user = make_user()
        response = client.get("/api/v1/recommendations?limit=0", headers=auth(user))
        assert response.status_code == 422

    def test_content_based(self, client: TestClient, make_user, make_movie, genres, rate):
        user = make_user()
        rate(user, make_movie(genres=[genres["Comedy"]]), 5)
        comedy = make_movie("Comedy", avg_rating=4.0, genres=[genres["Comedy"]])
        make_movie("Drama", avg_rating=5.0, genres=[genres["Drama"]])

        response = client.get("/api/v1/recommendations/content-based", headers=auth(user))

        assert response.status_code == 200
        assert [m["id"] for m in response.json()] == [comedy.id]

    def test_collaborative_empty_without_neighbors(self, client: TestClient, make_user):
        user = make_user()
        response = client.get("/api/v1/recommendations/collaborative", headers=auth(user))
        assert response.status_code == 200
        assert response.json() == []

    def test_vector_based(self, client: TestClient, make_user, make_movie, rate):
        user = make_user()
        rate(user, make_movie(embedding=vec(d0=1.0)), 5)
        near = make_movie(embedding=vec(d0=1.0, d1=0.2))

        response = client.get("/api/v1/recommendations/vector-based", headers=auth(user))

        assert response.status_code == 200
        data = response.json()
        assert [m["movie_id"] for m in data] == [near.id]
        assert 0.9 < data[0]["similarity"] <= 1.0


class TestCheckRecommendations:
    def test_status(self, client: TestClient, make_user, make_movie, rate):
        user = make_user()
        for _ in range(10):
            rate(user, make_movie(), 4)

        response = client.get("/api/v1/recommendations/check", headers=auth(user))

        assert response.status_code == 200
        assert response.json() == {
            "total_ratings": 10,
            "policy": "hybrid",
            "has_recommendations": True,
        }
