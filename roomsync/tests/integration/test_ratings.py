"""
tests/integration/test_ratings.py — Integration tests for roommate ratings.

Endpoints covered:
  POST /ratings            → 201 created / 200 updated
  GET  /ratings/users/:id  → 200

Rules verified:
  - Both members need 30 whole days in the group (INSUFFICIENT_COHABITATION)
  - Rater and rated share the group (USERS_NOT_IN_SAME_GROUP)
  - No self-rating (CANNOT_RATE_SELF)
  - One rating per (rater, rated, group); a second POST updates it
  - Ratings outlive the group with group_id cleared
"""

from __future__ import annotations

from .conftest import (
    auth_headers,
    backdate_memberships,
    join_group,
    make_group,
    register,
)


def _setup(app, client, days: int = 45):
    alice = register(client, "alice")
    bob = register(client, "bob")
    group = make_group(client, alice["access_token"])
    join_group(client, bob["access_token"], group["code"])
    backdate_memberships(app, days=days)
    return alice, bob, group


def _rate(client, token: str, rated_user_id: int, score: int, testimonial: str | None = None):
    payload = {"rated_user_id": rated_user_id, "score": score}
    if testimonial is not None:
        payload["testimonial"] = testimonial
    return client.post("/api/v1/ratings/", json=payload, headers=auth_headers(token))


def _ratings_of(client, token: str, user_id: int, query: str = ""):
    return client.get(f"/api/v1/ratings/users/{user_id}{query}", headers=auth_headers(token))


class TestRateUser:

    def test_rate_housemate_returns_201(self, app, client):
        alice, bob, group = _setup(app, client)
        resp = _rate(client, alice["access_token"], bob["user"]["id"], 5, "Always cleans up.")
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["is_update"] is False
        rating = data["rating"]
        assert rating["score"] == 5
        assert rating["group_id"] == group["id"]
        assert rating["rater_display_name"] == "Alice Tester"
        assert rating["time_spent_days"] >= 44

    def test_second_rating_updates(self, app, client):
        alice, bob, _ = _setup(app, client)
        first = _rate(client, alice["access_token"], bob["user"]["id"], 2).get_json()["data"]["rating"]

        resp = _rate(client, alice["access_token"], bob["user"]["id"], 4)
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["is_update"] is True
        assert data["rating"]["id"] == first["id"]
        assert data["rating"]["score"] == 4
        assert data["rating"]["updated_at"] is not None

    def test_self_rating_returns_400(self, app, client):
        alice, _, _ = _setup(app, client)
        resp = _rate(client, alice["access_token"], alice["user"]["id"], 5)
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "CANNOT_RATE_SELF"

    def test_new_housemate_cannot_be_rated_yet(self, app, client):
        alice, bob, group = _setup(app, client)
        carol = register(client, "carol")
        join_group(client, carol["access_token"], group["code"])

        resp = _rate(client, alice["access_token"], carol["user"]["id"], 3)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"]["code"] == "INSUFFICIENT_COHABITATION"
        assert body["error"]["field"] == "rated_user_id"

        resp = _rate(client, carol["access_token"], alice["user"]["id"], 3)
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "rater"

    def test_short_cohabitation(self, app, client):
        alice, bob, _ = _setup(app, client, days=10)
        resp = _rate(client, alice["access_token"], bob["user"]["id"], 3)
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INSUFFICIENT_COHABITATION"

    def test_user_in_other_group_returns_400(self, app, client):
        alice, _, _ = _setup(app, client)
        carol = register(client, "carol")
        make_group(client, carol["access_token"], name="Other")

        resp = _rate(client, alice["access_token"], carol["user"]["id"], 3)
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "USERS_NOT_IN_SAME_GROUP"

    def test_rater_without_group_returns_404(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        resp = _rate(client, alice["access_token"], bob["user"]["id"], 3)
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "NOT_IN_GROUP"

    def test_score_out_of_range(self, app, client):
        alice, bob, _ = _setup(app, client)
        resp = _rate(client, alice["access_token"], bob["user"]["id"], 0)
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "score"


class TestGetRatings:

    def test_average_and_total(self, app, client):
        alice, bob, group = _setup(app, client)
        carol = register(client, "carol")
        join_group(client, carol["access_token"], group["code"])
        backdate_memberships(app, days=60)

        _rate(client, alice["access_token"], bob["user"]["id"], 5)
        _rate(client, carol["access_token"], bob["user"]["id"], 4)

        resp = _ratings_of(client, alice["access_token"], bob["user"]["id"])
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["total_ratings"] == 2
        assert data["average_score"] == 4.5
        assert len(data["ratings"]) == 2

    def test_no_ratings_average_is_zero(self, client):
        alice = register(client, "alice")
        data = _ratings_of(client, alice["access_token"], alice["user"]["id"]).get_json()["data"]
        assert data == {"ratings": [], "average_score": 0.0, "total_ratings": 0}

    def test_group_filter(self, app, client):
        alice, bob, group = _setup(app, client)
        _rate(client, alice["access_token"], bob["user"]["id"], 5)

        hit = _ratings_of(client, alice["access_token"], bob["user"]["id"], f"?group_id={group['id']}")
        miss = _ratings_of(client, alice["access_token"], bob["user"]["id"], f"?group_id={group['id'] + 1000}")
        assert hit.get_json()["data"]["total_ratings"] == 1
        assert miss.get_json()["data"]["total_ratings"] == 0

    def test_unknown_user_returns_404(self, client):
        alice = register(client, "alice")
        resp = _ratings_of(client, alice["access_token"], 999999)
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "USER_NOT_FOUND"

    def test_ratings_outlive_group(self, app, client):
        alice, bob, _ = _setup(app, client)
        _rate(client, alice["access_token"], bob["user"]["id"], 5)

        client.post("/api/v1/groups/leave", headers=auth_headers(alice["access_token"]))
        client.post("/api/v1/groups/leave", headers=auth_headers(bob["access_token"]))

        data = _ratings_of(client, bob["access_token"], bob["user"]["id"]).get_json()["data"]
        assert data["total_ratings"] == 1
        assert data["ratings"][0]["group_id"] is None
