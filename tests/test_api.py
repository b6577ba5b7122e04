"""Moderation API tests."""

import pytest

from tests.conftest import auth_header
from trust_engine.models import Listing, User

ADMIN, SELLER, BUYER = 101, 102, 103


@pytest.fixture
def marketplace(db_session):
    """Admin, seller with two listings, and a buyer."""
    db_session.add_all(
        [
            User(id=ADMIN, username="mod", is_admin=True, is_banned=False, warning_count=0),
            User(id=SELLER, username="seller", is_admin=False, is_banned=False, warning_count=0),
            User(id=BUYER, username="buyer", is_admin=False, is_banned=False, warning_count=0),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            Listing(id="desk", user_id=SELLER, title="Oak desk", description="Solid oak", price_usd=80.0, status="active"),
            Listing(id="lamp", user_id=SELLER, title="Desk lamp", description="Brass", price_usd=25.0, status="active"),
        ]
    )
    db_session.commit()
    return db_session


def _flag(client, user_id=BUYER, listing_id="desk", reason="SPAM", **extra):
    return client.post("/flags", headers=auth_header(user_id), json={"listing_id": listing_id, "reason": reason, **extra})


def test_submit_flag(client, marketplace):
    r = _flag(client)
    assert r.status_code == 201
    body = r.json()
    assert body["flag"]["status"] == "PENDING"
    assert body["flag"]["reviewed_at"] is None
    assert body["analysis"]["recommended_action"]["action"] == "none"
    assert body["ticket"]["priority"] == "low"


def test_flag_errors_map_to_status_codes(client, marketplace):
    assert client.post("/flags", json={"listing_id": "desk", "reason": "SPAM"}).status_code == 401
    assert _flag(client).status_code == 201
    assert _flag(client).status_code == 409
    assert _flag(client, user_id=SELLER).status_code == 400
    assert _flag(client, listing_id="nope").status_code == 404
    assert _flag(client, listing_id="lamp", reason="OTHER").status_code == 422


def test_review_flag_upholds_and_warns(client, marketplace):
    flag_id = _flag(client).json()["flag"]["id"]

    assert (
        client.post(f"/flags/{flag_id}/review", headers=auth_header(BUYER), json={"decision": "UPHELD"}).status_code
        == 403
    )

    r = client.post(
        f"/flags/{flag_id}/review",
        headers=auth_header(ADMIN),
        json={"decision": "UPHELD", "notes": "Spam confirmed"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["flag"]["status"] == "UPHELD"
    assert [a["action_type"] for a in body["actions"]] == ["WARNING", "CONTENT_REMOVAL"]

    again = client.post(f"/flags/{flag_id}/review", headers=auth_header(ADMIN), json={"decision": "DISMISSED"})
    assert again.status_code == 409

    marketplace.expire_all()
    assert marketplace.get(Listing, "desk").status == "removed"
    assert marketplace.get(User, SELLER).warning_count == 1


def test_critical_listing_triggers_automatic_ban(client, marketplace):
    marketplace.add(
        Listing(
            id="bait",
            user_id=SELLER,
            title="BUY NOW CASH ONLY WESTERN UNION xxx-xxx-xxxx",
            description="",
            price_usd=0.5,
            status="active",
        )
    )
    marketplace.commit()

    r = _flag(client, listing_id="bait")
    assert r.status_code == 201
    body = r.json()
    assert body["flag"]["status"] == "UPHELD"
    assert body["flag"]["reviewed_by"] == 0
    assert [a["action_type"] for a in body["automatic_actions"]] == ["BAN", "CONTENT_REMOVAL"]

    status = client.get(f"/users/{SELLER}/moderation-status", headers=auth_header(SELLER)).json()
    assert status["is_banned"] is True
    assert status["can_submit_flags"] is False


def test_bulk_review(client, marketplace):
    first = _flag(client).json()["flag"]["id"]
    second = _flag(client, listing_id="lamp").json()["flag"]["id"]

    r = client.post(
        "/flags/bulk-review",
        headers=auth_header(ADMIN),
        json={"flag_ids": [first, second, 9999], "decision": "DISMISSED"},
    )
    assert r.status_code == 200
    body = r.json()
    assert len(body["processed"]) == 2
    assert list(body["errors"]) == ["9999"]

    pending = client.get("/flags/pending", headers=auth_header(ADMIN))
    assert pending.status_code == 200
    assert pending.json() == []


def test_appeal_flow(client, marketplace):
    flag_id = _flag(client).json()["flag"]["id"]
    actions = client.post(
        f"/flags/{flag_id}/review", headers=auth_header(ADMIN), json={"decision": "UPHELD"}
    ).json()["actions"]
    warning_id = actions[0]["id"]

    r = client.post(
        "/appeals",
        headers=auth_header(SELLER),
        json={"moderation_action_id": warning_id, "message": "The listing was accurate"},
    )
    assert r.status_code == 201
    appeal_id = r.json()["id"]

    dup = client.post(
        "/appeals", headers=auth_header(SELLER), json={"moderation_action_id": warning_id, "message": "Again"}
    )
    assert dup.status_code == 409
    other = client.post(
        "/appeals", headers=auth_header(BUYER), json={"moderation_action_id": warning_id, "message": "Mine?"}
    )
    assert other.status_code == 403

    reviewed = client.post(
        f"/appeals/{appeal_id}/review", headers=auth_header(ADMIN), json={"decision": "APPROVED", "response": "OK"}
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["appeal"]["status"] == "APPROVED"
    assert reviewed.json()["unban"] is None


def test_blocked_words_admin_only(client, marketplace):
    r = client.post("/blocked-words", headers=auth_header(ADMIN), json={"word": " Replica ", "severity": "BLOCK"})
    assert r.status_code == 201
    assert r.json()["word"] == "replica"
    word_id = r.json()["id"]

    assert client.post("/blocked-words", headers=auth_header(ADMIN), json={"word": "replica"}).status_code == 409
    assert client.post("/blocked-words", headers=auth_header(BUYER), json={"word": "fake"}).status_code == 403
    assert client.get("/blocked-words", headers=auth_header(BUYER)).status_code == 403

    toggled = client.post(f"/blocked-words/{word_id}/toggle", headers=auth_header(ADMIN))
    assert toggled.json()["is_active"] is False
    patched = client.patch(f"/blocked-words/{word_id}", headers=auth_header(ADMIN), json={"severity": "WARNING"})
    assert patched.json()["severity"] == "WARNING"
    assert client.delete(f"/blocked-words/{word_id}", headers=auth_header(ADMIN)).status_code == 204
    assert client.delete(f"/blocked-words/{word_id}", headers=auth_header(ADMIN)).status_code == 404


def test_analyze_is_a_dry_run(client, marketplace):
    r = client.post(
        "/analyze",
        headers=auth_header(BUYER),
        json={"title": "BUY NOW CASH ONLY WESTERN UNION xxx-xxx-xxxx", "price_usd": 0.5},
    )
    assert r.status_code == 200
    assert r.json()["risk_score"] == 100
    assert r.json()["recommended_action"]["action"] == "ban"

    stats = client.get("/moderation/stats", headers=auth_header(ADMIN)).json()
    assert stats["flags"]["total"] == 0
    assert stats["actions_last_24h"]["BAN"] == 0


def test_sweeps_and_status_permissions(client, marketplace):
    assert client.post("/appeals/sweep", headers=auth_header(ADMIN)).json() == {"processed": 0, "ids": []}
    assert client.post("/bans/sweep", headers=auth_header(ADMIN)).json() == {"processed": 0, "ids": []}
    assert client.post("/bans/sweep", headers=auth_header(BUYER)).status_code == 403

    assert client.get(f"/users/{SELLER}/moderation-status", headers=auth_header(BUYER)).status_code == 403
    own = client.get(f"/users/{BUYER}/moderation-status", headers=auth_header(BUYER))
    assert own.status_code == 200
    assert own.json()["is_banned"] is False
    assert client.get("/users/4242/moderation-status", headers=auth_header(ADMIN)).status_code == 404
