"""Response creation, counters, notifications and WhatsApp taps"""
from datetime import datetime, timedelta, UTC
from urllib.parse import unquote

from .test_data import TEST_LISTING, TEST_POST


def _insert_post(db, author_id, **overrides):
    data = {**TEST_POST, "author_id": author_id, "market_id": "kisekka", "status": "active", **overrides}
    return db.table("feed_posts").insert(data).execute().data[0]


def _insert_listing(db, seller_id, **overrides):
    data = {**TEST_LISTING, "seller_id": seller_id, "market_id": "kisekka", "status": "active", **overrides}
    return db.table("marketplace_listings").insert(data).execute().data[0]


def _respond(client, headers, post_id, **extra):
    payload = {"post_id": post_id, "message": "I have it, UGX 120,000", "price": 120000, **extra}
    return client.post("/api/responses", json=payload, headers=headers)


def test_response_increments_count_and_notifies_author(client, clean_database, test_buyer, test_shop_owner, auth_headers):
    old = (datetime.now(UTC) - timedelta(days=1)).isoformat()
    post = _insert_post(clean_database, test_buyer["id"], last_activity_at=old)

    response = _respond(client, auth_headers(test_shop_owner), post["id"])
    assert response.status_code == 201
    created = response.json()
    assert created["responder_id"] == test_shop_owner["id"]
    assert created["whatsapp_taps"] == 0
    assert created["post_type"] == "feed"

    parent = client.get(f"/api/posts/{post['id']}").json()
    assert parent["response_count"] == 1
    assert datetime.fromisoformat(parent["last_activity_at"]) > datetime.fromisoformat(post["last_activity_at"])

    notifications = client.get("/api/notifications", headers=auth_headers(test_buyer)).json()
    assert len(notifications) == 1
    note = notifications[0]
    assert note["type"] == "response"
    assert note["title"] == "New Response"
    assert note["reference_id"] == post["id"]
    assert note["reference_type"] == "feed"
    assert note["read"] is False
    assert "Mukasa Peter" in note["body"]


def test_responding_to_own_post_does_not_notify(client, clean_database, test_buyer, auth_headers):
    post = _insert_post(clean_database, test_buyer["id"])

    assert _respond(client, auth_headers(test_buyer), post["id"]).status_code == 201

    notifications = clean_database.table("notifications").select("*").execute().data
    assert notifications == []
    assert client.get(f"/api/posts/{post['id']}").json()["response_count"] == 1


def test_response_count_matches_number_of_responses(client, clean_database, test_buyer, test_mechanic, test_shop_owner, auth_headers):
    post = _insert_post(clean_database, test_buyer["id"])
    for user in (test_mechanic, test_shop_owner, test_mechanic):
        assert _respond(client, auth_headers(user), post["id"]).status_code == 201

    responses = client.get("/api/responses", params={"post_id": post["id"]}).json()
    assert len(responses) == 3
    assert client.get(f"/api/posts/{post['id']}").json()["response_count"] == 3


def test_responses_listed_oldest_first(client, clean_database, test_buyer, test_mechanic, test_shop_owner, auth_headers):
    post = _insert_post(clean_database, test_buyer["id"])
    first = _respond(client, auth_headers(test_mechanic), post["id"]).json()
    second = _respond(client, auth_headers(test_shop_owner), post["id"]).json()

    listed = client.get("/api/responses", params={"post_id": post["id"]}).json()
    assert [r["id"] for r in listed] == [first["id"], second["id"]]


def test_response_to_listing_notifies_seller(client, clean_database, test_buyer, test_shop_owner, auth_headers):
    listing = _insert_listing(clean_database, test_shop_owner["id"])

    response = _respond(client, auth_headers(test_buyer), listing["id"], post_type="marketplace")
    assert response.status_code == 201

    notifications = client.get("/api/notifications", headers=auth_headers(test_shop_owner)).json()
    assert len(notifications) == 1
    assert notifications[0]["reference_type"] == "marketplace"
    assert notifications[0]["reference_id"] == listing["id"]


def test_response_to_missing_post(client, test_buyer, auth_headers):
    response = _respond(client, auth_headers(test_buyer), "missing")
    assert response.status_code == 404


def test_response_message_is_sanitized(client, clean_database, test_buyer, test_mechanic, auth_headers):
    post = _insert_post(clean_database, test_buyer["id"])
    response = _respond(client, auth_headers(test_mechanic), post["id"], message="<script>x</script>Have it")
    assert response.status_code == 201
    assert "<script>" not in response.json()["message"]


def test_response_with_someone_elses_shop_is_rejected(client, clean_database, test_buyer, test_mechanic, test_shop_owner, auth_headers):
    post = _insert_post(clean_database, test_buyer["id"])
    response = _respond(client, auth_headers(test_mechanic), post["id"], shop_id=test_shop_owner["shop_id"])
    assert response.status_code == 403


def test_whatsapp_tap_counts_and_links_to_responder(client, clean_database, test_buyer, test_mechanic, auth_headers):
    post = _insert_post(clean_database, test_buyer["id"])
    created = _respond(client, auth_headers(test_mechanic), post["id"]).json()

    response = client.post(f"/api/responses/{created['id']}/whatsapp-tap", headers=auth_headers(test_buyer))
    assert response.status_code == 200
    url = response.json()["url"]
    # Local 0772... number is rewritten with the country code
    assert url.startswith("https://wa.me/256772333444?text=")
    assert "Brake pads" in unquote(url)

    listed = client.get("/api/responses", params={"post_id": post["id"]}).json()
    assert listed[0]["whatsapp_taps"] == 1

    signals = clean_database.table("activity_signals").select("*").eq("reference_id", created["id"]).execute().data
    assert len(signals) == 1
    assert signals[0]["type"] == "whatsapp_tap"
    assert signals[0]["user_id"] == test_buyer["id"]


def test_whatsapp_tap_on_missing_response(client):
    response = client.post("/api/responses/missing/whatsapp-tap")
    assert response.status_code == 404


def test_response_kept_when_counter_update_fails(client, clean_database, test_buyer, test_mechanic, auth_headers, monkeypatch, caplog):
    post = _insert_post(clean_database, test_buyer["id"])

    def failing_increment(*args, **kwargs):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(clean_database, "increment", failing_increment)

    response = _respond(client, auth_headers(test_mechanic), post["id"])
    assert response.status_code == 201
    created = response.json()

    listed = client.get("/api/responses", params={"post_id": post["id"]}).json()
    assert [r["id"] for r in listed] == [created["id"]]
    # The count drifts below the number of stored responses
    assert client.get(f"/api/posts/{post['id']}").json()["response_count"] == 0
    assert "was not updated" in caplog.text

    # The author is still notified
    notifications = client.get("/api/notifications", headers=auth_headers(test_buyer)).json()
    assert len(notifications) == 1


def test_response_kept_when_notification_fails(client, clean_database, test_buyer, test_mechanic, auth_headers, monkeypatch, caplog):
    post = _insert_post(clean_database, test_buyer["id"])
    table = clean_database.table

    def table_without_notifications(name):
        if name == "notifications":
            raise RuntimeError("insert failed")
        return table(name)

    monkeypatch.setattr(clean_database, "table", table_without_notifications)

    response = _respond(client, auth_headers(test_mechanic), post["id"])
    assert response.status_code == 201
    assert "Notification for response" in caplog.text

    monkeypatch.undo()
    assert client.get(f"/api/posts/{post['id']}").json()["response_count"] == 1
    assert clean_database.table("post_responses").select("*").eq("post_id", post["id"]).execute().data
    assert clean_database.table("notifications").select("*").execute().data == []


def test_markup_only_message_is_rejected(client, clean_database, test_buyer, test_mechanic, auth_headers):
    post = _insert_post(clean_database, test_buyer["id"])
    response = _respond(client, auth_headers(test_mechanic), post["id"], message="<b></b>")
    assert response.status_code == 422
    assert client.get("/api/responses", params={"post_id": post["id"]}).json() == []
    assert client.get(f"/api/posts/{post['id']}").json()["response_count"] == 0
