"""Search, reports and activity signal tests"""
from .test_data import TEST_LISTING, TEST_POST


def test_search_matches_posts_listings_and_shops(client, clean_database, test_buyer, test_shop_owner):
    clean_database.table("feed_posts").insert({
        **TEST_POST, "part_name": "Alternator belt", "author_id": test_buyer["id"], "market_id": "kisekka",
    }).execute()
    clean_database.table("feed_posts").insert({
        **TEST_POST, "part_name": "Alternator", "author_id": test_buyer["id"], "market_id": "kisekka",
        "status": "resolved",
    }).execute()
    clean_database.table("marketplace_listings").insert({
        **TEST_LISTING, "seller_id": test_shop_owner["id"], "market_id": "kisekka",
    }).execute()

    results = client.get("/api/search", params={"q": "ALTERNATOR"}).json()
    assert [p["part_name"] for p in results["posts"]] == ["Alternator belt"]
    assert [l["title"] for l in results["listings"]] == [TEST_LISTING["title"]]
    assert results["shops"] == []

    shops = client.get("/api/search", params={"q": "mukasa"}).json()["shops"]
    assert [s["id"] for s in shops] == [test_shop_owner["shop_id"]]


def test_search_tolerates_filter_syntax_characters(client):
    response = client.get("/api/search", params={"q": 'a,b(c)"'})
    assert response.status_code == 200


def test_search_requires_query(client):
    assert client.get("/api/search").status_code == 422


def test_create_report_is_pending(client, test_buyer, auth_headers):
    payload = {"target_id": "post-1", "target_type": "post", "reason": "scam", "description": "Asked for deposit"}
    response = client.post("/api/reports", json=payload, headers=auth_headers(test_buyer))
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["reporter_id"] == test_buyer["id"]


def test_report_rejects_unknown_reason(client, test_buyer, auth_headers):
    payload = {"target_id": "post-1", "target_type": "post", "reason": "boring"}
    response = client.post("/api/reports", json=payload, headers=auth_headers(test_buyer))
    assert response.status_code == 422


def test_anonymous_activity_signal(client):
    payload = {"type": "post_view", "reference_id": "post-1", "metadata": {"source": "feed"}}
    response = client.post("/api/activity", json=payload)
    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] is None
    assert data["metadata"] == {"source": "feed"}


def test_activity_signal_attributed_to_caller(client, test_buyer, auth_headers):
    payload = {"type": "response_click", "reference_id": "resp-1"}
    response = client.post("/api/activity", json=payload, headers=auth_headers(test_buyer))
    assert response.status_code == 201
    assert response.json()["user_id"] == test_buyer["id"]


def test_search_of_only_syntax_characters_matches_nothing(client, clean_database, test_buyer, test_shop_owner):
    clean_database.table("feed_posts").insert({
        **TEST_POST, "author_id": test_buyer["id"], "market_id": "kisekka",
    }).execute()

    results = client.get("/api/search", params={"q": ", ( )"}).json()
    assert results == {"posts": [], "listings": [], "shops": []}
