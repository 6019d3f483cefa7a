"""Notification inbox tests"""
from datetime import datetime, timedelta, UTC

from services.notifications import notify_response
from services.session import UserSession
from models.common import ResponseTarget


def _insert_notification(db, user_id, minutes_ago=0, read=False):
    created = datetime.now(UTC) - timedelta(minutes=minutes_ago)
    return db.table("notifications").insert({
        "user_id": user_id,
        "type": "response",
        "title": "New Response",
        "body": "Someone responded",
        "reference_id": "post-1",
        "reference_type": "feed",
        "read": read,
        "created_at": created.isoformat(),
    }).execute().data[0]


def test_notifications_newest_first(client, clean_database, test_buyer, auth_headers):
    older = _insert_notification(clean_database, test_buyer["id"], minutes_ago=10)
    newer = _insert_notification(clean_database, test_buyer["id"], minutes_ago=1)

    listed = client.get("/api/notifications", headers=auth_headers(test_buyer)).json()
    assert [n["id"] for n in listed] == [newer["id"], older["id"]]


def test_notifications_only_for_caller(client, clean_database, test_buyer, test_mechanic, auth_headers):
    _insert_notification(clean_database, test_mechanic["id"])
    assert client.get("/api/notifications", headers=auth_headers(test_buyer)).json() == []


def test_notifications_default_page_size(client, clean_database, test_buyer, auth_headers):
    for i in range(25):
        _insert_notification(clean_database, test_buyer["id"], minutes_ago=i)
    listed = client.get("/api/notifications", headers=auth_headers(test_buyer)).json()
    assert len(listed) == 20


def test_unread_count_and_mark_read(client, clean_database, test_buyer, auth_headers, session_events):
    first = _insert_notification(clean_database, test_buyer["id"])
    _insert_notification(clean_database, test_buyer["id"])
    _insert_notification(clean_database, test_buyer["id"], read=True)

    counts = []
    session_events.subscribe(lambda e: counts.append(getattr(e, "count", None)), user_id=test_buyer["id"])

    headers = auth_headers(test_buyer)
    assert client.get("/api/notifications/unread-count", headers=headers).json() == {"count": 2}

    response = client.post(f"/api/notifications/{first['id']}/read", headers=headers)
    assert response.status_code == 200
    assert response.json()["read"] is True

    assert client.get("/api/notifications/unread-count", headers=headers).json() == {"count": 1}
    assert counts == [1]


def test_only_recipient_can_mark_read(client, clean_database, test_buyer, test_mechanic, auth_headers):
    note = _insert_notification(clean_database, test_buyer["id"])
    response = client.post(f"/api/notifications/{note['id']}/read", headers=auth_headers(test_mechanic))
    assert response.status_code == 403


def test_notifications_require_auth(client):
    assert client.get("/api/notifications").status_code == 401


def test_notify_response_skips_self(clean_database, test_buyer):
    parent = {"id": "post-1", "author_id": test_buyer["id"], "part_name": "Radiator"}
    session = UserSession(user_id=test_buyer["id"], profile=test_buyer)

    assert notify_response(clean_database, parent, ResponseTarget.FEED, session) is None
    assert clean_database.table("notifications").select("*").execute().data == []


def test_notify_response_body_names_responder(clean_database, test_buyer, test_mechanic):
    parent = {"id": "post-1", "author_id": test_buyer["id"], "part_name": "Radiator"}
    session = UserSession(user_id=test_mechanic["id"], profile=test_mechanic)

    note = notify_response(clean_database, parent, ResponseTarget.FEED, session)
    assert note["user_id"] == test_buyer["id"]
    assert note["body"] == "Ssali Garage responded to your request for Radiator"
