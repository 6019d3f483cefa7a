"""Test basic API functionality"""
import pytest


def test_root_endpoint(client):
    """Test root endpoint returns expected response"""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert data["message"] == "Kisekka Online API"


def test_health_endpoint(client):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["test_mode"] is True
    assert data["database"] == "sqlite"


def test_security_headers_present(client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_expiry_schedule_disabled_in_test_mode(client):
    response = client.get("/api/expiry/schedule")
    assert response.status_code == 200
    assert response.json()["status"] == "disabled"


def test_malformed_stored_record_returns_500(client, clean_database, test_buyer):
    """A stored row that fails schema validation is reported, not passed through"""
    clean_database.table("users").update({"schema_version": 99}).eq("id", test_buyer["id"]).execute()

    response = client.get(f"/api/users/{test_buyer['id']}")
    assert response.status_code == 500
    assert response.json()["detail"] == "Stored record is malformed"


@pytest.mark.parametrize("path", ["/api/posts", "/api/listings", "/api/shops"])
def test_public_collections_need_no_auth(client, path):
    response = client.get(path)
    assert response.status_code == 200
