"""Phone OTP proxy and auth error mapping tests"""
from types import SimpleNamespace

import pytest

from main import app
from routers.session import get_auth_client
from services.auth_errors import GENERIC_SEND_ERROR, GENERIC_VERIFY_ERROR, friendly_auth_message


class ProviderError(Exception):
    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


class FakeAuth:
    def __init__(self, send_error=None, verify_error=None):
        self.send_error = send_error
        self.verify_error = verify_error
        self.sent_to = []

    def sign_in_with_otp(self, credentials):
        if self.send_error:
            raise self.send_error
        self.sent_to.append(credentials["phone"])

    def verify_otp(self, params):
        if self.verify_error:
            raise self.verify_error
        return SimpleNamespace(
            session=SimpleNamespace(access_token="access-123", refresh_token="refresh-456"),
            user=SimpleNamespace(id="auth-user-1"),
        )


@pytest.fixture
def fake_auth(client):
    auth = FakeAuth()
    app.dependency_overrides[get_auth_client] = lambda: auth
    return auth


def test_known_codes_get_friendly_messages():
    assert friendly_auth_message("over_sms_send_rate_limit") == "Too many attempts. Please try again later."
    assert friendly_auth_message("otp_expired", GENERIC_VERIFY_ERROR) == "The code has expired. Request a new one."


def test_unknown_code_falls_back():
    assert friendly_auth_message("something_new") == GENERIC_SEND_ERROR
    assert friendly_auth_message(None, GENERIC_VERIFY_ERROR) == GENERIC_VERIFY_ERROR


def test_send_otp_normalizes_local_number(client, fake_auth):
    response = client.post("/api/auth/otp", json={"phone_number": "0700 123 456"})
    assert response.status_code == 200
    assert response.json() == {"sent": True, "phone_number": "+256700123456"}
    assert fake_auth.sent_to == ["+256700123456"]


def test_send_otp_maps_provider_error(client, fake_auth):
    fake_auth.send_error = ProviderError("rate limited", code="over_sms_send_rate_limit")
    response = client.post("/api/auth/otp", json={"phone_number": "0700123456"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Too many attempts. Please try again later."


def test_verify_otp_returns_tokens(client, fake_auth):
    response = client.post("/api/auth/verify", json={"phone_number": "0700123456", "code": "123456"})
    assert response.status_code == 200
    assert response.json() == {
        "access_token": "access-123",
        "refresh_token": "refresh-456",
        "user_id": "auth-user-1",
    }


def test_verify_otp_unknown_error_is_generic(client, fake_auth):
    fake_auth.verify_error = ProviderError("weird failure")
    response = client.post("/api/auth/verify", json={"phone_number": "0700123456", "code": "000000"})
    assert response.status_code == 400
    assert response.json()["detail"] == GENERIC_VERIFY_ERROR
