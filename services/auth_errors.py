"""Friendly messages for phone auth provider errors."""
from typing import Optional

GENERIC_SEND_ERROR = "Failed to send OTP. Please try again."
GENERIC_VERIFY_ERROR = "Invalid code. Please try again."

FRIENDLY_AUTH_ERRORS = {
    "invalid_phone_number": "The phone number is invalid.",
    "validation_failed": "The phone number is invalid.",
    "over_sms_send_rate_limit": "Too many attempts. Please try again later.",
    "over_request_rate_limit": "Too many attempts. Please try again later.",
    "sms_send_failed": "We could not send the SMS. Please check the number and try again.",
    "phone_provider_disabled": "Phone sign-in is not available right now.",
    "otp_expired": "The code has expired. Request a new one.",
    "invalid_credentials": "Invalid code. Please try again.",
}


def friendly_auth_message(code: Optional[str], fallback: str = GENERIC_SEND_ERROR) -> str:
    """Map a provider error code to a user-facing message; unknown codes get the fallback."""
    if not code:
        return fallback
    return FRIENDLY_AUTH_ERRORS.get(code, fallback)
