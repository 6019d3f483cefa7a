"""WhatsApp deep links for buyer-seller contact.

Contact always happens in WhatsApp; the API only hands out wa.me links.
"""
import re
from typing import Optional
from urllib.parse import quote

DEFAULT_COUNTRY_CODE = "256"


def normalize_phone_number(phone_number: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Reduce a phone number to international digits.

    Non-digits are stripped; a leading local zero is replaced by the country
    code, and numbers without the country code get it prepended. Callers
    should pass internationally formatted numbers to avoid ambiguity.
    """
    digits = re.sub(r"\D", "", phone_number or "")
    if digits.startswith("0"):
        return f"{country_code}{digits[1:]}"
    if digits.startswith(country_code):
        return digits
    return f"{country_code}{digits}"


def build_whatsapp_link(phone_number: str, message: Optional[str] = None,
                        country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Build a wa.me deep link, optionally with a pre-filled message.

    build_whatsapp_link("0700123456", "hi") -> "https://wa.me/256700123456?text=hi"
    """
    base = f"https://wa.me/{normalize_phone_number(phone_number, country_code)}"
    if message:
        # Same escaping as JavaScript's encodeURIComponent
        encoded = quote(message, safe="-_.!~*'()")
        return f"{base}?text={encoded}"
    return base


def build_response_whatsapp_message(part_name: str, car_model: Optional[str] = None,
                                    responder_name: Optional[str] = None) -> str:
    message = "Hi"
    if responder_name:
        message += f" {responder_name}"
    message += f", I saw your response on Kisekka Online about *{part_name}*"
    if car_model:
        message += f" for {car_model}"
    message += ". Is it still available?"
    return message


def build_listing_whatsapp_message(title: str) -> str:
    return f"Hi, I saw your listing *{title}* on Kisekka Online. Is it still available?"


def build_shop_contact_message(shop_name: str) -> str:
    return f"Hi, I found your shop *{shop_name}* on Kisekka Online. I'm looking for a part."
