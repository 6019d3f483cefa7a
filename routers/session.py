"""Session and phone OTP sign-in.

Sign-in is delegated to Supabase Auth. These endpoints only normalize the phone
number and turn provider errors into messages a user can act on.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException

from config import settings
from models.session import AuthTokens, OtpRequest, OtpSent, OtpVerify, SessionResponse
from models.users import UserResponse
from services.auth import get_session
from services.auth_errors import GENERIC_SEND_ERROR, GENERIC_VERIFY_ERROR, friendly_auth_message
from services.database import get_db
from services.documents import parse_document
from services.notifications import unread_count
from services.security_logger import log_auth_failure
from services.session import UserSession
from services.whatsapp import normalize_phone_number

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["session"])


def get_auth_client(db = Depends(get_db)):
    """Supabase Auth client; unavailable when running on SQLite."""
    if db.backend != "supabase" or db.supabase is None:
        raise HTTPException(status_code=503, detail="Phone sign-in is not available right now.")
    return db.supabase.auth


def to_e164(phone_number: str) -> str:
    return "+" + normalize_phone_number(phone_number, settings.COUNTRY_CODE)


@router.get("/session", response_model=SessionResponse)
async def get_current_session(
    session: UserSession = Depends(get_session),
    db = Depends(get_db),
):
    """Identity, profile (null before onboarding) and unread notification count"""
    return SessionResponse(
        user_id=session.user_id,
        phone_number=session.phone_number,
        onboarded=session.onboarded,
        profile=parse_document(UserResponse, session.profile) if session.profile else None,
        unread_count=unread_count(db, session.user_id),
    )


@router.post("/auth/otp", response_model=OtpSent)
async def send_otp(
    payload: OtpRequest,
    auth = Depends(get_auth_client),
):
    """Send a one-time code by SMS"""
    phone = to_e164(payload.phone_number)
    try:
        auth.sign_in_with_otp({"phone": phone})
    except Exception as e:
        code = getattr(e, "code", None)
        logger.warning(f"OTP send failed ({code}): {e}")
        raise HTTPException(status_code=400, detail=friendly_auth_message(code, GENERIC_SEND_ERROR))
    return OtpSent(phone_number=phone)


@router.post("/auth/verify", response_model=AuthTokens)
async def verify_otp(
    payload: OtpVerify,
    auth = Depends(get_auth_client),
):
    """Exchange a one-time code for session tokens"""
    phone = to_e164(payload.phone_number)
    try:
        response = auth.verify_otp({"phone": phone, "token": payload.code, "type": "sms"})
    except Exception as e:
        code = getattr(e, "code", None)
        log_auth_failure(None, f"OTP verification failed ({code})")
        raise HTTPException(status_code=400, detail=friendly_auth_message(code, GENERIC_VERIFY_ERROR))

    auth_session = getattr(response, "session", None)
    user = getattr(response, "user", None)
    if auth_session is None or user is None:
        log_auth_failure(None, "OTP verification returned no session")
        raise HTTPException(status_code=400, detail=GENERIC_VERIFY_ERROR)

    return AuthTokens(
        access_token=auth_session.access_token,
        refresh_token=getattr(auth_session, "refresh_token", None),
        user_id=user.id,
    )
