"""Database access layer providing unified interface to SQLite and Supabase.

Uses database_adapter for automatic backend selection based on settings.
Also verifies Supabase Auth access tokens issued by the phone OTP flow.
"""
import logging

from fastapi import HTTPException

from config import settings
from database_adapter import DatabaseAdapter
from services.security_logger import log_auth_failure

logger = logging.getLogger(__name__)

# Initialize database adapter - automatically chooses SQLite (if DATABASE_URL set) or Supabase
db_adapter = DatabaseAdapter(settings)
db_adapter.init()


def get_db():
    """
    Dependency for FastAPI endpoints to get database adapter.
    Works with both SQLite (test) and Supabase (production).

    Usage:
        @app.get("/example")
        def example(db = Depends(get_db)):
            result = db.table('feed_posts').select('*').execute()
            return result.data
    """
    return db_adapter


def verify_token(token: str, db: DatabaseAdapter):
    """
    Validate a Supabase Auth access token and return the auth user.

    Raises HTTPException 401 when the token is rejected or no auth backend exists.
    """
    if db.backend != "supabase" or db.supabase is None:
        log_auth_failure(None, "Token verification unavailable without Supabase")
        raise HTTPException(status_code=401, detail="Invalid authentication token")

    try:
        response = db.supabase.auth.get_user(token)
    except Exception as e:
        log_auth_failure(None, f"Supabase rejected token: {e}")
        raise HTTPException(status_code=401, detail="Invalid authentication token")

    user = getattr(response, "user", None)
    if user is None:
        log_auth_failure(None, "Supabase returned no user for token")
        raise HTTPException(status_code=401, detail="Invalid authentication token")
    return user
