"""Main application entry point for the Kisekka Online API.

Sets up FastAPI app with CORS middleware and routes for the Kisekka Market spare parts marketplace.
All endpoints are organized by domain in routers/ and use database_adapter for dual DB support.
"""
import os
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from config import settings, load_settings_from_env
from routers import activities, listings, notifications, posts, reports, responses, search, session, shops, uploads, users
from services.database import get_db
from services.documents import DocumentShapeError
from services.error_handler import handle_document_shape_error, handle_exception
from services.rate_limit import limiter
from services.scheduled_expiry import get_scheduled_expiry_service
from services.session import ProfileChanged, get_session_events


app = FastAPI(
    title="Kisekka Online API",
    version="1.0.0",
    description="API for Kisekka Online - spare parts marketplace for Kisekka Market"
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

logger = logging.getLogger(__name__)


def is_production_environment(local_settings) -> bool:
    """Detect production by checking for production indicators"""
    return any([
        # Production Supabase URL (not localhost/dummy)
        bool(local_settings.SUPABASE_URL) and
        "supabase.co" in local_settings.SUPABASE_URL and
        "dummy" not in local_settings.SUPABASE_URL,

        # Production domain in CORS
        bool(local_settings.PRODUCTION_URL.strip()) and
        "localhost" not in local_settings.PRODUCTION_URL,

        # Explicit production environment variable
        os.getenv("ENVIRONMENT") == "production",
        os.getenv("ENV") == "production",
    ])


def log_session_event(event):
    if isinstance(event, ProfileChanged):
        logger.info(f"Profile changed for {event.user_id}")
    else:
        logger.debug(f"Unread count for {event.user_id} is now {event.count}")


get_session_events().subscribe(log_session_event)


@app.on_event("startup")
async def validate_security_configuration():
    """Validate critical security settings on startup.

    Raises RuntimeError for critical issues that must be fixed before running.
    """
    # Use a fresh settings instance so env patches in tests are respected.
    local_settings = load_settings_from_env()
    is_production = is_production_environment(local_settings)

    # CRITICAL: Prevent TEST_MODE in production
    if local_settings.TEST_MODE and is_production:
        raise RuntimeError(
            "CRITICAL SECURITY ERROR: TEST_MODE=true in production environment!\n"
            "\n"
            "This accepts dev tokens and allows anyone to impersonate traders.\n"
            "\n"
            "Action required:\n"
            "  1. Set TEST_MODE=false in your .env file\n"
            "  2. Restart the application\n"
            "\n"
            "Production detected due to:\n"
            f"  - SUPABASE_URL: {local_settings.SUPABASE_URL}\n"
            f"  - PRODUCTION_URL: {local_settings.PRODUCTION_URL}\n"
        )

    # CRITICAL: Validate SECRET_KEY in production
    if is_production:
        if local_settings.SECRET_KEY == "dev-secret-key-change-in-production":
            raise RuntimeError(
                "CRITICAL SECURITY ERROR: Default SECRET_KEY in production!\n"
                "\n"
                "Action required:\n"
                "  1. Generate a secure key:\n"
                "     python -c 'import secrets; print(secrets.token_hex(32))'\n"
                "  2. Set SECRET_KEY in your .env file\n"
                "  3. Restart the application\n"
            )

        if len(local_settings.SECRET_KEY) < 32:
            raise RuntimeError(
                f"CRITICAL SECURITY ERROR: SECRET_KEY too short ({len(local_settings.SECRET_KEY)} chars)!\n"
                "\n"
                "Production requires a SECRET_KEY of at least 32 characters.\n"
            )

    # Warnings for development mode
    if local_settings.TEST_MODE:
        logger.warning(
            "TEST_MODE enabled - Development authentication active\n"
            "   - Dev tokens (dev-token-*) will be accepted\n"
            "   - NEVER enable TEST_MODE in production!\n"
        )

    if local_settings.SECRET_KEY == "dev-secret-key-change-in-production" and not is_production:
        logger.warning(
            "Using default SECRET_KEY in development\n"
            "   This is OK for local testing but generate a unique key for staging/production.\n"
        )

    logger.info(
        f"Security configuration validated:\n"
        f"  - Production mode: {is_production}\n"
        f"  - TEST_MODE: {local_settings.TEST_MODE}\n"
        f"  - SECRET_KEY length: {len(local_settings.SECRET_KEY)} chars\n"
        f"  - CORS origins: {len(get_cors_origins())} configured\n"
        f"  - Upload storage: {'r2' if local_settings.r2_enabled else 'local'}\n"
    )

    # Initialize scheduled expiry (if not in test mode)
    if not local_settings.TEST_MODE:
        try:
            expiry_service = get_scheduled_expiry_service()
            expiry_service.initialize(get_db())
            expiry_service.start()
        except Exception as e:
            logger.error(f"Failed to initialize scheduled expiry: {e}")
            # Don't fail startup if scheduler fails, just log the error
    else:
        logger.info("Scheduled expiry disabled in TEST_MODE")


@app.on_event("shutdown")
async def shutdown_scheduled_expiry():
    """Stop scheduled expiry on shutdown"""
    try:
        get_scheduled_expiry_service().stop()
    except Exception as e:
        logger.error(f"Error stopping scheduled expiry: {e}")


def get_cors_origins():
    """Build strict CORS allowlist from environment.

    Security: Never use wildcard origins with credentials.
    Production must explicitly set FRONTEND_URL and PRODUCTION_URL.
    """
    origins = set()

    if settings.FRONTEND_URL:
        origins.add(settings.FRONTEND_URL)
    if settings.PRODUCTION_URL:
        origins.add(settings.PRODUCTION_URL)

    # Dev mode: Next.js dev server
    if settings.TEST_MODE:
        origins.update({
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        })

    # Support additional origins via env var (comma-separated)
    extra = os.getenv("CORS_EXTRA_ORIGINS", "")
    if extra:
        origins.update(o.strip() for o in extra.split(",") if o.strip())

    return list(origins)

origins = get_cors_origins()

# ============================================================================
# Security Middleware
# ============================================================================

@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Content-Security-Policy"] = (
        "default-src 'self'; "
        "img-src 'self' data: https:; "
        "frame-ancestors 'none'"
    )

    # HSTS (only in production with HTTPS)
    if not settings.TEST_MODE:
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )

    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = (
        "geolocation=(), microphone=(), camera=()"
    )

    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # Explicit allowlist only
    allow_credentials=True,  # Required for Authorization headers
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

# Trusted hosts (prevent host header injection)
allowed_hosts = ["localhost", "127.0.0.1", "0.0.0.0"]
# Allow testserver for TestClient in tests
if settings.TEST_MODE:
    allowed_hosts.append("testserver")

for url in (settings.PRODUCTION_URL, settings.FRONTEND_URL):
    if url:
        host = url.replace("https://", "").replace("http://", "").split("/")[0].split(":")[0]
        if host and host not in allowed_hosts:
            allowed_hosts.append(host)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=allowed_hosts
)

# Exception handlers
app.add_exception_handler(DocumentShapeError, handle_document_shape_error)
app.add_exception_handler(Exception, handle_exception)

# ============================================================================
# Root Endpoints
# ============================================================================

@app.get("/")
@limiter.limit("60/minute")  # Prevent abuse
async def root(request: Request):
    """API root endpoint."""
    return {
        "message": "Kisekka Online API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint (no rate limit for monitoring)."""
    current_settings = load_settings_from_env()

    return {
        "status": "healthy",
        "mode": "production" if is_production_environment(current_settings) else "development",
        "test_mode": current_settings.TEST_MODE,
        "database": "supabase" if current_settings.SUPABASE_URL and not current_settings.DATABASE_URL else "sqlite",
        "storage": "r2" if current_settings.r2_enabled else "local",
    }


@app.get("/api/expiry/schedule")
async def get_expiry_schedule():
    """Get status of the scheduled expiry job"""
    try:
        expiry_service = get_scheduled_expiry_service()
        jobs = await expiry_service.get_jobs()
        return {
            "status": "enabled" if expiry_service.scheduler and expiry_service.scheduler.running else "disabled",
            "jobs": jobs
        }
    except Exception as e:
        logger.error(f"Error getting scheduled expiry status: {e}")
        return {
            "status": "error",
            "error": str(e),
            "jobs": []
        }


# Include routers
app.include_router(session.router)
app.include_router(users.router)
app.include_router(shops.router)
app.include_router(posts.router)
app.include_router(listings.router)
app.include_router(responses.router)
app.include_router(notifications.router)
app.include_router(reports.router)
app.include_router(activities.router)
app.include_router(uploads.router)
app.include_router(search.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
