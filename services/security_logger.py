"""Security event logging.

Authentication failures and denied actions go to a dedicated logger so they can
be routed separately from application logs.
"""
import logging
from typing import Optional

security_logger = logging.getLogger("kisekka.security")


def log_auth_failure(user_id: Optional[str], reason: str):
    security_logger.warning(f"AUTH_FAILURE user={user_id or 'anonymous'} reason={reason}")


def log_unauthorized_access(user_id: Optional[str], resource: str, reason: str):
    security_logger.warning(
        f"UNAUTHORIZED_ACCESS user={user_id or 'anonymous'} resource={resource} reason={reason}"
    )
