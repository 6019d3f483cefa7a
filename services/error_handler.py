"""Global exception handlers.

Failures are always turned into a recoverable JSON error; internal details are
logged, never returned to the client.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from services.documents import DocumentShapeError

logger = logging.getLogger(__name__)


async def handle_document_shape_error(request: Request, exc: DocumentShapeError):
    logger.error(f"Stored {exc.kind} {exc.record_id} failed validation on {request.url.path}: {exc.errors}")
    return JSONResponse(status_code=500, content={"detail": "Stored record is malformed"})


async def handle_exception(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Something went wrong. Please try again."})
