"""Image upload gateway.

Images are prepared (downscaled and recompressed) before they are forwarded to
object storage. Errors use an {"error": ...} body that the front end displays.
"""
import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from config import settings
from models.session import UploadPath, UploadResult
from services.auth import get_session
from services.images import prepare_image
from services.rate_limit import limiter
from services.session import UserSession
from services.storage import generate_image_path, get_storage, is_safe_path

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["uploads"])

FOLDER_PATTERN = re.compile(r"^[a-z][a-z0-9_-]{0,31}$")


@router.post("", response_model=UploadResult)
@limiter.limit("30/minute")
async def upload_image(
    request: Request,
    file: Optional[UploadFile] = File(None),
    path: Optional[str] = Form(None),
    storage = Depends(get_storage),
):
    """
    Store one file at `path` and return its public URL.

    Image content types are prepared first; other files are stored as sent.
    """
    if file is None or not path:
        return JSONResponse(status_code=400, content={"error": "Missing file or path"})
    if not is_safe_path(path):
        return JSONResponse(status_code=400, content={"error": "Invalid path"})

    try:
        data = await file.read()
        content_type = file.content_type or "application/octet-stream"

        if content_type.startswith("image/"):
            prepared = prepare_image(data, content_type, max_size_kb=settings.UPLOAD_MAX_SIZE_KB)
            logger.info(
                f"Prepared upload {path}: {len(data)} -> {prepared.size} bytes "
                f"(quality={prepared.quality}, attempts={prepared.attempts})"
            )
            data, content_type = prepared.data, prepared.content_type

        url = storage.put(path, data, content_type)
    except Exception as e:
        logger.error(f"Upload to {path} failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Upload failed"})

    return UploadResult(url=url)


@router.get("/path", response_model=UploadPath)
async def get_upload_path(
    folder: str = Query(...),
    filename: str = Query(..., min_length=1),
    session: UserSession = Depends(get_session),
):
    """Generate a fresh storage path for one of the caller's images."""
    if not FOLDER_PATTERN.match(folder):
        raise HTTPException(status_code=400, detail="Invalid folder")
    return UploadPath(path=generate_image_path(folder, session.user_id, filename))
