import logging
import os

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import MAX_UPLOAD_BYTES
from ..database import get_db
from ..models import User
from ..services import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["Upload"])

# Upload kind -> user column holding the object key
UPLOAD_TARGETS = {
    "avatar": "avatar_url",
    "national-id-front": "national_id_front_url",
    "national-id-back": "national_id_back_url",
}

ALLOWED_IMAGE_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/heic": ".heic",
    "image/heif": ".heif",
}


@router.post("/{kind}")
async def upload_user_image(
    kind: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Upload a profile picture or national ID image and attach it to the current user"""
    column = UPLOAD_TARGETS.get(kind)
    if column is None:
        raise HTTPException(status_code=404, detail="Unknown upload type")

    logger.info(f"📤 Uploading {kind} for user {current_user.id}")

    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PNG, JPEG, WebP and HEIC images are allowed.",
        )

    if file.filename:
        safe_filename = os.path.basename(file.filename)
        if safe_filename != file.filename or ".." in file.filename or len(file.filename) > 255:
            logger.warning(f"❌ Rejected filename: '{file.filename}'")
            raise HTTPException(status_code=400, detail="Invalid filename")

    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="File is empty")
    if len(contents) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds {MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit. "
            f"Your file is {len(contents) / (1024 * 1024):.2f}MB.",
        )

    key = storage_service.upload_user_file(
        current_user.id, kind, contents, file.content_type, ALLOWED_IMAGE_TYPES[file.content_type]
    )

    # Store key, not URL
    setattr(current_user, column, key)
    db.commit()
    logger.info(f"✅ Stored {kind} for user {current_user.id}")
    return {"kind": kind, "key": key, "url": storage_service.resolve_url(key)}


@router.get("/presigned/{user_id}/{kind}")
async def get_presigned_url_endpoint(
    user_id: str,
    kind: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get a fresh URL for a stored avatar or national ID image"""
    column = UPLOAD_TARGETS.get(kind)
    if column is None:
        raise HTTPException(status_code=404, detail="Unknown upload type")

    # ID documents are visible to their owner and to admins only
    if kind != "avatar" and user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Not allowed to view this file")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    key = getattr(user, column)
    if not key:
        raise HTTPException(status_code=404, detail=f"No {kind} found")

    url = storage_service.resolve_url(key)
    if not url:
        raise HTTPException(status_code=503, detail="File storage is temporarily unavailable")
    return {"url": url}
