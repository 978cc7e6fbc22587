"""Blob storage on Cloudflare R2 (S3 API)"""

import logging
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import (
    R2_ACCESS_KEY_ID,
    R2_ACCOUNT_ID,
    R2_BUCKET_NAME,
    R2_PUBLIC_BASE_URL,
    R2_SECRET_ACCESS_KEY,
)
from ..errors import Unavailable

logger = logging.getLogger(__name__)

# Presigned URL expiration time (1 hour); URLs are minted on every read
PRESIGNED_URL_EXPIRATION = 3600


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


def upload(bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
    """Store bytes under bucket/key and return the key; callers persist the key, not a URL"""
    r2 = get_r2_client()
    try:
        r2.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)
        logger.info(f"✅ Uploaded {len(data)} bytes to {bucket}/{key}")
        return key
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Failed to upload {bucket}/{key}: {e}")
        raise Unavailable("File storage is temporarily unavailable") from e


def generate_presigned_url(key: str, expiration: int = PRESIGNED_URL_EXPIRATION) -> str:
    """Generate a presigned URL for accessing a private object in R2."""
    r2 = get_r2_client()
    params = {"Bucket": R2_BUCKET_NAME, "Key": key, "ResponseContentDisposition": "inline"}
    try:
        url = r2.generate_presigned_url("get_object", Params=params, ExpiresIn=expiration)
        logger.debug(f"✅ Generated presigned URL for key: {key}")
        return url
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Failed to generate presigned URL for key {key}: {e}")
        raise Unavailable("File storage is temporarily unavailable") from e


def resolve_url(key: Optional[str]) -> Optional[str]:
    """
    Turn a stored object key into a URL clients can load.

    Public bucket URL when R2_PUBLIC_BASE_URL is configured, otherwise a
    fresh presigned GET URL. Values that are already absolute URLs pass
    through unchanged. Returns None when there is nothing to show.
    """
    if not key:
        return None
    if key.startswith(("http://", "https://")):
        return key
    if R2_PUBLIC_BASE_URL:
        return f"{R2_PUBLIC_BASE_URL.rstrip('/')}/{key}"
    try:
        return generate_presigned_url(key)
    except Exception as e:
        logger.error(f"Failed to resolve stored file {key}: {e}")
        return None


def upload_user_file(user_id: str, kind: str, data: bytes, content_type: str, extension: str) -> str:
    key = f"users/{user_id}/{kind}{extension}"
    return upload(R2_BUCKET_NAME, key, data, content_type)
