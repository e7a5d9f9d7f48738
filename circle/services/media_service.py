"""
Blob storage for user-submitted images.

Images are stored either on the local filesystem (served by the app under
MEDIA_URL_PREFIX) or in an S3 bucket. The value kept on posts and profiles
is the public path or URL returned by save_image.
"""

import io
import logging
import time
from pathlib import Path
from typing import Optional
from uuid import uuid4

import boto3
from botocore.exceptions import ClientError

from circle.config_secrets import (
    AWS_ACCESS_KEY_ID,
    AWS_REGION,
    AWS_SECRET_ACCESS_KEY,
    MEDIA_BACKEND,
    MEDIA_ROOT,
    MEDIA_S3_BUCKET,
    MEDIA_S3_PREFIX,
    MEDIA_URL_PREFIX,
)
from circle.services.errors import InvalidMediaError

logger = logging.getLogger(__name__)

_s3_client = None


def get_s3_client():
    """Create the S3 client on first use"""
    global _s3_client
    if _s3_client is None:
        _s3_client = boto3.client(
            "s3",
            region_name=AWS_REGION,
            aws_access_key_id=AWS_ACCESS_KEY_ID,
            aws_secret_access_key=AWS_SECRET_ACCESS_KEY,
        )
    return _s3_client


def build_filename(original_name: Optional[str]) -> str:
    """Millisecond timestamp, a short random tag and the original extension"""
    suffix = Path(original_name or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}{suffix}"


def get_s3_key(filename: str) -> str:
    return f"{MEDIA_S3_PREFIX}{filename}"


def get_s3_url(key: str) -> str:
    return f"https://{MEDIA_S3_BUCKET}.s3.{AWS_REGION}.amazonaws.com/{key}"


def save_image(content: bytes, original_name: Optional[str], content_type: Optional[str]) -> str:
    """
    Store an uploaded image

    Args:
        content: The fully buffered file content
        original_name: The client's file name, used for its extension
        content_type: The declared MIME type, must be image/*

    Returns:
        The public path or URL of the stored image
    """
    if not content_type or not content_type.startswith("image/"):
        raise InvalidMediaError("Only image uploads are allowed")
    if not content:
        raise InvalidMediaError("No file uploaded.")

    filename = build_filename(original_name)

    if MEDIA_BACKEND == "s3":
        key = get_s3_key(filename)
        get_s3_client().upload_fileobj(
            io.BytesIO(content),
            MEDIA_S3_BUCKET,
            key,
            ExtraArgs={"ContentType": content_type},
        )
        return get_s3_url(key)

    root = Path(MEDIA_ROOT)
    root.mkdir(parents=True, exist_ok=True)
    (root / filename).write_bytes(content)
    return f"{MEDIA_URL_PREFIX}/{filename}"


def delete_image(reference: Optional[str]) -> bool:
    """
    Delete a stored image by the reference save_image returned

    Returns:
        True if something was deleted, False otherwise
    """
    if not reference:
        return False

    filename = reference.rsplit("/", 1)[-1]

    if MEDIA_BACKEND == "s3":
        try:
            get_s3_client().delete_object(Bucket=MEDIA_S3_BUCKET, Key=get_s3_key(filename))
        except ClientError:
            logger.exception("Failed to delete image %s from S3", reference)
            return False
        return True

    path = Path(MEDIA_ROOT) / filename
    if not path.is_file():
        logger.warning("Image %s not found on disk, nothing to delete", reference)
        return False
    path.unlink()
    return True
