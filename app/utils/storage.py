import logging
from urllib.parse import urlparse

import boto3
from botocore.exceptions import ClientError

from config import settings

_LOGGER = logging.getLogger(__name__)


def object_key(url: str) -> str | None:
    """Return the S3 key of a bucket URL, or None for foreign URLs."""
    parsed = urlparse(url)
    if not settings.S3_BUCKET or not parsed.netloc.startswith(f"{settings.S3_BUCKET}."):
        return None
    key = parsed.path.lstrip("/")
    return key or None


def delete_object(url: str) -> bool:
    """Delete a previously uploaded document. Returns True when removed."""
    if not settings.S3_BUCKET:
        _LOGGER.info("[S3] DEV mode: would delete %s", url)
        return False

    key = object_key(url)
    if key is None:
        _LOGGER.warning("[S3] %s is not stored in bucket %s; leaving it", url, settings.S3_BUCKET)
        return False

    s3_client = boto3.client("s3")
    try:
        s3_client.delete_object(Bucket=settings.S3_BUCKET, Key=key)
    except ClientError as e:
        raise RuntimeError(f"Error deleting {key} from S3: {e}")
    return True
