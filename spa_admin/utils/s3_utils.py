import logging
import os
import uuid
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
from flask import current_app

from spa_admin.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}


def _client():
    return boto3.client(
        "s3",
        aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        region_name=current_app.config.get("S3_REGION"),
    )


def image_key(prefix, owner_id, filename):
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(
            f"image_file must be one of: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}"
        )
    return f"{prefix}/{owner_id}/{uuid.uuid4().hex}{ext}"


def upload_file_to_s3(file, key):
    """Upload a werkzeug FileStorage and return its public URL."""
    bucket_name = current_app.config.get("S3_BUCKET_NAME")
    if not bucket_name:
        raise StorageError("S3_BUCKET_NAME is not configured")

    try:
        _client().upload_fileobj(
            file,
            bucket_name,
            key,
            ExtraArgs={"ACL": "public-read", "ContentType": file.mimetype},
        )
    except NoCredentialsError as e:
        raise StorageError("AWS credentials not found") from e
    except (BotoCoreError, ClientError) as e:
        raise StorageError("File upload failed") from e

    base_url = current_app.config.get("S3_BASE_URL") or (
        f"https://{bucket_name}.s3.amazonaws.com"
    )
    return f"{base_url.rstrip('/')}/{key}"


def delete_file_from_s3(image_url):
    """Returns False when the object could not be removed."""
    bucket_name = current_app.config.get("S3_BUCKET_NAME")
    if not bucket_name or not image_url:
        return False

    key = urlparse(image_url).path.lstrip("/")
    try:
        _client().delete_object(Bucket=bucket_name, Key=key)
        return True
    except (BotoCoreError, ClientError) as e:
        logger.warning("Error deleting %s from S3: %s", key, e)
        return False
