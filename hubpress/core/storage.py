"""
Storage Utility
===============

Image storage with S3 / local branching. Records only keep the object key;
callers turn keys into URLs with get_file_url() when responding.
"""

import logging
import os
import secrets
from botocore.exceptions import BotoCoreError, ClientError
from .config import get_config_value, is_cloud_storage
from .errors import ApiError, StorageError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}


def generate_image_key():
    """Random object name for a new upload (32 hex chars)"""
    return secrets.token_hex(16)


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def read_upload(files, field):
    """Validate a multipart image upload.

    Returns None when the field is absent, otherwise (bytes, content_type).
    Raises ApiError(400) for an empty or non-image upload.
    """
    if field not in files:
        return None

    file = files[field]
    if not file or file.filename == '':
        raise ApiError(400, 'No file selected')

    if not allowed_file(file.filename):
        raise ApiError(400, 'Invalid file type')

    data = file.read()
    if not data:
        raise ApiError(400, 'Uploaded file is empty')

    return data, file.mimetype or 'application/octet-stream'


def _get_s3_client():
    import boto3
    return boto3.client(
        's3',
        region_name=get_config_value('AWS_REGION'),
        endpoint_url=get_config_value('S3_ENDPOINT_URL') or None,
        aws_access_key_id=get_config_value('AWS_ACCESS_KEY_ID'),
        aws_secret_access_key=get_config_value('AWS_SECRET_ACCESS_KEY'),
    )


def _bucket():
    bucket = get_config_value('S3_BUCKET_NAME')
    if not bucket:
        raise StorageError('S3_BUCKET_NAME is not configured')
    return bucket


def _local_path(key):
    upload_dir = get_config_value('UPLOAD_FOLDER')
    # Keys are generated hex names; refuse anything that could escape the folder
    if os.path.basename(key) != key or key in ('.', '..'):
        raise StorageError(f'Invalid storage key: {key}')
    return upload_dir, os.path.join(upload_dir, key)


def upload_file(file_bytes, key, content_type='application/octet-stream'):
    """Store file bytes under key in S3 or the local upload folder.

    Returns the key.
    """
    if is_cloud_storage():
        try:
            _get_s3_client().put_object(
                Bucket=_bucket(),
                Key=key,
                Body=file_bytes,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f'S3 upload failed for {key}: {e}') from e
    else:
        upload_dir, filepath = _local_path(key)
        try:
            os.makedirs(upload_dir, exist_ok=True)
            with open(filepath, 'wb') as f:
                f.write(file_bytes)
        except OSError as e:
            raise StorageError(f'Local upload failed for {key}: {e}') from e

    logger.info(f"Stored image {key} ({len(file_bytes)} bytes)")
    return key


def get_file_url(key, expires_in=None):
    """URL a browser can fetch the object from.

    S3 objects get a presigned GET URL; local files are served from /uploads/.
    """
    if not key:
        return None

    if is_cloud_storage():
        if expires_in is None:
            expires_in = int(get_config_value('SIGNED_URL_EXPIRES', 3600))
        try:
            return _get_s3_client().generate_presigned_url(
                'get_object',
                Params={'Bucket': _bucket(), 'Key': key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f'Could not sign URL for {key}: {e}') from e

    return f"/uploads/{key}"


def delete_file(key):
    """Delete an object by key. Returns True if something was deleted."""
    if not key:
        return False

    if is_cloud_storage():
        try:
            _get_s3_client().delete_object(Bucket=_bucket(), Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f'S3 delete failed for {key}: {e}') from e
        logger.info(f"Deleted image {key}")
        return True

    _, filepath = _local_path(key)
    if os.path.isfile(filepath):
        try:
            os.unlink(filepath)
        except OSError as e:
            raise StorageError(f'Local delete failed for {key}: {e}') from e
        logger.info(f"Deleted image {key}")
        return True
    return False


def discard_file(key):
    """Remove an object left behind by a failed request; failures are only logged"""
    try:
        return delete_file(key)
    except StorageError as e:
        logger.error(f"Could not remove orphaned image {key}: {e}")
        return False


def with_signed_image(record):
    """Copy of a serialized record with its image key replaced by a URL"""
    if record is None:
        return None
    signed = dict(record)
    signed['image'] = get_file_url(record.get('image'))
    return signed
