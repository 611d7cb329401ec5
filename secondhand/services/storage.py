"""
Storage Service - S3-compatible object storage for listing images

Supports AWS S3, Cloudflare R2, MinIO, and other S3-compatible services.
Objects are private; clients receive a presigned GET URL.
boto3 is synchronous, so every client call runs in a worker thread.
"""
import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from secondhand.core.config import settings
from secondhand.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Allowed MIME types for listing images
ALLOWED_IMAGE_TYPES = {
    'image/jpeg': 'jpg',
    'image/png': 'png',
    'image/webp': 'webp',
}


@dataclass
class UploadResult:
    """Result of a file upload."""
    success: bool
    url: Optional[str] = None
    key: Optional[str] = None
    error: Optional[str] = None
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None


def validate_image(content: bytes, content_type: str, max_size: int) -> Tuple[bool, Optional[str]]:
    """Check MIME type, size and magic bytes of an uploaded image."""
    if content_type not in ALLOWED_IMAGE_TYPES:
        return False, "Invalid file type. Only JPEG, PNG, and WebP are allowed"

    if len(content) > max_size:
        max_mb = max_size / (1024 * 1024)
        return False, f"File too large. Maximum size is {max_mb:.0f}MB"

    if not content:
        return False, "No file provided"

    if content_type == 'image/png' and not content.startswith(b'\x89PNG'):
        return False, "Invalid PNG file"
    if content_type == 'image/jpeg' and not content.startswith(b'\xff\xd8'):
        return False, "Invalid JPEG file"
    if content_type == 'image/webp' and not (content[:4] == b'RIFF' and content[8:12] == b'WEBP'):
        return False, "Invalid WebP file"

    return True, None


def build_image_key(owner_id: str, filename: str, content_type: str) -> str:
    """Object key for an uploaded image: {owner_id}/{uuid}.{ext}."""
    ext = filename.rsplit('.', 1)[-1].lower() if '.' in (filename or '') else ''
    if not ext.isalnum():
        ext = ALLOWED_IMAGE_TYPES[content_type]
    return f"{owner_id}/{uuid.uuid4()}.{ext}"


class BlobStore(ABC):
    """Narrow interface over image storage."""

    max_image_size: int = settings.MAX_IMAGE_UPLOAD_BYTES

    def check_image(self, content: bytes, content_type: str) -> None:
        """Raise ValidationError if the image may not be stored."""
        is_valid, error = validate_image(content, content_type, self.max_image_size)
        if not is_valid:
            raise ValidationError(error)

    @abstractmethod
    async def upload_listing_image(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        owner_id: str,
    ) -> UploadResult:
        """Store an already validated image and return its URL and key."""

    async def ensure_bucket(self) -> None:
        return None


class StorageService(BlobStore):
    """
    S3-compatible storage service.

    Handles uploads to AWS S3, Cloudflare R2, or any S3-compatible service.
    """

    def __init__(self, client=None):
        self._client = client
        self._bucket = settings.S3_BUCKET
        self._region = settings.S3_REGION
        self.max_image_size = settings.MAX_IMAGE_UPLOAD_BYTES

    @property
    def client(self):
        """Lazy-load S3 client."""
        if self._client is None:
            config = Config(
                signature_version='s3v4',
                retries={'max_attempts': 3, 'mode': 'standard'}
            )

            client_kwargs = {
                'service_name': 's3',
                'region_name': self._region,
                'config': config,
            }
            if settings.S3_ACCESS_KEY:
                client_kwargs['aws_access_key_id'] = settings.S3_ACCESS_KEY
                client_kwargs['aws_secret_access_key'] = settings.S3_SECRET_KEY

            # Custom endpoint for R2/MinIO
            if settings.S3_ENDPOINT:
                client_kwargs['endpoint_url'] = settings.S3_ENDPOINT

            self._client = boto3.client(**client_kwargs)

        return self._client

    async def ensure_bucket(self) -> None:
        """
        Create the image bucket if it does not exist yet.

        Failures are logged and not raised so the API can still start.
        """
        try:
            await asyncio.to_thread(self.client.head_bucket, Bucket=self._bucket)
            logger.info(f"Storage bucket {self._bucket} available")
            return
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            if error_code not in ('404', 'NoSuchBucket', 'NotFound'):
                logger.warning(f"Storage bucket check failed for {self._bucket}: {error_code}")
                return
        except BotoCoreError as e:
            logger.warning(f"Storage initialization error: {e}")
            return

        create_kwargs = {'Bucket': self._bucket}
        if self._region != 'us-east-1' and not settings.S3_ENDPOINT:
            create_kwargs['CreateBucketConfiguration'] = {'LocationConstraint': self._region}
        try:
            await asyncio.to_thread(self.client.create_bucket, **create_kwargs)
            logger.info(f"Storage bucket {self._bucket} created successfully")
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Storage bucket creation error: {e}")

    async def upload_listing_image(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        owner_id: str,
    ) -> UploadResult:
        """
        Upload a listing image.

        Args:
            content: File content as bytes
            filename: Original filename (its extension is kept)
            content_type: MIME type
            owner_id: Uploading user; used as the key folder

        Returns:
            UploadResult with a presigned URL on success
        """
        key = build_image_key(owner_id, filename, content_type)

        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Image upload error: {e}")
            return UploadResult(success=False, error="Failed to upload image")

        try:
            url = await asyncio.to_thread(
                self.client.generate_presigned_url,
                'get_object',
                Params={'Bucket': self._bucket, 'Key': key},
                ExpiresIn=settings.IMAGE_URL_EXPIRY_SECONDS,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Signed URL creation error: {e}")
            return UploadResult(success=False, key=key, error="Failed to create image URL")

        logger.info(f"Uploaded listing image: {key}")

        return UploadResult(
            success=True,
            url=url,
            key=key,
            content_type=content_type,
            size_bytes=len(content),
        )


# Singleton instance
_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Get storage service singleton."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
