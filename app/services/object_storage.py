"""
Object storage backends.

``ObjectStorage`` is the only capability the upload path needs from a
backend: put bytes under a key and return the public URL of the object.
``S3ObjectStorage`` implements it on top of boto3.
"""
import string
from typing import Any, Callable, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings
import structlog

logger = structlog.get_logger()

UrlBuilder = Callable[[str], str]


class StorageError(Exception):
    """Raised when the storage backend cannot complete an operation."""


class StorageConfigError(StorageError):
    """Raised when a storage backend cannot be configured."""


class ObjectStorage(Protocol):
    def put_object(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return the object's public URL."""
        ...


class PublicUrlBuilder:
    """
    Build public object URLs by formatting a template.

    The template may reference ``{bucket}``, ``{region}`` and ``{key}``.
    The result is never checked against the backend.

    Raises:
        StorageConfigError: If the template is malformed or uses any other
            placeholder
    """

    PLACEHOLDERS = frozenset({"bucket", "region", "key"})

    def __init__(self, template: str, bucket: str, region: str):
        self._validate(template)
        self.template = template
        self.bucket = bucket
        self.region = region

    @classmethod
    def _validate(cls, template: str) -> None:
        try:
            fields = [field for _, field, _, _ in string.Formatter().parse(template) if field is not None]
        except ValueError as e:
            raise StorageConfigError(f"invalid public URL template {template!r}: {e}") from e

        unknown = sorted(set(fields) - cls.PLACEHOLDERS)
        if unknown:
            raise StorageConfigError(
                f"invalid public URL template {template!r}: unknown placeholders {unknown}"
            )

    def __call__(self, key: str) -> str:
        return self.template.format(bucket=self.bucket, region=self.region, key=key)


class S3ObjectStorage:
    """S3 (or S3-compatible) backend using a single shared boto3 client."""

    def __init__(self, settings: Settings, url_builder: Optional[UrlBuilder] = None):
        self.s3_client = self._build_client(settings)
        self.bucket_name = settings.aws_bucket
        self.region = settings.aws_region or self.s3_client.meta.region_name or ""
        self.url_builder = url_builder or PublicUrlBuilder(
            settings.public_url_template,
            bucket=self.bucket_name or "",
            region=self.region,
        )

    @staticmethod
    def _build_client(settings: Settings) -> Any:
        try:
            return boto3.client(
                "s3",
                region_name=settings.aws_region,
                endpoint_url=settings.s3_endpoint_url,
            )
        except (BotoCoreError, ValueError) as e:
            raise StorageConfigError(f"unable to load SDK config: {e}") from e

    def put_object(self, key: str, data: bytes, content_type: str) -> str:
        if not self.bucket_name:
            raise StorageError("no bucket configured (set AWS_BUCKET)")

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "S3 put_object failed",
                error=str(e),
                bucket=self.bucket_name,
                key=key,
            )
            raise StorageError(str(e)) from e

        return self.url_builder(key)
