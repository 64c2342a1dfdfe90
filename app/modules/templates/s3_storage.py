import boto3
from botocore.exceptions import ClientError
from app.config import settings
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class S3BundleArchive:
    """Raw uploaded template bundles in S3, one object per template version."""

    def __init__(self, client=None):
        if not settings.s3_archive_enabled:
            raise ValueError("AWS S3 credentials and bucket name must be configured")

        self.bucket = settings.s3_bucket_name
        self.client = client or boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
        )

    @staticmethod
    def key_for(template_id: str, version: int) -> str:
        return f"templates/{template_id}/v{version}.zip"

    def uri_for(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"

    def put_bundle(self, template_id: str, version: int, bundle: bytes) -> str:
        """Store the bundle and return its s3:// URI; ClientError propagates."""
        key = self.key_for(template_id, version)
        self.client.put_object(Bucket=self.bucket, Key=key, Body=bundle, ContentType="application/zip")
        logger.info(f"Archived template {template_id} v{version} bundle to {self.uri_for(key)}")
        return self.uri_for(key)

    def delete_uri(self, uri: Optional[str]) -> bool:
        """Remove an archived bundle by URI. Returns False when nothing could be deleted."""
        prefix = self.uri_for("")
        if not uri or not uri.startswith(prefix):
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=uri[len(prefix):])
        except ClientError as e:
            logger.error(f"Failed to delete archived bundle {uri}: {e}")
            return False
        return True


def get_bundle_archive() -> Optional[S3BundleArchive]:
    """S3 archive when configured, otherwise None (archiving is skipped)."""
    if not settings.s3_archive_enabled:
        return None
    try:
        return S3BundleArchive()
    except Exception as e:
        logger.warning(f"S3 archive initialization failed ({e}), bundles will not be archived")
        return None
