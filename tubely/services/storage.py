"""S3 object storage for uploaded videos."""
import logging
from typing import BinaryIO

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Request

from tubely.config import Settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Object storage write failed."""


class ObjectStorage:
    """Write-once uploads into a single bucket."""

    def __init__(self, bucket_name: str, client):
        self.bucket_name = bucket_name
        self.client = client

    def put_object(self, key: str, body: BinaryIO, content_type: str) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Upload to s3://%s/%s failed: %s", self.bucket_name, key, e)
            raise StorageError(f"Upload failed for {key}") from e
        logger.info("Uploaded s3://%s/%s", self.bucket_name, key)


def build_object_storage(settings: Settings) -> ObjectStorage:
    client = boto3.client(
        "s3",
        region_name=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url or None,
        config=Config(signature_version="s3v4"),
    )
    return ObjectStorage(settings.s3_bucket, client)


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage
