"""S3 storage client wrapper.

Wraps a boto3 S3 client and translates botocore failures into zipdeploy
exceptions. No call is retried here; retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import IO, Any

from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import config
from .exceptions import ListingError, SourceNotFoundError, TransferError, UploadError
from .utils import MAX_SINGLE_PUT_SIZE

logger = logging.getLogger(__name__)

# Error codes S3 uses for a missing bucket, key or version
NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchVersion", "NoSuchBucket", "404"})

# Uploads run on the calling thread, one entry at a time. Entries up to the
# single-PUT ceiling go up in one request so their ETag is the content MD5.
TRANSFER_CONFIG = TransferConfig(
    use_threads=False, multipart_threshold=MAX_SINGLE_PUT_SIZE
)


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))


class S3Storage:
    """Blocking S3 operations used by the fetcher, digest engine and uploader."""

    def __init__(self, client: Any = None):
        """Initialize storage.

        Args:
            client: boto3 S3 client (created from config if not provided)
        """
        self.client = client if client is not None else config.create_s3_client()

    # =========================
    # Read Operations
    # =========================

    def get_object(
        self, bucket: str, key: str, version: str | None = None
    ) -> dict[str, Any]:
        """Request an object.

        Args:
            bucket: Bucket name
            key: Object key
            version: Version id to pin; None requests the latest version

        Returns:
            The get_object response; its "Body" is a streaming reader

        Raises:
            SourceNotFoundError: If the bucket, key or version does not exist
            TransferError: On any other storage failure
        """
        params: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if version is not None:
            params["VersionId"] = version

        logger.debug(f"GetObject s3://{bucket}/{key} version={version or 'latest'}")
        try:
            return self.client.get_object(**params)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                raise SourceNotFoundError(
                    f"Source object not found: s3://{bucket}/{key}"
                    + (f" (version {version})" if version else "")
                ) from e
            raise TransferError(f"Failed to download object from S3: {e}") from e
        except BotoCoreError as e:
            raise TransferError(f"Failed to download object from S3: {e}") from e

    def iter_objects(self, bucket: str) -> Iterator[dict[str, Any]]:
        """Iterate over every object in a bucket.

        Follows continuation tokens until the listing is exhausted.

        Args:
            bucket: Bucket name

        Yields:
            Object summaries with at least "Key" and "ETag"

        Raises:
            ListingError: If any listing page fails
        """
        paginator = self.client.get_paginator("list_objects_v2")
        page_num = 0
        try:
            for page in paginator.paginate(Bucket=bucket):
                page_num += 1
                contents = page.get("Contents", [])
                logger.debug(
                    f"Listing page {page_num} of bucket {bucket}: "
                    f"{len(contents)} object(s)"
                )
                yield from contents
        except (ClientError, BotoCoreError) as e:
            raise ListingError(
                f"Error listing objects in target bucket ({bucket}): {e}"
            ) from e

    # =========================
    # Write Operations
    # =========================

    def upload_stream(
        self, bucket: str, key: str, fileobj: IO[bytes], content_type: str
    ) -> None:
        """Stream a readable file object to an S3 object.

        Args:
            bucket: Target bucket name
            key: Target object key
            fileobj: Readable binary stream
            content_type: Value for the Content-Type header

        Raises:
            UploadError: If the object could not be stored
        """
        logger.debug(f"Uploading s3://{bucket}/{key} ({content_type})")
        try:
            self.client.upload_fileobj(
                fileobj,
                bucket,
                key,
                ExtraArgs={"ContentType": content_type},
                Config=TRANSFER_CONFIG,
            )
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            raise UploadError(key, bucket, str(e)) from e

