from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from doclyze.logging.logger import Log
from doclyze.storage.base import BaseObjectStorage
from doclyze.storage.exceptions import InvalidLocatorError, ObjectNotFoundError, StorageError
from doclyze.storage.locator import StorageLocator

SCHEME = "s3"
_MISSING_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


class S3Storage(BaseObjectStorage):
    """Object storage on Amazon S3 (or any S3-compatible service)."""

    def __init__(self, bucket: str, region: str, client: Any | None = None) -> None:
        self._bucket = bucket
        self._client = client or boto3.client("s3", region_name=region)

    def download(self, locator: str) -> bytes:
        parsed = self._parse(locator)
        try:
            response = self._client.get_object(Bucket=parsed.bucket, Key=parsed.key)
            return response["Body"].read()
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                raise ObjectNotFoundError(f"No object at {locator}") from exc
            raise StorageError(f"Failed to download {locator}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to download {locator}: {exc}") from exc

    def upload(self, data: bytes, locator: str, content_type: str) -> None:
        parsed = self._parse(locator)
        try:
            self._client.put_object(
                Bucket=parsed.bucket,
                Key=parsed.key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to upload {locator}: {exc}") from exc
        Log.info(f"Upload complete: {locator}")

    def issue_signed_url(self, locator: str, ttl_seconds: int) -> str:
        parsed = self._parse(locator)
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": parsed.bucket, "Key": parsed.key},
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to sign {locator}: {exc}") from exc

    def locator_for(self, key: str) -> str:
        return str(StorageLocator(scheme=SCHEME, bucket=self._bucket, key=key))

    @staticmethod
    def _parse(locator: str) -> StorageLocator:
        parsed = StorageLocator.parse(locator)
        if parsed.scheme != SCHEME:
            raise InvalidLocatorError(f"Unsupported scheme for S3 storage: {locator}")
        return parsed
