from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from labintake.logging.logger import Log
from labintake.storage.base import BaseObjectStorage, normalize_key
from labintake.storage.exceptions import StorageError


class S3ObjectStorage(BaseObjectStorage):
    """Stores objects in an S3-compatible bucket."""

    def __init__(
        self,
        *,
        bucket: str,
        region: str | None = None,
        endpoint_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        if not bucket:
            raise ValueError("storage_s3_bucket is required for storage_disk=s3")
        self._bucket = bucket
        self._region = region
        self._endpoint_url = endpoint_url
        self._client = client or boto3.client(
            "s3", region_name=region or None, endpoint_url=endpoint_url or None
        )

    def put(self, key: str, data: bytes, content_type: str) -> str:
        key = normalize_key(key)
        try:
            self._client.put_object(
                Bucket=self._bucket, Key=key, Body=data, ContentType=content_type
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 put failed for {key}: {exc}") from exc
        return self._object_url(key)

    def delete(self, key: str) -> bool:
        key = normalize_key(key)
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            Log.error(f"S3 delete failed for {key}: {exc}")
            return False
        return True

    def _object_url(self, key: str) -> str:
        if self._endpoint_url:
            return f"{self._endpoint_url.rstrip('/')}/{self._bucket}/{key}"
        if self._region:
            return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"
        return f"https://{self._bucket}.s3.amazonaws.com/{key}"
