"""
S3-compatible storage backend.

This module provides:
- Uploading, reading, deleting and listing objects in one bucket
- Public URL construction for the configured endpoint
- Presigned upload URLs so clients can send images straight to the bucket

Works against AWS S3 as well as S3-compatible gateways (the Supabase storage
S3 endpoint in particular). Path-style addressing is always used.
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import BackendError, NotFound
from .models import ObjectRole
from .storage import StorageProvider

logger = logging.getLogger(__name__)

# https://<project-ref>.storage.supabase.co/storage/v1/s3
SUPABASE_ENDPOINT_PATTERN = re.compile(r"https://(.*)\.storage")

NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class S3StorageProvider(StorageProvider):
    """
    Storage backend talking to an S3-compatible API.

    The boto3 client is created once and shared by every request; it holds no
    per-request state.
    """

    name = "s3"

    def __init__(
        self,
        bucket_name: str,
        endpoint: str = "",
        region: str = "us-east-1",
        access_key_id: str = "",
        secret_access_key: str = "",
        client: Any = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.endpoint = endpoint.rstrip("/")
        self._client = client or boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(s3={"addressing_style": "path"}),
        )

    @property
    def client(self) -> Any:
        return self._client

    def public_url(self, key: str) -> str:
        match = SUPABASE_ENDPOINT_PATTERN.match(self.endpoint)
        if match:
            return f"https://{match.group(1)}.supabase.co/storage/v1/object/public/{self.bucket_name}/{key}"
        return f"{self.endpoint}/{self.bucket_name}/{key}"

    def upload(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        try:
            logger.info(f"Uploading {len(data)} bytes to s3://{self.bucket_name}/{key}")
            self._client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata={"role": ObjectRole.from_key(key).value},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload failed for {key}: {e}")
            raise BackendError(f"S3 upload failed for {key}: {e}") from e
        return self.public_url(key)

    def read(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                raise NotFound(key) from e
            raise BackendError(f"S3 read failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise BackendError(f"S3 read failed for {key}: {e}") from e

        body = response.get("Body")
        if body is None:
            raise BackendError(f"Empty response body from S3 for {key}")
        return body.read()

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                raise NotFound(key) from e
            raise BackendError(f"S3 delete failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise BackendError(f"S3 delete failed for {key}: {e}") from e

    def list(self, prefix: Optional[str] = None) -> List[str]:
        params = {"Bucket": self.bucket_name}
        if prefix:
            params["Prefix"] = prefix

        keys: set[str] = set()
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(**params):
                keys.update(item["Key"] for item in page.get("Contents", []) if item.get("Key"))
        except (ClientError, BotoCoreError) as e:
            raise BackendError(f"S3 list failed for prefix {prefix!r}: {e}") from e
        return sorted(keys)

    def generate_presigned_upload_url(
        self,
        key: str,
        content_type: str = "application/octet-stream",
        expiration: int = 3600,
    ) -> str:
        """
        Generate a presigned URL for uploading an object directly to the bucket.

        Args:
            key: Object key the client will write to
            content_type: Content type the client must send
            expiration: URL expiration time in seconds (default: 3600 = 1 hour)

        Returns:
            Presigned PUT URL

        Raises:
            BackendError: if signing fails
        """
        try:
            url = self._client.generate_presigned_url(
                "put_object",
                Params={"Bucket": self.bucket_name, "Key": key, "ContentType": content_type},
                ExpiresIn=expiration,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to generate presigned URL: {e}")
            raise BackendError(f"Failed to generate presigned URL for {key}: {e}") from e
        logger.info(f"Generated presigned upload URL for {key} (expires in {expiration}s)")
        return url
