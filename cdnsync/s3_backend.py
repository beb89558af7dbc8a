"""AWS S3 (and S3-compatible) remote client."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, BinaryIO

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from cdnsync.config import ProviderConfig
from cdnsync.errors import ConnectError, DeleteError, UploadError
from cdnsync.models import ObjectHeaders, RemoteObject


logger = logging.getLogger(__name__)

S3_DEFAULTS: dict[str, Any] = {
    "version": None,
    "region": None,
    "buckets": None,
    "acl": "public-read",
}
S3_RULES = ("version", "region", "key", "secret", "buckets", "url")
DELETE_BATCH_SIZE = 1000


def _error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", "Unknown"))
    return exc.__class__.__name__


def _timestamp(value: Any) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp())
    return int(value or 0)


class S3Client:
    """Remote client over a boto3 S3 client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def list_objects(self, bucket: str) -> list[RemoteObject]:
        objects: list[RemoteObject] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket):
                for obj in page.get("Contents", []):
                    objects.append(
                        RemoteObject(
                            key=obj["Key"],
                            size=int(obj["Size"]),
                            last_modified=_timestamp(obj.get("LastModified")),
                        )
                    )
        except (ClientError, BotoCoreError) as exc:
            raise ConnectError(
                f"Could not list bucket '{bucket}' ({_error_code(exc)}): {exc}"
            ) from exc
        logger.debug("Listed %d object(s) in s3://%s", len(objects), bucket)
        return objects

    def upload(self, bucket: str, key: str, content: BinaryIO, headers: ObjectHeaders) -> None:
        params: dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": content}
        if headers.acl:
            params["ACL"] = headers.acl
        if headers.cache_control:
            params["CacheControl"] = headers.cache_control
        if headers.metadata:
            params["Metadata"] = {str(k): str(v) for k, v in headers.metadata.items()}
        if headers.expires:
            params["Expires"] = headers.expires
        if headers.content_type:
            params["ContentType"] = headers.content_type

        try:
            self._client.put_object(**params)
        except (ClientError, BotoCoreError) as exc:
            raise UploadError(key, f"{_error_code(exc)}: {exc}") from exc

    def delete_all(self, bucket: str) -> int:
        deleted = 0
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket):
                keys = [{"Key": obj["Key"]} for obj in page.get("Contents", [])]
                for start in range(0, len(keys), DELETE_BATCH_SIZE):
                    batch = keys[start : start + DELETE_BATCH_SIZE]
                    response = self._client.delete_objects(
                        Bucket=bucket,
                        Delete={"Objects": batch, "Quiet": True},
                    )
                    errors = response.get("Errors") or []
                    if errors:
                        first = errors[0]
                        raise DeleteError(
                            f"Failed to delete {len(errors)} object(s) from '{bucket}', "
                            f"first: {first.get('Key')} ({first.get('Code')}: {first.get('Message')})"
                        )
                    deleted += len(batch)
        except (ClientError, BotoCoreError) as exc:
            raise DeleteError(
                f"Could not empty bucket '{bucket}' ({_error_code(exc)}): {exc}"
            ) from exc
        return deleted


def connect_s3(config: ProviderConfig) -> S3Client:
    kwargs: dict[str, Any] = {
        "config": Config(
            region_name=config.region,
            signature_version="s3v4",
            retries={"max_attempts": 3, "mode": "standard"},
        ),
        "aws_access_key_id": config.credential_key,
        "aws_secret_access_key": config.credential_secret,
    }
    if config.endpoint_url:
        kwargs["endpoint_url"] = config.endpoint_url

    try:
        client = boto3.client("s3", **kwargs)
        client.head_bucket(Bucket=config.bucket)
    except (ClientError, BotoCoreError) as exc:
        code = _error_code(exc)
        if code == "404":
            raise ConnectError(f"S3 bucket '{config.bucket}' does not exist") from exc
        if code == "403":
            raise ConnectError(f"Access denied to S3 bucket '{config.bucket}'") from exc
        raise ConnectError(f"Failed to access S3 bucket '{config.bucket}': {exc}") from exc
    except ValueError as exc:
        # boto3 rejects a malformed endpoint_url before any request is made.
        raise ConnectError(f"Invalid S3 client settings: {exc}") from exc

    logger.info("Connected to s3://%s (%s)", config.bucket, config.region)
    return S3Client(client)
