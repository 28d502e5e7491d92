"""
Interact with S3-compatible object storage (e.g., AWS S3, MinIO, SeaweedFS, Cloudflare R2).

All functions take the client as first argument, see s3client.s3_client.
Errors are propagated, except for delete_s3_object_quietly which is used where a failed
delete should not abort an operation (e.g. removing the original after a successful copy).
"""

import logging
import mimetypes
from pathlib import Path
from typing import Iterator

from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_s3.client import S3Client

from assetsync.models import BucketInfo, RemoteObject
from assetsync.objectstorage.s3client import endpoint_by_location


class CredentialsRejected(Exception):
    pass


def get_bucket_list(s3: S3Client) -> list[BucketInfo]:
    """
    List the buckets these credentials give access to, with their location and public url prefix.
    Raises CredentialsRejected if the credentials are refused or give access to nothing.
    """
    try:
        buckets = s3.list_buckets().get("Buckets", [])
    except (ClientError, BotoCoreError) as e:
        raise CredentialsRejected(f"Credentials rejected by target host: {e}") from e
    if not buckets:
        raise CredentialsRejected("Credentials rejected by target host.")

    result = []
    for bucket in buckets:
        name = bucket["Name"]
        location = s3.get_bucket_location(Bucket=name).get("LocationConstraint") or "US"
        result.append(
            BucketInfo(bucket=name, location=location, url_prefix=f"http://{endpoint_by_location(location)}/{name}/")
        )
    return result


def scan_s3_objects(s3: S3Client, bucket: str, prefix: str = "", page_size=1000) -> Iterator[RemoteObject]:
    """
    Yield all objects under the prefix (at any depth), in key order. The listing is paginated,
    so arbitrarily large buckets are never held in memory at once.
    """
    paginator = s3.get_paginator("list_objects_v2")
    for page in paginator.paginate(Bucket=bucket, Prefix=prefix, PaginationConfig={"PageSize": page_size}):
        for content in page.get("Contents", []):
            if "Key" in content:
                yield RemoteObject(key=content["Key"], size=content.get("Size", 0), last_modified=content["LastModified"])


def stat_s3_object(s3: S3Client, bucket: str, key: str) -> RemoteObject | None:
    """
    Get size and modification time of an object, or None if it does not exist
    """
    try:
        res = s3.head_object(Bucket=bucket, Key=key)
    except ClientError as e:
        error = e.response.get("Error", {})
        if error.get("Code") in ("404", "NoSuchKey", "NotFound"):
            return None
        raise
    return RemoteObject(key=key, size=res["ContentLength"], last_modified=res["LastModified"])


def download_s3_object(s3: S3Client, bucket: str, key: str, target: Path) -> None:
    res = s3.get_object(Bucket=bucket, Key=key)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("wb") as f:
        f.write(res["Body"].read())


def put_s3_object(s3: S3Client, bucket: str, key: str, source: Path | None, cache_control: str | None = None) -> None:
    """
    Upload a local file as a publicly readable object. If source is None, an empty object is created
    (which is how folder markers are made).
    """
    if source is None:
        s3.put_object(Bucket=bucket, Key=key, Body=b"", ACL="public-read")
        return

    extra = {}
    if cache_control:
        extra["CacheControl"] = cache_control
    content_type, _ = mimetypes.guess_type(key)
    if content_type:
        extra["ContentType"] = content_type

    with source.open("rb") as f:
        s3.put_object(Bucket=bucket, Key=key, Body=f, ACL="public-read", **extra)


def copy_s3_object(s3: S3Client, source_bucket: str, source_key: str, bucket: str, key: str) -> None:
    s3.copy_object(
        Bucket=bucket,
        Key=key,
        CopySource={"Bucket": source_bucket, "Key": source_key},
        ACL="public-read",
    )


def delete_s3_object(s3: S3Client, bucket: str, key: str) -> None:
    s3.delete_object(Bucket=bucket, Key=key)


def delete_s3_object_quietly(s3: S3Client, bucket: str, key: str) -> bool:
    try:
        delete_s3_object(s3, bucket, key)
        return True
    except (ClientError, BotoCoreError) as e:
        logging.warning(f"Could not delete {bucket}/{key}, object is left in place: {e}")
        return False
