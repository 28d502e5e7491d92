import boto3
from botocore.client import Config
from mypy_boto3_s3.client import S3Client

from assetsync.config import get_settings
from assetsync.models import SourceSettings

PREDEFINED_ENDPOINTS = {
    "US": "s3.amazonaws.com",
    "EU": "s3-eu-west-1.amazonaws.com",
}

PREDEFINED_REGIONS = {
    "US": "us-east-1",
    "EU": "eu-west-1",
}


def endpoint_by_location(location: str) -> str:
    """
    Public host name for a bucket location, as used in url prefixes
    """
    if location in PREDEFINED_ENDPOINTS:
        return PREDEFINED_ENDPOINTS[location]
    return f"s3-{location}.amazonaws.com"


def region_by_location(location: str | None) -> str:
    if not location:
        return PREDEFINED_REGIONS["US"]
    return PREDEFINED_REGIONS.get(location, location)


def s3_client(settings: SourceSettings) -> S3Client:
    """
    Create a client for the bucket of one source. Create one client per unit of work
    (an index step, a file operation) and pass it along explicitly.
    """
    return connect_s3(settings.key_id, settings.secret, settings.location)


def connect_s3(key_id: str, secret: str, location: str | None = None) -> S3Client:
    if not key_id or not secret:
        raise ValueError("key_id or secret not specified")

    settings = get_settings()
    config = Config(
        signature_version="s3v4",
        connect_timeout=settings.s3_connect_timeout,
        read_timeout=settings.s3_read_timeout,
        retries={"max_attempts": settings.s3_max_attempts, "mode": "standard"},
    )
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint_url,
        region_name=region_by_location(location),
        aws_access_key_id=key_id,
        aws_secret_access_key=secret,
        config=config,
    )
