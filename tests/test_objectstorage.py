import pytest
from botocore.exceptions import ClientError

from assetsync.objectstorage.s3bucket import (
    CredentialsRejected,
    delete_s3_object_quietly,
    get_bucket_list,
    put_s3_object,
    scan_s3_objects,
    stat_s3_object,
)
from assetsync.objectstorage.s3client import connect_s3, endpoint_by_location, region_by_location
from tests.fakes import FakeS3Client, client_error


def test_bucket_list():
    s3 = FakeS3Client()
    s3.bucket("images")
    s3.bucket("docs")
    s3.locations["docs"] = "EU"
    buckets = {b.bucket: b for b in get_bucket_list(s3)}
    assert buckets["images"].location == "US"
    assert buckets["images"].url_prefix == "http://s3.amazonaws.com/images/"
    assert buckets["docs"].location == "EU"
    assert buckets["docs"].url_prefix == "http://s3-eu-west-1.amazonaws.com/docs/"


def test_rejected_credentials():
    s3 = FakeS3Client()
    s3.bucket("images")
    s3.reject_credentials = True
    with pytest.raises(CredentialsRejected):
        get_bucket_list(s3)


def test_no_buckets_is_rejection():
    with pytest.raises(CredentialsRejected):
        get_bucket_list(FakeS3Client())


def test_scan_is_paginated():
    s3 = FakeS3Client()
    for i in range(7):
        s3.add("b", f"p/{i}.txt", b"x" * i)
    s3.add("b", "q/other.txt")
    result = list(scan_s3_objects(s3, "b", "p/", page_size=3))
    assert [o.key for o in result] == [f"p/{i}.txt" for i in range(7)]
    assert [o.size for o in result] == list(range(7))
    assert list(scan_s3_objects(s3, "b", "nothing/")) == []


def test_stat():
    s3 = FakeS3Client()
    obj = s3.add("b", "x.txt", b"12345")
    info = stat_s3_object(s3, "b", "x.txt")
    assert info is not None
    assert info.size == 5
    assert info.last_modified == obj.last_modified
    assert stat_s3_object(s3, "b", "missing.txt") is None


def test_stat_propagates_other_errors():
    class Forbidden(FakeS3Client):
        def head_object(self, Bucket, Key):
            raise client_error("403", "HeadObject")

    with pytest.raises(ClientError):
        stat_s3_object(Forbidden(), "b", "x.txt")


def test_put(tmp_path):
    s3 = FakeS3Client()
    put_s3_object(s3, "b", "folder/", None)
    assert s3.bucket("b")["folder/"].body == b""
    assert s3.bucket("b")["folder/"].extra["ACL"] == "public-read"

    path = tmp_path / "x.txt"
    path.write_text("hello")
    put_s3_object(s3, "b", "folder/x.txt", path, cache_control="max-age=60, must-revalidate")
    obj = s3.bucket("b")["folder/x.txt"]
    assert obj.body == b"hello"
    assert obj.extra["CacheControl"] == "max-age=60, must-revalidate"
    assert obj.extra["ContentType"] == "text/plain"


def test_delete_quietly():
    s3 = FakeS3Client()
    s3.add("b", "x.txt")
    s3.add("b", "locked.txt")
    s3.fail_delete.add("locked.txt")
    assert delete_s3_object_quietly(s3, "b", "x.txt")
    assert not delete_s3_object_quietly(s3, "b", "locked.txt")
    assert s3.keys("b") == {"locked.txt"}


def test_locations():
    assert endpoint_by_location("US") == "s3.amazonaws.com"
    assert endpoint_by_location("eu-central-1") == "s3-eu-central-1.amazonaws.com"
    assert region_by_location(None) == "us-east-1"
    assert region_by_location("EU") == "eu-west-1"
    assert region_by_location("eu-central-1") == "eu-central-1"


def test_connect_requires_credentials():
    with pytest.raises(ValueError):
        connect_s3("", "secret")
    with pytest.raises(ValueError):
        connect_s3("key", "")
