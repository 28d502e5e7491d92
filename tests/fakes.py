"""
In-memory stand-ins for the object store client and the metadata store.

FakeS3Client implements the subset of the boto3 S3 client that assetsync uses, raising botocore
ClientErrors the way the real client does. Clients created with the same buckets dict see the same objects.
"""

import io
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from botocore.exceptions import ClientError

from assetsync.models import FileRecord, FolderNode, IndexEntry, TransformIndex
from assetsync.systemdata.mapping import index_entries_index_id

START_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@dataclass
class FakeObject:
    body: bytes
    last_modified: datetime
    extra: dict = field(default_factory=dict)


class FakePaginator:
    def __init__(self, client: "FakeS3Client"):
        self.client = client

    def paginate(self, Bucket: str, Prefix: str = "", PaginationConfig: dict | None = None):
        page_size = (PaginationConfig or {}).get("PageSize", 1000)
        keys = sorted(key for key in self.client.bucket(Bucket) if key.startswith(Prefix))
        self.client.calls.append(("list_objects_v2", Bucket, Prefix))
        if not keys:
            yield {"KeyCount": 0}
            return
        for i in range(0, len(keys), page_size):
            yield {
                "Contents": [
                    {
                        "Key": key,
                        "Size": len(self.client.bucket(Bucket)[key].body),
                        "LastModified": self.client.bucket(Bucket)[key].last_modified,
                    }
                    for key in keys[i : i + page_size]
                ]
            }


class FakeS3Client:
    def __init__(self, buckets: dict[str, dict[str, FakeObject]] | None = None):
        self.buckets = buckets if buckets is not None else {}
        self.locations: dict[str, str | None] = {}
        self.calls: list[tuple] = []
        self.copies: list[tuple[str, str]] = []
        self.reject_credentials = False
        self.fail_copy: set[str] = set()
        self.fail_delete: set[str] = set()
        self._clock = START_TIME

    def tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def bucket(self, name: str) -> dict[str, FakeObject]:
        return self.buckets.setdefault(name, {})

    def add(self, bucket: str, key: str, body: bytes = b"") -> FakeObject:
        obj = FakeObject(body=body, last_modified=self.tick())
        self.bucket(bucket)[key] = obj
        return obj

    def keys(self, bucket: str) -> set[str]:
        return set(self.bucket(bucket))

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    ## boto3 client methods

    def list_buckets(self):
        self.calls.append(("list_buckets",))
        if self.reject_credentials:
            raise client_error("InvalidAccessKeyId", "ListBuckets")
        return {"Buckets": [{"Name": name} for name in self.buckets]}

    def get_bucket_location(self, Bucket: str):
        return {"LocationConstraint": self.locations.get(Bucket)}

    def get_paginator(self, operation: str):
        assert operation == "list_objects_v2"
        return FakePaginator(self)

    def head_object(self, Bucket: str, Key: str):
        self.calls.append(("head_object", Bucket, Key))
        obj = self.bucket(Bucket).get(Key)
        if obj is None:
            raise client_error("404", "HeadObject")
        return {"ContentLength": len(obj.body), "LastModified": obj.last_modified}

    def get_object(self, Bucket: str, Key: str):
        self.calls.append(("get_object", Bucket, Key))
        obj = self.bucket(Bucket).get(Key)
        if obj is None:
            raise client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(obj.body), "LastModified": obj.last_modified}

    def put_object(self, Bucket: str, Key: str, Body, ACL: str | None = None, **extra):
        self.calls.append(("put_object", Bucket, Key))
        body = Body if isinstance(Body, bytes) else Body.read()
        self.bucket(Bucket)[Key] = FakeObject(body=body, last_modified=self.tick(), extra={"ACL": ACL, **extra})
        return {}

    def copy_object(self, Bucket: str, Key: str, CopySource: dict, ACL: str | None = None):
        self.calls.append(("copy_object", Bucket, Key))
        source = self.bucket(CopySource["Bucket"]).get(CopySource["Key"])
        if source is None:
            raise client_error("NoSuchKey", "CopyObject")
        if CopySource["Key"] in self.fail_copy:
            raise client_error("InternalError", "CopyObject")
        self.copies.append((CopySource["Key"], Key))
        self.bucket(Bucket)[Key] = FakeObject(body=source.body, last_modified=self.tick(), extra={"ACL": ACL})
        return {}

    def delete_object(self, Bucket: str, Key: str):
        self.calls.append(("delete_object", Bucket, Key))
        if Key in self.fail_delete:
            raise client_error("AccessDenied", "DeleteObject")
        self.bucket(Bucket).pop(Key, None)
        return {}


class MemoryMetadataStore:
    """Keeps records in dicts. Records are copied on the way in and out, like a real store."""

    def __init__(self):
        self.folders: dict[str, FolderNode] = {}
        self.files: dict[str, FileRecord] = {}
        self.entries: dict[str, IndexEntry] = {}
        self.transforms: dict[str, TransformIndex] = {}

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    ## Folders

    def get_folder(self, folder_id):
        folder = self.folders.get(folder_id)
        return folder and folder.model_copy()

    def find_folder(self, source_id, path):
        for folder in self.folders.values():
            if folder.source_id == source_id and folder.path == path:
                return folder.model_copy()
        return None

    def find_folders(self, source_id):
        return [folder.model_copy() for folder in self.folders.values() if folder.source_id == source_id]

    def store_folder(self, folder):
        folder = folder.model_copy(update={"id": folder.id or self._new_id()})
        self.folders[folder.id] = folder
        return folder.model_copy()

    def delete_folder(self, folder_id):
        self.folders.pop(folder_id, None)

    ## Files

    def get_file(self, file_id):
        file = self.files.get(file_id)
        return file and file.model_copy()

    def find_file(self, folder_id, filename):
        for file in self.files.values():
            if file.folder_id == folder_id and file.filename == filename:
                return file.model_copy()
        return None

    def find_files(self, folder_id):
        return [file.model_copy() for file in self.files.values() if file.folder_id == folder_id]

    def store_file(self, file):
        file = file.model_copy(update={"id": file.id or self._new_id()})
        self.files[file.id] = file
        return file.model_copy()

    def delete_file(self, file_id):
        self.files.pop(file_id, None)

    ## Index sessions

    def store_index_entry(self, entry):
        id = index_entries_index_id(entry.source_id, entry.session_id, entry.offset)
        self.entries[id] = entry.model_copy(update={"id": id})
        return self.entries[id].model_copy()

    def get_index_entry(self, source_id, session_id, offset):
        entry = self.entries.get(index_entries_index_id(source_id, session_id, offset))
        return entry and entry.model_copy()

    def update_index_entry_record_id(self, entry_id, record_id):
        self.entries[entry_id] = self.entries[entry_id].model_copy(update={"record_id": record_id})

    ## Transform indexes

    def find_transform_indexes(self, file_id):
        return [index.model_copy() for index in self.transforms.values() if index.file_id == file_id]

    def store_transform_index(self, index):
        index = index.model_copy(update={"id": index.id or self._new_id()})
        self.transforms[index.id] = index
        return index.model_copy()

    def delete_transform_indexes(self, file_id):
        self.transforms = {id: index for id, index in self.transforms.items() if index.file_id != file_id}
