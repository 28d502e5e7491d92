"""
An AssetSource is one unit of work on a configured source: the source settings, an S3 client
created for those settings, and the collaborators that keep the local state (metadata store,
transform registrar and merge coordinator).

Create one with open_asset_source at the start of an index step or file operation and pass it
to the functions in indexing, operations and transforms.
"""

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from mypy_boto3_s3.client import S3Client

from assetsync.config import get_settings
from assetsync.folders import INDEX_SKIP_ITEMS_PATTERN
from assetsync.models import (
    ConflictResolution,
    FileRecord,
    FolderNode,
    OperationConflict,
    PromptOption,
    Source,
    SourceSettings,
)
from assetsync.objectstorage.s3bucket import download_s3_object, put_s3_object, scan_s3_objects
from assetsync.objectstorage.s3client import s3_client
from assetsync.paths import (
    get_extension,
    is_image_extension,
    parent_folder_path,
    path_prefix,
    split_uri,
    to_remote_key,
)
from assetsync.systemdata.interfaces import MergeCoordinator, MetadataStore, TransformRegistrar
from assetsync.util import cache_control_header


class MergeState:
    """Keeps track of whether a bulk merge of folders is running"""

    def __init__(self):
        self._merges = 0
        self._lock = threading.Lock()

    def is_merge_in_progress(self) -> bool:
        return self._merges > 0

    @contextmanager
    def merging(self) -> Iterator[None]:
        """Entered by the task that merges folders in bulk. Record conflicts in move_file are ignored meanwhile"""
        with self._lock:
            self._merges += 1
        try:
            yield
        finally:
            with self._lock:
                self._merges -= 1


class AssetSource:
    def __init__(
        self,
        source: Source,
        s3: S3Client,
        store: MetadataStore,
        transforms: TransformRegistrar,
        merges: MergeCoordinator | None = None,
    ):
        self.source = source
        self.s3 = s3
        self.store = store
        self.transforms = transforms
        self.merges = merges or MergeState()

    @property
    def id(self) -> int:
        return self.source.id

    @property
    def settings(self) -> SourceSettings:
        return self.source.settings

    @property
    def bucket(self) -> str:
        return self.settings.bucket

    def key(self, relative_path: str) -> str:
        return to_remote_key(relative_path, self.settings)

    def file_key(self, file: FileRecord) -> str:
        return self.key(self.folder_of(file).path + file.filename)

    def get_base_url(self) -> str:
        return self.settings.url_prefix + path_prefix(self.settings)

    def put_object(self, key: str, local_path: Path | None) -> None:
        """
        Upload a local file (or an empty folder marker if local_path is None), with the cache
        duration of this source
        """
        cache_control = cache_control_header(self.settings.expires) if local_path is not None else None
        put_s3_object(self.s3, self.bucket, key, local_path, cache_control=cache_control)

    def get_local_copy(self, file: FileRecord) -> Path:
        """
        Download the file to a temporary location. The caller is responsible for removing it.
        """
        fd, name = tempfile.mkstemp(suffix=f".{get_extension(file.filename)}")
        os.close(fd)
        location = Path(name)
        download_s3_object(self.s3, self.bucket, self.file_key(file), location)
        return location

    def folder_exists(self, parent: FolderNode, name: str) -> bool:
        """
        A folder exists if it has a record, or if any object (marker or file) has its path as prefix
        """
        path = parent.path + name.rstrip("/") + "/"
        if self.store.find_folder(self.id, path) is not None:
            return True
        return next(iter(scan_s3_objects(self.s3, self.bucket, self.key(path), page_size=1)), None) is not None

    def folder_of(self, file: FileRecord) -> FolderNode:
        folder = self.store.get_folder(file.folder_id)
        if folder is None:
            raise ValueError(f"Folder {file.folder_id} of file {file.filename} does not exist")
        return folder

    def ensure_top_folder(self) -> str:
        folder = self.store.find_folder(self.id, "")
        if folder is None:
            folder = self.store.store_folder(FolderNode(source_id=self.id, parent_id=None, name=self.source.name, path=""))
        return folder.id  # type: ignore

    def ensure_folder_by_full_path(self, path: str) -> str:
        """
        Get the id of the folder with this path, creating it (and its parents, first) if needed
        """
        if path == "":
            return self.ensure_top_folder()
        folder = self.store.find_folder(self.id, path)
        if folder is not None:
            return folder.id  # type: ignore
        parent_id = self.ensure_folder_by_full_path(parent_folder_path(path))
        name = path.rstrip("/").rsplit("/", 1)[-1]
        folder = self.store.store_folder(FolderNode(source_id=self.id, parent_id=parent_id, name=name, path=path))
        logging.debug(f"Created folder {path} for source {self.id}")
        return folder.id  # type: ignore

    def get_missing_folders(self, indexed_folder_ids: set[str]) -> dict[str, str]:
        return {
            folder.id: folder.path
            for folder in self.store.find_folders(self.id)
            if folder.id is not None and folder.id not in indexed_folder_ids
        }

    def is_extension_allowed(self, filename: str) -> bool:
        return get_extension(filename) in {ext.lower() for ext in get_settings().allowed_file_extensions}

    def index_file(self, uri: str) -> FileRecord | None:
        """
        Find or create the file record for a path relative to this source.
        Returns None for files that are not indexed (disallowed extension or system files).
        """
        folder_path, filename = split_uri(uri)
        if not filename or not self.is_extension_allowed(filename) or INDEX_SKIP_ITEMS_PATTERN.match(uri):
            return None

        folder_id = self.ensure_folder_by_full_path(folder_path)
        file = self.store.find_file(folder_id, filename)
        if file is None:
            kind = "image" if is_image_extension(filename) else "other"
            file = self.store.store_file(FileRecord(source_id=self.id, folder_id=folder_id, filename=filename, kind=kind))
        return file

    def can_move_file_from(self, origin: "AssetSource") -> bool:
        """
        Files can only be moved between sources of the same type that share credentials
        """
        if origin.source.type != self.source.type:
            return False
        return origin.settings.key_id == self.settings.key_id and origin.settings.secret == self.settings.secret

    def conflict(self, filename: str, suggested_name: str) -> OperationConflict:
        return OperationConflict(
            message=f"File “{filename}” already exists at target location.",
            prompt_options=prompt_options(),
            filename=filename,
            suggested_name=suggested_name,
        )


def prompt_options() -> list[PromptOption]:
    return [
        PromptOption(value=ConflictResolution.keep_both, title="Keep both"),
        PromptOption(value=ConflictResolution.replace, title="Replace it"),
        PromptOption(value=ConflictResolution.cancel, title="Cancel"),
    ]


def open_asset_source(
    source: Source,
    store: MetadataStore,
    transforms: TransformRegistrar,
    merges: MergeCoordinator | None = None,
) -> AssetSource:
    return AssetSource(source, s3_client(source.settings), store, transforms, merges)
