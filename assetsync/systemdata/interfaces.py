"""
Contracts of the collaborators the synchronization engine relies on.

The metadata store keeps folders, file records, index session entries and transform indexes,
see elastic_store.ElasticMetadataStore for the implementation used by the server.
"""

from datetime import datetime
from pathlib import Path
from typing import Protocol

from assetsync.models import FileRecord, FolderNode, IndexEntry, TransformIndex


class MetadataStore(Protocol):
    # folders
    def get_folder(self, folder_id: str) -> FolderNode | None: ...
    def find_folder(self, source_id: int, path: str) -> FolderNode | None: ...
    def find_folders(self, source_id: int) -> list[FolderNode]: ...
    def store_folder(self, folder: FolderNode) -> FolderNode: ...
    def delete_folder(self, folder_id: str) -> None: ...

    # files
    def get_file(self, file_id: str) -> FileRecord | None: ...
    def find_file(self, folder_id: str, filename: str) -> FileRecord | None: ...
    def find_files(self, folder_id: str) -> list[FileRecord]: ...
    def store_file(self, file: FileRecord) -> FileRecord: ...
    def delete_file(self, file_id: str) -> None: ...

    # index sessions
    def store_index_entry(self, entry: IndexEntry) -> IndexEntry: ...
    def get_index_entry(self, source_id: int, session_id: str, offset: int) -> IndexEntry | None: ...
    def update_index_entry_record_id(self, entry_id: str, record_id: str) -> None: ...

    # transform indexes
    def find_transform_indexes(self, file_id: str) -> list[TransformIndex]: ...
    def store_transform_index(self, index: TransformIndex) -> TransformIndex: ...
    def delete_transform_indexes(self, file_id: str) -> None: ...


class TransformRegistrar(Protocol):
    def cache_path(self, file: FileRecord, variant: str = ...) -> Path: ...
    def image_source_path(self, file: FileRecord) -> Path: ...
    def has_valid_source(self, file: FileRecord) -> bool: ...
    def store_local_source(self, path: Path, cache_path: Path, modified: datetime | None = None) -> None: ...
    def queue_source_for_deletion_if_necessary(self, path: Path) -> None: ...
    def delete_queued_sources(self) -> None: ...
    def delete_local_source(self, file: FileRecord) -> None: ...
    def get_all_created_transforms(self, file: FileRecord) -> list[TransformIndex]: ...
    def get_transform_subpath(self, file: FileRecord, index: TransformIndex) -> str: ...
    def store_transform_index_data(self, index: TransformIndex) -> TransformIndex: ...
    def delete_all_transform_data(self, file: FileRecord) -> None: ...


class MergeCoordinator(Protocol):
    def is_merge_in_progress(self) -> bool: ...
