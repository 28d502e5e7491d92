"""
Metadata store backed by elasticsearch: one system index per record type.

All writes use refresh=True, so a record is visible to the next search, e.g. a folder
created while processing one index entry is found when processing the next.
"""

from typing import Any, Type, TypeVar

from elasticsearch import Elasticsearch
from pydantic import BaseModel

from assetsync.elastic.connection import elastic_connection
from assetsync.elastic.util import es_get, es_search, index_scan
from assetsync.models import FileRecord, FolderNode, IndexEntry, TransformIndex
from assetsync.systemdata.mapping import (
    files_index_name,
    folders_index_name,
    index_entries_index_id,
    index_entries_index_name,
    new_document_id,
    transforms_index_name,
)

T = TypeVar("T", bound=BaseModel)


def _terms(**fields: Any) -> dict:
    return {"bool": {"must": [{"term": {field: value}} for field, value in fields.items()]}}


class ElasticMetadataStore:
    def __init__(self, elastic: Elasticsearch | None = None):
        self._elastic = elastic

    @property
    def elastic(self) -> Elasticsearch:
        if self._elastic is None:
            self._elastic = elastic_connection()
        return self._elastic

    def _get(self, model: Type[T], index: str, id: str) -> T | None:
        doc = es_get(self.elastic, index, id)
        if doc is None:
            return None
        return model.model_validate({**doc, "id": id})

    def _find(self, model: Type[T], index: str, **fields: Any) -> list[T]:
        return [model.model_validate({**doc, "id": id}) for id, doc in es_search(self.elastic, index, _terms(**fields))]

    def _store(self, model: T, index: str, id: str | None = None) -> T:
        id = id or getattr(model, "id", None) or new_document_id()
        doc = model.model_dump(mode="json", exclude={"id"})
        self.elastic.index(index=index, id=id, document=doc, refresh=True)
        return model.model_copy(update={"id": id})

    def _delete(self, index: str, id: str) -> None:
        self.elastic.options(ignore_status=[404]).delete(index=index, id=id, refresh=True)

    ## Folders

    def get_folder(self, folder_id: str) -> FolderNode | None:
        return self._get(FolderNode, folders_index_name(), folder_id)

    def find_folder(self, source_id: int, path: str) -> FolderNode | None:
        folders = self._find(FolderNode, folders_index_name(), source_id=source_id, path=path)
        return folders[0] if folders else None

    def find_folders(self, source_id: int) -> list[FolderNode]:
        return [
            FolderNode.model_validate({**doc, "id": id})
            for id, doc in index_scan(self.elastic, folders_index_name(), query={"term": {"source_id": source_id}})
        ]

    def store_folder(self, folder: FolderNode) -> FolderNode:
        return self._store(folder, folders_index_name())

    def delete_folder(self, folder_id: str) -> None:
        self._delete(folders_index_name(), folder_id)

    ## Files

    def get_file(self, file_id: str) -> FileRecord | None:
        return self._get(FileRecord, files_index_name(), file_id)

    def find_file(self, folder_id: str, filename: str) -> FileRecord | None:
        files = self._find(FileRecord, files_index_name(), folder_id=folder_id, filename=filename)
        return files[0] if files else None

    def find_files(self, folder_id: str) -> list[FileRecord]:
        return [
            FileRecord.model_validate({**doc, "id": id})
            for id, doc in index_scan(self.elastic, files_index_name(), query={"term": {"folder_id": folder_id}})
        ]

    def store_file(self, file: FileRecord) -> FileRecord:
        return self._store(file, files_index_name())

    def delete_file(self, file_id: str) -> None:
        self._delete(files_index_name(), file_id)

    ## Index sessions

    def store_index_entry(self, entry: IndexEntry) -> IndexEntry:
        id = index_entries_index_id(entry.source_id, entry.session_id, entry.offset)
        return self._store(entry, index_entries_index_name(), id)

    def get_index_entry(self, source_id: int, session_id: str, offset: int) -> IndexEntry | None:
        id = index_entries_index_id(source_id, session_id, offset)
        return self._get(IndexEntry, index_entries_index_name(), id)

    def update_index_entry_record_id(self, entry_id: str, record_id: str) -> None:
        self.elastic.update(index=index_entries_index_name(), id=entry_id, doc={"record_id": record_id}, refresh=True)

    ## Transform indexes

    def find_transform_indexes(self, file_id: str) -> list[TransformIndex]:
        return self._find(TransformIndex, transforms_index_name(), file_id=file_id)

    def store_transform_index(self, index: TransformIndex) -> TransformIndex:
        return self._store(index, transforms_index_name())

    def delete_transform_indexes(self, file_id: str) -> None:
        self.elastic.delete_by_query(index=transforms_index_name(), query={"term": {"file_id": file_id}}, refresh=True)
