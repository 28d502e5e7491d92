"""Helper methods and dependencies for the API."""

from typing import Callable

from fastapi import Depends, HTTPException, status
from mypy_boto3_s3.client import S3Client

from assetsync.config import load_sources
from assetsync.models import FileRecord, FolderNode, Source, SourceSettings
from assetsync.objectstorage.s3client import s3_client
from assetsync.sources import AssetSource, MergeState
from assetsync.systemdata.elastic_store import ElasticMetadataStore
from assetsync.systemdata.interfaces import MetadataStore, TransformRegistrar
from assetsync.transforms import LocalTransformCache

ClientFactory = Callable[[SourceSettings], S3Client]

# shared by all requests, the folder merge task enters MERGES.merging() while it runs
MERGES = MergeState()


def get_store() -> MetadataStore:
    return ElasticMetadataStore()


def get_transforms(store: MetadataStore = Depends(get_store)) -> TransformRegistrar:
    return LocalTransformCache(store)


def get_client_factory() -> ClientFactory:
    return s3_client


def get_sources() -> dict[int, Source]:
    return load_sources()


class SourceOpener:
    """
    Opens asset sources for a request. All sources opened for one request share the store and transform cache.
    """

    def __init__(
        self,
        sources: dict[int, Source] = Depends(get_sources),
        store: MetadataStore = Depends(get_store),
        transforms: TransformRegistrar = Depends(get_transforms),
        client_factory: ClientFactory = Depends(get_client_factory),
    ):
        self.sources = sources
        self.store = store
        self.transforms = transforms
        self.client_factory = client_factory

    def open(self, source_id: int) -> AssetSource:
        source = self.sources.get(source_id)
        if source is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Source {source_id} does not exist")
        return AssetSource(source, self.client_factory(source.settings), self.store, self.transforms, MERGES)

    def folder(self, folder_id: str) -> FolderNode:
        folder = self.store.get_folder(folder_id)
        if folder is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Folder {folder_id} does not exist")
        return folder

    def file(self, file_id: str) -> FileRecord:
        file = self.store.get_file(file_id)
        if file is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"File {file_id} does not exist")
        return file
