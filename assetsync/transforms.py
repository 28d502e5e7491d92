"""
Derived artifacts: locally cached copies of source images and the transforms (e.g. thumbnails) created from them.

Local copies are keyed by file id and variant ("source" for the copy of the original, otherwise the transform
location such as _thumb). A copy is valid as long as its modification time is not older than the date_modified
of the file record, so a changed remote object invalidates all cached variants without any bookkeeping.
Transforms are also stored in the bucket, next to the file: <folder>/<location>/<filename>.
"""

import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path

from PIL import Image

from assetsync.config import get_settings
from assetsync.models import FileRecord, TransformIndex
from assetsync.objectstorage.s3bucket import download_s3_object, stat_s3_object
from assetsync.paths import get_extension
from assetsync.sources import AssetSource
from assetsync.systemdata.interfaces import MetadataStore

SOURCE_VARIANT = "source"


def image_size(path: Path) -> tuple[int, int]:
    with Image.open(path) as img:
        return img.size


def _downscale(path: Path, target: Path, max_size: int) -> bool:
    """Scale the image at path down so that it fits in max_size x max_size. Returns False if it already fits."""
    with Image.open(path) as img:
        if max(img.size) <= max_size:
            return False
        img.thumbnail((max_size, max_size))
        if img.mode in ("RGBA", "P", "LA") and get_extension(target.name) in ("jpg", "jpeg", "jpe"):
            img = img.convert("RGB")
        img.save(target)
    return True


class LocalTransformCache:
    """
    Local cache of derived artifacts, and registrar of the transforms created for each file.
    """

    def __init__(self, store: MetadataStore, storage_path: Path | None = None, max_cached_image_size: int | None = None):
        settings = get_settings()
        self.store = store
        self.storage_path = storage_path or settings.storage_path
        self.max_cached_image_size = (
            settings.max_cached_image_size if max_cached_image_size is None else max_cached_image_size
        )
        self._deletion_queue: list[Path] = []

    def cache_path(self, file: FileRecord, variant: str = SOURCE_VARIANT) -> Path:
        filename = f"{file.id}.{get_extension(file.filename)}"
        if variant == SOURCE_VARIANT:
            return self.storage_path / "sources" / filename
        return self.storage_path / "transforms" / variant / filename

    def image_source_path(self, file: FileRecord) -> Path:
        return self.cache_path(file, SOURCE_VARIANT)

    def is_valid(self, file: FileRecord, variant: str = SOURCE_VARIANT) -> bool:
        path = self.cache_path(file, variant)
        if not path.exists():
            return False
        if file.date_modified is None:
            return True
        return path.stat().st_mtime >= file.date_modified.timestamp()

    def has_valid_source(self, file: FileRecord) -> bool:
        return self.is_valid(file, SOURCE_VARIANT)

    def store_local_source(self, path: Path, cache_path: Path, modified: datetime | None = None) -> None:
        """
        Keep a local copy of a source image at cache_path, scaled down to max_cached_image_size.
        If modified is given, it becomes the modification time of the cached copy.
        """
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        if self.max_cached_image_size <= 0 or not _downscale(path, cache_path, self.max_cached_image_size):
            if path != cache_path:
                shutil.copyfile(path, cache_path)
        if modified is not None:
            os.utime(cache_path, (modified.timestamp(), modified.timestamp()))

    def queue_source_for_deletion_if_necessary(self, path: Path) -> None:
        if self.max_cached_image_size <= 0:
            self._deletion_queue.append(path)

    def delete_queued_sources(self) -> None:
        for path in self._deletion_queue:
            path.unlink(missing_ok=True)
        self._deletion_queue = []

    def delete_local_source(self, file: FileRecord) -> None:
        self.image_source_path(file).unlink(missing_ok=True)

    def get_all_created_transforms(self, file: FileRecord) -> list[TransformIndex]:
        if file.id is None:
            return []
        return [index for index in self.store.find_transform_indexes(file.id) if index.file_exists]

    def get_transform_subpath(self, file: FileRecord, index: TransformIndex) -> str:
        if index.location is None:
            raise ValueError(f"Transform index {index.id} for file {file.id} has no location")
        filename = index.filename if index.filename and index.filename != file.filename else file.filename
        return f"{index.location}/{filename}"

    def store_transform_index_data(self, index: TransformIndex) -> TransformIndex:
        return self.store.store_transform_index(index)

    def delete_all_transform_data(self, file: FileRecord) -> None:
        if file.id is None:
            return
        for index in self.store.find_transform_indexes(file.id):
            if index.location:
                self.cache_path(file, index.location).unlink(missing_ok=True)
        self.store.delete_transform_indexes(file.id)


def transform_key(src: AssetSource, file: FileRecord, subpath: str) -> str:
    return src.key(src.folder_of(file).path + subpath)


def put_image_transform(src: AssetSource, file: FileRecord, index: TransformIndex, source_image: Path) -> None:
    key = transform_key(src, file, src.transforms.get_transform_subpath(file, index))
    src.put_object(key, source_image)


def transform_exists(src: AssetSource, file: FileRecord, location: str) -> bool:
    key = transform_key(src, file, f"{location}/{file.filename}")
    return stat_s3_object(src.s3, src.bucket, key) is not None


def create_transform(src: AssetSource, file: FileRecord, location: str, width: int, height: int) -> TransformIndex:
    """
    Create a transform of an image that fits in width x height, cache it locally and store it in the bucket
    """
    if file.kind != "image":
        raise ValueError(f"Cannot create a transform for {file.filename}, which is not an image")

    source = src.transforms.image_source_path(file)
    if not src.transforms.has_valid_source(file):
        download_s3_object(src.s3, src.bucket, src.file_key(file), source)
        src.transforms.store_local_source(source, source, file.date_modified)

    target = src.transforms.cache_path(file, location)
    target.parent.mkdir(parents=True, exist_ok=True)
    with Image.open(source) as img:
        img.thumbnail((width, height))
        if img.mode in ("RGBA", "P", "LA") and get_extension(file.filename) in ("jpg", "jpeg", "jpe"):
            img = img.convert("RGB")
        img.save(target)

    index = TransformIndex(
        file_id=file.id,  # type: ignore
        source_id=src.id,
        location=location,
        file_exists=True,
        date_indexed=datetime.now(timezone.utc),
    )
    put_image_transform(src, file, index, target)
    logging.info(f"Created transform {location} for {src.file_key(file)}")
    return src.transforms.store_transform_index_data(index)
