import io
from pathlib import Path

import pytest
from PIL import Image

from assetsync.models import FolderNode, Source, SourceSettings
from assetsync.sources import AssetSource
from assetsync.transforms import LocalTransformCache
from tests.fakes import FakeS3Client, MemoryMetadataStore

BUCKET = "assets"
PREFIX = "site/"


def png_bytes(width: int, height: int, color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_source(id: int = 1, bucket: str = BUCKET, key_id: str = "key", subfolder: str = "site", **kargs) -> Source:
    settings = SourceSettings(
        key_id=key_id,
        secret="secret",
        bucket=bucket,
        location="EU",
        url_prefix=f"http://s3-eu-west-1.amazonaws.com/{bucket}/",
        subfolder=subfolder,
        **kargs,
    )
    return Source(id=id, name=f"Source {id}", settings=settings)


@pytest.fixture()
def s3():
    return FakeS3Client()


@pytest.fixture()
def store():
    return MemoryMetadataStore()


@pytest.fixture()
def transforms(store, tmp_path):
    return LocalTransformCache(store, storage_path=tmp_path / "storage", max_cached_image_size=2000)


@pytest.fixture()
def source():
    return make_source()


@pytest.fixture()
def src(source, s3, store, transforms) -> AssetSource:
    s3.bucket(BUCKET)
    return AssetSource(source, s3, store, transforms)


@pytest.fixture()
def image_file(tmp_path):
    """Factory for local png files of a given size"""

    def make(width: int = 40, height: int = 30, name: str = "local.png") -> Path:
        path = tmp_path / name
        path.write_bytes(png_bytes(width, height))
        return path

    return make


def folder(src: AssetSource, path: str) -> FolderNode:
    """Get (or create) the folder with this path"""
    node = src.store.get_folder(src.ensure_folder_by_full_path(path))
    assert node is not None
    return node
