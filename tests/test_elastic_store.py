from datetime import datetime, timezone

import pytest

from assetsync.config import get_settings
from assetsync.elastic.connection import connect_elastic
from assetsync.models import FileRecord, FolderNode, IndexEntry, TransformIndex
from assetsync.systemdata.elastic_store import ElasticMetadataStore
from assetsync.systemdata.manage import create_systemdata, delete_systemdata

ASSETSYNC_TESTS_PREFIX = "assetsync_unittest"


@pytest.fixture(scope="module")
def elastic():
    get_settings().system_index = ASSETSYNC_TESTS_PREFIX
    elastic = connect_elastic()
    if not elastic.ping():
        pytest.skip("Elasticsearch not reachable, skipping metadata store tests")
    delete_systemdata(elastic)
    create_systemdata(elastic)
    yield elastic
    delete_systemdata(elastic)


@pytest.fixture()
def es_store(elastic):
    return ElasticMetadataStore(elastic)


def test_create_systemdata_is_idempotent(elastic):
    assert create_systemdata(elastic) == []


def test_folders(es_store):
    top = es_store.store_folder(FolderNode(source_id=1, name="Assets", path=""))
    assert top.id is not None
    child = es_store.store_folder(FolderNode(source_id=1, parent_id=top.id, name="a", path="a/"))
    es_store.store_folder(FolderNode(source_id=2, name="Other", path=""))

    assert es_store.get_folder(child.id) == child
    assert es_store.find_folder(1, "a/") == child
    assert es_store.find_folder(1, "b/") is None
    assert {f.path for f in es_store.find_folders(1)} == {"", "a/"}

    child.path, child.name = "b/", "b"
    assert es_store.store_folder(child).id == child.id
    assert es_store.find_folder(1, "b/") == child

    es_store.delete_folder(child.id)
    assert es_store.get_folder(child.id) is None
    es_store.delete_folder(child.id)


def test_files(es_store):
    modified = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
    file = es_store.store_file(
        FileRecord(source_id=1, folder_id="f1", filename="x.png", kind="image", width=4, height=3, date_modified=modified)
    )
    assert es_store.get_file(file.id) == file
    assert es_store.get_file(file.id).date_modified == modified
    assert es_store.find_file("f1", "x.png") == file
    assert es_store.find_file("f1", "X.png") is None
    assert [f.id for f in es_store.find_files("f1")] == [file.id]
    es_store.delete_file(file.id)
    assert es_store.get_file(file.id) is None


def test_index_entries(es_store):
    entry = es_store.store_index_entry(IndexEntry(source_id=1, session_id="s1", offset=0, uri="a/x.png", size=3))
    assert entry.id == "1:s1:0"
    assert es_store.get_index_entry(1, "s1", 0) == entry
    assert es_store.get_index_entry(1, "s1", 1) is None
    es_store.update_index_entry_record_id(entry.id, "file1")
    assert es_store.get_index_entry(1, "s1", 0).record_id == "file1"


def test_transform_indexes(es_store):
    index = es_store.store_transform_index(TransformIndex(file_id="file1", source_id=1, location="_thumb"))
    es_store.store_transform_index(TransformIndex(file_id="file2", source_id=1, location="_thumb"))
    assert es_store.find_transform_indexes("file1") == [index]
    es_store.delete_transform_indexes("file1")
    assert es_store.find_transform_indexes("file1") == []
    assert len(es_store.find_transform_indexes("file2")) == 1
