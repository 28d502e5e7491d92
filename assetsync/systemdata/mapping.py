import uuid

from assetsync.elastic.util import system_index_name


def folders_index_name() -> str:
    return system_index_name("folders")


def files_index_name() -> str:
    return system_index_name("files")


def index_entries_index_name() -> str:
    return system_index_name("index_entries")


def transforms_index_name() -> str:
    return system_index_name("transforms")


def new_document_id() -> str:
    return uuid.uuid4().hex


def index_entries_index_id(source_id: int, session_id: str, offset: int) -> str:
    return f"{source_id}:{session_id}:{offset}"


folders_mapping = dict(
    source_id={"type": "integer"},
    parent_id={"type": "keyword"},
    name={"type": "keyword"},
    path={"type": "keyword"},
)

files_mapping = dict(
    source_id={"type": "integer"},
    folder_id={"type": "keyword"},
    filename={"type": "keyword"},
    kind={"type": "keyword"},
    size={"type": "long"},
    width={"type": "integer"},
    height={"type": "integer"},
    date_modified={"type": "date"},
)

index_entries_mapping = dict(
    source_id={"type": "integer"},
    session_id={"type": "keyword"},
    offset={"type": "integer"},
    uri={"type": "keyword"},
    size={"type": "long"},
    record_id={"type": "keyword"},
)

transforms_mapping = dict(
    file_id={"type": "keyword"},
    source_id={"type": "integer"},
    location={"type": "keyword"},
    filename={"type": "keyword"},
    file_exists={"type": "boolean"},
    date_indexed={"type": "date"},
)


def system_mappings() -> dict[str, dict]:
    return {
        folders_index_name(): folders_mapping,
        files_index_name(): files_mapping,
        index_entries_index_name(): index_entries_mapping,
        transforms_index_name(): transforms_mapping,
    }
