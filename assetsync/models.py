from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


######################## SOURCES #########################


NonEmpty = Annotated[str, Field(min_length=1)]


class SourceSettings(BaseModel):
    """Connection settings of an S3 asset source"""

    key_id: NonEmpty
    secret: NonEmpty
    bucket: NonEmpty
    location: NonEmpty
    url_prefix: NonEmpty
    subfolder: str = ""  # key prefix for everything in this source
    expires: str = ""  # cache duration for uploaded objects, e.g. "30 days"


class Source(BaseModel):
    id: int
    name: str
    type: Literal["s3"] = "s3"
    settings: SourceSettings


class SourceInfo(BaseModel):
    """Public view on a source, i.e. without credentials"""

    id: int
    name: str
    type: str
    bucket: str
    subfolder: str
    url_prefix: str


class BucketInfo(BaseModel):
    bucket: str
    location: str
    url_prefix: str


class RemoteObject(BaseModel):
    key: str
    size: int
    last_modified: datetime


######################## FOLDERS, FILES AND INDEX SESSIONS #########################


class FolderNode(BaseModel):
    id: str | None = None
    source_id: int
    parent_id: str | None = None  # None only for the top folder of a source
    name: str
    path: str  # "" for the top folder, "a/b/" otherwise


FileKind = Literal["image", "other"]


class FileRecord(BaseModel):
    id: str | None = None
    source_id: int
    folder_id: str
    filename: str
    kind: FileKind = "other"
    size: int | None = None
    width: int | None = None
    height: int | None = None
    date_modified: datetime | None = None


class IndexEntry(BaseModel):
    id: str | None = None
    source_id: int
    session_id: str
    offset: Annotated[int, Field(ge=0)]
    uri: str
    size: int
    record_id: str | None = None


class IndexStartResult(BaseModel):
    source_id: int
    total: int
    missing_folders: dict[str, str] = Field(description="Folders known locally but absent from the listing, id: path")


class TransformIndex(BaseModel):
    """A derived artifact (transform) that was created for a file"""

    id: str | None = None
    file_id: str
    source_id: int
    location: str | None  # transform handle such as _thumb, None if the stored settings are corrupt
    filename: str | None = None  # only set if the transform was created for a different filename
    file_exists: bool = False
    date_indexed: datetime | None = None


######################## OPERATION RESPONSES #########################


class ConflictResolution(str, Enum):
    keep_both = "keep_both"
    replace = "replace"
    cancel = "cancel"


class PromptOption(BaseModel):
    value: ConflictResolution
    title: str


class OperationSuccess(BaseModel):
    status: Literal["success"] = "success"
    data: dict[str, Any] = {}


class OperationConflict(BaseModel):
    status: Literal["conflict"] = "conflict"
    message: str
    prompt_options: list[PromptOption]
    filename: str
    suggested_name: str


class OperationError(BaseModel):
    status: Literal["error"] = "error"
    message: str


OperationResponse = Annotated[
    Union[OperationSuccess, OperationConflict, OperationError],
    Field(discriminator="status"),
]
