"""API Endpoints for listing buckets and sources, and for running index sessions."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Path
from pydantic import BaseModel, Field

from assetsync.api.common import ClientFactory, SourceOpener, get_client_factory, get_sources
from assetsync.indexing import process_index, start_index
from assetsync.models import BucketInfo, IndexStartResult, Source, SourceInfo, SourceSettings
from assetsync.objectstorage.s3bucket import get_bucket_list

app_sources = APIRouter(prefix="", tags=["sources"])


class BucketCredentials(BaseModel):
    key_id: str = Field(min_length=1)
    secret: str = Field(min_length=1)
    location: str | None = Field(default=None, description="Bucket location, e.g. EU. Default: US")


class IndexStepResult(BaseModel):
    file_id: str | None = Field(description="Id of the indexed file record, if the entry was indexed")
    done: bool = Field(description="True if there is no entry at this offset, i.e. the session is complete")


@app_sources.post("/buckets")
def list_buckets(
    credentials: BucketCredentials,
    client_factory: ClientFactory = Depends(get_client_factory),
) -> list[BucketInfo]:
    """
    List the buckets that can be accessed with these credentials.
    Returns 401 if the object store does not accept the credentials.
    """
    settings = SourceSettings.model_construct(
        key_id=credentials.key_id, secret=credentials.secret, location=credentials.location or "US"
    )
    return get_bucket_list(client_factory(settings))


@app_sources.get("/sources")
def list_sources(sources: dict[int, Source] = Depends(get_sources)) -> list[SourceInfo]:
    """List the configured sources (without their credentials)."""
    return [
        SourceInfo(
            id=source.id,
            name=source.name,
            type=source.type,
            bucket=source.settings.bucket,
            subfolder=source.settings.subfolder,
            url_prefix=source.settings.url_prefix,
        )
        for source in sources.values()
    ]


@app_sources.post("/sources/{source_id}/index")
def start_index_session(
    source_id: int,
    session_id: Annotated[str | None, Body(embed=True)] = None,
    opener: SourceOpener = Depends(SourceOpener),
) -> IndexStartResult:
    """
    Start an index session: list the bucket and register every object as an entry at a sequential offset.
    Process the entries with the /sources/{source_id}/index/{session_id}/{offset} endpoint.
    """
    src = opener.open(source_id)
    return start_index(src, session_id or uuid.uuid4().hex)


@app_sources.post("/sources/{source_id}/index/{session_id}/{offset}")
def process_index_entry(
    source_id: int,
    session_id: str,
    offset: Annotated[int, Path(ge=0)],
    opener: SourceOpener = Depends(SourceOpener),
) -> IndexStepResult:
    """Index the entry at this offset of the session. Steps can be repeated and run in any order."""
    src = opener.open(source_id)
    if src.store.get_index_entry(source_id, session_id, offset) is None:
        return IndexStepResult(file_id=None, done=True)
    return IndexStepResult(file_id=process_index(src, session_id, offset), done=False)
