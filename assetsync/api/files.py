"""API Endpoints for file and folder operations."""

import shutil
import tempfile
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, Field

from assetsync.api.common import SourceOpener
from assetsync.models import ConflictResolution
from assetsync.operations import (
    create_folder,
    delete_file,
    delete_folder,
    insert_file_by_path,
    move_file,
    rename_file,
    rename_folder,
)
from assetsync.paths import get_extension

app_files = APIRouter(prefix="", tags=["files"])


class MoveFileBody(BaseModel):
    folder_id: str = Field(description="Id of the target folder, which can be in a different source")
    filename: str | None = Field(default=None, description="New filename. Default: keep the current name")
    overwrite: bool = Field(default=False, description="Replace an existing file with the same name")


class RenameFileBody(BaseModel):
    filename: str = Field(min_length=1)
    overwrite: bool = False


class FolderNameBody(BaseModel):
    name: str


@app_files.post("/folders/{folder_id}/files")
def upload_file(
    folder_id: str,
    file: Annotated[UploadFile, File()],
    conflict_resolution: Annotated[ConflictResolution | None, Form()] = None,
    opener: SourceOpener = Depends(SourceOpener),
):
    """
    Upload a file to a folder.

    If a file with this name exists, a conflict is returned with a suggested replacement name,
    unless conflict_resolution says what to do (keep_both, replace or cancel).
    """
    folder = opener.folder(folder_id)
    src = opener.open(folder.source_id)
    filename = file.filename or "upload"
    with tempfile.NamedTemporaryFile(suffix=f".{get_extension(filename)}") as tmp:
        shutil.copyfileobj(file.file, tmp)
        tmp.flush()
        return insert_file_by_path(src, folder, Path(tmp.name), filename, conflict_resolution)


@app_files.post("/files/{file_id}/move")
def move_file_to_folder(file_id: str, body: MoveFileBody, opener: SourceOpener = Depends(SourceOpener)):
    """Move a file to another folder, possibly in another source that uses the same credentials."""
    file = opener.file(file_id)
    target = opener.folder(body.folder_id)
    origin = opener.open(file.source_id)
    src = origin if target.source_id == file.source_id else opener.open(target.source_id)
    return move_file(src, file, target, body.filename, overwrite=body.overwrite, origin=origin)


@app_files.post("/files/{file_id}/rename")
def rename_file_in_folder(file_id: str, body: RenameFileBody, opener: SourceOpener = Depends(SourceOpener)):
    file = opener.file(file_id)
    return rename_file(opener.open(file.source_id), file, body.filename, overwrite=body.overwrite)


@app_files.delete("/files/{file_id}")
def delete_file_from_source(file_id: str, opener: SourceOpener = Depends(SourceOpener)):
    file = opener.file(file_id)
    return delete_file(opener.open(file.source_id), file)


@app_files.post("/folders/{folder_id}/folders")
def create_subfolder(folder_id: str, body: FolderNameBody, opener: SourceOpener = Depends(SourceOpener)):
    parent = opener.folder(folder_id)
    return create_folder(opener.open(parent.source_id), parent, body.name)


@app_files.post("/folders/{folder_id}/rename")
def rename_folder_with_contents(folder_id: str, body: FolderNameBody, opener: SourceOpener = Depends(SourceOpener)):
    """Rename a folder, moving every object below it to the new name"""
    folder = opener.folder(folder_id)
    return rename_folder(opener.open(folder.source_id), folder, body.name)


@app_files.delete("/folders/{folder_id}")
def delete_folder_with_contents(folder_id: str, opener: SourceOpener = Depends(SourceOpener)):
    """Delete a folder with all files and folders in it"""
    folder = opener.folder(folder_id)
    return delete_folder(opener.open(folder.source_id), folder)
