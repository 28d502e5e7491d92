"""
File operations on a source: insert, move, rename, delete, and the folder equivalents.

Every operation returns an OperationResponse. Name collisions are not errors: they are returned
as an OperationConflict with the options the user can choose from, and nothing is overwritten unless
the caller asks for it explicitly.

Objects are always copied before the original is deleted. Deleting the original is best-effort: if it
fails, the object exists in both places and a warning is logged.
"""

import logging
from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError

from assetsync.models import (
    ConflictResolution,
    FileRecord,
    FolderNode,
    OperationError,
    OperationResponse,
    OperationSuccess,
)
from assetsync.objectstorage.s3bucket import (
    copy_s3_object,
    delete_s3_object_quietly,
    scan_s3_objects,
    stat_s3_object,
)
from assetsync.paths import clean_asset_name, get_extension, is_image_extension, parent_folder_path
from assetsync.sources import AssetSource
from assetsync.transforms import image_size


class DisallowedFileType(ValueError):
    pass


######################## INSERTING FILES #########################


def get_name_replacement(src: AssetSource, folder: FolderNode, filename: str) -> str:
    """
    Find a free name for filename in the folder by appending _1, _2, ... to the name.
    Names are compared case-insensitively.
    """
    prefix = src.key(folder.path)
    existing = {obj.key.lower() for obj in scan_s3_objects(src.s3, src.bucket, prefix)}

    if (prefix + filename).lower() not in existing:
        return filename

    if "." in filename:
        stem, extension = filename.rsplit(".", 1)
        extension = f".{extension}"
    else:
        stem, extension = filename, ""

    index = 1
    while f"{prefix}{stem}_{index}{extension}".lower() in existing:
        index += 1
    return f"{stem}_{index}{extension}"


def insert_file_in_folder(src: AssetSource, folder: FolderNode, local_path: Path, filename: str) -> OperationResponse:
    """
    Upload a local file to the folder. Returns a conflict if an object with this name already exists.
    """
    filename = clean_asset_name(filename)
    if not src.is_extension_allowed(filename):
        raise DisallowedFileType(f"This file type is not allowed: {filename}")

    key = src.key(folder.path + filename)
    if stat_s3_object(src.s3, src.bucket, key) is not None:
        return src.conflict(filename, get_name_replacement(src, folder, filename))

    src.put_object(key, local_path)
    logging.info(f"Uploaded {local_path} to {src.bucket}/{key}")
    return OperationSuccess(data={"file_path": key, "filename": filename})


def insert_file_by_path(
    src: AssetSource,
    folder: FolderNode,
    local_path: Path,
    filename: str,
    conflict_resolution: ConflictResolution | None = None,
) -> OperationResponse:
    """
    Upload a local file and create or update its file record.

    Without a conflict_resolution a name collision is returned as a conflict. With keep_both the file
    is stored under a replacement name, with replace the existing object is overwritten.
    """
    filename = clean_asset_name(filename)
    response = insert_file_in_folder(src, folder, local_path, filename)

    if response.status == "conflict":
        if conflict_resolution == ConflictResolution.keep_both:
            filename = response.suggested_name
            response = insert_file_in_folder(src, folder, local_path, filename)
        elif conflict_resolution == ConflictResolution.replace:
            key = src.key(folder.path + filename)
            src.put_object(key, local_path)
            response = OperationSuccess(data={"file_path": key, "filename": filename})
        elif conflict_resolution == ConflictResolution.cancel:
            return OperationSuccess(data={"filename": filename, "cancelled": True})

    if response.status != "success":
        return response

    file = _update_uploaded_file(src, folder, local_path, response.data["filename"])
    response.data["file_id"] = file.id
    return response


def _update_uploaded_file(src: AssetSource, folder: FolderNode, local_path: Path, filename: str) -> FileRecord:
    key = src.key(folder.path + filename)
    info = stat_s3_object(src.s3, src.bucket, key)
    if info is None:
        raise FileNotFoundError(f"Uploaded object {key} not found in bucket {src.bucket}")

    file = src.store.find_file(folder.id, filename)  # type: ignore
    if file is None:
        file = FileRecord(source_id=src.id, folder_id=folder.id, filename=filename)  # type: ignore
    else:
        # transforms of the old contents are stale
        _delete_remote_transforms(src, file, folder)
        src.transforms.delete_all_transform_data(file)

    file.kind = "image" if is_image_extension(filename) else "other"
    file.size = info.size
    file.date_modified = info.last_modified
    if file.kind == "image":
        file.width, file.height = image_size(local_path)
    file = src.store.store_file(file)

    if file.kind == "image":
        cache_path = src.transforms.image_source_path(file)
        src.transforms.store_local_source(local_path, cache_path, info.last_modified)
        src.transforms.queue_source_for_deletion_if_necessary(cache_path)
        src.transforms.delete_queued_sources()
    return file


######################## MOVING AND DELETING FILES #########################


def copy_source_file(src: AssetSource, from_uri: str, to_uri: str) -> bool:
    try:
        copy_s3_object(src.s3, src.bucket, src.key(from_uri), src.bucket, src.key(to_uri))
        return True
    except (ClientError, BotoCoreError) as e:
        logging.warning(f"Could not copy {from_uri} to {to_uri} in bucket {src.bucket}: {e}")
        return False


def delete_source_file(src: AssetSource, uri: str) -> None:
    delete_s3_object_quietly(src.s3, src.bucket, src.key(uri))


def move_file(
    src: AssetSource,
    file: FileRecord,
    target_folder: FolderNode,
    filename: str | None = None,
    overwrite: bool = False,
    origin: AssetSource | None = None,
) -> OperationResponse:
    """
    Move a file to target_folder in this source, optionally under a new filename.
    origin is the source the file is currently in, if that is a different source.
    """
    origin = origin or src
    if origin.id != src.id and not src.can_move_file_from(origin):
        return OperationError(message=f"Cannot move files from source {origin.id} to source {src.id}")

    filename = filename or file.filename
    new_key = src.key(target_folder.path + filename)

    conflicting_record = src.store.find_file(target_folder.id, filename)  # type: ignore
    if conflicting_record is not None and conflicting_record.id == file.id:
        conflicting_record = None
    exists = stat_s3_object(src.s3, src.bucket, new_key) is not None
    if not overwrite and (exists or (not src.merges.is_merge_in_progress() and conflicting_record is not None)):
        return src.conflict(filename, get_name_replacement(src, target_folder, filename))

    same_source = origin.id == src.id
    transforms = origin.transforms.get_all_created_transforms(file) if file.kind == "image" else []
    if same_source and any(index.location is None for index in transforms):
        logging.error(
            f"Transform data for {file.filename} (file {file.id}) is corrupt, refusing to move it to {new_key}"
        )
        return OperationError(message="Could not move the file, its transform data is corrupt")

    origin_folder = origin.folder_of(file)
    old_key = origin.key(origin_folder.path + file.filename)
    try:
        copy_s3_object(src.s3, origin.bucket, old_key, src.bucket, new_key)
    except (ClientError, BotoCoreError) as e:
        logging.error(f"Could not copy {origin.bucket}/{old_key} to {src.bucket}/{new_key}: {e}")
        return OperationError(message="Could not save the file")
    delete_s3_object_quietly(origin.s3, origin.bucket, old_key)

    if conflicting_record is not None:
        # the record that was at the destination is superseded by the moved file
        _delete_remote_transforms(src, conflicting_record, target_folder)
        src.transforms.delete_all_transform_data(conflicting_record)
        src.store.delete_file(conflicting_record.id)  # type: ignore

    if file.kind == "image":
        if same_source:
            destination = file.model_copy(update={"filename": filename})
            for index in transforms:
                destination_index = index.model_copy()
                if index.filename:
                    destination_index.filename = filename
                    src.transforms.store_transform_index_data(destination_index)

                from_uri = origin_folder.path + src.transforms.get_transform_subpath(file, index)
                to_uri = target_folder.path + src.transforms.get_transform_subpath(destination, destination_index)
                copy_source_file(src, from_uri, to_uri)
                delete_source_file(src, from_uri)
        else:
            _delete_remote_transforms(origin, file, origin_folder)
            origin.transforms.delete_all_transform_data(file)

    file.folder_id = target_folder.id  # type: ignore
    file.source_id = src.id
    file.filename = filename
    src.store.store_file(file)

    logging.info(f"Moved {origin.bucket}/{old_key} to {src.bucket}/{new_key}")
    return OperationSuccess(data={"new_id": file.id, "new_filename": filename})


def rename_file(src: AssetSource, file: FileRecord, new_filename: str, overwrite: bool = False) -> OperationResponse:
    new_filename = clean_asset_name(new_filename)
    if get_extension(new_filename) != get_extension(file.filename) and not src.is_extension_allowed(new_filename):
        raise DisallowedFileType(f"This file type is not allowed: {new_filename}")
    return move_file(src, file, src.folder_of(file), new_filename, overwrite=overwrite)


def _delete_remote_transforms(src: AssetSource, file: FileRecord, folder: FolderNode) -> None:
    for index in src.transforms.get_all_created_transforms(file):
        if index.location is not None:
            delete_source_file(src, folder.path + src.transforms.get_transform_subpath(file, index))


def delete_file(src: AssetSource, file: FileRecord) -> OperationResponse:
    folder = src.folder_of(file)
    delete_source_file(src, folder.path + file.filename)
    _delete_remote_transforms(src, file, folder)
    src.transforms.delete_all_transform_data(file)
    src.transforms.delete_local_source(file)
    src.store.delete_file(file.id)  # type: ignore
    logging.info(f"Deleted {src.file_key(file)} from bucket {src.bucket}")
    return OperationSuccess(data={"deleted_id": file.id})


######################## FOLDERS #########################


def create_folder(src: AssetSource, parent: FolderNode, name: str) -> OperationResponse:
    name = clean_asset_name(name)
    if not name:
        return OperationError(message="A folder needs a name")
    if src.folder_exists(parent, name):
        return OperationError(message=f"A folder with the name “{name}” already exists in the folder.")

    path = parent.path + name + "/"
    src.put_object(src.key(path), None)
    folder_id = src.ensure_folder_by_full_path(path)
    return OperationSuccess(data={"folder_id": folder_id, "path": path})


def rename_source_folder(src: AssetSource, folder: FolderNode, new_name: str) -> None:
    """
    Copy every object under the folder to the new folder name, then remove the originals.
    Objects are handled in descending key order, so nested objects go before their parents' markers.
    """
    old_prefix = src.key(folder.path)
    new_prefix = src.key(parent_folder_path(folder.path) + new_name + "/")

    objects = sorted(scan_s3_objects(src.s3, src.bucket, old_prefix), key=lambda obj: obj.key, reverse=True)
    for obj in objects:
        new_key = new_prefix + obj.key[len(old_prefix) :]
        copy_s3_object(src.s3, src.bucket, obj.key, src.bucket, new_key)
        delete_s3_object_quietly(src.s3, src.bucket, obj.key)


def rename_folder(src: AssetSource, folder: FolderNode, new_name: str) -> OperationResponse:
    new_name = clean_asset_name(new_name).rstrip("/")
    if folder.parent_id is None:
        return OperationError(message="The top folder of a source cannot be renamed")
    if not new_name:
        return OperationError(message="A folder needs a name")

    parent = src.store.get_folder(folder.parent_id)
    if parent is None:
        raise ValueError(f"Parent folder {folder.parent_id} of {folder.path} does not exist")
    if src.folder_exists(parent, new_name):
        return OperationError(message=f"A folder with the name “{new_name}” already exists in the folder.")

    rename_source_folder(src, folder, new_name)

    old_path = folder.path
    new_path = parent.path + new_name + "/"
    for descendant in src.store.find_folders(src.id):
        if descendant.path.startswith(old_path):
            descendant.path = new_path + descendant.path[len(old_path) :]
            if descendant.id == folder.id:
                descendant.name = new_name
            src.store.store_folder(descendant)

    logging.info(f"Renamed folder {old_path} to {new_path} in source {src.id}")
    return OperationSuccess(data={"new_name": new_name, "path": new_path})


def delete_source_folder(src: AssetSource, folder: FolderNode) -> None:
    prefix = src.key(folder.path)
    for obj in list(scan_s3_objects(src.s3, src.bucket, prefix)):
        delete_s3_object_quietly(src.s3, src.bucket, obj.key)


def delete_folder(src: AssetSource, folder: FolderNode) -> OperationResponse:
    if folder.parent_id is None:
        return OperationError(message="The top folder of a source cannot be deleted")

    delete_source_folder(src, folder)

    subtree = [f for f in src.store.find_folders(src.id) if f.path.startswith(folder.path)]
    for subfolder in subtree:
        for file in src.store.find_files(subfolder.id):  # type: ignore
            src.transforms.delete_all_transform_data(file)
            src.transforms.delete_local_source(file)
            src.store.delete_file(file.id)  # type: ignore
    # children before parents
    for subfolder in sorted(subtree, key=lambda f: f.path, reverse=True):
        src.store.delete_folder(subfolder.id)  # type: ignore

    logging.info(f"Deleted folder {folder.path} from source {src.id}")
    return OperationSuccess(data={"deleted_id": folder.id})
